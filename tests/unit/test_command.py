import threading
import time
from unittest.mock import MagicMock

import pytest

from ssh_keyprov.remote.command import CommandResult, execute_command


class FakeChannel:
    """Scripted paramiko channel: emits ``chunks`` and then exits with ``exit_status``."""

    def __init__(
        self,
        chunks: list[bytes],
        exit_status: int = 0,
        finishes: bool = True,
        sends_eof: bool = True,
    ):
        self.pending = list(chunks)
        self.exit_status = exit_status
        self.finishes = finishes
        self.sends_eof = sends_eof
        self.polls = 0
        self.closed = False
        self.command: str | None = None
        self.combined_stderr = False

    def set_combine_stderr(self, combine: bool) -> None:
        self.combined_stderr = combine

    def exec_command(self, command: str) -> None:
        self.command = command

    def exit_status_ready(self) -> bool:
        self.polls += 1
        return self.finishes and not self.pending

    @property
    def eof_received(self) -> bool:
        return self.finishes and self.sends_eof and not self.pending

    def recv_ready(self) -> bool:
        return bool(self.pending)

    def recv(self, nbytes: int) -> bytes:
        return self.pending.pop(0) if self.pending else b""

    def recv_exit_status(self) -> int:
        return self.exit_status

    def close(self) -> None:
        self.closed = True


def make_transport(channel: FakeChannel) -> MagicMock:
    transport = MagicMock()
    transport.open_session.return_value = channel
    return transport


class TestCommandResult:
    def test_success_requires_zero_exit(self):
        assert CommandResult(exit_status=0, output="").success
        assert not CommandResult(exit_status=1, output="").success

    def test_cancelled_is_not_success(self):
        assert not CommandResult(exit_status=0, output="", cancelled=True).success


class TestExecuteCommand:
    def test_collects_output_and_exit_status(self):
        channel = FakeChannel([b"Generating ", b"key\n"], exit_status=0)

        result = execute_command(
            make_transport(channel), "ssh-keygen -q", threading.Event(), poll_interval=0
        )

        assert result == CommandResult(exit_status=0, output="Generating key\n")
        assert channel.command == "ssh-keygen -q"
        assert channel.combined_stderr
        assert channel.closed

    def test_nonzero_exit(self):
        channel = FakeChannel([b"already exists\n"], exit_status=1)

        result = execute_command(make_transport(channel), "x", threading.Event(), poll_interval=0)

        assert not result.success
        assert result.exit_status == 1
        assert result.output == "already exists\n"

    def test_cancel_aborts_running_command(self):
        channel = FakeChannel([], finishes=False)
        flag = threading.Event()
        timer = threading.Timer(0.05, flag.set)
        timer.start()

        try:
            result = execute_command(make_transport(channel), "sleep 100", flag, poll_interval=0.01)
        finally:
            timer.cancel()

        assert result.cancelled
        assert result.exit_status is None
        assert channel.closed

    def test_flag_already_set_returns_without_waiting(self):
        channel = FakeChannel([], finishes=False)
        flag = threading.Event()
        flag.set()

        result = execute_command(make_transport(channel), "sleep 100", flag, poll_interval=10)

        assert result.cancelled
        assert channel.polls == 1

    def test_channel_closed_on_error(self):
        channel = FakeChannel([])
        channel.exec_command = MagicMock(side_effect=EOFError())

        with pytest.raises(EOFError):
            execute_command(make_transport(channel), "x", threading.Event())

        assert channel.closed

    def test_open_channel_after_exit_does_not_block(self):
        # e.g. a background process inherited the channel's stdout
        channel = FakeChannel([], exit_status=0, sends_eof=False)

        started = time.monotonic()
        result = execute_command(make_transport(channel), "x", threading.Event(), poll_interval=0.01)

        assert result == CommandResult(exit_status=0, output="")
        assert time.monotonic() - started < 5
        assert channel.closed

    def test_cancel_while_waiting_for_eof(self):
        channel = FakeChannel([], exit_status=0, sends_eof=False)
        flag = threading.Event()
        flag.set()

        started = time.monotonic()
        result = execute_command(make_transport(channel), "x", flag, poll_interval=30)

        # The process already exited, so its status is kept
        assert result.exit_status == 0
        assert time.monotonic() - started < 5
