"""Cancellation-aware remote command execution."""

from dataclasses import dataclass
import threading

import paramiko

from ssh_keyprov.logging_config import get_logger

logger = get_logger(__name__)

_RECV_CHUNK = 32768


@dataclass
class CommandResult:
    """Outcome of a remote command."""

    exit_status: int | None
    output: str
    cancelled: bool = False

    @property
    def success(self) -> bool:
        return not self.cancelled and self.exit_status == 0


def execute_command(
    transport: paramiko.Transport,
    command: str,
    cancel_flag: threading.Event,
    poll_interval: float = 0.1,
    log_command: str | None = None,
) -> CommandResult:
    """Run ``command`` on a fresh channel, polling ``cancel_flag`` while it runs.

    Stderr is merged into the captured output. When the flag is raised the
    channel is closed, which makes sshd terminate the remote process, and the
    call returns immediately with ``cancelled=True``.

    Args:
        transport: Open paramiko transport.
        command: Shell command line to execute.
        cancel_flag: Shared flag; set by another thread to abort.
        poll_interval: Maximum delay between flag checks, in seconds.
        log_command: Redacted form of the command for logging.

    Returns:
        CommandResult with exit status and captured output.
    """
    shown = log_command or command
    channel = transport.open_session()
    chunks: list[bytes] = []
    try:
        channel.set_combine_stderr(True)
        logger.info("remote_command_start", command=shown)
        channel.exec_command(command)

        while not channel.exit_status_ready():
            if cancel_flag.is_set():
                logger.warning("remote_command_cancelled", command=shown)
                return CommandResult(exit_status=None, output=_decode(chunks), cancelled=True)
            while channel.recv_ready():
                chunks.append(channel.recv(_RECV_CHUNK))
            cancel_flag.wait(poll_interval)

        # Trailing output: a descendant may hold the channel open past exit,
        # so give up after one quiet poll interval or when cancelled
        while not channel.eof_received:
            if channel.recv_ready():
                chunks.append(channel.recv(_RECV_CHUNK))
            elif cancel_flag.wait(poll_interval) or not channel.recv_ready():
                break
        while channel.recv_ready():
            chunks.append(channel.recv(_RECV_CHUNK))

        exit_status = channel.recv_exit_status()
    finally:
        channel.close()

    output = _decode(chunks)
    logger.info("remote_command_finished", command=shown, exit_status=exit_status)
    return CommandResult(exit_status=exit_status, output=output)


def _decode(chunks: list[bytes]) -> str:
    return b"".join(chunks).decode("utf-8", errors="replace")
