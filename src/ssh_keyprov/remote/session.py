"""Scoped remote filesystem session over SFTP.

Every remote read and remove takes an explicit ``tolerate_absence`` flag, so
the caller declares whether a missing file is an expected state or a fatal
error. paramiko reports a missing file as ``OSError(errno.ENOENT)``; that is
the only condition treated as absence. Everything else becomes
``TransportFailure``.
"""

from collections.abc import Callable
import errno
import posixpath
import threading

import paramiko

from ssh_keyprov.exceptions import RemoteFileNotFound, TransportFailure
from ssh_keyprov.logging_config import get_logger
from ssh_keyprov.models import SessionInfo
from ssh_keyprov.remote.command import CommandResult, execute_command

logger = get_logger(__name__)

_TRANSPORT_ERRORS = (OSError, EOFError, paramiko.SSHException)


def _is_absent(exc: BaseException) -> bool:
    return isinstance(exc, FileNotFoundError) or getattr(exc, "errno", None) == errno.ENOENT


class RemoteSession:
    """One authenticated SSH connection with an SFTP channel.

    Use as a context manager so the connection is released on every exit path:

        with RemoteSession(info) as session:
            data = session.read(session.ssh_path("id_rsa.pub"))
    """

    def __init__(
        self,
        info: SessionInfo,
        poll_interval: float = 0.1,
        client_factory: Callable[[], paramiko.SSHClient] = paramiko.SSHClient,
    ):
        self.info = info
        self.poll_interval = poll_interval
        self._client_factory = client_factory
        self._client: paramiko.SSHClient | None = None
        self._sftp: paramiko.SFTPClient | None = None
        self._home: str | None = None

    def __enter__(self) -> "RemoteSession":
        if self._client is None:
            self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def connected(self) -> bool:
        return self._sftp is not None

    def connect(self) -> "RemoteSession":
        """Open the SSH connection and its SFTP channel."""
        info = self.info
        client = self._client_factory()
        client.load_system_host_keys()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

        logger.info("remote_session_connecting", host=info.host, port=info.port, user=info.user)
        try:
            client.connect(
                hostname=info.host,
                port=info.port,
                username=info.user,
                password=info.password.get_secret_value() if info.password else None,
                key_filename=info.private_key_file,
                passphrase=(
                    info.private_key_passphrase.get_secret_value()
                    if info.private_key_passphrase
                    else None
                ),
                timeout=info.connect_timeout,
            )
            sftp = client.open_sftp()
        except _TRANSPORT_ERRORS as e:
            client.close()
            logger.error(
                "remote_session_connect_failed",
                host=info.host,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise TransportFailure("connect", info.user_host_pretty, str(e)) from e

        self._client = client
        self._sftp = sftp
        logger.debug("remote_session_connected", host=info.host)
        return self

    def close(self) -> None:
        """Release the SFTP channel and the connection. Safe to call twice."""
        sftp, client = self._sftp, self._client
        self._sftp = None
        self._client = None
        self._home = None
        try:
            if sftp is not None:
                sftp.close()
        finally:
            if client is not None:
                client.close()
                logger.debug("remote_session_closed", host=self.info.host)

    @property
    def sftp(self) -> paramiko.SFTPClient:
        if self._sftp is None:
            raise TransportFailure("sftp", reason="session is not connected")
        return self._sftp

    def get_home(self) -> str:
        """Absolute path of the remote user's home directory."""
        if self._home is None:
            try:
                self._home = self.sftp.normalize(".")
            except _TRANSPORT_ERRORS as e:
                raise TransportFailure("resolve home", ".", str(e)) from e
        return self._home

    def ssh_path(self, name: str = "") -> str:
        """Path under the remote ``~/.ssh`` directory."""
        base = posixpath.join(self.get_home(), ".ssh")
        return posixpath.join(base, name) if name else base

    def read(self, path: str, tolerate_absence: bool = False) -> bytes | None:
        """Read a remote file fully.

        Returns None when the file is missing and ``tolerate_absence`` is set.
        """
        try:
            with self.sftp.open(path, "rb") as fh:
                return fh.read()
        except _TRANSPORT_ERRORS as e:
            if _is_absent(e):
                if tolerate_absence:
                    logger.debug("remote_file_absent", path=path, operation="read")
                    return None
                raise RemoteFileNotFound(path, "read") from e
            raise TransportFailure("read", path, str(e)) from e

    def write(self, path: str, data: bytes) -> None:
        """Create or truncate ``path`` and write ``data`` in full."""
        try:
            with self.sftp.open(path, "wb") as fh:
                fh.write(data)
        except _TRANSPORT_ERRORS as e:
            raise TransportFailure("write", path, str(e)) from e

    def remove(self, path: str, tolerate_absence: bool = False) -> bool:
        """Remove a remote file. Returns False if it was already absent."""
        try:
            self.sftp.remove(path)
        except _TRANSPORT_ERRORS as e:
            if _is_absent(e):
                if tolerate_absence:
                    logger.debug("remote_file_absent", path=path, operation="remove")
                    return False
                raise RemoteFileNotFound(path, "remove") from e
            raise TransportFailure("remove", path, str(e)) from e
        return True

    def list_entries(self, path: str) -> list[str]:
        try:
            return self.sftp.listdir(path)
        except _TRANSPORT_ERRORS as e:
            if _is_absent(e):
                raise RemoteFileNotFound(path, "list") from e
            raise TransportFailure("list", path, str(e)) from e

    def make_directory(self, path: str, mode: int = 0o700) -> None:
        try:
            self.sftp.mkdir(path, mode)
        except _TRANSPORT_ERRORS as e:
            raise TransportFailure("mkdir", path, str(e)) from e

    def execute(
        self,
        command: str,
        cancel_flag: threading.Event,
        log_command: str | None = None,
    ) -> CommandResult:
        """Run a shell command on the remote host; see ``execute_command``."""
        if self._client is None:
            raise TransportFailure("exec", reason="session is not connected")
        transport = self._client.get_transport()
        if transport is None or not transport.is_active():
            raise TransportFailure("exec", reason="transport is closed")
        try:
            return execute_command(
                transport,
                command,
                cancel_flag,
                poll_interval=self.poll_interval,
                log_command=log_command,
            )
        except _TRANSPORT_ERRORS as e:
            raise TransportFailure("exec", reason=str(e)) from e


SessionFactory = Callable[[SessionInfo], RemoteSession]
