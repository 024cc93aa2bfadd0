"""Errors raised by key provisioning operations."""


class KeyProvisioningError(Exception):
    """Base class for all provisioning failures."""

    pass


class RemoteFileNotFound(KeyProvisioningError):
    """A remote read or remove targeted a file that does not exist.

    Only raised where the file is required; optional targets are read with
    ``tolerate_absence=True`` and never surface this error.
    """

    def __init__(self, path: str, operation: str):
        self.path = path
        self.operation = operation
        super().__init__(f"Remote file not found during {operation}: {path}")


class CancellationRequested(KeyProvisioningError):
    """The shared cancel flag was observed set."""

    def __init__(self, message: str = "Operation cancelled"):
        super().__init__(message)


class TransportFailure(KeyProvisioningError):
    """Any remote I/O failure other than a missing file (auth, network, protocol)."""

    def __init__(self, operation: str, path: str | None = None, reason: str = ""):
        self.operation = operation
        self.path = path
        self.reason = reason
        target = f" {path}" if path else ""
        detail = f": {reason}" if reason else ""
        super().__init__(f"Remote {operation} failed{target}{detail}")


class CommandFailure(KeyProvisioningError):
    """A remote command exited unsuccessfully."""

    def __init__(self, command: str, output: str, exit_status: int | None = None):
        self.command = command
        self.output = output
        self.exit_status = exit_status
        super().__init__(f"Remote command failed (exit status {exit_status}): {command}")


class LocalIOFailure(KeyProvisioningError):
    """Local filesystem error while writing key material."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Local I/O failed for {path}: {reason}")
