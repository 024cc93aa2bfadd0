"""Remote session and command execution over SSH (paramiko)."""

from .command import CommandResult, execute_command
from .session import RemoteSession, SessionFactory

__all__ = ["CommandResult", "RemoteSession", "SessionFactory", "execute_command"]
