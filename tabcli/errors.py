"""Error taxonomy for the tab CLI.

Every error carries the process exit code the CLI should terminate with,
so scripts can branch on the failure class:

    0   success
    1   command failed / command timed out
    2   daemon not running (socket absent, executable missing, startup timeout)
    3   connection failed / connection timed out
    64  invalid arguments (EX_USAGE)
    65  invalid session (EX_DATAERR)
    74  I/O error (EX_IOERR)
    76  protocol error (EX_PROTOCOL)
"""

from typing import Optional


class TabError(Exception):
    """Base class for all errors surfaced by the CLI."""

    exit_code = 1
    prefix = "error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or ""
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.message:
            return f"{self.prefix}: {self.message}"
        return self.prefix


class DaemonNotRunning(TabError):
    exit_code = 2
    prefix = "daemon not running"


class ConnectionFailed(TabError):
    exit_code = 3
    prefix = "connection failed"


class ConnectionTimeout(ConnectionFailed):
    prefix = "connection timed out"


class CommandFailed(TabError):
    exit_code = 1
    prefix = "command failed"


class CommandTimeout(CommandFailed):
    prefix = "command timed out"


class InvalidArguments(TabError):
    exit_code = 64
    prefix = "invalid arguments"


class InvalidSession(TabError):
    exit_code = 65
    prefix = "invalid session"


class ProtocolError(TabError):
    exit_code = 76
    prefix = "protocol error"


class MalformedMessage(ProtocolError):
    """A frame that does not parse into a known envelope."""


class IpcIOError(TabError):
    exit_code = 74
    prefix = "io error"


__all__ = [
    "TabError",
    "DaemonNotRunning",
    "ConnectionFailed",
    "ConnectionTimeout",
    "CommandFailed",
    "CommandTimeout",
    "InvalidArguments",
    "InvalidSession",
    "ProtocolError",
    "MalformedMessage",
    "IpcIOError",
]
