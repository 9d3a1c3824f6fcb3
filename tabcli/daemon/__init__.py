"""Control-plane side of the browser-daemon.

The daemon itself is a separate executable; this package only talks to it:

- protocol: command model and newline-delimited JSON codec
- transport: Unix socket / Windows named pipe connector
- client: IpcClient with probe() and exchange()
- supervisor: DaemonSupervisor that starts the daemon on demand
"""

from tabcli.daemon.client import IpcClient
from tabcli.daemon.protocol import (
    Command,
    CommandKind,
    CommandResponse,
    Envelope,
    EnvelopeKind,
    decode,
    encode,
)
from tabcli.daemon.supervisor import DaemonSupervisor, spawn_detached

__all__ = [
    "IpcClient",
    "Command",
    "CommandKind",
    "CommandResponse",
    "Envelope",
    "EnvelopeKind",
    "decode",
    "encode",
    "DaemonSupervisor",
    "spawn_detached",
]
