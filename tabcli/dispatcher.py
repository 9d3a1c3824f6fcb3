"""Single entry point used by every command implementation.

    dispatcher = CommandDispatcher(client, identity, supervisor)
    response = dispatcher.dispatch(CommandKind.NAVIGATE, {"url": url})
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from tabcli.daemon.client import IpcClient
from tabcli.daemon.protocol import Command, CommandKind, CommandResponse
from tabcli.daemon.supervisor import DaemonSupervisor
from tabcli.session import Identity


def current_timestamp() -> str:
    """RFC 3339 UTC timestamp with millisecond precision."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def new_command_id() -> str:
    return str(uuid.uuid4())


def normalize_params(params: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
    """An empty mapping means "no parameters" and is sent as absent."""
    if not params:
        return None
    return dict(params)


class CommandDispatcher:
    """
    Stamps identity metadata onto commands and sends them to the daemon.

    When a supervisor is attached, ``ensure()`` runs before the first
    dispatch only. Errors from the IPC layer propagate unchanged and
    nothing is retried.
    """

    def __init__(
        self,
        client: IpcClient,
        identity: Identity,
        supervisor: Optional[DaemonSupervisor] = None,
    ):
        self.client = client
        self.identity = identity
        self.supervisor = supervisor
        self._daemon_checked = supervisor is None

    def build_command(self, kind: CommandKind, params: Optional[Mapping[str, Any]] = None) -> Command:
        return Command(
            id=new_command_id(),
            session_id=self.identity.session_id,
            profile=self.identity.profile,
            kind=kind,
            params=normalize_params(params),
            timestamp=current_timestamp(),
        )

    def dispatch(self, kind: CommandKind, params: Optional[Mapping[str, Any]] = None) -> CommandResponse:
        if not self._daemon_checked:
            self.supervisor.ensure()
            self._daemon_checked = True

        command = self.build_command(kind, params)
        return self.client.exchange(command)
