"""Newline-delimited JSON protocol spoken between the CLI and browser-daemon.

Every frame is one JSON object followed by a single ``\\n``:

    {"type": "ping", "payload": null}
    {"type": "pong", "payload": null}
    {"type": "command", "payload": {
        "id": str,              # random token, unique per command
        "sessionId": str,       # isolated browser context
        "profile": str,         # omitted for the default profile
        "type": str,            # CommandKind value
        "params": {...},        # omitted when the command has no parameters
        "timestamp": str,       # RFC 3339, UTC
    }}
    {"type": "response", "payload": {
        "id": str,              # id of the originating command
        "success": bool,
        "data": any,            # omitted unless success
        "error": str,           # omitted unless failure
    }}

json.dumps escapes control characters inside strings, so a serialized
envelope never contains a raw newline and the newline is a safe terminator.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from tabcli.errors import MalformedMessage, ProtocolError

MESSAGE_DELIMITER = b"\n"


class CommandKind(str, Enum):
    """Every operation name the daemon routes on.

    Kinds without a CLI subcommand are reserved for future use.
    """

    # Navigation
    NAVIGATE = "navigate"
    OPEN = "open"
    BACK = "back"
    FORWARD = "forward"
    RELOAD = "reload"
    CLOSE = "close"
    # Snapshot
    SNAPSHOT = "snapshot"
    # Element interactions
    CLICK = "click"
    DBLCLICK = "dblclick"
    FILL = "fill"
    TYPE = "type"
    PRESS = "press"
    HOVER = "hover"
    FOCUS = "focus"
    CHECK = "check"
    UNCHECK = "uncheck"
    SELECT = "select"
    # Scroll
    SCROLL = "scroll"
    SCROLL_INTO_VIEW = "scrollintoview"
    # Element queries
    GET = "get"
    IS = "is"
    FIND = "find"
    # Advanced interactions
    DRAG = "drag"
    UPLOAD = "upload"
    MOUSE = "mouse"
    WAIT = "wait"
    # Tab management
    TAB = "tab"
    TAB_NEW = "tab_new"
    TAB_CLOSE = "tab_close"
    TAB_SWITCH = "tab_switch"
    TAB_LIST = "tab_list"
    # Capture
    SCREENSHOT = "screenshot"
    PDF = "pdf"
    # Script execution
    EVAL = "eval"
    # Liveness
    PING = "ping"


class EnvelopeKind(str, Enum):
    COMMAND = "command"
    RESPONSE = "response"
    PING = "ping"
    PONG = "pong"


@dataclass
class Command:
    """A single request to the daemon. Built once, sent once, discarded."""

    id: str
    session_id: str
    kind: CommandKind
    timestamp: str
    profile: Optional[str] = None
    params: Optional[Dict[str, Any]] = None

    def to_payload(self) -> Dict[str, Any]:
        """Wire form of the command; absent profile/params are omitted."""
        payload: Dict[str, Any] = {
            "id": self.id,
            "sessionId": self.session_id,
        }
        if self.profile is not None:
            payload["profile"] = self.profile
        payload["type"] = self.kind.value
        if self.params is not None:
            payload["params"] = self.params
        payload["timestamp"] = self.timestamp
        return payload

    @classmethod
    def from_payload(cls, payload: Any) -> "Command":
        if not isinstance(payload, dict):
            raise ProtocolError("command payload must be an object")
        try:
            kind = CommandKind(payload["type"])
            return cls(
                id=str(payload["id"]),
                session_id=str(payload["sessionId"]),
                kind=kind,
                timestamp=str(payload["timestamp"]),
                profile=payload.get("profile"),
                params=payload.get("params"),
            )
        except (KeyError, ValueError) as e:
            raise ProtocolError(f"invalid command payload: {e}") from e


@dataclass
class CommandResponse:
    """The daemon's answer to a Command.

    ``data`` is only meaningful when ``success`` is true and ``error`` only
    when it is false. The IPC layer hands responses back as received; the
    caller decides what a failure means.
    """

    id: str
    success: bool
    data: Any = None
    error: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"id": self.id, "success": self.success}
        if self.data is not None:
            payload["data"] = self.data
        if self.error is not None:
            payload["error"] = self.error
        return payload

    @classmethod
    def from_payload(cls, payload: Any) -> "CommandResponse":
        if not isinstance(payload, dict):
            raise ProtocolError("response payload must be an object")
        if not isinstance(payload.get("id"), str):
            raise ProtocolError("invalid response payload: missing 'id'")
        if not isinstance(payload.get("success"), bool):
            raise ProtocolError("invalid response payload: missing 'success'")
        error = payload.get("error")
        return cls(
            id=payload["id"],
            success=payload["success"],
            data=payload.get("data"),
            error=None if error is None else str(error),
        )


@dataclass
class Envelope:
    """Outermost frame structure. Exists only on the wire."""

    kind: EnvelopeKind
    payload: Any = field(default=None)

    @classmethod
    def ping(cls) -> "Envelope":
        return cls(EnvelopeKind.PING)

    @classmethod
    def pong(cls) -> "Envelope":
        return cls(EnvelopeKind.PONG)

    @classmethod
    def command(cls, command: Command) -> "Envelope":
        return cls(EnvelopeKind.COMMAND, command.to_payload())

    @classmethod
    def response(cls, response: CommandResponse) -> "Envelope":
        return cls(EnvelopeKind.RESPONSE, response.to_payload())


def encode(envelope: Envelope) -> bytes:
    """
    Serialize an envelope into one newline-terminated frame.

    Args:
        envelope: Envelope to serialize

    Returns:
        UTF-8 encoded compact JSON followed by MESSAGE_DELIMITER
    """
    message = {"type": envelope.kind.value, "payload": envelope.payload}
    data = json.dumps(message, ensure_ascii=False, separators=(",", ":"))
    return data.encode("utf-8") + MESSAGE_DELIMITER


def decode(data: bytes) -> Envelope:
    """
    Parse one frame (terminator already stripped) into an envelope.

    Args:
        data: UTF-8 encoded JSON bytes

    Returns:
        The decoded Envelope

    Raises:
        MalformedMessage: If data is not JSON, not an object, or its
            ``type`` is missing or not one of the four envelope kinds
    """
    try:
        message = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedMessage(f"invalid JSON frame: {e}") from e
    except RecursionError as e:
        raise MalformedMessage("JSON frame nested too deeply") from e

    if not isinstance(message, dict):
        raise MalformedMessage("frame is not a JSON object")
    if "type" not in message:
        raise MalformedMessage("frame has no 'type' field")

    try:
        kind = EnvelopeKind(message["type"])
    except ValueError as e:
        raise MalformedMessage(f"unknown message type: {message['type']!r}") from e

    return Envelope(kind=kind, payload=message.get("payload"))
