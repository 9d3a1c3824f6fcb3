"""IPC client for CLI <-> daemon communication.

The only component that sends or receives envelopes. Each call opens a
fresh connection, performs exactly one round trip and closes it.

Usage:
    client = IpcClient(config.socket_path)
    if client.probe():
        response = client.exchange(command)
"""

import logging
import socket
from typing import Optional

from tabcli.daemon import transport
from tabcli.daemon.protocol import (
    Command,
    CommandResponse,
    Envelope,
    EnvelopeKind,
    decode,
    encode,
)
from tabcli.errors import (
    CommandTimeout,
    ConnectionFailed,
    ConnectionTimeout,
    ProtocolError,
    TabError,
)

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 5.0
DEFAULT_COMMAND_TIMEOUT = 30.0


class IpcClient:
    """
    Speaks the newline-delimited JSON protocol to one daemon address.

    Timeouts are in seconds. The client holds no connection between calls.
    """

    def __init__(
        self,
        address: str,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        command_timeout: float = DEFAULT_COMMAND_TIMEOUT,
    ):
        self.address = address
        self.connect_timeout = connect_timeout
        self.command_timeout = command_timeout

    @classmethod
    def from_config(cls, config) -> "IpcClient":
        return cls(
            address=config.socket_path,
            connect_timeout=config.connection_timeout,
            command_timeout=config.command_timeout,
        )

    def probe(self, timeout: Optional[float] = None) -> bool:
        """
        Check whether a daemon answers ping with pong.

        Never raises: a missing socket, timeout, refused connection or
        malformed reply all mean "not alive". Liveness polling depends on
        this staying silent.
        """
        try:
            with transport.connect(self.address, timeout or self.connect_timeout) as stream:
                stream.write_all(encode(Envelope.ping()))
                reply = decode(stream.read_frame())
        except (TabError, OSError) as e:
            logger.debug("Probe of %s failed: %s", self.address, e)
            return False
        return reply.kind is EnvelopeKind.PONG

    def exchange(
        self,
        command: Command,
        connect_timeout: Optional[float] = None,
        command_timeout: Optional[float] = None,
    ) -> CommandResponse:
        """
        Send a command and wait for its response.

        Args:
            command: Command to send
            connect_timeout: Override for the connect deadline
            command_timeout: Override for the read/write deadline

        Returns:
            The CommandResponse exactly as the daemon sent it; a failed
            command is still a returned response, not an exception

        Raises:
            DaemonNotRunning: No socket/pipe at the address
            ConnectionFailed: Connect or write failed (ConnectionTimeout if
                it timed out)
            CommandTimeout: The reply did not arrive within command_timeout
            ProtocolError: Empty, truncated or malformed reply, a reply of
                the wrong type, or a reply without payload
        """
        command_timeout = command_timeout or self.command_timeout
        stream = transport.connect(self.address, connect_timeout or self.connect_timeout)
        with stream:
            stream.set_deadlines(command_timeout)
            frame = encode(Envelope.command(command))
            self._send(stream, frame)
            logger.debug("Sent %s command %s (%d bytes)", command.kind.value, command.id, len(frame))
            reply = decode(self._receive(stream, command_timeout))

        if reply.kind is not EnvelopeKind.RESPONSE:
            raise ProtocolError("unexpected response type")
        if reply.payload is None:
            raise ProtocolError("missing response payload")

        response = CommandResponse.from_payload(reply.payload)
        if response.id != command.id:
            logger.warning("Response id %s does not match command id %s", response.id, command.id)
        return response

    @staticmethod
    def _send(stream: transport.IpcStream, frame: bytes) -> None:
        try:
            stream.write_all(frame)
        except socket.timeout as e:
            raise ConnectionTimeout("write timed out") from e
        except OSError as e:
            raise ConnectionFailed(f"write failed: {e}") from e

    @staticmethod
    def _receive(stream: transport.IpcStream, timeout: float) -> bytes:
        try:
            data = stream.read_frame()
        except socket.timeout as e:
            raise CommandTimeout(f"no response within {timeout:g}s") from e
        except OSError as e:
            raise ConnectionFailed(f"read failed: {e}") from e
        logger.debug("Received %d byte response", len(data))
        return data
