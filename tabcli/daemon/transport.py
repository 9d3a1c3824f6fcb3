"""Local channel to the daemon: Unix domain socket or Windows named pipe.

The connector only produces a duplex byte stream. Framing and the meaning
of the bytes live in ``tabcli.daemon.protocol``; this module never looks
inside a frame beyond the terminator.
"""

import logging
import os
import socket
from pathlib import Path
from typing import Optional

from tabcli.daemon.protocol import MESSAGE_DELIMITER
from tabcli.errors import (
    ConnectionFailed,
    ConnectionTimeout,
    DaemonNotRunning,
    ProtocolError,
)

logger = logging.getLogger(__name__)

PIPE_PREFIX = "\\\\.\\pipe\\"

# Upper bound on a single frame (snapshots of large pages are the biggest)
MAX_FRAME_BYTES = 64 * 1024 * 1024

_CHUNK_SIZE = 65536


class IpcStream:
    """
    Duplex byte stream with independent read and write deadlines.

    Subclasses provide the raw ``_recv``/``_send`` primitives; deadlines are
    applied before every operation, so they can be changed after connect.
    Timeouts surface as ``socket.timeout``/``TimeoutError`` and other I/O
    problems as ``OSError``; callers decide which phase they belong to.
    """

    def __init__(self, read_timeout: Optional[float], write_timeout: Optional[float]):
        self.read_timeout = read_timeout
        self.write_timeout = write_timeout

    def set_deadlines(self, timeout: Optional[float]) -> None:
        """Apply one timeout to both directions."""
        self.read_timeout = timeout
        self.write_timeout = timeout

    def write_all(self, data: bytes) -> None:
        self._send(data)

    def read_frame(self) -> bytes:
        """
        Read raw bytes up to and including the frame terminator.

        Returns:
            The frame with the terminator stripped

        Raises:
            ProtocolError: On EOF before any byte ("empty response"), EOF
                before the terminator, or an oversized frame
        """
        buf = bytearray()
        while True:
            chunk = self._recv(_CHUNK_SIZE)
            if not chunk:
                break
            buf.extend(chunk)
            index = buf.find(MESSAGE_DELIMITER)
            if index >= 0:
                # One frame per connection; anything after it is discarded
                return bytes(buf[:index])
            if len(buf) > MAX_FRAME_BYTES:
                raise ProtocolError("response frame too large")

        if not buf:
            raise ProtocolError("empty response")
        raise ProtocolError("missing message delimiter")

    def close(self) -> None:
        raise NotImplementedError

    def _recv(self, size: int) -> bytes:
        raise NotImplementedError

    def _send(self, data: bytes) -> None:
        raise NotImplementedError

    def __enter__(self) -> "IpcStream":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class SocketStream(IpcStream):
    """Stream over a connected AF_UNIX socket."""

    def __init__(self, sock: socket.socket, timeout: Optional[float]):
        super().__init__(timeout, timeout)
        self.sock = sock

    def _recv(self, size: int) -> bytes:
        self.sock.settimeout(self.read_timeout)
        return self.sock.recv(size)

    def _send(self, data: bytes) -> None:
        self.sock.settimeout(self.write_timeout)
        self.sock.sendall(data)

    def close(self) -> None:
        self.sock.close()


class PipeStream(IpcStream):
    """
    Stream over an opened Windows named pipe.

    Synchronous pipe handles have no per-operation timeout, so the deadlines
    are recorded but not enforced; the daemon side bounds each exchange.
    """

    def __init__(self, handle, timeout: Optional[float]):
        super().__init__(timeout, timeout)
        self.handle = handle

    def _recv(self, size: int) -> bytes:
        return self.handle.read(size) or b""

    def _send(self, data: bytes) -> None:
        self.handle.write(data)
        self.handle.flush()

    def close(self) -> None:
        self.handle.close()


def pipe_name_for(address: str) -> str:
    """
    Map an address to a named-pipe path.

    Full pipe paths pass through unchanged; anything else becomes
    ``\\\\.\\pipe\\<basename>``.
    """
    if address.startswith(PIPE_PREFIX):
        return address
    name = Path(address).name or "tab-daemon"
    return f"{PIPE_PREFIX}{name}"


def connect(address: str, connect_timeout: Optional[float]) -> IpcStream:
    """
    Open the platform-appropriate channel to the daemon.

    Args:
        address: Socket path (POSIX) or pipe name (Windows)
        connect_timeout: Seconds to wait for the connection; also the initial
            read/write deadline

    Returns:
        A connected IpcStream

    Raises:
        DaemonNotRunning: If the socket path or pipe does not exist
        ConnectionTimeout: If the connect call timed out
        ConnectionFailed: If the connection was refused or otherwise failed
    """
    if os.name == "nt":
        return _connect_pipe(address, connect_timeout)
    return _connect_unix(address, connect_timeout)


def _connect_unix(socket_path: str, timeout: Optional[float]) -> IpcStream:
    # No socket file means no daemon
    if not os.path.exists(socket_path):
        raise DaemonNotRunning(f"socket not found at {socket_path}")

    af_unix = getattr(socket, "AF_UNIX", None)
    if af_unix is None:
        raise ConnectionFailed("AF_UNIX not supported on this platform")

    sock = socket.socket(af_unix, socket.SOCK_STREAM)
    try:
        sock.settimeout(timeout)
        sock.connect(socket_path)
    except socket.timeout as e:
        sock.close()
        raise ConnectionTimeout(f"connect to {socket_path} timed out") from e
    except OSError as e:
        sock.close()
        raise ConnectionFailed(str(e)) from e

    logger.debug("Connected to %s", socket_path)
    return SocketStream(sock, timeout)


def _connect_pipe(address: str, timeout: Optional[float]) -> IpcStream:
    pipe_name = pipe_name_for(address)
    try:
        handle = open(pipe_name, "r+b", buffering=0)
    except FileNotFoundError as e:
        raise DaemonNotRunning(f"pipe not found at {pipe_name}") from e
    except OSError as e:
        raise ConnectionFailed(str(e)) from e

    logger.debug("Opened pipe %s", pipe_name)
    return PipeStream(handle, timeout)
