"""Daemon lifecycle: make sure browser-daemon is reachable before a command.

Per invocation the supervisor moves through

    UNKNOWN -> PROBING -> ALIVE
                       -> STARTING -> ALIVE | FAILED

and nothing is persisted between invocations. Concurrent CLI invocations
may both decide to spawn; the daemon tolerates that (a second instance
fails to bind) so there is no spawn lock here.
"""

import logging
import os
import shutil
import subprocess
import sys
import time
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from tabcli.daemon.client import IpcClient
from tabcli.errors import DaemonNotRunning

logger = logging.getLogger(__name__)

DAEMON_BINARY_NAME = "browser-daemon"

# Windows process creation flags
DETACHED_PROCESS = 0x00000008
CREATE_NEW_PROCESS_GROUP = 0x00000200

Spawner = Callable[[str, Sequence[str]], None]


class SupervisorState(str, Enum):
    UNKNOWN = "unknown"
    PROBING = "probing"
    STARTING = "starting"
    ALIVE = "alive"
    FAILED = "failed"


def daemon_binary_name() -> str:
    if os.name == "nt":
        return f"{DAEMON_BINARY_NAME}.exe"
    return DAEMON_BINARY_NAME


def find_daemon_executable(configured: Optional[str] = None) -> Optional[str]:
    """
    Locate the daemon executable.

    Search order: an explicitly configured path, the directory holding the
    running CLI, then PATH.
    """
    if configured:
        path = Path(configured).expanduser()
        if path.is_file():
            return str(path)
        logger.warning("Configured daemon_path %s does not exist; searching elsewhere", path)

    name = daemon_binary_name()
    if sys.argv and sys.argv[0]:
        sibling = Path(sys.argv[0]).resolve().parent / name
        if sibling.is_file() and os.access(sibling, os.X_OK):
            return str(sibling)

    return shutil.which(name)


def _spawn_detached_posix(path: str, args: Sequence[str]) -> None:
    # New session: no controlling terminal, survives the CLI exiting
    subprocess.Popen(
        [path, *args],
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        close_fds=True,
        start_new_session=True,
    )


def _spawn_detached_windows(path: str, args: Sequence[str]) -> None:
    subprocess.Popen(
        [path, *args],
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        close_fds=True,
        creationflags=DETACHED_PROCESS | CREATE_NEW_PROCESS_GROUP,
    )


def spawn_detached(path: str, args: Sequence[str]) -> None:
    """Start ``path`` as a background process detached from this one."""
    if os.name == "nt":
        _spawn_detached_windows(path, args)
    else:
        _spawn_detached_posix(path, args)


class DaemonSupervisor:
    """
    Guarantees a reachable daemon before the first command of an invocation.

    The spawner and the clock are injectable so tests can count spawns and
    exercise the startup deadline without a real daemon binary.
    """

    def __init__(
        self,
        client: IpcClient,
        startup_timeout: float = 10.0,
        poll_interval: float = 0.1,
        daemon_path: Optional[str] = None,
        spawner: Spawner = spawn_detached,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.startup_timeout = startup_timeout
        self.poll_interval = poll_interval
        self.daemon_path = daemon_path
        self.spawner = spawner
        self._sleep = sleep
        self._clock = clock
        self.state = SupervisorState.UNKNOWN

    @classmethod
    def from_config(cls, config, client: Optional[IpcClient] = None, **kwargs) -> "DaemonSupervisor":
        return cls(
            client=client or IpcClient.from_config(config),
            startup_timeout=config.startup_timeout,
            poll_interval=config.poll_interval,
            daemon_path=config.daemon_path,
            **kwargs,
        )

    def ensure(self) -> None:
        """
        Make sure a daemon answers ping, starting one if necessary.

        Raises:
            DaemonNotRunning: If the executable cannot be found or spawned,
                or the daemon does not answer within the startup timeout
        """
        self.state = SupervisorState.PROBING
        if self.client.probe():
            self.state = SupervisorState.ALIVE
            return

        self.state = SupervisorState.STARTING
        try:
            self._start()
            self._wait_until_ready()
        except DaemonNotRunning:
            self.state = SupervisorState.FAILED
            raise
        self.state = SupervisorState.ALIVE

    def _start(self) -> None:
        executable = find_daemon_executable(self.daemon_path)
        if executable is None:
            raise DaemonNotRunning(
                f"daemon executable '{daemon_binary_name()}' not found next to the CLI or on PATH"
            )

        args: List[str] = ["--socket", self.client.address]
        logger.info("Starting daemon: %s %s", executable, " ".join(args))
        try:
            self.spawner(executable, args)
        except OSError as e:
            raise DaemonNotRunning(f"failed to start daemon: {e}") from e

    def _wait_until_ready(self) -> None:
        deadline = self._clock() + self.startup_timeout

        while True:
            # A probe must not outlive the startup deadline
            probe_timeout = max(min(self.client.connect_timeout, deadline - self._clock()), 0.05)
            # Another invocation's daemon is as good as ours
            if self.client.probe(probe_timeout):
                logger.debug("Daemon is ready at %s", self.client.address)
                return

            remaining = deadline - self._clock()
            if remaining <= 0:
                raise DaemonNotRunning("daemon failed to start within timeout")

            self._sleep(min(self.poll_interval, remaining))
