"""Configuration management for the tab CLI.

Settings are layered, lowest precedence first:
1. Built-in defaults
2. ~/.config/tab/config.cfg ([DEFAULT] section), or ~/.config/tab/.env
   when no config.cfg exists
3. TAB_SOCKET_PATH environment variable

TAB_SESSION and TAB_PROFILE are resolved separately in tabcli.session,
since they rank below the --session/--profile flags.

The result is resolved once per invocation into a Config value that is
passed explicitly to the IPC layer; nothing below the CLI reads the
environment.
"""

import configparser
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional

from dotenv import dotenv_values

CONFIG_DIR = Path.home() / ".config" / "tab"
CONFIG_PATH = CONFIG_DIR / "config.cfg"
ENV_PATH = CONFIG_DIR / ".env"

if os.name == "nt":
    DEFAULT_SOCKET_PATH = "\\\\.\\pipe\\tab-daemon"
else:
    DEFAULT_SOCKET_PATH = "/tmp/tab-daemon.sock"

DEFAULT_SESSION_NAME = "default"

ENV_SOCKET_PATH = "TAB_SOCKET_PATH"
ENV_SESSION_NAME = "TAB_SESSION"
ENV_PROFILE = "TAB_PROFILE"


@dataclass
class Config:
    socket_path: str = DEFAULT_SOCKET_PATH
    default_session: str = DEFAULT_SESSION_NAME
    connection_timeout_ms: int = 5000
    command_timeout_ms: int = 30000
    startup_timeout_ms: int = 10000
    poll_interval_ms: int = 100
    daemon_path: Optional[str] = None

    @property
    def connection_timeout(self) -> float:
        return self.connection_timeout_ms / 1000

    @property
    def command_timeout(self) -> float:
        return self.command_timeout_ms / 1000

    @property
    def startup_timeout(self) -> float:
        return self.startup_timeout_ms / 1000

    @property
    def poll_interval(self) -> float:
        return self.poll_interval_ms / 1000


def load_raw_config(path: Path = CONFIG_PATH, env_path: Path = ENV_PATH) -> Dict[str, str]:
    """
    Load configuration values from config.cfg, falling back to a .env file.
    Values are returned with lowercase keys for convenience.
    """
    data: Dict[str, str] = {}

    if path.exists():
        cfg = configparser.ConfigParser()
        cfg.read(path)
        data.update({k.lower(): v for k, v in cfg["DEFAULT"].items()})
    elif env_path.exists():
        data.update({k.lower(): v for k, v in dotenv_values(env_path).items() if v is not None})

    return data


def _get_ms(raw: Mapping[str, str], key: str, default: int) -> int:
    value = raw.get(key)
    if value is None or str(value).strip() == "":
        return default
    try:
        ms = int(float(value))
    except ValueError:
        raise ValueError(f"Invalid value for '{key}': {value!r} (expected milliseconds)")
    if ms <= 0:
        raise ValueError(f"Invalid value for '{key}': {value!r} (must be positive)")
    return ms


def env_value(environ: Mapping[str, str], key: str) -> Optional[str]:
    """Return an environment value, treating empty strings as unset."""
    value = environ.get(key)
    if value is None or value.strip() == "":
        return None
    return value


def get_config(
    raw: Optional[Dict[str, str]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Config:
    """
    Build a Config from raw file values and the environment.
    Raises ValueError if a numeric setting is malformed.
    """
    raw = load_raw_config() if raw is None else raw
    environ = os.environ if environ is None else environ

    config = Config(
        socket_path=raw.get("socket_path", "").strip() or DEFAULT_SOCKET_PATH,
        default_session=raw.get("default_session", "").strip() or DEFAULT_SESSION_NAME,
        connection_timeout_ms=_get_ms(raw, "connection_timeout_ms", 5000),
        command_timeout_ms=_get_ms(raw, "command_timeout_ms", 30000),
        startup_timeout_ms=_get_ms(raw, "startup_timeout_ms", 10000),
        poll_interval_ms=_get_ms(raw, "poll_interval_ms", 100),
        daemon_path=raw.get("daemon_path", "").strip() or None,
    )

    socket_override = env_value(environ, ENV_SOCKET_PATH)
    if socket_override:
        config.socket_path = socket_override

    return config
