"""Session and profile resolution.

A session names an isolated browser context on the daemon side; a profile
names the browser profile directory it runs with. Both are resolved once
per invocation:

    session: --session flag > TAB_SESSION > configured default
    profile: --profile flag > TAB_PROFILE > None (browser default profile)
"""

import os
import re
from dataclasses import dataclass
from typing import Mapping, Optional

from tabcli.config import ENV_PROFILE, ENV_SESSION_NAME, Config, env_value
from tabcli.errors import InvalidSession

MAX_SESSION_NAME_LENGTH = 64

_SESSION_NAME_RE = re.compile(r"[\w-]+")


@dataclass(frozen=True)
class Identity:
    """Who a command runs as: session id plus optional profile."""

    session_id: str
    profile: Optional[str] = None


def resolve_session(explicit: Optional[str], from_env: Optional[str], default: str) -> str:
    if explicit is not None:
        return explicit
    if from_env is not None:
        return from_env
    return default


def resolve_profile(explicit: Optional[str], from_env: Optional[str]) -> Optional[str]:
    if explicit is not None:
        return explicit
    return from_env


def validate_session_name(name: str) -> bool:
    """Session names are 1-64 characters of letters, digits, '-' and '_'."""
    if not name or len(name) > MAX_SESSION_NAME_LENGTH:
        return False
    return bool(_SESSION_NAME_RE.fullmatch(name))


def resolve_identity(
    config: Config,
    session: Optional[str] = None,
    profile: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Identity:
    """
    Resolve the session and profile for this invocation.

    Args:
        config: Loaded configuration (supplies the default session)
        session: Value of the --session flag, if given
        profile: Value of the --profile flag, if given
        environ: Environment mapping (defaults to os.environ)

    Raises:
        InvalidSession: If the resolved session name is not valid
    """
    environ = os.environ if environ is None else environ

    session_id = resolve_session(session, env_value(environ, ENV_SESSION_NAME), config.default_session)
    if not validate_session_name(session_id):
        raise InvalidSession(
            f"{session_id!r} (use 1-{MAX_SESSION_NAME_LENGTH} letters, digits, '-' or '_')"
        )

    return Identity(
        session_id=session_id,
        profile=resolve_profile(profile, env_value(environ, ENV_PROFILE)),
    )
