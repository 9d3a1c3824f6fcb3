"""
Command implementations for the tab CLI.

Each function validates its arguments, builds the kind-specific params and
hands them to the dispatcher. Validation failures raise InvalidArguments
before any IPC happens.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from tabcli.daemon.protocol import CommandKind, CommandResponse
from tabcli.dispatcher import CommandDispatcher
from tabcli.errors import InvalidArguments, ProtocolError

SCROLL_DIRECTIONS = ("up", "down", "left", "right")


@dataclass
class SnapshotData:
    snapshot: str
    title: str
    url: str


@dataclass
class TabInfo:
    id: int
    url: str
    title: str
    active: bool = False


@dataclass
class TabListData:
    tabs: List[TabInfo] = field(default_factory=list)
    active_tab_id: Optional[int] = None


# ============================================================================
# Argument helpers
# ============================================================================

def validate_ref(element_ref: str) -> None:
    if not element_ref or not element_ref.strip():
        raise InvalidArguments("Element reference cannot be empty")


def validate_url(url: str) -> None:
    if not url or not url.strip():
        raise InvalidArguments("URL cannot be empty")

    lower = url.strip().lower()
    if lower.startswith("chrome://") or lower.startswith("about:"):
        raise InvalidArguments("Chrome internal URLs are not allowed")


def normalize_url(url: str) -> str:
    """Add https:// when the URL has no http(s) scheme."""
    trimmed = url.strip()
    if trimmed.startswith("http://") or trimmed.startswith("https://"):
        return trimmed
    return f"https://{trimmed}"


def parse_direction(direction: str) -> str:
    value = direction.strip().lower()
    if value not in SCROLL_DIRECTIONS:
        raise InvalidArguments(
            f"Invalid scroll direction: {direction}. Must be up, down, left, or right"
        )
    return value


# ============================================================================
# Commands
# ============================================================================

def navigate(dispatcher: CommandDispatcher, url: str) -> CommandResponse:
    """Navigate the active tab to a URL. Does not wait for page load."""
    validate_url(url)
    return dispatcher.dispatch(CommandKind.NAVIGATE, {"url": normalize_url(url)})


def snapshot(dispatcher: CommandDispatcher) -> CommandResponse:
    """Snapshot the current page as an accessibility tree with element refs."""
    return dispatcher.dispatch(CommandKind.SNAPSHOT)


def click(dispatcher: CommandDispatcher, element_ref: str) -> CommandResponse:
    validate_ref(element_ref)
    return dispatcher.dispatch(CommandKind.CLICK, {"ref": element_ref})


def type_text(dispatcher: CommandDispatcher, element_ref: str, text: str) -> CommandResponse:
    validate_ref(element_ref)
    return dispatcher.dispatch(CommandKind.TYPE, {"ref": element_ref, "text": text})


def scroll(
    dispatcher: CommandDispatcher,
    direction: str,
    element_ref: Optional[str] = None,
    amount: Optional[int] = None,
) -> CommandResponse:
    """Scroll the page, or the element identified by ``element_ref``."""
    params: Dict[str, Any] = {"direction": parse_direction(direction)}
    if element_ref is not None:
        validate_ref(element_ref)
        params["ref"] = element_ref
    if amount is not None:
        params["amount"] = amount
    return dispatcher.dispatch(CommandKind.SCROLL, params)


def tab_new(dispatcher: CommandDispatcher, url: Optional[str] = None) -> CommandResponse:
    params: Dict[str, Any] = {}
    if url is not None:
        validate_url(url)
        params["url"] = normalize_url(url)
    return dispatcher.dispatch(CommandKind.TAB_NEW, params)


def tab_close(dispatcher: CommandDispatcher) -> CommandResponse:
    return dispatcher.dispatch(CommandKind.TAB_CLOSE)


def tab_switch(dispatcher: CommandDispatcher, tab_id: int) -> CommandResponse:
    return dispatcher.dispatch(CommandKind.TAB_SWITCH, {"tabId": tab_id})


def tab_list(dispatcher: CommandDispatcher) -> CommandResponse:
    return dispatcher.dispatch(CommandKind.TAB_LIST)


def back(dispatcher: CommandDispatcher) -> CommandResponse:
    return dispatcher.dispatch(CommandKind.BACK)


def forward(dispatcher: CommandDispatcher) -> CommandResponse:
    return dispatcher.dispatch(CommandKind.FORWARD)


def eval_script(dispatcher: CommandDispatcher, script: str) -> CommandResponse:
    """Evaluate JavaScript in the active tab."""
    if not script or not script.strip():
        raise InvalidArguments("Script cannot be empty")
    return dispatcher.dispatch(CommandKind.EVAL, {"script": script})


# ============================================================================
# Response data
# ============================================================================

def parse_snapshot(response: CommandResponse) -> SnapshotData:
    data = response.data
    if not isinstance(data, dict):
        raise ProtocolError("No data in snapshot response")
    try:
        return SnapshotData(
            snapshot=str(data["snapshot"]),
            title=str(data["title"]),
            url=str(data["url"]),
        )
    except KeyError as e:
        raise ProtocolError(f"Snapshot response missing {e}") from e


def parse_tab_list(response: CommandResponse) -> TabListData:
    """
    Parse tab list data. The daemon sends ``activeTabId``; older builds
    sent ``active_tab_id``, so both are accepted.
    """
    data = response.data
    if not isinstance(data, dict):
        raise ProtocolError("No data in tab list response")

    raw_tabs = data.get("tabs")
    if not isinstance(raw_tabs, list):
        raise ProtocolError("Tab list response missing 'tabs'")

    try:
        tabs = [
            TabInfo(
                id=int(tab["id"]),
                url=str(tab.get("url", "")),
                title=str(tab.get("title", "")),
                active=bool(tab.get("active", False)),
            )
            for tab in raw_tabs
        ]
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise ProtocolError(f"Invalid tab entry in tab list response: {e}") from e

    active_tab_id = data.get("activeTabId", data.get("active_tab_id"))
    return TabListData(
        tabs=tabs,
        active_tab_id=int(active_tab_id) if isinstance(active_tab_id, int) else None,
    )
