"""
Output rendering for command responses.

Three formats:
    human - readable text (snapshot tree, tab list, key: value pairs)
    json  - machine-readable JSON for scripting
    quiet - nothing on success, bare error message on failure

Success output goes to stdout, everything else to stderr.
"""

import json
import logging
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape

from tabcli.commands import SnapshotData, TabListData, parse_snapshot, parse_tab_list
from tabcli.daemon.protocol import CommandResponse
from tabcli.errors import ProtocolError

logger = logging.getLogger(__name__)


class OutputFormat(str, Enum):
    HUMAN = "human"
    JSON = "json"
    QUIET = "quiet"


def format_snapshot(data: SnapshotData) -> str:
    return f"Title: {data.title}\nURL: {data.url.rstrip('/')}\n\n{data.snapshot}"


def format_tab_list(data: TabListData) -> str:
    lines = ["Open tabs:"]
    for tab in data.tabs:
        marker = "* " if tab.active or tab.id == data.active_tab_id else "  "
        lines.append(f"{marker}[{tab.id}] {tab.title} {tab.url}")
    return "\n".join(lines)


def _display_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def format_human_data(data: Any) -> str:
    """Render a success payload as plain text."""
    if data is None:
        return "Success"

    if isinstance(data, dict):
        if {"snapshot", "title", "url"} <= data.keys():
            return format_snapshot(parse_snapshot(CommandResponse(id="", success=True, data=data)))
        if "tabs" in data:
            try:
                return format_tab_list(parse_tab_list(CommandResponse(id="", success=True, data=data)))
            except ProtocolError as e:
                logger.debug("Printing tab data as plain fields: %s", e)
        if data == {"executed": True}:
            return "Success"
        return "\n".join(f"{key}: {_display_value(value)}" for key, value in data.items())

    return _display_value(data)


class OutputFormatter:
    """Formats command responses for display."""

    def __init__(
        self,
        output_format: OutputFormat = OutputFormat.HUMAN,
        console: Optional[Console] = None,
        error_console: Optional[Console] = None,
    ):
        self.format = OutputFormat(output_format)
        self.console = console or Console(highlight=False, soft_wrap=True, emoji=False)
        self.error_console = error_console or Console(stderr=True, highlight=False, soft_wrap=True, emoji=False)

    def format_success(self, response: CommandResponse) -> str:
        if self.format is OutputFormat.JSON:
            return json.dumps(response.data if response.data is not None else {}, indent=2, ensure_ascii=False)
        if self.format is OutputFormat.QUIET:
            return ""
        return format_human_data(response.data)

    def format_error(self, response: CommandResponse) -> str:
        message = response.error or "Unknown error"
        if self.format is OutputFormat.JSON:
            return json.dumps(response.to_payload(), separators=(",", ":"), ensure_ascii=False)
        if self.format is OutputFormat.QUIET:
            return message
        return f"Error: {message}"

    def print_response(self, response: CommandResponse) -> None:
        """Print a success response to stdout; failures are left to the caller."""
        if not response.success:
            return
        output = self.format_success(response)
        if output:
            self.console.print(output, markup=False, emoji=False)

    def print_error(self, message: str) -> None:
        if self.format is OutputFormat.HUMAN:
            self.error_console.print(f"[bold red]Error:[/bold red] {escape(message)}", emoji=False)
        else:
            self.error_console.print(message, markup=False, emoji=False)
