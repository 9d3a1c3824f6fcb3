"""Main CLI entry point - one subcommand per daemon command."""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

import typer

from tabcli import commands
from tabcli.config import get_config
from tabcli.daemon.client import IpcClient
from tabcli.daemon.protocol import CommandResponse
from tabcli.daemon.supervisor import DaemonSupervisor
from tabcli.dispatcher import CommandDispatcher
from tabcli.errors import CommandFailed, DaemonNotRunning, InvalidArguments, IpcIOError, TabError
from tabcli.session import resolve_identity
from tabcli.ui.output import OutputFormat, OutputFormatter

logger = logging.getLogger(__name__)

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="tab - Control a real browser from the command line.",
)

tab_app = typer.Typer(no_args_is_help=True, help="Tab management commands.")
app.add_typer(tab_app, name="tab")


@dataclass
class GlobalOptions:
    session: Optional[str]
    profile: Optional[str]
    output: OutputFormat


# ============================================================================
# Shared setup - resolved once per invocation
# ============================================================================

@app.callback()
def main(
    ctx: typer.Context,
    session: Optional[str] = typer.Option(
        None, "--session", "-s", help="Session name (overrides TAB_SESSION)"
    ),
    profile: Optional[str] = typer.Option(
        None, "--profile", "-p", help="Browser profile directory (overrides TAB_PROFILE)"
    ),
    output: OutputFormat = typer.Option(
        OutputFormat.HUMAN, "--output", "-o", help="Output format: human, json, quiet"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log IPC activity to stderr"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    ctx.obj = GlobalOptions(session=session, profile=profile, output=output)


def _exit_with(formatter: OutputFormatter, error: TabError) -> None:
    formatter.print_error(str(error))
    raise typer.Exit(error.exit_code)


def _run(ctx: typer.Context, action: Callable[[CommandDispatcher], CommandResponse]) -> None:
    """
    Build the dispatcher, run one command and render its response.

    Exits with the taxonomy exit code on any failure.
    """
    options: GlobalOptions = ctx.obj
    formatter = OutputFormatter(options.output)

    try:
        try:
            config = get_config()
        except ValueError as e:
            raise InvalidArguments(f"configuration: {e}") from e

        identity = resolve_identity(config, options.session, options.profile)
        client = IpcClient.from_config(config)
        dispatcher = CommandDispatcher(
            client,
            identity,
            supervisor=DaemonSupervisor.from_config(config, client=client),
        )
        response = action(dispatcher)
    except TabError as e:
        logger.debug("Command aborted", exc_info=True)
        _exit_with(formatter, e)
    except OSError as e:
        _exit_with(formatter, IpcIOError(str(e)))

    if not response.success:
        formatter.error_console.print(formatter.format_error(response), markup=False, emoji=False)
        raise typer.Exit(CommandFailed.exit_code)

    formatter.print_response(response)


# ============================================================================
# Commands
# ============================================================================

@app.command()
def navigate(ctx: typer.Context, url: str = typer.Argument(..., help="URL to navigate to")) -> None:
    """Navigate the active tab to a URL."""
    _run(ctx, lambda d: commands.navigate(d, url))


@app.command()
def snapshot(ctx: typer.Context) -> None:
    """Take a snapshot of the current page."""
    _run(ctx, commands.snapshot)


@app.command()
def click(
    ctx: typer.Context,
    ref: str = typer.Argument(..., help="Element ref to click (from snapshot)"),
) -> None:
    """Click on an element."""
    _run(ctx, lambda d: commands.click(d, ref))


@app.command(name="type")
def type_(
    ctx: typer.Context,
    ref: str = typer.Argument(..., help="Element ref to type into (from snapshot)"),
    text: str = typer.Argument(..., help="Text to type"),
) -> None:
    """Type text into an element."""
    _run(ctx, lambda d: commands.type_text(d, ref, text))


@app.command()
def scroll(
    ctx: typer.Context,
    direction: str = typer.Argument(..., help="Direction to scroll: up, down, left, right"),
    ref: Optional[str] = typer.Option(None, "--ref", "-r", help="Element ref to scroll within"),
    amount: Optional[int] = typer.Option(None, "--amount", "-a", help="Amount to scroll in pixels"),
) -> None:
    """Scroll the page or an element."""
    _run(ctx, lambda d: commands.scroll(d, direction, ref, amount))


@app.command()
def back(ctx: typer.Context) -> None:
    """Go back in browser history."""
    _run(ctx, commands.back)


@app.command()
def forward(ctx: typer.Context) -> None:
    """Go forward in browser history."""
    _run(ctx, commands.forward)


@app.command(name="eval")
def eval_(
    ctx: typer.Context,
    script: str = typer.Argument(..., help="JavaScript code to evaluate"),
) -> None:
    """Evaluate JavaScript in the page."""
    _run(ctx, lambda d: commands.eval_script(d, script))


@app.command()
def ping(ctx: typer.Context) -> None:
    """Check if the daemon is running (never starts it)."""
    formatter = OutputFormatter(ctx.obj.output)
    try:
        config = get_config()
    except ValueError as e:
        _exit_with(formatter, InvalidArguments(f"configuration: {e}"))

    if not IpcClient.from_config(config).probe():
        _exit_with(formatter, DaemonNotRunning("Daemon is not responding"))

    if formatter.format is not OutputFormat.QUIET:
        formatter.console.print("Daemon is running", markup=False, emoji=False)


@tab_app.command("new")
def tab_new(
    ctx: typer.Context,
    url: Optional[str] = typer.Argument(None, help="URL to open in the new tab"),
) -> None:
    """Create a new tab."""
    _run(ctx, lambda d: commands.tab_new(d, url))


@tab_app.command("close")
def tab_close(ctx: typer.Context) -> None:
    """Close the active tab."""
    _run(ctx, commands.tab_close)


@tab_app.command("switch")
def tab_switch(
    ctx: typer.Context,
    tab_id: int = typer.Argument(..., help="Tab ID to switch to"),
) -> None:
    """Switch to a tab by ID."""
    _run(ctx, lambda d: commands.tab_switch(d, tab_id))


@tab_app.command("list")
def tab_list(ctx: typer.Context) -> None:
    """List all tabs."""
    _run(ctx, commands.tab_list)


def run() -> None:
    """Entry point for console script mapping."""
    app()


if __name__ == "__main__":
    run()
