"""Command-line interface for the watcher."""

import asyncio
import contextlib
import sys
from typing import Any

import typer

from spook import __version__
from spook.app import run
from spook.config import (
    DEFAULT_EVENT_NAME,
    DEFAULT_EVENT_PORT,
    DEFAULT_NOTIFY_PERIOD_MS,
    PROG_NAME,
    load_settings,
)
from spook.errors import ConfigError, SpookError
from spook.logging import configure_logging

FILES_ARGUMENT = typer.Argument(..., help="Files or directories to be watched", show_default=False)
VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Inform about event triggers on std output")
INIT_OPTION = typer.Option(False, "--init", "-i", help="Preemptively trigger command/event immediately at launch")
PERIOD_OPTION = typer.Option(
    None,
    "--period",
    help=f"File watcher notification period in ms [default: {DEFAULT_NOTIFY_PERIOD_MS}]",
    show_default=False,
)
SIGNAL_OPTION = typer.Option(False, "--signal", "-s", help="Send server events")
PORT_OPTION = typer.Option(
    None,
    "--port",
    "-p",
    help=f"TCP port for event broadcast [default: {DEFAULT_EVENT_PORT}]",
    show_default=False,
)
NAME_OPTION = typer.Option(
    None,
    "--name",
    "-n",
    help=f"Server event name [default: {DEFAULT_EVENT_NAME}]",
    show_default=False,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"{PROG_NAME} {__version__}")
        raise typer.Exit()


VERSION_OPTION = typer.Option(
    None,
    "--version",
    "-V",
    callback=_version_callback,
    is_eager=True,
    help="Print version information and exit",
)

app = typer.Typer(
    help=(
        "Run a command and/or send server-sent events whenever watched files change.\n\n"
        "The command and its arguments follow a '--' separator."
    ),
    add_completion=False,
)


def split_command(argv: list[str]) -> tuple[list[str], list[str]]:
    """Split arguments at the first ``--`` into own arguments and command.

    Args:
        argv: Command-line arguments without the program name.

    Returns:
        Tuple of (own arguments, command and its arguments).
    """
    if "--" not in argv:
        return argv, []
    index = argv.index("--")
    return argv[:index], argv[index + 1 :]


def build_overrides(
    files: list[str],
    command: list[str],
    verbose: bool,
    init: bool,
    period: int | None,
    signal: bool,
    port: int | None,
    name: str | None,
) -> dict[str, Any]:
    """Collect explicitly given options as settings overrides.

    Options left at their defaults are omitted so that ``SPOOK_*``
    environment variables can still supply them.

    Returns:
        Keyword arguments for ``load_settings``.

    Raises:
        ConfigError: If --port or --name is given without --signal.
    """
    if not signal and (port is not None or name is not None):
        raise ConfigError("--port and --name require --signal")

    overrides: dict[str, Any] = {"watched_paths": files}
    if command:
        overrides["command"] = command
    if verbose:
        overrides["verbose"] = True
    if init:
        overrides["init"] = True
    if signal:
        overrides["signal"] = True
    if period is not None:
        overrides["notify_period_ms"] = period
    if port is not None:
        overrides["port"] = port
    if name is not None:
        overrides["event_name"] = name
    return overrides


@app.command()
def watch(
    ctx: typer.Context,
    files: list[str] = FILES_ARGUMENT,
    verbose: bool = VERBOSE_OPTION,
    init: bool = INIT_OPTION,
    period: int | None = PERIOD_OPTION,
    signal: bool = SIGNAL_OPTION,
    port: int | None = PORT_OPTION,
    name: str | None = NAME_OPTION,
    version: bool | None = VERSION_OPTION,
) -> None:
    """Watch FILES and react to every change."""
    command = list(ctx.obj or [])
    try:
        overrides = build_overrides(files, command, verbose, init, period, signal, port, name)
        settings = load_settings(**overrides)
        configure_logging(
            verbose=settings.verbose,
            debug=settings.debug,
            json_output=settings.json_logs,
        )
        with contextlib.suppress(KeyboardInterrupt):
            asyncio.run(run(settings))
    except SpookError as e:
        typer.echo(f"[{PROG_NAME}] {e}", err=True)
        raise typer.Exit(code=1) from e


def main(argv: list[str] | None = None) -> None:
    """Entry point for the ``spook`` script.

    Args:
        argv: Arguments without the program name; defaults to sys.argv.
    """
    args, command = split_command(sys.argv[1:] if argv is None else list(argv))
    app(args=args, obj=command, prog_name=PROG_NAME)
