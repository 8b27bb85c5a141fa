"""Typer application and CLI entry point for riddlenet.

This module wires the top-level Typer application and registers the built-in
sub-command groups (``riddles``, ``players``, ``cache``) plus the ``health``
command.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers and invokes the Typer app.
:class:`~riddlenet.exceptions.RiddlenetError` exits with the error's exit
code; any other exception is written to a crash log under the data
directory.

See Also:
    :mod:`riddlenet.config`: Settings resolution behind ``--base-url`` and
    friends.
    :mod:`riddlenet.output`: Output formatting initialised in
    :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from riddlenet import __version__
from riddlenet.commands import open_api
from riddlenet.commands.cache import cache_app
from riddlenet.commands.players import players_app
from riddlenet.commands.riddles import riddles_app
from riddlenet.exit_codes import EXIT_CONNECTION_ERROR, EXIT_GENERIC_FAILURE
from riddlenet.output import format_response

app = typer.Typer(
    name="riddlenet",
    help="Resilient client for the riddles game server.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.add_typer(riddles_app, name="riddles", help="Browse, author and answer riddles.")
app.add_typer(players_app, name="players", help="Players, scores and the leaderboard.")
app.add_typer(cache_app, name="cache", help="Local response cache.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"riddlenet {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    base_url: Optional[str] = typer.Option(
        None, "--base-url", help="Server base URL (overrides env and config file)."
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Per-attempt timeout in seconds."
    ),
    max_retries: Optional[int] = typer.Option(
        None, "--max-retries", help="Retries after the first attempt."
    ),
    no_cache: bool = typer.Option(
        False, "--no-cache", help="Keep responses in memory only."
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show retries and cache decisions."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Installs the global :class:`~riddlenet.output.OutputManager` from the
    output flags and stores the connection overrides in ``ctx.obj`` for
    :func:`~riddlenet.commands.open_api`.
    """
    from riddlenet.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))

    ctx.ensure_object(dict)
    ctx.obj["base_url"] = base_url
    ctx.obj["timeout"] = timeout
    ctx.obj["max_retries"] = max_retries
    ctx.obj["no_cache"] = no_cache
    ctx.obj["verbose"] = verbose


@app.command("health")
def health(ctx: typer.Context) -> None:
    """Probe the server's health endpoint. Exits 6 when it is unreachable."""
    with open_api(ctx) as api:
        available = api.is_server_available()
        url = api.settings.health_url
    format_response({"url": url, "available": available})
    if not available:
        raise typer.Exit(code=EXIT_CONNECTION_ERROR)


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write the current traceback to a timestamped file and return its path."""
    from riddlenet.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(f"{type(exc).__name__}: {exc}\n\n{traceback.format_exc()}")
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``riddlenet`` console script.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from riddlenet.exceptions import RiddlenetError
        from riddlenet.output import error

        if isinstance(exc, RiddlenetError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
