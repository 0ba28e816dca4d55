"""Typer application and CLI entry point for the ``cda`` tool.

This module builds the root Typer application, registers the fetch, sync
and profile commands, and stores the global connection options in the
Typer context, where :func:`~cdaclient.commands.common.create_client`
reads them.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``.  Errors from the client are mapped to their exit codes;
anything else is written to a crash log under the data directory.

See Also:
    :mod:`cdaclient.config`: Profile and precedence resolution.
    :mod:`cdaclient.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from cdaclient import __version__
from cdaclient.exit_codes import EXIT_GENERIC_FAILURE
from cdaclient.models import LogLevel


app = typer.Typer(
    name="cda",
    help="Read spaces, entries and assets from the Content Delivery API.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"cda {__version__}")
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
    profile: Optional[str] = typer.Option(
        None, "--profile", "-p", help="Profile name to use."
    ),
    space: Optional[str] = typer.Option(
        None, "--space", "-s", help="Space id (overrides profile and $CDA_SPACE_ID)."
    ),
    token: Optional[str] = typer.Option(
        None, "--token", help="Access token (overrides profile and $CDA_ACCESS_TOKEN)."
    ),
    endpoint: Optional[str] = typer.Option(
        None, "--endpoint", help="Custom API endpoint."
    ),
    preview: Optional[bool] = typer.Option(
        None, "--preview/--no-preview", help="Use the preview endpoint."
    ),
    log_level: Optional[LogLevel] = typer.Option(
        None, "--log-level", case_sensitive=False, help="HTTP log level."
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
        False, "--verbose", "-v", help="Enable debug output."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~cdaclient.output.OutputManager` from
    the output flags and stores the connection options in ``ctx.obj``.
    """
    from cdaclient.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))

    ctx.ensure_object(dict)
    ctx.obj["profile"] = profile
    ctx.obj["space"] = space
    ctx.obj["token"] = token
    ctx.obj["endpoint"] = endpoint
    ctx.obj["preview"] = preview
    ctx.obj["log_level"] = log_level
    ctx.obj["verbose"] = verbose


# ------------------------------------------------------------------ #
# Commands
# ------------------------------------------------------------------ #

from cdaclient.commands.fetch import (  # noqa: E402
    asset_command,
    assets_command,
    content_type_command,
    content_types_command,
    entries_command,
    entry_command,
    space_command,
)
from cdaclient.commands.profile import profile_app  # noqa: E402
from cdaclient.commands.sync import sync_command  # noqa: E402

app.command("space")(space_command)
app.command("content-types")(content_types_command)
app.command("content-type")(content_type_command)
app.command("entries")(entries_command)
app.command("entry")(entry_command)
app.command("assets")(assets_command)
app.command("asset")(asset_command)
app.command("sync")(sync_command)
app.add_typer(profile_app, name="profile", help="Manage saved space profiles.")


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from cdaclient.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``cda`` console script.

    A :class:`~cdaclient.exceptions.CDAError` escaping a command exits with
    the error's ``exit_code``.  Any other exception produces a crash log and
    a generic failure exit.

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
        from cdaclient.exceptions import CDAError
        from cdaclient.output import error

        if isinstance(exc, CDAError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
