"""The ``cachegate`` command line.

The root callback turns the global flags into an
:class:`~cachegate.output.OutputManager` and a ``ctx.obj`` dict that the
sub-commands read through :func:`cachegate.commands.ctx_option`.
:func:`main` is the console-script entry point.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import typer

from cachegate import __version__
from cachegate.commands.cache import cache_app
from cachegate.commands.config import config_app
from cachegate.commands.fetch import fetch_command
from cachegate.commands.queue import queue_app
from cachegate.commands.sync import sync_command
from cachegate.exceptions import CachegateError
from cachegate.exit_codes import EXIT_GENERIC_FAILURE
from cachegate.output import OutputFormat, OutputManager, error, set_output

EXIT_INTERRUPTED = 130

app = typer.Typer(
    name="cachegate",
    help="Offline-first request interception: cache strategies and deferred write sync.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.command("fetch")(fetch_command)
app.command("sync")(sync_command)
app.add_typer(queue_app, name="queue", help="Inspect and edit the pending-write queues.")
app.add_typer(cache_app, name="cache", help="Inspect, seed and activate cache namespaces.")
app.add_typer(config_app, name="config", help="Show and change saved settings.")


def _show_version(value: bool) -> None:
    if value:
        typer.echo(f"cachegate {__version__}")
        raise typer.Exit()


def _select_format(json_output: bool, plain_output: bool) -> OutputFormat:
    if json_output:
        return OutputFormat.JSON
    if plain_output:
        return OutputFormat.PLAIN
    return OutputFormat.AUTO


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", callback=_show_version, is_eager=True, help="Show version and exit."
    ),
    origin: Optional[str] = typer.Option(
        None, "--origin", help="Origin the intercepted application is served from."
    ),
    generation: Optional[str] = typer.Option(
        None, "--generation", help="Cache generation tag, e.g. v2."
    ),
    json_output: bool = typer.Option(False, "--json", help="Print data as JSON."),
    plain_output: bool = typer.Option(False, "--plain", help="Print data as plain text."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colour."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only print data, warnings and errors."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug messages and logs."),
    force: bool = typer.Option(False, "--force", "-f", help="Do not ask for confirmation."),
) -> None:
    manager = OutputManager(
        format=_select_format(json_output, plain_output),
        no_color=no_color,
        quiet=quiet,
        verbose=verbose,
    )
    set_output(manager)
    manager.install_log_handler()

    ctx.obj = {
        "origin": origin,
        "generation": generation,
        "force": force,
        "verbose": verbose,
    }


def _interrupted(*_: Any) -> None:
    sys.stderr.write("\nCancelled.\n")
    sys.exit(EXIT_INTERRUPTED)


def _write_crash_log() -> Path:
    from cachegate.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_path = logs_dir / f"crash-{datetime.now():%Y%m%d-%H%M%S}.log"
    log_path.write_text(traceback.format_exc(), encoding="utf-8")
    return log_path


def main() -> None:
    """Run the CLI.

    A :class:`~cachegate.exceptions.CachegateError` that escapes a command
    is printed and mapped to its exit code. Anything else is written to a
    crash log under the data directory and exits with the generic failure
    code.
    """
    signal.signal(signal.SIGINT, _interrupted)
    try:
        app()
    except KeyboardInterrupt:
        _interrupted()
    except CachegateError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception:
        error(f"Unexpected error. Debug log: {_write_crash_log()}")
        sys.exit(EXIT_GENERIC_FAILURE)
