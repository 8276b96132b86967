"""The ``respcache`` command line.

``respcache get`` fetches a URL through the response cache, ``respcache
cache`` inspects and maintains the store, and ``respcache config`` edits
the global settings. Global flags pick the output format and verbosity;
``-v`` also turns on the cache event trail.

:func:`main` is the console-script entry point. A
:class:`~respcache.exceptions.RespcacheError` ends the process with its
own exit code; anything else leaves a crash report under
``<data_dir>/logs``.
"""

from __future__ import annotations

import sys
import traceback
from datetime import datetime
from pathlib import Path

import typer

from respcache import __version__
from respcache.exit_codes import EXIT_GENERIC_FAILURE

EXIT_INTERRUPTED = 130

app = typer.Typer(
    name="respcache",
    help="Fetch HTTP resources through a persistent response cache.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def _show_version(value: bool) -> None:
    if value:
        typer.echo(f"respcache {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", callback=_show_version, is_eager=True, help="Show version and exit."
    ),
    json_output: bool = typer.Option(False, "--json", help="Print bodies and listings as JSON."),
    plain_output: bool = typer.Option(False, "--plain", help="Print tab-separated plain text."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colour."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Only print data, warnings and errors."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Trace every cache decision on stderr."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Do not ask before clearing or resetting."
    ),
) -> None:
    """Install the output manager for this invocation and share ``--force``."""
    from respcache.output import OutputFormat, OutputManager, set_output

    if json_output and plain_output:
        raise typer.BadParameter("--json and --plain are mutually exclusive")
    fmt = {
        (True, False): OutputFormat.JSON,
        (False, True): OutputFormat.PLAIN,
    }.get((json_output, plain_output), OutputFormat.AUTO)

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))
    ctx.obj = {"force": force, "verbose": verbose}


def _crash_report(exc: BaseException) -> Path:
    """Write the traceback of *exc* to a timestamped file and return its path."""
    from respcache.config import get_data_dir

    path = get_data_dir() / "logs" / f"crash-{datetime.now():%Y%m%d-%H%M%S}.log"
    path.parent.mkdir(parents=True, exist_ok=True)
    header = f"respcache {__version__}\nargv: {' '.join(sys.argv)}\n\n"
    path.write_text(header + "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    return path


def register_commands() -> None:
    """Attach ``get``, ``cache`` and ``config`` to :data:`app` (idempotent)."""
    if getattr(app, "_respcache_registered", False):
        return

    from respcache.commands.cache import cache_app
    from respcache.commands.config import config_app
    from respcache.commands.get import get_command

    app.command("get")(get_command)
    app.add_typer(cache_app, name="cache", help="Inspect and maintain the response store.")
    app.add_typer(config_app, name="config", help="Show and edit global settings.")
    app._respcache_registered = True  # type: ignore[attr-defined]


def main() -> None:
    """Console-script entry point; always ends in :class:`SystemExit`."""
    from respcache.exceptions import RespcacheError
    from respcache.output import error

    register_commands()
    try:
        app()
    except KeyboardInterrupt:
        error("Cancelled.")
        sys.exit(EXIT_INTERRUPTED)
    except RespcacheError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception as exc:
        error(f"Unexpected error. Crash report: {_crash_report(exc)}")
        sys.exit(EXIT_GENERIC_FAILURE)
