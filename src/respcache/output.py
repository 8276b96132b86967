"""Terminal output for the respcache CLI and the cache's debug trail.

stdout carries data only: response bodies, cache listings, config dumps.
Everything a human reads about *how* a response was obtained goes to
stderr: the status line with its provenance (``network``, ``cached``,
``stale``), the stale-data warning, and the adapter's cache events when
``--verbose`` is on. Colour follows ``NO_COLOR``, ``TERM=dumb`` and
``--no-color``.

:class:`OutputManager` is created once per invocation by
:func:`~respcache.app.main_callback` and installed with
:func:`set_output`; library code reaches it through :func:`get_output`
or the module-level shortcuts.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.table import Table
from rich.text import Text


class OutputFormat(str, Enum):
    """Body formats. ``AUTO`` picks ``RICH`` on a colour TTY, else ``PLAIN``."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


# Style of each provenance label in the status line.
PROVENANCE_STYLES = {
    "network": "cyan",
    "cached": "green",
    "cached, expired": "yellow",
    "stale": "bold yellow",
}

STALE_WARNING = "Live request failed; showing stale cached data."


class OutputManager:
    """Holds the format, colour and verbosity of one CLI invocation.

    Args:
        format: Body format; ``AUTO`` resolves from TTY detection.
        no_color: Disable colour and markup.
        quiet: Drop informational stderr lines (warnings and errors stay).
        verbose: Show cache events and other debug lines.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose
        if format == OutputFormat.AUTO:
            rich_ok = _is_tty() and not self._no_color
            format = OutputFormat.RICH if rich_ok else OutputFormat.PLAIN
        self._format = format

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=format == OutputFormat.RICH,
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    # --- stdout ---

    def print_body(self, data: Any) -> None:
        """Write a decoded body (dict, list or text) to stdout."""
        if isinstance(data, str) and self._format != OutputFormat.PLAIN:
            try:
                data = json.loads(data)
            except ValueError:
                pass

        if not isinstance(data, (dict, list)):
            self.print_data(str(data))
        elif self._format == OutputFormat.JSON:
            self.print_data(json.dumps(data, indent=2, ensure_ascii=False, default=str))
        elif self._format == OutputFormat.RICH:
            self._stdout.print_json(data=data, default=str)
        else:
            for line in _plain_lines(data):
                self.print_data(line)

    def print_data(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Print rows as JSON records, tab-separated lines, or a Rich table."""
        if self._format == OutputFormat.JSON:
            records = [dict(zip(headers, row)) for row in rows]
            self.print_data(json.dumps(records, indent=2, ensure_ascii=False))
            return
        if self._format == OutputFormat.PLAIN:
            for row in [headers, *rows]:
                self.print_data("\t".join(row))
            return

        table = Table(title=title, header_style="bold cyan")
        for header in headers:
            table.add_column(header)
        for row in rows:
            table.add_row(*(_styled(cell) for cell in row))
        self._stdout.print(table)

    # --- stderr ---

    def provenance(self, status_code: int, reason: str, source: str) -> None:
        """Print ``HTTP <code> <reason> (<source>)``; warn when *source* is stale."""
        line = f"HTTP {status_code} {reason}".rstrip()
        if self._no_color:
            self.info(f"{line} ({source})")
        elif not self._quiet:
            style = PROVENANCE_STYLES.get(source, "white")
            self._stderr.print(Text.assemble(f"{line} (", (source, style), ")"))
        if source == "stale":
            self.warning(STALE_WARNING)

    def cache_event(self, event: str, *details: Any, always: bool = False) -> None:
        """Report one cache decision (``cache-hit``, ``evicting``, ...).

        Shown only with ``--verbose`` unless *always* is set, which is how
        ``debug=True`` on the adapter forces the trail on.
        """
        if not (always or self._verbose):
            return
        text = " ".join(str(detail) for detail in details)
        if self._no_color:
            print(f"[cache] {event} {text}".rstrip(), file=sys.stderr, flush=True)
        else:
            self._stderr.print(
                Text.assemble(("[cache] ", "dim"), (event, "magenta"), f" {text}".rstrip())
            )

    def info(self, message: str) -> None:
        if not self._quiet:
            self._emit(message)

    def success(self, message: str) -> None:
        if not self._quiet:
            self._emit(message, style="green")

    def warning(self, message: str) -> None:
        self._emit(message, label="Warning:", style="yellow")

    def error(self, message: str) -> None:
        self._emit(message, label="Error:", style="bold red")

    def debug(self, message: str) -> None:
        if self._verbose:
            self._emit(message, label="[debug]", style="dim")

    def _emit(self, message: str, label: str = "", style: str = "") -> None:
        if self._no_color:
            print(f"{label} {message}".lstrip(), file=sys.stderr, flush=True)
            return
        if label:
            self._stderr.print(Text.assemble((label, style), " ", message))
        else:
            self._stderr.print(Text(message, style=style))


def _plain_lines(data: Any) -> list[str]:
    if isinstance(data, dict):
        return [f"{key}\t{value}" for key, value in data.items()]
    return [
        "\t".join(str(v) for v in item.values()) if isinstance(item, dict) else str(item)
        for item in data
    ]


def _styled(cell: str) -> Text:
    style = {"fresh": "green", "stale": "yellow", "unreadable": "red"}.get(cell)
    return Text(cell, style=style or "")


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """``NO_COLOR`` (any value, even empty) or ``TERM=dumb`` turns colour off."""
    if os.environ.get("NO_COLOR") is not None:
        return True
    return os.environ.get("TERM") == "dumb"


_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed :class:`OutputManager`, creating a default one."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    global _output
    _output = None


def print_body(data: Any) -> None:
    get_output().print_body(data)


def print_table(headers: list[str], rows: list[list[str]], title: Optional[str] = None) -> None:
    get_output().print_table(headers, rows, title)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)
