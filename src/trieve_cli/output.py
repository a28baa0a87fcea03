"""Terminal output for trieve_cli.

Data (profile listings, identity records) is written to **stdout** so it can
be piped; everything addressed to the person at the keyboard (progress,
warnings, errors, the login URL when no browser opens) goes to **stderr**.
This follows `clig.dev <https://clig.dev/>`_.

Three renderings are available for data:

* ``rich`` -- box-drawn tables, chosen automatically on a colour terminal;
* ``plain`` -- tab-separated lines, chosen automatically when piped;
* ``json`` -- selected with ``--json``.

Colour is disabled by ``--no-color``, ``NO_COLOR`` (any value) or
``TERM=dumb``.

:func:`~trieve_cli.app.main_callback` installs one :class:`OutputManager`
per invocation with :func:`set_output`; library code calls the module-level
helpers (:func:`info`, :func:`warning`, ...) instead of holding a manager.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, NamedTuple, Optional, Sequence

from rich.console import Console
from rich.table import Table
from rich.text import Text


class OutputFormat(str, Enum):
    """How data is rendered. ``AUTO`` picks ``RICH`` or ``PLAIN``."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class _Level(NamedTuple):
    prefix: str
    style: str
    hidden_when_quiet: bool


_LEVELS: dict[str, _Level] = {
    "info": _Level("", "", True),
    "success": _Level("", "green", True),
    "suggest": _Level("→ ", "dim", True),
    "warning": _Level("Warning: ", "yellow", False),
    "error": _Level("Error: ", "bold red", False),
    "debug": _Level("[debug] ", "dim", False),
}


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """True when ``NO_COLOR`` is present or ``TERM`` is ``dumb``."""
    return "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


def _build_table(
    rows: Sequence[Sequence[str]],
    headers: Optional[Sequence[str]] = None,
    title: Optional[str] = None,
) -> Table:
    # Without headers the rows are field/value pairs.
    table = Table(title=title, show_header=headers is not None, header_style="bold cyan")
    if headers is None:
        table.add_column("Field", style="bold cyan")
        table.add_column("Value")
    else:
        for header in headers:
            table.add_column(header)
    for row in rows:
        table.add_row(*row)
    return table


class OutputManager:
    """Output preferences for one invocation.

    Args:
        format: Requested rendering; ``AUTO`` becomes ``RICH`` on a colour
            TTY and ``PLAIN`` otherwise.
        no_color: Turn off colour regardless of the terminal.
        quiet: Hide info, success and suggestion messages.
        verbose: Show debug messages.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self.no_color = no_color or _should_disable_color()
        self.quiet = quiet
        self.verbose = verbose
        if format is OutputFormat.AUTO:
            format = OutputFormat.RICH if _is_tty() and not self.no_color else OutputFormat.PLAIN
        self.format = format

        self._out = Console(
            file=sys.stdout,
            no_color=self.no_color,
            force_terminal=self.format is OutputFormat.RICH,
        )
        self._err = Console(file=sys.stderr, no_color=self.no_color, stderr=True)

    # --- stdout ---

    def print_data(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    def _print_json(self, value: Any) -> None:
        self.print_data(json.dumps(value, indent=2, ensure_ascii=False, default=str))

    def _print_lines(self, rows: Sequence[Sequence[str]]) -> None:
        for row in rows:
            self.print_data("\t".join(row))

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Print rows under *headers*.

        JSON output is a list of objects keyed by header; plain output is a
        header line followed by one tab-separated line per row.
        """
        if self.format is OutputFormat.JSON:
            self._print_json([dict(zip(headers, row)) for row in rows])
        elif self.format is OutputFormat.PLAIN:
            self._print_lines([headers, *rows])
        else:
            self._out.print(_build_table(rows, headers, title))

    def print_record(self, record: dict[str, Any], title: Optional[str] = None) -> None:
        """Print one object as field/value pairs (a JSON object with ``--json``)."""
        if self.format is OutputFormat.JSON:
            self._print_json(record)
            return
        rows = [[str(k), "" if v is None else str(v)] for k, v in record.items()]
        if self.format is OutputFormat.PLAIN:
            self._print_lines(rows)
        else:
            self._out.print(_build_table(rows, title=title))

    # --- stderr ---

    def diagnostic(self, level: str, message: str) -> None:
        """Write *message* to stderr at *level* (a key of ``_LEVELS``)."""
        kind = _LEVELS[level]
        if level == "debug" and not self.verbose:
            return
        if kind.hidden_when_quiet and self.quiet:
            return
        line = kind.prefix + message
        if self.no_color:
            print(line, file=sys.stderr, flush=True)
        else:
            self._err.print(Text(line, style=kind.style), soft_wrap=True)

    def info(self, message: str) -> None:
        self.diagnostic("info", message)

    def success(self, message: str) -> None:
        self.diagnostic("success", message)

    def suggest(self, message: str) -> None:
        self.diagnostic("suggest", message)

    def warning(self, message: str) -> None:
        """Shown even with ``--quiet``."""
        self.diagnostic("warning", message)

    def error(self, message: str) -> None:
        """Shown even with ``--quiet``."""
        self.diagnostic("error", message)

    def debug(self, message: str) -> None:
        self.diagnostic("debug", message)


# --- Process-wide manager ---

_current: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed manager, installing a default one if needed."""
    global _current
    if _current is None:
        _current = OutputManager()
    return _current


def set_output(output: OutputManager) -> None:
    global _current
    _current = output


def reset_output() -> None:
    global _current
    _current = None


def print_table(headers: list[str], rows: list[list[str]], title: Optional[str] = None) -> None:
    get_output().print_table(headers, rows, title)


def print_record(record: dict[str, Any], title: Optional[str] = None) -> None:
    get_output().print_record(record, title)


def info(message: str) -> None:
    get_output().diagnostic("info", message)


def success(message: str) -> None:
    get_output().diagnostic("success", message)


def suggest(message: str) -> None:
    get_output().diagnostic("suggest", message)


def warning(message: str) -> None:
    get_output().diagnostic("warning", message)


def error(message: str) -> None:
    get_output().diagnostic("error", message)


def debug(message: str) -> None:
    get_output().diagnostic("debug", message)
