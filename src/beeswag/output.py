"""Console output with strict stdout/stderr discipline.

* **stdout** -- the route table and ``--json`` summaries, nothing else.
* **stderr** -- status lines, analysis warnings and errors.
* **Colour** -- off under ``NO_COLOR``, ``TERM=dumb`` or ``--no-color``.

The generator never prints directly; analysis warnings flow through
:meth:`~beeswag.session.AnalysisSession.warn`, which records them and
forwards to :func:`warning` here.

:func:`~beeswag.app.main_callback` builds one :class:`OutputManager` from
the global flags and installs it with :func:`set_output`; the module-level
functions below delegate to that instance.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table


class OutputFormat(str, Enum):
    """Supported stdout formats. ``AUTO`` picks ``RICH`` on a colour TTY."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Writes data to stdout and diagnostics to stderr.

    Args:
        format: Stdout format; ``AUTO`` is resolved once, here.
        no_color: Disable colour and Rich markup on both streams.
        quiet: Hide info and success lines. Warnings and errors still show.
        verbose: Show debug lines.
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

    # ------------------------------------------------------------------ #
    # stdout
    # ------------------------------------------------------------------ #

    def print_json(self, data: Any) -> None:
        """Print *data* as indented JSON, highlighted in Rich mode."""
        text = json.dumps(data, indent=2, ensure_ascii=False, default=str)
        if self._format == OutputFormat.RICH:
            self._stdout.print(Syntax(text, "json", theme="monokai", word_wrap=True))
        else:
            _emit(sys.stdout, text)

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Print rows in the active format.

        JSON mode emits a list of objects keyed by *headers*; plain mode emits
        tab-separated lines with a header line; Rich mode draws a table titled
        *title*.
        """
        if self._format == OutputFormat.JSON:
            records = [dict(zip(headers, row)) for row in rows]
            _emit(sys.stdout, json.dumps(records, indent=2, ensure_ascii=False))
        elif self._format == OutputFormat.PLAIN:
            for line in [headers, *rows]:
                _emit(sys.stdout, "\t".join(line))
        else:
            table = Table(title=title, show_header=True, header_style="bold cyan")
            for header in headers:
                table.add_column(header)
            for row in rows:
                table.add_row(*row)
            self._stdout.print(table)

    # ------------------------------------------------------------------ #
    # stderr
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        if not self._quiet:
            self._diagnostic("", "", message)

    def success(self, message: str) -> None:
        if not self._quiet:
            self._diagnostic("", "green", message)

    def warning(self, message: str) -> None:
        """Print a warning; shown even with ``--quiet``.

        Messages often quote Go types such as ``[]string``, so any Rich
        markup in them is escaped.
        """
        self._diagnostic("Warning: ", "yellow", message)

    def error(self, message: str) -> None:
        self._diagnostic("Error: ", "bold red", message)

    def debug(self, message: str) -> None:
        if self._verbose:
            self._diagnostic("[debug] ", "dim", message)

    def _diagnostic(self, prefix: str, style: str, message: str) -> None:
        if self._no_color:
            _emit(sys.stderr, prefix + message)
            return
        text = _escape(prefix + message)
        if style:
            text = f"[{style}]{text}[/{style}]"
        self._stderr.print(text)


def _emit(stream: Any, text: str) -> None:
    print(text, file=stream, flush=True)


def _escape(message: str) -> str:
    return message.replace("[", "\\[")


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """True when ``NO_COLOR`` is set to anything, or ``TERM=dumb``."""
    return "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Global instance
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed :class:`OutputManager`, creating a default lazily."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Forget the installed manager; the test suite calls this between tests."""
    global _output
    _output = None


def print_table(headers: list[str], rows: list[list[str]], title: Optional[str] = None) -> None:
    get_output().print_table(headers, rows, title)


def info(message: str) -> None:
    get_output().info(message)


def error(message: str) -> None:
    get_output().error(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def debug(message: str) -> None:
    get_output().debug(message)
