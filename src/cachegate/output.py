"""Terminal output for the cachegate CLI.

Response bodies and tables are data and go to stdout. Status lines,
warnings, errors and library log records are diagnostics and go to stderr,
so ``cachegate fetch ... | jq`` always sees a clean stream.

Rich styling is used only when stdout is a terminal and colour has not
been turned off by ``NO_COLOR``, ``TERM=dumb`` or ``--no-color``.

Commands talk to a single process-wide :class:`OutputManager` through the
module-level helpers (:func:`info`, :func:`print_table`, ...). Library
modules never import this module; they log, and
:meth:`OutputManager.install_log_handler` decides what reaches stderr.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from enum import Enum
from typing import Any, NamedTuple, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.syntax import Syntax
from rich.table import Table


class OutputFormat(str, Enum):
    """How stdout data is rendered. ``AUTO`` picks ``RICH`` or ``PLAIN``."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class _Diagnostic(NamedTuple):
    prefix: str
    markup: str
    quietable: bool
    verbose_only: bool = False


_DIAGNOSTICS = {
    "info": _Diagnostic("", "{}", quietable=True),
    "success": _Diagnostic("", "[green]{}[/green]", quietable=True),
    "warning": _Diagnostic("Warning: ", "[yellow]Warning:[/yellow] {}", quietable=False),
    "error": _Diagnostic("Error: ", "[bold red]Error:[/bold red] {}", quietable=False),
    "debug": _Diagnostic("[debug] ", "[dim]\\[debug] {}[/dim]", quietable=False, verbose_only=True),
}


def _dumps(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


class OutputManager:
    """Holds the resolved format, the two consoles and the verbosity flags.

    Args:
        format: Requested format; ``AUTO`` is resolved from the terminal.
        no_color: Turn off colour and markup.
        quiet: Hide info and success lines.
        verbose: Show debug lines and DEBUG log records.
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

        if format != OutputFormat.AUTO:
            self._format = format
        elif _is_tty() and not self._no_color:
            self._format = OutputFormat.RICH
        else:
            self._format = OutputFormat.PLAIN

        rich = self._format == OutputFormat.RICH
        self._stdout = Console(file=sys.stdout, no_color=self._no_color, force_terminal=rich)
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    # stdout

    def print_data(self, text: str) -> None:
        """Write one line of raw data to stdout."""
        print(text, file=sys.stdout, flush=True)

    def format_response(self, data: Any, content_type: str = "application/json") -> None:
        """Render a decoded response body in the active format.

        JSON mode pretty-prints dicts, lists and strings that parse as JSON;
        plain mode flattens mappings to ``key<TAB>value`` lines; Rich mode
        syntax-highlights JSON and HTML bodies.
        """
        if self._format == OutputFormat.JSON:
            if isinstance(data, str):
                try:
                    data = json.loads(data)
                except ValueError:
                    self.print_data(data)
                    return
            self.print_data(_dumps(data))
        elif self._format == OutputFormat.PLAIN:
            for line in _plain_lines(data):
                self.print_data(line)
        elif isinstance(data, (dict, list)):
            self._stdout.print(Syntax(_dumps(data), "json", theme="monokai", word_wrap=True))
        elif isinstance(data, str) and "html" in content_type:
            self._stdout.print(Syntax(data, "html", theme="monokai", word_wrap=True))
        else:
            self._stdout.print(str(data), markup=False)

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Print rows as a Rich table, a JSON array of objects, or TSV."""
        if self._format == OutputFormat.JSON:
            self.print_data(_dumps([dict(zip(headers, row)) for row in rows]))
            return
        if self._format == OutputFormat.PLAIN:
            for row in [headers, *rows]:
                self.print_data("\t".join(row))
            return

        table = Table(*headers, title=title, header_style="bold cyan")
        for row in rows:
            table.add_row(*row)
        self._stdout.print(table)

    # stderr

    def _diagnose(self, kind: str, message: str) -> None:
        spec = _DIAGNOSTICS[kind]
        if spec.verbose_only and not self._verbose:
            return
        if spec.quietable and self._quiet:
            return
        if self._no_color:
            print(spec.prefix + message, file=sys.stderr, flush=True)
        else:
            self._stderr.print(spec.markup.format(message))

    def info(self, message: str) -> None:
        self._diagnose("info", message)

    def success(self, message: str) -> None:
        self._diagnose("success", message)

    def warning(self, message: str) -> None:
        self._diagnose("warning", message)

    def error(self, message: str) -> None:
        self._diagnose("error", message)

    def debug(self, message: str) -> None:
        self._diagnose("debug", message)

    def install_log_handler(self) -> None:
        """Attach a single RichHandler on the stderr console to the ``cachegate`` logger.

        The threshold is DEBUG with ``--verbose``, ERROR with ``--quiet`` and
        WARNING otherwise. Calling this again replaces the previous handler.
        """
        logger = logging.getLogger("cachegate")
        for stale in [h for h in logger.handlers if isinstance(h, RichHandler)]:
            logger.removeHandler(stale)

        level = logging.DEBUG if self._verbose else logging.ERROR if self._quiet else logging.WARNING
        handler = RichHandler(console=self._stderr, show_path=False, markup=False)
        handler.setLevel(level)
        logger.addHandler(handler)
        logger.setLevel(level)


def _plain_lines(data: Any) -> list[str]:
    if isinstance(data, dict):
        return [f"{key}\t{value}" for key, value in data.items()]
    if isinstance(data, list):
        return [
            "\t".join(str(v) for v in item.values()) if isinstance(item, dict) else str(item)
            for item in data
        ]
    return [str(data)]


def _is_tty() -> bool:
    isatty = getattr(sys.stdout, "isatty", None)
    return bool(isatty and isatty())


def _should_disable_color() -> bool:
    return "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the process-wide manager, creating a default one on first use."""
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


def format_response(data: Any, content_type: str = "application/json") -> None:
    get_output().format_response(data, content_type)


def print_data(text: str) -> None:
    get_output().print_data(text)


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


def debug(message: str) -> None:
    get_output().debug(message)
