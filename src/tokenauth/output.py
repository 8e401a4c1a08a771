"""Output channel for tokenauth: data on stdout, diagnostics on stderr.

Follows `clig.dev <https://clig.dev/>`_ conventions:

* **stdout** -- primary data only (response bodies, target and token tables).
* **stderr** -- everything else: HTTP status lines, warnings, errors, and the
  debug trace of the interceptor (retries after a 401) and the token
  providers (fetches).
* **TTY detection** -- Rich rendering when stdout is an interactive terminal,
  plain text when piped.
* **Colour control** -- ``NO_COLOR``, ``TERM=dumb`` and ``--no-color``.

The CLI installs an :class:`OutputManager` from its global flags in
:func:`~tokenauth.app.main_callback`.  Library code that never installs one
gets a default manager on first use, which keeps debug lines silent and
still reports warnings.
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
    """Supported output formats.  ``AUTO`` picks ``RICH`` on a colour TTY, else ``PLAIN``."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


# (rich style, plain prefix) per diagnostic level
_LEVELS: dict[str, tuple[str, str]] = {
    "info": ("", ""),
    "success": ("green", ""),
    "warning": ("yellow", "Warning: "),
    "error": ("bold red", "Error: "),
    "debug": ("dim", "[debug] "),
}


class OutputManager:
    """Routes data and diagnostics to the right stream in the right format.

    Args:
        format: Desired data format.  ``AUTO`` resolves from TTY detection.
        no_color: Disable colour and Rich markup.
        quiet: Drop ``info`` and ``success`` diagnostics.
        verbose: Emit ``debug`` diagnostics.
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
        self._format = _resolve_format(format, self._no_color)

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=(self._format == OutputFormat.RICH),
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

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        """Status information, e.g. the HTTP status line.  Dropped by ``--quiet``."""
        if not self._quiet:
            self._diagnostic("info", message)

    def success(self, message: str) -> None:
        if not self._quiet:
            self._diagnostic("success", message)

    def warning(self, message: str) -> None:
        """Something went wrong but the operation continued.  Never dropped."""
        self._diagnostic("warning", message)

    def error(self, message: str) -> None:
        self._diagnostic("error", message)

    def debug(self, message: str) -> None:
        """Trace line, shown only with ``--verbose``."""
        if self._verbose:
            self._diagnostic("debug", message)

    def _diagnostic(self, level: str, message: str) -> None:
        style, prefix = _LEVELS[level]
        if self._no_color:
            print(f"{prefix}{message}", file=sys.stderr, flush=True)
            return
        if prefix.endswith(": "):
            self._stderr.print(f"[{style}]{prefix.strip()}[/{style}] ", end="")
            self._stderr.print(message, markup=False, highlight=False)
        else:
            self._stderr.print(
                f"{prefix}{message}", style=style or None, markup=False, highlight=False
            )

    # ------------------------------------------------------------------ #
    # Data (stdout)
    # ------------------------------------------------------------------ #

    def print_data(self, text: str) -> None:
        """Write one line of raw text to stdout."""
        print(text, file=sys.stdout, flush=True)

    def format_response(self, data: Any, content_type: str = "application/json") -> None:
        """Render a decoded response body in the active format.

        Args:
            data: A dict, list, string or scalar.
            content_type: Used by the Rich renderer to decide whether a string
                body should be highlighted as JSON.
        """
        if self._format == OutputFormat.JSON:
            self.print_data(_to_json(_maybe_json(data)))
        elif self._format == OutputFormat.PLAIN:
            for line in _plain_lines(data):
                self.print_data(line)
        else:
            self._render_rich(data, content_type)

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Print rows as a Rich table, a JSON array of objects, or TSV.

        *title* is only shown in Rich mode.
        """
        if self._format == OutputFormat.JSON:
            self.print_data(_to_json([dict(zip(headers, row)) for row in rows]))
            return
        if self._format == OutputFormat.PLAIN:
            for row in [headers, *rows]:
                self.print_data("\t".join(row))
            return

        table = Table(title=title, show_header=True, header_style="bold cyan")
        for header in headers:
            table.add_column(header)
        for row in rows:
            table.add_row(*row)
        self._stdout.print(table)

    def _render_rich(self, data: Any, content_type: str) -> None:
        if isinstance(data, str) and "json" in content_type:
            data = _maybe_json(data)
        if isinstance(data, (dict, list)):
            syntax = Syntax(_to_json(data), "json", theme="monokai", word_wrap=True)
            self._stdout.print(syntax)
        else:
            self._stdout.print(str(data), markup=False)


# ------------------------------------------------------------------ #
# Rendering helpers
# ------------------------------------------------------------------ #


def _to_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


def _maybe_json(data: Any) -> Any:
    """Decode *data* if it is a JSON string, else return it unchanged."""
    if not isinstance(data, str):
        return data
    try:
        return json.loads(data)
    except ValueError:
        return data


def _plain_lines(data: Any) -> list[str]:
    if isinstance(data, dict):
        return [f"{key}\t{value}" for key, value in data.items()]
    if isinstance(data, list):
        return [
            "\t".join(str(v) for v in item.values()) if isinstance(item, dict) else str(item)
            for item in data
        ]
    return [str(data)]


def _resolve_format(requested: OutputFormat, no_color: bool) -> OutputFormat:
    if requested != OutputFormat.AUTO:
        return requested
    return OutputFormat.RICH if _is_tty() and not no_color else OutputFormat.PLAIN


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """True when ``NO_COLOR`` is set (any value) or ``TERM=dumb``."""
    return os.environ.get("NO_COLOR") is not None or os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Global instance
# ------------------------------------------------------------------ #


_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed :class:`OutputManager`, creating a default one lazily."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Forget the installed manager.  Used by the test suite between tests."""
    global _output
    _output = None


def format_response(data: Any, content_type: str = "application/json") -> None:
    get_output().format_response(data, content_type)


def print_table(
    headers: list[str],
    rows: list[list[str]],
    title: Optional[str] = None,
) -> None:
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
