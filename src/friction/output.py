"""Terminal output for the friction CLI.

Commands write through one ``Output`` object whose verbosity and format
(text, JSON or compact) are set from the global command-line flags.

Usage:
    from friction.output import get_output

    output = get_output()
    output.header("Sessions")
    output.warning("2 files could not be read")
    output.data(result.to_dict())
"""

from __future__ import annotations

import json
import sys
import traceback
from dataclasses import dataclass, field
from enum import IntEnum
from typing import IO, Any


class Verbosity(IntEnum):
    """Output verbosity levels."""

    QUIET = 0  # Only errors
    NORMAL = 1
    VERBOSE = 2
    DEBUG = 3


@dataclass
class OutputStyle:
    """Styling configuration for output."""

    use_colors: bool = True
    use_markers: bool = True
    indent_size: int = 2
    max_width: int = 100

    colors: dict[str, str] = field(
        default_factory=lambda: {
            "reset": "\033[0m",
            "bold": "\033[1m",
            "dim": "\033[2m",
            "red": "\033[31m",
            "green": "\033[32m",
            "yellow": "\033[33m",
            "cyan": "\033[36m",
        }
    )

    # Line prefixes per message level
    markers: dict[str, str] = field(
        default_factory=lambda: {
            "error": "X",
            "warning": "!",
            "success": "+",
            "debug": "#",
            "step": ">",
        }
    )


_LEVEL_COLORS = {
    "error": "red",
    "warning": "yellow",
    "success": "green",
    "debug": "dim",
    "step": "cyan",
}


class OutputFormatter:
    """Base class for output formatters."""

    def format_message(self, level: str, message: str, style: OutputStyle, use_tty: bool) -> str:
        return message

    def format_data(self, data: Any, style: OutputStyle) -> str:
        return str(data)


class TextFormatter(OutputFormatter):
    """Plain text with optional markers and colors."""

    def format_message(self, level: str, message: str, style: OutputStyle, use_tty: bool) -> str:
        marker = style.markers.get(level, "") if style.use_markers else ""
        text = f"[{marker}] {message}" if marker else message

        color = _LEVEL_COLORS.get(level)
        if style.use_colors and use_tty and color:
            return f"{style.colors[color]}{text}{style.colors['reset']}"
        return text

    def format_data(self, data: Any, style: OutputStyle) -> str:
        return "\n".join(self._lines(data, style, 0))

    def _lines(self, data: Any, style: OutputStyle, depth: int) -> list[str]:
        pad = " " * (depth * style.indent_size)
        lines: list[str] = []
        if isinstance(data, dict):
            for key, value in data.items():
                if isinstance(value, (dict, list)) and value:
                    lines.append(f"{pad}{key}:")
                    lines.extend(self._lines(value, style, depth + 1))
                else:
                    lines.append(f"{pad}{key}: {value}")
        elif isinstance(data, list):
            for item in data:
                if isinstance(item, (dict, list)):
                    lines.append(f"{pad}-")
                    lines.extend(self._lines(item, style, depth + 1))
                else:
                    lines.append(f"{pad}- {item}")
        else:
            lines.append(f"{pad}{data}")
        return lines


class JSONFormatter(OutputFormatter):
    """JSON output formatter."""

    def format_message(self, level: str, message: str, style: OutputStyle, use_tty: bool) -> str:
        return json.dumps({"level": level, "message": message})

    def format_data(self, data: Any, style: OutputStyle) -> str:
        return json.dumps(data, indent=2, default=str, ensure_ascii=False)


class CompactFormatter(OutputFormatter):
    """Single-line output."""

    def format_message(self, level: str, message: str, style: OutputStyle, use_tty: bool) -> str:
        return f"[{level[:1].upper()}] {message}" if level else message

    def format_data(self, data: Any, style: OutputStyle) -> str:
        if isinstance(data, (dict, list)):
            return json.dumps(data, separators=(",", ":"), default=str, ensure_ascii=False)
        return str(data)


class Output:
    """Configurable output for CLI commands."""

    def __init__(
        self,
        verbosity: Verbosity = Verbosity.NORMAL,
        style: OutputStyle | None = None,
        formatter: OutputFormatter | None = None,
        stdout: IO[str] | None = None,
        stderr: IO[str] | None = None,
    ) -> None:
        self.verbosity = verbosity
        self.style = style or OutputStyle()
        self.formatter = formatter or TextFormatter()
        self.stdout = stdout or sys.stdout
        self.stderr = stderr or sys.stderr

    @property
    def is_structured(self) -> bool:
        """True when data is emitted as JSON (full or compact)."""
        return isinstance(self.formatter, (JSONFormatter, CompactFormatter))

    def set_verbosity(self, verbosity: Verbosity) -> None:
        self.verbosity = verbosity

    def use_json(self) -> None:
        """Switch to JSON output format."""
        self.formatter = JSONFormatter()
        self.style.use_colors = False
        self.style.use_markers = False

    def use_compact(self) -> None:
        """Switch to compact output format."""
        self.formatter = CompactFormatter()
        self.style.use_colors = False

    def write(
        self,
        message: str,
        level: str = "info",
        min_verbosity: Verbosity = Verbosity.NORMAL,
    ) -> None:
        """Write a message if verbosity allows."""
        if self.verbosity < min_verbosity:
            return

        # Structured stdout stays parseable; diagnostics go to stderr
        to_stderr = level in ("error", "warning", "debug") or self.is_structured
        stream = self.stderr if to_stderr else self.stdout
        formatted = self.formatter.format_message(level, message, self.style, stream.isatty())
        stream.write(f"{formatted}\n")
        stream.flush()

    def error(self, message: str) -> None:
        """Output an error message (shown even when quiet)."""
        self.write(message, "error", Verbosity.QUIET)

    def warning(self, message: str) -> None:
        self.write(message, "warning", Verbosity.NORMAL)

    def success(self, message: str) -> None:
        self.write(message, "success", Verbosity.NORMAL)

    def info(self, message: str) -> None:
        self.write(message, "info", Verbosity.NORMAL)

    def step(self, message: str) -> None:
        self.write(message, "step", Verbosity.VERBOSE)

    def verbose(self, message: str) -> None:
        self.write(message, "info", Verbosity.VERBOSE)

    def debug(self, message: str) -> None:
        self.write(message, "debug", Verbosity.DEBUG)

    def debug_traceback(self) -> None:
        """Output the current exception traceback in debug mode."""
        if self.verbosity >= Verbosity.DEBUG:
            self.write(traceback.format_exc(), "debug", Verbosity.DEBUG)

    def print(self, message: str = "") -> None:
        """Print a raw line to stdout."""
        if self.verbosity >= Verbosity.NORMAL:
            self.stdout.write(f"{message}\n")
            self.stdout.flush()

    def data(self, data: Any) -> None:
        """Output structured data.

        JSON and compact data is written even in quiet mode, since it is
        the command's result rather than commentary.
        """
        if not self.is_structured and self.verbosity < Verbosity.NORMAL:
            return
        self.stdout.write(f"{self.formatter.format_data(data, self.style)}\n")
        self.stdout.flush()

    def header(self, text: str) -> None:
        """Output a section header."""
        if self.verbosity < Verbosity.NORMAL:
            return
        if self.style.use_colors and self.stdout.isatty():
            title = f"{self.style.colors['bold']}{text}{self.style.colors['reset']}"
        else:
            title = text
        self.stdout.write(f"\n{title}\n{'-' * min(len(text), self.style.max_width)}\n")
        self.stdout.flush()


_output: Output | None = None


def get_output() -> Output:
    """Get the global output instance."""
    global _output
    if _output is None:
        _output = Output()
    return _output


def set_output(output: Output) -> None:
    """Set the global output instance."""
    global _output
    _output = output


def reset_output() -> None:
    """Drop the global output so the next get_output() builds a fresh one.

    Tests call this to pick up captured stdout/stderr.
    """
    global _output
    _output = None


def configure_output(
    verbosity: Verbosity | None = None,
    json_format: bool = False,
    compact: bool = False,
    no_color: bool = False,
) -> Output:
    """Configure the global output instance."""
    output = get_output()

    if verbosity is not None:
        output.set_verbosity(verbosity)

    if compact:
        output.use_compact()
    elif json_format:
        output.use_json()

    if no_color:
        output.style.use_colors = False

    return output
