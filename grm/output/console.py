"""Console output abstraction.

Services report through ConsoleProtocol and never print directly. grm has
two output channels: diagnostics (progress, warnings, errors) go to stderr,
listing lines go to stdout so that `grm list-rrel | xargs ...` stays
scriptable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Protocol

__all__ = [
    "Style",
    "ConsoleProtocol",
    "RichConsole",
    "MockConsole",
    "OutputRecord",
]


class Style(Enum):
    """Text styles for console output."""

    DEFAULT = auto()
    SUCCESS = auto()  # Green, positive message
    ERROR = auto()  # Red, error message
    WARNING = auto()  # Yellow, warning message
    INFO = auto()  # Cyan, informational
    DIM = auto()  # Debug trace
    HEADER = auto()  # Repository being processed
    LISTING = auto()  # Plain stdout line

    def __str__(self) -> str:
        return self.name.lower()


class ConsoleProtocol(Protocol):
    """Protocol for console output."""

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        """Print a diagnostic message with optional styling.

        Args:
            message: The text to print
            style: The style to apply
        """
        ...

    def line(self, text: str) -> None:
        """Write one unstyled listing line to stdout."""
        ...

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def debug(self, message: str) -> None:
        """Print a trace line (callers gate it on OPT_DEBUG_PRIMITIVES)."""
        ...

    def header(self, message: str) -> None: ...


class RichConsole:
    """Console implementation using Rich library.

    Diagnostics are rendered on stderr; listings bypass markup and
    highlighting so paths come out byte-for-byte.
    """

    def __init__(self) -> None:
        # Import Rich lazily to avoid import-time dependency
        from rich.console import Console
        from rich.markup import escape

        self._err = Console(stderr=True, emoji=False)
        self._out = Console(highlight=False, markup=False, emoji=False, soft_wrap=True)
        self._escape = escape
        self._style_map = {
            Style.DEFAULT: "",
            Style.SUCCESS: "green",
            Style.ERROR: "red bold",
            Style.WARNING: "yellow",
            Style.INFO: "cyan",
            Style.DIM: "dim",
            Style.HEADER: "blue bold",
            Style.LISTING: "",
        }

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        rich_style = self._style_map.get(style, "")
        if rich_style:
            self._err.print(message, style=rich_style, markup=False, highlight=False)
        else:
            self._err.print(message, markup=False, highlight=False)

    def line(self, text: str) -> None:
        self._out.print(text)

    def success(self, message: str) -> None:
        self._err.print(f"[green]OK[/green] {self._escape(message)}", highlight=False)

    def error(self, message: str) -> None:
        self._err.print(f"[red bold]error:[/red bold] {self._escape(message)}", highlight=False)

    def warning(self, message: str) -> None:
        self._err.print(f"[yellow]warning:[/yellow] {self._escape(message)}", highlight=False)

    def info(self, message: str) -> None:
        self._err.print(f"[cyan]info:[/cyan] {self._escape(message)}", highlight=False)

    def debug(self, message: str) -> None:
        self._err.print(f"debug: {message}", style="dim", markup=False, highlight=False)

    def header(self, message: str) -> None:
        self._err.print(f"[blue bold]>>>[/blue bold] {self._escape(message)}", highlight=False)


@dataclass
class OutputRecord:
    """A single output record for MockConsole."""

    message: str
    style: Style


def _empty_outputs() -> list[OutputRecord]:
    """Factory for empty outputs list (helps type inference)."""
    return []


@dataclass
class MockConsole:
    """Console implementation that captures output for testing."""

    outputs: list[OutputRecord] = field(default_factory=_empty_outputs)

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self.outputs.append(OutputRecord(message, style))

    def line(self, text: str) -> None:
        self.outputs.append(OutputRecord(text, Style.LISTING))

    def success(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"OK {message}", Style.SUCCESS))

    def error(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"error: {message}", Style.ERROR))

    def warning(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"warning: {message}", Style.WARNING))

    def info(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"info: {message}", Style.INFO))

    def debug(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"debug: {message}", Style.DIM))

    def header(self, message: str) -> None:
        self.outputs.append(OutputRecord(message, Style.HEADER))

    # Test helper methods

    def clear(self) -> None:
        self.outputs.clear()

    @property
    def messages(self) -> list[str]:
        return [o.message for o in self.outputs]

    @property
    def listing(self) -> list[str]:
        """Lines that would have gone to stdout."""
        return [o.message for o in self.outputs if o.style == Style.LISTING]

    @property
    def text(self) -> str:
        return "\n".join(self.messages)

    def has_error(self) -> bool:
        return any(o.style == Style.ERROR for o in self.outputs)

    def has_warning(self) -> bool:
        return any(o.style == Style.WARNING for o in self.outputs)

    def find(self, substring: str) -> list[OutputRecord]:
        """Find all outputs containing a substring."""
        return [o for o in self.outputs if substring in o.message]

    def count(self, style: Style) -> int:
        return sum(1 for o in self.outputs if o.style == style)
