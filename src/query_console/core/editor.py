"""Editor surfaces consumed by the validator and the job controller.

The core only needs to read the query text and to replace the diagnostic
markers shown on it. BufferEditor keeps the text in memory; FileEditor
mirrors a file on disk so the CLI can watch a query file being edited.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from query_console.core.diagnostics import split_lines
from query_console.core.exceptions import InputError

if TYPE_CHECKING:
    from collections.abc import Callable

    from query_console.core.models import Diagnostic


class EditorSurface(Protocol):
    """Narrow view of a text editor."""

    def get_current_text(self) -> str: ...

    def get_line(self, n: int) -> str:
        """Return line n (1-based)."""
        ...

    def set_diagnostics(self, diagnostics: list[Diagnostic]) -> None:
        """Replace the full marker set."""
        ...

    def clear_diagnostics(self) -> None: ...


class BufferEditor:
    """In-memory editor surface."""

    def __init__(
        self,
        text: str = "",
        on_diagnostics: Callable[[list[Diagnostic]], None] | None = None,
    ) -> None:
        self._text = text
        self._diagnostics: list[Diagnostic] = []
        self._on_diagnostics = on_diagnostics

    @property
    def diagnostics(self) -> list[Diagnostic]:
        return list(self._diagnostics)

    def set_text(self, text: str) -> None:
        self._text = text

    def get_current_text(self) -> str:
        return self._text

    def get_line(self, n: int) -> str:
        lines = split_lines(self._text)
        if n < 1 or n > len(lines):
            msg = f"Line {n} out of range (1-{len(lines)})"
            raise IndexError(msg)
        return lines[n - 1]

    def set_diagnostics(self, diagnostics: list[Diagnostic]) -> None:
        self._diagnostics = list(diagnostics)
        if self._on_diagnostics is not None:
            self._on_diagnostics(self.diagnostics)

    def clear_diagnostics(self) -> None:
        had_markers = bool(self._diagnostics)
        self._diagnostics = []
        if had_markers and self._on_diagnostics is not None:
            self._on_diagnostics([])


class FileEditor(BufferEditor):
    """Editor surface backed by a query file on disk."""

    def __init__(
        self,
        path: Path,
        on_diagnostics: Callable[[list[Diagnostic]], None] | None = None,
    ) -> None:
        self.path = path
        super().__init__(self._read(), on_diagnostics=on_diagnostics)

    def _read(self) -> str:
        try:
            return self.path.read_text()
        except FileNotFoundError as e:
            msg = f"Query file not found: {self.path}"
            raise InputError(msg) from e
        except OSError as e:
            msg = f"Cannot read query file {self.path}: {e}"
            raise InputError(msg) from e

    def reload(self) -> bool:
        """Re-read the file. Returns True when the text changed."""
        text = self._read()
        if text == self.get_current_text():
            return False
        self.set_text(text)
        return True
