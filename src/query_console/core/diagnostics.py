"""Translate backend error text into positioned diagnostics.

Two error formats are recognized:

- ``Not found: Table project:dataset.table was not found ...``
  The referenced identifier is located by scanning the query text.
- ``Syntax error: Unexpected keyword FROM at [3:5]``
  The position comes from the trailing ``[ROW:COL]`` locator.

Every parser here is total: malformed or unrelated text yields ``None``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from query_console.core.models import Diagnostic, Severity

if TYPE_CHECKING:
    from collections.abc import Sequence

NOT_FOUND_PREFIX = "Not found:"
SYNTAX_ERROR_PREFIX = "Syntax error:"

_NOT_FOUND_TOKEN_INDEX = 3


def split_lines(text: str) -> list[str]:
    return text.split("\n")


def _locate(identifier: str, lines: Sequence[str]) -> tuple[int, int]:
    """Return (1-based line, offset) of the last line containing identifier."""
    line = -1
    pos = -1
    for i, text in enumerate(lines):
        idx = text.find(identifier)
        if idx != -1:
            line = i + 1
            pos = idx
    return line, pos


def parse_not_found(raw: str, lines: Sequence[str]) -> Diagnostic | None:
    """Parse ``Not found: <Kind> <project:dataset.name> ...`` errors.

    When the fully qualified name is not in the text, shorter dotted
    suffixes are tried, since queries often omit the project or dataset.
    If nothing matches the diagnostic is still reported at line -1.
    """
    text = raw.strip()
    if not text.startswith(NOT_FOUND_PREFIX):
        return None

    tokens = text.split(" ")
    if len(tokens) <= _NOT_FOUND_TOKEN_INDEX:
        return None
    identifier = tokens[_NOT_FOUND_TOKEN_INDEX].split(":")[-1]
    if not identifier:
        return None

    candidate = identifier
    line, pos = _locate(candidate, lines)
    while line == -1 and "." in candidate:
        candidate = candidate.split(".", 1)[1]
        if not candidate:
            break
        line, pos = _locate(candidate, lines)

    if line == -1:
        # Identifier absent from the text; reported at an invalid position.
        candidate = identifier

    return Diagnostic(
        start_line=line,
        end_line=line,
        start_column=pos,
        end_column=pos + len(candidate),
        message=text,
        severity=Severity.ERROR,
    )


def parse_syntax_error(raw: str, lines: Sequence[str]) -> Diagnostic | None:
    """Parse ``Syntax error: <message> at [ROW:COL]`` errors."""
    text = raw.strip()
    if not text.startswith(SYNTAX_ERROR_PREFIX):
        return None

    at_idx = text.rfind("at")
    open_idx = text.rfind("[")
    close_idx = text.rfind("]")
    if at_idx < len(SYNTAX_ERROR_PREFIX) or open_idx == -1 or close_idx <= open_idx:
        return None

    message = text[len(SYNTAX_ERROR_PREFIX) : at_idx].lstrip()
    parts = text[open_idx + 1 : close_idx].split(":")
    if len(parts) != 2:
        return None
    try:
        line, column = (int(part.strip()) for part in parts)
    except ValueError:
        return None

    if line < 1 or line > len(lines):
        return None
    source = lines[line - 1]
    if column < 0 or column > len(source):
        return None

    space = source[column:].find(" ")
    end_column = column + space + 1 if space != -1 else len(source) + 1

    return Diagnostic(
        start_line=line,
        end_line=line,
        start_column=column,
        end_column=end_column,
        message=message,
        severity=Severity.ERROR,
    )


def parse_diagnostic(raw: str | None, lines: Sequence[str]) -> Diagnostic | None:
    """Return the diagnostic described by a backend error, if any.

    Args:
        raw: Error text as returned by a failed dry run.
        lines: The query text split into lines.

    Returns:
        A single Diagnostic, or None when the text matches no known format.
    """
    if not isinstance(raw, str):
        return None
    return parse_syntax_error(raw, lines) or parse_not_found(raw, lines)
