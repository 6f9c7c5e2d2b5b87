"""Tests for query source resolution."""

import io
from pathlib import Path
from unittest.mock import patch

import pytest

from query_console.core.exceptions import InputError
from query_console.core.query_source import resolve_query_source

FIXTURE_SQL = str(Path(__file__).parent / "fixtures" / "events.sql")
FIXTURE_TEXT = "SELECT name, total\nFROM dataset.events\n"


@pytest.mark.unit
def test_inline_query():
    assert resolve_query_source(inline="SELECT 1", file_path=None) == "SELECT 1"


@pytest.mark.unit
def test_inline_takes_precedence_over_file():
    result = resolve_query_source(inline="SELECT 1", file_path=FIXTURE_SQL)
    assert result == "SELECT 1"


@pytest.mark.unit
def test_file_query():
    assert resolve_query_source(inline=None, file_path=FIXTURE_SQL) == FIXTURE_TEXT


@pytest.mark.unit
def test_file_not_found_raises_input_error():
    with pytest.raises(InputError, match="Query file not found"):
        resolve_query_source(inline=None, file_path="/nonexistent/file.sql")


@pytest.mark.unit
def test_stdin_query():
    with (
        patch("sys.stdin", new=io.StringIO("SELECT 99")),
        patch("sys.stdin.isatty", return_value=False),
    ):
        result = resolve_query_source(inline=None, file_path=None)
    assert result == "SELECT 99"


@pytest.mark.unit
def test_no_query_source_raises_input_error():
    with (
        patch("sys.stdin.isatty", return_value=True),
        pytest.raises(InputError, match="No query provided"),
    ):
        resolve_query_source(inline=None, file_path=None)


@pytest.mark.unit
def test_file_takes_precedence_over_stdin():
    with patch("sys.stdin", new=io.StringIO("SELECT FROM STDIN")):
        result = resolve_query_source(inline=None, file_path=FIXTURE_SQL)
    assert result == FIXTURE_TEXT


@pytest.mark.unit
def test_empty_inline_query():
    """Empty string is a valid inline query; validation skips it later."""
    assert resolve_query_source(inline="", file_path=None) == ""
