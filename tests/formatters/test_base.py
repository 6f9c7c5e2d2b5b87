"""Tests for Formatter protocol and registry."""

import pytest

from query_console.core.models import QueryResult
from query_console.formatters.base import Formatter, FormatterRegistry


def _make_result(content=None):
    return QueryResult(content=content or [[1]], labels=["id"], query_id="q1")


class _StubFormatter:
    def format_diagnostics(self, diagnostics):
        yield f"{len(diagnostics)} diagnostics"

    def format_result(self, result):
        for row in result.content:
            yield str(row)


class _BadFormatter:
    """Missing format_result."""

    def format_diagnostics(self, diagnostics):
        yield ""


@pytest.mark.unit
def test_stub_formatter_implements_protocol():
    assert isinstance(_StubFormatter(), Formatter)


@pytest.mark.unit
def test_bad_formatter_does_not_implement_protocol():
    assert not isinstance(_BadFormatter(), Formatter)


@pytest.mark.unit
def test_formatter_yields_strings():
    lines = list(_StubFormatter().format_result(_make_result([[1], [2]])))
    assert lines == ["[1]", "[2]"]


@pytest.mark.unit
def test_registry_register_and_get():
    reg = FormatterRegistry()
    reg.register("stub", _StubFormatter)
    assert isinstance(reg.get("stub"), _StubFormatter)


@pytest.mark.unit
def test_registry_get_unknown_raises_key_error():
    reg = FormatterRegistry()
    with pytest.raises(KeyError, match="Unknown format 'nope'"):
        reg.get("nope")


@pytest.mark.unit
def test_registry_get_unknown_lists_available():
    reg = FormatterRegistry()
    reg.register("text", _StubFormatter)
    reg.register("json", _StubFormatter)
    with pytest.raises(KeyError, match="json, text"):
        reg.get("nope")


@pytest.mark.unit
def test_registry_available_returns_sorted_names():
    reg = FormatterRegistry()
    reg.register("text", _StubFormatter)
    reg.register("json", _StubFormatter)
    assert reg.available == ["json", "text"]


@pytest.mark.unit
def test_registry_passes_kwargs_to_constructor():
    class _SourceFormatter(_StubFormatter):
        def __init__(self, source=None):
            self.source = source

    reg = FormatterRegistry()
    reg.register("src", _SourceFormatter)
    assert reg.get("src", source="q.sql").source == "q.sql"
