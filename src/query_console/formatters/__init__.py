"""Output formatters for Query Console."""

from query_console.formatters.base import Formatter, FormatterRegistry, registry
from query_console.formatters.json import JSONFormatter
from query_console.formatters.text import TextFormatter

__all__ = [
    "Formatter",
    "FormatterRegistry",
    "JSONFormatter",
    "TextFormatter",
    "registry",
]
