"""Shared CLI plumbing for command modules.

Config resolution, client construction, query reading and format options.
Distinct from cli.helpers which contains pure formatting functions.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING, Any

import typer

from query_console.cli.output import get_formatter
from query_console.core.config import load_config, resolve_config
from query_console.core.exceptions import InputError
from query_console.core.exit_codes import ExitCode
from query_console.core.polling import HttpJobTransport, PagedService
from query_console.core.query_source import resolve_query_source

if TYPE_CHECKING:
    from query_console.core.config import ResolvedConfig
    from query_console.formatters.base import Formatter


def get_resolved_config(ctx: typer.Context, **overrides: Any) -> ResolvedConfig:
    obj = ctx.ensure_object(dict)
    config = load_config(obj.get("config_file"))

    cli_overrides: dict[str, Any] = {}
    for key in ("url", "timeout"):
        val = obj.get(key)
        if val is not None:
            cli_overrides[key] = val
    for key, val in overrides.items():
        if val is not None:
            cli_overrides[key] = val

    return resolve_config(config, profile_name=obj.get("profile"), **cli_overrides)


def build_client(resolved: ResolvedConfig) -> PagedService:
    transport = HttpJobTransport(
        resolved.base_url,
        endpoint=resolved.endpoint,
        timeout=resolved.request_timeout,
    )
    return PagedService(
        transport, default_poll_interval_ms=resolved.validation_poll_interval_ms
    )


def read_query(ctx: typer.Context, file: str | None, execute: str | None) -> str:
    """Resolve the query text, showing help when nothing was given on a TTY."""
    try:
        is_tty = sys.stdin.isatty()
    except (ValueError, AttributeError):
        is_tty = False
    if execute is None and file is None and is_tty:
        typer.echo(ctx.get_help())
        raise typer.Exit()

    try:
        return resolve_query_source(inline=execute, file_path=file)
    except InputError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(ExitCode.INPUT_ERROR) from exc


def formatter_for(ctx: typer.Context, source: str | None = None) -> Formatter:
    obj = ctx.ensure_object(dict)
    return get_formatter(
        obj.get("format"),
        compact=obj.get("compact", False),
        source=source,
    )
