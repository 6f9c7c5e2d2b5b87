from __future__ import annotations

import asyncio
from typing import Annotated

import typer

from query_console.cli.commands._shared import (
    build_client,
    formatter_for,
    get_resolved_config,
    read_query,
)
from query_console.cli.output import write_output
from query_console.core.exit_codes import ExitCode
from query_console.core.runner import check_query


def check_command(
    ctx: typer.Context,
    file: Annotated[
        str | None,
        typer.Argument(help="SQL file to validate"),
    ] = None,
    execute: Annotated[
        str | None,
        typer.Option("--execute", "-e", help="Validate inline SQL query"),
    ] = None,
) -> None:
    """Dry-run a SQL query and report syntax and reference diagnostics."""
    sql = read_query(ctx, file, execute)
    resolved = get_resolved_config(ctx)
    client = build_client(resolved)

    outcome = asyncio.run(check_query(sql, client, resolved.session_settings()))

    formatter = formatter_for(ctx, source=file)
    write_output(formatter.format_diagnostics(outcome.diagnostics))
    if outcome.error_message is not None and not outcome.diagnostics:
        typer.echo(f"Error: {outcome.error_message}", err=True)
    if not outcome.ok:
        raise typer.Exit(ExitCode.QUERY_ERROR)
