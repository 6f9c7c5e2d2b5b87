from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Annotated

import typer

from query_console.cli.commands._shared import (
    build_client,
    formatter_for,
    get_resolved_config,
    read_query,
)
from query_console.cli.helpers import format_processed
from query_console.cli.output import write_output
from query_console.core.exit_codes import ExitCode
from query_console.core.runner import run_query

if TYPE_CHECKING:
    from query_console.core.models import JobSnapshot


def run_command(
    ctx: typer.Context,
    file: Annotated[
        str | None,
        typer.Argument(help="SQL file to run"),
    ] = None,
    execute: Annotated[
        str | None,
        typer.Option("--execute", "-e", help="Run inline SQL query"),
    ] = None,
    poll_interval: Annotated[
        int | None,
        typer.Option(
            "--poll-interval", help="Milliseconds between job status polls", min=1
        ),
    ] = None,
) -> None:
    """Submit a SQL query as a job, follow its progress and print the result.

    Press Ctrl-C while the job is running to cancel it.
    """
    sql = read_query(ctx, file, execute)
    resolved = get_resolved_config(ctx, poll_interval=poll_interval)
    client = build_client(resolved)
    last_status: str | None = None

    def on_snapshot(snapshot: JobSnapshot) -> None:
        nonlocal last_status
        status = format_processed(snapshot.bytes_processed)
        if status and status != last_status:
            typer.echo(status, err=True)
            last_status = status

    try:
        outcome = asyncio.run(
            run_query(sql, client, resolved.session_settings(), on_snapshot)
        )
    except KeyboardInterrupt:
        typer.echo("Query cancelled.", err=True)
        raise typer.Exit(130) from None

    if outcome.failed:
        typer.echo(f"Error: {outcome.snapshot.error_message}", err=True)
        raise typer.Exit(ExitCode.QUERY_ERROR)

    if outcome.result is None:
        typer.echo("Query returned no results.", err=True)
        return

    formatter = formatter_for(ctx, source=file)
    write_output(formatter.format_result(outcome.result))
