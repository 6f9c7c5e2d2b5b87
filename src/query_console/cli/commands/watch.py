from __future__ import annotations

import asyncio
from pathlib import Path  # noqa: TC003
from typing import TYPE_CHECKING, Annotated

import typer

from query_console.cli.commands._shared import (
    build_client,
    formatter_for,
    get_resolved_config,
)
from query_console.cli.output import write_output
from query_console.core.editor import FileEditor
from query_console.core.exceptions import InputError
from query_console.core.exit_codes import ExitCode
from query_console.core.runner import watch_file

if TYPE_CHECKING:
    from query_console.core.models import Diagnostic


def watch_command(
    ctx: typer.Context,
    file: Annotated[
        Path,
        typer.Argument(help="SQL file to watch"),
    ],
    interval: Annotated[
        float,
        typer.Option("--interval", "-i", help="Seconds between file checks", min=0.05),
    ] = 0.25,
    duration: Annotated[
        float,
        typer.Option(
            "--duration", "-D", help="Total duration in seconds (0 = indefinite)"
        ),
    ] = 0,
) -> None:
    """Validate a SQL file every time it is saved, printing fresh diagnostics."""
    resolved = get_resolved_config(ctx)
    client = build_client(resolved)
    formatter = formatter_for(ctx, source=str(file))

    def on_diagnostics(diagnostics: list[Diagnostic]) -> None:
        write_output(formatter.format_diagnostics(diagnostics))

    try:
        editor = FileEditor(file, on_diagnostics=on_diagnostics)
    except InputError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(ExitCode.INPUT_ERROR) from exc

    typer.echo(f"Watching {file} (Ctrl-C to stop)...", err=True)
    try:
        edits = asyncio.run(
            watch_file(
                editor,
                client,
                resolved.session_settings(),
                interval=interval,
                duration=duration,
            )
        )
    except KeyboardInterrupt:
        typer.echo("Stopped watching.", err=True)
        return

    typer.echo(f"Stopped watching after {edits} edit{'s' if edits != 1 else ''}.", err=True)
