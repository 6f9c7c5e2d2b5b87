"""Query Console main entry point and command registration."""

from __future__ import annotations

import atexit
from pathlib import Path  # noqa: TC003
from typing import Annotated

import sentry_sdk
import typer

from query_console.__about__ import __version__
from query_console.cli.commands.check import check_command
from query_console.cli.commands.config import config_app
from query_console.cli.commands.run import run_command
from query_console.cli.commands.watch import watch_command
from query_console.cli.output import OutputFormat  # noqa: TC001
from query_console.core.exceptions import QueryConsoleError
from query_console.core.logging import setup_logging
from query_console.core.monitoring import setup_sentry

app = typer.Typer(
    help="Query Console - validate, run and cancel queries against a query job backend",
    no_args_is_help=True,
)

app.add_typer(config_app, name="config")
app.command("check")(check_command)
app.command("run")(run_command)
app.command("watch")(watch_command)


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"query-console {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Enable verbose logging"),
    ] = False,
    profile: Annotated[
        str | None,
        typer.Option("--profile", "-P", help="Named backend profile"),
    ] = None,
    url: Annotated[
        str | None,
        typer.Option("--url", help="Query backend base URL"),
    ] = None,
    timeout: Annotated[
        float | None,
        typer.Option("--timeout", "-t", help="HTTP request timeout in seconds"),
    ] = None,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config file"),
    ] = None,
    format: Annotated[
        OutputFormat | None,
        typer.Option("--format", "-f", help="Output format: text|json"),
    ] = None,
    compact: Annotated[
        bool,
        typer.Option("--compact", help="Compact JSON output (no indentation)"),
    ] = False,
) -> None:
    """Query Console - validate, run and cancel queries against a query job backend."""
    setup_logging(verbose)
    if setup_sentry():
        transaction = sentry_sdk.start_transaction(
            op="cli", name=ctx.invoked_subcommand or "query-console"
        )
        transaction.__enter__()

        def cleanup() -> None:
            transaction.__exit__(None, None, None)
            sentry_sdk.flush(timeout=2)

        atexit.register(cleanup)

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["profile"] = profile
    ctx.obj["url"] = url
    ctx.obj["timeout"] = timeout
    ctx.obj["config_file"] = config_file
    ctx.obj["format"] = format.value if format else None
    ctx.obj["compact"] = compact


def run() -> None:
    """Entry point with global error handling."""
    try:
        app()
    except QueryConsoleError as e:
        sentry_sdk.capture_exception(e)
        typer.echo(f"Error: {e.message}", err=True)
        raise SystemExit(e.exit_code) from None
    except SystemExit:
        raise
    except KeyboardInterrupt:
        raise SystemExit(130) from None
    except Exception as e:
        sentry_sdk.capture_exception(e)
        typer.echo(f"Error: {e}", err=True)
        raise SystemExit(1) from None
