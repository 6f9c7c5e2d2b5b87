"""Configuration management CLI commands."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import typer

from query_console.cli.commands._shared import get_resolved_config
from query_console.core.config import DEFAULT_CONFIG_PATH, load_config

if TYPE_CHECKING:
    from pathlib import Path

config_app = typer.Typer(help="Configuration management commands")


@config_app.callback(invoke_without_command=True)
def config_callback(ctx: typer.Context) -> None:
    if not ctx.invoked_subcommand:
        typer.echo(ctx.get_help())
        raise typer.Exit()


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Display resolved configuration with source attribution."""
    resolved = get_resolved_config(ctx)
    config_path: Path | None = ctx.obj.get("config_file")
    sources = resolved.sources

    typer.echo("Backend Settings (resolved):")
    backend_fields = [
        ("url", "base_url", resolved.base_url),
        ("endpoint", "endpoint", resolved.endpoint),
        ("timeout", "request_timeout", f"{resolved.request_timeout}s"),
        ("job_config", "job_config", json.dumps(resolved.job_config, sort_keys=True)),
    ]
    for label, source_key, value in backend_fields:
        source = sources.get(source_key, "default")
        typer.echo(f"  {label}: {value} ({source})")

    typer.echo("")
    typer.echo("Editor Timings:")
    for key in (
        "debounce_ms",
        "poll_interval_ms",
        "error_reset_ms",
        "validation_poll_interval_ms",
    ):
        source = sources.get(key, "default")
        typer.echo(f"  {key}: {getattr(resolved, key)} ({source})")

    typer.echo("")
    if resolved.active_profile:
        typer.echo(f"Active Profile: {resolved.active_profile}")
    else:
        typer.echo("Active Profile: none")

    display_path = config_path or DEFAULT_CONFIG_PATH
    typer.echo(f"Config File: {display_path}")


@config_app.command("profiles")
def config_profiles(ctx: typer.Context) -> None:
    """List available backend profiles."""
    config_path: Path | None = ctx.obj.get("config_file")
    app_config = load_config(config_path)
    active_profile = ctx.obj.get("profile") or app_config.default_profile

    if not app_config.profiles:
        typer.echo("No profiles configured.")
        display_path = config_path or DEFAULT_CONFIG_PATH
        typer.echo(f"Add profiles to: {display_path}")
        return

    typer.echo("Available Profiles:")
    typer.echo("")
    for name, profile in sorted(app_config.profiles.items()):
        is_active = name == active_profile
        marker = "* " if is_active else "  "
        label = " (active)" if is_active else ""
        typer.echo(f"{marker}{name}{label}")

        display_fields = [
            ("url", profile.base_url),
            ("endpoint", profile.endpoint),
        ]
        if profile.request_timeout != 30.0:
            display_fields.append(("timeout", f"{profile.request_timeout}s"))
        if profile.job_config:
            display_fields.append(
                ("job_config", json.dumps(profile.job_config, sort_keys=True))
            )

        for field_name, value in display_fields:
            typer.echo(f"      {field_name}: {value}")
        typer.echo("")
