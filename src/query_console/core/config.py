"""Configuration management for Query Console.

Handles the TOML config file, environment variables, named backend
profiles, and configuration precedence resolution.

Precedence order (highest to lowest):
1. CLI flags (--url, --timeout, --poll-interval)
2. Environment variables (QUERY_CONSOLE_URL, QUERY_CONSOLE_TIMEOUT)
3. Named profile (--profile or QUERY_CONSOLE_PROFILE env var)
4. Config file defaults
5. Built-in defaults
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationInfo, field_validator

from query_console.core.exceptions import ConfigError

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "query-console" / "config.toml"

_ENV_VARS: dict[str, str] = {
    "QUERY_CONSOLE_URL": "base_url",
    "QUERY_CONSOLE_TIMEOUT": "request_timeout",
}

_PROFILE_DEFAULTS: dict[str, Any] = {
    "base_url": "http://localhost:8888/bigquery/v1",
    "endpoint": "query",
    "request_timeout": 30.0,
    "job_config": {},
}

_TIMING_DEFAULTS: dict[str, int] = {
    "debounce_ms": 1500,
    "poll_interval_ms": 2000,
    "error_reset_ms": 2000,
    "validation_poll_interval_ms": 1000,
}


def _check_positive_ms(name: str, v: int) -> int:
    if v <= 0:
        msg = f"Invalid {name}: {v}. Must be a positive number of milliseconds"
        raise ValueError(msg)
    return v


class BackendProfile(BaseModel):
    base_url: str = "http://localhost:8888/bigquery/v1"
    endpoint: str = "query"
    request_timeout: float = 30.0
    job_config: dict[str, Any] = {}

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            msg = f"Invalid base_url: '{v}'. Expected an http:// or https:// URL"
            raise ValueError(msg)
        return v.rstrip("/")

    @field_validator("request_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            msg = f"Invalid request_timeout: {v}. Must be > 0"
            raise ValueError(msg)
        return v


class AppConfig(BaseModel):
    debounce_ms: int = 1500
    poll_interval_ms: int = 2000
    error_reset_ms: int = 2000
    validation_poll_interval_ms: int = 1000
    default_profile: str | None = None
    profiles: dict[str, BackendProfile] = {}

    @field_validator(
        "debounce_ms", "poll_interval_ms", "error_reset_ms", "validation_poll_interval_ms"
    )
    @classmethod
    def validate_interval(cls, v: int, info: ValidationInfo) -> int:
        return _check_positive_ms(info.field_name, v)


class SessionSettings(BaseModel):
    """Timings and job flags used by one editor session."""

    debounce_ms: int = 1500
    poll_interval_ms: int = 2000
    error_reset_ms: int = 2000
    validation_poll_interval_ms: int = 1000
    job_config: dict[str, Any] = {}


class ResolvedConfig(BaseModel):
    base_url: str = "http://localhost:8888/bigquery/v1"
    endpoint: str = "query"
    request_timeout: float = 30.0
    job_config: dict[str, Any] = {}
    debounce_ms: int = 1500
    poll_interval_ms: int = 2000
    error_reset_ms: int = 2000
    validation_poll_interval_ms: int = 1000
    active_profile: str | None = None
    sources: dict[str, str] = {}

    def session_settings(self) -> SessionSettings:
        return SessionSettings(
            debounce_ms=self.debounce_ms,
            poll_interval_ms=self.poll_interval_ms,
            error_reset_ms=self.error_reset_ms,
            validation_poll_interval_ms=self.validation_poll_interval_ms,
            job_config=dict(self.job_config),
        )


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load configuration from TOML file.

    Returns default AppConfig if file doesn't exist.
    Raises ConfigError on malformed TOML or invalid config.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if not config_path.exists():
        return AppConfig()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Malformed TOML in {config_path}: {e}"
        raise ConfigError(msg) from e

    try:
        return AppConfig.model_validate(data)
    except Exception as e:
        msg = f"Invalid configuration in {config_path}: {e}"
        raise ConfigError(msg) from e


def resolve_config(
    config: AppConfig,
    profile_name: str | None = None,
    **cli_overrides: Any,
) -> ResolvedConfig:
    """Resolve configuration using precedence chain.

    CLI > env > profile > config defaults > built-in defaults.
    """
    sources: dict[str, str] = {}
    resolved: dict[str, Any] = {}

    # Layer 1: Built-in defaults
    resolved.update(_PROFILE_DEFAULTS)
    resolved["job_config"] = {}
    resolved.update(_TIMING_DEFAULTS)
    for key in resolved:
        sources[key] = "default"

    # Layer 2: Config file global defaults
    for key, default in _TIMING_DEFAULTS.items():
        value = getattr(config, key)
        if value != default:
            resolved[key] = value
            sources[key] = "config"

    # Layer 3: Named profile
    effective_profile = profile_name
    if not effective_profile:
        effective_profile = os.environ.get("QUERY_CONSOLE_PROFILE")
    if not effective_profile:
        effective_profile = config.default_profile

    if effective_profile:
        if effective_profile not in config.profiles:
            available = (
                ", ".join(sorted(config.profiles.keys())) if config.profiles else "none"
            )
            msg = f"Unknown profile: '{effective_profile}'. Available profiles: {available}"
            raise ConfigError(msg)
        profile = config.profiles[effective_profile]
        for key in profile.model_fields_set:
            if key in resolved:
                resolved[key] = getattr(profile, key)
                sources[key] = f"profile: {effective_profile}"

    # Layer 4: Environment variables
    for env_var, field_name in _ENV_VARS.items():
        value = os.environ.get(env_var)
        if value is None:
            continue
        if field_name == "request_timeout":
            try:
                resolved[field_name] = float(value)
            except ValueError:
                msg = f"Invalid {env_var} value: '{value}'. Must be a number"
                raise ConfigError(msg) from None
        else:
            resolved[field_name] = value
        sources[field_name] = f"env: {env_var}"

    # Layer 5: CLI flags (highest priority)
    cli_to_field = {
        "url": "base_url",
        "timeout": "request_timeout",
        "poll_interval": "poll_interval_ms",
        "debounce": "debounce_ms",
    }
    for cli_name, field_name in cli_to_field.items():
        value = cli_overrides.get(cli_name)
        if value is not None:
            resolved[field_name] = value
            sources[field_name] = f"cli: --{cli_name.replace('_', '-')}"

    # Re-validate values that bypassed the profile model.
    try:
        BackendProfile(
            base_url=resolved["base_url"],
            endpoint=resolved["endpoint"],
            request_timeout=resolved["request_timeout"],
        )
    except ValueError as e:
        msg = f"Invalid backend settings: {e}"
        raise ConfigError(msg) from e
    resolved["base_url"] = str(resolved["base_url"]).rstrip("/")

    resolved["active_profile"] = effective_profile
    resolved["sources"] = sources
    return ResolvedConfig(**resolved)
