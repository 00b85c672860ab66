"""Helpers shared by CLI commands: config loading and logging setup."""

from __future__ import annotations

import sys
from dataclasses import replace
from typing import Any

import click

from cliprelay.cli.exit_codes import ExitCode
from cliprelay.config import CliprelayConfig, ConfigFileError, LoggingConfig, get_config
from cliprelay.logging import configure_logging


def load_cli_config(ctx: click.Context, **overrides: Any) -> CliprelayConfig:
    """Load configuration for a command, exiting on invalid config.

    Args:
        ctx: Click context; ``ctx.obj["config_path"]`` selects the file.
        **overrides: CLI overrides passed through to get_config().
    """
    obj = ctx.obj or {}
    try:
        return get_config(config_path=obj.get("config_path"), strict=True, **overrides)
    except (ConfigFileError, ValueError) as e:
        click.echo(f"Error: Invalid configuration: {e}", err=True)
        sys.exit(ExitCode.CONFIG_ERROR)


def cli_logging_config(
    ctx: click.Context,
    config: CliprelayConfig,
    *,
    include_stderr: bool | None = None,
) -> LoggingConfig:
    """The [logging] section with the group's --log-* options applied.

    ``include_stderr`` lets ``serve`` keep console output while logging to a
    file. Rotation settings always come from the config file.
    """
    obj = ctx.obj or {}
    overrides = {
        "level": obj.get("log_level"),
        "file": obj.get("log_file"),
        "format": "json" if obj.get("log_json") else None,
        "include_stderr": include_stderr,
    }
    return replace(
        config.logging,
        **{name: value for name, value in overrides.items() if value is not None},
    )


def setup_logging(
    ctx: click.Context,
    config: CliprelayConfig,
    *,
    include_stderr: bool | None = None,
) -> None:
    """Configure logging from config plus the group-level CLI options."""
    configure_logging(cli_logging_config(ctx, config, include_stderr=include_stderr))
