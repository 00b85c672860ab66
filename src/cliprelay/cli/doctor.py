"""cliprelay doctor command for checking external tool health."""

from __future__ import annotations

import json
import sys

import click

from cliprelay.cli.common import load_cli_config
from cliprelay.cli.exit_codes import ExitCode
from cliprelay.tools import ToolInfo, detect_tool

REQUIRED_TOOLS = ("ffmpeg", "ffprobe")
INSTALL_HINT = "Install ffmpeg: https://ffmpeg.org/download.html"


def _format_status(available: bool) -> str:
    return "✓" if available else "✗"


def _format_version(version: str | None) -> str:
    return version if version else "not found"


@click.command("doctor")
@click.option("--verbose", "-v", is_flag=True, help="Show tool paths")
@click.option("--json", "json_output", is_flag=True, help="Output results as JSON")
@click.pass_context
def doctor_command(ctx: click.Context, verbose: bool, json_output: bool) -> None:
    """Check that ffmpeg and ffprobe are installed.

    Exit codes:
      0 - All tools available
      30 - A required tool is missing
    """
    config = load_cli_config(ctx)
    configured = {"ffmpeg": config.tools.ffmpeg, "ffprobe": config.tools.ffprobe}
    tools: list[ToolInfo] = [
        detect_tool(name, configured[name]) for name in REQUIRED_TOOLS
    ]
    missing = [tool.name for tool in tools if not tool.is_available]

    if json_output:
        payload = {
            tool.name: {
                "available": tool.is_available,
                "path": str(tool.path) if tool.path else None,
                "version": tool.version,
            }
            for tool in tools
        }
        click.echo(json.dumps(payload, indent=2))
    else:
        click.echo("cliprelay External Tool Health Check")
        click.echo("=" * 40)
        for tool in tools:
            status = _format_status(tool.is_available)
            version = _format_version(tool.version)
            path_info = f" ({tool.path})" if tool.path and verbose else ""
            click.echo(f"  {status} {tool.name}: {version}{path_info}")
            if not tool.is_available:
                click.echo(f"    └─ {INSTALL_HINT}")

    if missing:
        sys.exit(ExitCode.TOOL_NOT_AVAILABLE)
