"""CLI serve command.

This module provides the `cliprelay serve` command that runs the upload
relay as a long-lived HTTP service.
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from pathlib import Path

import click

from cliprelay.cli.common import load_cli_config, setup_logging
from cliprelay.cli.exit_codes import ExitCode
from cliprelay.config import CliprelayConfig

logger = logging.getLogger(__name__)


async def run_server(config: CliprelayConfig) -> int:
    """Run the HTTP server until a shutdown signal arrives.

    Args:
        config: Loaded configuration.

    Returns:
        Exit code (0 for clean shutdown, non-zero for errors).
    """
    from aiohttp import web

    from cliprelay.server import ServerLifecycle, create_app
    from cliprelay.server.signals import (
        remove_signal_handlers,
        setup_signal_handlers,
    )

    bind = config.server.bind
    port = config.server.port
    shutdown_timeout = config.server.shutdown_timeout

    lifecycle = ServerLifecycle(shutdown_timeout=shutdown_timeout)
    shutdown_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    setup_signal_handlers(loop, lifecycle, shutdown_event)

    app = create_app(config, lifecycle=lifecycle)

    # shutdown_timeout bounds how long in-flight uploads may keep running
    runner = web.AppRunner(app, shutdown_timeout=shutdown_timeout)
    await runner.setup()

    try:
        site = web.TCPSite(runner, bind, port)
        await site.start()

        logger.info(
            "cliprelay started on http://%s:%d (PID %d)", bind, port, os.getpid()
        )
        logger.info("Scratch directory: %s", config.processing.scratch_dir)
        logger.info("Press Ctrl+C or send SIGTERM to stop")

        await shutdown_event.wait()

        logger.info(
            "Shutdown initiated, waiting up to %.1fs for in-flight requests",
            shutdown_timeout,
        )
    except OSError as e:
        if e.errno == 98:
            logger.error("Port %d is already in use", port)
        elif e.errno == 99:
            logger.error("Cannot bind to address %s", bind)
        else:
            logger.error("Server error: %s", e)
        return ExitCode.SERVER_ERROR
    finally:
        remove_signal_handlers(loop)
        await runner.cleanup()
        logger.info("cliprelay stopped")

    return ExitCode.SUCCESS


@click.command("serve")
@click.option(
    "--bind",
    type=str,
    default=None,
    help="Address to bind to (default: 0.0.0.0).",
)
@click.option(
    "--port",
    "-p",
    type=click.IntRange(1, 65535),
    default=None,
    help="Port to bind to (default: $PORT or 8080).",
)
@click.option(
    "--scratch-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory for uploads and intermediate files.",
)
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Override log level (default: info).",
)
@click.option(
    "--log-format",
    type=click.Choice(["text", "json"], case_sensitive=False),
    default=None,
    help="Log format: text or json (default: text).",
)
@click.pass_context
def serve_command(
    ctx: click.Context,
    bind: str | None,
    port: int | None,
    scratch_dir: Path | None,
    log_level: str | None,
    log_format: str | None,
) -> None:
    """Run the upload relay HTTP server.

    Accepts clips on POST /process-upload and exposes a health endpoint at
    /health. Handles graceful shutdown on SIGTERM or SIGINT (Ctrl+C).

    Configuration precedence (highest to lowest):
      1. CLI flags (--bind, --port, --log-level, etc.)
      2. Environment variables (CLIPRELAY_*, PORT)
      3. Config file (--config or ~/.cliprelay/config.toml)
      4. Default values

    \b
    Examples:
        cliprelay serve                       # Start with defaults
        cliprelay serve --port 9000           # Custom port
        cliprelay serve --log-format json     # JSON logging for log shipping
    """
    config = load_cli_config(
        ctx,
        bind=bind,
        port=port,
        scratch_dir=scratch_dir,
        log_level=log_level,
        log_format=log_format,
    )
    # Always include stderr for the service (container logs)
    setup_logging(ctx, config, include_stderr=True)

    if config.server.port < 1024:
        logger.warning("Port %d is privileged and may require root", config.server.port)

    logger.info(
        "Starting cliprelay (bind=%s, port=%d, timeout=%.1fs)",
        config.server.bind,
        config.server.port,
        config.server.shutdown_timeout,
    )

    try:
        exit_code = asyncio.run(run_server(config))
    except KeyboardInterrupt:
        logger.info("Interrupted before server started")
        sys.exit(ExitCode.INTERRUPTED)
    sys.exit(exit_code)
