"""HTTP application.

This module provides the aiohttp Application with the upload endpoint, the
health check, and the shared resources (HTTP client, orchestrator) that live
as long as the server.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import asdict, dataclass

import httpx
from aiohttp import web

from cliprelay import __version__
from cliprelay.config import CliprelayConfig
from cliprelay.exceptions import ProcessingError
from cliprelay.logging import request_context
from cliprelay.server.cleanup import cleanup_orphaned_scratch_files
from cliprelay.server.errors import (
    INTERNAL_ERROR,
    SHUTTING_DOWN,
    api_error,
    processing_error_response,
)
from cliprelay.server.lifecycle import ServerLifecycle
from cliprelay.server.middleware import cors_middleware
from cliprelay.server.uploads import receive_submission
from cliprelay.workflow import (
    RequestOrchestrator,
    RequestTimeline,
    ScratchSpace,
    Submission,
)

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


@dataclass
class HealthStatus:
    """Health check response payload."""

    status: str
    """Overall status: 'healthy' or 'unhealthy'."""

    uptime_seconds: float
    """Seconds since server startup."""

    version: str
    """cliprelay version string."""

    shutting_down: bool = False
    """True if graceful shutdown is in progress."""

    def to_dict(self) -> dict:
        return asdict(self)


def create_app(
    config: CliprelayConfig | None = None,
    *,
    orchestrator: RequestOrchestrator | None = None,
    lifecycle: ServerLifecycle | None = None,
) -> web.Application:
    """Create and configure the aiohttp Application.

    Args:
        config: Application configuration. Defaults are used if omitted.
        orchestrator: Pre-built orchestrator. If omitted, one is wired from
            ``config`` on startup around a shared httpx client.
        lifecycle: Lifecycle state for the health endpoint. If omitted, a
            new one is created.

    Returns:
        Configured aiohttp Application instance.
    """
    config = config or CliprelayConfig()

    app = web.Application(
        middlewares=[cors_middleware],
        client_max_size=config.server.max_upload_bytes,
    )

    # Store runtime state in app dict
    app["config"] = config
    app["lifecycle"] = lifecycle or ServerLifecycle(
        shutdown_timeout=config.server.shutdown_timeout
    )
    app["orchestrator"] = orchestrator
    app["http_client"] = None

    app.router.add_get("/", root_handler)
    app.router.add_get("/health", health_handler)
    app.router.add_post("/process-upload", process_upload_handler)

    app.on_startup.append(_sweep_scratch_dir)
    app.on_startup.append(_start_http_client)
    app.on_cleanup.append(_close_http_client)

    return app


async def _sweep_scratch_dir(app: web.Application) -> None:
    """Remove scratch files orphaned by a previous process."""
    config: CliprelayConfig = app["config"]
    try:
        cleaned = await asyncio.to_thread(
            cleanup_orphaned_scratch_files, config.processing.scratch_dir
        )
    except OSError as e:
        logger.warning("Scratch directory sweep failed: %s", e)
        return
    if cleaned > 0:
        logger.info("Cleaned %d orphaned scratch file(s) from previous runs", cleaned)


async def _start_http_client(app: web.Application) -> None:
    """Create the shared HTTP client and default orchestrator if needed."""
    if app["orchestrator"] is not None:
        return
    client = httpx.AsyncClient()
    app["http_client"] = client
    app["orchestrator"] = RequestOrchestrator.from_config(app["config"], client)
    logger.debug("Created shared HTTP client")


async def _close_http_client(app: web.Application) -> None:
    client: httpx.AsyncClient | None = app.get("http_client")
    if client is not None:
        logger.debug("Closing shared HTTP client")
        await client.aclose()


async def root_handler(request: web.Request) -> web.Response:
    """Handle GET / liveness probes."""
    return web.json_response({"status": "ok"})


async def health_handler(request: web.Request) -> web.Response:
    """Handle GET /health requests.

    Returns 200 while serving and 503 once shutdown has started.
    """
    lifecycle: ServerLifecycle | None = request.app.get("lifecycle")
    shutting_down = lifecycle.is_shutting_down if lifecycle else False
    uptime = lifecycle.uptime_seconds if lifecycle else 0.0

    health = HealthStatus(
        status="unhealthy" if shutting_down else "healthy",
        uptime_seconds=round(uptime, 1),
        version=__version__,
        shutting_down=shutting_down,
    )
    return web.json_response(health.to_dict(), status=503 if shutting_down else 200)


async def process_upload_handler(request: web.Request) -> web.Response:
    """Handle POST /process-upload.

    Stores the uploaded clip, transforms it per the form directives and
    relays the result to the destination upload URL.

    Returns:
        200 ``{"status": "success", "asset_id": ...}`` on success, otherwise
        an api_error response (400 for invalid requests, 500 for processing
        failures).
    """
    lifecycle: ServerLifecycle | None = request.app.get("lifecycle")
    if lifecycle is not None and lifecycle.is_shutting_down:
        return api_error("server is shutting down", code=SHUTTING_DOWN, status=503)

    orchestrator: RequestOrchestrator = request.app["orchestrator"]
    config: CliprelayConfig = request.app["config"]
    max_bytes = config.server.max_upload_bytes

    async def receive(scratch: ScratchSpace) -> Submission:
        return await receive_submission(request, scratch, max_bytes)

    request_id = uuid.uuid4().hex[:8]
    with request_context(request_id):
        try:
            result = await orchestrator.handle(receive, RequestTimeline())
        except ProcessingError as e:
            if e.http_status < 500:
                logger.warning("Rejected upload: %s", e)
            else:
                logger.error("Upload processing failed: %s", e)
            response = processing_error_response(e)
        except Exception:
            logger.exception("Unexpected error while processing upload")
            response = api_error(
                "internal server error", code=INTERNAL_ERROR, status=500
            )
        else:
            response = web.json_response(
                {"status": "success", "asset_id": result.correlation_id}
            )

    response.headers[REQUEST_ID_HEADER] = request_id
    return response
