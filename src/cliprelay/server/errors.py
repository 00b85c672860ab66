"""Standardized API error response helper.

Every error response has the same shape:
- ``error``: Human-readable error message
- ``code``: Machine-readable error code string
- ``details`` (optional): Additional context for the error

Usage:
    from cliprelay.server.errors import api_error, INVALID_REQUEST

    return api_error("missing video", code=INVALID_REQUEST)
"""

from __future__ import annotations

from typing import Any

from aiohttp import web

from cliprelay.exceptions import ProcessingError, RequestValidationError

# --- Error code constants ---

INVALID_REQUEST = "INVALID_REQUEST"
INTERNAL_ERROR = "INTERNAL_ERROR"
SHUTTING_DOWN = "SHUTTING_DOWN"
PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"


def api_error(
    message: str,
    *,
    code: str,
    status: int = 400,
    details: Any = None,
) -> web.Response:
    """Create a standardized JSON error response.

    Args:
        message: Human-readable error description.
        code: Machine-readable error code.
        status: HTTP status code (default 400).
        details: Optional additional context (string, list, or dict).

    Returns:
        aiohttp JSON response with ``{"error": ..., "code": ...}`` body.
    """
    body: dict[str, Any] = {"error": message, "code": code}
    if details is not None:
        body["details"] = details
    return web.json_response(body, status=status)


def processing_error_response(error: ProcessingError) -> web.Response:
    """Map a ProcessingError onto its error response."""
    details = None
    if isinstance(error, RequestValidationError) and error.parameter:
        details = {"parameter": error.parameter}
    return api_error(
        str(error), code=error.code, status=error.http_status, details=details
    )
