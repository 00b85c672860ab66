"""Request context for structured logging.

Provides context propagation for request handlers using contextvars,
enabling automatic injection of request_id into log records. Each aiohttp
request runs in its own task, so concurrent requests never see each
other's context.
"""

from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Generator

_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)


def set_request_context(request_id: str | None) -> None:
    """Set the current request identifier."""
    _request_id.set(request_id)


def get_request_context() -> str | None:
    """Get the current request identifier, or None outside a request."""
    return _request_id.get()


@contextmanager
def request_context(request_id: str) -> Generator[None, None, None]:
    """Context manager for request processing context.

    Sets the request id on entry and restores the previous value on exit.

    Example:
        with request_context("a1b2c3d4"):
            logger.info("Processing upload")  # Automatically includes context
    """
    token = _request_id.set(request_id)
    try:
        yield
    finally:
        _request_id.reset(token)


class RequestContextFilter(logging.Filter):
    """Logging filter that stamps records with the current request id.

    Never filters records out. Outside a request ``request_id`` is None.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_context()
        return True
