"""Structured logging module for cliprelay.

Provides configurable logging with JSON format support and file rotation.
Includes request context support for concurrent request handling.
"""

from cliprelay.logging.config import RequestTagFormatter, configure_logging
from cliprelay.logging.context import (
    RequestContextFilter,
    get_request_context,
    request_context,
    set_request_context,
)
from cliprelay.logging.handlers import JSONFormatter

__all__ = [
    "JSONFormatter",
    "RequestContextFilter",
    "RequestTagFormatter",
    "configure_logging",
    "get_request_context",
    "request_context",
    "set_request_context",
]
