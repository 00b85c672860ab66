"""Root logger setup for the cliprelay service."""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

from cliprelay.logging.context import RequestContextFilter
from cliprelay.logging.handlers import JSONFormatter

if TYPE_CHECKING:
    from cliprelay.config.models import LoggingConfig

TEXT_FORMAT = "%(asctime)s - %(request_tag)s%(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

# httpx logs every request line at INFO, signed upload URLs included
_URL_LOGGING_LIBRARIES = ("httpx", "httpcore")


class RequestTagFormatter(logging.Formatter):
    """Text formatter that marks records logged while serving a request.

    A record carrying ``request_id`` "a1b2c3d4" is rendered with a
    ``[Ra1b2c3d4] `` tag before the logger name; startup, shutdown and sweep
    messages carry no tag.
    """

    def __init__(self) -> None:
        super().__init__(TEXT_FORMAT, datefmt=DATE_FORMAT)

    def formatMessage(self, record: logging.LogRecord) -> str:
        request_id = getattr(record, "request_id", None)
        record.request_tag = f"[R{request_id}] " if request_id else ""
        return super().formatMessage(record)


def _open_log_file(config: LoggingConfig) -> logging.Handler | None:
    path = Path(config.file).expanduser()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        return RotatingFileHandler(
            path,
            maxBytes=config.max_bytes,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
    except OSError as e:
        sys.stderr.write(f"Warning: Could not open log file {path}: {e}\n")
        return None


def configure_logging(config: LoggingConfig) -> list[logging.Handler]:
    """Replace the root logger's handlers according to ``config``.

    Records go to the log file when one is configured and can be opened, and
    to stderr when there is no file or ``include_stderr`` is set. Every
    handler carries a RequestContextFilter, so both text and JSON output
    identify the request a record belongs to.

    Returns:
        The handlers now attached to the root logger.
    """
    level = logging.getLevelNamesMapping().get(config.level.upper(), logging.INFO)
    formatter: logging.Formatter = (
        JSONFormatter() if config.format.casefold() == "json" else RequestTagFormatter()
    )

    handlers: list[logging.Handler] = []
    if config.file:
        file_handler = _open_log_file(config)
        if file_handler is not None:
            handlers.append(file_handler)
    if config.include_stderr or not handlers:
        handlers.append(logging.StreamHandler(sys.stderr))

    context_filter = RequestContextFilter()
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(context_filter)
        root_logger.addHandler(handler)

    library_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in _URL_LOGGING_LIBRARIES:
        logging.getLogger(name).setLevel(library_level)

    return handlers
