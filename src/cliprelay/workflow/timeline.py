"""Request lifecycle events.

Each milestone of a request is logged as a structured event carrying the
event name and the milliseconds elapsed since the request started. The
request id comes from the logging context, so the events of one request can
be correlated in JSON logs.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimelineEvent:
    """One recorded milestone."""

    name: str
    elapsed_ms: float
    fields: dict[str, Any]


class RequestTimeline:
    """Records and logs the milestones of a single request."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._start = clock()
        self.events: list[TimelineEvent] = []

    def mark(self, name: str, level: int = logging.INFO, **fields: Any) -> float:
        """Record milestone ``name`` and return elapsed milliseconds."""
        elapsed_ms = round((self._clock() - self._start) * 1000, 1)
        self.events.append(TimelineEvent(name, elapsed_ms, fields))
        logger.log(
            level,
            "%s (+%.1fms)",
            name,
            elapsed_ms,
            extra={"event": name, "elapsed_ms": elapsed_ms, **fields},
        )
        return elapsed_ms

    @property
    def names(self) -> list[str]:
        """Milestone names in the order they were recorded."""
        return [event.name for event in self.events]
