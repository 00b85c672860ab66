"""DurationProber interface for clip length inspection."""

from pathlib import Path
from typing import Protocol


class DurationProber(Protocol):
    """Protocol for duration probing implementations.

    Probing is a soft operation: implementations return None instead of
    raising when the duration cannot be determined.
    """

    def probe(self, path: Path) -> float | None:
        """Return the clip duration in seconds, or None if unknown."""
        ...

    async def probe_async(self, path: Path) -> float | None:
        """Async variant of probe() for use inside the event loop."""
        ...
