"""FFprobe-based implementation of the DurationProber protocol."""

from __future__ import annotations

import asyncio
import logging
import math
import subprocess  # nosec B404 - subprocess is required for ffprobe invocation
from pathlib import Path

from cliprelay.core.subprocess_utils import run_command
from cliprelay.tools import find_tool

logger = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT = 30


def parse_duration_output(output: str) -> float | None:
    """Parse ffprobe's bare duration output.

    Returns:
        Duration in seconds if the first line is a finite number, else None.
        ffprobe prints "N/A" when the container has no duration.
    """
    lines = output.strip().splitlines()
    if not lines:
        return None
    try:
        duration = float(lines[0].strip())
    except ValueError:
        return None
    return duration if math.isfinite(duration) else None


class FFprobeDurationProber:
    """Reads a clip's container duration with ffprobe.

    Every failure mode (ffprobe missing, timeout, non-zero exit, missing
    video stream, unparseable output) yields None. Duration is only a hint
    for trimming the music track, so it must never abort a request.
    """

    def __init__(
        self,
        ffprobe_path: Path | None = None,
        timeout: int = DEFAULT_PROBE_TIMEOUT,
    ) -> None:
        """Initialize the prober.

        Args:
            ffprobe_path: Optional configured path to ffprobe. If not
                provided (or not a file), ffprobe is looked up in PATH on
                each probe.
            timeout: Seconds before ffprobe is killed.
        """
        self._configured_path = ffprobe_path
        self._timeout = timeout

    def build_command(self, ffprobe: Path, path: Path) -> list[str | Path]:
        """Command asking for the primary video stream's container duration."""
        return [
            ffprobe,
            "-v",
            "error",
            "-select_streams",
            "v:0",
            "-show_entries",
            "format=duration",
            "-of",
            "default=nokey=1:noprint_wrappers=1",
            path,
        ]

    def probe(self, path: Path) -> float | None:
        """Return the clip duration in seconds, or None if unknown."""
        ffprobe = find_tool("ffprobe", self._configured_path)
        if ffprobe is None:
            logger.warning("ffprobe not found, duration unknown for %s", path)
            return None

        try:
            stdout, stderr, returncode = run_command(
                self.build_command(ffprobe, path), timeout=self._timeout
            )
        except subprocess.TimeoutExpired:
            logger.warning("ffprobe timed out for %s", path)
            return None
        except OSError as e:
            logger.warning("Could not run ffprobe for %s: %s", path, e)
            return None

        if returncode != 0:
            logger.debug(
                "ffprobe exited %d for %s: %s", returncode, path, stderr.strip()
            )
            return None

        duration = parse_duration_output(stdout)
        if duration is None:
            logger.debug("No usable duration in ffprobe output for %s", path)
        return duration

    async def probe_async(self, path: Path) -> float | None:
        """Run probe() in a worker thread so the event loop stays free."""
        return await asyncio.to_thread(self.probe, path)
