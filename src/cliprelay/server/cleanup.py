"""Scratch directory cleanup for server startup.

Request artifacts are removed when the request ends, but a process killed
mid-request (SIGKILL, OOM) leaves its files behind. This sweep removes
those leftovers.

Scratch file patterns:
- upload-* : Received client uploads
- music-* : Downloaded music tracks
- output-* : ffmpeg outputs
"""

from __future__ import annotations

import logging
import time
from pathlib import Path

logger = logging.getLogger(__name__)

SCRATCH_PATTERNS = ("upload-*", "music-*", "output-*")


def cleanup_orphaned_scratch_files(
    scratch_dir: Path,
    max_age_hours: float = 1.0,
) -> int:
    """Remove scratch files older than ``max_age_hours``.

    Younger files are kept since they may belong to a request still in
    flight in another process sharing the directory.

    Args:
        scratch_dir: Scratch directory to sweep.
        max_age_hours: Only remove files older than this.

    Returns:
        Number of files removed.
    """
    if not scratch_dir.is_dir():
        return 0

    cleaned = 0
    cutoff_time = time.time() - (max_age_hours * 3600)

    for pattern in SCRATCH_PATTERNS:
        for scratch_file in scratch_dir.glob(pattern):
            if not scratch_file.is_file():
                continue

            try:
                if scratch_file.stat().st_mtime < cutoff_time:
                    scratch_file.unlink()
                    logger.info("Cleaned orphaned scratch file: %s", scratch_file)
                    cleaned += 1
            except OSError as e:
                logger.warning("Could not clean scratch file %s: %s", scratch_file, e)

    return cleaned
