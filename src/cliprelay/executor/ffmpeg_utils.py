"""Shared helpers for ffmpeg invocations."""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

# Lines of ffmpeg stderr kept in error messages
STDERR_TAIL_LINES = 20


def validate_output(output_path: Path) -> tuple[bool, str | None]:
    """Validate an ffmpeg output file.

    Checks that the output file exists and is non-empty.

    Returns:
        Tuple of (is_valid, error_message). error_message is None if valid.
    """
    if not output_path.exists():
        return False, f"output file was not created: {output_path.name}"

    try:
        output_size = output_path.stat().st_size
    except OSError as e:
        return False, f"could not stat output file: {e}"

    if output_size == 0:
        return False, f"output file is empty: {output_path.name}"

    return True, None


def stderr_tail(stderr: str, lines: int = STDERR_TAIL_LINES) -> str:
    """Return the last lines of ffmpeg's diagnostic output."""
    return "\n".join(stderr.strip().splitlines()[-lines:])
