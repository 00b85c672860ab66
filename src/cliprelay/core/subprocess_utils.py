"""Blocking subprocess wrapper shared by the ffprobe and ffmpeg callers."""

from __future__ import annotations

import logging
import subprocess  # nosec B404 - ffmpeg and ffprobe are external tools
import time
from pathlib import Path
from typing import Any, NamedTuple

logger = logging.getLogger(__name__)

# Number of argv entries kept when a command line is quoted in a warning
_PREVIEW_ARGS = 4


class CommandResult(NamedTuple):
    """Decoded output of a finished command."""

    stdout: str
    stderr: str
    returncode: int


def _preview(argv: list[str]) -> str:
    shown = " ".join(argv[:_PREVIEW_ARGS])
    return shown + " ..." if len(argv) > _PREVIEW_ARGS else shown


def run_command(
    args: list[str | Path],
    timeout: int = 120,
    **kwargs: Any,
) -> CommandResult:
    """Run an external tool to completion and capture its output.

    Output is decoded as text with undecodable bytes replaced, since ffmpeg
    writes container metadata to stderr verbatim.

    Args:
        args: Executable followed by its arguments. Paths are stringified.
        timeout: Seconds before the child is killed.
        **kwargs: Passed through to subprocess.run.

    Raises:
        subprocess.TimeoutExpired: The child overran ``timeout``.
        FileNotFoundError: The executable does not exist.
    """
    argv = [str(arg) for arg in args]
    tool = Path(argv[0]).name if argv else "unknown"
    logger.debug("Running %s", " ".join(argv), extra={"tool": tool})

    started = time.monotonic()
    try:
        completed = subprocess.run(  # nosec B603 - argv built by callers
            argv,
            capture_output=True,
            text=True,
            errors="replace",
            timeout=timeout,
            **kwargs,
        )
    except subprocess.TimeoutExpired:
        logger.warning(
            "%s killed after %ds: %s",
            tool,
            timeout,
            _preview(argv),
            extra={"tool": tool, "timeout_seconds": timeout},
        )
        raise

    logger.debug(
        "%s exited with %d",
        tool,
        completed.returncode,
        extra={
            "tool": tool,
            "elapsed_seconds": round(time.monotonic() - started, 3),
        },
    )
    return CommandResult(
        completed.stdout or "", completed.stderr or "", completed.returncode
    )
