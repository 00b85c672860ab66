"""External tool detection and version parsing.

Locates ffmpeg and ffprobe, honoring configured paths before falling back
to a PATH lookup.
"""

import logging
import re
import shutil
import subprocess  # nosec B404 - subprocess is required for tool detection
from dataclasses import dataclass
from pathlib import Path

from cliprelay.core.subprocess_utils import run_command

logger = logging.getLogger(__name__)

# Timeout for version detection commands (seconds)
DETECTION_TIMEOUT = 10

_VERSION_PATTERN = re.compile(r"version\s+(\S+)")


@dataclass(frozen=True)
class ToolInfo:
    """Detected state of one external tool."""

    name: str
    path: Path | None = None
    version: str | None = None

    @property
    def is_available(self) -> bool:
        return self.path is not None


class ToolNotFoundError(RuntimeError):
    """Raised when a required external tool is not installed."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(
            f"Required tool not available: {name}. Install ffmpeg or set "
            f"CLIPRELAY_{name.upper()}_PATH."
        )


def find_tool(name: str, configured_path: Path | None = None) -> Path | None:
    """Find a tool executable.

    Args:
        name: Tool name (e.g., "ffmpeg").
        configured_path: Optional configured path override.

    Returns:
        Path to tool executable, or None if not found.
    """
    if configured_path:
        if configured_path.is_file():
            return configured_path
        logger.warning(
            "Configured path for %s is not a file: %s", name, configured_path
        )

    which_result = shutil.which(name)
    if which_result:
        return Path(which_result)

    return None


def require_tool(name: str, configured_path: Path | None = None) -> Path:
    """Get path to a required tool, raising ToolNotFoundError if missing."""
    path = find_tool(name, configured_path)
    if path is None:
        raise ToolNotFoundError(name)
    return path


def parse_version_output(output: str) -> str | None:
    """Extract the version token from ``<tool> -version`` output.

    Example:
        "ffmpeg version 6.1.1-3ubuntu5 Copyright ..." -> "6.1.1-3ubuntu5"
    """
    first_line = output.splitlines()[0] if output else ""
    match = _VERSION_PATTERN.search(first_line)
    return match.group(1) if match else None


def detect_tool(name: str, configured_path: Path | None = None) -> ToolInfo:
    """Locate a tool and read its version.

    Never raises; a tool that cannot be run reports no version.
    """
    path = find_tool(name, configured_path)
    if path is None:
        return ToolInfo(name=name)

    try:
        stdout, _, returncode = run_command(
            [path, "-version"], timeout=DETECTION_TIMEOUT
        )
    except (subprocess.TimeoutExpired, OSError) as e:
        logger.warning("Could not read %s version: %s", name, e)
        return ToolInfo(name=name, path=path)

    version = parse_version_output(stdout) if returncode == 0 else None
    return ToolInfo(name=name, path=path, version=version)
