"""External tool discovery for ffmpeg and ffprobe."""

from cliprelay.tools.detection import (
    ToolInfo,
    ToolNotFoundError,
    detect_tool,
    find_tool,
    parse_version_output,
    require_tool,
)

__all__ = [
    "ToolInfo",
    "ToolNotFoundError",
    "detect_tool",
    "find_tool",
    "parse_version_output",
    "require_tool",
]
