"""Configuration data models.

This module defines dataclasses for cliprelay configuration options.
"""

import tempfile
from dataclasses import dataclass, field
from pathlib import Path

_NUMBER = (int, float)
_TYPE_LABELS: dict[type | tuple[type, ...], str] = {
    int: "an integer",
    str: "a string",
    _NUMBER: "a number",
}


def _default_scratch_dir() -> Path:
    return Path(tempfile.gettempdir()) / "uploads"


def _require_type(
    section: str, name: str, value: object, expected: type | tuple[type, ...]
) -> None:
    """Raise ValueError unless ``value`` has the expected type.

    TOML values reach the models unconverted, so ``crf = "20"`` arrives as a
    string. Booleans are rejected where a number is expected.
    """
    if isinstance(value, bool) or not isinstance(value, expected):
        raise ValueError(
            f"{section}.{name} must be {_TYPE_LABELS[expected]}, "
            f"got {type(value).__name__} {value!r}"
        )


@dataclass
class ToolPathsConfig:
    """Configuration for external tool paths.

    All paths are optional. If not specified, tools are looked up in PATH.
    """

    ffmpeg: Path | None = None
    ffprobe: Path | None = None


@dataclass(frozen=True)
class ServerConfig:
    """Configuration for the HTTP server (`cliprelay serve`)."""

    bind: str = "0.0.0.0"  # nosec B104 - service is meant to be reachable
    """Network address to bind to."""

    port: int = 8080
    """Port number for HTTP server."""

    shutdown_timeout: float = 30.0
    """Seconds to wait for in-flight requests on shutdown."""

    max_upload_bytes: int = 1024 * 1024 * 1024
    """Largest accepted request body (1 GiB)."""

    def __post_init__(self) -> None:
        """Validate configuration."""
        _require_type("server", "bind", self.bind, str)
        _require_type("server", "port", self.port, int)
        _require_type("server", "shutdown_timeout", self.shutdown_timeout, _NUMBER)
        _require_type("server", "max_upload_bytes", self.max_upload_bytes, int)
        if not 1 <= self.port <= 65535:
            raise ValueError(f"port must be 1-65535, got {self.port}")
        if self.shutdown_timeout <= 0:
            raise ValueError(
                f"shutdown_timeout must be positive, got {self.shutdown_timeout}"
            )
        if self.max_upload_bytes <= 0:
            raise ValueError(
                f"max_upload_bytes must be positive, got {self.max_upload_bytes}"
            )


@dataclass(frozen=True)
class ProcessingConfig:
    """Configuration for the per-request processing pipeline."""

    scratch_dir: Path = field(default_factory=_default_scratch_dir)
    """Shared directory for uploads, music downloads and ffmpeg output."""

    probe_timeout: int = 30
    transcode_timeout: int = 1800
    fetch_timeout: float = 120.0
    publish_timeout: float = 600.0

    # Encoder knobs for every branch that re-encodes video
    video_encoder: str = "libx264"
    preset: str = "veryfast"
    crf: int = 20
    audio_encoder: str = "aac"

    def __post_init__(self) -> None:
        """Validate configuration."""
        for name in ("video_encoder", "preset", "audio_encoder"):
            _require_type("processing", name, getattr(self, name), str)
        _require_type("processing", "crf", self.crf, int)
        if not 0 <= self.crf <= 51:
            raise ValueError(f"crf must be 0-51, got {self.crf}")
        for name in (
            "probe_timeout",
            "transcode_timeout",
            "fetch_timeout",
            "publish_timeout",
        ):
            value = getattr(self, name)
            _require_type("processing", name, value, _NUMBER)
            if value <= 0:
                raise ValueError(f"{name} must be positive")


@dataclass
class LoggingConfig:
    """Configuration for structured logging."""

    # Log level: debug, info, warning, error
    level: str = "info"

    # Log file path (None = stderr only)
    file: Path | None = None

    # Log format: text or json
    format: str = "text"

    # Also log to stderr when file is set
    include_stderr: bool = False

    # Rotation threshold in bytes (default 10MB)
    max_bytes: int = 10_485_760

    # Number of rotated files to keep
    backup_count: int = 5

    def __post_init__(self) -> None:
        """Validate configuration."""
        _require_type("logging", "level", self.level, str)
        _require_type("logging", "format", self.format, str)
        valid_levels = {"debug", "info", "warning", "error"}
        if self.level.lower() not in valid_levels:
            raise ValueError(f"level must be one of {valid_levels}, got {self.level}")
        valid_formats = {"text", "json"}
        if self.format.lower() not in valid_formats:
            raise ValueError(
                f"format must be one of {valid_formats}, got {self.format}"
            )


@dataclass
class CliprelayConfig:
    """Main configuration container.

    Aggregates all configuration sections.
    """

    tools: ToolPathsConfig = field(default_factory=ToolPathsConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    processing: ProcessingConfig = field(default_factory=ProcessingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
