"""Configuration loader with precedence handling.

Configuration is loaded with the following precedence (highest to lowest):
1. CLI arguments (passed directly to get_config)
2. Environment variables (CLIPRELAY_*, plus PORT)
3. Config file (~/.cliprelay/config.toml)
4. Default values

Environment variables:
- CLIPRELAY_CONFIG_PATH: Path to config file (overrides default location)
- CLIPRELAY_FFMPEG_PATH / CLIPRELAY_FFPROBE_PATH: Tool executables
- CLIPRELAY_SERVER_BIND: Address to bind to
- PORT / CLIPRELAY_SERVER_PORT: Port to listen on (CLIPRELAY_ wins)
- CLIPRELAY_MAX_UPLOAD_BYTES: Largest accepted request body
- CLIPRELAY_SCRATCH_DIR: Directory for per-request temp files
- CLIPRELAY_PROBE_TIMEOUT / CLIPRELAY_TRANSCODE_TIMEOUT: Subprocess timeouts
- CLIPRELAY_FETCH_TIMEOUT / CLIPRELAY_PUBLISH_TIMEOUT: HTTP timeouts
- CLIPRELAY_LOG_LEVEL / CLIPRELAY_LOG_FORMAT / CLIPRELAY_LOG_FILE: Logging
- CLIPRELAY_LOG_INCLUDE_STDERR: Also log to stderr when logging to a file
"""

from __future__ import annotations

import logging
import os
import threading
import tomllib
from pathlib import Path
from typing import Any

from cliprelay.config.env import EnvReader
from cliprelay.config.models import (
    CliprelayConfig,
    LoggingConfig,
    ProcessingConfig,
    ServerConfig,
    ToolPathsConfig,
)

logger = logging.getLogger(__name__)

# Default config location
DEFAULT_CONFIG_DIR = Path.home() / ".cliprelay"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.toml"

# Cache for loaded config files (path -> (parsed dict, mtime))
_config_cache: dict[Path, tuple[dict, float]] = {}
_config_cache_lock = threading.Lock()


class ConfigFileError(ValueError):
    """Raised when a config file cannot be parsed in strict mode."""


def get_default_config_path() -> Path:
    """Get the default config file path.

    Can be overridden by CLIPRELAY_CONFIG_PATH environment variable.
    """
    env_path = os.environ.get("CLIPRELAY_CONFIG_PATH")
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_FILE


def load_config_file(path: Path | None = None, *, strict: bool = False) -> dict:
    """Load configuration from TOML file.

    Results are cached with mtime-based invalidation, so an edited file is
    picked up on the next call.

    Args:
        path: Path to config file. If None, uses default location.
        strict: If True, raise ConfigFileError on parse failures.
                If False (default), return empty dict on errors.

    Returns:
        Parsed configuration dict. Empty dict if file doesn't exist.

    Raises:
        ConfigFileError: When strict=True and the file cannot be parsed.
    """
    if path is None:
        path = get_default_config_path()

    try:
        current_mtime = path.stat().st_mtime
    except FileNotFoundError:
        return {}

    with _config_cache_lock:
        cached = _config_cache.get(path)
        if cached is not None and cached[1] == current_mtime:
            return cached[0]

        try:
            with path.open("rb") as f:
                result = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            if strict:
                raise ConfigFileError(f"Could not parse {path}: {e}") from e
            logger.warning("Ignoring unreadable config file %s: %s", path, e)
            result = {}

        _config_cache[path] = (result, current_mtime)
        return result


def clear_config_cache() -> None:
    """Clear the config file cache.

    Primarily useful for testing.
    """
    with _config_cache_lock:
        _config_cache.clear()


def _pick(*values: Any) -> Any:
    """Return the first value that is not None."""
    for value in values:
        if value is not None:
            return value
    return None


def _file_path(section: dict, key: str) -> Path | None:
    value = section.get(key)
    if not value:
        return None
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a path string, got {value!r}")
    return Path(value).expanduser()


def get_config(
    config_path: Path | None = None,
    # CLI overrides (highest precedence)
    bind: str | None = None,
    port: int | None = None,
    scratch_dir: Path | None = None,
    log_level: str | None = None,
    log_format: str | None = None,
    # Optional dependency injection for testing
    env_reader: EnvReader | None = None,
    *,
    strict: bool = False,
) -> CliprelayConfig:
    """Get configuration with full precedence handling.

    Args:
        config_path: Path to config file (overrides CLIPRELAY_CONFIG_PATH).
        bind: CLI override for the bind address.
        port: CLI override for the server port.
        scratch_dir: CLI override for the scratch directory.
        log_level: CLI override for the log level.
        log_format: CLI override for the log format.
        env_reader: Optional EnvReader for testing (uses os.environ if None).
        strict: If True, raise ConfigFileError on config file parse failures.

    Returns:
        CliprelayConfig with merged configuration.

    Raises:
        ValueError: If a merged value fails model validation.
    """
    reader = env_reader or EnvReader()
    file_config = load_config_file(config_path, strict=strict)

    tools_file = file_config.get("tools", {})
    server_file = file_config.get("server", {})
    processing_file = file_config.get("processing", {})
    logging_file = file_config.get("logging", {})

    tools = ToolPathsConfig(
        ffmpeg=_pick(
            reader.get_path("FFMPEG_PATH", must_exist=True),
            _file_path(tools_file, "ffmpeg"),
        ),
        ffprobe=_pick(
            reader.get_path("FFPROBE_PATH", must_exist=True),
            _file_path(tools_file, "ffprobe"),
        ),
    )

    server_defaults = ServerConfig()
    server = ServerConfig(
        bind=_pick(
            bind,
            reader.get_str("SERVER_BIND"),
            server_file.get("bind"),
            server_defaults.bind,
        ),
        port=_pick(
            port,
            reader.get_int("SERVER_PORT"),
            server_file.get("port"),
            server_defaults.port,
        ),
        shutdown_timeout=_pick(
            server_file.get("shutdown_timeout"), server_defaults.shutdown_timeout
        ),
        max_upload_bytes=_pick(
            reader.get_int("MAX_UPLOAD_BYTES"),
            server_file.get("max_upload_bytes"),
            server_defaults.max_upload_bytes,
        ),
    )

    processing_defaults = ProcessingConfig()
    processing = ProcessingConfig(
        scratch_dir=_pick(
            scratch_dir,
            reader.get_path("SCRATCH_DIR"),
            _file_path(processing_file, "scratch_dir"),
            processing_defaults.scratch_dir,
        ),
        probe_timeout=_pick(
            reader.get_int("PROBE_TIMEOUT"),
            processing_file.get("probe_timeout"),
            processing_defaults.probe_timeout,
        ),
        transcode_timeout=_pick(
            reader.get_int("TRANSCODE_TIMEOUT"),
            processing_file.get("transcode_timeout"),
            processing_defaults.transcode_timeout,
        ),
        fetch_timeout=_pick(
            reader.get_float("FETCH_TIMEOUT"),
            processing_file.get("fetch_timeout"),
            processing_defaults.fetch_timeout,
        ),
        publish_timeout=_pick(
            reader.get_float("PUBLISH_TIMEOUT"),
            processing_file.get("publish_timeout"),
            processing_defaults.publish_timeout,
        ),
        video_encoder=processing_file.get(
            "video_encoder", processing_defaults.video_encoder
        ),
        preset=processing_file.get("preset", processing_defaults.preset),
        crf=processing_file.get("crf", processing_defaults.crf),
        audio_encoder=processing_file.get(
            "audio_encoder", processing_defaults.audio_encoder
        ),
    )

    logging_defaults = LoggingConfig()
    logging_config = LoggingConfig(
        level=_pick(
            log_level,
            reader.get_str("LOG_LEVEL"),
            logging_file.get("level"),
            logging_defaults.level,
        ),
        file=_pick(
            reader.get_path("LOG_FILE"),
            _file_path(logging_file, "file"),
        ),
        format=_pick(
            log_format,
            reader.get_str("LOG_FORMAT"),
            logging_file.get("format"),
            logging_defaults.format,
        ),
        include_stderr=_pick(
            reader.get_bool("LOG_INCLUDE_STDERR"),
            logging_file.get("include_stderr"),
            logging_defaults.include_stderr,
        ),
    )

    return CliprelayConfig(
        tools=tools,
        server=server,
        processing=processing,
        logging=logging_config,
    )
