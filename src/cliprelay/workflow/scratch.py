"""Per-request scratch storage.

Every file a request creates (the upload, the downloaded music track, the
ffmpeg output) is registered with the request's ScratchSpace the moment its
path is chosen. Each registration pushes its own release callback onto an
ExitStack, so leaving the ``with`` block removes every artifact in reverse
order whatever happened in between, including artifacts added by steps
that were never reasoned about at the end.
"""

from __future__ import annotations

import logging
import re
import time
import uuid
from contextlib import ExitStack
from pathlib import Path
from types import TracebackType

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")
MAX_FILENAME_LENGTH = 120


def sanitize_filename(name: str | None, default: str = "video.mp4") -> str:
    """Reduce a client-supplied filename to a safe basename.

    Directory components are dropped, anything outside ``[A-Za-z0-9._-]`` is
    replaced by ``_``, and names that end up empty or dot-only fall back to
    ``default``.
    """
    if not name:
        return default
    base = name.replace("\\", "/").rsplit("/", 1)[-1]
    base = _UNSAFE_CHARS.sub("_", base).strip("._")
    if not base:
        return default
    return base[-MAX_FILENAME_LENGTH:]


def release_artifact(path: Path) -> None:
    """Delete one artifact. Errors are logged, never raised."""
    try:
        path.unlink(missing_ok=True)
        logger.debug("Removed scratch file: %s", path.name)
    except OSError as e:
        logger.warning("Could not remove scratch file %s: %s", path, e)


class ScratchSpace:
    """Owns the temp artifacts of a single request.

    Usage:
        with ScratchSpace(directory) as scratch:
            upload = scratch.allocate("upload", ".mp4")
            ...
        # every allocated or adopted file is gone here
    """

    def __init__(self, directory: Path) -> None:
        self.directory = directory
        self._stack = ExitStack()
        self._artifacts: list[Path] = []
        self._closed = False

    def __enter__(self) -> ScratchSpace:
        self.directory.mkdir(parents=True, exist_ok=True)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def artifacts(self) -> tuple[Path, ...]:
        """Paths registered so far, in creation order."""
        return tuple(self._artifacts)

    def allocate(self, prefix: str, suffix: str = "") -> Path:
        """Reserve a unique path in the scratch directory.

        The name embeds a nanosecond timestamp and a random token so
        concurrent requests sharing the directory never collide. The file
        itself is not created.
        """
        name = f"{prefix}-{time.time_ns()}-{uuid.uuid4().hex[:8]}{suffix}"
        return self.adopt(self.directory / name)

    def adopt(self, path: Path) -> Path:
        """Take ownership of a path created elsewhere."""
        if self._closed:
            raise RuntimeError("scratch space is already closed")
        self._artifacts.append(path)
        self._stack.callback(release_artifact, path)
        return path

    def close(self) -> None:
        """Release every artifact. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._stack.close()
