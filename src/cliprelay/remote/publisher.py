"""Relay of the finished clip to the remote ingestion endpoint."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from pathlib import Path
from urllib.parse import urlsplit

import httpx

from cliprelay.exceptions import PublishError
from cliprelay.plan import PublishResult

logger = logging.getLogger(__name__)

CONTENT_TYPE = "video/mp4"
DEFAULT_CHUNK_SIZE = 256 * 1024


def build_correlation_id(url: str) -> str:
    """Last path segment of ``url`` without its query string.

    Malformed input yields an empty string rather than an error; the
    identifier is informational and must not fail an otherwise finished
    request.

    Example:
        "https://storage.example.com/upload/abc123?token=x" -> "abc123"
    """
    try:
        path = urlsplit(url).path
    except (ValueError, TypeError, AttributeError):
        return ""
    return path.rsplit("/", 1)[-1]


async def iter_file(
    path: Path, chunk_size: int = DEFAULT_CHUNK_SIZE
) -> AsyncIterator[bytes]:
    """Yield a file's content in chunks, reading off the event loop."""
    f = await asyncio.to_thread(path.open, "rb")
    try:
        while chunk := await asyncio.to_thread(f.read, chunk_size):
            yield chunk
    finally:
        await asyncio.to_thread(f.close)


class AssetPublisher:
    """Streams local files to caller-supplied upload URLs with HTTP PUT."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        timeout: float = 600.0,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        """Initialize the publisher.

        Args:
            client: Shared async HTTP client (owned by the caller).
            timeout: Per-request timeout in seconds.
            chunk_size: Bytes per streamed chunk.
        """
        self._client = client
        self._timeout = timeout
        self._chunk_size = chunk_size

    async def publish(self, path: Path, destination_url: str) -> PublishResult:
        """PUT ``path`` to ``destination_url``.

        Returns:
            PublishResult with the correlation identifier.

        Raises:
            PublishError: If the file cannot be read, the transfer fails, or
                the endpoint answers with a non-success status.
        """
        try:
            size = path.stat().st_size
        except OSError as e:
            raise PublishError(f"Upload failed: cannot read {path.name}: {e}") from e

        headers = {"Content-Type": CONTENT_TYPE, "Content-Length": str(size)}
        try:
            response = await self._client.put(
                destination_url,
                content=iter_file(path, self._chunk_size),
                headers=headers,
                timeout=self._timeout,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise PublishError(f"Upload failed: {e}") from e
        except OSError as e:
            raise PublishError(f"Upload failed: {e}") from e

        if not response.is_success:
            raise PublishError(
                f"Upload failed: {response.status_code}",
                status_code=response.status_code,
            )

        logger.debug("Uploaded %d bytes (HTTP %d)", size, response.status_code)
        return PublishResult(
            correlation_id=build_correlation_id(destination_url),
            success=True,
            status_code=response.status_code,
        )
