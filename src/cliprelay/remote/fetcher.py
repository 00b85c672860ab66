"""Music track download.

Streams a remote audio file into the request's scratch space without
holding the whole payload in memory.
"""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

import httpx

from cliprelay.exceptions import FetchError

if TYPE_CHECKING:
    from cliprelay.workflow.scratch import ScratchSpace

logger = logging.getLogger(__name__)

DEFAULT_MUSIC_EXTENSION = ".mp3"
DEFAULT_CHUNK_SIZE = 64 * 1024

_EXTENSION_PATTERN = re.compile(r"\.[A-Za-z0-9]{1,8}")


def music_extension(url: str) -> str:
    """File extension of the URL's path, ``.mp3`` when there is none.

    Example:
        "https://cdn.example.com/tracks/song.m4a?sig=x" -> ".m4a"
        "https://cdn.example.com/stream" -> ".mp3"
    """
    try:
        path = urlsplit(url).path
    except ValueError:
        return DEFAULT_MUSIC_EXTENSION
    suffix = PurePosixPath(path).suffix
    if not _EXTENSION_PATTERN.fullmatch(suffix):
        return DEFAULT_MUSIC_EXTENSION
    return suffix


class MusicFetcher:
    """Downloads music tracks with a shared httpx client."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        timeout: float = 120.0,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        """Initialize the fetcher.

        Args:
            client: Shared async HTTP client (owned by the caller).
            timeout: Per-request timeout in seconds.
            chunk_size: Bytes per streamed chunk.
        """
        self._client = client
        self._timeout = timeout
        self._chunk_size = chunk_size

    async def fetch(self, url: str, scratch: ScratchSpace) -> Path:
        """Download ``url`` into the scratch space.

        The destination is registered with the scratch space before the
        first byte arrives, so a partial download is removed on cleanup.

        Args:
            url: Music track URL.
            scratch: Scratch space of the current request.

        Returns:
            Path of the downloaded file.

        Raises:
            FetchError: On transport errors, non-success status or an
                empty body.
        """
        dest = scratch.allocate("music", music_extension(url))
        written = 0
        try:
            async with self._client.stream(
                "GET", url, follow_redirects=True, timeout=self._timeout
            ) as response:
                if not response.is_success:
                    raise FetchError(
                        f"music download failed: HTTP {response.status_code}",
                        status_code=response.status_code,
                    )
                f = await asyncio.to_thread(dest.open, "wb")
                try:
                    async for chunk in response.aiter_bytes(self._chunk_size):
                        await asyncio.to_thread(f.write, chunk)
                        written += len(chunk)
                finally:
                    await asyncio.to_thread(f.close)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise FetchError(f"music download failed: {e}") from e
        except OSError as e:
            raise FetchError(f"music download failed: {e}") from e

        if written == 0:
            raise FetchError("music download failed: empty body")

        logger.debug("Downloaded %d bytes of music to %s", written, dest.name)
        return dest
