"""Multipart upload intake.

The ``video`` file part is streamed to the request's scratch space as it
arrives; the remaining text parts become the submission's form fields. Parts
may come in any order.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from urllib.parse import unquote

from aiohttp import BodyPartReader, web

from cliprelay.exceptions import UploadTooLargeError
from cliprelay.workflow import (
    ScratchSpace,
    Submission,
    parse_form,
    sanitize_filename,
)

logger = logging.getLogger(__name__)

VIDEO_FIELD = "video"
READ_CHUNK_SIZE = 256 * 1024


async def _store_part(
    part: BodyPartReader, destination: Path, max_bytes: int
) -> int:
    written = 0
    f = await asyncio.to_thread(destination.open, "wb")
    try:
        while chunk := await part.read_chunk(READ_CHUNK_SIZE):
            written += len(chunk)
            if written > max_bytes:
                raise UploadTooLargeError(max_bytes)
            await asyncio.to_thread(f.write, chunk)
    finally:
        await asyncio.to_thread(f.close)
    return written


def upload_filename(raw: str) -> str:
    """Safe basename for a client filename that may arrive percent-encoded.

    Some clients send ``..%2FMy%20Clip.mp4`` for ``../My Clip.mp4``; decoding
    first means encoded separators are stripped like literal ones.
    """
    return sanitize_filename(unquote(raw))


async def receive_submission(
    request: web.Request,
    scratch: ScratchSpace,
    max_bytes: int,
) -> Submission:
    """Read a multipart upload into ``scratch``.

    A request without a multipart body, or without a ``video`` file part,
    yields a submission whose ``video_path`` is None; rejecting it is up to
    validation.

    Raises:
        UploadTooLargeError: If the video, or any single text field, exceeds
            ``max_bytes``.
    """
    fields: dict[str, str] = {}
    video_path: Path | None = None

    if not request.content_type.startswith("multipart/"):
        logger.debug("Non-multipart body (%s), no video", request.content_type)
        return Submission(video_path=None, form=parse_form(fields))

    current = "upload"
    try:
        reader = await request.multipart()
        async for part in reader:
            if not isinstance(part, BodyPartReader):
                continue
            current = part.name or "upload"
            if part.filename is None:
                if part.name:
                    # recent aiohttp also bounds buffered parts by client_max_size
                    value = await part.text()
                    if len(value) > max_bytes:
                        raise UploadTooLargeError(max_bytes, part.name)
                    fields[part.name] = value
                else:
                    await part.release()
            elif part.name == VIDEO_FIELD and video_path is None:
                video_path = scratch.allocate(
                    "upload", f"-{upload_filename(part.filename)}"
                )
                size = await _store_part(part, video_path, max_bytes)
                logger.debug("Stored upload %s (%d bytes)", video_path.name, size)
            else:
                logger.debug("Ignoring file part %r", part.name)
                await part.release()
    except web.HTTPRequestEntityTooLarge:
        raise UploadTooLargeError(max_bytes, current) from None

    return Submission(video_path=video_path, form=parse_form(fields))
