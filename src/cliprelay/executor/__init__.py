"""Executors that apply transform plans to local files."""

from cliprelay.executor.transcode import TranscodeExecutor, TranscodeResult

__all__ = [
    "TranscodeExecutor",
    "TranscodeResult",
]
