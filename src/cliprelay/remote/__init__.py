"""Remote I/O: music download and finished-clip upload."""

from cliprelay.remote.fetcher import MusicFetcher, music_extension
from cliprelay.remote.publisher import (
    CONTENT_TYPE,
    AssetPublisher,
    build_correlation_id,
)

__all__ = [
    "CONTENT_TYPE",
    "AssetPublisher",
    "MusicFetcher",
    "build_correlation_id",
    "music_extension",
]
