"""cliprelay - transform uploaded clips with ffmpeg and relay them to ingest."""

__version__ = "0.1.0"
