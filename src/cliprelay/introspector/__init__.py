"""Media introspection: clip duration probing via ffprobe."""

from cliprelay.introspector.ffprobe import (
    FFprobeDurationProber,
    parse_duration_output,
)
from cliprelay.introspector.interface import DurationProber

__all__ = [
    "DurationProber",
    "FFprobeDurationProber",
    "parse_duration_output",
]
