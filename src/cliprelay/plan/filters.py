"""Filter graph fragments and lenient number handling.

Numbers embedded in ffmpeg arguments are rendered the way a form would have
sent them: whole numbers without a trailing ".0" (``1``, ``5``) and
fractions as their shortest exact repr (``0.3``, ``12.345``).
"""

from __future__ import annotations

import math

HFLIP = "hflip"

# Equal-weight mix that keeps the original audio's length and fades a
# vanished input out over two seconds
MIX_OPTIONS = "inputs=2:duration=first:dropout_transition=2"


def format_number(value: float) -> str:
    """Render a number for an ffmpeg argument."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def parse_lenient_float(value: object, default: float) -> float:
    """Parse a form value as a float, falling back instead of failing.

    None, blank strings, non-numeric text and NaN all yield ``default``.
    Infinities are returned as-is so callers can clamp them.
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if not text:
            return default
        try:
            number = float(text)
        except ValueError:
            return default
    if math.isnan(number):
        return default
    return number


def clamp_volume(volume: float) -> float:
    """Clamp a gain factor to [0, 1]. Out-of-range values are never rejected."""
    if math.isnan(volume):
        return 0.0
    return max(0.0, min(1.0, volume))


def clamp_start(start: float) -> float:
    """Clamp a music offset to a finite, non-negative number of seconds."""
    if not math.isfinite(start) or start < 0:
        return 0.0
    return start


def build_music_filter(volume: float, duration: float | None) -> str:
    """Filter graph replacing the clip's audio with the music track.

    Input 1 is scaled by ``volume``, trimmed to ``duration`` when the clip
    length is known, and has its timestamps reset. The result is ``[a]``.
    """
    volume_value = format_number(clamp_volume(volume))
    if duration is not None and math.isfinite(duration):
        trim = f"atrim=0:{format_number(duration)},asetpts=N/SR/TB"
    else:
        trim = "asetpts=N/SR/TB"
    return f"[1:a]volume={volume_value}[ma];[ma]{trim}[a]"


def build_mix_filter(volume: float) -> str:
    """Filter graph mixing the scaled music track under the clip's audio."""
    volume_value = format_number(clamp_volume(volume))
    return f"[1:a]volume={volume_value}[ma];[0:a][ma]amix={MIX_OPTIONS}[a]"
