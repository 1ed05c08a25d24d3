"""Duration and timestamp formatting."""

from __future__ import annotations

import math


def seconds_to_duration(seconds: float) -> str:
    """Format a duration as M:SS or H:MM:SS, rounding to the nearest second."""
    total = int(max(0.0, float(seconds or 0)) + 0.5)
    h, rem = divmod(total, 3600)
    m, s = divmod(rem, 60)
    if h > 0:
        return f"{h}:{m:02d}:{s:02d}"
    return f"{m}:{s:02d}"


def format_timestamp(seconds: float) -> str:
    """Format a seek position as M:SS or H:MM:SS. Always floors, so the clip never starts late."""
    total = int(math.floor(max(0.0, float(seconds or 0))))
    h, rem = divmod(total, 3600)
    m, s = divmod(rem, 60)
    if h > 0:
        return f"{h}:{m:02d}:{s:02d}"
    return f"{m}:{s:02d}"


def subtitle_time_to_seconds(value: str) -> float:
    """Parse an SRT/VTT cue time (00:01:02,500 or 00:01:02.500)."""
    pieces = value.strip().replace(",", ".").split(":")
    if len(pieces) != 3:
        return 0.0
    try:
        h, m, s = (float(p) for p in pieces)
    except ValueError:
        return 0.0
    return h * 3600 + m * 60 + s
