"""Common utility functions for localcut.

Provides helper functions used across multiple packages.
"""

from __future__ import annotations

import math
import re
from pathlib import Path

# Guards ceil() against float noise such as 10.000000000000002 * 30
_TIME_EPSILON = 1e-9


# ============ Numeric Utilities ============


def clamp(value: float, lower: float, upper: float) -> float:
    """Clamp value into [lower, upper]."""
    return max(lower, min(upper, value))


def frame_count(duration: float, fps: float) -> int:
    """Number of output frames covering a duration.

    Args:
        duration: Duration in seconds
        fps: Frames per second

    Returns:
        ceil(duration * fps), never negative

    Examples:
        >>> frame_count(10.0, 30)
        300
        >>> frame_count(0.01, 30)
        1
    """
    if duration <= 0 or fps <= 0:
        return 0
    return max(0, math.ceil(duration * fps - _TIME_EPSILON))


def sample_count(duration: float, sample_rate: int) -> int:
    """Number of PCM frames covering a duration (ceil)."""
    if duration <= 0 or sample_rate <= 0:
        return 0
    return max(0, math.ceil(duration * sample_rate - _TIME_EPSILON))


def seconds_to_sample(seconds: float, sample_rate: int) -> int:
    """Index of the PCM frame that starts at a timeline position."""
    return int(round(seconds * sample_rate))


# ============ String Utilities ============


def parse_color(color: str) -> tuple[int, int, int]:
    """Parse a CSS hex colour into an RGB tuple.

    Args:
        color: "#rgb" or "#rrggbb" (leading # optional)

    Returns:
        (r, g, b) with 0-255 components

    Raises:
        ValueError: If the colour is not valid hex
    """
    value = color.strip().lstrip("#")
    if len(value) == 3:
        value = "".join(ch * 2 for ch in value)
    if not re.fullmatch(r"[0-9a-fA-F]{6}", value):
        raise ValueError(f"Invalid colour: {color!r}")
    return (int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16))


def safe_filename(name: str, fallback: str = "localcut-export") -> str:
    """Convert a user-supplied base name to a filesystem-safe string.

    Args:
        name: Base file name without extension
        fallback: Used when nothing usable remains

    Returns:
        Filesystem-safe string
    """
    name = name.strip()
    name = re.sub(r"[^\w\-. ]", "_", name)
    name = name.strip(". ")
    return name or fallback


def format_duration(seconds: float) -> str:
    """Format seconds as human-readable duration.

    Returns:
        Formatted string (e.g., "1.5s", "2m 30s")
    """
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes = int(seconds // 60)
    remaining_seconds = seconds % 60
    return f"{minutes}m {remaining_seconds:.0f}s"


# ============ File Utilities ============


def ensure_dir(path: Path) -> Path:
    """Ensure directory exists, creating if necessary.

    Args:
        path: Directory path

    Returns:
        The path (for chaining)
    """
    path.mkdir(parents=True, exist_ok=True)
    return path
