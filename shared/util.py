"""Small helpers shared by the player and the catalog layer."""

import math


def format_time(seconds) -> str:
    """Render seconds as m:ss. Unknown, negative or non-finite values show 0:00."""
    if seconds is None:
        return "0:00"
    try:
        seconds = float(seconds)
    except (TypeError, ValueError):
        return "0:00"
    if not math.isfinite(seconds) or seconds < 0:
        return "0:00"
    total = int(seconds)
    return f"{total // 60}:{total % 60:02d}"


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))
