"""
Numeric helpers shared by the scoring and vision engines.

Every optional numeric field goes through ``parse_number`` so that missing,
malformed or non-finite values fall back the same way everywhere.
"""
import math
from typing import Any, Optional


def parse_number(value: Any, fallback: Optional[float] = None) -> Optional[float]:
    """
    Parse a loosely-typed value into a finite float.

    Args:
        value: Raw value (number, numeric string, None, ...)
        fallback: Value returned when ``value`` is absent or not a finite number

    Returns:
        The parsed float, or ``fallback``
    """
    if value is None or isinstance(value, bool):
        return fallback

    if isinstance(value, str):
        value = value.strip()
        if not value:
            return fallback

    try:
        number = float(value)
    except (TypeError, ValueError):
        return fallback

    if not math.isfinite(number):
        return fallback
    return number


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    """Clamp a value into [low, high]; non-finite input collapses to ``low``."""
    if value is None or not math.isfinite(value):
        return low
    return min(max(value, low), high)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, ties away from zero for positive values."""
    return int(math.floor(value + 0.5))


def to_percent(fraction: float) -> int:
    """Convert a [0, 1] fraction to an integer percentage in [0, 100]."""
    return round_half_up(clamp(fraction) * 100)
