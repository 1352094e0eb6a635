"""Shared numeric helpers for the adaptive quality engine.

**No third-party dependencies.**
"""

from __future__ import annotations

__all__ = ["clamp", "mean"]


def clamp(value: float, low: float, high: float) -> float:
    """Return *value* limited to the closed interval ``[low, high]``."""
    if value < low:
        return low
    if value > high:
        return high
    return value


def mean(values: list[float]) -> float:
    """Arithmetic mean; 0.0 for an empty list."""
    if not values:
        return 0.0
    return sum(values) / len(values)
