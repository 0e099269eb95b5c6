"""
Display formatting for prices, volumes and percentage changes.

Upstream payloads carry numbers as strings, so every helper accepts
float, int, str or None.
"""

from __future__ import annotations

import math
from typing import Optional, Union

Number = Union[float, int, str, None]

# (threshold, suffix), largest first
_SCALES = (
    (1_000_000_000, "B"),
    (1_000_000, "M"),
    (1_000, "K"),
)


def to_float(value: Number) -> Optional[float]:
    """Parse a numeric value. Returns None for missing, unparseable or NaN input."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(num):
        return None
    return num


def fmt(value: Number, decimals: int = 2) -> str:
    """
    Format a number with a K/M/B magnitude suffix.

    fmt(1_500) -> "1.50K", fmt(2_300_000) -> "2.30M", fmt(None) -> "-"
    """
    num = to_float(value)
    if num is None:
        return "-"
    for threshold, suffix in _SCALES:
        if abs(num) >= threshold:
            return f"{num / threshold:.{decimals}f}{suffix}"
    return f"{num:.{decimals}f}"


def pct(open_: Number, last: Number) -> float:
    """
    Percentage change from open to last.

    Returns 0.0 when either side is missing, or when open is zero
    (the ratio is undefined there). A last price of zero is a real value.
    """
    o = to_float(open_)
    l = to_float(last)
    if o is None or l is None or o == 0:
        return 0.0
    return (l - o) / o * 100


def format_price(value: Number) -> str:
    """Price as received, without magnitude scaling."""
    num = to_float(value)
    if num is None:
        return "-"
    return f"{num:.10f}".rstrip("0").rstrip(".")
