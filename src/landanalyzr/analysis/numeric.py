"""Numeric helpers shared by the calculators.

Rounding is half-up (2.5 -> 3) everywhere so the same figure rounds the
same way on every screen, and divisions return None instead of raising or
leaking NaN/inf.
"""

import math


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round halves toward positive infinity (2.5 -> 3, -2.5 -> -2).

    Returns an int when ndigits is 0.
    """
    factor = 10 ** ndigits
    rounded = math.floor(value * factor + 0.5) / factor
    if ndigits == 0:
        return int(rounded)
    return rounded


def safe_div(numerator: float, denominator: float) -> float | None:
    """Divide, returning None when the denominator is <= 0 or the result is not finite."""
    if denominator is None or denominator <= 0:
        return None
    result = numerator / denominator
    if not math.isfinite(result):
        return None
    return result


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def lerp(value: float, breakpoints: list[tuple[float, float]]) -> float:
    """Linear interpolation between breakpoints.

    Args:
        value: Input value to map.
        breakpoints: Sorted list of (input, output) tuples defining the curve.
            Values outside the first/last breakpoint clamp to its output.

    Returns:
        Interpolated output value.
    """
    if value <= breakpoints[0][0]:
        return breakpoints[0][1]
    if value >= breakpoints[-1][0]:
        return breakpoints[-1][1]

    for i in range(len(breakpoints) - 1):
        x0, y0 = breakpoints[i]
        x1, y1 = breakpoints[i + 1]
        if value <= x1:
            t = (value - x0) / (x1 - x0)
            return y0 + t * (y1 - y0)

    return breakpoints[-1][1]


def mean(values: list[float]) -> float | None:
    """Arithmetic mean, None for an empty list."""
    if not values:
        return None
    return math.fsum(values) / len(values)


def pct_change(value: float, reference: float) -> float | None:
    """Percent difference of value relative to reference."""
    ratio = safe_div(value - reference, reference)
    return None if ratio is None else ratio * 100
