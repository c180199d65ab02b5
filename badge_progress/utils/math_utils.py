# File: utils/math_utils.py
"""Math and calculation utilities for badge progress.

Pure Python math functions with no engine imports, so they can be unit
tested in isolation.

Functions:
    - round_half_up: Integer rounding that matches displayed percentages
    - calculate_percentage: Whole-number progress percentage (0-100)
    - clamp: Bound a value to a range
    - coerce_int: Tolerant integer conversion for snapshot fields
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
import logging

# Module-level logger
_LOGGER = logging.getLogger(__name__)


# ==============================================================================
# Rounding
# ==============================================================================


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero.

    Python's round() uses banker's rounding (round(2.5) == 2). Progress bars
    are expected to show 2.5% as 3%, so percentages go through here.

    Examples:
        round_half_up(2.5) → 3
        round_half_up(66.666) → 67
        round_half_up(33.4) → 33
    """
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def calculate_percentage(current: float, target: float) -> int:
    """Calculate a whole-number progress percentage.

    Args:
        current: Current progress value
        target: Target/total value

    Returns:
        Percentage clamped to 0-100, or 0 if target is 0

    Examples:
        calculate_percentage(3, 5) → 60
        calculate_percentage(2, 3) → 67
        calculate_percentage(5, 0) → 0  # Division by zero protection
    """
    if target <= 0:
        return 0
    return int(clamp(round_half_up((current / target) * 100), 0, 100))


def clamp(value: float, min_val: float, max_val: float) -> float:
    """Clamp a value between minimum and maximum bounds.

    Examples:
        clamp(150, 0, 100) → 100
        clamp(-10, 0, 100) → 0
    """
    return max(min_val, min(value, max_val))


def coerce_int(raw_value: object, default: int = 0) -> int:
    """Convert a snapshot field to int, falling back to default.

    Hosted stores hand back None for unset numbers and occasionally strings
    for numbers typed into import sheets.

    Examples:
        coerce_int(None) → 0
        coerce_int("3") → 3
        coerce_int("three", default=1) → 1
    """
    if raw_value is None or isinstance(raw_value, bool):
        return default
    try:
        return int(raw_value)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        _LOGGER.debug("Could not read %r as an integer, using %s", raw_value, default)
        return default
