# File: utils/math_utils.py
"""Math and calculation utilities for habitcore.

Percentages shown to users are whole numbers rounded half-up (2.5 → 3), not
Python's banker's rounding (round(2.5) == 2).

Functions:
    - round_half_up: Integer rounding with .5 always going up
    - calculate_percentage: Whole-number progress percentage
    - calculate_progress: Fractional progress clamped to 0.0-1.0
    - clamp: Bound a value
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal


def round_half_up(value: float) -> int:
    """Round to the nearest integer, .5 away from zero.

    Examples:
        round_half_up(2.5) → 3
        round_half_up(2.4999) → 2
        round_half_up(-2.5) → -3
    """
    return int(Decimal(str(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def calculate_percentage(current: float, target: float) -> int:
    """Calculate a whole-number percentage of ``current`` over ``target``.

    Not clamped: 40 completions over a 30-day window is 133.

    Examples:
        calculate_percentage(1, 3) → 33
        calculate_percentage(5, 0) → 0  # Division by zero protection
    """
    if target <= 0:
        return 0
    return round_half_up(current / target * 100)


def calculate_progress(current: float, target: float) -> float:
    """Return progress toward ``target`` as a fraction in [0.0, 1.0]."""
    if target <= 0:
        return 0.0
    return clamp(current / target, 0.0, 1.0)


def clamp(value: float, min_val: float, max_val: float) -> float:
    """Clamp a value between minimum and maximum bounds.

    Examples:
        clamp(150, 0, 100) → 100
        clamp(-10, 0, 100) → 0
    """
    return max(min_val, min(value, max_val))
