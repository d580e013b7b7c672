"""Pure Python utilities for habitcore.

Submodules:
    - dt_utils: Date parsing, calendar-day arithmetic, week boundaries
    - math_utils: Half-up rounding, percentages, progress fractions

Usage:
    from . import dt_utils
    from .math_utils import calculate_percentage
"""

from . import dt_utils, math_utils

__all__ = ["dt_utils", "math_utils"]
