"""Pure Python utilities for badge progress.

Submodules:
    - dt_utils: Date parsing and calendar differences
    - math_utils: Percentage rounding and tolerant number handling

Usage:
    from . import dt_utils
    from .math_utils import calculate_percentage
"""

from . import dt_utils, math_utils

__all__ = ["dt_utils", "math_utils"]
