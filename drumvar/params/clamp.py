"""
Bounds checks for effect, mutation and recipe parameters.
Out-of-range values raise InvalidParameter instead of letting NaNs through.
"""
import math
from typing import Optional

from drumvar.core.errors import InvalidParameter


def require_range(
    name: str,
    value: float,
    min: Optional[float] = None,
    max: Optional[float] = None,
) -> float:
    """
    Return value as float if it lies within [min, max] (bounds optional).
    Non-numeric or non-finite values are rejected.
    """
    try:
        v = float(value)
    except (TypeError, ValueError):
        raise InvalidParameter(f"{name} must be a number, got {value!r}") from None
    if not math.isfinite(v):
        raise InvalidParameter(f"{name} must be finite, got {v}")
    if min is not None and v < min:
        raise InvalidParameter(f"{name} must be >= {min}, got {v}")
    if max is not None and v > max:
        raise InvalidParameter(f"{name} must be <= {max}, got {v}")
    return v


def require_int_range(name: str, value, min: int, max: int) -> int:
    v = require_range(name, value, min, max)
    if v != int(v):
        raise InvalidParameter(f"{name} must be an integer, got {v}")
    return int(v)

