"""
Param lookup helpers for recipe slots and request payloads.
"""
from typing import Any


def get_param(params: dict, name: str, default: Any = None) -> Any:
    """
    Read params[name]; a missing key or an explicit None falls back to default.
    E.g. get_param(payload, "seed", config.seed).
    """
    if not params:
        return default
    value = params.get(name)
    return default if value is None else value


def guarded_ratio(numerator: float, denominator: float, eps: float = 1e-4) -> float:
    """numerator / denominator, or a neutral 1.0 when the denominator is at or below eps."""
    if denominator <= eps:
        return 1.0
    return numerator / denominator
