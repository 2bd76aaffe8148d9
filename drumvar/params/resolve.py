"""
Recipe resolution: deep-merge RECIPE_DEFAULTS[kind] with incoming overrides.
Overrides win at any nesting level; unknown slots are rejected.
"""
from typing import Dict, Any, Optional

from drumvar.core.errors import InvalidParameter
from drumvar.params.canonical_defaults import RECIPE_DEFAULTS, SLOT_NAMES


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep merge two dicts. override values take precedence.
    Returns a new dict (does not mutate inputs).
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def resolve_recipe(kind: str, overrides: Optional[dict] = None) -> dict:
    """
    Resolve the recipe for "one_shot" or "loop".

    Args:
        kind: content kind key in RECIPE_DEFAULTS
        overrides: partial recipe, e.g. {"bit_crush": {"bits": 12}}

    Returns:
        Fully resolved recipe dict, one entry per slot name.
    """
    if kind not in RECIPE_DEFAULTS:
        raise InvalidParameter(f"Unknown content kind: {kind!r}")

    overrides = overrides or {}
    if not isinstance(overrides, dict):
        raise InvalidParameter(f"Recipe overrides must be a dict, got {type(overrides).__name__}")
    unknown = [k for k in overrides if k not in SLOT_NAMES]
    if unknown:
        raise InvalidParameter(f"Unknown recipe slots: {unknown}")

    return _deep_merge(RECIPE_DEFAULTS[kind], overrides)
