"""
Recipe defaults, resolution and bounds checks.
Default values: single source is canonical_defaults; use resolve_recipe(kind, {}) for resolved defaults.
"""
from drumvar.params.canonical_defaults import RECIPE_DEFAULTS, SLOT_NAMES, content_kind
from drumvar.params.resolve import resolve_recipe
from drumvar.params.clamp import require_range, require_int_range

__all__ = [
    "RECIPE_DEFAULTS",
    "SLOT_NAMES",
    "content_kind",
    "resolve_recipe",
    "require_range",
    "require_int_range",
]
