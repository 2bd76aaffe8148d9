import dataclasses
import random
from typing import Optional

from drumvar.core.errors import InvalidParameter
from drumvar.core.types import FeatureSet, Peak
from drumvar.params.canonical_defaults import (
    FOCUS_CHOICES,
    FOCUS_FACTOR,
    MUTATION_RANGES,
    content_kind,
)
from drumvar.params.clamp import require_range

# FeatureSet field -> (range key, focus name)
_MUTATED_FIELDS = (
    ("attack_time", "attack"),
    ("decay_time", "decay"),
    ("sustain_level", "sustain"),
    ("release_time", "release"),
    ("spectral_centroid", "tone"),
)


class FeatureMutator:
    """
    Perturbs a FeatureSet around its extracted values.
    The random source is injected; pass random.Random(seed) for reproducible output.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng if rng is not None else random.Random()

    def _jitter(self, value: float, spread: float) -> float:
        """value * (1 + U(-1, 1) * spread), floored at 0."""
        return max(0.0, value * (1.0 + self.rng.uniform(-1.0, 1.0) * spread))

    def mutate(self, features: FeatureSet, amount: float, focus: str = "balanced", is_loop: bool = False) -> FeatureSet:
        """
        amount: 0 (identity) to 1 (full range).
        focus: field that gets twice the spread, or "balanced".
        """
        amount = require_range("amount", amount, 0.0, 1.0)
        if focus not in FOCUS_CHOICES:
            raise InvalidParameter(f"focus must be one of {FOCUS_CHOICES}, got {focus!r}")

        ranges = MUTATION_RANGES[content_kind(is_loop)]
        changes = {}
        for field_name, key in _MUTATED_FIELDS:
            factor = FOCUS_FACTOR if key == focus else 1.0
            changes[field_name] = self._jitter(
                getattr(features, field_name), ranges[key] * amount * factor
            )
        changes["energy"] = self._jitter(features.energy, ranges["energy"] * amount)

        if is_loop:
            changes["significant_peaks"] = tuple(
                self._mutate_peak(p, amount, ranges) for p in features.significant_peaks
            )

        return dataclasses.replace(features, **changes)

    def _mutate_peak(self, peak: Peak, amount: float, ranges: dict) -> Peak:
        index = int(round(self._jitter(peak.index, ranges["peak_index"] * amount)))
        value = self._jitter(peak.value, ranges["peak_value"] * amount)
        # time follows index; the rate is recoverable from the original peak
        time = peak.time * index / peak.index if peak.index > 0 else peak.time
        return Peak(index=index, value=value, time=time)
