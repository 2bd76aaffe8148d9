"""
Envelope-aware resynthesis: rebuilds a buffer from mutated features.
One-shots are reshaped as a single attack/decay/sustain/release span; loops are reshaped
per inter-peak segment. Timing changes are nearest-neighbour time remaps into the source.
"""
import logging
import math
from typing import Optional

import torch

from drumvar.analysis.features import FeatureExtractor
from drumvar.analysis.mutate import FeatureMutator
from drumvar.core.config import EngineConfig, DEFAULT_CONFIG
from drumvar.core.params import guarded_ratio
from drumvar.core.types import FeatureSet, SampleBuffer
from drumvar.dsp.filters import Filter
from drumvar.params.canonical_defaults import SYNTHESIS_DEFAULTS

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------

def s_to_samples(seconds: float, sample_rate: int) -> int:
    """Seconds to the nearest whole sample, never negative."""
    return max(0, int(round(seconds * sample_rate)))


def shape_span(
    span: torch.Tensor,
    orig_attack: int,
    orig_decay_end: int,
    new_attack: int,
    new_decay_end: int,
    sustain_gain: float,
    release_slope: float,
    release_start: float = 0.7,
) -> torch.Tensor:
    """
    Four-phase reshape of span [channels, L].
    Attack [0, new_attack) and decay [new_attack, new_decay_end) are remapped onto the
    original attack/decay spans; sustain runs to the fixed boundary at release_start * L and is
    scaled by sustain_gain; release keeps source timing under a linear fade of slope release_slope.
    """
    length = span.shape[-1]
    if length == 0:
        return span.clone()
    boundary = int(length * release_start)

    a = min(max(orig_attack, 0), boundary)
    d = min(max(orig_decay_end, a), boundary)
    a2 = min(max(new_attack, 0), boundary)
    d2 = min(max(new_decay_end, a2), boundary)

    pos = torch.arange(length, dtype=torch.long)
    src = pos.clone()
    gain = torch.ones(length, dtype=torch.float64)

    # ---- Attack: stretch/compress [0, a) into [0, a2) ----
    if a2 > 0:
        src[:a2] = pos[:a2] * a // a2

    # ---- Decay: [a, d) into [a2, d2) ----
    if d2 > a2:
        src[a2:d2] = a + (pos[a2:d2] - a2) * (d - a) // (d2 - a2)

    # ---- Sustain: [d, boundary) into [d2, boundary), scaled ----
    if boundary > d2:
        src[d2:boundary] = d + (pos[d2:boundary] - d2) * (boundary - d) // (boundary - d2)
        gain[d2:boundary] = sustain_gain

    # ---- Release: source timing, linear fade floored at 0 ----
    if length > boundary:
        t = (pos[boundary:] - boundary).to(torch.float64) / (length - boundary)
        gain[boundary:] = torch.clamp(1.0 - t * release_slope, min=0.0)

    src = torch.clamp(src, 0, length - 1)
    return span[:, src] * gain.to(span.dtype)


# -----------------------------------------------------------------------------
# Synthesizer
# -----------------------------------------------------------------------------

class EnvelopeSynthesizer:
    """
    synthesize(buffer, mutated, is_loop, original) -> new buffer, same channels/length/rate.
    original defaults to a fresh analysis of buffer.
    """

    def __init__(self, config: Optional[EngineConfig] = None, extractor: Optional[FeatureExtractor] = None):
        self.config = config or DEFAULT_CONFIG
        self.extractor = extractor or FeatureExtractor()
        self.settings = dict(SYNTHESIS_DEFAULTS)

    def synthesize(
        self,
        buffer: SampleBuffer,
        mutated: FeatureSet,
        is_loop: bool,
        original: Optional[FeatureSet] = None,
    ) -> SampleBuffer:
        if original is None:
            original = self.extractor.compute(buffer)

        x = buffer.samples
        if is_loop:
            out = self._reshape_loop(x, buffer.sample_rate, original, mutated)
        else:
            out = self._reshape_one_shot(x, buffer.sample_rate, original, mutated)

        out = self._post_process(out, original, mutated)
        return buffer.with_samples(out)

    # ---- envelope parameters ----

    def _sustain_gain(self, mutated: FeatureSet) -> float:
        return mutated.sustain_level / self.settings["sustain_reference"]

    def _release_slope(self, mutated: FeatureSet, scale: float = 1.0) -> float:
        """Fade slope over the release phase; scale maps a whole-buffer release time onto a loop segment."""
        return mutated.release_time * scale / self.settings["release_reference"]

    def _reshape_one_shot(self, x: torch.Tensor, sr: int, original: FeatureSet, mutated: FeatureSet) -> torch.Tensor:
        orig_attack = original.peak_index
        orig_decay_end = orig_attack + s_to_samples(original.decay_time, sr)
        new_attack = s_to_samples(mutated.attack_time, sr)
        new_decay_end = new_attack + s_to_samples(mutated.decay_time, sr)
        return shape_span(
            x,
            orig_attack,
            orig_decay_end,
            new_attack,
            new_decay_end,
            self._sustain_gain(mutated),
            self._release_slope(mutated),
            self.settings["release_start"],
        )

    def _reshape_loop(self, x: torch.Tensor, sr: int, original: FeatureSet, mutated: FeatureSet) -> torch.Tensor:
        out = x.clone()
        n = x.shape[-1]
        peaks = original.significant_peaks
        moved = mutated.significant_peaks
        if len(moved) != len(peaks):
            moved = peaks
        min_len = self.settings["min_segment_samples"]
        sustain_gain = self._sustain_gain(mutated)

        reshaped = 0
        for k in range(len(peaks) - 1):
            start, end = peaks[k].index, peaks[k + 1].index
            seg_len = end - start
            if seg_len < min_len:
                continue
            scale = seg_len / n
            shift = int(round((moved[k].index - peaks[k].index) * scale))
            orig_attack = s_to_samples(original.attack_time * scale, sr)
            orig_decay_end = orig_attack + s_to_samples(original.decay_time * scale, sr)
            new_attack = s_to_samples(mutated.attack_time * scale, sr) + shift
            new_decay_end = new_attack + s_to_samples(mutated.decay_time * scale, sr)
            accent = guarded_ratio(moved[k].value, peaks[k].value, self.settings["ratio_eps"])

            out[:, start:end] = shape_span(
                x[:, start:end],
                orig_attack,
                orig_decay_end,
                new_attack,
                new_decay_end,
                sustain_gain,
                self._release_slope(mutated, scale),
                self.settings["release_start"],
            ) * accent
            reshaped += 1

        logger.debug("loop resynthesis: %d of %d segments reshaped", reshaped, max(len(peaks) - 1, 0))
        return out

    def _post_process(self, out: torch.Tensor, original: FeatureSet, mutated: FeatureSet) -> torch.Tensor:
        """Energy correction then tone tilt. Ratios are guarded and neutral (1.0) on degenerate input."""
        eps = self.settings["ratio_eps"]
        reference = original if self.config.compare_to_original else mutated

        energy_ratio = guarded_ratio(mutated.energy, reference.energy, eps)
        out = out * math.sqrt(max(energy_ratio, 0.0))

        spectral_ratio = guarded_ratio(mutated.spectral_centroid, reference.spectral_centroid, eps)
        if spectral_ratio > 1.0:
            out = Filter.first_difference_boost(out, (spectral_ratio - 1.0) * self.settings["tone_boost"])
        elif spectral_ratio < 1.0:
            out = Filter.one_pole_lowpass(out, spectral_ratio)
        return out


def resynthesize(
    buffer: SampleBuffer,
    amount: float,
    focus: str,
    is_loop: bool,
    mutator: FeatureMutator,
    synthesizer: Optional[EnvelopeSynthesizer] = None,
) -> SampleBuffer:
    """
    Analyze -> mutate -> synthesize. This is the heuristic half of a variation.
    """
    synthesizer = synthesizer or EnvelopeSynthesizer()
    features = synthesizer.extractor.compute(buffer)
    mutated = mutator.mutate(features, amount, focus, is_loop)
    return synthesizer.synthesize(buffer, mutated, is_loop, original=features)
