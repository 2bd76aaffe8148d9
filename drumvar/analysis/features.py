"""
Feature extraction for loaded samples: ADSR-style timings, energy, zero-crossing brightness,
significant peaks and the loop/one-shot classification.
Analysis runs on the first channel only.
"""
import logging
from typing import Dict, Any, List, Optional, Tuple

import torch
import torch.nn.functional as F

from drumvar.core.types import FeatureSet, Peak, SampleBuffer
from drumvar.params.canonical_defaults import ANALYSIS_DEFAULTS

logger = logging.getLogger(__name__)


class FeatureExtractor:
    def __init__(self, settings: Optional[Dict[str, Any]] = None):
        self.settings = {**ANALYSIS_DEFAULTS, **(settings or {})}

    def compute(self, buffer: SampleBuffer) -> FeatureSet:
        """
        Computes features for the given buffer.
        """
        x = buffer.channel(0).to(torch.float64)
        sr = buffer.sample_rate
        n = x.shape[-1]
        s = self.settings

        if n == 0:
            return FeatureSet(
                attack_time=0.0, decay_time=0.0, sustain_level=0.0, release_time=0.0,
                energy=0.0, spectral_centroid=0.0, peak_value=0.0, peak_index=0,
                duration=0.0, dynamic_range=0.0, transient_density=0.0,
            )

        mag = torch.abs(x)

        # 1. Peak / attack
        peak_index = int(torch.argmax(mag).item())
        peak_value = float(mag[peak_index].item())
        attack_time = peak_index / sr

        # 2. Decay: first point after the peak below threshold
        below = torch.nonzero(mag[peak_index:] < peak_value * s["decay_threshold"])
        decay_index = peak_index + int(below[0].item()) if below.numel() > 0 else peak_index
        decay_time = (decay_index - peak_index) / sr

        # 3. Sustain window
        release_start = int(n * s["release_start"])
        sustain_start = min(decay_index, int(n * s["sustain_start"]))
        window_len = release_start - sustain_start
        if window_len > 0:
            sustain_level = float(mag[sustain_start:release_start].sum().item()) / max(window_len, 1)
        else:
            sustain_level = 0.0

        # 4. Release
        release_time = (n - release_start) / sr

        # 5. Energy
        energy = float(torch.mean(x ** 2).item())

        # 6. Zero-crossing brightness proxy
        signs = x >= 0
        zero_crossings = int((signs[1:] != signs[:-1]).sum().item())
        spectral_centroid = zero_crossings / n * sr / 2

        # 7. Dynamic range
        dynamic_range = float((x.max() - x.min()).item())

        # 8. Significant peaks
        peaks = self.detect_peaks(mag, sr, peak_value)
        duration = buffer.duration
        transient_density = len(peaks) / duration if duration > 0 else 0.0

        features = FeatureSet(
            attack_time=attack_time,
            decay_time=decay_time,
            sustain_level=sustain_level,
            release_time=release_time,
            energy=energy,
            spectral_centroid=spectral_centroid,
            peak_value=peak_value,
            peak_index=peak_index,
            duration=duration,
            dynamic_range=dynamic_range,
            transient_density=transient_density,
            significant_peaks=tuple(peaks),
        )
        logger.debug(
            "features: peak=%.4f@%d decay=%.4fs sustain=%.4f centroid=%.1fHz peaks=%d",
            peak_value, peak_index, decay_time, sustain_level, spectral_centroid, len(peaks),
        )
        return features

    def detect_peaks(self, mag: torch.Tensor, sample_rate: int, global_max: float) -> List[Peak]:
        """
        Sliding-window local maxima above peak_threshold * global_max.
        After a peak is accepted the next window's worth of samples is skipped.
        """
        if global_max <= 0:
            return []
        window = max(1, int(self.settings["peak_window_s"] * sample_rate))
        threshold = self.settings["peak_threshold"] * global_max

        local_max = F.max_pool1d(
            mag.view(1, 1, -1), kernel_size=2 * window + 1, stride=1, padding=window
        ).view(-1)
        candidates = torch.nonzero((mag > threshold) & (mag >= local_max)).view(-1).tolist()

        peaks: List[Peak] = []
        next_allowed = 0
        for idx in candidates:
            if idx < next_allowed:
                continue
            value = float(mag[idx].item())
            peaks.append(Peak(index=idx, value=value, time=idx / sample_rate))
            next_allowed = idx + window + 1
        return peaks

    def classify(self, features: FeatureSet) -> bool:
        """Loop if there are more than loop_min_peaks peaks or it runs longer than loop_min_duration_s."""
        return (
            len(features.significant_peaks) > self.settings["loop_min_peaks"]
            or features.duration > self.settings["loop_min_duration_s"]
        )

    def extract(self, buffer: SampleBuffer) -> Tuple[FeatureSet, bool]:
        features = self.compute(buffer)
        return features, self.classify(features)
