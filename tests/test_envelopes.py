"""
Tests for envelope resynthesis: span reshaping, one-shot and loop paths, degenerate input.
"""

import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import dataclasses
import random

import pytest
import torch

from drumvar.analysis.features import FeatureExtractor
from drumvar.analysis.mutate import FeatureMutator
from drumvar.core.config import EngineConfig
from drumvar.core.params import guarded_ratio
from drumvar.core.types import Peak, SampleBuffer
from drumvar.dsp.envelopes import EnvelopeSynthesizer, resynthesize, s_to_samples, shape_span
from drumvar.dsp.filters import Filter


def _hit(num_samples: int = 24000, sample_rate: int = 48000, channels: int = 1) -> SampleBuffer:
    t = torch.arange(num_samples, dtype=torch.float32) / sample_rate
    x = torch.sin(2 * torch.pi * 180.0 * t) * torch.exp(-t * 12.0)
    return SampleBuffer(x.repeat(channels, 1), sample_rate)


def _loop(num_samples: int = 96000, sample_rate: int = 48000, hits: int = 8) -> SampleBuffer:
    x = torch.zeros(1, num_samples)
    spacing = num_samples // hits
    t = torch.arange(spacing, dtype=torch.float32) / sample_rate
    shape = torch.sin(2 * torch.pi * 120.0 * t) * torch.exp(-t * 30.0)
    for k in range(hits):
        x[0, k * spacing:(k + 1) * spacing] = shape
    return SampleBuffer(x, sample_rate)


class TestShapeSpan:
    def test_identity_when_unchanged(self):
        span = torch.randn(1, 1000)
        out = shape_span(span, 100, 300, 100, 300, sustain_gain=1.0, release_slope=0.0)
        assert torch.allclose(out, span)

    def test_release_fades_to_zero(self):
        span = torch.ones(1, 1000)
        out = shape_span(span, 10, 50, 10, 50, sustain_gain=1.0, release_slope=1.0)
        assert out[0, 699].item() == pytest.approx(1.0)
        assert out[0, 700].item() == pytest.approx(1.0)
        assert out[0, -1].item() == pytest.approx(1.0 / 300, abs=1e-6)
        assert torch.all(out[0, 700:] >= 0)

    def test_steep_release_floored_at_zero(self):
        out = shape_span(torch.ones(1, 1000), 10, 50, 10, 50, sustain_gain=1.0, release_slope=4.0)
        assert torch.all(out >= 0)
        assert torch.all(out[0, 800:] == 0)

    def test_sustain_gain_applied(self):
        out = shape_span(torch.ones(1, 1000), 10, 50, 10, 50, sustain_gain=0.5, release_slope=0.0)
        assert torch.allclose(out[0, 50:700], torch.full((650,), 0.5))
        assert torch.allclose(out[0, :50], torch.ones(50))

    def test_attack_stretch_maps_into_source_attack(self):
        ramp = torch.arange(1000, dtype=torch.float32).unsqueeze(0)
        out = shape_span(ramp, 100, 200, 200, 300, sustain_gain=1.0, release_slope=0.0)
        # stretched attack reads only from the original attack span
        assert out[0, :200].max().item() < 100
        assert out[0, 199].item() == 99

    def test_empty_span(self):
        out = shape_span(torch.zeros(2, 0), 0, 0, 0, 0, 1.0, 1.0)
        assert out.shape == (2, 0)

    def test_s_to_samples(self):
        assert s_to_samples(0.5, 48000) == 24000
        assert s_to_samples(-1.0, 48000) == 0


class TestSynthesizer:
    def test_one_shot_preserves_shape(self):
        buf = _hit(channels=2)
        extractor = FeatureExtractor()
        original = extractor.compute(buf)
        mutated = FeatureMutator(random.Random(0)).mutate(original, 1.0)
        out = EnvelopeSynthesizer().synthesize(buf, mutated, False, original)
        assert out.samples.shape == buf.samples.shape
        assert out.sample_rate == buf.sample_rate
        assert torch.isfinite(out.samples).all()

    def test_loop_preserves_shape(self):
        buf = _loop()
        original = FeatureExtractor().compute(buf)
        assert len(original.significant_peaks) >= 4
        mutated = FeatureMutator(random.Random(4)).mutate(original, 1.0, is_loop=True)
        out = EnvelopeSynthesizer().synthesize(buf, mutated, True, original)
        assert out.length == buf.length
        assert torch.isfinite(out.samples).all()
        # audio before the first peak is not part of any segment
        first = original.significant_peaks[0].index
        assert torch.equal(out.samples[:, :first], buf.samples[:, :first])

    def test_loop_unchanged_features_keep_segment_tails(self):
        buf = _loop()
        original = FeatureExtractor().compute(buf)
        peaks = original.significant_peaks
        assert len(peaks) >= 4
        out = EnvelopeSynthesizer().synthesize(buf, original, True, original)
        for k in range(len(peaks) - 1):
            start, end = peaks[k].index, peaks[k + 1].index
            tail = slice(end - (end - start) // 4, end)
            src_tail = buf.samples[:, tail].abs().sum().item()
            out_tail = out.samples[:, tail].abs().sum().item()
            assert src_tail > 0
            # release fade over a segment is scaled to that segment's length
            assert out_tail > 0.5 * src_tail

    def test_loop_accent_and_short_segments(self):
        sample_rate = 48000
        x = torch.sin(torch.arange(6000, dtype=torch.float32) * 0.05).unsqueeze(0)
        buf = SampleBuffer(x, sample_rate)
        peaks = tuple(Peak(i, 0.5, i / sample_rate) for i in (1000, 1005, 5000))
        original = dataclasses.replace(
            FeatureExtractor().compute(buf), sustain_level=0.25, release_time=0.0, significant_peaks=peaks
        )
        accented = dataclasses.replace(
            original,
            significant_peaks=(
                Peak(1000, 1.5, 1000 / sample_rate),
                Peak(1005, 1.0, 1005 / sample_rate),
                Peak(5000, 0.5, 5000 / sample_rate),
            ),
        )
        out = EnvelopeSynthesizer().synthesize(buf, accented, True, original)
        # segment shorter than the minimum is left alone, accent included
        assert torch.equal(out.samples[:, 1000:1005], x[:, 1000:1005])
        # unchanged timings remap onto themselves, so the segment only carries the accent gain
        assert torch.allclose(out.samples[:, 1005:5000], x[:, 1005:5000] * 2.0, atol=1e-6)
        assert torch.equal(out.samples[:, 5000:], x[:, 5000:])
        assert torch.equal(out.samples[:, :1000], x[:, :1000])

    def test_silence_stays_finite(self):
        buf = SampleBuffer(torch.zeros(1, 4800), 48000)
        for is_loop in (False, True):
            out = resynthesize(buf, 1.0, "balanced", is_loop, FeatureMutator(random.Random(1)))
            assert torch.isfinite(out.samples).all()
            assert torch.count_nonzero(out.samples) == 0

    def test_unchanged_features_keep_energy(self):
        buf = _hit()
        original = FeatureExtractor().compute(buf)
        same = dataclasses.replace(original, sustain_level=0.25, release_time=0.0)
        out = EnvelopeSynthesizer().synthesize(buf, same, False, original)
        # attack and decay remap onto themselves
        assert torch.allclose(out.samples, buf.samples, atol=1e-6)

    def test_compare_to_original_scales_energy(self):
        buf = _hit()
        original = FeatureExtractor().compute(buf)
        louder = dataclasses.replace(original, sustain_level=0.25, release_time=0.0, energy=original.energy * 4)
        config = EngineConfig(compare_to_original=True)
        out = EnvelopeSynthesizer(config).synthesize(buf, louder, False, original)
        assert torch.allclose(out.samples, buf.samples * 2.0, atol=1e-5)

    def test_compare_to_original_darkens(self):
        buf = _hit()
        original = FeatureExtractor().compute(buf)
        darker = dataclasses.replace(
            original, sustain_level=0.25, release_time=0.0, spectral_centroid=original.spectral_centroid * 0.5
        )
        out = EnvelopeSynthesizer(EngineConfig(compare_to_original=True)).synthesize(buf, darker, False, original)
        expected = Filter.one_pole_lowpass(buf.samples, 0.5)
        assert torch.allclose(out.samples, expected, atol=1e-5)


class TestHelpers:
    def test_guarded_ratio(self):
        assert guarded_ratio(2.0, 4.0) == 0.5
        assert guarded_ratio(2.0, 0.0) == 1.0
        assert guarded_ratio(2.0, 1e-5) == 1.0

    def test_lowpass_passthrough(self):
        x = torch.randn(1, 256)
        assert torch.equal(Filter.one_pole_lowpass(x, 1.0), x)

    def test_lowpass_dc_gain(self):
        x = torch.ones(1, 2000, dtype=torch.float64)
        y = Filter.one_pole_lowpass(x, 0.1)
        assert y[0, -1].item() == pytest.approx(1.0, abs=1e-6)

    def test_first_difference_boost(self):
        x = torch.tensor([[0.0, 1.0, 1.0, 0.0]], dtype=torch.float64)
        y = Filter.first_difference_boost(x, 0.5)
        assert torch.allclose(y, torch.tensor([[0.0, 1.5, 0.75, -0.375]], dtype=torch.float64))

    def test_first_difference_boost_is_recursive(self):
        # each step differences against the already boosted previous sample
        x = torch.tensor([[0.0, 1.0, 0.0, 1.0]], dtype=torch.float64)
        y = Filter.first_difference_boost(x, 0.5)
        assert torch.allclose(y, torch.tensor([[0.0, 1.5, -0.75, 1.875]], dtype=torch.float64))

    def test_first_difference_boost_first_sample_passes(self):
        x = torch.tensor([[0.8, 0.8, 0.8]], dtype=torch.float64)
        y = Filter.first_difference_boost(x, 0.3)
        assert y[0, 0].item() == pytest.approx(0.8)
        assert torch.equal(Filter.first_difference_boost(x, 0.0), x)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
