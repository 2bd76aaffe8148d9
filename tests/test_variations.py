"""
End-to-end tests for the 8-slot variation batch on a one-shot click and a drum loop.
"""

import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import random
import unittest

import pytest
import torch

from drumvar import api
from drumvar.core.config import EngineConfig
from drumvar.core.errors import InvalidParameter, NoSampleLoaded, VariationError
from drumvar.core.types import SampleBuffer
from drumvar.dsp.delay import delay_taps
from drumvar.params.canonical_defaults import RECIPE_DEFAULTS, SLOT_NAMES
from drumvar.variations import recipe


def _click(num_samples: int = 22050, sample_rate: int = 44100, position: int = 100) -> SampleBuffer:
    """0.5 s mono click at 44.1 kHz."""
    x = torch.zeros(1, num_samples)
    x[0, position] = 0.9
    x[0, position + 1:position + 200] = 0.9 * torch.exp(-torch.arange(1, 200, dtype=torch.float32) / 30.0)
    return SampleBuffer(x, sample_rate)


def _loop(num_samples: int = int(12.31 * 48000), sample_rate: int = 48000, hits: int = 40) -> SampleBuffer:
    """Drum loop: 40 decaying hits spread over ~12.3 s."""
    x = torch.zeros(1, num_samples)
    spacing = num_samples // hits
    t = torch.arange(2000, dtype=torch.float32) / sample_rate
    hit = torch.sin(2 * torch.pi * 150.0 * t) * torch.exp(-t * 80.0)
    for k in range(hits):
        start = k * spacing
        x[0, start:start + 2000] = hit * (0.6 + 0.4 * (k % 2))
    return SampleBuffer(x, sample_rate)


class TestOneShotBatch(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.sample = api.load_sample(_click())
        cls.result = api.generate_variations(cls.sample, balance=0.5, rng=random.Random(1))

    def test_classified_as_one_shot(self):
        self.assertFalse(self.sample.is_loop)
        self.assertEqual(self.sample.features.peak_index, 100)

    def test_eight_slots_in_order(self):
        self.assertEqual(len(self.result), 8)
        self.assertEqual([v.name for v in self.result], list(SLOT_NAMES))
        self.assertEqual([v.slot for v in self.result], list(range(8)))

    def test_lengths_and_rate(self):
        n = self.sample.buffer.length
        for v in self.result:
            self.assertGreaterEqual(v.buffer.length, n)
            self.assertEqual(v.buffer.sample_rate, 44100)
            self.assertEqual(v.buffer.channels, 1)
            self.assertTrue(bool(torch.isfinite(v.buffer.samples).all()))
        # reverb and delay slots carry the one-shot tail
        self.assertEqual(self.result[4].buffer.length, n + 44100)
        self.assertEqual(self.result[5].buffer.length, n + 44100)

    def test_bit_crush_slot_levels(self):
        levels = torch.unique(self.result[3].buffer.samples).numel()
        self.assertLessEqual(levels, 256)

    def test_extreme_slot_bounded(self):
        samples = self.result[7].buffer.samples
        self.assertLessEqual(samples.abs().max().item(), 1.0 + 1e-6)


class TestLoopBatch(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.sample = api.load_sample(_loop())
        cls.result = api.generate_variations(cls.sample, balance=0.0)

    def test_classified_as_loop(self):
        self.assertTrue(self.sample.is_loop)
        self.assertEqual(len(self.sample.features.significant_peaks), 40)

    def test_delay_taps_capped(self):
        self.assertEqual(len(delay_taps(0.9, is_loop=True)), 3)

    def test_extreme_slot_is_delay_then_mild_drive(self):
        n = self.sample.buffer.length
        extreme = self.result[7].buffer
        # loop tail is 0.5 s
        self.assertEqual(extreme.length, n + 24000)
        # drive 3: tanh keeps it inside [-1, 1] without squashing to a square wave
        peak = extreme.samples.abs().max().item()
        self.assertLessEqual(peak, 1.0)
        self.assertGreater(peak, 0.9)
        self.assertGreater(torch.count_nonzero(extreme.samples[:, n:]).item(), 0)

    def test_loop_bit_crush_is_ten_bits(self):
        self.assertEqual(RECIPE_DEFAULTS["loop"]["bit_crush"]["bits"], 10)
        self.assertLessEqual(torch.unique(self.result[3].buffer.samples).numel(), 1024)


def _loop_over_bed(num_samples: int = 3 * 48000, sample_rate: int = 48000, hits: int = 12) -> SampleBuffer:
    """3 s loop of decaying hits over a quiet 100 Hz tone, so no stretch of the source is silent."""
    t_all = torch.arange(num_samples, dtype=torch.float32) / sample_rate
    x = 0.1 * torch.sin(2 * torch.pi * 100.0 * t_all).unsqueeze(0)
    spacing = num_samples // hits
    t = torch.arange(spacing, dtype=torch.float32) / sample_rate
    hit = 0.8 * torch.sin(2 * torch.pi * 150.0 * t) * torch.exp(-t * 20.0)
    for k in range(hits):
        x[0, k * spacing:(k + 1) * spacing] += hit
    return SampleBuffer(x, sample_rate)


class TestLoopBatchFullResynthesis(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.sample = api.load_sample(_loop_over_bed())
        cls.result = api.generate_variations(cls.sample, balance=1.0, rng=random.Random(8))

    def test_classified_as_loop(self):
        self.assertTrue(self.sample.is_loop)
        self.assertGreater(len(self.sample.features.significant_peaks), 3)

    def test_every_slot_finite(self):
        self.assertEqual(len(self.result), 8)
        for v in self.result:
            self.assertTrue(torch.isfinite(v.buffer.samples).all(), v.name)

    def test_segment_tails_not_muted(self):
        n = self.sample.buffer.length
        first = self.sample.features.significant_peaks[0].index
        # pitch_up leaves silence in the last ~6%, so stop short of the end
        stop = int(0.9 * n)
        for v in self.result:
            region = v.buffer.samples[:, first:stop]
            zero_fraction = (region == 0).float().mean().item()
            self.assertLess(zero_fraction, 0.05, v.name)


def test_balance_zero_is_deterministic():
    sample = api.load_sample(_click())
    a = api.generate_variations(sample, balance=0.0, rng=random.Random(1))
    b = api.generate_variations(sample, balance=0.0, rng=random.Random(999))
    for va, vb in zip(a, b):
        if va.name in ("reverb", "pitch_verb"):
            # impulses are random; everything else is pure DSP
            continue
        assert torch.equal(va.buffer.samples, vb.buffer.samples)


def test_same_seed_same_batch():
    sample = api.load_sample(_click())
    config = EngineConfig(seed=1234)
    a = api.generate_variations(sample, balance=1.0, config=config)
    b = api.generate_variations(sample, balance=1.0, config=config)
    for va, vb in zip(a, b):
        assert torch.equal(va.buffer.samples, vb.buffer.samples)


def test_silent_input_gives_finite_output():
    sample = api.load_sample(SampleBuffer(torch.zeros(1, 22050), 44100))
    result = api.generate_variations(sample, balance=1.0, rng=random.Random(0))
    assert len(result) == 8
    for v in result:
        assert torch.isfinite(v.buffer.samples).all()


def test_no_sample_loaded():
    with pytest.raises(NoSampleLoaded):
        api.generate_variations(None, balance=0.5)
    with pytest.raises(NoSampleLoaded):
        recipe.generate_variations(None, 0.5, False)


@pytest.mark.parametrize("balance", [-0.1, 1.01, float("nan")])
def test_invalid_balance(balance):
    sample = api.load_sample(_click())
    with pytest.raises(InvalidParameter):
        api.generate_variations(sample, balance=balance)


def test_overrides_reach_slot():
    sample = api.load_sample(_click())
    result = api.generate_variations(
        sample, balance=0.0, rng=random.Random(0), overrides={"bit_crush": {"bits": 2}}
    )
    assert torch.unique(result[3].buffer.samples).numel() <= 4


def test_bad_override_value_is_invalid_parameter():
    sample = api.load_sample(_click())
    with pytest.raises(InvalidParameter):
        api.generate_variations(sample, balance=0.0, overrides={"bit_crush": {"bits": 40}})


def test_unexpected_failure_names_slot(monkeypatch):
    def boom(src, p, ctx):
        raise RuntimeError("kaput")

    monkeypatch.setitem(recipe.SLOT_BUILDERS, "delay", boom)
    sample = api.load_sample(_click())
    with pytest.raises(VariationError, match="Variation 6 \\(delay\\)") as excinfo:
        api.generate_variations(sample, balance=0.5, rng=random.Random(0))
    assert isinstance(excinfo.value.__cause__, RuntimeError)


def test_raw_buffer_is_classified():
    result = api.generate_variations(_click(), balance=0.0, rng=random.Random(0))
    assert result.is_loop is False


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
