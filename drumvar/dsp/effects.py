"""
Deterministic buffer effects: transient enhancement, pitch shift, bit-depth reduction, distortion.
Every effect returns a new SampleBuffer; inputs are never written to.
Loop-aware effects take is_loop explicitly; None falls back to the duration heuristic.
"""
from typing import Optional

import numpy as np
import torch

from drumvar.core.types import SampleBuffer
from drumvar.params.canonical_defaults import ANALYSIS_DEFAULTS, EFFECT_DEFAULTS, content_kind
from drumvar.params.clamp import require_int_range, require_range


def resolve_is_loop(buffer: SampleBuffer, is_loop: Optional[bool]) -> bool:
    """Explicit classification wins; otherwise anything longer than the loop duration counts as a loop."""
    if is_loop is not None:
        return bool(is_loop)
    return buffer.duration > ANALYSIS_DEFAULTS["loop_min_duration_s"]


class Effects:
    @staticmethod
    def transient_enhance(
        buffer: SampleBuffer,
        attack_gain: float = 1.2,
        sustain_gain: float = 0.9,
        is_loop: Optional[bool] = None,
    ) -> SampleBuffer:
        """
        Envelope-follower transient shaper.
        Samples louder than envelope * threshold get attack_gain, everything else sustain_gain.
        """
        attack_gain = require_range("attack_gain", attack_gain, 0.0)
        sustain_gain = require_range("sustain_gain", sustain_gain, 0.0)
        cfg = EFFECT_DEFAULTS[content_kind(resolve_is_loop(buffer, is_loop))]
        sr = buffer.sample_rate

        attack_samples = max(1, int(cfg["follower_attack_s"] * sr))
        release_samples = max(1, int(cfg["follower_release_s"] * sr))
        threshold = cfg["transient_threshold"]

        data = buffer.samples.detach().cpu().numpy().astype(np.float64)
        gains = np.empty_like(data)
        for ch in range(data.shape[0]):
            envelope = 0.0
            row = gains[ch]
            for i, sample in enumerate(np.abs(data[ch]).tolist()):
                if sample > envelope:
                    envelope += (sample - envelope) / attack_samples
                else:
                    envelope += (sample - envelope) / release_samples
                row[i] = attack_gain if sample > envelope * threshold else sustain_gain

        out = torch.from_numpy(data * gains).to(torch.float32)
        return buffer.with_samples(out)

    @staticmethod
    def pitch_shift(buffer: SampleBuffer, semitones: float) -> SampleBuffer:
        """
        Resample by 2^(semitones/12) with linear interpolation.
        Output length always equals input length: shifting up drops the end, shifting down pads silence.
        """
        semitones = require_range("semitones", semitones, -48.0, 48.0)
        ratio = 2.0 ** (semitones / 12.0)
        x = buffer.samples
        n = x.shape[-1]

        read = torch.arange(n, dtype=torch.float64) * ratio
        i1 = torch.floor(read).long()
        frac = (read - i1.to(torch.float64)).to(x.dtype)
        i2 = i1 + 1

        out = torch.zeros_like(x)
        both = i2 < n
        if torch.any(both):
            lo = x[:, i1[both]]
            hi = x[:, i2[both]]
            out[:, both] = lo * (1.0 - frac[both]) + hi * frac[both]
        last = (~both) & (i1 < n)
        if torch.any(last):
            out[:, last] = x[:, i1[last]]
        return buffer.with_samples(out)

    @staticmethod
    def bit_crush(buffer: SampleBuffer, bits: int = 8) -> SampleBuffer:
        """
        Quantize [-1, 1] onto 2^bits levels (no dither). Idempotent for a given bit depth.
        """
        bits = require_int_range("bits", bits, 1, 16)
        steps = 2 ** bits
        x = buffer.samples.to(torch.float64)
        scaled = (torch.clamp(x, -1.0, 1.0) + 1.0) / 2.0
        level = torch.clamp(torch.floor(scaled * steps), 0, steps - 1)
        out = level / steps * 2.0 - 1.0
        return buffer.with_samples(out.to(torch.float32))

    @staticmethod
    def distort(buffer: SampleBuffer, amount: float = 5.0) -> SampleBuffer:
        """
        tanh waveshaper. Output stays within [-1, 1].
        """
        amount = require_range("amount", amount, 0.0)
        return buffer.with_samples(torch.tanh(buffer.samples * amount))
