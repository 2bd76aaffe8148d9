"""
Tone filters used by the envelope resynthesis post-processing.
Both are minimum-phase (causal) so transients are not smeared ahead of the hit.
"""

import torch
import torchaudio.functional as F


class Filter:
    @staticmethod
    def one_pole_lowpass(waveform: torch.Tensor, coeff: float) -> torch.Tensor:
        """
        y[i] = coeff * x[i] + (1 - coeff) * y[i-1].
        coeff 1.0 is a pass-through; smaller values darken. Runs per channel on [..., time].
        """
        coeff = max(0.0, min(1.0, float(coeff)))
        if coeff >= 1.0:
            return waveform.clone()
        dtype = waveform.dtype
        a = torch.tensor([1.0, -(1.0 - coeff)], dtype=dtype)
        b = torch.tensor([coeff, 0.0], dtype=dtype)
        return F.lfilter(waveform, a, b, clamp=False)

    @staticmethod
    def first_difference_boost(waveform: torch.Tensor, amount: float) -> torch.Tensor:
        """
        Recursive first-difference boost: y[i] = x[i] + (x[i] - y[i-1]) * amount.
        The first sample passes through. Stable for amount < 1.
        """
        if amount <= 0 or waveform.shape[-1] < 2:
            return waveform.clone()
        k = float(amount)
        dtype = waveform.dtype
        # y[i] + k * y[i-1] = (1 + k) * x[i]; pre-scale x[0] so y[0] == x[0]
        x = waveform.clone()
        x[..., 0] = waveform[..., 0] / (1.0 + k)
        a = torch.tensor([1.0, k], dtype=dtype)
        b = torch.tensor([1.0 + k, 0.0], dtype=dtype)
        return F.lfilter(x, a, b, clamp=False)
