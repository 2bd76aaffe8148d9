"""
Convolution reverb with a synthetic decaying-noise impulse.
Output is longer than the input by a fixed tail (0.5 s loops, 1.0 s one-shots); convolution
energy past the tail is dropped.
"""
from typing import Optional

import numpy as np
import torch

from drumvar.core.types import SampleBuffer
from drumvar.dsp.effects import resolve_is_loop
from drumvar.dsp.noise import Noise
from drumvar.params.canonical_defaults import EFFECT_DEFAULTS, content_kind
from drumvar.params.clamp import require_range

IMPULSE_CHANNELS = 2


def fft_convolve(x: torch.Tensor, h: torch.Tensor) -> torch.Tensor:
    """
    Full linear convolution of each row of x [C, n] with the matching row of h [C, m].
    Same result as the direct form sum, computed in the frequency domain.
    """
    n = x.shape[-1]
    m = h.shape[-1]
    if n == 0 or m == 0:
        return torch.zeros(x.shape[0], max(n + m - 1, 0), dtype=x.dtype)
    full = n + m - 1
    n_fft = 2 ** int(np.ceil(np.log2(full)))
    X = torch.fft.rfft(x, n=n_fft)
    H = torch.fft.rfft(h, n=n_fft)
    return torch.fft.irfft(X * H, n=n_fft)[..., :full]


def tail_samples(sample_rate: int, is_loop: bool) -> int:
    return int(sample_rate * EFFECT_DEFAULTS[content_kind(is_loop)]["tail_s"])


def reverb(
    buffer: SampleBuffer,
    room_size: float = 0.2,
    wet: float = 0.3,
    is_loop: Optional[bool] = None,
    generator: Optional[torch.Generator] = None,
) -> SampleBuffer:
    """
    room_size: impulse length in seconds.
    wet: 0 (dry) to 1 (all reverb); dry is scaled by (1 - wet).
    Returns a buffer of length input + tail.
    """
    room_size = require_range("room_size", room_size, 0.0, 5.0)
    wet = require_range("wet", wet, 0.0, 1.0)
    loop = resolve_is_loop(buffer, is_loop)
    sr = buffer.sample_rate

    x = buffer.samples.to(torch.float64)
    channels, n = x.shape
    out_len = n + tail_samples(sr, loop)

    impulse = Noise.decaying_impulse(int(sr * room_size), IMPULSE_CHANNELS, generator)
    h = impulse[torch.arange(channels) % IMPULSE_CHANNELS]

    out = torch.zeros(channels, out_len, dtype=torch.float64)
    out[:, :n] = x * (1.0 - wet)
    if h.shape[-1] > 0 and wet > 0:
        conv = fft_convolve(x, h)
        usable = min(out_len, conv.shape[-1])
        out[:, :usable] += conv[:, :usable] * wet

    return buffer.with_samples(out.to(torch.float32))
