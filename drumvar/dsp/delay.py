from typing import List, Optional

import torch

from drumvar.core.types import SampleBuffer
from drumvar.dsp.effects import resolve_is_loop
from drumvar.dsp.reverb import tail_samples
from drumvar.params.canonical_defaults import EFFECT_DEFAULTS, FEEDBACK_FLOOR, content_kind
from drumvar.params.clamp import require_range


def delay_taps(feedback: float, is_loop: bool) -> List[float]:
    """
    Echo gains feedback, feedback^2, ... until the gain drops to the floor
    or the tap cap for the content kind is reached (3 loops, 10 one-shots).
    """
    feedback = require_range("feedback", feedback, 0.0, 1.0)
    max_taps = EFFECT_DEFAULTS[content_kind(is_loop)]["max_taps"]
    taps = []
    gain = feedback
    while gain > FEEDBACK_FLOOR and len(taps) < max_taps:
        taps.append(gain)
        gain *= feedback
    return taps


def delay(
    buffer: SampleBuffer,
    delay_time: float = 0.25,
    feedback: float = 0.3,
    is_loop: Optional[bool] = None,
) -> SampleBuffer:
    """
    Feedback echo. Tap k lands k * delay_time after the dry signal with gain feedback^k.
    Returns a buffer of length input + tail; echoes past the tail are dropped.
    """
    delay_time = require_range("delay_time", delay_time, 1e-6, 10.0)
    loop = resolve_is_loop(buffer, is_loop)
    sr = buffer.sample_rate
    delay_samples = max(1, int(delay_time * sr))

    x = buffer.samples.to(torch.float64)
    n = x.shape[-1]
    out_len = n + tail_samples(sr, loop)
    out = torch.zeros(x.shape[0], out_len, dtype=torch.float64)
    out[:, :n] = x

    for k, gain in enumerate(delay_taps(feedback, loop), start=1):
        offset = k * delay_samples
        if offset >= out_len:
            break
        span = min(n, out_len - offset)
        out[:, offset:offset + span] += x[:, :span] * gain

    return buffer.with_samples(out.to(torch.float32))
