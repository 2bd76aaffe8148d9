"""
Fixed 8-slot variation recipe.
Each slot runs a DSP chain and an envelope resynthesis pass whose amount is scaled by the
balance (0 = pure DSP, 1 = maximum resynthesis). Slot order and meaning never change;
loop vs one-shot only changes parameter values and the extreme chain.
"""
import logging
import random
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import torch

from drumvar.analysis.mutate import FeatureMutator
from drumvar.core.config import EngineConfig, DEFAULT_CONFIG
from drumvar.core.errors import NoSampleLoaded, VariationError
from drumvar.core.params import get_param
from drumvar.core.types import SampleBuffer, Variation, VariationSet
from drumvar.dsp.delay import delay
from drumvar.dsp.effects import Effects
from drumvar.dsp.envelopes import EnvelopeSynthesizer, resynthesize
from drumvar.dsp.reverb import reverb
from drumvar.params.canonical_defaults import SLOT_NAMES, content_kind
from drumvar.params.clamp import require_range
from drumvar.params.resolve import resolve_recipe

logger = logging.getLogger(__name__)


@dataclass
class _SlotContext:
    is_loop: bool
    balance: float
    mutator: FeatureMutator
    synthesizer: EnvelopeSynthesizer
    generator: torch.Generator

    def resynth(self, buffer: SampleBuffer, p: dict) -> SampleBuffer:
        """Envelope pass at p["amount"] * balance; a zero amount is the identity."""
        amount = require_range("amount", p["amount"], 0.0) * self.balance
        if amount <= 0:
            return buffer
        focus = get_param(p, "focus", "balanced")
        return resynthesize(buffer, min(amount, 1.0), focus, self.is_loop, self.mutator, self.synthesizer)


# -----------------------------------------------------------------------------
# Slots
# -----------------------------------------------------------------------------

def _transient(src: SampleBuffer, p: dict, ctx: _SlotContext) -> SampleBuffer:
    shaped = Effects.transient_enhance(src, p["attack_gain"], p["sustain_gain"], ctx.is_loop)
    return ctx.resynth(shaped, p)


def _pitch_up(src: SampleBuffer, p: dict, ctx: _SlotContext) -> SampleBuffer:
    return ctx.resynth(Effects.pitch_shift(src, p["semitones"]), p)


def _pitch_down(src: SampleBuffer, p: dict, ctx: _SlotContext) -> SampleBuffer:
    return ctx.resynth(Effects.pitch_shift(src, p["semitones"]), p)


def _bit_crush(src: SampleBuffer, p: dict, ctx: _SlotContext) -> SampleBuffer:
    # crush last so the output keeps exactly 2^bits levels
    return Effects.bit_crush(ctx.resynth(src, p), p["bits"])


def _reverb(src: SampleBuffer, p: dict, ctx: _SlotContext) -> SampleBuffer:
    wet = reverb(src, p["room_size"], p["wet"], ctx.is_loop, ctx.generator)
    return ctx.resynth(wet, p)


def _delay(src: SampleBuffer, p: dict, ctx: _SlotContext) -> SampleBuffer:
    echoed = delay(src, p["delay_time"], p["feedback"], ctx.is_loop)
    return ctx.resynth(echoed, p)


def _pitch_verb(src: SampleBuffer, p: dict, ctx: _SlotContext) -> SampleBuffer:
    shifted = Effects.pitch_shift(src, p["semitones"])
    wet = reverb(shifted, p["room_size"], p["wet"], ctx.is_loop, ctx.generator)
    return ctx.resynth(wet, p)


def _extreme(src: SampleBuffer, p: dict, ctx: _SlotContext) -> SampleBuffer:
    if ctx.is_loop:
        echoed = delay(src, p["delay_time"], p["feedback"], True)
        chain = Effects.distort(echoed, p["drive"])
    else:
        chain = Effects.bit_crush(Effects.distort(src, p["drive"]), p["bits"])
    return ctx.resynth(chain, p)


SLOT_BUILDERS: Dict[str, Callable[[SampleBuffer, dict, _SlotContext], SampleBuffer]] = {
    "transient": _transient,
    "pitch_up": _pitch_up,
    "pitch_down": _pitch_down,
    "bit_crush": _bit_crush,
    "reverb": _reverb,
    "delay": _delay,
    "pitch_verb": _pitch_verb,
    "extreme": _extreme,
}


# -----------------------------------------------------------------------------
# Entry point
# -----------------------------------------------------------------------------

def generate_variations(
    sample: Optional[SampleBuffer],
    balance: float,
    is_loop: bool,
    rng: Optional[random.Random] = None,
    config: Optional[EngineConfig] = None,
    overrides: Optional[dict] = None,
) -> VariationSet:
    """
    Produce the eight variations of sample.

    Args:
        sample: input buffer (None raises NoSampleLoaded)
        balance: 0..1 weight of envelope resynthesis against plain DSP
        is_loop: classification from load_sample
        rng: random source for mutation and reverb impulses; defaults to random.Random(config.seed)
        config: engine config
        overrides: partial recipe overrides, see resolve_recipe

    Returns:
        VariationSet with slots 0..7. Any slot failure aborts the whole batch.
    """
    if sample is None:
        raise NoSampleLoaded("No audio sample loaded")
    balance = require_range("balance", balance, 0.0, 1.0)
    config = config or DEFAULT_CONFIG
    rng = rng if rng is not None else random.Random(config.seed)
    kind = content_kind(is_loop)
    recipe = resolve_recipe(kind, overrides)

    ctx = _SlotContext(
        is_loop=bool(is_loop),
        balance=balance,
        mutator=FeatureMutator(rng),
        synthesizer=EnvelopeSynthesizer(config),
        generator=torch.Generator().manual_seed(rng.getrandbits(63)),
    )

    variations = []
    batch_start = time.perf_counter()
    for slot, name in enumerate(SLOT_NAMES):
        started = time.perf_counter()
        try:
            out = SLOT_BUILDERS[name](sample, recipe[name], ctx)
        except VariationError:
            raise
        except Exception as exc:
            raise VariationError(f"Variation {slot + 1} ({name}) failed: {exc}") from exc
        logger.debug(
            "slot %d (%s): %d samples in %.3fs", slot, name, out.length, time.perf_counter() - started
        )
        variations.append(Variation(slot=slot, name=name, buffer=out))

    logger.info(
        "Generated %d variations (%s, balance=%.2f) in %.2fs",
        len(variations), kind, balance, time.perf_counter() - batch_start,
    )
    return VariationSet(variations=tuple(variations), is_loop=bool(is_loop), balance=balance)
