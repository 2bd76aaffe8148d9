"""
Control surface for the external UI: load_sample, generate_variations, export_variation.
No state is kept here; the caller holds the LoadedSample and the VariationSet.
"""
import logging
import random
from typing import Optional, Union

import numpy as np
import torch

from drumvar.analysis.features import FeatureExtractor
from drumvar.core.config import EngineConfig, DEFAULT_CONFIG
from drumvar.core.errors import InvalidParameter, NoSampleLoaded
from drumvar.core.io import AudioIO
from drumvar.core.types import LoadedSample, SampleBuffer, Variation, VariationSet
from drumvar.variations import recipe

logger = logging.getLogger(__name__)

BufferLike = Union[SampleBuffer, np.ndarray, torch.Tensor]


def load_sample(
    buffer: BufferLike,
    sample_rate: Optional[int] = None,
    config: Optional[EngineConfig] = None,
) -> LoadedSample:
    """
    Validate and analyze a decoded sample.
    Raw arrays are wrapped at sample_rate (or config.sample_rate).
    """
    config = config or DEFAULT_CONFIG
    if buffer is None:
        raise NoSampleLoaded("No audio sample provided")
    if not isinstance(buffer, SampleBuffer):
        buffer = SampleBuffer.from_array(buffer, sample_rate or config.sample_rate)

    if buffer.length == 0:
        raise InvalidParameter("Sample buffer is empty")
    if not bool(torch.isfinite(buffer.samples).all()):
        raise InvalidParameter("Sample buffer contains NaN or Inf")

    features, is_loop = FeatureExtractor().extract(buffer)
    if features.peak_value == 0.0:
        logger.warning("Loaded sample is silent; variations will be silent too")
    logger.info(
        "Loaded sample: %d ch, %.2fs @ %d Hz, detected as %s (%d peaks)",
        buffer.channels, buffer.duration, buffer.sample_rate,
        "loop" if is_loop else "one-shot", len(features.significant_peaks),
    )
    return LoadedSample(buffer=buffer, features=features, is_loop=is_loop)


def generate_variations(
    sample: Union[LoadedSample, SampleBuffer, None],
    balance: Optional[float] = None,
    is_loop: Optional[bool] = None,
    rng: Optional[random.Random] = None,
    config: Optional[EngineConfig] = None,
    overrides: Optional[dict] = None,
) -> VariationSet:
    """
    Eight variations of sample. balance and is_loop default to the config value and the
    classification made by load_sample.
    """
    config = config or DEFAULT_CONFIG
    if sample is None:
        raise NoSampleLoaded("No audio sample loaded")
    if isinstance(sample, LoadedSample):
        buffer = sample.buffer
        if is_loop is None:
            is_loop = sample.is_loop
    else:
        buffer = sample
        if is_loop is None:
            is_loop = FeatureExtractor().extract(buffer)[1]
    if balance is None:
        balance = config.balance
    return recipe.generate_variations(buffer, balance, is_loop, rng=rng, config=config, overrides=overrides)


def export_variation(variation: Union[Variation, SampleBuffer]) -> bytes:
    """16-bit PCM WAV bytes for one variation (or any buffer)."""
    buffer = variation.buffer if isinstance(variation, Variation) else variation
    if buffer is None:
        raise NoSampleLoaded("Nothing to export")
    return AudioIO.to_bytes(buffer)
