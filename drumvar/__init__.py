"""
Drum variation engine: eight alternate takes of a percussive sample from DSP effects and
feature-driven envelope resynthesis.
"""
from drumvar.api import load_sample, generate_variations, export_variation
from drumvar.core.config import EngineConfig
from drumvar.core.errors import VariationError, NoSampleLoaded, DecodeFailure, InvalidParameter
from drumvar.core.types import SampleBuffer, FeatureSet, Peak, LoadedSample, Variation, VariationSet

__all__ = [
    "load_sample",
    "generate_variations",
    "export_variation",
    "EngineConfig",
    "VariationError",
    "NoSampleLoaded",
    "DecodeFailure",
    "InvalidParameter",
    "SampleBuffer",
    "FeatureSet",
    "Peak",
    "LoadedSample",
    "Variation",
    "VariationSet",
]
