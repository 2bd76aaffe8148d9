"""
Error kinds raised by the variation engine.
"""


class VariationError(Exception):
    """Base class for every error the engine raises on purpose."""


class NoSampleLoaded(VariationError):
    """Variation generation was requested without an input sample."""


class DecodeFailure(VariationError):
    """The decoder could not turn the input bytes into PCM."""


class InvalidParameter(VariationError, ValueError):
    """A parameter is outside the range the engine accepts."""
