"""
Engine configuration passed explicitly into the pipeline.
Environment overrides use the DRUMVAR_* prefix; ENV selects dev mode the same way the params contract does.
"""
import logging
import os
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

DEV = os.environ.get("ENV", "development").lower() in ("development", "dev", "test")


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except (TypeError, ValueError):
        logger.warning("Ignoring %s=%r (not a number)", name, raw)
        return default


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        logger.warning("Ignoring %s=%r (not an integer)", name, raw)
        return default


@dataclass(frozen=True)
class EngineConfig:
    """
    sample_rate: used when raw arrays are wrapped into buffers.
    balance: default DSP/resynthesis balance (0 = all DSP, 1 = all resynthesis).
    seed: seed for the batch random source; None draws a fresh one.
    compare_to_original: energy/tone ratios use the pre-mutation features as denominator.
    """
    sample_rate: int = 48000
    balance: float = 0.5
    seed: Optional[int] = None
    compare_to_original: bool = False

    @classmethod
    def from_env(cls) -> "EngineConfig":
        return cls(
            sample_rate=_env_int("DRUMVAR_SAMPLE_RATE", 48000),
            balance=_env_float("DRUMVAR_BALANCE", 0.5),
            seed=_env_int("DRUMVAR_SEED", None),
            compare_to_original=os.environ.get("DRUMVAR_COMPARE_TO_ORIGINAL", "").lower()
            in ("1", "true", "yes"),
        )


DEFAULT_CONFIG = EngineConfig()
