from dataclasses import dataclass, field
from typing import Tuple

import numpy as np
import torch

from drumvar.core.errors import InvalidParameter


@dataclass(frozen=True)
class SampleBuffer:
    """
    Immutable PCM buffer: samples is a float32 tensor shaped [channels, length].
    Stages never write into an existing buffer; they return a new one.
    """
    samples: torch.Tensor
    sample_rate: int

    def __post_init__(self):
        if self.samples.dim() != 2:
            raise InvalidParameter(
                f"samples must be shaped [channels, length], got {tuple(self.samples.shape)}"
            )
        if self.sample_rate <= 0:
            raise InvalidParameter(f"sample_rate must be positive, got {self.sample_rate}")

    @classmethod
    def from_array(cls, data, sample_rate: int) -> "SampleBuffer":
        """
        Build a buffer from a numpy array or tensor.
        1-D input is mono; 2-D input is [channels, length].
        """
        if isinstance(data, np.ndarray):
            data = torch.from_numpy(np.ascontiguousarray(data))
        samples = data.detach().to(torch.float32).clone()
        if samples.dim() == 1:
            samples = samples.unsqueeze(0)
        return cls(samples, int(sample_rate))

    @property
    def channels(self) -> int:
        return self.samples.shape[0]

    @property
    def length(self) -> int:
        return self.samples.shape[1]

    @property
    def duration(self) -> float:
        return self.length / self.sample_rate

    def channel(self, index: int) -> torch.Tensor:
        return self.samples[index]

    def with_samples(self, samples: torch.Tensor) -> "SampleBuffer":
        """New buffer at the same rate."""
        return SampleBuffer(samples.to(torch.float32), self.sample_rate)


@dataclass(frozen=True)
class Peak:
    index: int
    value: float
    time: float


@dataclass(frozen=True)
class FeatureSet:
    attack_time: float
    decay_time: float
    sustain_level: float
    release_time: float
    energy: float
    spectral_centroid: float  # zero-crossing proxy, Hz
    peak_value: float
    peak_index: int
    duration: float
    dynamic_range: float
    transient_density: float  # peaks per second
    significant_peaks: Tuple[Peak, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "attack_time": self.attack_time,
            "decay_time": self.decay_time,
            "sustain_level": self.sustain_level,
            "release_time": self.release_time,
            "energy": self.energy,
            "spectral_centroid": self.spectral_centroid,
            "peak_value": self.peak_value,
            "peak_index": self.peak_index,
            "duration": self.duration,
            "dynamic_range": self.dynamic_range,
            "transient_density": self.transient_density,
            "significant_peaks": [
                {"index": p.index, "value": p.value, "time": p.time}
                for p in self.significant_peaks
            ],
        }


@dataclass(frozen=True)
class LoadedSample:
    """What load_sample hands back to the caller; the caller owns it."""
    buffer: SampleBuffer
    features: FeatureSet
    is_loop: bool


@dataclass(frozen=True)
class Variation:
    slot: int
    name: str
    buffer: SampleBuffer


@dataclass(frozen=True)
class VariationSet:
    variations: Tuple[Variation, ...]
    is_loop: bool
    balance: float

    def __len__(self) -> int:
        return len(self.variations)

    def __iter__(self):
        return iter(self.variations)

    def __getitem__(self, slot: int) -> Variation:
        return self.variations[slot]

    @property
    def buffers(self) -> Tuple[SampleBuffer, ...]:
        return tuple(v.buffer for v in self.variations)
