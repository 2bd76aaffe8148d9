from typing import Optional

import torch


class Noise:
    @staticmethod
    def uniform(num_samples: int, generator: Optional[torch.Generator] = None) -> torch.Tensor:
        """Uniform white noise in [-1, 1)."""
        return torch.rand(num_samples, generator=generator, dtype=torch.float64) * 2.0 - 1.0

    @staticmethod
    def decaying_impulse(
        num_samples: int,
        channels: int = 2,
        generator: Optional[torch.Generator] = None,
    ) -> torch.Tensor:
        """
        Reverb impulse: uniform noise under exp(-i / (0.5 * num_samples)).
        Returns [channels, num_samples]; empty when num_samples is 0.
        """
        if num_samples <= 0:
            return torch.zeros(channels, 0, dtype=torch.float64)
        i = torch.arange(num_samples, dtype=torch.float64)
        decay = torch.exp(-i / (num_samples * 0.5))
        rows = [Noise.uniform(num_samples, generator) * decay for _ in range(channels)]
        return torch.stack(rows)
