import io

import numpy as np
import soundfile as sf

from drumvar.core.errors import DecodeFailure, InvalidParameter
from drumvar.core.types import SampleBuffer

# Export headroom (avoids clipping on playback)
EXPORT_VOLUME = 0.9


class AudioIO:
    @staticmethod
    def to_pcm16(buffer: SampleBuffer) -> np.ndarray:
        """
        Float [channels, length] -> interleavable int16 [length, channels].
        Clamp to [-1, 1], apply headroom, scale negatives by 32768 and the rest by 32767, truncate.
        """
        data = buffer.samples.detach().cpu().numpy().astype(np.float64).T
        data = np.clip(data, -1.0, 1.0) * EXPORT_VOLUME
        scaled = np.where(data < 0, data * 32768.0, data * 32767.0)
        return np.trunc(scaled).astype(np.int16)

    @staticmethod
    def to_bytes(buffer: SampleBuffer) -> bytes:
        """Returns a 16-bit PCM WAV file as bytes."""
        out = io.BytesIO()
        sf.write(out, AudioIO.to_pcm16(buffer), buffer.sample_rate, format="WAV", subtype="PCM_16")
        return out.getvalue()

    @staticmethod
    def save_wav(buffer: SampleBuffer, path: str):
        """Saves a buffer to a 16-bit WAV file."""
        with open(path, "wb") as f:
            f.write(AudioIO.to_bytes(buffer))

    @staticmethod
    def from_bytes(data: bytes) -> SampleBuffer:
        """Decode any container libsndfile understands into a buffer."""
        if not data:
            raise DecodeFailure("Empty audio payload")
        try:
            samples, sample_rate = sf.read(io.BytesIO(data), dtype="float32", always_2d=True)
        except (RuntimeError, ValueError, TypeError) as exc:
            raise DecodeFailure(f"Could not decode audio: {exc}") from exc
        return AudioIO._to_buffer(samples, sample_rate)

    @staticmethod
    def load(path: str) -> SampleBuffer:
        try:
            samples, sample_rate = sf.read(path, dtype="float32", always_2d=True)
        except (RuntimeError, ValueError, TypeError) as exc:
            raise DecodeFailure(f"Could not decode {path}: {exc}") from exc
        return AudioIO._to_buffer(samples, sample_rate)

    @staticmethod
    def _to_buffer(samples: np.ndarray, sample_rate: int) -> SampleBuffer:
        if samples.shape[0] == 0:
            raise InvalidParameter("Decoded audio has no frames")
        return SampleBuffer.from_array(samples.T, sample_rate)
