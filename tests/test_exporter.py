"""
Zip pack export tests.
"""

import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import io
import json
import random
import zipfile

import torch

from drumvar import api
from drumvar.core.types import SampleBuffer
from drumvar.export.exporter import Exporter, variation_filename


def _pack(seed: int = 7) -> bytes:
    x = torch.zeros(1, 11025)
    x[0, 50:250] = 0.8 * torch.exp(-torch.arange(200, dtype=torch.float32) / 40.0)
    sample = api.load_sample(SampleBuffer(x, 22050))
    variations = api.generate_variations(sample, balance=0.5, rng=random.Random(seed))
    return Exporter.create_variation_zip(variations, seed=seed)


def test_zip_layout():
    with zipfile.ZipFile(io.BytesIO(_pack())) as zf:
        names = zf.namelist()
        assert "variations.json" in names
        for i in range(1, 9):
            assert f"drum-variation-{i}.wav" in names
            assert zf.read(f"drum-variation-{i}.wav")[:4] == b"RIFF"


def test_metadata():
    with zipfile.ZipFile(io.BytesIO(_pack(seed=11))) as zf:
        meta = json.loads(zf.read("variations.json"))
    assert meta["seed"] == 11
    assert meta["is_loop"] is False
    assert meta["balance"] == 0.5
    assert [s["name"] for s in meta["slots"]][:3] == ["transient", "pitch_up", "pitch_down"]
    assert all(s["qc_status"] in ("PASS", "WARN", "FAIL") for s in meta["slots"])
    assert all(s["sample_rate"] == 22050 for s in meta["slots"])


def test_variation_filename():
    assert variation_filename(0) == "drum-variation-1.wav"
    assert variation_filename(7) == "drum-variation-8.wav"


if __name__ == "__main__":
    import pytest
    pytest.main([__file__, "-v"])
