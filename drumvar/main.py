from fastapi import FastAPI, HTTPException, Response
from fastapi.middleware.cors import CORSMiddleware
import uvicorn
import logging
import base64
import binascii
import random

from drumvar import api
from drumvar.core.config import DEV, EngineConfig
from drumvar.core.errors import DecodeFailure, VariationError
from drumvar.core.io import AudioIO
from drumvar.core.params import get_param
from drumvar.export.exporter import Exporter, variation_filename
from drumvar.params.clamp import require_int_range

# Configure Logging
logging.basicConfig(level=logging.DEBUG if DEV else logging.INFO)
logger = logging.getLogger("drum-variation")

CONFIG = EngineConfig.from_env()

app = FastAPI(
    title="Drum Variation Engine",
    version="1.0.0",
    description="Eight-variation generator for drum one-shots and loops"
)

# CORS (Allow Frontend)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"], # Allow any local port
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _decode_audio(payload: dict):
    """payload["audio"] is a base64 encoded audio file."""
    encoded = payload.get("audio")
    if not encoded:
        raise DecodeFailure("Missing 'audio' field")
    try:
        raw = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError, TypeError) as exc:
        raise DecodeFailure(f"Invalid base64 audio: {exc}") from exc
    return AudioIO.from_bytes(raw)


def _render(payload: dict):
    """Shared by /variations and /export/pack. Returns (VariationSet, seed)."""
    sample = api.load_sample(_decode_audio(payload), config=CONFIG)
    seed = get_param(payload, "seed", CONFIG.seed)
    if seed is None:
        seed = random.SystemRandom().randrange(2 ** 31)
    seed = require_int_range("seed", seed, 0, 2 ** 53)
    balance = get_param(payload, "balance", CONFIG.balance)
    logger.info("Rendering variations: balance=%s seed=%s", balance, seed)
    variations = api.generate_variations(
        sample,
        balance=balance,
        is_loop=payload.get("is_loop"),
        rng=random.Random(seed),
        config=CONFIG,
        overrides=payload.get("overrides"),
    )
    return variations, seed


@app.get("/health")
async def health_check():
    return {"status": "ok", "service": "drum-variation-engine"}


@app.post("/analyze")
async def analyze(payload: dict):
    """
    Decodes and analyzes a sample.
    Returns JSON with the feature set and the loop/one-shot classification.
    """
    try:
        sample = api.load_sample(_decode_audio(payload), config=CONFIG)
    except VariationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return {
        "is_loop": sample.is_loop,
        "sample_rate": sample.buffer.sample_rate,
        "channels": sample.buffer.channels,
        "features": sample.features.to_dict(),
    }


@app.post("/variations")
async def variations(payload: dict):
    """
    Generates the eight variations.
    Body: { audio: base64, balance?: 0..1, seed?: int, is_loop?: bool, overrides?: {...} }
    Returns JSON with base64-encoded WAVs in slot order.
    """
    try:
        result, seed = _render(payload)
    except VariationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    return {
        "is_loop": result.is_loop,
        "balance": result.balance,
        "seed": seed,
        "variations": [
            {
                "slot": v.slot,
                "name": v.name,
                "filename": variation_filename(v.slot),
                "audio": base64.b64encode(api.export_variation(v)).decode("utf-8"),
            }
            for v in result
        ],
    }


@app.post("/export/pack")
async def export_pack(payload: dict):
    """
    Generates a ZIP file with all eight variations.
    """
    try:
        result, seed = _render(payload)
    except VariationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    zip_bytes = Exporter.create_variation_zip(result, seed=seed)
    return Response(
        content=zip_bytes,
        media_type="application/zip",
        headers={"Content-Disposition": "attachment; filename=drum_variations.zip"}
    )


if __name__ == "__main__":
    uvicorn.run("drumvar.main:app", host="0.0.0.0", port=8000, reload=DEV)
