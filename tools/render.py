#!/usr/bin/env python3
"""
Offline renderer for the variation engine.

Usage:
    python tools/render.py <subcommand> [options]

Subcommands:
    analyze <wav>                            Print features and loop/one-shot classification
    variations <wav>                         Render the eight variations as WAV files

Options (variations):
    --balance <float>     DSP/resynthesis balance 0..1 (default: config / 0.5)
    --seed <int>          Fixed seed (default: random)
    --qc                  Run QC analysis on each variation
    --zip                 Also write the zip pack
    --output-dir <path>   Output directory (default: unique timestamped dir)
"""
import sys
import os
import json
import random
import hashlib
import logging
import argparse
from datetime import datetime
from pathlib import Path

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from drumvar import api
from drumvar.core.config import EngineConfig
from drumvar.core.errors import VariationError
from drumvar.core.io import AudioIO
from drumvar.export.exporter import Exporter, variation_filename
from drumvar.qc.qc import analyze

logger = logging.getLogger("drumvar.render")


def get_unique_output_dir(base_name: str) -> Path:
    """
    Generate unique output directory: renders/{base_name}/YYYYMMDD_HHMMSS/
    """
    now = datetime.now()
    return Path("renders") / base_name / now.strftime("%Y%m%d_%H%M%S")


def _fingerprint(wav_bytes: bytes) -> str:
    return hashlib.sha256(wav_bytes).hexdigest()


def cmd_analyze(args):
    """Print the feature set of a file."""
    config = EngineConfig.from_env()
    sample = api.load_sample(AudioIO.load(args.wav), config=config)

    print(f"\n=== Analysis ===")
    print(f"File: {args.wav}")
    print(f"Sample rate: {sample.buffer.sample_rate} Hz, channels: {sample.buffer.channels}")
    print(f"Duration: {sample.buffer.duration:.3f}s")
    print(f"Kind: {'loop' if sample.is_loop else 'one-shot'}")
    if args.json:
        print(json.dumps(sample.features.to_dict(), indent=2))
    else:
        f = sample.features
        print(f"Peak: {f.peak_value:.4f} @ {f.attack_time:.4f}s")
        print(f"Decay: {f.decay_time:.4f}s, sustain: {f.sustain_level:.4f}, release: {f.release_time:.4f}s")
        print(f"Energy: {f.energy:.6f}, brightness: {f.spectral_centroid:.1f} Hz")
        print(f"Significant peaks: {len(f.significant_peaks)} ({f.transient_density:.2f}/s)")
    return 0


def cmd_variations(args):
    """Render the eight variations of a file."""
    config = EngineConfig.from_env()
    seed = args.seed if args.seed is not None else config.seed
    if seed is None:
        seed = random.randrange(2 ** 31)
    balance = args.balance if args.balance is not None else config.balance

    sample = api.load_sample(AudioIO.load(args.wav), config=config)
    variations = api.generate_variations(sample, balance=balance, rng=random.Random(seed), config=config)

    output_dir = Path(args.output_dir) if args.output_dir else get_unique_output_dir(Path(args.wav).stem)
    output_dir.mkdir(parents=True, exist_ok=True)

    print(f"Rendering variations of {args.wav} to {output_dir}")
    print(f"Kind: {'loop' if variations.is_loop else 'one-shot'}, balance: {balance:.2f}, seed: {seed}")

    failures = []
    for v in variations:
        wav_bytes = api.export_variation(v)
        wav_path = output_dir / variation_filename(v.slot)
        with open(wav_path, "wb") as f:
            f.write(wav_bytes)
        print(f"  [{v.slot + 1}] {v.name:<11} {v.buffer.duration:.3f}s  sha256 {_fingerprint(wav_bytes)[:16]}...")

        if args.qc:
            qc = analyze(v.buffer, variations.is_loop)
            print(f"      QC Status: {qc['status']}")
            for msg in qc["failures"]:
                print(f"        FAIL: {msg}")
                failures.append(f"{v.name}: {msg}")
            for msg in qc["warnings"]:
                print(f"        WARN: {msg}")

    if args.zip:
        zip_path = output_dir / "drum_variations.zip"
        with open(zip_path, "wb") as f:
            f.write(Exporter.create_variation_zip(variations, seed=seed))
        print(f"Zip: {zip_path}")

    if failures:
        print(f"\nQC FAILURES ({len(failures)}):")
        for msg in failures:
            print(f"  - {msg}")
        return 1
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Render drum variations from a sample"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Subcommand")

    # analyze subcommand
    p_an = subparsers.add_parser("analyze", help="Print features of a sample")
    p_an.add_argument("wav", help="Input audio file")
    p_an.add_argument("--json", action="store_true", help="Print the full feature set as JSON")

    # variations subcommand
    p_var = subparsers.add_parser("variations", help="Render the eight variations")
    p_var.add_argument("wav", help="Input audio file")
    p_var.add_argument("--balance", type=float, default=None, help="DSP/resynthesis balance 0..1")
    p_var.add_argument("--seed", type=int, default=None, help="Fixed seed (default: random)")
    p_var.add_argument("--qc", action="store_true", help="Run QC analysis")
    p_var.add_argument("--zip", action="store_true", help="Also write the zip pack")
    p_var.add_argument("--output-dir", type=str, help="Output directory (default: unique timestamped)")

    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    if not args.command:
        parser.print_help()
        return 1

    try:
        if args.command == "analyze":
            return cmd_analyze(args)
        elif args.command == "variations":
            return cmd_variations(args)
    except VariationError as exc:
        logger.error("%s", exc)
        return 2

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
