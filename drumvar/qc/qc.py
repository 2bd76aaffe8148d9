"""
Quality Control analysis for rendered variations.
Detects common failure modes: non-finite samples, clipping, DC offset, silence, over-compression.
"""
import numpy as np
import torch
from typing import Dict, Optional

from drumvar.core.types import SampleBuffer
from drumvar.params.canonical_defaults import content_kind
from drumvar.qc.thresholds import QC_THRESHOLDS, CLIP_LEVEL


def _dbfs(x: float) -> float:
    """Convert linear amplitude to dBFS (full scale)."""
    if x <= 0:
        return -np.inf
    return 20.0 * np.log10(abs(x))


def analyze(buffer: SampleBuffer, is_loop: Optional[bool] = None) -> Dict:
    """
    Analyze a rendered variation for QC issues.

    Args:
        buffer: rendered audio
        is_loop: selects the threshold set; defaults to one-shot

    Returns:
        Dict with metrics and pass/fail flags
    """
    kind = content_kind(bool(is_loop))
    thresholds = QC_THRESHOLDS[kind]
    audio = buffer.samples.to(torch.float64)

    failures = []
    warnings = []

    finite = bool(torch.isfinite(audio).all())
    if not finite:
        failures.append("Non-finite samples (NaN/Inf) in output")
        audio = torch.nan_to_num(audio, nan=0.0, posinf=1.0, neginf=-1.0)

    n = audio.numel()
    if n == 0:
        return {
            "kind": kind,
            "status": "FAIL",
            "metrics": {"finite": finite, "num_samples": 0},
            "failures": failures + ["Empty buffer"],
            "warnings": warnings,
        }

    peak = float(audio.abs().max())
    rms = float(torch.sqrt(torch.mean(audio ** 2) + 1e-12))
    dc_offset = float(audio.mean())
    clip_ratio = float((audio.abs() >= CLIP_LEVEL).sum()) / n

    metrics = {
        "finite": finite,
        "num_samples": buffer.length,
        "duration_s": buffer.duration,
        "peak_linear": peak,
        "peak_dbfs": _dbfs(peak),
        "rms_linear": rms,
        "rms_dbfs": _dbfs(rms),
        "crest_factor": peak / (rms + 1e-12),
        "dc_offset": dc_offset,
        "clip_ratio": clip_ratio,
    }

    # Evaluate against thresholds
    peak_min = thresholds.get("peak_dbfs_min", -40.0)
    peak_max = thresholds.get("peak_dbfs_max", 0.0)
    if metrics["peak_dbfs"] < peak_min:
        warnings.append(f"Peak very low (near silence): {metrics['peak_dbfs']:.2f} dBFS < {peak_min:.2f} dBFS")
    elif metrics["peak_dbfs"] > peak_max:
        failures.append(f"Peak above full scale: {metrics['peak_dbfs']:.2f} dBFS > {peak_max:.2f} dBFS")

    clip_max = thresholds.get("clip_ratio_max", 0.01)
    if clip_ratio > clip_max:
        warnings.append(f"Clipping: {clip_ratio * 100:.2f}% of samples at full scale > {clip_max * 100:.2f}%")

    dc_max = thresholds.get("dc_offset_max", 0.05)
    if abs(dc_offset) > dc_max:
        warnings.append(f"DC offset: {dc_offset:.4f} (limit {dc_max:.4f})")

    crest_min = thresholds.get("crest_factor_min", 1.5)
    if peak > 0 and metrics["crest_factor"] < crest_min:
        warnings.append(f"Crest factor low (squashed): {metrics['crest_factor']:.2f} < {crest_min:.2f}")

    # Overall status
    status = "PASS"
    if failures:
        status = "FAIL"
    elif warnings:
        status = "WARN"

    return {
        "kind": kind,
        "status": status,
        "metrics": metrics,
        "failures": failures,
        "warnings": warnings,
    }
