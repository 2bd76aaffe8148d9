"""
Quality Control module for evaluating rendered variations.
"""
from drumvar.qc.qc import analyze
from drumvar.qc.thresholds import QC_THRESHOLDS

__all__ = ["analyze", "QC_THRESHOLDS"]
