"""
Default QC thresholds per content kind.
"""
QC_THRESHOLDS = {
    "one_shot": {
        "peak_dbfs_min": -40.0,  # Quieter than this is treated as (near) silence
        "peak_dbfs_max": 0.0,
        "clip_ratio_max": 0.01,  # Max fraction of samples at or above full scale
        "dc_offset_max": 0.05,  # Max absolute mean
        "crest_factor_min": 1.5,  # Lower means squashed flat
    },
    "loop": {
        "peak_dbfs_min": -40.0,
        "peak_dbfs_max": 0.0,
        "clip_ratio_max": 0.02,
        "dc_offset_max": 0.05,
        "crest_factor_min": 1.2,
    },
}

# Samples with |x| >= this count as clipped
CLIP_LEVEL = 0.999
