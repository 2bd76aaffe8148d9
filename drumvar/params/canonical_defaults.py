"""
Canonical defaults: single source for analysis constants, mutation ranges and the 8-slot recipe.
Recipe values are keyed by content kind ("one_shot" / "loop"); resolve_recipe merges overrides onto them.
"""

from typing import Dict, Any

# -----------------------------------------------------------------------------
# Analysis
# -----------------------------------------------------------------------------

ANALYSIS_DEFAULTS: Dict[str, Any] = {
    "decay_threshold": 0.25,      # ~ -12 dB below peak
    "sustain_start": 0.3,         # fraction of length
    "release_start": 0.7,         # fraction of length
    "peak_window_s": 0.010,
    "peak_threshold": 0.3,        # fraction of global max
    "loop_min_peaks": 3,          # more than this -> loop
    "loop_min_duration_s": 2.0,   # longer than this -> loop
}

# -----------------------------------------------------------------------------
# Mutation
# -----------------------------------------------------------------------------

FOCUS_CHOICES = ("attack", "decay", "sustain", "release", "tone", "balanced")

MUTATION_RANGES: Dict[str, Dict[str, float]] = {
    "one_shot": {
        "attack": 0.7,
        "decay": 0.8,
        "sustain": 0.6,
        "release": 0.9,
        "tone": 0.6,
        "energy": 0.4,
    },
    "loop": {
        "attack": 0.5,
        "decay": 0.7,
        "sustain": 0.6,
        "release": 0.8,
        "tone": 0.4,
        "energy": 0.2,
        "peak_index": 0.02,
        "peak_value": 0.10,
    },
}

FOCUS_FACTOR = 2.0

# -----------------------------------------------------------------------------
# Envelope resynthesis
# -----------------------------------------------------------------------------

SYNTHESIS_DEFAULTS: Dict[str, Any] = {
    "sustain_reference": 0.25,
    "release_reference": 0.3,
    "release_start": 0.7,
    "min_segment_samples": 10,
    "ratio_eps": 1e-4,
    "tone_boost": 0.5,
}

# -----------------------------------------------------------------------------
# Effects
# -----------------------------------------------------------------------------

EFFECT_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "one_shot": {
        "follower_attack_s": 0.005,
        "follower_release_s": 0.05,
        "transient_threshold": 1.5,
        "tail_s": 1.0,
        "max_taps": 10,
    },
    "loop": {
        "follower_attack_s": 0.002,
        "follower_release_s": 0.02,
        "transient_threshold": 1.2,
        "tail_s": 0.5,
        "max_taps": 3,
    },
}

FEEDBACK_FLOOR = 0.01

# -----------------------------------------------------------------------------
# Variation recipe (slot order is fixed; the UI relies on it)
# -----------------------------------------------------------------------------

SLOT_NAMES = (
    "transient",
    "pitch_up",
    "pitch_down",
    "bit_crush",
    "reverb",
    "delay",
    "pitch_verb",
    "extreme",
)

RECIPE_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "one_shot": {
        "transient": {"attack_gain": 1.3, "sustain_gain": 0.85, "amount": 0.6, "focus": "attack"},
        "pitch_up": {"semitones": 3.0, "amount": 0.7, "focus": "decay"},
        "pitch_down": {"semitones": -3.0, "amount": 0.65, "focus": "sustain"},
        "bit_crush": {"bits": 8, "amount": 0.8, "focus": "tone"},
        "reverb": {"room_size": 0.3, "wet": 0.5, "amount": 0.4, "focus": "release"},
        "delay": {"delay_time": 0.25, "feedback": 0.4, "amount": 0.5, "focus": "balanced"},
        "pitch_verb": {
            "semitones": 1.0, "room_size": 0.1, "wet": 0.3,
            "amount": 0.3, "focus": "balanced",
        },
        "extreme": {"drive": 10.0, "bits": 6, "amount": 0.9, "focus": "balanced"},
    },
    "loop": {
        "transient": {"attack_gain": 1.1, "sustain_gain": 0.95, "amount": 0.6, "focus": "attack"},
        "pitch_up": {"semitones": 1.0, "amount": 0.7, "focus": "decay"},
        "pitch_down": {"semitones": -1.0, "amount": 0.65, "focus": "sustain"},
        "bit_crush": {"bits": 10, "amount": 0.8, "focus": "tone"},
        "reverb": {"room_size": 0.1, "wet": 0.3, "amount": 0.4, "focus": "sustain"},
        "delay": {"delay_time": 0.125, "feedback": 0.3, "amount": 0.5, "focus": "balanced"},
        "pitch_verb": {
            "semitones": 0.5, "room_size": 0.05, "wet": 0.2,
            "amount": 0.3, "focus": "balanced",
        },
        "extreme": {"delay_time": 0.125, "feedback": 0.3, "drive": 3.0, "amount": 0.9, "focus": "balanced"},
    },
}


def content_kind(is_loop: bool) -> str:
    return "loop" if is_loop else "one_shot"
