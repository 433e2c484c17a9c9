"""Metronome domain - cadence clicks.

This domain handles:
- Periodic click scheduling with phase-preserving tempo changes
- Click sound synthesis and audio output
- Cadence presets
"""

from .click import ClickPlayer, SilentClick, SounddeviceClick, synthesize_click
from .presets import BPMPreset, PRESETS, MIN_BPM, MAX_BPM, find_preset, validate_bpm
from .scheduler import Metronome, bpm_to_period

__all__ = [
    "ClickPlayer",
    "SilentClick",
    "SounddeviceClick",
    "synthesize_click",
    "BPMPreset",
    "PRESETS",
    "MIN_BPM",
    "MAX_BPM",
    "find_preset",
    "validate_bpm",
    "Metronome",
    "bpm_to_period",
]
