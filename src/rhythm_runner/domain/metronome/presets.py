"""Cadence presets offered when choosing a run."""

from dataclasses import dataclass
from typing import Optional, Tuple

MIN_BPM = 30
MAX_BPM = 300


@dataclass(frozen=True)
class BPMPreset:
    bpm: int
    name: str
    description: str

    @classmethod
    def custom(cls, bpm: int) -> "BPMPreset":
        return cls(
            bpm=bpm,
            name=f"Custom {bpm} BPM",
            description="Custom tempo for your specific training needs",
        )


PRESETS: Tuple[BPMPreset, ...] = (
    BPMPreset(120, "Easy Jog", "Perfect for warm-up, cool-down, or recovery runs"),
    BPMPreset(140, "Moderate Run", "Ideal for steady-state cardio and endurance training"),
    BPMPreset(160, "Fast Run", "Great for tempo runs and building speed"),
    BPMPreset(180, "Sprint", "High-intensity intervals and speed work"),
)


def find_preset(name: str) -> Optional[BPMPreset]:
    """Look up a preset by name, case-insensitively ("sprint", "Fast Run")."""
    wanted = name.strip().lower()
    for preset in PRESETS:
        if preset.name.lower() == wanted:
            return preset
    return None


def validate_bpm(bpm: int) -> int:
    """Check a cadence is playable.

    Raises:
        ValueError: If bpm is outside 30..300
    """
    if not MIN_BPM <= bpm <= MAX_BPM:
        raise ValueError(f"BPM must be between {MIN_BPM} and {MAX_BPM}, got {bpm}")
    return bpm
