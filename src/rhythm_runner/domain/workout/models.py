"""
Workout data models.

Sessions are immutable: adding a song or finishing a run produces a new
WorkoutSession via dataclasses.replace.
"""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple


class SessionType(Enum):
    TIMED = "timed"
    FREE_RUN = "free_run"


class WorkoutState(Enum):
    IDLE = "idle"
    ACTIVE_UNTIMED = "active_untimed"
    ACTIVE_COUNTDOWN = "active_countdown"


class RunningDuration(Enum):
    """Preset lengths for timed runs, in minutes."""

    FIVE_MINUTES = 5
    TEN_MINUTES = 10
    FIFTEEN_MINUTES = 15
    TWENTY_MINUTES = 20
    THIRTY_MINUTES = 30
    FORTY_FIVE_MINUTES = 45
    SIXTY_MINUTES = 60

    @property
    def seconds(self) -> float:
        return self.value * 60.0

    @property
    def display_text(self) -> str:
        return f"{self.value} min"

    @property
    def description(self) -> str:
        return _DURATION_DESCRIPTIONS[self]

    @classmethod
    def from_minutes(cls, minutes: int) -> "RunningDuration":
        """Preset for a minute count. Raises ValueError if there is none."""
        return cls(minutes)


_DURATION_DESCRIPTIONS = {
    RunningDuration.FIVE_MINUTES: "Quick warm-up",
    RunningDuration.TEN_MINUTES: "Short run",
    RunningDuration.FIFTEEN_MINUTES: "Light workout",
    RunningDuration.TWENTY_MINUTES: "Moderate run",
    RunningDuration.THIRTY_MINUTES: "Standard run",
    RunningDuration.FORTY_FIVE_MINUTES: "Long run",
    RunningDuration.SIXTY_MINUTES: "Endurance",
}


@dataclass(frozen=True)
class WorkoutSession:
    """One run: open while end_time is None, finalized afterwards."""

    start_time: datetime
    target_bpm: int
    end_time: Optional[datetime] = None
    duration: float = 0.0  # seconds, set when finalized
    songs_played: Tuple[str, ...] = ()
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def is_finished(self) -> bool:
        return self.end_time is not None

    def with_song(self, title: str) -> "WorkoutSession":
        return replace(self, songs_played=self.songs_played + (title,))

    def finished(self, end_time: datetime, duration: float) -> "WorkoutSession":
        return replace(self, end_time=end_time, duration=duration)


@dataclass(frozen=True)
class WorkoutStats:
    total_sessions: int
    total_time: float  # seconds
    average_bpm: int
