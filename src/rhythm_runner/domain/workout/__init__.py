"""Workout domain - run tracking.

This domain handles:
- Session lifecycle (free runs and timed countdowns)
- Elapsed/remaining time and completion tracking
- Songs played per session and workout statistics
- History persistence interface
"""

from .models import (
    SessionType,
    WorkoutState,
    RunningDuration,
    WorkoutSession,
    WorkoutStats,
)
from .history import HistoryStore, InMemoryHistoryStore
from .session import WorkoutManager, WorkoutProgress, format_duration

__all__ = [
    "SessionType",
    "WorkoutState",
    "RunningDuration",
    "WorkoutSession",
    "WorkoutStats",
    "HistoryStore",
    "InMemoryHistoryStore",
    "WorkoutManager",
    "WorkoutProgress",
    "format_duration",
]
