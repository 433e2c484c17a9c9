"""Workout history persistence interface."""

from typing import List, Protocol, Sequence

from .models import WorkoutSession


class HistoryStore(Protocol):
    """Saves and loads finalized workout sessions."""

    def save(self, sessions: Sequence[WorkoutSession]) -> None:
        """Persist the full history (replaces what was stored)."""
        ...

    def load(self) -> List[WorkoutSession]:
        """Return the stored history, oldest first."""
        ...


class InMemoryHistoryStore:
    """HistoryStore kept in process memory."""

    def __init__(self, sessions: Sequence[WorkoutSession] = ()):
        self._sessions: List[WorkoutSession] = list(sessions)

    def save(self, sessions: Sequence[WorkoutSession]) -> None:
        self._sessions = list(sessions)

    def load(self) -> List[WorkoutSession]:
        return list(self._sessions)
