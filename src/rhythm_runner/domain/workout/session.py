"""
Workout session state machine.

IDLE -> ACTIVE_UNTIMED | ACTIVE_COUNTDOWN -> IDLE. While a session is open a
one-second PeriodicTimer recomputes elapsed and remaining time; a countdown
that reaches zero stops the session by itself.
"""

import threading
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Union

from loguru import logger

from rhythm_runner.core.config import WorkoutConfig
from rhythm_runner.core.events import EventEmitter
from rhythm_runner.core.timer import PeriodicTimer, Tick, TickCallback

from .history import HistoryStore, InMemoryHistoryStore
from .models import (
    RunningDuration,
    SessionType,
    WorkoutSession,
    WorkoutState,
    WorkoutStats,
)

# Event names
STARTED = "started"
TICK = "tick"
SONG_ADDED = "song_added"
COUNTDOWN_FINISHED = "countdown_finished"
STOPPED = "stopped"

TimerFactory = Callable[[float, TickCallback], PeriodicTimer]


def format_duration(seconds: float) -> str:
    """Format seconds as zero-padded MM:SS (75 -> "01:15")."""
    total = max(0, int(seconds))
    minutes, secs = divmod(total, 60)
    return f"{minutes:02d}:{secs:02d}"


def _default_timer_factory(interval: float, callback: TickCallback) -> PeriodicTimer:
    return PeriodicTimer(interval, callback, name="workout-timer")


@dataclass(frozen=True)
class WorkoutProgress:
    """Snapshot published on every workout tick."""

    elapsed: float
    time_remaining: float
    formatted_duration: str
    formatted_time_remaining: str
    completion_percentage: float


class WorkoutManager:
    """Tracks the open workout session and the history of finished ones.

    Events (subscribe via `events`):
        started(WorkoutSession), tick(WorkoutProgress), song_added(str),
        countdown_finished(WorkoutSession), stopped(WorkoutSession)
    """

    def __init__(
        self,
        history_store: Optional[HistoryStore] = None,
        events: Optional[EventEmitter] = None,
        tick_interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], datetime] = datetime.now,
        timer_factory: TimerFactory = _default_timer_factory,
    ):
        self.history_store = history_store or InMemoryHistoryStore()
        self.events = events or EventEmitter()
        self.tick_interval = tick_interval
        self._clock = clock
        self._wall_clock = wall_clock
        self._timer_factory = timer_factory
        self._lock = threading.Lock()

        self._state = WorkoutState.IDLE
        self._session: Optional[WorkoutSession] = None
        self._session_type = SessionType.FREE_RUN
        self._started_at = 0.0
        self._duration: Optional[float] = None
        self._elapsed = 0.0
        self._time_remaining = 0.0
        self._timer: Optional[PeriodicTimer] = None
        self._generation = 0
        self._history: List[WorkoutSession] = self._load_history()

    @classmethod
    def from_config(
        cls, config: WorkoutConfig, history_store: Optional[HistoryStore] = None, **kwargs
    ) -> "WorkoutManager":
        return cls(history_store=history_store, tick_interval=config.tick_interval, **kwargs)

    # ==================== STATE ====================

    @property
    def state(self) -> WorkoutState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state is not WorkoutState.IDLE

    @property
    def is_timed_session(self) -> bool:
        return self._state is WorkoutState.ACTIVE_COUNTDOWN

    @property
    def session_type(self) -> SessionType:
        return self._session_type

    @property
    def current_session(self) -> Optional[WorkoutSession]:
        with self._lock:
            return self._session

    @property
    def history(self) -> List[WorkoutSession]:
        with self._lock:
            return list(self._history)

    @property
    def elapsed(self) -> float:
        return self._elapsed

    @property
    def time_remaining(self) -> float:
        return self._time_remaining

    @property
    def formatted_duration(self) -> str:
        return format_duration(self._elapsed)

    @property
    def formatted_time_remaining(self) -> str:
        return format_duration(self._time_remaining)

    @property
    def completion_percentage(self) -> float:
        """Share of a timed session already run, 0-100; 0 for free runs."""
        with self._lock:
            return self._completion_locked()

    @property
    def songs_played_count(self) -> int:
        session = self.current_session
        return len(session.songs_played) if session else 0

    # ==================== LIFECYCLE ====================

    def start(
        self,
        target_bpm: int,
        session_type: SessionType = SessionType.FREE_RUN,
        duration: Union[RunningDuration, float, None] = None,
    ) -> WorkoutSession:
        """Open a new session, closing any open one first.

        Args:
            target_bpm: Cadence for the run
            session_type: TIMED counts down from duration; FREE_RUN counts up
            duration: Run length as a RunningDuration or seconds (required for TIMED)

        Returns:
            The new open session

        Raises:
            ValueError: For a timed session without a positive duration
        """
        seconds: Optional[float] = None
        if session_type is SessionType.TIMED:
            if duration is None:
                raise ValueError("A timed session needs a duration")
            seconds = duration.seconds if isinstance(duration, RunningDuration) else float(duration)
            if seconds <= 0:
                raise ValueError(f"Session duration must be positive, got {seconds}")

        if self.is_active:
            logger.info("Workout already active, stopping it before starting a new one")
            self.stop()

        session = WorkoutSession(start_time=self._wall_clock(), target_bpm=target_bpm)
        with self._lock:
            self._session = session
            self._session_type = session_type
            self._started_at = self._clock()
            self._duration = seconds
            self._elapsed = 0.0
            self._time_remaining = seconds or 0.0
            self._state = (
                WorkoutState.ACTIVE_COUNTDOWN if seconds is not None else WorkoutState.ACTIVE_UNTIMED
            )
            self._generation += 1
            generation = self._generation
            self._timer = self._timer_factory(
                self.tick_interval, lambda tick: self._on_tick(generation, tick)
            )
            self._timer.start()

        if seconds is not None:
            logger.info(f"Timed workout started: {target_bpm} BPM for {format_duration(seconds)}")
        else:
            logger.info(f"Free run started: {target_bpm} BPM")
        self.events.emit(STARTED, session)
        return session

    def stop(self) -> Optional[WorkoutSession]:
        """Close the open session and record it in the history.

        Returns:
            The finalized session, or None if no session was open
        """
        return self._stop()

    def _stop(self, expected_generation: Optional[int] = None) -> Optional[WorkoutSession]:
        with self._lock:
            if self._state is WorkoutState.IDLE or self._session is None:
                return None
            # The countdown only closes the session its timer belongs to
            if expected_generation is not None and expected_generation != self._generation:
                return None

            timer = self._timer
            self._timer = None
            self._generation += 1

            duration = self._clock() - self._started_at
            finalized = self._session.finished(self._wall_clock(), duration)
            self._history.append(finalized)
            history = list(self._history)

            self._session = None
            self._state = WorkoutState.IDLE
            self._duration = None
            self._elapsed = 0.0
            self._time_remaining = 0.0

        # Cancel outside our lock: a tick may be waiting for it
        if timer is not None:
            timer.cancel()

        self._save_history(history)
        logger.info(
            f"Workout finished: {format_duration(finalized.duration)} at "
            f"{finalized.target_bpm} BPM, {len(finalized.songs_played)} songs"
        )
        self.events.emit(STOPPED, finalized)
        return finalized

    def add_song_to_session(self, title: str) -> None:
        """Log a played song title on the open session. No-op when idle."""
        with self._lock:
            if self._session is None:
                return
            self._session = self._session.with_song(title)
        self.events.emit(SONG_ADDED, title)

    def workout_stats(self) -> WorkoutStats:
        """Totals over the finished sessions."""
        history = self.history
        total_time = sum(session.duration for session in history)
        average_bpm = (
            int(sum(session.target_bpm for session in history) / len(history)) if history else 0
        )
        return WorkoutStats(
            total_sessions=len(history), total_time=total_time, average_bpm=average_bpm
        )

    # ==================== INTERNALS ====================

    def _on_tick(self, generation: int, tick: Tick) -> None:
        with self._lock:
            if generation != self._generation or self._session is None:
                return

            self._elapsed = self._clock() - self._started_at
            countdown_done = False
            if self._duration is not None:
                self._time_remaining = max(0.0, self._duration - self._elapsed)
                countdown_done = self._time_remaining <= 0

            progress = WorkoutProgress(
                elapsed=self._elapsed,
                time_remaining=self._time_remaining,
                formatted_duration=format_duration(self._elapsed),
                formatted_time_remaining=format_duration(self._time_remaining),
                completion_percentage=self._completion_locked(),
            )
            session = self._session

        self.events.emit(TICK, progress)

        if countdown_done:
            logger.info("Workout countdown finished")
            self.events.emit(COUNTDOWN_FINISHED, session)
            self._stop(generation)

    def _completion_locked(self) -> float:
        if self._duration is None:
            return 0.0
        return min(100.0, self._elapsed / self._duration * 100.0)

    def _load_history(self) -> List[WorkoutSession]:
        try:
            sessions = self.history_store.load()
        except Exception as e:
            logger.warning(f"Could not load workout history: {e}")
            return []
        logger.debug(f"Loaded {len(sessions)} workout sessions")
        return list(sessions)

    def _save_history(self, sessions: List[WorkoutSession]) -> None:
        try:
            self.history_store.save(sessions)
        except Exception as e:
            logger.warning(f"Could not save workout history: {e}")
        else:
            logger.debug(f"Saved {len(sessions)} workout sessions")
