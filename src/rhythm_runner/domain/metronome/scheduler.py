"""
Metronome scheduler.

Clicks at a fixed period derived from the BPM on a background PeriodicTimer.
The first click fires immediately on start; later clicks follow an absolute
deadline grid so timing errors never accumulate.
"""

import threading
import time
from typing import Callable, Optional

from loguru import logger

from rhythm_runner.core.config import MetronomeConfig
from rhythm_runner.core.events import EventEmitter
from rhythm_runner.core.timer import PeriodicTimer, Tick, TickCallback

from .click import ClickPlayer, SilentClick
from .presets import validate_bpm

# Event names
STARTED = "started"
STOPPED = "stopped"
TICK = "tick"
BPM_CHANGED = "bpm_changed"
ENABLED_CHANGED = "enabled_changed"

TimerFactory = Callable[[float, TickCallback], PeriodicTimer]


def bpm_to_period(bpm: float) -> float:
    """Seconds between beats."""
    return 60.0 / bpm


def _default_timer_factory(interval: float, callback: TickCallback) -> PeriodicTimer:
    return PeriodicTimer(interval, callback, name="metronome")


class Metronome:
    """BPM click generator.

    Events (subscribe via `events` or `subscribe`):
        started(bpm), stopped(), tick(Tick), bpm_changed(bpm), enabled_changed(bool)
    """

    def __init__(
        self,
        click: Optional[ClickPlayer] = None,
        bpm: int = 140,
        enabled: bool = True,
        events: Optional[EventEmitter] = None,
        clock: Callable[[], float] = time.perf_counter,
        timer_factory: TimerFactory = _default_timer_factory,
    ):
        self.click = click or SilentClick()
        self.events = events or EventEmitter()
        self._bpm = validate_bpm(bpm)
        self._enabled = enabled
        self._clock = clock
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._timer: Optional[PeriodicTimer] = None
        # Bumped on every start and stop; ticks from an older run are dropped
        self._generation = 0
        self._last_tick_at: Optional[float] = None
        self._ticks = 0

    @classmethod
    def from_config(
        cls, config: MetronomeConfig, click: Optional[ClickPlayer] = None, **kwargs
    ) -> "Metronome":
        config.validate()
        return cls(click=click, bpm=config.default_bpm, enabled=config.enabled, **kwargs)

    @property
    def bpm(self) -> int:
        return self._bpm

    @property
    def period(self) -> float:
        return bpm_to_period(self._bpm)

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._timer is not None

    @property
    def tick_count(self) -> int:
        """Ticks fired since the last start (restarts by set_bpm keep counting)."""
        return self._ticks

    def subscribe(self, callback: Callable[[Tick], None]) -> Callable[[], None]:
        """Observe every tick. Returns an unsubscribe function."""
        return self.events.subscribe(TICK, callback)

    # ==================== CONTROL ====================

    def start(self, bpm: Optional[int] = None) -> None:
        """Start clicking.

        No-op while already running or disabled.

        Args:
            bpm: Optional new tempo to use for this run
        """
        if bpm is not None:
            validate_bpm(bpm)

        with self._lock:
            if self._timer is not None or not self._enabled:
                return
            if bpm is not None:
                self._bpm = bpm
            self._ticks = 0
            self._last_tick_at = None
            self._start_locked(first_deadline=None)
            started_bpm = self._bpm

        logger.info(f"Metronome started at {started_bpm} BPM")
        self.events.emit(STARTED, started_bpm)

    def stop(self) -> None:
        """Stop clicking. Once this returns no further click fires."""
        with self._lock:
            timer = self._timer
            self._timer = None
            self._generation += 1

        # Cancel outside our lock: an in-flight tick may be waiting for it
        if timer is None:
            return
        timer.cancel()
        logger.info("Metronome stopped")
        self.events.emit(STOPPED)

    def set_bpm(self, bpm: int) -> None:
        """Change tempo; a running metronome restarts at the new period.

        The restart keeps phase: the first new click is scheduled one new
        period after the last click (or immediately if that is already past),
        so no two clicks are closer than the new period.
        """
        validate_bpm(bpm)

        with self._lock:
            if bpm == self._bpm and self._timer is not None:
                return
            self._bpm = bpm
            timer = self._timer
            self._timer = None
            generation = self._generation

        if timer is not None:
            timer.cancel()
            with self._lock:
                # A stop() or start() raced with us; leave their outcome alone
                if self._generation == generation and self._enabled:
                    now = self._clock()
                    last = self._last_tick_at
                    # A later set_bpm may have landed while we cancelled
                    period = bpm_to_period(self._bpm)
                    first = now if last is None else max(now, last + period)
                    self._start_locked(first_deadline=first)

        logger.debug(f"Metronome BPM set to {bpm}")
        self.events.emit(BPM_CHANGED, bpm)

    def set_enabled(self, enabled: bool) -> None:
        """Enable or disable the metronome; disabling stops it."""
        with self._lock:
            changed = enabled != self._enabled
            self._enabled = enabled
        if not enabled:
            self.stop()
        if changed:
            self.events.emit(ENABLED_CHANGED, enabled)

    def toggle(self) -> bool:
        """Flip the enabled flag. Returns the new value."""
        self.set_enabled(not self._enabled)
        return self._enabled

    # ==================== INTERNALS ====================

    def _start_locked(self, first_deadline: Optional[float]) -> None:
        self._generation += 1
        generation = self._generation
        timer = self._timer_factory(
            bpm_to_period(self._bpm), lambda tick: self._fire(generation, tick)
        )
        self._timer = timer
        timer.start(first_deadline)

    def _fire(self, generation: int, tick: Tick) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._last_tick_at = tick.scheduled_at
            self._ticks += 1

        try:
            self.click.play()
        except Exception as e:
            # Audio failures never stop the beat
            logger.warning(f"Metronome click failed: {e}")

        self.events.emit(TICK, tick)
