"""
High-resolution periodic timer running on a background thread.

Ticks are scheduled on an absolute deadline grid (start + n * interval), so
lateness of one tick never shifts the ones after it. Waiting uses an Event
wait for the bulk of the interval and a short spin on time.perf_counter for
the final couple of milliseconds.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from loguru import logger


@dataclass(frozen=True)
class Tick:
    """One timer fire."""

    index: int  # Number of ticks fired before this one
    scheduled_at: float  # Deadline on the perf_counter clock
    fired_at: float  # Actual fire time on the perf_counter clock


TickCallback = Callable[[Tick], None]

# Remaining time below which the wait loop spins instead of sleeping
SPIN_THRESHOLD = 0.002


class PeriodicTimer:
    """Repeating timer with synchronous cancellation.

    Once cancel() returns, the callback is guaranteed not to run again: each
    fire re-checks the cancelled flag under a lock that cancel() also takes.
    """

    def __init__(
        self,
        interval: float,
        callback: TickCallback,
        name: str = "periodic-timer",
        clock: Callable[[], float] = time.perf_counter,
    ):
        if interval <= 0:
            raise ValueError(f"Timer interval must be positive, got {interval}")
        self.interval = interval
        self._callback = callback
        self._name = name
        self._clock = clock
        self._cancelled = threading.Event()
        self._fire_lock = threading.RLock()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return (
            self._thread is not None
            and self._thread.is_alive()
            and not self._cancelled.is_set()
        )

    def start(self, first_deadline: Optional[float] = None) -> None:
        """Start firing.

        Args:
            first_deadline: perf_counter time of the first tick; defaults to now,
                so the first tick fires immediately
        """
        if self._thread is not None:
            raise RuntimeError("Timer already started")

        deadline = self._clock() if first_deadline is None else first_deadline
        self._thread = threading.Thread(
            target=self._run, args=(deadline,), name=self._name, daemon=True
        )
        self._thread.start()

    def cancel(self, timeout: float = 1.0) -> None:
        """Stop the timer. Safe to call repeatedly and from inside the callback."""
        self._cancelled.set()

        # Wait for an in-flight fire to complete
        with self._fire_lock:
            pass

        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)

    def _run(self, deadline: float) -> None:
        index = 0
        while True:
            if not self._wait_until(deadline):
                return

            with self._fire_lock:
                if self._cancelled.is_set():
                    return
                tick = Tick(index=index, scheduled_at=deadline, fired_at=self._clock())
                try:
                    self._callback(tick)
                except Exception:
                    logger.exception(f"{self._name}: tick callback failed")

            index += 1
            deadline += self.interval

            # Fell behind by more than a full interval: drop the missed ticks
            # instead of firing them back to back
            behind = self._clock() - deadline
            if behind > self.interval:
                skipped = int(behind // self.interval)
                deadline += skipped * self.interval
                logger.debug(f"{self._name}: skipped {skipped} late ticks")

    def _wait_until(self, deadline: float) -> bool:
        """Block until the deadline. Returns False if cancelled meanwhile."""
        while True:
            if self._cancelled.is_set():
                return False
            remaining = deadline - self._clock()
            if remaining <= 0:
                return True
            if remaining > SPIN_THRESHOLD:
                if self._cancelled.wait(remaining - SPIN_THRESHOLD):
                    return False
            else:
                time.sleep(0)
