"""
State-change notifications for components driven by background timers.

Components own an EventEmitter and publish named events; front-ends subscribe
to the events they render. An optional dispatcher lets a UI marshal callbacks
onto its own thread (e.g. by putting them on a queue drained by its main loop).
"""

import threading
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional

from loguru import logger

Listener = Callable[..., None]
Dispatcher = Callable[[Callable[[], None]], None]


class EventEmitter:
    """Thread-safe publish/subscribe registry keyed by event name."""

    def __init__(self, dispatcher: Optional[Dispatcher] = None):
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)
        self._lock = threading.Lock()
        self._dispatcher = dispatcher

    def subscribe(self, event: str, listener: Listener) -> Callable[[], None]:
        """Register a listener for an event.

        Args:
            event: Event name
            listener: Callable invoked with the event's arguments

        Returns:
            Function that removes the listener again
        """
        with self._lock:
            self._listeners[event].append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners[event]:
                    self._listeners[event].remove(listener)

        return unsubscribe

    def emit(self, event: str, *args: Any, **kwargs: Any) -> None:
        """Notify every listener of an event.

        Listener failures are logged and never propagate to the emitter.
        """
        with self._lock:
            listeners = list(self._listeners.get(event, ()))

        for listener in listeners:
            if self._dispatcher is not None:
                self._dispatcher(lambda fn=listener: self._call(event, fn, args, kwargs))
            else:
                self._call(event, listener, args, kwargs)

    @staticmethod
    def _call(event: str, listener: Listener, args: tuple, kwargs: dict) -> None:
        try:
            listener(*args, **kwargs)
        except Exception:
            logger.exception(f"Listener for '{event}' failed")
