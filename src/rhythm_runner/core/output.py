"""
Unified output system using Loguru.
Routes user-facing messages to the log file and to the console or a UI callback.
"""

import sys
import threading
from pathlib import Path
from typing import Callable, Optional

from loguru import logger

# UI callback tracking (set when a front-end wants to render messages itself)
_ui_callback: Optional[Callable[[str, str], None]] = None
_ui_lock = threading.Lock()


def setup_loguru(
    log_file: Path,
    level: str = "INFO",
    max_file_size_mb: int = 10,
    backup_count: int = 5,
    console_output: bool = False,
) -> None:
    """
    Configure loguru for file logging with optional console echo.

    Args:
        log_file: Path to log file
        level: Minimum level for file logging (DEBUG, INFO, WARNING, ERROR)
        max_file_size_mb: Rotate the log file past this size
        backup_count: Number of rotated files to keep
        console_output: Also write log records to stderr
    """
    logger.remove()

    log_file.parent.mkdir(parents=True, exist_ok=True)
    logger.add(
        log_file,
        rotation=f"{max_file_size_mb} MB",
        retention=backup_count,
        level=level,
        format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{line} | {message}",
        enqueue=False,
    )

    if console_output:
        logger.add(sys.stderr, level=level)

    logger.info(f"Loguru initialized: {log_file} (level={level})")


def set_ui_callback(ui_callback: Optional[Callable[[str, str], None]]) -> None:
    """
    Route log() output through a UI callback instead of stdout.

    Args:
        ui_callback: Callable receiving (message, level), or None to restore stdout
    """
    global _ui_callback
    with _ui_lock:
        _ui_callback = ui_callback


def log(message: str, level: str = "info") -> None:
    """
    Unified logging: writes to the log AND shows the message to the user.

    Use this instead of print() for user-facing messages that should also be logged.

    Args:
        message: User-facing message
        level: Log level (debug, info, warning, error)
    """
    log_func = getattr(logger, level)
    log_func(message)

    if level == "debug":
        return

    with _ui_lock:
        callback = _ui_callback

    if callback is not None:
        callback(message, level)
    elif getattr(threading.current_thread(), "silent_logging", False):
        return
    elif level == "error":
        print(message, file=sys.stderr)
    else:
        print(message)


class TransientMessage:
    """A user-visible message slot that clears itself after a fixed delay.

    Setting a new message cancels the pending clear of the previous one, so a
    message is never wiped by an older timer.
    """

    def __init__(
        self,
        display_seconds: float = 10.0,
        on_change: Optional[Callable[[Optional[str]], None]] = None,
    ):
        self.display_seconds = display_seconds
        self._on_change = on_change
        self._message: Optional[str] = None
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    @property
    def message(self) -> Optional[str]:
        with self._lock:
            return self._message

    def show(self, message: str) -> None:
        """Display a message and schedule it to clear."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._message = message
            self._timer = threading.Timer(
                self.display_seconds, self._expire, args=(message,)
            )
            self._timer.daemon = True
            self._timer.start()
        self._notify(message)

    def clear(self) -> None:
        """Clear the message immediately."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            changed = self._message is not None
            self._message = None
        if changed:
            self._notify(None)

    def _expire(self, message: str) -> None:
        with self._lock:
            if self._message != message:
                return
            self._message = None
            self._timer = None
        self._notify(None)

    def _notify(self, message: Optional[str]) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change(message)
        except Exception:
            logger.exception("Transient message listener failed")
