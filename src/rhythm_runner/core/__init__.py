"""Core infrastructure layer - no business logic dependencies.

This module provides foundation-level services:
- Configuration management (TOML)
- Logging and user-facing output (Loguru)
- Console management (Rich)
- Event emitter and high-resolution periodic timer

Clean architecture principle: The core layer has no dependencies on
domain or application layers.
"""

# Configuration
from .config import (
    Config,
    CatalogConfig,
    MetronomeConfig,
    WorkoutConfig,
    MatchingConfig,
    LoggingConfig,
    load_config,
    get_config_dir,
    get_config_path,
    get_data_dir,
    create_default_config,
)

# Output
from .output import log, setup_loguru, set_ui_callback, TransientMessage

# Console
from .console import get_console, safe_print

# Events and timers
from .events import EventEmitter
from .timer import PeriodicTimer, Tick

__all__ = [
    # Configuration
    "Config",
    "CatalogConfig",
    "MetronomeConfig",
    "WorkoutConfig",
    "MatchingConfig",
    "LoggingConfig",
    "load_config",
    "get_config_dir",
    "get_config_path",
    "get_data_dir",
    "create_default_config",
    # Output
    "log",
    "setup_loguru",
    "set_ui_callback",
    "TransientMessage",
    # Console
    "get_console",
    "safe_print",
    # Events and timers
    "EventEmitter",
    "PeriodicTimer",
    "Tick",
]
