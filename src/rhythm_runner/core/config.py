"""
Configuration management for Rhythm Runner
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional


@dataclass
class CatalogConfig:
    """Configuration for the streaming catalog (Spotify Web API)."""

    client_id: str = ""
    redirect_uri: str = "http://localhost:8080/callback"
    api_base_url: str = "https://api.spotify.com/v1"
    accounts_base_url: str = "https://accounts.spotify.com"
    scopes: List[str] = field(
        default_factory=lambda: [
            "user-read-playback-state",
            "user-modify-playback-state",
            "user-read-currently-playing",
            "streaming",
            "user-read-email",
            "user-read-private",
        ]
    )
    request_timeout: float = 30.0  # seconds to establish a connection
    resource_timeout: float = 60.0  # seconds to wait for a response body
    max_retries: int = 3
    base_retry_delay: float = 1.0
    max_retry_delay: float = 30.0
    preferred_device_id: str = ""


@dataclass
class MetronomeConfig:
    """Configuration for the metronome click."""

    enabled: bool = True
    default_bpm: int = 140
    volume: float = 0.7
    click_frequency: float = 800.0
    click_duration: float = 0.1
    sample_rate: int = 44100

    def validate(self) -> None:
        """Validate metronome configuration values.

        Raises:
            ValueError: If configuration values are invalid
        """
        if not 30 <= self.default_bpm <= 300:
            raise ValueError(f"Default BPM must be between 30 and 300, got {self.default_bpm}")
        if not 0.0 <= self.volume <= 1.0:
            raise ValueError(f"Metronome volume must be between 0 and 1, got {self.volume}")
        if self.sample_rate <= 0:
            raise ValueError(f"Sample rate must be positive, got {self.sample_rate}")


@dataclass
class WorkoutConfig:
    """Configuration for workout sessions."""

    tick_interval: float = 1.0
    default_duration_minutes: int = 30


@dataclass
class MatchingConfig:
    """Configuration for BPM song matching."""

    bpm_tolerance: float = 10.0
    results_per_query: int = 20
    max_feature_batch: int = 50
    max_results: int = 20
    min_fitness_score: float = 0.4
    sort_by_score: bool = True
    error_display_seconds: float = 10.0


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file: Optional[str] = (
        None  # Custom log file path (default: ~/.local/share/rhythm-runner/rhythm-runner.log)
    )
    max_file_size_mb: int = 10
    backup_count: int = 5
    console_output: bool = False


@dataclass
class Config:
    """Main configuration object."""

    catalog: CatalogConfig = field(default_factory=CatalogConfig)
    metronome: MetronomeConfig = field(default_factory=MetronomeConfig)
    workout: WorkoutConfig = field(default_factory=WorkoutConfig)
    matching: MatchingConfig = field(default_factory=MatchingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return Path(config_home) / "rhythm-runner"
    return Path.home() / ".config" / "rhythm-runner"


def get_config_path() -> Path:
    """Get the main configuration file path.

    Checks for config.toml in the current working directory first, then
    falls back to XDG_CONFIG_HOME/rhythm-runner (or ~/.config/rhythm-runner).
    """
    local_config = Path.cwd() / "config.toml"
    if local_config.exists():
        return local_config
    return get_config_dir() / "config.toml"


def get_data_dir() -> Path:
    """Get the data directory path."""
    data_home = os.environ.get("XDG_DATA_HOME")
    if data_home:
        return Path(data_home) / "rhythm-runner"
    return Path.home() / ".local" / "share" / "rhythm-runner"


def create_default_config() -> str:
    """Create a default configuration TOML content."""
    return """
# Rhythm Runner Configuration

[catalog]
# Spotify application client ID (PKCE flow, no client secret needed)
# client_id = "your-client-id-here"

# OAuth redirect URI (must match your app settings)
redirect_uri = "http://localhost:8080/callback"

# Network timeouts in seconds
request_timeout = 30.0
resource_timeout = 60.0

# Retry policy for transient failures
max_retries = 3
base_retry_delay = 1.0
max_retry_delay = 30.0

[metronome]
enabled = true
default_bpm = 140

# Click volume (0.0-1.0)
volume = 0.7

[workout]
# Default length of a timed run in minutes
default_duration_minutes = 30

[matching]
# Allowed distance between a song's tempo and the target BPM
bpm_tolerance = 10.0

# Rank matches by fitness score before truncating
sort_by_score = true

[logging]
# Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
level = "INFO"

# Custom log file path (default: ~/.local/share/rhythm-runner/rhythm-runner.log)
# log_file = "/path/to/custom/rhythm-runner.log"

max_file_size_mb = 10
backup_count = 5
console_output = false
""".strip()


def _section(toml_data: dict, name: str, defaults: object, cls: type) -> object:
    """Build a config section, taking values from TOML and defaults otherwise."""
    section_data = toml_data.get(name, {})
    values = {
        key: section_data.get(key, getattr(defaults, key))
        for key in defaults.__dataclass_fields__
    }
    return cls(**values)


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from file or create default.

    Environment variables override TOML values:
    - RHYTHM_RUNNER_CLIENT_ID
    - RHYTHM_RUNNER_REDIRECT_URI
    """
    from dotenv import load_dotenv

    env_path = get_config_dir() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    config_path = config_path or get_config_path()

    if not config_path.exists():
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(create_default_config())
        print(f"Created default configuration at: {config_path}")
        config = Config()
    else:
        try:
            with open(config_path, "rb") as f:
                toml_data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            print(f"Error loading configuration from {config_path}: {e}")
            print("Using default configuration.")
            toml_data = {}

        config = Config()
        config.catalog = _section(toml_data, "catalog", config.catalog, CatalogConfig)
        config.metronome = _section(
            toml_data, "metronome", config.metronome, MetronomeConfig
        )
        config.workout = _section(toml_data, "workout", config.workout, WorkoutConfig)
        config.matching = _section(
            toml_data, "matching", config.matching, MatchingConfig
        )
        config.logging = _section(toml_data, "logging", config.logging, LoggingConfig)
        config.logging.level = str(config.logging.level).upper()
        if config.logging.log_file:
            config.logging.log_file = str(Path(config.logging.log_file).expanduser())

        try:
            config.metronome.validate()
        except ValueError as e:
            print(f"Warning: Invalid metronome configuration: {e}")
            print("Using default metronome configuration.")
            config.metronome = MetronomeConfig()

    client_id = os.environ.get("RHYTHM_RUNNER_CLIENT_ID")
    redirect_uri = os.environ.get("RHYTHM_RUNNER_REDIRECT_URI")
    if client_id:
        config.catalog.client_id = client_id
    if redirect_uri:
        config.catalog.redirect_uri = redirect_uri

    return config
