"""
Rhythm Runner CLI - Entry point

Subcommands cover the run lifecycle (match songs, metronome, full run) plus
login and the list of cadence presets.
"""

import argparse
import sys
import threading
from pathlib import Path
from typing import List, Optional

from loguru import logger
from rich.table import Table

from rhythm_runner.app import RhythmRunner
from rhythm_runner.core.config import Config, get_data_dir, load_config
from rhythm_runner.core.console import get_console, safe_print
from rhythm_runner.core.output import setup_loguru
from rhythm_runner.domain.catalog.auth import authenticate, make_refresher
from rhythm_runner.domain.catalog.models import Song
from rhythm_runner.domain.catalog.tokens import TokenStore, load_token_file, save_token_file
from rhythm_runner.domain.metronome.click import ClickPlayer, SilentClick, SounddeviceClick
from rhythm_runner.domain.metronome.presets import PRESETS, find_preset, validate_bpm
from rhythm_runner.domain.metronome.scheduler import Metronome
from rhythm_runner.domain.workout.models import RunningDuration, SessionType
from rhythm_runner.domain.workout.session import format_duration


def get_token_path() -> Path:
    return get_data_dir() / "tokens.json"


def build_token_store(config: Config) -> TokenStore:
    """Token store restored from disk that saves every new token back."""
    path = get_token_path()
    token_store = TokenStore(on_update=lambda token: save_token_file(path, token))
    saved = load_token_file(path)
    if saved is not None:
        token_store.restore(saved)
    return token_store


def build_click(config: Config, mute: bool) -> ClickPlayer:
    if mute:
        return SilentClick()
    return SounddeviceClick.from_config(config.metronome)


def parse_bpm(value: str) -> int:
    """argparse type: an integer BPM or a preset name ("sprint")."""
    preset = find_preset(value)
    if preset is not None:
        return preset.bpm
    try:
        return validate_bpm(int(value))
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def print_songs(songs: List[Song], title: str) -> None:
    if not songs:
        safe_print("No matching songs found.", style="yellow")
        return

    table = Table(title=title)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Title", style="bold")
    table.add_column("Artist")
    table.add_column("Album", style="dim")
    table.add_column("BPM", justify="right", style="cyan")
    for i, song in enumerate(songs, start=1):
        table.add_row(str(i), song.title, song.artist, song.album, str(song.bpm))
    get_console().print(table)


def wait_for(event: threading.Event, seconds: Optional[float] = None) -> None:
    """Block until the event is set, the timeout passes, or Ctrl+C."""
    try:
        event.wait(seconds)
    except KeyboardInterrupt:
        safe_print("")


# ==================== COMMANDS ====================


def cmd_match(config: Config, args: argparse.Namespace) -> int:
    token_store = TokenStore() if args.offline else build_token_store(config)
    app = RhythmRunner.from_config(config, token_store=token_store, click=SilentClick())
    try:
        if not app.connected:
            safe_print("Not logged in to Spotify - showing built-in songs.", style="yellow")
        songs = app.matcher.get_songs_for_bpm(args.bpm)
        print_songs(songs, f"Songs for {args.bpm} BPM")
        if app.error_message:
            safe_print(app.error_message, style="red")
    finally:
        app.client.close()
    return 0


def cmd_metronome(config: Config, args: argparse.Namespace) -> int:
    metronome = Metronome(click=build_click(config, args.mute), bpm=args.bpm)
    metronome.subscribe(lambda tick: logger.debug(
        f"tick {tick.index} late by {(tick.fired_at - tick.scheduled_at) * 1000:.2f} ms"
    ))

    safe_print(f"🥁 Metronome at {args.bpm} BPM - press Ctrl+C to stop", style="bold")
    metronome.start()
    try:
        wait_for(threading.Event(), args.seconds)
    finally:
        metronome.stop()
    safe_print(f"{metronome.tick_count} clicks")
    return 0


def cmd_run(config: Config, args: argparse.Namespace) -> int:
    if args.duration is not None:
        session_type, duration = SessionType.TIMED, args.duration * 60.0
    elif args.timed:
        minutes = config.workout.default_duration_minutes
        session_type, duration = SessionType.TIMED, minutes * 60.0
    else:
        session_type, duration = SessionType.FREE_RUN, None

    app = RhythmRunner.from_config(
        config,
        token_store=build_token_store(config),
        click=build_click(config, args.mute),
        background_matching=False,
    )
    finished = threading.Event()
    app.workout.events.subscribe("stopped", lambda session: finished.set())

    def show_song(song: Optional[Song]) -> None:
        if song is not None:
            safe_print(f"▶ {song.title} - {song.artist} ({song.bpm} BPM)")

    app.events.subscribe("current_song", show_song)

    try:
        app.start_run(args.bpm, session_type, duration)
        print_songs(app.matcher.recommended_songs, f"Songs for {args.bpm} BPM")
        if app.error_message:
            safe_print(app.error_message, style="red")
        app.play_random_song(args.bpm)
        app.start_playback_monitor()

        if duration is not None:
            safe_print(f"🏃 Timed run: {format_duration(duration)} - Ctrl+C to end early", style="bold")
        else:
            safe_print("🏃 Free run - press Ctrl+C to finish", style="bold")
        wait_for(finished)

        session = app.workout.stop() or (app.workout.history[-1] if app.workout.history else None)
    finally:
        app.close()

    if session is not None:
        safe_print(
            f"✓ Run complete: {format_duration(session.duration)} at {session.target_bpm} BPM, "
            f"{len(session.songs_played)} song(s)",
            style="green",
        )
    return 0


def cmd_auth(config: Config, args: argparse.Namespace) -> int:
    token_store = build_token_store(config)
    token_store.set_refresher(make_refresher(config.catalog))
    ok = authenticate(config.catalog, token_store, open_browser=not args.no_browser)
    return 0 if ok else 1


def cmd_presets(config: Config, args: argparse.Namespace) -> int:
    table = Table(title="Cadence presets")
    table.add_column("Name", style="bold")
    table.add_column("BPM", justify="right", style="cyan")
    table.add_column("Description")
    for preset in PRESETS:
        table.add_row(preset.name, str(preset.bpm), preset.description)
    get_console().print(table)

    durations = Table(title="Run durations")
    durations.add_column("Length", style="bold")
    durations.add_column("Description")
    for duration in RunningDuration:
        durations.add_row(duration.display_text, duration.description)
    get_console().print(durations)
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the rhythm-runner command."""
    parser = argparse.ArgumentParser(
        description="Rhythm Runner - music and metronome at your running cadence",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", type=Path, help="Path to config.toml")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Echo log records to stderr"
    )

    subparsers = parser.add_subparsers(dest="subcommand", help="Available commands")

    match_parser = subparsers.add_parser("match", help="List songs matching a BPM")
    match_parser.add_argument("bpm", type=parse_bpm, help="Target BPM or preset name")
    match_parser.add_argument(
        "--offline", action="store_true", help="Use the built-in songs only"
    )

    metronome_parser = subparsers.add_parser("metronome", help="Play a click at a BPM")
    metronome_parser.add_argument("bpm", type=parse_bpm, help="Target BPM or preset name")
    metronome_parser.add_argument(
        "--seconds", type=float, help="Stop after this many seconds (default: Ctrl+C)"
    )
    metronome_parser.add_argument("--mute", action="store_true", help="No sound")

    run_parser = subparsers.add_parser("run", help="Start a run with metronome and music")
    run_parser.add_argument("bpm", type=parse_bpm, help="Target BPM or preset name")
    duration_group = run_parser.add_mutually_exclusive_group()
    duration_group.add_argument(
        "--duration",
        type=int,
        choices=[d.value for d in RunningDuration],
        help="Timed run length in minutes",
    )
    duration_group.add_argument(
        "--timed", action="store_true", help="Timed run with the configured default length"
    )
    run_parser.add_argument("--mute", action="store_true", help="Silence the metronome")

    auth_parser = subparsers.add_parser("auth", help="Log in to Spotify")
    auth_parser.add_argument(
        "--no-browser", action="store_true", help="Print the login URL instead of opening it"
    )

    subparsers.add_parser("presets", help="Show cadence presets and run durations")

    args = parser.parse_args(argv)
    if not args.subcommand:
        parser.print_help()
        sys.exit(1)

    config = load_config(args.config)
    log_file = (
        Path(config.logging.log_file)
        if config.logging.log_file
        else (get_data_dir() / "rhythm-runner.log")
    )
    setup_loguru(
        log_file,
        level=config.logging.level,
        max_file_size_mb=config.logging.max_file_size_mb,
        backup_count=config.logging.backup_count,
        console_output=config.logging.console_output or args.verbose,
    )

    commands = {
        "match": cmd_match,
        "metronome": cmd_metronome,
        "run": cmd_run,
        "auth": cmd_auth,
        "presets": cmd_presets,
    }
    sys.exit(commands[args.subcommand](config, args))


if __name__ == "__main__":
    main()
