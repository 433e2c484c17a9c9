"""
Application facade.

RhythmRunner wires the catalog client, matching engine, metronome and workout
manager into the run lifecycle: start a run at a cadence, play matching songs,
end the run. Front-ends (the CLI, or any UI) drive this object and subscribe
to its components' events.
"""

import threading
from typing import Callable, Optional, Union

from loguru import logger

from rhythm_runner.core.config import Config
from rhythm_runner.core.events import EventEmitter
from rhythm_runner.core.timer import PeriodicTimer, Tick
from rhythm_runner.domain.catalog.auth import make_refresher
from rhythm_runner.domain.catalog.client import CatalogClient
from rhythm_runner.domain.catalog.exceptions import CatalogError
from rhythm_runner.domain.catalog.messages import user_message
from rhythm_runner.domain.catalog.models import PlaybackState, Song
from rhythm_runner.domain.catalog.tokens import TokenStore
from rhythm_runner.domain.matching.engine import BPMMatcher, MatchResult
from rhythm_runner.domain.metronome.click import ClickPlayer
from rhythm_runner.domain.metronome.presets import validate_bpm
from rhythm_runner.domain.metronome.scheduler import Metronome
from rhythm_runner.domain.workout.history import HistoryStore
from rhythm_runner.domain.workout.models import RunningDuration, SessionType, WorkoutSession
from rhythm_runner.domain.workout.session import WorkoutManager

# Event names
CURRENT_SONG = "current_song"
PLAYBACK_STATE = "playback_state"

PLAYBACK_POLL_SECONDS = 5.0


class RhythmRunner:
    """One running companion: metronome, music and workout tracking.

    Events (subscribe via `events`):
        current_song(Song | None), playback_state(PlaybackState | None)
    """

    def __init__(
        self,
        client: Optional[CatalogClient],
        matcher: BPMMatcher,
        metronome: Metronome,
        workout: WorkoutManager,
        events: Optional[EventEmitter] = None,
        device_id: Optional[str] = None,
        background_matching: bool = True,
    ):
        self.client = client
        self.matcher = matcher
        self.metronome = metronome
        self.workout = workout
        self.events = events or EventEmitter()
        self.device_id = device_id or None
        self.background_matching = background_matching

        self._lock = threading.Lock()
        # Bumped whenever a run starts or ends; stale match results are dropped
        self._generation = 0
        self._current_song: Optional[Song] = None
        self._playback_state: Optional[PlaybackState] = None
        self._poller: Optional[PeriodicTimer] = None

    @classmethod
    def from_config(
        cls,
        config: Config,
        token_store: Optional[TokenStore] = None,
        click: Optional[ClickPlayer] = None,
        history_store: Optional[HistoryStore] = None,
        **kwargs,
    ) -> "RhythmRunner":
        """Build the full object graph from configuration."""
        token_store = token_store or TokenStore()
        client = CatalogClient.from_config(config.catalog, token_store)
        token_store.set_refresher(make_refresher(config.catalog, client.session))
        return cls(
            client=client,
            matcher=BPMMatcher(client, config.matching),
            metronome=Metronome.from_config(config.metronome, click=click),
            workout=WorkoutManager.from_config(config.workout, history_store=history_store),
            device_id=config.catalog.preferred_device_id,
            **kwargs,
        )

    @property
    def connected(self) -> bool:
        return self.matcher.connected

    @property
    def current_song(self) -> Optional[Song]:
        return self._current_song

    @property
    def playback_state(self) -> Optional[PlaybackState]:
        return self._playback_state

    @property
    def error_message(self) -> Optional[str]:
        return self.matcher.error_message.message

    # ==================== RUN LIFECYCLE ====================

    def start_run(
        self,
        bpm: int,
        session_type: SessionType = SessionType.FREE_RUN,
        duration: Union[RunningDuration, float, None] = None,
    ) -> WorkoutSession:
        """Start metronome, workout tracking and song matching for a cadence.

        Raises:
            ValueError: For an unplayable BPM or a timed run without duration
        """
        validate_bpm(bpm)
        session = self.workout.start(bpm, session_type, duration)

        self.metronome.set_bpm(bpm)
        self.metronome.start()

        with self._lock:
            self._generation += 1
            generation = self._generation
        self._request_songs(bpm, generation)
        return session

    def end_run(self) -> Optional[WorkoutSession]:
        """Stop the metronome and music and finalize the workout."""
        with self._lock:
            self._generation += 1

        self.metronome.stop()
        if self._current_song is not None:
            self.stop_playback()
        return self.workout.stop()

    # ==================== PLAYBACK ====================

    def play_song(self, song: Song) -> bool:
        """Play a song and log it on the open workout.

        Without a catalog connection the song only becomes current.

        Returns:
            True if the song is now playing
        """
        if not self.connected:
            logger.info(f"Offline play: {song.title} by {song.artist} ({song.bpm} BPM)")
            self._set_current_song(song)
            self.workout.add_song_to_session(song.title)
            return True

        try:
            self.client.play_track(song.uri, self.device_id)
        except CatalogError as e:
            logger.warning(f"Playback of {song.uri} failed: {e}")
            self.matcher.error_message.show(user_message(e))
            return False

        self._set_current_song(song)
        self.workout.add_song_to_session(song.title)
        return True

    def play_random_song(self, bpm: int) -> Optional[Song]:
        """Pick and play a random matching song. Returns it, or None."""
        song = self.matcher.get_random_song_for_bpm(bpm)
        if song is None:
            logger.info(f"No song available for {bpm} BPM")
            return None
        return song if self.play_song(song) else None

    def pause_playback(self) -> None:
        if not self.connected:
            self._set_current_song(None)
            return
        self._playback_command(self.client.pause_playback, "Pause")

    def resume_playback(self) -> None:
        if not self.connected:
            return
        self._playback_command(self.client.resume_playback, "Resume")

    def stop_playback(self) -> None:
        self.pause_playback()
        self._set_current_song(None)

    def update_playback_state(self) -> Optional[PlaybackState]:
        """Fetch the current playback state from the catalog."""
        if not self.connected:
            return None
        try:
            state = self.client.get_current_playback()
        except CatalogError as e:
            logger.debug(f"Playback state update failed: {e}")
            return self._playback_state

        self._playback_state = state
        self.events.emit(PLAYBACK_STATE, state)
        return state

    def start_playback_monitor(self, interval: float = PLAYBACK_POLL_SECONDS) -> None:
        """Poll the playback state in the background."""
        if self._poller is not None:
            return
        self._poller = PeriodicTimer(
            interval, self._poll_playback, name="playback-monitor"
        )
        self._poller.start()

    def stop_playback_monitor(self) -> None:
        poller = self._poller
        self._poller = None
        if poller is not None:
            poller.cancel()

    def close(self) -> None:
        """Stop everything and release the HTTP session."""
        self.stop_playback_monitor()
        self.end_run()
        if self.client is not None:
            self.client.close()

    # ==================== INTERNALS ====================

    def _request_songs(self, bpm: int, generation: int) -> None:
        if not self.background_matching:
            self._match(bpm, generation)
            return
        threading.Thread(
            target=self._match, args=(bpm, generation), name="song-matching", daemon=True
        ).start()

    def _match(self, bpm: int, generation: int) -> None:
        self.matcher.set_loading(True)
        try:
            result = self.matcher.match(bpm)
            self._apply_if_current(result, generation)
        finally:
            self.matcher.set_loading(False)

    def _apply_if_current(self, result: MatchResult, generation: int) -> bool:
        with self._lock:
            current = generation == self._generation
        if not current:
            logger.debug(
                f"Dropping stale match result for {result.target_bpm} BPM "
                f"(run changed while matching)"
            )
            return False
        self.matcher.apply(result)
        return True

    def _playback_command(self, command: Callable[[Optional[str]], None], name: str) -> None:
        try:
            command(self.device_id)
        except CatalogError as e:
            logger.warning(f"{name} failed: {e}")
            self.matcher.error_message.show(user_message(e))

    def _poll_playback(self, tick: Tick) -> None:
        self.update_playback_state()

    def _set_current_song(self, song: Optional[Song]) -> None:
        self._current_song = song
        self.events.emit(CURRENT_SONG, song)

