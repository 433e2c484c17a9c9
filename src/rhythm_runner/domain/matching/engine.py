"""
BPM matching engine.

Turns a target cadence into recommended songs: fans out one catalog search
per query, merges and de-duplicates the results, looks up audio features for
the batch and keeps tracks whose tempo and fitness score qualify. Any catalog
failure degrades to the built-in fallback list.
"""

import random
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, List, Optional

from loguru import logger

from rhythm_runner.core.config import MatchingConfig
from rhythm_runner.core.events import EventEmitter
from rhythm_runner.core.output import TransientMessage
from rhythm_runner.domain.catalog.client import CatalogClient
from rhythm_runner.domain.catalog.exceptions import (
    AuthenticationRequiredError,
    CatalogError,
)
from rhythm_runner.domain.catalog.messages import user_message
from rhythm_runner.domain.catalog.models import Song, Track

from .fallback import FALLBACK_SONGS, fallback_songs_for_bpm, filter_by_tolerance
from .queries import generate_search_queries
from .scoring import filter_songs_by_bpm

# Event names
SONGS_UPDATED = "songs_updated"
LOADING = "loading"
ERROR = "error"


@dataclass(frozen=True)
class MatchResult:
    """Outcome of one match computation, not yet applied to the engine."""

    target_bpm: int
    songs: List[Song]
    from_catalog: bool
    error: Optional[CatalogError] = None


def merge_unique(results: List[List[Track]], limit: Optional[int] = None) -> List[Track]:
    """Union search results by track id, first occurrence wins."""
    seen: Dict[str, Track] = {}
    for tracks in results:
        for track in tracks:
            if track.id not in seen:
                seen[track.id] = track
    merged = list(seen.values())
    return merged if limit is None else merged[:limit]


class BPMMatcher:
    """Recommends songs for a target BPM.

    Events (subscribe via `events`):
        loading(bool), songs_updated(list[Song]), error(str | None)
    """

    def __init__(
        self,
        client: Optional[CatalogClient],
        config: Optional[MatchingConfig] = None,
        events: Optional[EventEmitter] = None,
        rng: Optional[random.Random] = None,
    ):
        self.client = client
        self.config = config or MatchingConfig()
        self.events = events or EventEmitter()
        self._rng = rng or random.Random()
        self._lock = threading.Lock()
        self._recommended: List[Song] = []
        self._loading = False
        self.error_message = TransientMessage(
            display_seconds=self.config.error_display_seconds,
            on_change=lambda message: self.events.emit(ERROR, message),
        )

    @property
    def recommended_songs(self) -> List[Song]:
        with self._lock:
            return list(self._recommended)

    @property
    def is_loading(self) -> bool:
        return self._loading

    @property
    def connected(self) -> bool:
        return self.client is not None and self.client.is_authenticated

    # ==================== MATCHING ====================

    def get_songs_for_bpm(self, target_bpm: int) -> List[Song]:
        """Compute recommendations for a BPM and publish them.

        Returns:
            The new recommended songs
        """
        self.set_loading(True)
        try:
            result = self.match(target_bpm)
            self.apply(result)
        finally:
            self.set_loading(False)
        return result.songs

    def match(self, target_bpm: int) -> MatchResult:
        """Compute recommendations without touching engine state."""
        if not self.connected:
            logger.info(f"Catalog not connected, using fallback songs for {target_bpm} BPM")
            return MatchResult(target_bpm, self.fallback_songs(target_bpm), from_catalog=False)

        try:
            songs = self.fetch_catalog_songs(target_bpm)
        except CatalogError as e:
            logger.warning(f"Catalog match for {target_bpm} BPM failed, using fallback: {e}")
            return MatchResult(
                target_bpm, self.fallback_songs(target_bpm), from_catalog=False, error=e
            )

        return MatchResult(target_bpm, songs, from_catalog=True)

    def apply(self, result: MatchResult) -> None:
        """Make a match result the current recommendations."""
        with self._lock:
            self._recommended = list(result.songs)
        if result.error is not None:
            self.error_message.show(user_message(result.error))
        else:
            self.error_message.clear()
        self.events.emit(SONGS_UPDATED, list(result.songs))

    def fetch_catalog_songs(self, target_bpm: int) -> List[Song]:
        """Run the catalog pipeline: search fan-out, features, scoring.

        Raises:
            CatalogError: From any catalog call
        """
        client = self.client
        if client is None:
            raise AuthenticationRequiredError("No catalog client configured")
        cfg = self.config
        queries = generate_search_queries(target_bpm)

        # Searches run concurrently; map() yields in query order and re-raises
        # the first failure
        with ThreadPoolExecutor(
            max_workers=len(queries), thread_name_prefix="catalog-search"
        ) as pool:
            results = list(
                pool.map(
                    lambda query: client.search_tracks(query, cfg.results_per_query),
                    queries,
                )
            )

        tracks = merge_unique(results, limit=cfg.max_feature_batch)
        logger.debug(
            f"{len(queries)} searches for {target_bpm} BPM returned {len(tracks)} unique tracks"
        )
        if not tracks:
            return []

        features = client.get_audio_features([track.id for track in tracks])
        songs = filter_songs_by_bpm(
            tracks,
            features,
            target_bpm,
            tolerance=cfg.bpm_tolerance,
            min_score=cfg.min_fitness_score,
            max_results=cfg.max_results,
            sort_by_score=cfg.sort_by_score,
        )
        logger.info(f"Matched {len(songs)} songs for {target_bpm} BPM")
        return songs

    def fallback_songs(self, target_bpm: int) -> List[Song]:
        return fallback_songs_for_bpm(target_bpm, self.config.bpm_tolerance)

    # ==================== SELECTION ====================

    def get_random_song_for_bpm(self, bpm: int) -> Optional[Song]:
        """Pick a random song within tolerance of a BPM.

        Draws from the current recommendations, or from the fallback list when
        there are none.

        Returns:
            A matching song, or None if nothing is within tolerance
        """
        pool = self.recommended_songs or list(FALLBACK_SONGS)
        matching = filter_by_tolerance(pool, bpm, self.config.bpm_tolerance)
        if not matching:
            return None
        return self._rng.choice(matching)

    def clear(self) -> None:
        with self._lock:
            self._recommended = []
        self.events.emit(SONGS_UPDATED, [])

    def set_loading(self, loading: bool) -> None:
        self._loading = loading
        self.events.emit(LOADING, loading)
