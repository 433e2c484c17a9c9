"""
Tempo filtering and workout fitness scoring.

A track qualifies for a target BPM when its tempo lies within the tolerance
window and its fitness score (energy, danceability, valence and closeness to
the target) beats the minimum.
"""

import math
from dataclasses import dataclass
from typing import Dict, Iterable, List

from rhythm_runner.domain.catalog.models import AudioFeature, Song, Track, track_to_song

DEFAULT_TOLERANCE = 10.0
DEFAULT_MIN_SCORE = 0.4
DEFAULT_MAX_RESULTS = 20

# Weights of the fitness score components
ENERGY_WEIGHT = 0.4
DANCEABILITY_WEIGHT = 0.3
VALENCE_WEIGHT = 0.2
BPM_MATCH_WEIGHT = 0.1


@dataclass(frozen=True)
class ScoredSong:
    song: Song
    score: float
    bpm_difference: float


def round_tempo(tempo: float) -> int:
    """Round a tempo to the nearest integer BPM, halves rounding up."""
    return int(math.floor(tempo + 0.5))


def fitness_score(
    feature: AudioFeature, target_bpm: float, tolerance: float = DEFAULT_TOLERANCE
) -> float:
    """Weighted workout suitability of a track, between 0 and 1 inside the window."""
    bpm_difference = abs(feature.tempo - target_bpm)
    return (
        feature.energy * ENERGY_WEIGHT
        + feature.danceability * DANCEABILITY_WEIGHT
        + feature.valence * VALENCE_WEIGHT
        + (1.0 - bpm_difference / tolerance) * BPM_MATCH_WEIGHT
    )


def score_tracks(
    tracks: Iterable[Track],
    features: Iterable[AudioFeature],
    target_bpm: float,
    tolerance: float = DEFAULT_TOLERANCE,
    min_score: float = DEFAULT_MIN_SCORE,
) -> List[ScoredSong]:
    """Join tracks with their features and keep the qualifying ones.

    Tracks without a feature record are skipped. Order follows `tracks`.
    """
    features_by_id: Dict[str, AudioFeature] = {f.id: f for f in features}

    scored = []
    for track in tracks:
        feature = features_by_id.get(track.id)
        if feature is None:
            continue

        bpm_difference = abs(feature.tempo - target_bpm)
        if bpm_difference > tolerance:
            continue

        score = fitness_score(feature, target_bpm, tolerance)
        if score <= min_score:
            continue

        scored.append(
            ScoredSong(
                song=track_to_song(track, bpm=round_tempo(feature.tempo)),
                score=score,
                bpm_difference=bpm_difference,
            )
        )
    return scored


def filter_songs_by_bpm(
    tracks: Iterable[Track],
    features: Iterable[AudioFeature],
    target_bpm: float,
    tolerance: float = DEFAULT_TOLERANCE,
    min_score: float = DEFAULT_MIN_SCORE,
    max_results: int = DEFAULT_MAX_RESULTS,
    sort_by_score: bool = True,
) -> List[Song]:
    """Select the songs to recommend for a target BPM.

    Args:
        tracks: Candidate tracks in search order
        features: Audio features for (some of) the candidates
        target_bpm: Target cadence
        tolerance: Maximum tempo distance in BPM
        min_score: Scores at or below this are dropped
        max_results: Maximum songs returned
        sort_by_score: Rank by fitness score (stable) before truncating;
            False keeps search order

    Returns:
        Songs with bpm set to the rounded feature tempo
    """
    scored = score_tracks(tracks, features, target_bpm, tolerance, min_score)
    if sort_by_score:
        scored.sort(key=lambda s: s.score, reverse=True)
    return [s.song for s in scored[:max_results]]
