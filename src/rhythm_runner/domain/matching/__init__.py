"""Matching domain - songs for a target running cadence.

This domain handles:
- Search query generation per BPM bucket
- Tempo tolerance filtering and fitness scoring
- Concurrent catalog search with fallback songs
"""

from .queries import generate_search_queries, genres_for_bpm
from .scoring import fitness_score, filter_songs_by_bpm, round_tempo
from .fallback import FALLBACK_SONGS, filter_by_tolerance, fallback_songs_for_bpm
from .engine import BPMMatcher, MatchResult, merge_unique

__all__ = [
    "generate_search_queries",
    "genres_for_bpm",
    "fitness_score",
    "filter_songs_by_bpm",
    "round_tempo",
    "FALLBACK_SONGS",
    "filter_by_tolerance",
    "fallback_songs_for_bpm",
    "BPMMatcher",
    "MatchResult",
    "merge_unique",
]
