"""Search query generation for a target cadence."""

from typing import List, Tuple

# Terms every workout search includes
BASE_QUERIES: Tuple[str, ...] = ("workout", "running", "fitness", "energy")

# (low, high, genres) - inclusive BPM ranges
GENRE_BUCKETS: Tuple[Tuple[int, int, Tuple[str, ...]], ...] = (
    (80, 110, ("chill", "acoustic", "folk", "indie")),
    (111, 130, ("pop", "rock", "alternative", "indie")),
    (131, 150, ("dance", "house", "electronic", "disco")),
    (151, 170, ("techno", "edm", "dance", "electronic")),
    (171, 200, ("drum and bass", "hardcore", "speed", "fast")),
)

FALLBACK_GENRES: Tuple[str, ...] = ("energetic", "workout", "running", "fitness")


def genres_for_bpm(bpm: int) -> Tuple[str, ...]:
    """Genre tags associated with a BPM bucket."""
    for low, high, genres in GENRE_BUCKETS:
        if low <= bpm <= high:
            return genres
    return FALLBACK_GENRES


def generate_search_queries(bpm: int) -> List[str]:
    """Build the search queries for a target BPM.

    Args:
        bpm: Target cadence

    Returns:
        The base workout terms followed by one genre-filtered query per tag
        (always eight queries)

    Example:
        >>> generate_search_queries(160)[4:]
        ['genre:techno', 'genre:edm', 'genre:dance', 'genre:electronic']
    """
    return list(BASE_QUERIES) + [f"genre:{genre}" for genre in genres_for_bpm(bpm)]
