"""Built-in song list used when the catalog is unreachable or not authorized."""

from typing import Iterable, List, Tuple

from rhythm_runner.domain.catalog.models import Song


def _mock(id: str, title: str, artist: str, album: str, bpm: int) -> Song:
    return Song(
        id=id, title=title, artist=artist, album=album, bpm=bpm, uri=f"spotify:track:{id}"
    )


FALLBACK_SONGS: Tuple[Song, ...] = (
    _mock("1", "Running in the 90s", "Max Coveri", "Initial D", 160),
    _mock("2", "Eye of the Tiger", "Survivor", "Rocky III", 180),
    _mock("3", "Born to Run", "Bruce Springsteen", "Born to Run", 140),
    _mock("4", "Chariots of Fire", "Vangelis", "Chariots of Fire", 120),
    _mock("5", "The Final Countdown", "Europe", "The Final Countdown", 160),
    _mock("6", "We Will Rock You", "Queen", "News of the World", 180),
    _mock("7", "Sweet Child O' Mine", "Guns N' Roses", "Appetite for Destruction", 140),
    _mock("8", "Don't Stop Believin'", "Journey", "Escape", 120),
)


def filter_by_tolerance(
    songs: Iterable[Song], target_bpm: float, tolerance: float = 10.0
) -> List[Song]:
    """Keep songs whose BPM is within tolerance of the target, in order."""
    return [song for song in songs if abs(song.bpm - target_bpm) <= tolerance]


def fallback_songs_for_bpm(target_bpm: float, tolerance: float = 10.0) -> List[Song]:
    return filter_by_tolerance(FALLBACK_SONGS, target_bpm, tolerance)
