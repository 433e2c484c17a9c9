"""
Catalog data models.

Wire schemas mirror the Spotify Web API JSON (snake_case fields) as Pydantic
models: field types are validated, unknown fields are ignored and optional
fields default to None, so a missing extra never fails the whole decode.
Song is the merged domain entity handed to the rest of the app.
"""

from dataclasses import dataclass
from typing import Any, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .exceptions import DecodingError

ModelT = TypeVar("ModelT", bound=BaseModel)


# ==================== AUTHENTICATION ====================


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "Bearer"
    expires_in: int
    refresh_token: Optional[str] = None
    scope: Optional[str] = None


# ==================== SEARCH ====================


class Image(BaseModel):
    url: str
    height: Optional[int] = None
    width: Optional[int] = None


class Artist(BaseModel):
    id: Optional[str] = None
    name: str
    uri: Optional[str] = None


class Album(BaseModel):
    id: Optional[str] = None
    name: str
    images: list[Image] = []
    release_date: Optional[str] = None
    total_tracks: Optional[int] = None
    uri: Optional[str] = None


class Track(BaseModel):
    """A catalog track. Immutable once fetched."""

    model_config = {"frozen": True}

    id: str
    name: str
    artists: list[Artist] = []
    album: Optional[Album] = None
    duration_ms: int = 0
    explicit: bool = False
    popularity: Optional[int] = None
    preview_url: Optional[str] = None
    uri: str


class TrackPage(BaseModel):
    items: list[Track] = []
    limit: Optional[int] = None
    offset: Optional[int] = None
    total: Optional[int] = None


class SearchResponse(BaseModel):
    tracks: TrackPage


# ==================== AUDIO FEATURES ====================


class AudioFeature(BaseModel):
    """Per-track tempo and mood descriptors (0.0-1.0 unless noted)."""

    model_config = {"frozen": True}

    id: str
    tempo: float  # BPM
    energy: float
    danceability: float
    valence: float
    acousticness: Optional[float] = None
    instrumentalness: Optional[float] = None
    liveness: Optional[float] = None
    speechiness: Optional[float] = None
    loudness: Optional[float] = None  # dB
    key: Optional[int] = None
    mode: Optional[int] = None
    time_signature: Optional[int] = None
    duration_ms: Optional[int] = None


class AudioFeaturesResponse(BaseModel):
    # The API returns null entries for IDs it has no analysis for
    audio_features: list[Optional[AudioFeature]] = []


# ==================== PLAYBACK ====================


class Device(BaseModel):
    id: Optional[str] = None
    is_active: bool = False
    is_private_session: bool = False
    is_restricted: bool = False
    name: str
    type: str
    volume_percent: Optional[int] = None


class DevicesResponse(BaseModel):
    devices: list[Device] = []


class PlaybackContext(BaseModel):
    type: str
    href: Optional[str] = None
    uri: str


class PlaybackState(BaseModel):
    device: Optional[Device] = None
    repeat_state: Optional[str] = None
    shuffle_state: Optional[bool] = None
    context: Optional[PlaybackContext] = None
    timestamp: Optional[int] = None
    progress_ms: Optional[int] = None
    is_playing: bool = False
    item: Optional[Track] = None


# ==================== USER ====================


class UserProfile(BaseModel):
    id: str
    display_name: Optional[str] = None
    email: Optional[str] = None
    country: Optional[str] = None
    product: Optional[str] = None  # "premium", "free", etc.
    images: Optional[list[Image]] = None

    @property
    def is_premium(self) -> bool:
        return self.product == "premium"


# ==================== ERRORS ====================


class ErrorDetail(BaseModel):
    status: int
    message: str


class ErrorPayload(BaseModel):
    error: ErrorDetail


# ==================== DOMAIN ====================


@dataclass(frozen=True)
class Song:
    """A playable track with its resolved tempo.

    Built by joining a Track with its AudioFeature; never mutated afterwards.
    """

    id: str
    title: str
    artist: str
    album: str
    bpm: int
    uri: str
    album_art_url: Optional[str] = None


def track_to_song(track: Track, bpm: int = 0) -> Song:
    """Convert a catalog track to a Song with the given BPM."""
    album = track.album
    return Song(
        id=track.id,
        title=track.name,
        artist=track.artists[0].name if track.artists else "Unknown Artist",
        album=album.name if album else "",
        bpm=bpm,
        uri=track.uri,
        album_art_url=album.images[0].url if album and album.images else None,
    )


def decode(model: Type[ModelT], data: Any) -> ModelT:
    """Validate decoded JSON against a schema.

    Raises:
        DecodingError: If the data does not match the schema
    """
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise DecodingError(
            f"Failed to decode {model.__name__}: {e.error_count()} validation error(s)"
        ) from e
