"""Tests for catalog wire models and user-facing error messages."""

import pytest

from rhythm_runner.domain.catalog import messages
from rhythm_runner.domain.catalog.exceptions import (
    AuthenticationRequiredError,
    CatalogServiceError,
    DecodingError,
    InvalidRequestError,
    NetworkError,
)
from rhythm_runner.domain.catalog.models import (
    AudioFeaturesResponse,
    Track,
    UserProfile,
    decode,
    track_to_song,
)


class TestDecode:
    """Tests for schema decoding."""

    def test_unknown_fields_are_ignored(self, track_json) -> None:
        """Test extra JSON fields do not fail the decode."""
        track = decode(Track, track_json("abc"))

        assert track.id == "abc"
        assert track.album.images[0].url == "https://img.example/abc.jpg"

    def test_missing_required_field(self) -> None:
        """Test a missing required field raises DecodingError."""
        with pytest.raises(DecodingError, match="Track"):
            decode(Track, {"id": "abc", "name": "No URI"})

    def test_null_feature_entries(self, feature_json) -> None:
        """Test null entries in an audio-features batch decode as None."""
        response = decode(
            AudioFeaturesResponse,
            {"audio_features": [feature_json("a", 150.0), None]},
        )

        assert response.audio_features[0].tempo == 150.0
        assert response.audio_features[1] is None

    def test_premium_flag(self) -> None:
        """Test is_premium reflects the product field."""
        assert UserProfile(id="u", product="premium").is_premium is True
        assert UserProfile(id="u", product="free").is_premium is False


class TestTrackToSong:
    """Tests for track_to_song."""

    def test_maps_fields(self, track_json) -> None:
        """Test the first artist, album name and art are used."""
        song = track_to_song(decode(Track, track_json("abc", name="Song", artist="Band")), bpm=162)

        assert song.id == "abc"
        assert song.title == "Song"
        assert song.artist == "Band"
        assert song.album == "Album abc"
        assert song.bpm == 162
        assert song.uri == "spotify:track:abc"
        assert song.album_art_url == "https://img.example/abc.jpg"

    def test_missing_artist_and_album(self) -> None:
        """Test placeholders when artist and album are absent."""
        song = track_to_song(Track(id="x", name="Bare", uri="spotify:track:x"))

        assert song.artist == "Unknown Artist"
        assert song.album == ""
        assert song.album_art_url is None
        assert song.bpm == 0


class TestUserMessage:
    """Tests for user_message."""

    @pytest.mark.parametrize(
        "error, expected",
        [
            (AuthenticationRequiredError(), messages.AUTH_FAILED),
            (CatalogServiceError(403, "Premium required"), messages.PREMIUM_REQUIRED),
            (CatalogServiceError(404, "No active device"), messages.DEVICE_NOT_FOUND),
            (CatalogServiceError(400, "Bad request"), messages.PLAYBACK_ERROR),
            (NetworkError("timed out"), messages.NETWORK_ERROR),
            (InvalidRequestError("bad url"), messages.PLAYBACK_ERROR),
        ],
    )
    def test_mapping(self, error, expected) -> None:
        """Test each error kind maps to its message."""
        assert messages.user_message(error) == expected
