"""Shared fixtures for Rhythm Runner tests."""

import json
from typing import Any, Callable, Dict, List, Optional

import pytest
import requests

from rhythm_runner.core.timer import Tick
from rhythm_runner.domain.catalog.tokens import TokenStore

NOW = 1_700_000_000.0


def _response(
    status_code: int = 200, body: Any = None, text: Optional[str] = None
) -> requests.Response:
    response = requests.Response()
    response.status_code = status_code
    if body is not None:
        response._content = json.dumps(body).encode("utf-8")
        response.headers["Content-Type"] = "application/json"
    else:
        response._content = (text or "").encode("utf-8")
    return response


def _track_json(track_id: str, name: Optional[str] = None, artist: str = "Test Artist") -> Dict[str, Any]:
    return {
        "id": track_id,
        "name": name or f"Track {track_id}",
        "artists": [{"id": f"artist-{track_id}", "name": artist}],
        "album": {
            "name": f"Album {track_id}",
            "images": [{"url": f"https://img.example/{track_id}.jpg", "height": 640, "width": 640}],
        },
        "duration_ms": 210000,
        "explicit": False,
        "uri": f"spotify:track:{track_id}",
        "available_markets": ["US"],  # unknown field, ignored
    }


def _feature_json(
    track_id: str,
    tempo: float,
    energy: float = 0.8,
    danceability: float = 0.7,
    valence: float = 0.6,
) -> Dict[str, Any]:
    return {
        "id": track_id,
        "tempo": tempo,
        "energy": energy,
        "danceability": danceability,
        "valence": valence,
        "key": 5,
        "mode": 1,
        "time_signature": 4,
        "type": "audio_features",
    }


@pytest.fixture
def make_response() -> Callable[..., requests.Response]:
    """Factory for requests.Response objects with a JSON or text body."""
    return _response


@pytest.fixture
def track_json() -> Callable[..., Dict[str, Any]]:
    """Factory for Spotify track JSON objects."""
    return _track_json


@pytest.fixture
def feature_json() -> Callable[..., Dict[str, Any]]:
    """Factory for Spotify audio-feature JSON objects."""
    return _feature_json


@pytest.fixture
def search_body() -> Callable[[List[Dict[str, Any]]], Dict[str, Any]]:
    """Wrap track JSON objects in a search response."""
    return lambda tracks: {"tracks": {"items": tracks, "limit": 20, "offset": 0, "total": len(tracks)}}


@pytest.fixture
def token_store() -> TokenStore:
    """Token store with a valid token on a frozen clock."""
    store = TokenStore(clock=lambda: NOW)
    store.set_access_token("test-token", 3600)
    return store


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTimer:
    """PeriodicTimer stand-in whose ticks are fired by the test."""

    def __init__(self, interval: float, callback: Callable[[Tick], None]):
        self.interval = interval
        self.callback = callback
        self.first_deadline: Optional[float] = None
        self.started = False
        self.cancelled = False
        self.index = 0

    def start(self, first_deadline: Optional[float] = None) -> None:
        self.started = True
        self.first_deadline = first_deadline

    def cancel(self, timeout: float = 1.0) -> None:
        self.cancelled = True

    def fire(self, scheduled_at: float = 0.0, fired_at: Optional[float] = None) -> None:
        tick = Tick(
            index=self.index,
            scheduled_at=scheduled_at,
            fired_at=scheduled_at if fired_at is None else fired_at,
        )
        self.index += 1
        self.callback(tick)


class FakeTimerFactory:
    """Records every timer created."""

    def __init__(self) -> None:
        self.timers: List[FakeTimer] = []

    def __call__(self, interval: float, callback: Callable[[Tick], None]) -> FakeTimer:
        timer = FakeTimer(interval, callback)
        self.timers.append(timer)
        return timer

    @property
    def last(self) -> FakeTimer:
        return self.timers[-1]


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def timer_factory() -> FakeTimerFactory:
    return FakeTimerFactory()
