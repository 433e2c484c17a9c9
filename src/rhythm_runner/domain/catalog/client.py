"""
Spotify Web API client.

Thin authenticated wrapper around the search, audio-features, playback and
profile endpoints. Every call checks the shared TokenStore before touching the
network and runs inside the retry policy from retry.py.
"""

import random
import time
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlparse

import requests
from loguru import logger

from rhythm_runner.core.config import CatalogConfig

from .exceptions import (
    AuthenticationRequiredError,
    CatalogServiceError,
    DecodingError,
    InvalidRequestError,
    NetworkError,
    NoDataError,
)
from .models import (
    AudioFeature,
    AudioFeaturesResponse,
    Device,
    DevicesResponse,
    ErrorPayload,
    PlaybackState,
    SearchResponse,
    Track,
    UserProfile,
    decode,
)
from .retry import build_retrying
from .tokens import TokenStore

# Spotify API base URL
API_BASE = "https://api.spotify.com/v1"

SEARCH_ENDPOINT = "/search"
AUDIO_FEATURES_ENDPOINT = "/audio-features"
PLAYER_ENDPOINT = "/me/player"
PLAYER_PLAY_ENDPOINT = "/me/player/play"
PLAYER_PAUSE_ENDPOINT = "/me/player/pause"
DEVICES_ENDPOINT = "/me/player/devices"
ME_ENDPOINT = "/me"

MAX_SEARCH_LIMIT = 50
MAX_AUDIO_FEATURE_IDS = 100


class CatalogClient:
    """Authenticated request/response wrapper with retry and backoff."""

    def __init__(
        self,
        token_store: TokenStore,
        session: Optional[requests.Session] = None,
        base_url: str = API_BASE,
        request_timeout: float = 30.0,
        resource_timeout: float = 60.0,
        max_retries: int = 3,
        base_retry_delay: float = 1.0,
        max_retry_delay: float = 30.0,
        sleep: Callable[[float], None] = time.sleep,
        rng: Optional[random.Random] = None,
    ):
        """Initialize the client.

        Args:
            token_store: Shared token store (read before every request)
            session: requests session (a new one is created if omitted)
            base_url: API root, e.g. https://api.spotify.com/v1
            request_timeout: Seconds allowed to connect
            resource_timeout: Seconds allowed to receive the response
            max_retries: Retries after the first attempt for transient errors
            base_retry_delay: First backoff delay in seconds
            max_retry_delay: Cap for a single backoff delay
            sleep: Sleep function used between retries
            rng: Random source for backoff jitter
        """
        self.token_store = token_store
        self.session = session or requests.Session()
        self.base_url = base_url.rstrip("/")
        self.request_timeout = request_timeout
        self.resource_timeout = resource_timeout
        self.max_retries = max_retries
        self.base_retry_delay = base_retry_delay
        self.max_retry_delay = max_retry_delay
        self._sleep = sleep
        self._rng = rng

    @classmethod
    def from_config(
        cls, config: CatalogConfig, token_store: TokenStore, **kwargs: Any
    ) -> "CatalogClient":
        return cls(
            token_store,
            base_url=config.api_base_url,
            request_timeout=config.request_timeout,
            resource_timeout=config.resource_timeout,
            max_retries=config.max_retries,
            base_retry_delay=config.base_retry_delay,
            max_retry_delay=config.max_retry_delay,
            **kwargs,
        )

    # ==================== AUTHENTICATION ====================

    def set_access_token(self, token: str, expires_in: float) -> None:
        """Store a token valid for expires_in seconds from now."""
        self.token_store.set_access_token(token, expires_in)

    @property
    def is_authenticated(self) -> bool:
        """True while requests can be authorized (valid or refreshable token)."""
        return self.token_store.can_authenticate

    # ==================== REQUEST EXECUTION ====================

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        expect_body: bool = True,
        allow_no_content: bool = False,
    ) -> Optional[Any]:
        """Run one API call under the retry policy.

        Returns:
            Decoded JSON, or None for bodiless responses
        """
        retrying = build_retrying(
            max_retries=self.max_retries,
            base_delay=self.base_retry_delay,
            max_delay=self.max_retry_delay,
            sleep=self._sleep,
            rng=self._rng,
        )
        return retrying(
            self._send,
            method,
            path,
            params=params,
            json=json,
            expect_body=expect_body,
            allow_no_content=allow_no_content,
        )

    def _send(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]],
        json: Optional[Dict[str, Any]],
        expect_body: bool,
        allow_no_content: bool,
    ) -> Optional[Any]:
        """Single attempt: token check, HTTP call, status mapping."""
        # Checked on every attempt so retries never run on an expired token
        token = self.token_store.valid_token()

        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=json,
                headers={"Authorization": f"Bearer {token}"},
                timeout=(self.request_timeout, self.resource_timeout),
            )
        except (
            requests.exceptions.InvalidURL,
            requests.exceptions.MissingSchema,
            requests.exceptions.InvalidSchema,
        ) as e:
            raise InvalidRequestError(f"Invalid request URL {url}: {e}") from e
        except requests.Timeout as e:
            raise NetworkError(f"Request timed out: {method} {path}") from e
        except requests.ConnectionError as e:
            raise NetworkError(f"Connection failed: {method} {path}: {e}") from e
        except requests.RequestException as e:
            raise NetworkError(f"Request failed: {e}", retryable=False) from e

        logger.debug(f"{method} {path} -> {response.status_code}")
        return self._handle_response(response, expect_body, allow_no_content)

    def _handle_response(
        self,
        response: requests.Response,
        expect_body: bool,
        allow_no_content: bool,
    ) -> Optional[Any]:
        status = response.status_code

        if status == 204 and allow_no_content:
            return None

        if 200 <= status < 300:
            if not expect_body:
                return None
            if not response.content:
                raise NoDataError(f"Empty response body (HTTP {status})")
            try:
                return response.json()
            except ValueError as e:
                raise DecodingError(f"Response is not valid JSON: {e}") from e

        if status == 401:
            raise AuthenticationRequiredError("Access token rejected")

        if status == 429 or 500 <= status < 600:
            raise NetworkError(f"HTTP {status}", retryable=True, status_code=status)

        payload = self._error_payload(response)
        if payload is not None:
            raise CatalogServiceError(payload.error.status, payload.error.message)
        raise NetworkError(f"HTTP {status}", retryable=False, status_code=status)

    @staticmethod
    def _error_payload(response: requests.Response) -> Optional[ErrorPayload]:
        try:
            return ErrorPayload.model_validate(response.json())
        except ValueError:
            # Not JSON, or JSON that is not an error object
            return None

    # ==================== API METHODS ====================

    def search_tracks(self, query: str, limit: int = 20) -> List[Track]:
        """Search the catalog for tracks.

        Args:
            query: Free-text search query
            limit: Maximum results (1-50)

        Returns:
            Matching tracks in catalog order
        """
        if not query or not query.strip():
            raise InvalidRequestError("Search query must not be empty")
        if not 1 <= limit <= MAX_SEARCH_LIMIT:
            raise InvalidRequestError(
                f"Search limit must be between 1 and {MAX_SEARCH_LIMIT}, got {limit}"
            )

        data = self._request(
            "GET",
            SEARCH_ENDPOINT,
            params={"q": query, "type": "track", "limit": limit},
        )
        tracks = decode(SearchResponse, data).tracks.items
        logger.debug(f"Search found {len(tracks)} results for: {query}")
        return tracks

    def get_audio_features(self, track_ids: List[str]) -> List[AudioFeature]:
        """Fetch tempo/energy features for a batch of track IDs.

        Tracks without analysis are left out of the result.
        """
        if not track_ids:
            return []
        if len(track_ids) > MAX_AUDIO_FEATURE_IDS:
            raise InvalidRequestError(
                f"At most {MAX_AUDIO_FEATURE_IDS} IDs per request, got {len(track_ids)}"
            )

        data = self._request(
            "GET", AUDIO_FEATURES_ENDPOINT, params={"ids": ",".join(track_ids)}
        )
        features = decode(AudioFeaturesResponse, data).audio_features
        return [feature for feature in features if feature is not None]

    def get_current_playback(self) -> Optional[PlaybackState]:
        """Get current playback state, or None when nothing is playing."""
        data = self._request("GET", PLAYER_ENDPOINT, allow_no_content=True)
        if data is None:
            return None
        return decode(PlaybackState, data)

    def play_track(self, uri: str, device_id: Optional[str] = None) -> None:
        """Start playback of a track URI on the given (or active) device."""
        if not uri:
            raise InvalidRequestError("Track URI must not be empty")
        self._request(
            "PUT",
            PLAYER_PLAY_ENDPOINT,
            params=self._device_params(device_id),
            json={"uris": [uri]},
            expect_body=False,
        )
        logger.debug(f"Started playback: {uri}")

    def pause_playback(self, device_id: Optional[str] = None) -> None:
        self._request(
            "PUT",
            PLAYER_PAUSE_ENDPOINT,
            params=self._device_params(device_id),
            expect_body=False,
        )
        logger.debug("Paused playback")

    def resume_playback(self, device_id: Optional[str] = None) -> None:
        self._request(
            "PUT",
            PLAYER_PLAY_ENDPOINT,
            params=self._device_params(device_id),
            expect_body=False,
        )
        logger.debug("Resumed playback")

    def get_current_user_profile(self) -> UserProfile:
        return decode(UserProfile, self._request("GET", ME_ENDPOINT))

    def get_devices(self) -> List[Device]:
        """Get the user's available Spotify Connect devices."""
        devices = decode(DevicesResponse, self._request("GET", DEVICES_ENDPOINT)).devices
        logger.debug(f"Found {len(devices)} Spotify devices")
        return devices

    def check_connectivity(self, timeout: float = 5.0) -> bool:
        """Probe the API host without credentials.

        Returns:
            True if the host answered 200 or 401 (the expected unauthenticated reply)
        """
        parsed = urlparse(self.base_url)
        try:
            response = self.session.head(
                f"{parsed.scheme}://{parsed.netloc}", timeout=timeout
            )
        except requests.RequestException as e:
            logger.debug(f"Connectivity check failed: {e}")
            return False
        return response.status_code in (200, 401)

    def close(self) -> None:
        self.session.close()

    @staticmethod
    def _device_params(device_id: Optional[str]) -> Optional[Dict[str, str]]:
        return {"device_id": device_id} if device_id else None
