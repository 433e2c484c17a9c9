"""Tests for the catalog client: token checks, retries, status mapping."""

import random
from unittest.mock import MagicMock

import pytest
import requests

from rhythm_runner.core.config import CatalogConfig
from rhythm_runner.domain.catalog.client import CatalogClient
from rhythm_runner.domain.catalog.exceptions import (
    AuthenticationRequiredError,
    CatalogServiceError,
    DecodingError,
    InvalidRequestError,
    NetworkError,
    NoDataError,
)
from rhythm_runner.domain.catalog.tokens import TokenStore


@pytest.fixture
def session() -> MagicMock:
    return MagicMock(spec=requests.Session)


@pytest.fixture
def sleep() -> MagicMock:
    return MagicMock()


@pytest.fixture
def client(token_store: TokenStore, session: MagicMock, sleep: MagicMock) -> CatalogClient:
    return CatalogClient(token_store, session=session, sleep=sleep, rng=random.Random(7))


class TestTokenValidity:
    """Tests for the pre-request token check."""

    def test_zero_expiry_token_fails_without_request(
        self, session: MagicMock, sleep: MagicMock
    ) -> None:
        """Test a token set with expires_in=0 is invalid and no request is sent."""
        store = TokenStore(clock=lambda: 500.0)
        client = CatalogClient(store, session=session, sleep=sleep)
        client.set_access_token("short-lived", 0)

        assert client.is_authenticated is False
        with pytest.raises(AuthenticationRequiredError):
            client.search_tracks("workout")
        session.request.assert_not_called()
        sleep.assert_not_called()

    def test_missing_token_fails_without_request(self, session: MagicMock) -> None:
        """Test calls without any token fail immediately."""
        client = CatalogClient(TokenStore(), session=session)

        with pytest.raises(AuthenticationRequiredError):
            client.get_current_playback()
        session.request.assert_not_called()

    def test_bearer_header_and_timeouts(
        self, client: CatalogClient, session: MagicMock, make_response, search_body
    ) -> None:
        """Test requests carry the bearer token and connect/read timeouts."""
        session.request.return_value = make_response(200, search_body([]))

        client.search_tracks("running", limit=20)

        kwargs = session.request.call_args.kwargs
        assert kwargs["headers"] == {"Authorization": "Bearer test-token"}
        assert kwargs["timeout"] == (30.0, 60.0)
        assert kwargs["params"] == {"q": "running", "type": "track", "limit": 20}
        assert session.request.call_args.args == (
            "GET",
            "https://api.spotify.com/v1/search",
        )


class TestRetryPolicy:
    """Tests for retry with exponential backoff."""

    def test_two_timeouts_then_success(
        self,
        client: CatalogClient,
        session: MagicMock,
        sleep: MagicMock,
        make_response,
        search_body,
        track_json,
    ) -> None:
        """Test two timeouts give two growing backoff delays and the final result."""
        session.request.side_effect = [
            requests.Timeout("read timed out"),
            requests.Timeout("read timed out"),
            make_response(200, search_body([track_json("t1")])),
        ]

        tracks = client.search_tracks("workout")

        assert [t.id for t in tracks] == ["t1"]
        assert session.request.call_count == 3
        delays = [c.args[0] for c in sleep.call_args_list]
        assert len(delays) == 2
        assert 1.0 <= delays[0] <= 1.1
        assert 2.0 <= delays[1] <= 2.2
        assert delays[0] < delays[1]
        assert all(d <= 30.0 for d in delays)

    def test_gives_up_after_three_retries(
        self, client: CatalogClient, session: MagicMock, sleep: MagicMock, make_response
    ) -> None:
        """Test persistent server errors surface after 3 retries."""
        session.request.return_value = make_response(503, text="unavailable")

        with pytest.raises(NetworkError) as exc_info:
            client.search_tracks("workout")

        assert exc_info.value.retryable is True
        assert exc_info.value.status_code == 503
        assert session.request.call_count == 4
        assert sleep.call_count == 3

    def test_rate_limit_is_retried(
        self, client: CatalogClient, session: MagicMock, make_response, search_body
    ) -> None:
        """Test 429 responses are retried."""
        session.request.side_effect = [
            make_response(429, text="slow down"),
            make_response(200, search_body([])),
        ]

        assert client.search_tracks("workout") == []
        assert session.request.call_count == 2

    def test_connection_error_is_retried(
        self, client: CatalogClient, session: MagicMock, make_response, search_body
    ) -> None:
        """Test dropped connections are retried."""
        session.request.side_effect = [
            requests.ConnectionError("connection reset"),
            make_response(200, search_body([])),
        ]

        assert client.search_tracks("workout") == []
        assert session.request.call_count == 2

    def test_delays_capped(self, token_store: TokenStore, session: MagicMock, make_response) -> None:
        """Test no single delay exceeds the configured cap."""
        sleep = MagicMock()
        client = CatalogClient(
            token_store,
            session=session,
            sleep=sleep,
            max_retries=6,
            max_retry_delay=5.0,
            rng=random.Random(1),
        )
        session.request.return_value = make_response(500, text="boom")

        with pytest.raises(NetworkError):
            client.search_tracks("workout")

        delays = [c.args[0] for c in sleep.call_args_list]
        assert len(delays) == 6
        assert max(delays) == 5.0


class TestStatusMapping:
    """Tests for HTTP status to error mapping."""

    def test_401_is_auth_required_and_not_retried(
        self, client: CatalogClient, session: MagicMock, sleep: MagicMock, make_response
    ) -> None:
        """Test 401 raises AuthenticationRequiredError on the first attempt."""
        session.request.return_value = make_response(
            401, {"error": {"status": 401, "message": "The access token expired"}}
        )

        with pytest.raises(AuthenticationRequiredError):
            client.search_tracks("workout")
        assert session.request.call_count == 1
        sleep.assert_not_called()

    def test_error_payload_becomes_service_error(
        self, client: CatalogClient, session: MagicMock, make_response
    ) -> None:
        """Test a well-formed error payload raises CatalogServiceError."""
        session.request.return_value = make_response(
            404, {"error": {"status": 404, "message": "Player command failed: No active device found"}}
        )

        with pytest.raises(CatalogServiceError) as exc_info:
            client.play_track("spotify:track:1")

        assert exc_info.value.status == 404
        assert "No active device" in str(exc_info.value)
        assert session.request.call_count == 1

    def test_other_status_without_payload_is_not_retried(
        self, client: CatalogClient, session: MagicMock, make_response
    ) -> None:
        """Test unexpected statuses raise a non-retryable NetworkError."""
        session.request.return_value = make_response(418, text="teapot")

        with pytest.raises(NetworkError) as exc_info:
            client.search_tracks("workout")

        assert exc_info.value.retryable is False
        assert session.request.call_count == 1

    def test_invalid_json_is_decoding_error(
        self, client: CatalogClient, session: MagicMock, make_response
    ) -> None:
        """Test a non-JSON success body raises DecodingError."""
        session.request.return_value = make_response(200, text="<html>oops</html>")

        with pytest.raises(DecodingError):
            client.search_tracks("workout")
        assert session.request.call_count == 1

    def test_schema_mismatch_is_decoding_error(
        self, client: CatalogClient, session: MagicMock, make_response
    ) -> None:
        """Test JSON of the wrong shape raises DecodingError."""
        session.request.return_value = make_response(200, {"tracks": {"items": [{"id": 5}]}})

        with pytest.raises(DecodingError):
            client.search_tracks("workout")

    def test_empty_body_is_no_data(
        self, client: CatalogClient, session: MagicMock, make_response
    ) -> None:
        """Test an empty success body raises NoDataError."""
        session.request.return_value = make_response(200, text="")

        with pytest.raises(NoDataError):
            client.get_current_user_profile()

    def test_invalid_url_is_invalid_request(self, token_store: TokenStore, session: MagicMock) -> None:
        """Test malformed URLs raise InvalidRequestError without retrying."""
        session.request.side_effect = requests.exceptions.InvalidURL("bad url")
        sleep = MagicMock()
        client = CatalogClient(token_store, session=session, sleep=sleep, base_url="http://")

        with pytest.raises(InvalidRequestError):
            client.search_tracks("workout")
        sleep.assert_not_called()


class TestApiMethods:
    """Tests for the endpoint wrappers."""

    def test_search_validates_input(self, client: CatalogClient, session: MagicMock) -> None:
        """Test empty queries and out-of-range limits are rejected locally."""
        with pytest.raises(InvalidRequestError):
            client.search_tracks("   ")
        with pytest.raises(InvalidRequestError):
            client.search_tracks("workout", limit=51)
        session.request.assert_not_called()

    def test_audio_features_skips_null_entries(
        self, client: CatalogClient, session: MagicMock, make_response, feature_json
    ) -> None:
        """Test null feature entries are dropped and ids are comma-joined."""
        session.request.return_value = make_response(
            200, {"audio_features": [feature_json("a", 150.0), None, feature_json("c", 171.2)]}
        )

        features = client.get_audio_features(["a", "b", "c"])

        assert [f.id for f in features] == ["a", "c"]
        assert features[1].tempo == 171.2
        assert session.request.call_args.kwargs["params"] == {"ids": "a,b,c"}

    def test_audio_features_empty_and_oversized(
        self, client: CatalogClient, session: MagicMock
    ) -> None:
        """Test empty input returns [] and more than 100 ids is rejected."""
        assert client.get_audio_features([]) == []
        with pytest.raises(InvalidRequestError):
            client.get_audio_features([str(i) for i in range(101)])
        session.request.assert_not_called()

    def test_no_content_playback_is_none(
        self, client: CatalogClient, session: MagicMock, make_response
    ) -> None:
        """Test 204 from the player endpoint means no active playback."""
        session.request.return_value = make_response(204)

        assert client.get_current_playback() is None

    def test_playback_state_decoded(
        self, client: CatalogClient, session: MagicMock, make_response, track_json
    ) -> None:
        """Test a playback state body is decoded with its track."""
        session.request.return_value = make_response(
            200,
            {
                "device": {"id": "d1", "is_active": True, "name": "Phone", "type": "Smartphone"},
                "is_playing": True,
                "progress_ms": 1234,
                "item": track_json("t9", name="Eye of the Tiger"),
            },
        )

        state = client.get_current_playback()

        assert state is not None
        assert state.is_playing is True
        assert state.item.name == "Eye of the Tiger"
        assert state.device.name == "Phone"

    def test_play_track_on_device(
        self, client: CatalogClient, session: MagicMock, make_response
    ) -> None:
        """Test play sends the URI body and device query parameter."""
        session.request.return_value = make_response(204)

        client.play_track("spotify:track:42", device_id="device-1")

        args, kwargs = session.request.call_args
        assert args == ("PUT", "https://api.spotify.com/v1/me/player/play")
        assert kwargs["json"] == {"uris": ["spotify:track:42"]}
        assert kwargs["params"] == {"device_id": "device-1"}

    def test_pause_and_resume_without_device(
        self, client: CatalogClient, session: MagicMock, make_response
    ) -> None:
        """Test pause/resume target the active device when none is given."""
        session.request.return_value = make_response(204)

        client.pause_playback()
        pause_args, pause_kwargs = session.request.call_args
        client.resume_playback()
        resume_args, resume_kwargs = session.request.call_args

        assert pause_args == ("PUT", "https://api.spotify.com/v1/me/player/pause")
        assert pause_kwargs["params"] is None
        assert resume_args == ("PUT", "https://api.spotify.com/v1/me/player/play")
        assert resume_kwargs["json"] is None

    def test_user_profile_and_devices(
        self, client: CatalogClient, session: MagicMock, make_response
    ) -> None:
        """Test profile and device list decoding."""
        session.request.side_effect = [
            make_response(200, {"id": "runner", "display_name": "Runner", "product": "premium"}),
            make_response(
                200,
                {"devices": [{"id": "d1", "is_active": False, "name": "Laptop", "type": "Computer"}]},
            ),
        ]

        profile = client.get_current_user_profile()
        devices = client.get_devices()

        assert profile.is_premium is True
        assert [d.name for d in devices] == ["Laptop"]

    def test_connectivity_check(self, client: CatalogClient, session: MagicMock, make_response) -> None:
        """Test 200 and 401 count as reachable, transport errors do not."""
        session.head.return_value = make_response(401, text="")
        assert client.check_connectivity() is True
        session.head.assert_called_with("https://api.spotify.com", timeout=5.0)

        session.head.return_value = make_response(502, text="")
        assert client.check_connectivity() is False

        session.head.side_effect = requests.ConnectionError("offline")
        assert client.check_connectivity() is False

    def test_from_config(self, token_store: TokenStore) -> None:
        """Test client settings come from the catalog config."""
        config = CatalogConfig(request_timeout=5.0, resource_timeout=10.0, max_retries=1)

        client = CatalogClient.from_config(config, token_store, session=MagicMock())

        assert client.request_timeout == 5.0
        assert client.resource_timeout == 10.0
        assert client.max_retries == 1
