"""
Access token storage shared by the catalog client and the auth flow.

The token and its expiry live in one immutable AccessToken swapped under a
lock, so readers always see a consistent pair.
"""

import json
import threading
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Callable, Optional

from loguru import logger

from .exceptions import AuthenticationRequiredError, CatalogError
from .models import TokenResponse

# Exchanges a refresh token for a new token response
TokenRefresher = Callable[[str], TokenResponse]
# Called with every newly stored token (e.g. to persist it)
TokenListener = Callable[["AccessToken"], None]


@dataclass(frozen=True)
class AccessToken:
    value: str
    expires_at: float  # Unix timestamp
    refresh_token: Optional[str] = None

    def is_valid(self, now: float) -> bool:
        """Token is usable only while non-empty and strictly before expiry."""
        return bool(self.value) and now < self.expires_at


class TokenStore:
    """Holds the current access token; passed by reference to its users."""

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        refresher: Optional[TokenRefresher] = None,
        on_update: Optional[TokenListener] = None,
    ):
        self._clock = clock
        self._refresher = refresher
        self._on_update = on_update
        self._token: Optional[AccessToken] = None
        self._lock = threading.Lock()
        self._refresh_lock = threading.Lock()

    def set_access_token(
        self, token: str, expires_in: float, refresh_token: Optional[str] = None
    ) -> None:
        """Store a token valid for expires_in seconds from now.

        A missing refresh_token keeps the previously stored one.
        """
        with self._lock:
            if refresh_token is None and self._token is not None:
                refresh_token = self._token.refresh_token
            stored = AccessToken(
                value=token,
                expires_at=self._clock() + expires_in,
                refresh_token=refresh_token,
            )
            self._token = stored
        logger.debug(f"Access token stored, expires in {expires_in}s")
        self._notify(stored)

    def restore(self, token: AccessToken) -> None:
        """Reinstate a previously stored token as-is (absolute expiry kept)."""
        with self._lock:
            self._token = token

    def apply_token_response(self, response: TokenResponse) -> None:
        """Store the result of a token endpoint call."""
        self.set_access_token(
            response.access_token, response.expires_in, response.refresh_token
        )

    def set_refresher(self, refresher: Optional[TokenRefresher]) -> None:
        self._refresher = refresher

    def set_listener(self, on_update: Optional[TokenListener]) -> None:
        self._on_update = on_update

    def snapshot(self) -> Optional[AccessToken]:
        with self._lock:
            return self._token

    def clear(self) -> None:
        with self._lock:
            self._token = None

    @property
    def is_valid(self) -> bool:
        token = self.snapshot()
        return token is not None and token.is_valid(self._clock())

    @property
    def can_authenticate(self) -> bool:
        """True if a request could obtain a token (valid now, or refreshable)."""
        token = self.snapshot()
        if token is None:
            return False
        return token.is_valid(self._clock()) or (
            bool(token.refresh_token) and self._refresher is not None
        )

    def valid_token(self) -> str:
        """Return a usable access token, refreshing it once if possible.

        Raises:
            AuthenticationRequiredError: If no valid token can be produced
        """
        token = self.snapshot()
        if token is not None and token.is_valid(self._clock()):
            return token.value

        if token is None or not token.refresh_token or self._refresher is None:
            raise AuthenticationRequiredError()

        with self._refresh_lock:
            # Another caller may have refreshed while we waited
            current = self.snapshot()
            if current is not None and current.is_valid(self._clock()):
                return current.value

            logger.info("Access token expired, attempting refresh")
            try:
                response = self._refresher(token.refresh_token)
            except CatalogError as e:
                logger.warning(f"Token refresh failed: {e}")
                raise AuthenticationRequiredError("Token refresh failed") from e

            self.apply_token_response(response)

        refreshed = self.snapshot()
        if refreshed is None or not refreshed.is_valid(self._clock()):
            raise AuthenticationRequiredError()
        logger.info("Access token refreshed")
        return refreshed.value

    def _notify(self, token: AccessToken) -> None:
        if self._on_update is None:
            return
        try:
            self._on_update(token)
        except Exception as e:
            logger.warning(f"Token listener failed: {e}")


def load_token_file(path: Path) -> Optional[AccessToken]:
    """Read a token saved by save_token_file. Returns None if absent or unreadable."""
    if not path.exists():
        return None

    try:
        with open(path) as f:
            data = json.load(f)
        return AccessToken(
            value=data["value"],
            expires_at=float(data["expires_at"]),
            refresh_token=data.get("refresh_token"),
        )
    except (OSError, ValueError, KeyError, TypeError) as e:
        logger.warning(f"Failed to load tokens from {path}: {e}")
        return None


def save_token_file(path: Path, token: AccessToken) -> None:
    """Write a token to disk, readable by the owner only."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(asdict(token), f, indent=2)

    # Set file permissions to 0600 (owner read/write only)
    path.chmod(0o600)
    logger.debug(f"Saved tokens to {path}")
