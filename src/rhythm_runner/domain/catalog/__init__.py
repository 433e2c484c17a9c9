"""Catalog domain - Spotify Web API access.

This domain handles:
- Access token storage and refresh
- OAuth 2.0 PKCE authorization
- Search, audio features, and playback control requests
- Retry with exponential backoff for transient failures
"""

# Exceptions
from .exceptions import (
    CatalogError,
    InvalidRequestError,
    NoDataError,
    DecodingError,
    AuthenticationRequiredError,
    NetworkError,
    CatalogServiceError,
)

# Models
from .models import (
    Track,
    AudioFeature,
    Device,
    PlaybackState,
    UserProfile,
    TokenResponse,
    Song,
    track_to_song,
)

# Tokens and authorization
from .tokens import AccessToken, TokenStore, load_token_file, save_token_file
from .auth import (
    generate_pkce,
    build_authorize_url,
    parse_callback_url,
    exchange_code,
    refresh_access_token,
    make_refresher,
    authenticate,
)

# Client
from .client import CatalogClient
from .messages import user_message

__all__ = [
    # Exceptions
    "CatalogError",
    "InvalidRequestError",
    "NoDataError",
    "DecodingError",
    "AuthenticationRequiredError",
    "NetworkError",
    "CatalogServiceError",
    # Models
    "Track",
    "AudioFeature",
    "Device",
    "PlaybackState",
    "UserProfile",
    "TokenResponse",
    "Song",
    "track_to_song",
    # Tokens and authorization
    "AccessToken",
    "TokenStore",
    "load_token_file",
    "save_token_file",
    "generate_pkce",
    "build_authorize_url",
    "parse_callback_url",
    "exchange_code",
    "refresh_access_token",
    "make_refresher",
    "authenticate",
    # Client
    "CatalogClient",
    "user_message",
]
