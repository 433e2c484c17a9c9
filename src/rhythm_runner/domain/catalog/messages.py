"""Friendly, user-facing text for catalog failures."""

from .exceptions import (
    AuthenticationRequiredError,
    CatalogError,
    CatalogServiceError,
    NetworkError,
)

NETWORK_ERROR = "Network connection issue. Please check your internet and try again."
AUTH_FAILED = "Authentication failed. Please try logging in again."
PREMIUM_REQUIRED = "Spotify Premium is required for full playback control."
DEVICE_NOT_FOUND = "No active Spotify device found. Please open Spotify app first."
PLAYBACK_ERROR = "Playback error. Please try a different song or restart Spotify."


def user_message(error: CatalogError) -> str:
    """Map a catalog error to the message shown to the runner."""
    if isinstance(error, AuthenticationRequiredError):
        return AUTH_FAILED
    if isinstance(error, CatalogServiceError):
        if error.status == 403:
            return PREMIUM_REQUIRED
        if error.status == 404:
            return DEVICE_NOT_FOUND
        return PLAYBACK_ERROR
    if isinstance(error, NetworkError):
        return NETWORK_ERROR
    return PLAYBACK_ERROR
