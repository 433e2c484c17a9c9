"""Catalog-specific exceptions for error handling."""

from typing import Optional


class CatalogError(Exception):
    """Base exception for catalog operations."""

    pass


class InvalidRequestError(CatalogError):
    """Raised when a request cannot be built (bad URL or input)."""

    pass


class NoDataError(CatalogError):
    """Raised when a response that should carry a body is empty."""

    pass


class DecodingError(CatalogError):
    """Raised when a response body does not match the expected schema."""

    pass


class AuthenticationRequiredError(CatalogError):
    """Raised when the access token is missing, expired, or rejected."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class NetworkError(CatalogError):
    """Raised on transport failures and unexpected HTTP statuses.

    Timeouts, dropped connections, rate limiting and server errors are
    retryable; other statuses are not.
    """

    def __init__(
        self,
        message: str,
        retryable: bool = True,
        status_code: Optional[int] = None,
    ):
        self.retryable = retryable
        self.status_code = status_code
        super().__init__(message)


class CatalogServiceError(CatalogError):
    """Raised when the catalog answers with a well-formed error payload."""

    def __init__(self, status: int, message: str):
        self.status = status
        super().__init__(f"Spotify error ({status}): {message}")
