"""
Spotify OAuth 2.0 authentication with PKCE.

Builds the authorization URL, parses the redirect callback, and exchanges
codes and refresh tokens at the token endpoint. Tokens land in a TokenStore.
The browser consent step is an external concern; the CLI drives it through a
one-shot local callback server.
"""

import base64
import hashlib
import secrets
import threading
import webbrowser
from functools import partial
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs, urlencode, urlparse

import requests
from loguru import logger

from rhythm_runner.core.config import CatalogConfig
from rhythm_runner.core.output import log

from .exceptions import (
    AuthenticationRequiredError,
    DecodingError,
    InvalidRequestError,
    NetworkError,
)
from .models import TokenResponse, decode
from .tokens import TokenRefresher, TokenStore

ACCOUNTS_BASE = "https://accounts.spotify.com"
AUTHORIZE_PATH = "/authorize"
TOKEN_PATH = "/api/token"


def generate_pkce() -> Dict[str, str]:
    """Generate PKCE code verifier and S256 challenge."""
    code_verifier = (
        base64.urlsafe_b64encode(secrets.token_bytes(64)).decode("utf-8").rstrip("=")
    )
    challenge_bytes = hashlib.sha256(code_verifier.encode("utf-8")).digest()
    code_challenge = (
        base64.urlsafe_b64encode(challenge_bytes).decode("utf-8").rstrip("=")
    )

    return {"code_verifier": code_verifier, "code_challenge": code_challenge}


def generate_state() -> str:
    """Random CSRF state token for the authorize request."""
    return base64.urlsafe_b64encode(secrets.token_bytes(16)).decode("utf-8").rstrip("=")


def build_authorize_url(
    client_id: str,
    redirect_uri: str,
    scopes: List[str],
    code_challenge: str,
    state: str,
    accounts_base_url: str = ACCOUNTS_BASE,
) -> str:
    """Build the browser URL for the consent screen."""
    if not client_id:
        raise AuthenticationRequiredError("Spotify client ID is not configured")

    params = {
        "response_type": "code",
        "client_id": client_id,
        "scope": " ".join(scopes),
        "redirect_uri": redirect_uri,
        "state": state,
        "code_challenge_method": "S256",
        "code_challenge": code_challenge,
    }
    return f"{accounts_base_url}{AUTHORIZE_PATH}?{urlencode(params)}"


def parse_callback_url(callback_url: str, expected_state: Optional[str] = None) -> str:
    """Extract the authorization code from a redirect URL.

    Args:
        callback_url: Full redirect URL with query parameters
        expected_state: CSRF state sent with the authorize request, if checked

    Returns:
        Authorization code

    Raises:
        AuthenticationRequiredError: On an error callback, missing code, or
            state mismatch
    """
    params = parse_qs(urlparse(callback_url).query)

    error = params.get("error", [None])[0]
    if error:
        description = params.get("error_description", [error])[0]
        raise AuthenticationRequiredError(f"Authorization failed: {description}")

    code = params.get("code", [None])[0]
    if not code:
        raise AuthenticationRequiredError("No authorization code in callback")

    if expected_state is not None and params.get("state", [None])[0] != expected_state:
        raise AuthenticationRequiredError("CSRF state mismatch in callback")

    return code


def _post_token(
    data: Dict[str, Any],
    session: Optional[requests.Session],
    accounts_base_url: str,
    timeout: float,
) -> TokenResponse:
    """POST a form to the token endpoint and decode the token response."""
    http = session or requests
    url = f"{accounts_base_url}{TOKEN_PATH}"
    try:
        response = http.post(
            url,
            data=data,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            timeout=timeout,
        )
    except (requests.exceptions.InvalidURL, requests.exceptions.MissingSchema) as e:
        raise InvalidRequestError(f"Invalid token URL {url}: {e}") from e
    except requests.RequestException as e:
        raise NetworkError(f"Token request failed: {e}") from e

    if response.status_code in (400, 401):
        try:
            body = response.json()
            description = body.get("error_description") or body.get("error")
        except ValueError:
            description = response.text
        raise AuthenticationRequiredError(f"Token request rejected: {description}")

    if response.status_code >= 400:
        raise NetworkError(
            f"Token endpoint returned HTTP {response.status_code}",
            retryable=response.status_code == 429 or response.status_code >= 500,
            status_code=response.status_code,
        )

    try:
        payload = response.json()
    except ValueError as e:
        raise DecodingError(f"Token response is not valid JSON: {e}") from e
    return decode(TokenResponse, payload)


def exchange_code(
    code: str,
    code_verifier: str,
    client_id: str,
    redirect_uri: str,
    session: Optional[requests.Session] = None,
    accounts_base_url: str = ACCOUNTS_BASE,
    timeout: float = 30.0,
) -> TokenResponse:
    """Exchange an authorization code for tokens.

    PKCE flow: client_id and code_verifier travel in the body, no Basic header.
    """
    logger.debug("Exchanging authorization code for tokens")
    token = _post_token(
        {
            "grant_type": "authorization_code",
            "client_id": client_id,
            "code": code,
            "redirect_uri": redirect_uri,
            "code_verifier": code_verifier,
        },
        session,
        accounts_base_url,
        timeout,
    )
    logger.info(f"Authorization code exchanged, token expires in {token.expires_in}s")
    return token


def refresh_access_token(
    refresh_token: str,
    client_id: str,
    session: Optional[requests.Session] = None,
    accounts_base_url: str = ACCOUNTS_BASE,
    timeout: float = 30.0,
) -> TokenResponse:
    """Exchange a refresh token for a new access token."""
    token = _post_token(
        {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": client_id,
        },
        session,
        accounts_base_url,
        timeout,
    )
    logger.info(f"Access token refreshed, expires in {token.expires_in}s")
    return token


def make_refresher(
    config: CatalogConfig, session: Optional[requests.Session] = None
) -> TokenRefresher:
    """Bind refresh_access_token to the configured client for a TokenStore."""
    return partial(
        refresh_access_token,
        client_id=config.client_id,
        session=session,
        accounts_base_url=config.accounts_base_url,
        timeout=config.request_timeout,
    )


def authenticate(
    config: CatalogConfig,
    token_store: TokenStore,
    open_browser: bool = True,
    timeout: float = 120.0,
) -> bool:
    """Run the PKCE login through a one-shot local callback server.

    Args:
        config: Catalog configuration (client ID, redirect URI, scopes)
        token_store: Receives the tokens on success
        open_browser: Try to open the consent page automatically
        timeout: Seconds to wait for the redirect

    Returns:
        True if tokens were obtained
    """
    if not config.client_id:
        log("❌ Spotify client ID not configured", level="error")
        log("Set [catalog] client_id in config.toml or RHYTHM_RUNNER_CLIENT_ID", level="info")
        return False

    pkce = generate_pkce()
    state = generate_state()
    auth_url = build_authorize_url(
        config.client_id,
        config.redirect_uri,
        config.scopes,
        pkce["code_challenge"],
        state,
        config.accounts_base_url,
    )

    callback: Dict[str, Optional[str]] = {"url": None}

    class CallbackHandler(BaseHTTPRequestHandler):
        def do_GET(self):
            callback["url"] = self.path
            self.send_response(200)
            self.send_header("Content-type", "text/html")
            self.end_headers()
            self.wfile.write(
                b"<html><body><h1>You can close this window and return to Rhythm Runner.</h1></body></html>"
            )

        def log_message(self, format, *args):
            pass  # Suppress server logs

    redirect = urlparse(config.redirect_uri)
    try:
        server = HTTPServer((redirect.hostname or "localhost", redirect.port or 8080), CallbackHandler)
    except OSError as e:
        log(f"❌ Could not start callback server: {e}", level="error")
        return False

    try:
        server_thread = threading.Thread(target=server.handle_request, daemon=True)
        server_thread.start()

        logger.debug(f"Authorization URL: {auth_url}")
        if not (open_browser and webbrowser.open(auth_url)):
            log(f"Open this URL in your browser:\n{auth_url}", level="info")

        log(f"⏳ Waiting for authorization ({int(timeout)} seconds timeout)...", level="info")
        server_thread.join(timeout=timeout)
    finally:
        server.server_close()

    if callback["url"] is None:
        log("❌ Authorization timeout - no response received", level="error")
        return False

    try:
        code = parse_callback_url(callback["url"], expected_state=state)
        token = exchange_code(
            code,
            pkce["code_verifier"],
            config.client_id,
            config.redirect_uri,
            accounts_base_url=config.accounts_base_url,
            timeout=config.request_timeout,
        )
    except (AuthenticationRequiredError, NetworkError, DecodingError, InvalidRequestError) as e:
        log(f"❌ Authentication failed: {e}", level="error")
        return False

    token_store.apply_token_response(token)
    log("✓ Authentication successful!", level="info")
    return True
