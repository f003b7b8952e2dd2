"""OAuth2 token lifecycle for the Google Sheets API.

The refresh token is the only persisted secret.  Access tokens are derived
from it for every remote call and dropped when the call completes.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional, Sequence

from google.auth.exceptions import RefreshError
from google.auth.exceptions import TransportError as GoogleTransportError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow

from l10nsync.errors import AuthError, TransportError, ValidationError
from l10nsync.sheets_client import SCOPES

logger = logging.getLogger(__name__)

AUTH_URI = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URI = "https://oauth2.googleapis.com/token"
LOOPBACK_HOST = "127.0.0.1"
LOOPBACK_PORT = 51234
SUCCESS_MESSAGE = "Authentication successful! You can now close this browser tab."

SettingsSaver = Callable[[Any], None]


class OAuthTokenManager:
    """Authorize once interactively, then refresh access tokens on demand.

    ``settings`` is any object exposing ``client_id``, ``client_secret`` and a
    writable ``refresh_token``; ``save_settings`` persists it.
    """

    def __init__(
        self,
        settings,
        save_settings: SettingsSaver,
        *,
        scopes: Sequence[str] = SCOPES,
        port: int = LOOPBACK_PORT,
        open_browser: bool = True,
        timeout_seconds: Optional[int] = None,
        flow_factory: Optional[Callable[..., Any]] = None,
        credentials_factory: Optional[Callable[..., Any]] = None,
        request_factory: Callable[[], Any] = Request,
    ) -> None:
        self._settings = settings
        self._save_settings = save_settings
        self._scopes = list(scopes)
        self._port = port
        self._open_browser = open_browser
        self._timeout_seconds = timeout_seconds
        self._flow_factory = flow_factory or InstalledAppFlow.from_client_config
        self._credentials_factory = credentials_factory or Credentials
        self._request_factory = request_factory

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def redirect_uri(self) -> str:
        return f"http://{LOOPBACK_HOST}:{self._port}/"

    @property
    def has_refresh_token(self) -> bool:
        return bool((self._settings.refresh_token or "").strip())

    def client_config(self) -> Dict[str, Dict[str, Any]]:
        client_id = (self._settings.client_id or "").strip()
        client_secret = (self._settings.client_secret or "").strip()
        if not client_id or not client_secret:
            raise ValidationError(
                "Please fill in the Google API Client ID and Secret in the settings."
            )
        return {
            "installed": {
                "client_id": client_id,
                "client_secret": client_secret,
                "auth_uri": AUTH_URI,
                "token_uri": TOKEN_URI,
                "redirect_uris": [self.redirect_uri],
            }
        }

    # ------------------------------------------------------------------
    # Authorization code flow
    # ------------------------------------------------------------------
    def authorize(self) -> None:
        """Run the browser consent flow and persist the new refresh token.

        Blocks until the loopback listener receives the redirect (or the
        optional timeout elapses).  On failure the stored token is untouched.
        """

        config = self.client_config()
        flow = self._flow_factory(config, scopes=self._scopes)
        logger.info("Waiting for Google authentication on %s", self.redirect_uri)
        try:
            credentials = flow.run_local_server(
                host=LOOPBACK_HOST,
                port=self._port,
                open_browser=self._open_browser,
                timeout_seconds=self._timeout_seconds,
                success_message=SUCCESS_MESSAGE,
                access_type="offline",
                prompt="consent",
            )
        except Exception as exc:  # oauthlib / socket / browser failures
            logger.warning("Google authentication failed: %s", exc)
            raise AuthError(f"Authentication failed: {exc}") from exc

        refresh_token = getattr(credentials, "refresh_token", None)
        if not refresh_token:
            raise AuthError("Authentication failed. No refresh token was returned by Google.")

        self._settings.refresh_token = refresh_token
        self._save_settings(self._settings)
        logger.info("Google authentication succeeded; refresh token stored")

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------
    def refresh(self):
        """Return freshly refreshed credentials carrying a short-lived access token."""

        if not self.has_refresh_token:
            raise AuthError("No refresh token stored. Please authenticate with Google.")

        config = self.client_config()["installed"]
        credentials = self._credentials_factory(
            token=None,
            refresh_token=self._settings.refresh_token,
            token_uri=config["token_uri"],
            client_id=config["client_id"],
            client_secret=config["client_secret"],
            scopes=self._scopes,
        )
        try:
            credentials.refresh(self._request_factory())
        except RefreshError as exc:
            logger.error("Failed to refresh access token: %s", exc)
            self.clear_refresh_token()
            raise AuthError(
                f"Failed to get access token. Please re-authenticate. ({exc})"
            ) from exc
        except GoogleTransportError as exc:
            raise TransportError(f"Could not reach the Google token endpoint: {exc}") from exc
        return credentials

    def access_token(self) -> str:
        return self.refresh().token

    def clear_refresh_token(self) -> None:
        self._settings.refresh_token = ""
        self._save_settings(self._settings)


__all__ = ["LOOPBACK_PORT", "OAuthTokenManager", "TOKEN_URI"]
