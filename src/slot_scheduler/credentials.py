"""Admin OAuth credentials for the calendar owner, injected into the calendar client."""

from __future__ import annotations

import os
import sys
from datetime import datetime, timezone
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow

from . import token_store
from .errors import UpstreamUnavailableError

SCOPES = ["https://www.googleapis.com/auth/calendar"]
AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
TOKEN_URI = "https://oauth2.googleapis.com/token"
NOT_AUTHENTICATED = "Admin not authenticated. Visit /auth/admin first."


def _parse_expiry(value: Any) -> datetime | None:
    """Epoch millis (TOKEN_EXPIRY_DATE) or ISO string -> naive UTC, as google-auth expects."""
    if value in (None, "", "0", 0):
        return None
    text = str(value).strip()
    try:
        if text.isdigit():
            parsed = datetime.fromtimestamp(int(text) / 1000, tz=timezone.utc)
        else:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except (ValueError, OverflowError, OSError):
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


class CredentialProvider:
    """
    Supplies authorized Google credentials.

    Tokens come from the environment (GOOGLE_REFRESH_TOKEN, GOOGLE_ACCESS_TOKEN,
    TOKEN_EXPIRY_DATE) when set, otherwise from the DynamoDB token store. The
    consent flow (authorization_url / complete_authorization) writes to the store.
    """

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        redirect_url: str | None = None,
        owner: str = token_store.DEFAULT_OWNER,
    ):
        self.client_id = client_id or os.environ.get("GOOGLE_CLIENT_ID")
        self.client_secret = client_secret or os.environ.get("GOOGLE_CLIENT_SECRET")
        self.redirect_url = redirect_url or os.environ.get("GOOGLE_REDIRECT_URL")
        self.owner = owner

    def _env_tokens(self) -> dict[str, Any] | None:
        refresh = (os.environ.get("GOOGLE_REFRESH_TOKEN") or "").strip()
        if not refresh:
            return None
        return {
            "refresh_token": refresh,
            "access_token": (os.environ.get("GOOGLE_ACCESS_TOKEN") or "").strip() or None,
            "expiry": os.environ.get("TOKEN_EXPIRY_DATE"),
        }

    def _stored_tokens(self) -> dict[str, Any] | None:
        try:
            return token_store.get_tokens(self.owner)
        except (BotoCoreError, ClientError) as exc:
            raise UpstreamUnavailableError(f"Token store unavailable: {exc}") from exc

    def is_authenticated(self) -> bool:
        return bool(self._env_tokens() or self._stored_tokens())

    def get_credentials(self) -> Credentials:
        """Return valid credentials, refreshing (and persisting) an expired access token."""
        from_env = self._env_tokens()
        tokens = from_env or self._stored_tokens()
        if not tokens:
            raise UpstreamUnavailableError(NOT_AUTHENTICATED)

        creds = Credentials(
            token=tokens.get("access_token") or None,
            refresh_token=tokens.get("refresh_token"),
            token_uri=TOKEN_URI,
            client_id=self.client_id,
            client_secret=self.client_secret,
            scopes=SCOPES,
            expiry=_parse_expiry(tokens.get("expiry")),
        )
        if creds.valid:
            return creds
        if not creds.refresh_token:
            raise UpstreamUnavailableError(NOT_AUTHENTICATED)

        print("[credentials] Access token expired, refreshing", file=sys.stderr)
        try:
            creds.refresh(Request())
        except GoogleAuthError as exc:
            print(f"[credentials] Token refresh failed: {exc!r}", file=sys.stderr)
            raise UpstreamUnavailableError("Failed to refresh token. Re-authenticate via /auth/admin.") from exc

        if from_env:
            print("[credentials] Refreshed token from environment; not persisted", file=sys.stderr)
        else:
            self._save(creds)
        return creds

    def _save(self, creds: Credentials) -> None:
        expiry = creds.expiry.replace(tzinfo=timezone.utc).isoformat() if creds.expiry else None
        try:
            token_store.save_tokens(
                {"refresh_token": creds.refresh_token, "access_token": creds.token, "expiry": expiry},
                self.owner,
            )
        except (BotoCoreError, ClientError) as exc:
            raise UpstreamUnavailableError(f"Token store unavailable: {exc}") from exc
        print("[credentials] Tokens saved", file=sys.stderr)

    def build_flow(self) -> Flow:
        if not self.client_id or not self.client_secret or not self.redirect_url:
            raise UpstreamUnavailableError(
                "GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET and GOOGLE_REDIRECT_URL must be set"
            )
        client_config = {
            "web": {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "auth_uri": AUTH_URI,
                "token_uri": TOKEN_URI,
                "redirect_uris": [self.redirect_url],
            }
        }
        # The callback builds a fresh Flow, so no PKCE verifier can be carried over
        return Flow.from_client_config(
            client_config,
            scopes=SCOPES,
            redirect_uri=self.redirect_url,
            autogenerate_code_verifier=False,
        )

    def authorization_url(self) -> str:
        url, _ = self.build_flow().authorization_url(access_type="offline", prompt="consent")
        return url

    def complete_authorization(self, code: str) -> None:
        """Exchange the consent callback's code for tokens and store them."""
        flow = self.build_flow()
        try:
            flow.fetch_token(code=code)
        except Exception as exc:
            print(f"[credentials] Code exchange failed: {exc!r}", file=sys.stderr)
            raise UpstreamUnavailableError("Authentication failed") from exc
        self._save(flow.credentials)
