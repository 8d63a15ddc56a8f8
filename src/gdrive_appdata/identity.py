"""Identity client contract and the Google OAuth implementation.

The session core only needs two fire-and-forget primitives: ``request_token``
and ``revoke``. Both report back through a callback, never by return value.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Protocol

import google.auth
import httpx
from google.auth.exceptions import DefaultCredentialsError, RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow

from gdrive_appdata.config import Settings
from gdrive_appdata.errors import GrantError, RevokeError
from gdrive_appdata.models.auth import TokenMode, TokenRequestOptions
from gdrive_appdata.sdk import DEFAULT_AUTH_URI, DEFAULT_TOKEN_URI, GoogleSdks

logger = logging.getLogger(__name__)

TokenCallback = Callable[[Any], None]
RevokeCallback = Callable[[Exception | None], None]


class IdentityClient(Protocol):
    def request_token(self, options: TokenRequestOptions, callback: TokenCallback) -> None:
        """Start a token request; ``callback`` later receives a grant or an error."""
        ...

    def revoke(self, token: str, callback: RevokeCallback) -> None:
        """Start revoking ``token``; ``callback`` receives None or an exception."""
        ...


class GoogleIdentityClient:
    """Obtains access tokens with google-auth.

    Silent requests refresh the cached user credentials (token file, then
    application default credentials). Interactive requests run the installed
    app consent flow in a browser. Blocking google-auth calls run in the
    default executor.
    """

    def __init__(self, settings: Settings, sdks: GoogleSdks, http: httpx.AsyncClient) -> None:
        self._settings = settings
        self._sdks = sdks
        self._http = http
        self._creds: Any = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def credentials(self) -> Any:
        """The google-auth credentials behind the last grant, if any."""
        return self._creds

    def request_token(self, options: TokenRequestOptions, callback: TokenCallback) -> None:
        self._spawn(self._request_token(options, callback))

    def revoke(self, token: str, callback: RevokeCallback) -> None:
        self._spawn(self._revoke(token, callback))

    async def drain(self, timeout: float = 5.0) -> None:
        """Wait for outstanding token and revoke work, cancelling whatever overruns."""
        if not self._tasks:
            return
        _, pending = await asyncio.wait(list(self._tasks), timeout=timeout)
        for task in pending:
            task.cancel()

    async def _request_token(self, options: TokenRequestOptions, callback: TokenCallback) -> None:
        scopes = (options.scope or self._settings.scope).split()
        try:
            if options.mode == TokenMode.INTERACTIVE:
                creds = await self._in_executor(self._consent, scopes)
            else:
                creds = await self._in_executor(self._refresh_silently, scopes)
            self._creds = creds
            self._save(creds)
            result: Any = {
                "access_token": creds.token,
                "expires_in": _expires_in(creds.expiry),
                "scope": " ".join(getattr(creds, "scopes", None) or scopes),
            }
        except (DefaultCredentialsError, RefreshError) as e:
            result = {"error": "consent_required", "error_description": str(e)}
        except Exception as e:
            logger.debug(f"Token request failed: {e!r}")
            result = e
        callback(result)

    def _refresh_silently(self, scopes: list[str]) -> Any:
        creds = self._creds or self._load_cached(scopes)
        if creds is None:
            creds, _ = google.auth.default(scopes=scopes)
        creds.refresh(Request())
        return creds

    def _consent(self, scopes: list[str]) -> Any:
        if not self._settings.client_id:
            raise GrantError("invalid_client", "No OAuth client ID configured")
        flow = InstalledAppFlow.from_client_config(self._client_config(), scopes=scopes)
        logger.info("Opening browser for Google consent")
        try:
            return flow.run_local_server(port=0, timeout_seconds=self._settings.token_timeout)
        except Exception as e:
            raise GrantError("access_denied", str(e) or type(e).__name__) from e

    def _client_config(self) -> dict[str, Any]:
        openid = self._sdks.openid_config or {}
        return {
            "installed": {
                "client_id": self._settings.client_id,
                "client_secret": self._settings.client_secret,
                "auth_uri": openid.get("authorization_endpoint", DEFAULT_AUTH_URI),
                "token_uri": openid.get("token_endpoint", DEFAULT_TOKEN_URI),
                "redirect_uris": ["http://localhost"],
            }
        }

    def _load_cached(self, scopes: list[str]) -> Any:
        path = self._token_path
        if path is None or not path.exists():
            return None
        return Credentials.from_authorized_user_file(str(path), scopes)

    def _save(self, creds: Any) -> None:
        """Persist user credentials that carry a refresh token."""
        path = self._token_path
        if path is None or not getattr(creds, "refresh_token", None):
            return
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(creds.to_json())

    @property
    def _token_path(self) -> Path | None:
        if not self._settings.token_path:
            return None
        return Path(self._settings.token_path).expanduser()

    async def _revoke(self, token: str, callback: RevokeCallback) -> None:
        try:
            self._creds = None
            path = self._token_path
            if path is not None:
                path.unlink(missing_ok=True)
            response = await self._http.post(self._sdks.revocation_endpoint, data={"token": token})
        except httpx.HTTPError as e:
            callback(RevokeError(f"Revoke request failed: {e}"))
            return
        except Exception as e:
            callback(RevokeError(f"Revoke failed: {e}"))
            return
        if response.status_code != 200:
            callback(RevokeError(f"Revoke failed (HTTP {response.status_code}): {response.text}"))
            return
        callback(None)

    async def _in_executor(self, func: Callable[[list[str]], Any], scopes: list[str]) -> Any:
        return await asyncio.get_running_loop().run_in_executor(None, func, scopes)

    def _spawn(self, coro: Any) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)


def _expires_in(expiry: datetime | None) -> int | None:
    """Seconds until ``expiry``; google-auth reports naive UTC datetimes."""
    if expiry is None:
        return None
    if expiry.tzinfo is None:
        expiry = expiry.replace(tzinfo=timezone.utc)
    return max(0, int((expiry - datetime.now(timezone.utc)).total_seconds()))


def init_client(settings: Settings, sdks: GoogleSdks, http: httpx.AsyncClient) -> GoogleIdentityClient:
    """Create the identity client once the identity SDK document is loaded."""
    return GoogleIdentityClient(settings, sdks, http)
