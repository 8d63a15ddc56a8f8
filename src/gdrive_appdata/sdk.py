"""Google discovery documents standing in for the identity and storage SDKs.

The browser SDKs fetch these documents during init; here they are fetched
once through ScriptLoader and cached on a GoogleSdks instance.
"""

from __future__ import annotations

from typing import Any

import httpx

from gdrive_appdata.config import Settings
from gdrive_appdata.loader import ScriptLoader

IDENTITY_SDK = "identity"
STORAGE_SDK = "storage"

DEFAULT_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"
DEFAULT_REVOCATION_ENDPOINT = "https://oauth2.googleapis.com/revoke"
DEFAULT_DRIVE_BASE = "https://www.googleapis.com/"


class GoogleSdks:
    """Holds the loaded identity and storage discovery documents."""

    def __init__(self, settings: Settings, http: httpx.AsyncClient) -> None:
        self._settings = settings
        self._http = http
        self.openid_config: dict[str, Any] | None = None
        self.drive_discovery: dict[str, Any] | None = None

    def register(self, loader: ScriptLoader) -> None:
        """Wire both SDKs into a loader."""
        loader.register(IDENTITY_SDK, self.load_identity, lambda: self.openid_config is not None)
        loader.register(STORAGE_SDK, self.load_storage, lambda: self.drive_discovery is not None)

    async def load_identity(self) -> None:
        self.openid_config = await self._fetch(self._settings.openid_config_url)

    async def load_storage(self) -> None:
        self.drive_discovery = await self._fetch(self._settings.drive_discovery_url)

    @property
    def revocation_endpoint(self) -> str:
        if self.openid_config:
            return self.openid_config.get("revocation_endpoint", DEFAULT_REVOCATION_ENDPOINT)
        return DEFAULT_REVOCATION_ENDPOINT

    @property
    def drive_base_url(self) -> str:
        """Root URL of the Drive API (e.g. https://www.googleapis.com/)."""
        if self.drive_discovery:
            return self.drive_discovery.get("rootUrl", DEFAULT_DRIVE_BASE)
        return DEFAULT_DRIVE_BASE

    async def _fetch(self, url: str) -> dict[str, Any]:
        response = await self._http.get(url)
        if response.status_code != 200:
            raise RuntimeError(f"Discovery fetch failed (HTTP {response.status_code}): {url}")
        return response.json()
