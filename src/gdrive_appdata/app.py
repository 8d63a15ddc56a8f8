"""Top-level wiring: one session and one file service over a shared HTTP client."""

from __future__ import annotations

from datetime import timedelta

import httpx

from gdrive_appdata.auth import SessionController
from gdrive_appdata.client import AppDataClient
from gdrive_appdata.config import Settings
from gdrive_appdata.credentials import CredentialState
from gdrive_appdata.identity import GoogleIdentityClient, IdentityClient, init_client
from gdrive_appdata.loader import ScriptLoader
from gdrive_appdata.sdk import GoogleSdks, STORAGE_SDK
from gdrive_appdata.services.appdata import AppDataService
from gdrive_appdata.token_gate import TokenRequestGate


class AppData:
    """Drive appDataFolder access for one signed-in user.

    Use as an async context manager::

        async with AppData(settings) as gd:
            await gd.sign_in()
            files = await gd.files.list_files()
    """

    def __init__(
        self,
        settings: Settings,
        identity: IdentityClient | None = None,
        http: httpx.AsyncClient | None = None,
        verbose: bool = False,
    ) -> None:
        self.settings = settings
        self._owns_http = http is None
        self.http = http or httpx.AsyncClient(timeout=30.0)

        self.loader = ScriptLoader()
        self.sdks = GoogleSdks(settings, self.http)
        self.sdks.register(self.loader)

        self.client = AppDataClient(
            self.http,
            max_retries=settings.max_retries,
            retry_delay=settings.retry_delay,
            verbose=verbose,
        )
        self.identity = identity or init_client(settings, self.sdks, self.http)
        self.credentials = CredentialState(
            set_credential=self.client.set_credential,
            default_expires_in=settings.default_expires_in,
        )
        self.gate = TokenRequestGate(self.identity, timeout=settings.token_timeout)
        self.session = SessionController(
            self.loader,
            self.gate,
            self.credentials,
            self.identity,
            lead_time=timedelta(seconds=settings.refresh_lead_time),
            scope=settings.scope,
        )
        self.files = AppDataService(self.client)

    async def sign_in(self, allow_interactive: bool = True) -> None:
        """Sign in and point the storage client at the discovered Drive root."""
        await self.session.sign_in(allow_interactive=allow_interactive)
        await self.loader.ensure_loaded(STORAGE_SDK)
        self.client.base_url = self.sdks.drive_base_url

    async def aclose(self) -> None:
        await self.session.aclose()
        if isinstance(self.identity, GoogleIdentityClient):
            await self.identity.drain()
        if self._owns_http:
            await self.http.aclose()

    async def __aenter__(self) -> "AppData":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
