"""OAuth2 session management for the Drive appDataFolder client.

Drives sign-in (silent first, interactive fallback), proactive silent renewal
before expiry, and sign-out with best-effort revocation.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta

from gdrive_appdata.credentials import CredentialState, SessionListener
from gdrive_appdata.errors import (
    AlreadyInProgressError,
    GrantError,
    RequestCancelledError,
    TokenTimeoutError,
)
from gdrive_appdata.identity import IdentityClient
from gdrive_appdata.loader import ScriptLoader
from gdrive_appdata.models.auth import (
    Credential,
    SessionState,
    TokenGrant,
    TokenMode,
    TokenRequestOptions,
    TokenStatus,
)
from gdrive_appdata.scheduler import REFRESH_LEAD_TIME, RefreshScheduler
from gdrive_appdata.sdk import IDENTITY_SDK, STORAGE_SDK
from gdrive_appdata.token_gate import TokenRequestGate

logger = logging.getLogger(__name__)

# Failures that send sign-in to the interactive fallback
_FALLBACK_ERRORS = (GrantError, TokenTimeoutError)


class SessionController:
    """Owns the session state machine: SIGNED_OUT, AUTHENTICATING, SIGNED_IN, REFRESHING."""

    def __init__(
        self,
        loader: ScriptLoader,
        gate: TokenRequestGate,
        credentials: CredentialState,
        identity: IdentityClient,
        lead_time: timedelta = REFRESH_LEAD_TIME,
        scope: str | None = None,
        required_sdks: tuple[str, ...] = (IDENTITY_SDK, STORAGE_SDK),
    ) -> None:
        self._loader = loader
        self._gate = gate
        self._credentials = credentials
        self._identity = identity
        self._scope = scope
        self._required_sdks = required_sdks
        self._scheduler = RefreshScheduler(self._on_refresh_due, lead_time=lead_time, clock=credentials.clock)
        self._state = SessionState.SIGNED_OUT
        self._grant: TokenGrant | None = None
        self._refresh_task: asyncio.Task | None = None
        # Bumped by sign_out; coroutines resuming under an older epoch discard their result
        self._epoch = 0

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def scheduler(self) -> RefreshScheduler:
        return self._scheduler

    @property
    def refresh_task(self) -> asyncio.Task | None:
        """The most recent proactive refresh task, if one was started."""
        return self._refresh_task

    def on_signed_in_change(self, listener: SessionListener | None) -> None:
        """Register the callback invoked with the new signed-in value on each transition."""
        self._credentials.set_listener(listener)

    def is_authenticated(self) -> bool:
        return self._credentials.is_valid()

    def get_current_token(self) -> str | None:
        """Token for the next API call, or None when signed out or expired."""
        if not self._credentials.is_valid():
            return None
        return self._credentials.token

    def get_credential(self) -> Credential:
        return self._credentials.get()

    def get_status(self) -> TokenStatus:
        status = self._credentials.status()
        status.state = self._state
        return status

    async def sign_in(self, allow_interactive: bool = True) -> TokenGrant:
        """Sign in silently if possible, otherwise with user interaction.

        Args:
            allow_interactive: Fall back to an interactive request when the
                silent one fails. When False the silent failure is raised.

        Returns:
            The grant now held by the session.

        Raises:
            AlreadyInProgressError: Sign-in or refresh already running.
            LoadError: An SDK could not be loaded.
            GrantError / TokenTimeoutError: Both silent and interactive requests failed.
        """
        if self._state in (SessionState.AUTHENTICATING, SessionState.REFRESHING):
            raise AlreadyInProgressError(f"Cannot sign in while {self._state.value}")

        if self._state == SessionState.SIGNED_IN and self._grant is not None and self.is_authenticated():
            return self._grant

        if self._credentials.token is not None:
            # Expired leftovers must not coexist with AUTHENTICATING
            self._scheduler.disarm()
            self._credentials.clear()

        epoch = self._epoch
        self._state = SessionState.AUTHENTICATING
        logger.info("Signing in")

        try:
            await self._loader.ensure_all(*self._required_sdks)
            self._check_epoch(epoch)
            grant = await self._request_with_fallback(epoch, allow_interactive)
        except (Exception, asyncio.CancelledError):
            if epoch == self._epoch:
                self._gate.cancel()
                self._credentials.clear()
                self._state = SessionState.SIGNED_OUT
            raise

        self._check_epoch(epoch)
        self._accept(grant)
        return grant

    def sign_out(self) -> None:
        """Drop the session from any state; revocation is best effort."""
        self._epoch += 1
        self._scheduler.disarm()
        self._gate.cancel()

        token = self._credentials.token
        if token:
            self._revoke(token)

        self._credentials.clear()
        self._state = SessionState.SIGNED_OUT
        self._grant = None
        logger.info("Signed out")

    async def aclose(self) -> None:
        """Stop timers and pending work without revoking the token."""
        self._epoch += 1
        self._scheduler.disarm()
        self._gate.cancel()
        task = self._refresh_task
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _request_with_fallback(self, epoch: int, allow_interactive: bool) -> TokenGrant:
        try:
            return await self._gate.request(self._options(TokenMode.SILENT))
        except _FALLBACK_ERRORS as e:
            self._check_epoch(epoch)
            if not allow_interactive:
                raise
            logger.warning(f"Silent sign-in failed ({e}), falling back to interactive")
        return await self._gate.request(self._options(TokenMode.INTERACTIVE))

    def _on_refresh_due(self) -> None:
        if self._state != SessionState.SIGNED_IN:
            logger.debug(f"Refresh due while {self._state.value}, skipping")
            return
        self._refresh_task = asyncio.get_running_loop().create_task(self._refresh())

    async def _refresh(self) -> None:
        """Renew silently; any failure signs the session out without retrying."""
        epoch = self._epoch
        self._state = SessionState.REFRESHING
        logger.info("Refreshing token silently")

        try:
            grant = await self._gate.request(self._options(TokenMode.SILENT))
        except Exception as e:
            if epoch != self._epoch:
                return
            logger.warning(f"Silent refresh failed, signing out: {e}")
            self._credentials.clear()
            self._state = SessionState.SIGNED_OUT
            self._grant = None
            return

        if epoch != self._epoch:
            return
        self._accept(grant)

    def _accept(self, grant: TokenGrant) -> None:
        epoch = self._epoch
        self._state = SessionState.SIGNED_IN
        self._grant = grant
        credential = self._credentials.set(grant)
        # The listener may have signed out from inside set()
        if epoch != self._epoch:
            return
        self._scheduler.arm(credential.expires_at)

    def _revoke(self, token: str) -> None:
        try:
            self._identity.revoke(token, self._on_revoked)
        except Exception as e:
            logger.warning(f"Token revoke failed: {e}")

    @staticmethod
    def _on_revoked(error: Exception | None) -> None:
        if error is not None:
            logger.warning(f"Token revoke failed: {error}")
        else:
            logger.info("Token revoked")

    def _check_epoch(self, epoch: int) -> None:
        if epoch != self._epoch:
            raise RequestCancelledError()

    def _options(self, mode: TokenMode) -> TokenRequestOptions:
        return TokenRequestOptions(mode=mode, scope=self._scope)
