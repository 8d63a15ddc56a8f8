"""Holder for the current access token, its expiry and the signed-in flag."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable

from gdrive_appdata.models.auth import Credential, TokenGrant, TokenStatus

logger = logging.getLogger(__name__)

DEFAULT_EXPIRES_IN = 3600

CredentialSetter = Callable[[str | None], None]
SessionListener = Callable[[bool], None]


class CredentialState:
    """Single source of truth for the session credential.

    Every set/clear pushes the token (or None) to the storage client and
    notifies the listener when ``signed_in`` actually changes.
    """

    def __init__(
        self,
        set_credential: CredentialSetter | None = None,
        default_expires_in: int = DEFAULT_EXPIRES_IN,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._set_credential = set_credential
        self._default_expires_in = default_expires_in
        self._clock = clock
        self._listener: SessionListener | None = None
        self._token: str | None = None
        self._expires_at: datetime | None = None
        self._signed_in = False

    def get(self) -> Credential:
        return Credential(token=self._token, expires_at=self._expires_at, signed_in=self._signed_in)

    @property
    def clock(self) -> Callable[[], datetime]:
        return self._clock

    @property
    def token(self) -> str | None:
        return self._token

    @property
    def expires_at(self) -> datetime | None:
        return self._expires_at

    @property
    def signed_in(self) -> bool:
        return self._signed_in

    def set_listener(self, listener: SessionListener | None) -> None:
        """Register the signed-in listener. Last registration wins."""
        self._listener = listener

    def set(self, grant: TokenGrant) -> Credential:
        """Store a fresh grant and mark the session signed in."""
        expires_in = grant.expires_in if grant.expires_in is not None else self._default_expires_in
        self._token = grant.access_token
        self._expires_at = self._clock() + timedelta(seconds=expires_in)
        self._transition(True)
        return self.get()

    def clear(self) -> None:
        """Drop the token and mark the session signed out."""
        self._token = None
        self._expires_at = None
        self._transition(False)

    def is_valid(self) -> bool:
        """True if a token is held and has not yet expired."""
        if not self._signed_in or not self._token or not self._expires_at:
            return False
        return self._clock() < self._expires_at

    def status(self) -> TokenStatus:
        """Get the current token status."""
        if not self._token:
            return TokenStatus(has_token=False, is_expired=True)

        now = self._clock()
        is_expired = self._expires_at is None or now >= self._expires_at
        seconds_remaining = None
        if self._expires_at and not is_expired:
            seconds_remaining = int((self._expires_at - now).total_seconds())

        return TokenStatus(
            has_token=True,
            is_expired=is_expired,
            expires_at=self._expires_at,
            seconds_remaining=seconds_remaining,
        )

    def _transition(self, signed_in: bool) -> None:
        changed = signed_in != self._signed_in
        self._signed_in = signed_in

        if self._set_credential is not None:
            self._set_credential(self._token)

        if changed and self._listener is not None:
            try:
                self._listener(signed_in)
            except Exception:
                logger.exception("Signed-in listener raised")
