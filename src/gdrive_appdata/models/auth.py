"""Auth-related data models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class TokenMode(str, Enum):
    SILENT = "silent"
    INTERACTIVE = "interactive"


class SessionState(str, Enum):
    SIGNED_OUT = "signed_out"
    AUTHENTICATING = "authenticating"
    SIGNED_IN = "signed_in"
    REFRESHING = "refreshing"


class TokenRequestOptions(BaseModel):
    """Options passed to the identity client for one token request."""
    mode: TokenMode = TokenMode.SILENT
    scope: str | None = None

    @property
    def prompt(self) -> str:
        """OAuth prompt value: "none" never shows UI, "consent" may."""
        return "none" if self.mode == TokenMode.SILENT else "consent"


class TokenGrant(BaseModel):
    """Successful response from the identity provider."""
    access_token: str
    token_type: str = "Bearer"
    expires_in: int | None = None
    scope: str = ""


class GrantErrorResponse(BaseModel):
    """Error shape delivered by the identity provider callback."""
    error: str
    error_description: str | None = None


class Credential(BaseModel):
    """Current token held by CredentialState."""
    token: str | None = None
    expires_at: datetime | None = None
    signed_in: bool = False


class TokenStatus(BaseModel):
    """Current state of the session's access token."""
    state: SessionState = SessionState.SIGNED_OUT
    has_token: bool
    is_expired: bool
    expires_at: datetime | None = None
    seconds_remaining: int | None = None
