"""Shared fixtures for the gdrive-appdata test suite."""
from __future__ import annotations

import asyncio
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from gdrive_appdata.auth import SessionController
from gdrive_appdata.config import Settings
from gdrive_appdata.credentials import CredentialState
from gdrive_appdata.loader import ScriptLoader
from gdrive_appdata.sdk import IDENTITY_SDK, STORAGE_SDK
from gdrive_appdata.token_gate import TokenRequestGate


class FakeIdentityClient:
    """Identity client that answers from a script on the next loop turn.

    A ``None`` entry takes a request but never calls back.
    """

    def __init__(self, responses=None) -> None:
        self.responses = list(responses or [])
        self.requests = []
        self.revoked = []
        self.revoke_error = None
        self.revoke_raises = None

    def request_token(self, options, callback) -> None:
        self.requests.append((options, callback))
        if not self.responses:
            return
        result = self.responses.pop(0)
        if result is not None:
            asyncio.get_running_loop().call_soon(callback, result)

    def revoke(self, token, callback) -> None:
        if self.revoke_raises is not None:
            raise self.revoke_raises
        self.revoked.append(token)
        callback(self.revoke_error)

    @property
    def modes(self) -> list[str]:
        return [options.mode.value for options, _ in self.requests]


class Session:
    """A SessionController plus the collaborators tests poke at."""

    def __init__(self, identity, timeout=1.0, lead_time=timedelta(minutes=5), load=None) -> None:
        self.identity = identity
        self.set_credential = MagicMock()
        self.listener = MagicMock()
        self.loader = ScriptLoader()
        self.loads = MagicMock()

        async def _load() -> None:
            self.loads()
            if load is not None:
                await load()

        self.loader.register(IDENTITY_SDK, _load)
        self.loader.register(STORAGE_SDK, _load)
        self.credentials = CredentialState(set_credential=self.set_credential)
        self.gate = TokenRequestGate(identity, timeout=timeout)
        self.controller = SessionController(
            self.loader, self.gate, self.credentials, identity, lead_time=lead_time,
        )
        self.controller.on_signed_in_change(self.listener)


@pytest.fixture
def fake_settings(tmp_path) -> Settings:
    return Settings(
        client_id="test-client-id",
        client_secret="test-secret",
        token_timeout=0.05,
        refresh_lead_time=300,
        default_expires_in=3600,
        token_path=str(tmp_path / "token.json"),
        max_retries=3,
        retry_delay=0.0,
    )


@pytest.fixture
def make_identity():
    """Factory: ``make_identity([response, ...])`` builds a scripted identity client."""
    return FakeIdentityClient


@pytest.fixture
def make_session():
    """Factory: ``make_session([response, ...], timeout=..., lead_time=..., load=...)``."""
    def _make(responses=None, **kwargs) -> Session:
        return Session(FakeIdentityClient(responses), **kwargs)
    return _make
