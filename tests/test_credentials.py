"""Tests for credentials.py: set/clear invariants, setter propagation, listener transitions."""
from datetime import datetime, timedelta
from unittest.mock import MagicMock

from gdrive_appdata.credentials import CredentialState
from gdrive_appdata.models.auth import TokenGrant

NOW = datetime(2026, 1, 1, 12, 0, 0)


def _state(**kwargs):
    setter = MagicMock()
    state = CredentialState(set_credential=setter, clock=lambda: NOW, **kwargs)
    listener = MagicMock()
    state.set_listener(listener)
    return state, setter, listener


# ── set ──────────────────────────────────────────────────────────────

def test_set_populates_credential():
    state, setter, listener = _state()
    cred = state.set(TokenGrant(access_token="tok", expires_in=120))

    assert cred.token == "tok"
    assert cred.expires_at == NOW + timedelta(seconds=120)
    assert cred.signed_in is True
    setter.assert_called_once_with("tok")
    listener.assert_called_once_with(True)


def test_set_defaults_expiry_when_omitted():
    state, _, _ = _state()
    cred = state.set(TokenGrant(access_token="tok"))
    assert cred.expires_at == NOW + timedelta(seconds=3600)


def test_set_uses_configured_default_expiry():
    state, _, _ = _state(default_expires_in=900)
    cred = state.set(TokenGrant(access_token="tok"))
    assert cred.expires_at == NOW + timedelta(seconds=900)


def test_zero_lifetime_is_not_replaced_by_default():
    state, _, _ = _state()
    cred = state.set(TokenGrant(access_token="tok", expires_in=0))
    assert cred.expires_at == NOW
    assert state.is_valid() is False


def test_second_set_does_not_renotify():
    state, setter, listener = _state()
    state.set(TokenGrant(access_token="a"))
    state.set(TokenGrant(access_token="b"))

    listener.assert_called_once_with(True)
    assert setter.call_args_list[-1].args == ("b",)
    assert state.token == "b"


# ── clear ────────────────────────────────────────────────────────────

def test_clear_resets_everything():
    state, setter, listener = _state()
    state.set(TokenGrant(access_token="tok"))
    state.clear()

    cred = state.get()
    assert cred.token is None
    assert cred.expires_at is None
    assert cred.signed_in is False
    setter.assert_called_with(None)
    assert [c.args[0] for c in listener.call_args_list] == [True, False]


def test_clear_when_signed_out_does_not_notify():
    state, setter, listener = _state()
    state.clear()
    listener.assert_not_called()
    setter.assert_called_once_with(None)


def test_listener_last_registration_wins():
    state, _, first = _state()
    second = MagicMock()
    state.set_listener(second)
    state.set(TokenGrant(access_token="tok"))
    first.assert_not_called()
    second.assert_called_once_with(True)


def test_listener_error_does_not_break_transition():
    state, _, listener = _state()
    listener.side_effect = RuntimeError("ui gone")
    state.set(TokenGrant(access_token="tok"))
    assert state.signed_in is True


# ── validity and status ──────────────────────────────────────────────

def test_is_valid_tracks_clock():
    now = [NOW]
    state = CredentialState(clock=lambda: now[0])
    state.set(TokenGrant(access_token="tok", expires_in=60))
    assert state.is_valid() is True

    now[0] = NOW + timedelta(seconds=61)
    assert state.is_valid() is False


def test_status_no_token():
    state, _, _ = _state()
    status = state.status()
    assert status.has_token is False
    assert status.is_expired is True
    assert status.seconds_remaining is None


def test_status_valid_token():
    state, _, _ = _state()
    state.set(TokenGrant(access_token="tok", expires_in=3600))
    status = state.status()
    assert status.has_token is True
    assert status.is_expired is False
    assert status.seconds_remaining == 3600


def test_works_without_setter():
    state = CredentialState()
    state.set(TokenGrant(access_token="tok"))
    assert state.is_valid() is True
