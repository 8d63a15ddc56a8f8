"""Tests for utils/errors.py: error code classification and hint matching."""
import json

from gdrive_appdata.errors import (
    AlreadyInProgressError,
    ApiError,
    ConsentRequiredError,
    GrantError,
    LoadError,
    NotSignedInError,
    TokenTimeoutError,
)
from gdrive_appdata.utils.errors import _get_hint, handle_error


# ── _get_hint tests ──────────────────────────────────────────────────

def test_hint_consent():
    assert "auth login" in _get_hint(str(ConsentRequiredError("consent_required")))


def test_hint_not_signed_in():
    assert "auth login" in _get_hint("No access token; sign in first")


def test_hint_401():
    assert "login" in _get_hint(str(ApiError(401, "Invalid Credentials")))


def test_hint_rate_limited():
    assert "rate" in _get_hint(str(ApiError(429, "slow down"))).lower()


def test_hint_load():
    assert "network" in _get_hint(str(LoadError("identity", "boom"))).lower()


def test_hint_timeout():
    assert "token command" in _get_hint(str(TokenTimeoutError("No token callback within 15.0s")))


def test_hint_no_match():
    assert _get_hint("some random error") is None


# ── handle_error JSON output ─────────────────────────────────────────

def _code(capsys, error):
    handle_error(error)
    return json.loads(capsys.readouterr().out)["code"]


def test_code_consent(capsys):
    assert _code(capsys, ConsentRequiredError("consent_required")) == "CONSENT_REQUIRED"


def test_code_grant(capsys):
    assert _code(capsys, GrantError("access_denied")) == "GRANT_ERROR"


def test_code_timeout(capsys):
    assert _code(capsys, TokenTimeoutError("late")) == "TIMEOUT"


def test_code_in_progress(capsys):
    assert _code(capsys, AlreadyInProgressError("busy")) == "IN_PROGRESS"


def test_code_not_signed_in(capsys):
    assert _code(capsys, NotSignedInError("sign in first")) == "NOT_SIGNED_IN"


def test_code_api_statuses(capsys):
    assert _code(capsys, ApiError(401, "x")) == "AUTH_ERROR"
    assert _code(capsys, ApiError(404, "x")) == "NOT_FOUND"
    assert _code(capsys, ApiError(400, "x")) == "API_ERROR"


def test_code_file_not_found(capsys):
    assert _code(capsys, FileNotFoundError("File not found: a.txt")) == "NOT_FOUND"


def test_generic_error(capsys):
    handle_error(RuntimeError("something went wrong"))
    data = json.loads(capsys.readouterr().out)
    assert data["error"] is True
    assert data["code"] == "RUNTIME_ERROR"
    assert "hint" not in data
