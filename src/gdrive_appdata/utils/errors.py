"""Structured error handling for agent-friendly output."""

from __future__ import annotations

import json
import sys

from rich.console import Console

from gdrive_appdata.errors import (
    ApiError,
    ConcurrentRequestError,
    ConsentRequiredError,
    GrantError,
    LoadError,
    NotSignedInError,
    TokenTimeoutError,
)

console = Console(stderr=True)

# Actionable hints keyed by error substring
_ERROR_HINTS: list[tuple[str, str]] = [
    ("consent", "Consent required: run `gdrive-appdata auth login` interactively"),
    ("not signed in", "No session: run `gdrive-appdata auth login`"),
    ("sign in first", "No session: run `gdrive-appdata auth login`"),
    ("401", "Token rejected: run `gdrive-appdata auth login` again"),
    ("unauthorized", "Token rejected: run `gdrive-appdata auth login` again"),
    ("429", "Rate limited: wait a moment and retry"),
    ("ratelimitexceeded", "Rate limited: wait a moment and retry"),
    ("failed to load sdk", "Discovery document unreachable: check network connectivity"),
    ("timed out", "Token helper did not answer in time: check the token command"),
    ("no token callback", "Token helper did not answer in time: check the token command"),
    ("already in progress", "Another sign-in is running: wait for it to finish"),
    ("file not found", "No such file in appDataFolder: run `gdrive-appdata files list`"),
    ("connection", "Connection error: check network connectivity"),
]

# Most specific first
_ERROR_CODES: list[tuple[type[Exception], str]] = [
    (LoadError, "LOAD_ERROR"),
    (ConcurrentRequestError, "IN_PROGRESS"),
    (TokenTimeoutError, "TIMEOUT"),
    (ConsentRequiredError, "CONSENT_REQUIRED"),
    (GrantError, "GRANT_ERROR"),
    (NotSignedInError, "NOT_SIGNED_IN"),
    (FileNotFoundError, "NOT_FOUND"),
]


def _get_hint(error_message: str) -> str | None:
    """Match an error message to an actionable hint."""
    lower = error_message.lower()
    for pattern, hint in _ERROR_HINTS:
        if pattern.lower() in lower:
            return hint
    return None


def _get_code(error: Exception) -> str:
    for exc_type, code in _ERROR_CODES:
        if isinstance(error, exc_type):
            return code
    if isinstance(error, ApiError):
        if error.status_code == 401:
            return "AUTH_ERROR"
        if error.status_code == 404:
            return "NOT_FOUND"
        if error.status_code == 429:
            return "RATE_LIMITED"
        return "API_ERROR"
    return "RUNTIME_ERROR"


def handle_error(error: Exception) -> None:
    """Handle an error with structured output to stdout and human-readable output to stderr.

    Outputs a JSON error object to stdout for agent consumption:
    {"error": true, "code": "GRANT_ERROR", "message": "...", "hint": "..."}

    Also prints a human-readable error to stderr.
    """
    message = str(error)
    hint = _get_hint(message)

    error_obj: dict[str, object] = {
        "error": True,
        "code": _get_code(error),
        "message": message,
    }
    if hint:
        error_obj["hint"] = hint

    json.dump(error_obj, sys.stdout)
    sys.stdout.write("\n")

    console.print(f"[red]Error:[/red] {message}")
    if hint:
        console.print(f"[dim]Hint: {hint}[/dim]")
