"""Exception taxonomy for session management and Drive calls."""

from __future__ import annotations


class AppDataError(Exception):
    """Base class for all gdrive-appdata errors."""


class LoadError(AppDataError):
    """An SDK failed to load. Retryable."""

    def __init__(self, sdk_id: str, reason: str = "") -> None:
        self.sdk_id = sdk_id
        message = f"Failed to load SDK '{sdk_id}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class ConcurrentRequestError(AppDataError):
    """A token request is already in flight."""


class AlreadyInProgressError(ConcurrentRequestError):
    """sign_in() was called while authenticating or refreshing."""


class TokenTimeoutError(AppDataError, TimeoutError):
    """No identity callback arrived before the request deadline."""


class GrantError(AppDataError):
    """The identity provider reported a failed token request."""

    def __init__(self, error: str, description: str | None = None) -> None:
        self.error = error
        self.description = description
        message = f"Token request failed: {error}"
        if description:
            message += f" ({description})"
        super().__init__(message)


class ConsentRequiredError(GrantError):
    """A silent request needs user interaction to proceed."""


class RequestCancelledError(GrantError):
    """The pending token request was abandoned by sign-out."""

    def __init__(self, description: str | None = "signed out while request was pending") -> None:
        super().__init__("cancelled", description)


class RevokeError(AppDataError):
    """Token revocation failed. Logged, never propagated."""


class NotSignedInError(AppDataError):
    """A Drive call was attempted without a current credential."""


class ApiError(AppDataError):
    """Drive API returned a non-retryable error."""

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        super().__init__(f"API error (HTTP {status_code}): {message}")


# Provider error codes that mean "ask the user"
CONSENT_ERROR_CODES = frozenset({"consent_required", "interaction_required", "login_required"})


def grant_error_from(error: str, description: str | None = None) -> GrantError:
    """Build the GrantError subclass matching a provider error code."""
    if error in CONSENT_ERROR_CODES:
        return ConsentRequiredError(error, description)
    return GrantError(error, description)
