"""Single-flight wrapper around the identity client's callback-based token request.

The identity client is fire-and-forget: it takes a callback and calls it some
time later with a grant or an error. The gate turns that into one awaitable
with a deadline. Only one request may be pending; each carries a generation
number so a callback that arrives after a timeout or cancellation is dropped.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable

from pydantic import ValidationError

from gdrive_appdata.errors import (
    AppDataError,
    ConcurrentRequestError,
    GrantError,
    RequestCancelledError,
    TokenTimeoutError,
    grant_error_from,
)
from gdrive_appdata.identity import IdentityClient
from gdrive_appdata.models.auth import GrantErrorResponse, TokenGrant, TokenRequestOptions

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_TIMEOUT = 15.0


@dataclass
class PendingTokenRequest:
    future: asyncio.Future
    deadline: float  # loop.time() value
    generation: int
    mode: str
    timer: asyncio.TimerHandle | None = None


class TokenRequestGate:
    """Issues at most one token request at a time and resolves it exactly once."""

    def __init__(self, client: IdentityClient, timeout: float = DEFAULT_TOKEN_TIMEOUT) -> None:
        self._client = client
        self._timeout = timeout
        self._pending: PendingTokenRequest | None = None
        self._generation = 0

    @property
    def pending(self) -> PendingTokenRequest | None:
        return self._pending

    @property
    def in_flight(self) -> bool:
        return self._pending is not None

    @property
    def generation(self) -> int:
        """Generation of the most recently issued request."""
        return self._generation

    async def request(self, options: TokenRequestOptions) -> TokenGrant:
        """Request a token and wait for the identity callback.

        Raises:
            ConcurrentRequestError: Another request is still pending.
            TokenTimeoutError: No callback within the deadline.
            GrantError: The provider reported an error (ConsentRequiredError for consent).
        """
        if self._pending is not None:
            raise ConcurrentRequestError(
                f"Token request already in progress (generation {self._pending.generation})"
            )

        loop = asyncio.get_running_loop()
        self._generation += 1
        generation = self._generation
        pending = PendingTokenRequest(
            future=loop.create_future(),
            deadline=loop.time() + self._timeout,
            generation=generation,
            mode=options.mode.value,
        )
        pending.timer = loop.call_at(pending.deadline, self._expire, generation)
        self._pending = pending
        logger.debug(f"Token request #{generation} issued ({options.mode.value})")

        try:
            self._client.request_token(options, self._callback_for(generation))
        except Exception as e:
            # The primitive failed before it could call back
            self.deliver(e, generation=generation)

        return await pending.future

    def deliver(self, result: Any, generation: int | None = None) -> bool:
        """Resolve the pending request with a grant or an error.

        ``result`` may be a TokenGrant, a raw grant dict, an error dict
        (``{"error": ...}``) or an exception. Deliveries for a generation that is
        no longer pending are ignored.

        Returns:
            True if the delivery settled the pending request.
        """
        pending = self._pending
        if pending is None or (generation is not None and generation != pending.generation):
            logger.info(f"Ignoring late token delivery for request #{generation}")
            return False

        self._pending = None
        if pending.timer is not None:
            pending.timer.cancel()
        if pending.future.done():
            return False

        outcome = _translate(result)
        if isinstance(outcome, TokenGrant):
            pending.future.set_result(outcome)
        else:
            pending.future.set_exception(outcome)
        return True

    def cancel(self) -> bool:
        """Abandon the pending request; its eventual callback becomes a no-op."""
        if self._pending is None:
            return False
        generation = self._pending.generation
        logger.info(f"Cancelling token request #{generation}")
        return self.deliver(RequestCancelledError(), generation=generation)

    def _callback_for(self, generation: int) -> Callable[[Any], None]:
        def callback(result: Any) -> None:
            self.deliver(result, generation=generation)

        return callback

    def _expire(self, generation: int) -> None:
        logger.warning(f"Token request #{generation} timed out after {self._timeout:.1f}s")
        self.deliver(
            TokenTimeoutError(f"No token callback within {self._timeout:.1f}s"),
            generation=generation,
        )


def _translate(result: Any) -> TokenGrant | Exception:
    """Normalize whatever the identity callback delivered."""
    if isinstance(result, TokenGrant):
        return result
    if isinstance(result, AppDataError):
        return result
    if isinstance(result, Exception):
        return GrantError("client_error", str(result))
    if isinstance(result, GrantErrorResponse):
        return grant_error_from(result.error, result.error_description)
    if isinstance(result, dict):
        try:
            if result.get("error"):
                err = GrantErrorResponse(**result)
                return grant_error_from(err.error, err.error_description)
            return TokenGrant(**result)
        except ValidationError as e:
            return GrantError("invalid_response", str(e))
    return GrantError("invalid_response", f"Unexpected token callback payload: {type(result).__name__}")
