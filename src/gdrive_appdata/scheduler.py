"""Countdown that triggers a silent token renewal before expiry."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable

logger = logging.getLogger(__name__)

# Refresh this long before the token actually expires
REFRESH_LEAD_TIME = timedelta(minutes=5)


class RefreshScheduler:
    """Holds at most one armed timer; firing calls ``on_fire`` exactly once."""

    def __init__(
        self,
        on_fire: Callable[[], None],
        lead_time: timedelta = REFRESH_LEAD_TIME,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._on_fire = on_fire
        self._lead_time = lead_time
        self._clock = clock
        self._handle: asyncio.Handle | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._fires_at: float | None = None

    @property
    def armed(self) -> bool:
        return self._handle is not None

    @property
    def delay(self) -> float | None:
        """Seconds until the armed timer fires, or None when disarmed."""
        if self._handle is None or self._loop is None or self._fires_at is None:
            return None
        return max(0.0, self._fires_at - self._loop.time())

    def arm(self, expires_at: datetime) -> float:
        """Cancel any countdown and start a new one for ``expires_at - lead_time``.

        A countdown that is already due fires on the next loop iteration.

        Returns:
            The computed delay in seconds (may be negative when overdue).
        """
        self.disarm()
        loop = asyncio.get_running_loop()
        delay = (expires_at - self._clock() - self._lead_time).total_seconds()
        self._loop = loop
        if delay <= 0:
            logger.info("Token within refresh lead time, refreshing now")
            self._fires_at = loop.time()
            self._handle = loop.call_soon(self.fire)
        else:
            logger.info(f"Token refresh scheduled in {delay:.0f}s")
            self._fires_at = loop.time() + delay
            self._handle = loop.call_later(delay, self.fire)
        return delay

    def disarm(self) -> None:
        """Cancel the pending countdown, if any."""
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self._fires_at = None

    def fire(self) -> None:
        """Run the refresh callback once and forget the countdown."""
        if self._handle is None:
            return
        self.disarm()
        self._on_fire()
