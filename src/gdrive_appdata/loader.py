"""One-time loading of the external SDKs the session depends on.

Each SDK id has a status cell: NOT_LOADED, LOADING (one shared task) or LOADED.
Concurrent callers share the in-flight load; a failed load resets the cell so a
later call can retry.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable

from gdrive_appdata.errors import LoadError

logger = logging.getLogger(__name__)


class LoadStatus(str, Enum):
    NOT_LOADED = "not_loaded"
    LOADING = "loading"
    LOADED = "loaded"


@dataclass
class _LoadCell:
    load: Callable[[], Awaitable[None]]
    is_present: Callable[[], bool] | None = None
    status: LoadStatus = LoadStatus.NOT_LOADED
    task: asyncio.Task | None = None
    attempts: int = 0


class ScriptLoader:
    """Ensures exactly one successful load per registered SDK."""

    def __init__(self) -> None:
        self._cells: dict[str, _LoadCell] = {}

    def register(
        self,
        sdk_id: str,
        load: Callable[[], Awaitable[None]],
        is_present: Callable[[], bool] | None = None,
    ) -> None:
        """Register a loader coroutine and an optional "already loaded" marker check."""
        self._cells[sdk_id] = _LoadCell(load=load, is_present=is_present)

    def status(self, sdk_id: str) -> LoadStatus:
        return self._cell(sdk_id).status

    def attempts(self, sdk_id: str) -> int:
        """Number of load attempts started for an SDK."""
        return self._cell(sdk_id).attempts

    async def ensure_loaded(self, sdk_id: str) -> None:
        """Load an SDK once; concurrent callers await the same load.

        Raises:
            LoadError: If the SDK is unknown or its load failed.
        """
        cell = self._cell(sdk_id)

        if cell.status == LoadStatus.LOADED:
            return
        if cell.status == LoadStatus.NOT_LOADED and cell.is_present and cell.is_present():
            cell.status = LoadStatus.LOADED
            return

        if cell.task is None:
            cell.status = LoadStatus.LOADING
            cell.attempts += 1
            cell.task = asyncio.ensure_future(self._load(sdk_id, cell))

        # Shield so one cancelled waiter does not abort the shared load
        await asyncio.shield(cell.task)

    async def ensure_all(self, *sdk_ids: str) -> None:
        """Load several SDKs concurrently."""
        await asyncio.gather(*(self.ensure_loaded(sdk_id) for sdk_id in sdk_ids))

    async def _load(self, sdk_id: str, cell: _LoadCell) -> None:
        logger.info(f"Loading SDK '{sdk_id}' (attempt {cell.attempts})")
        try:
            await cell.load()
        except Exception as e:
            cell.status = LoadStatus.NOT_LOADED
            cell.task = None
            logger.warning(f"SDK '{sdk_id}' failed to load: {e}")
            if isinstance(e, LoadError):
                raise
            raise LoadError(sdk_id, str(e)) from e
        cell.status = LoadStatus.LOADED
        cell.task = None

    def _cell(self, sdk_id: str) -> _LoadCell:
        try:
            return self._cells[sdk_id]
        except KeyError:
            raise LoadError(sdk_id, "no loader registered") from None
