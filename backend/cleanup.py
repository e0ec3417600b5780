"""Cleanup — evicts expired transfers and their stored files.

Runs as a background task for the lifetime of the app, every
SWEEP_INTERVAL (5 minutes by default).
"""

import asyncio
import contextlib
import logging
from datetime import datetime, timedelta, timezone

from fastapi.concurrency import run_in_threadpool

from api.events.services.broadcaster import EventBroadcaster
from api.transfers.repositories.expiring_store import ExpiringTransferStore
from api.transfers.repositories.transfer_store import Clock
from api.upload.repositories.file_storage import FileStorage

logger = logging.getLogger(__name__)


class ExpirySweeper:
    def __init__(
        self,
        store: ExpiringTransferStore,
        broadcaster: EventBroadcaster,
        file_storage: FileStorage,
        interval: timedelta = timedelta(minutes=5),
        clock: Clock | None = None,
    ):
        self._store = store
        self._broadcaster = broadcaster
        self._file_storage = file_storage
        self.interval = interval
        self._clock = clock or store.clock
        self._task: asyncio.Task | None = None
        store.on_evict = self.release

    async def release(self, transfer_id: str) -> None:
        """Close subscriber channels and remove stored bytes of an evicted transfer."""
        self._broadcaster.close_all(transfer_id)
        await run_in_threadpool(self._file_storage.delete_all, transfer_id)

    async def sweep(self) -> int:
        """Evict expired transfers and orphaned upload directories.
        Returns the number of transfers evicted."""
        # One snapshot per cycle: transfers created after this point survive
        now = self._clock()

        evicted = await self._store.evict_expired(now)

        # Orphaned directories (on disk but no record), once older than the TTL
        for transfer_id in await run_in_threadpool(self._stale_dirs, now):
            if await self._store.inner.get(transfer_id) is None:
                await run_in_threadpool(self._file_storage.delete_all, transfer_id)
                logger.info("Removed orphaned upload directory %s", transfer_id)

        return len(evicted)

    def _stale_dirs(self, now: datetime) -> list[str]:
        stale = []
        for transfer_id in self._file_storage.transfer_ids():
            try:
                mtime = self._file_storage.transfer_dir(transfer_id).stat().st_mtime
            except FileNotFoundError:
                continue
            if now - datetime.fromtimestamp(mtime, timezone.utc) > self._store.ttl:
                stale.append(transfer_id)
        return stale

    async def run(self) -> None:
        interval = self.interval.total_seconds()
        while True:
            await asyncio.sleep(interval)
            try:
                await self.sweep()
            except Exception:
                logger.exception("Expiry sweep failed")

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self.run(), name="expiry-sweeper")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
