"""TTL decorator over a store that can enumerate its transfers."""

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta

from api.transfers.dto.transfer import Transfer
from api.transfers.repositories.transfer_store import Clock, MemoryTransferStore, TransferStore

logger = logging.getLogger(__name__)

EvictHook = Callable[[str], Awaitable[None]]


class ExpiringTransferStore(TransferStore):
    """Hides transfers older than ``ttl`` and evicts them on demand.

    Age is measured from ``createdAt`` regardless of status. Every eviction
    (read, re-creation of the same id, or sweep) awaits ``on_evict`` before
    the record is deleted.
    """

    supports_expiry = True

    def __init__(
        self,
        inner: MemoryTransferStore,
        ttl: timedelta,
        clock: Clock | None = None,
        on_evict: EvictHook | None = None,
    ):
        if not inner.supports_expiry:
            raise ValueError(f"{type(inner).__name__} does not support expiry")
        super().__init__(clock or inner.clock)
        self.inner = inner
        self.ttl = ttl
        self.on_evict = on_evict

    def is_expired(self, transfer: Transfer, now: datetime) -> bool:
        return now - transfer.created_at > self.ttl

    async def _evict(self, transfer_id: str) -> bool:
        if self.on_evict is not None:
            await self.on_evict(transfer_id)
        return await self.inner.delete(transfer_id)

    async def create(self) -> str:
        return await self.inner.create()

    async def get(self, transfer_id: str) -> Transfer | None:
        transfer = await self.inner.get(transfer_id)
        if transfer is None:
            return None
        if self.is_expired(transfer, self.clock()):
            await self._evict(transfer_id)
            return None
        return transfer

    async def save(
        self,
        transfer_id: str,
        transfer: Transfer,
        expected_version: int | None = None,
    ) -> Transfer:
        if expected_version == 0:
            # An expired record awaiting eviction counts as absent
            existing = await self.inner.get(transfer_id)
            if existing is not None and self.is_expired(existing, self.clock()):
                await self._evict(transfer_id)
        return await self.inner.save(transfer_id, transfer, expected_version)

    async def delete(self, transfer_id: str) -> bool:
        return await self.inner.delete(transfer_id)

    async def evict_expired(self, now: datetime) -> list[str]:
        """Delete every transfer older than the TTL as of ``now``."""
        evicted = []
        for transfer in await self.inner.list_transfers():
            if self.is_expired(transfer, now) and await self._evict(transfer.id):
                evicted.append(transfer.id)
        if evicted:
            logger.info("Evicted %d expired transfer(s)", len(evicted))
        return evicted

    async def close(self) -> None:
        await self.inner.close()
