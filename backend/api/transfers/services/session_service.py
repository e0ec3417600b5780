"""Session service — transfer creation, status transitions and file resets."""

import logging
from datetime import timedelta

from fastapi.concurrency import run_in_threadpool

from api.events.dto.event import (
    CancelledEvent,
    ClosedEvent,
    FilesDeletedEvent,
    StatusEvent,
    TransferEvent,
)
from api.events.services.broadcaster import EventBroadcaster
from api.transfers.dto.transfer import Transfer
from api.transfers.repositories.transfer_store import TransferStore
from api.transfers.services.lifecycle import next_status
from api.transfers.services.updates import update_transfer
from api.upload.repositories.file_storage import FileStorage
from errors import NotFoundError

logger = logging.getLogger(__name__)


class SessionService:
    def __init__(
        self,
        store: TransferStore,
        broadcaster: EventBroadcaster,
        file_storage: FileStorage,
        ttl: timedelta | None = None,
    ):
        self._store = store
        self._broadcaster = broadcaster
        self._file_storage = file_storage
        self.ttl = ttl

    @property
    def expires_in_sec(self) -> int | None:
        """Seconds until a new transfer expires; None on stores without TTL."""
        if self.ttl is None or not self._store.supports_expiry:
            return None
        return int(self.ttl.total_seconds())

    async def create(self) -> str:
        return await self._store.create()

    async def get(self, transfer_id: str) -> Transfer:
        transfer = await self._store.get(transfer_id)
        if transfer is None:
            raise NotFoundError(transfer_id)
        return transfer

    async def complete(self, transfer_id: str) -> Transfer:
        return await self._finish(transfer_id, "complete", ClosedEvent())

    async def cancel(self, transfer_id: str) -> Transfer:
        return await self._finish(transfer_id, "cancel", CancelledEvent())

    async def _finish(
        self, transfer_id: str, event: str, terminal_event: TransferEvent
    ) -> Transfer:
        def apply(transfer: Transfer) -> None:
            transfer.status = next_status(transfer_id, transfer.status, event)

        transfer = await update_transfer(self._store, transfer_id, apply)

        self._broadcaster.publish(transfer_id, StatusEvent(status=transfer.status))
        self._broadcaster.publish(transfer_id, terminal_event)
        released = self._broadcaster.close_all(transfer_id)
        logger.info(
            "Transfer %s %s with %d file(s), released %d subscriber(s)",
            transfer_id,
            transfer.status.value,
            len(transfer.files),
            released,
        )
        return transfer

    async def delete_all_files(self, transfer_id: str) -> Transfer:
        """Empty the file list and stored bytes; status is left untouched."""
        transfer = await update_transfer(
            self._store, transfer_id, lambda t: t.files.clear()
        )
        await run_in_threadpool(self._file_storage.delete_all, transfer_id)

        self._broadcaster.publish(transfer_id, FilesDeletedEvent())
        logger.info("Deleted all files of transfer %s", transfer_id)
        return transfer
