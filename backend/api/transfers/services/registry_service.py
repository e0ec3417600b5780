"""File registry — appends uploaded file metadata to an open transfer."""

import logging

from api.events.dto.event import FileEvent
from api.events.services.broadcaster import EventBroadcaster
from api.transfers.dto.transfer import FileMeta, Transfer, TransferStatus
from api.transfers.repositories.transfer_store import TransferStore
from api.transfers.services.updates import update_transfer
from errors import NotFoundError, NotOpenError, VersionConflictError

logger = logging.getLogger(__name__)


class FileRegistry:
    """Registers files on transfers and announces them to subscribers.

    With ``lenient`` set, an unknown transfer id is created on the first
    upload, since the phone can race the desktop's create call.
    """

    def __init__(self, store: TransferStore, broadcaster: EventBroadcaster, lenient: bool = True):
        self._store = store
        self._broadcaster = broadcaster
        self.lenient = lenient

    async def add_file(
        self, transfer_id: str, meta: FileMeta, lenient: bool | None = None
    ) -> Transfer:
        create_missing = self.lenient if lenient is None else lenient

        def append(transfer: Transfer) -> None:
            if transfer.status is not TransferStatus.OPEN:
                raise NotOpenError(transfer_id, transfer.status.value)
            transfer.files.append(meta)

        try:
            transfer = await update_transfer(
                self._store, transfer_id, append, create_missing=create_missing
            )
        except NotFoundError as e:
            raise NotOpenError(transfer_id) from e

        self._broadcaster.publish(transfer_id, FileEvent(file=meta))
        logger.info(
            "Registered %s (%d bytes) on %s, %d file(s) total",
            meta.name,
            meta.size,
            transfer_id,
            len(transfer.files),
        )
        return transfer

    async def get_or_create(self, transfer_id: str) -> Transfer:
        """Current record, creating an empty open one when absent."""
        transfer = await self._store.get(transfer_id)
        if transfer is not None:
            return transfer

        try:
            transfer = await self._store.save(
                transfer_id,
                Transfer(id=transfer_id, created_at=self._store.clock()),
                expected_version=0,
            )
            logger.info("Created transfer %s on first read", transfer_id)
            return transfer
        except VersionConflictError:
            # Someone else created it first
            existing = await self._store.get(transfer_id)
            if existing is None:
                raise
            return existing
