"""Optimistic read-modify-save for transfer records."""

import asyncio
import logging
from collections.abc import Callable

from api.transfers.dto.transfer import Transfer
from api.transfers.repositories.transfer_store import TransferStore
from errors import NotFoundError, StorageError, VersionConflictError

logger = logging.getLogger(__name__)

SAVE_ATTEMPTS = 10


async def update_transfer(
    store: TransferStore,
    transfer_id: str,
    mutate: Callable[[Transfer], None],
    create_missing: bool = False,
) -> Transfer:
    """Load, apply ``mutate`` in place and save guarded by the loaded version.

    Lost races are retried against a fresh read. ``mutate`` may raise to
    abort; nothing is saved in that case.
    """
    for attempt in range(1, SAVE_ATTEMPTS + 1):
        transfer = await store.get(transfer_id)
        if transfer is None:
            if not create_missing:
                raise NotFoundError(transfer_id)
            transfer = Transfer(id=transfer_id, created_at=store.clock())
            expected = 0
        else:
            expected = transfer.version

        mutate(transfer)
        try:
            return await store.save(transfer_id, transfer, expected_version=expected)
        except VersionConflictError as e:
            logger.debug("Retrying save of %s (attempt %d): %s", transfer_id, attempt, e)
            await asyncio.sleep(0)

    raise StorageError(f"Gave up saving {transfer_id} after {SAVE_ATTEMPTS} conflicts")
