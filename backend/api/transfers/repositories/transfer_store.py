"""Transfer store — persistence contract and the in-memory backend.

Both backends serialize the full Transfer record on every save and parse it
back on every get, so callers never share mutable state with the store and
observe the same field names and defaults whichever backend is configured.
"""

import logging
import secrets
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime

from api.transfers.dto.transfer import Transfer, utcnow
from errors import StorageError, VersionConflictError

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

CREATE_ATTEMPTS = 5


def generate_transfer_id() -> str:
    """128 random bits, URL safe."""
    return secrets.token_urlsafe(16)


class TransferStore(ABC):
    """Create/read/update Transfer records.

    ``save`` is optimistic: with ``expected_version`` set it only succeeds when
    the stored version matches (``0`` means the record must not exist yet) and
    raises ``VersionConflictError`` otherwise. ``expected_version=None`` is an
    unconditional last-write-wins save. A successful save returns the record
    with its new version.
    """

    supports_expiry = False

    def __init__(self, clock: Clock = utcnow):
        self.clock = clock

    async def create(self) -> str:
        for _ in range(CREATE_ATTEMPTS):
            transfer_id = generate_transfer_id()
            transfer = Transfer(id=transfer_id, created_at=self.clock())
            try:
                await self.save(transfer_id, transfer, expected_version=0)
            except VersionConflictError:
                continue
            logger.info("Created transfer %s", transfer_id)
            return transfer_id
        raise StorageError("Could not allocate a unique transfer id")

    @abstractmethod
    async def get(self, transfer_id: str) -> Transfer | None:
        """Return the current record, or None when absent."""

    @abstractmethod
    async def save(
        self,
        transfer_id: str,
        transfer: Transfer,
        expected_version: int | None = None,
    ) -> Transfer:
        ...

    @abstractmethod
    async def delete(self, transfer_id: str) -> bool:
        ...

    async def close(self) -> None:
        pass


class MemoryTransferStore(TransferStore):
    """Process-local map of transfer id to (version, serialized record)."""

    supports_expiry = True

    def __init__(self, clock: Clock = utcnow):
        super().__init__(clock)
        self._records: dict[str, tuple[int, str]] = {}

    def __len__(self) -> int:
        return len(self._records)

    async def get(self, transfer_id: str) -> Transfer | None:
        record = self._records.get(transfer_id)
        if record is None:
            return None
        return Transfer.from_json(record[1])

    async def save(
        self,
        transfer_id: str,
        transfer: Transfer,
        expected_version: int | None = None,
    ) -> Transfer:
        current = self._records.get(transfer_id)
        current_version = current[0] if current else 0
        if expected_version is not None and expected_version != current_version:
            raise VersionConflictError(transfer_id, expected_version, current_version)

        saved = transfer.model_copy(
            update={"id": transfer_id, "version": current_version + 1}, deep=True
        )
        self._records[transfer_id] = (saved.version, saved.to_json())
        return saved

    async def delete(self, transfer_id: str) -> bool:
        return self._records.pop(transfer_id, None) is not None

    async def list_transfers(self) -> list[Transfer]:
        return [Transfer.from_json(raw) for _, raw in list(self._records.values())]
