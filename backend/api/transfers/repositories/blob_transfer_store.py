"""Durable transfer store backed by the blob client.

Key layout: transfers/{transferId}.json. Records persist until deleted;
there is no TTL on this backend.
"""

from fastapi.concurrency import run_in_threadpool

from api.transfers.dto.transfer import Transfer, utcnow
from api.transfers.repositories.blob_client import BlobClient
from api.transfers.repositories.transfer_store import Clock, TransferStore


def build_key(transfer_id: str) -> str:
    return f"transfers/{transfer_id}.json"


class BlobTransferStore(TransferStore):
    supports_expiry = False

    def __init__(self, client: BlobClient, clock: Clock = utcnow):
        super().__init__(clock)
        self._client = client

    async def get(self, transfer_id: str) -> Transfer | None:
        key = build_key(transfer_id)
        meta = await run_in_threadpool(self._client.head, key)
        if meta is None:
            return None
        blob = await run_in_threadpool(self._client.fetch, key)
        if blob is None:
            # Deleted between head and fetch
            return None
        transfer = Transfer.from_json(blob.content)
        return transfer.model_copy(update={"version": blob.meta.version})

    async def save(
        self,
        transfer_id: str,
        transfer: Transfer,
        expected_version: int | None = None,
    ) -> Transfer:
        key = build_key(transfer_id)
        base = transfer.version if expected_version is None else expected_version
        next_version = base + 1
        record = transfer.model_copy(update={"id": transfer_id, "version": next_version})
        version = await run_in_threadpool(
            self._client.put, key, record.to_json(), "application/json", expected_version
        )
        return record.model_copy(update={"version": version}, deep=True)

    async def delete(self, transfer_id: str) -> bool:
        return await run_in_threadpool(self._client.delete, build_key(transfer_id))
