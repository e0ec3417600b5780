"""Upload service — validates an uploaded file, stores it and registers it."""

import logging

from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool

from api.transfers.dto.transfer import FileMeta
from api.transfers.repositories.transfer_store import TransferStore
from api.transfers.services.registry_service import FileRegistry
from api.upload.repositories.file_storage import FileStorage
from errors import NotOpenError, PayloadRejectedError

logger = logging.getLogger(__name__)


def normalize_mimetype(content_type: str | None) -> str:
    return (content_type or "").split(";")[0].strip().lower()


class UploadService:
    def __init__(
        self,
        store: TransferStore,
        registry: FileRegistry,
        file_storage: FileStorage,
        max_file_size: int,
        allowed_mime_types: tuple[str, ...],
    ):
        self._store = store
        self._registry = registry
        self._file_storage = file_storage
        self.max_file_size = max_file_size
        self.allowed_mime_types = {m.lower() for m in allowed_mime_types}

    def validate(self, upload: UploadFile | None) -> str:
        """Boundary checks; returns the normalized MIME type."""
        if upload is None or not upload.filename:
            raise PayloadRejectedError("No file uploaded", status_code=400)

        mimetype = normalize_mimetype(upload.content_type)
        if mimetype not in self.allowed_mime_types:
            raise PayloadRejectedError(
                f"File type {mimetype or 'unknown'} is not allowed", status_code=415
            )

        if self.max_file_size and upload.size is not None and upload.size > self.max_file_size:
            raise PayloadRejectedError(
                f"File exceeds max size of {self.max_file_size} bytes", status_code=413
            )
        return mimetype

    async def save_upload(self, transfer_id: str, upload: UploadFile | None) -> FileMeta:
        """Store the file bytes and append its metadata to the transfer."""
        mimetype = self.validate(upload)

        # Fail before writing any bytes when the transfer cannot take files
        transfer = await self._store.get(transfer_id)
        if transfer is None and not self._registry.lenient:
            raise NotOpenError(transfer_id)
        if transfer is not None and transfer.status.is_terminal:
            raise NotOpenError(transfer_id, transfer.status.value)

        stored = await self._file_storage.save_upload(
            transfer_id, upload, max_size=self.max_file_size
        )
        meta = FileMeta(name=stored.path.name, size=stored.size, mimetype=mimetype)

        try:
            await self._registry.add_file(transfer_id, meta)
        except NotOpenError:
            # Closed while the bytes were being written
            await run_in_threadpool(self._file_storage.delete_file, transfer_id, meta.name)
            raise
        return meta
