"""Content service — looks up an uploaded file and extracts its fields."""

from datetime import datetime, timezone

from fastapi.concurrency import run_in_threadpool

from api.content.services.extraction import Extractor, extract
from api.transfers.dto.transfer import FileMeta
from api.transfers.repositories.transfer_store import TransferStore
from api.upload.repositories.file_storage import FileStorage
from config import PDF_MIME, XLSX_MIME
from errors import NotFoundError

KIND_SUFFIXES = {
    PDF_MIME: (".pdf",),
    XLSX_MIME: (".xlsx", ".xls"),
}


def _matches_kind(meta: FileMeta, mimetype: str) -> bool:
    return meta.mimetype == mimetype or meta.name.lower().endswith(KIND_SUFFIXES[mimetype])


class ContentService:
    def __init__(
        self,
        store: TransferStore,
        file_storage: FileStorage,
        extractor: Extractor = extract,
    ):
        self._store = store
        self._file_storage = file_storage
        self._extractor = extractor

    async def find_file(self, transfer_id: str, filename: str, mimetype: str | None = None) -> FileMeta:
        """Latest registered file with this name (and kind, if given)."""
        transfer = await self._store.get(transfer_id)
        if transfer is None:
            raise NotFoundError(transfer_id)

        for meta in reversed(transfer.files):
            if meta.name == filename and (mimetype is None or _matches_kind(meta, mimetype)):
                return meta
        raise NotFoundError(transfer_id, filename)

    async def extract(self, transfer_id: str, filename: str, mimetype: str) -> dict:
        meta = await self.find_file(transfer_id, filename, mimetype)
        data = await run_in_threadpool(self._file_storage.read_bytes, transfer_id, meta.name)
        if data is None:
            raise NotFoundError(transfer_id, filename)

        fields = await run_in_threadpool(self._extractor, data, mimetype)
        return {
            "filename": meta.name,
            "uploadedAt": meta.uploaded_at.isoformat(),
            **fields,
            "parsedAt": datetime.now(timezone.utc).isoformat(),
        }
