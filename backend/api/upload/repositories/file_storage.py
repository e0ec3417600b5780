"""File storage — uploaded bytes on local disk, one directory per transfer."""

import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path

from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool

from errors import PayloadRejectedError

CHUNK_SIZE = 1024 * 1024  # 1MB


@dataclass(frozen=True)
class StoredFile:
    path: Path
    size: int


def safe_filename(filename: str | None) -> str:
    """Reduce a client supplied name to its final path component."""
    name = Path((filename or "").replace("\\", "/")).name.strip()
    if name in ("", ".", ".."):
        raise PayloadRejectedError("Missing file name", status_code=400)
    return name


class FileStorage:
    def __init__(self, files_dir: Path, chunk_size: int = CHUNK_SIZE):
        self.files_dir = files_dir
        self.chunk_size = chunk_size
        self.files_dir.mkdir(parents=True, exist_ok=True)

    def transfer_dir(self, transfer_id: str) -> Path:
        return self.files_dir / transfer_id

    def path_for(self, transfer_id: str, filename: str) -> Path:
        return self.transfer_dir(transfer_id) / safe_filename(filename)

    async def save_upload(
        self, transfer_id: str, upload: UploadFile, max_size: int = 0
    ) -> StoredFile:
        """Stream an upload to disk, aborting once ``max_size`` is exceeded."""
        final_path = self.path_for(transfer_id, upload.filename)
        file_dir = final_path.parent
        await run_in_threadpool(file_dir.mkdir, parents=True, exist_ok=True)

        tmp = await run_in_threadpool(
            tempfile.NamedTemporaryFile, delete=False, dir=str(file_dir)
        )
        try:
            size = 0
            while chunk := await upload.read(self.chunk_size):
                size += len(chunk)
                if max_size and size > max_size:
                    raise PayloadRejectedError(
                        f"File exceeds max size of {max_size} bytes", status_code=413
                    )
                await run_in_threadpool(tmp.write, chunk)
            tmp.close()
            await run_in_threadpool(shutil.move, tmp.name, str(final_path))
        except BaseException:
            tmp.close()
            if os.path.exists(tmp.name):
                os.unlink(tmp.name)
            raise

        return StoredFile(path=final_path, size=size)

    def read_bytes(self, transfer_id: str, filename: str) -> bytes | None:
        path = self.path_for(transfer_id, filename)
        if not path.is_file():
            return None
        return path.read_bytes()

    def delete_file(self, transfer_id: str, filename: str) -> None:
        self.path_for(transfer_id, filename).unlink(missing_ok=True)

    def delete_all(self, transfer_id: str) -> bool:
        """Remove every stored file of a transfer."""
        file_dir = self.transfer_dir(transfer_id)
        if not file_dir.exists():
            return False
        shutil.rmtree(file_dir, ignore_errors=True)
        return True

    def transfer_ids(self) -> list[str]:
        if not self.files_dir.exists():
            return []
        return [entry.name for entry in self.files_dir.iterdir() if entry.is_dir()]
