"""Download service — resolves a registered file to its stored bytes."""

from pathlib import Path

from dependencies import Services
from api.transfers.dto.transfer import FileMeta
from errors import NotFoundError, PayloadRejectedError


async def get_file_for_download(
    services: Services, transfer_id: str, filename: str
) -> tuple[FileMeta, Path] | None:
    """Return the file's metadata and path, or None if unknown or missing."""
    try:
        meta = await services.content.find_file(transfer_id, filename)
        filepath = services.file_storage.path_for(transfer_id, meta.name)
    except (NotFoundError, PayloadRejectedError):
        return None

    if not filepath.is_file():
        return None

    return meta, filepath
