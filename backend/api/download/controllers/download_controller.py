"""Download controller — streams stored transfer files back to the desktop."""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse

from api.download.services import download_service
from api.transfers.dto.transfer import TransferId
from dependencies import Services, get_services

router = APIRouter(tags=["Download"])


@router.get("/files/{transfer_id}/{filename:path}")
async def download_file(
    transfer_id: TransferId, filename: str, services: Services = Depends(get_services)
):
    """Stream a file uploaded to a transfer."""
    found = await download_service.get_file_for_download(services, transfer_id, filename)
    if not found:
        raise HTTPException(status_code=404, detail="File not found or expired")
    meta, filepath = found

    # Non-latin-1 names go out as filename*=utf-8''...
    return FileResponse(
        filepath,
        media_type=meta.mimetype or "application/octet-stream",
        filename=meta.name,
    )
