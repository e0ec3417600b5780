"""Content controller — extracted fields of uploaded PDF and Excel files."""

from fastapi import APIRouter, Depends, HTTPException

from api.transfers.dto.transfer import TransferId
from config import PDF_MIME, XLSX_MIME
from dependencies import Services, get_services
from errors import NotFoundError

router = APIRouter(tags=["Content"])


async def _extract(services: Services, transfer_id: str, filename: str, mimetype: str) -> dict:
    try:
        return await services.content.extract(transfer_id, filename, mimetype)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/pdf-content/{transfer_id}/{filename:path}")
async def pdf_content(
    transfer_id: TransferId, filename: str, services: Services = Depends(get_services)
):
    """Journal note fields scraped from an uploaded PDF."""
    return await _extract(services, transfer_id, filename, PDF_MIME)


@router.get("/excel-content/{transfer_id}/{filename:path}")
async def excel_content(
    transfer_id: TransferId, filename: str, services: Services = Depends(get_services)
):
    """Heart metrics scraped from an uploaded XLSX workbook."""
    return await _extract(services, transfer_id, filename, XLSX_MIME)
