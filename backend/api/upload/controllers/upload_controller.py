"""Upload controller — multipart uploads from the phone."""

import logging

from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile, status

from api.transfers.dto.transfer import TransferId
from dependencies import Services, get_services
from errors import NotOpenError, PayloadRejectedError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Upload"])


@router.post("/upload/{transfer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def upload_file(
    transfer_id: TransferId,
    file: UploadFile | None = File(None),
    services: Services = Depends(get_services),
):
    """Receive one file for an open transfer."""
    try:
        await services.uploads.save_upload(transfer_id, file)
    except PayloadRejectedError as e:
        logger.info("Rejected upload to %s: %s", transfer_id, e)
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except NotOpenError:
        raise HTTPException(status_code=410, detail="Transfer expired or invalid")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
