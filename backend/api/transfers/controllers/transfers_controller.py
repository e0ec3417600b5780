"""Transfers controller — create, inspect, finish and reset transfer sessions."""

from fastapi import APIRouter, Depends, HTTPException, Response, status

from api.transfers.dto.transfer import CreateTransferResponse, TransferId, TransferResponse
from dependencies import Services, get_services
from errors import NotFoundError, NotOpenError

router = APIRouter(tags=["Transfers"])


@router.post(
    "/transfers",
    response_model=CreateTransferResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_transfer(services: Services = Depends(get_services)):
    transfer_id = await services.sessions.create()
    return CreateTransferResponse(
        transfer_id=transfer_id, expires_in_sec=services.sessions.expires_in_sec
    )


@router.get("/transfer/{transfer_id}", response_model=TransferResponse)
async def get_transfer(transfer_id: TransferId, services: Services = Depends(get_services)):
    try:
        transfer = await services.sessions.get(transfer_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Transfer not found")
    return TransferResponse.from_transfer(transfer)


@router.get("/transfers/{transfer_id}/files", response_model=TransferResponse)
async def list_files(transfer_id: TransferId, services: Services = Depends(get_services)):
    """File list; an unknown id is created as an empty open transfer."""
    transfer = await services.registry.get_or_create(transfer_id)
    return TransferResponse.from_transfer(transfer)


@router.post("/complete/{transfer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def complete_transfer(transfer_id: TransferId, services: Services = Depends(get_services)):
    try:
        await services.sessions.complete(transfer_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Transfer not found")
    except NotOpenError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/cancel/{transfer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_transfer(transfer_id: TransferId, services: Services = Depends(get_services)):
    try:
        await services.sessions.cancel(transfer_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Transfer not found")
    except NotOpenError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/delete-all/{transfer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_all_files(transfer_id: TransferId, services: Services = Depends(get_services)):
    try:
        await services.sessions.delete_all_files(transfer_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Transfer not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
