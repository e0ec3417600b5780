"""Events controller — server-sent event stream per transfer."""

import json
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from api.events.services.broadcaster import ChannelClosed
from api.transfers.dto.transfer import TransferId
from dependencies import Services, get_services

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Events"])


def format_sse(event: dict) -> str:
    return f"data: {json.dumps(event)}\n\n"


@router.get("/events/{transfer_id}")
async def stream_events(transfer_id: TransferId, services: Services = Depends(get_services)):
    """Status snapshot first, then live events until the transfer ends."""
    broadcaster = services.broadcaster
    heartbeat = services.settings.sse_heartbeat or None

    async def event_generator():
        channel = await broadcaster.subscribe(transfer_id)
        try:
            while True:
                try:
                    event = await channel.next_event(timeout=heartbeat)
                except ChannelClosed:
                    break
                if event is None:
                    yield ": keep-alive\n\n"
                    continue
                yield format_sse(event)
        finally:
            # Client went away or the transfer ended
            broadcaster.unsubscribe(transfer_id, channel)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
