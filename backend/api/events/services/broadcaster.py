"""Event broadcaster — per-transfer sets of live subscriber channels.

Delivery is best effort: an event reaches the channels registered when it is
published and nothing is replayed to later subscribers, except the status
snapshot every new subscriber receives first.
"""

import asyncio
import logging
from collections import deque

from api.events.dto.event import StatusEvent, TransferEvent
from api.transfers.repositories.transfer_store import TransferStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_PENDING = 256


class ChannelClosed(Exception):
    pass


class ChannelOverflow(Exception):
    pass


class Channel:
    """One subscriber's push queue."""

    def __init__(self, max_pending: int = DEFAULT_MAX_PENDING):
        self._pending: deque[dict] = deque()
        self._ready = asyncio.Event()
        self._closed = False
        self._max_pending = max_pending

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, event: dict) -> None:
        if self._closed:
            raise ChannelClosed()
        if len(self._pending) >= self._max_pending:
            raise ChannelOverflow(f"{len(self._pending)} undelivered events")
        self._pending.append(event)
        self._ready.set()

    def send_first(self, event: dict) -> None:
        self._pending.appendleft(event)
        self._ready.set()

    def close(self) -> None:
        self._closed = True
        self._ready.set()

    async def next_event(self, timeout: float | None = None) -> dict | None:
        """Next queued event, or None if ``timeout`` elapses first.

        Raises ChannelClosed once the channel is closed and drained.
        """
        while not self._pending:
            if self._closed:
                raise ChannelClosed()
            self._ready.clear()
            try:
                await asyncio.wait_for(self._ready.wait(), timeout)
            except asyncio.TimeoutError:
                return None
        return self._pending.popleft()


class EventBroadcaster:
    def __init__(self, store: TransferStore, max_pending: int = DEFAULT_MAX_PENDING):
        self._store = store
        self._max_pending = max_pending
        self._channels: dict[str, set[Channel]] = {}

    def subscriber_count(self, transfer_id: str) -> int:
        return len(self._channels.get(transfer_id, ()))

    async def subscribe(self, transfer_id: str) -> Channel:
        """Register a channel and queue the current status as its first event.

        An absent transfer yields an already closed channel with no events; a
        terminal one yields the snapshot and is then closed.
        """
        channel = Channel(self._max_pending)
        # Register before reading so nothing published during the read is lost
        self._channels.setdefault(transfer_id, set()).add(channel)
        try:
            transfer = await self._store.get(transfer_id)
        except Exception:
            self.unsubscribe(transfer_id, channel)
            raise

        if transfer is None:
            self.unsubscribe(transfer_id, channel)
            channel.close()
            return channel

        channel.send_first(StatusEvent(status=transfer.status).payload())
        if transfer.status.is_terminal:
            self.unsubscribe(transfer_id, channel)
            channel.close()
        return channel

    def unsubscribe(self, transfer_id: str, channel: Channel) -> None:
        subscribers = self._channels.get(transfer_id)
        if subscribers is None:
            return
        subscribers.discard(channel)
        if not subscribers:
            del self._channels[transfer_id]

    def publish(self, transfer_id: str, event: TransferEvent) -> int:
        """Push ``event`` to every live channel; returns how many accepted it."""
        subscribers = self._channels.get(transfer_id)
        if not subscribers:
            return 0

        payload = event.payload()
        delivered = 0
        for channel in list(subscribers):
            try:
                channel.send(payload)
            except (ChannelClosed, ChannelOverflow) as e:
                logger.debug("Pruning dead subscriber on %s: %r", transfer_id, e)
                subscribers.discard(channel)
                channel.close()
                continue
            delivered += 1

        if not subscribers:
            self._channels.pop(transfer_id, None)
        return delivered

    def close_all(self, transfer_id: str) -> int:
        subscribers = self._channels.pop(transfer_id, set())
        for channel in subscribers:
            channel.close()
        return len(subscribers)

    def close(self) -> None:
        for transfer_id in list(self._channels):
            self.close_all(transfer_id)
