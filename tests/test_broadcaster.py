"""
Event fan-out, snapshot-on-subscribe, and dead subscriber pruning.
"""
import pytest

from api.events.dto.event import FileEvent, StatusEvent
from api.events.services.broadcaster import Channel, ChannelClosed, EventBroadcaster
from api.transfers.dto.transfer import FileMeta, TransferStatus


async def drain(channel: Channel) -> list[dict]:
    """All events until the channel closes."""
    events = []
    while True:
        try:
            event = await channel.next_event(timeout=1)
        except ChannelClosed:
            return events
        assert event is not None, "channel stayed open"
        events.append(event)


class TestChannel:

    async def test_timeout_returns_none(self):
        assert await Channel().next_event(timeout=0.01) is None

    async def test_drains_before_reporting_closed(self):
        channel = Channel()
        channel.send({"type": "closed"})
        channel.close()

        assert await channel.next_event() == {"type": "closed"}
        with pytest.raises(ChannelClosed):
            await channel.next_event()

    def test_send_after_close_fails(self):
        channel = Channel()
        channel.close()
        with pytest.raises(ChannelClosed):
            channel.send({"type": "status"})


class TestSubscribe:

    async def test_snapshot_is_first_event(self, store, broadcaster):
        transfer_id = await store.create()
        channel = await broadcaster.subscribe(transfer_id)

        assert await channel.next_event(timeout=1) == {"type": "status", "status": "open"}
        assert broadcaster.subscriber_count(transfer_id) == 1

    async def test_absent_transfer_gets_no_events(self, broadcaster):
        channel = await broadcaster.subscribe("gone")

        assert await drain(channel) == []
        assert broadcaster.subscriber_count("gone") == 0

    async def test_terminal_transfer_gets_snapshot_then_closes(self, store, broadcaster, sessions):
        transfer_id = await store.create()
        await sessions.cancel(transfer_id)

        channel = await broadcaster.subscribe(transfer_id)

        assert await drain(channel) == [{"type": "status", "status": "cancelled"}]


class TestPublish:

    async def test_full_session_order(self, store, broadcaster, registry, sessions):
        transfer_id = await store.create()
        channel = await broadcaster.subscribe(transfer_id)

        await registry.add_file(transfer_id, FileMeta(name="a.pdf", size=1, mimetype="application/pdf"))
        await sessions.complete(transfer_id)

        events = await drain(channel)
        assert [e["type"] for e in events] == ["status", "file", "status", "closed"]
        assert events[0]["status"] == "open"
        assert events[2]["status"] == "closed"
        assert broadcaster.subscriber_count(transfer_id) == 0

    async def test_fans_out_to_every_subscriber(self, store, broadcaster):
        transfer_id = await store.create()
        channels = [await broadcaster.subscribe(transfer_id) for _ in range(3)]

        delivered = broadcaster.publish(transfer_id, StatusEvent(status=TransferStatus.OPEN))

        assert delivered == 3
        for channel in channels:
            assert len([await channel.next_event(timeout=1) for _ in range(2)]) == 2

    def test_publish_without_subscribers(self, broadcaster):
        assert broadcaster.publish("nobody", StatusEvent(status=TransferStatus.OPEN)) == 0

    async def test_dead_subscriber_is_pruned(self, store):
        broadcaster = EventBroadcaster(store, max_pending=2)
        transfer_id = await store.create()
        stalled = await broadcaster.subscribe(transfer_id)  # snapshot fills one slot
        live = await broadcaster.subscribe(transfer_id)
        await live.next_event(timeout=1)

        event = FileEvent(file=FileMeta(name="a.pdf", size=1, mimetype="application/pdf"))
        broadcaster.publish(transfer_id, event)
        await live.next_event(timeout=1)
        delivered = broadcaster.publish(transfer_id, event)

        assert delivered == 1
        assert stalled.closed
        assert broadcaster.subscriber_count(transfer_id) == 1

    async def test_close_all_ends_channels(self, store, broadcaster):
        transfer_id = await store.create()
        channel = await broadcaster.subscribe(transfer_id)

        assert broadcaster.close_all(transfer_id) == 1
        assert [e["type"] for e in await drain(channel)] == ["status"]
        assert broadcaster.subscriber_count(transfer_id) == 0

    async def test_unsubscribe_removes_empty_set(self, store, broadcaster):
        transfer_id = await store.create()
        channel = await broadcaster.subscribe(transfer_id)

        broadcaster.unsubscribe(transfer_id, channel)

        assert broadcaster.subscriber_count(transfer_id) == 0
        assert broadcaster.publish(transfer_id, StatusEvent(status=TransferStatus.OPEN)) == 0
