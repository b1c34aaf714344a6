"""Unit tests for the change notifier and SSE framing."""
import asyncio
import json

import pytest

from classgroups.events.notifier import ChangeNotifier
from classgroups.events.sse import event_stream, format_sse
from classgroups.services.roster_store import RosterStore


def _views(n):
    """n distinct public views: 0..n-1 students joined into one big group."""
    store = RosterStore([n + 1])
    views = [store.snapshot()]
    for i in range(1, n):
        roster = store.begin()
        roster.add_student(f"s{i}", roster.group(1), i)
        store.commit(roster)
        views.append(store.snapshot())
    return views


@pytest.mark.unit
class TestChangeNotifier:
    @pytest.mark.asyncio
    async def test_subscriber_gets_current_view_first(self):
        notifier = ChangeNotifier()
        current, later = _views(2)
        sub = notifier.subscribe(lambda: current)
        notifier.publish(later)
        assert await sub.get() is current
        assert await sub.get() is later

    @pytest.mark.asyncio
    async def test_publish_reaches_every_subscriber(self):
        notifier = ChangeNotifier()
        current, later = _views(2)
        subs = [notifier.subscribe(lambda: current) for _ in range(3)]
        assert notifier.publish(later) == 3
        for sub in subs:
            await sub.get()
            assert await sub.get() is later

    @pytest.mark.asyncio
    async def test_slow_subscriber_keeps_newest(self):
        notifier = ChangeNotifier(queue_size=2)
        views = _views(5)
        sub = notifier.subscribe(lambda: views[0])
        for v in views[1:]:
            notifier.publish(v)
        assert sub.queue.qsize() == 2
        assert await sub.get() is views[3]
        assert await sub.get() is views[4]

    @pytest.mark.asyncio
    async def test_failing_subscriber_does_not_block_others(self):
        notifier = ChangeNotifier()
        current, later = _views(2)
        broken = notifier.subscribe(lambda: current)
        healthy = notifier.subscribe(lambda: current)

        def boom(view):
            raise RuntimeError("channel gone")

        broken.offer = boom
        assert notifier.publish(later) == 1
        await healthy.get()
        assert await healthy.get() is later

    @pytest.mark.asyncio
    async def test_unsubscribe_prunes(self):
        notifier = ChangeNotifier()
        (current,) = _views(1)
        sub = notifier.subscribe(lambda: current)
        assert len(notifier) == 1
        notifier.unsubscribe(sub)
        notifier.unsubscribe(sub)
        assert len(notifier) == 0
        assert notifier.publish(current) == 0

    @pytest.mark.asyncio
    async def test_publish_from_worker_thread_reaches_loop(self):
        notifier = ChangeNotifier()
        current, later = _views(2)
        sub = notifier.subscribe(lambda: current)
        assert sub.loop is asyncio.get_running_loop()
        assert await asyncio.to_thread(notifier.publish, later) == 1
        assert await sub.get() is current
        assert await asyncio.wait_for(sub.get(), timeout=1) is later

    def test_subscribe_without_loop_delivers_directly(self):
        notifier = ChangeNotifier()
        current, later = _views(2)
        sub = notifier.subscribe(lambda: current)
        assert sub.loop is None
        notifier.publish(later)
        assert sub.queue.qsize() == 2


@pytest.mark.unit
class TestEventStream:
    def test_format_sse(self):
        (view,) = _views(1)
        frame = format_sse(view)
        assert frame.startswith("data: ")
        assert frame.endswith("\n\n")
        assert json.loads(frame[len("data: "):])["counts"] == {"joined": 0, "remaining": 2}

    @pytest.mark.asyncio
    async def test_connected_then_views_then_unsubscribe_on_close(self):
        notifier = ChangeNotifier()
        current, later = _views(2)
        sub = notifier.subscribe(lambda: current)
        stream = event_stream(notifier, sub)
        assert await stream.__anext__() == ": connected\n\n"
        assert await stream.__anext__() == format_sse(current)
        notifier.publish(later)
        assert await stream.__anext__() == format_sse(later)
        await stream.aclose()
        assert len(notifier) == 0

    @pytest.mark.asyncio
    async def test_heartbeat_when_idle(self):
        notifier = ChangeNotifier()
        (current,) = _views(1)
        sub = notifier.subscribe(lambda: current)
        stream = event_stream(notifier, sub, heartbeat=0.01)
        await stream.__anext__()
        await stream.__anext__()
        assert await asyncio.wait_for(stream.__anext__(), timeout=1) == ": ping\n\n"
        await stream.aclose()

    @pytest.mark.asyncio
    async def test_stops_when_client_disconnected(self):
        notifier = ChangeNotifier()
        (current,) = _views(1)
        sub = notifier.subscribe(lambda: current)

        async def gone():
            return True

        frames = [frame async for frame in event_stream(notifier, sub, is_disconnected=gone)]
        assert frames == [": connected\n\n"]
        assert len(notifier) == 0
