"""
In-process broadcast channel: fan-out, per-subscriber ordering and drops.
"""

import asyncio
import contextlib

import pytest

from app.services.broadcast import ProjectBroadcaster, user_topic


class Sink:
    def __init__(self, fail_after=None):
        self.received = []
        self.fail_after = fail_after

    async def send(self, message):
        if self.fail_after is not None and len(self.received) >= self.fail_after:
            raise RuntimeError("socket gone")
        await asyncio.sleep(0)
        self.received.append(message)


def test_user_topic_name():
    assert user_topic("abc") == "user:abc"


@pytest.mark.asyncio
async def test_publish_reaches_only_topic_subscribers_in_order():
    broadcaster = ProjectBroadcaster(queue_size=16)
    inside, outside = Sink(), Sink()
    sub_in = broadcaster.subscription(inside.send)
    sub_out = broadcaster.subscription(outside.send)
    broadcaster.subscribe("p1", sub_in)
    broadcaster.subscribe("p2", sub_out)
    runners = [asyncio.create_task(s.run()) for s in (sub_in, sub_out)]

    for i in range(5):
        assert await broadcaster.publish("p1", {"type": "task-updated", "n": i}) == 1
    await sub_in.flush()

    assert [m["n"] for m in inside.received] == [0, 1, 2, 3, 4]
    assert outside.received == []
    for runner in runners:
        runner.cancel()


@pytest.mark.asyncio
async def test_publish_without_subscribers_is_dropped():
    broadcaster = ProjectBroadcaster()
    assert await broadcaster.publish("nobody", {"type": "task-created"}) == 0


@pytest.mark.asyncio
async def test_full_queue_drops_newest_message():
    broadcaster = ProjectBroadcaster(queue_size=2)
    sink = Sink()
    subscription = broadcaster.subscription(sink.send)
    broadcaster.subscribe("p1", subscription)

    results = [await broadcaster.publish("p1", {"type": "x", "n": i}) for i in range(3)]
    assert results == [1, 1, 0]

    runner = asyncio.create_task(subscription.run())
    await subscription.flush()
    assert [m["n"] for m in sink.received] == [0, 1]
    runner.cancel()


@pytest.mark.asyncio
async def test_failed_send_closes_and_unsubscribes():
    broadcaster = ProjectBroadcaster()
    sink = Sink(fail_after=1)
    subscription = broadcaster.subscription(sink.send)
    broadcaster.subscribe("p1", subscription)
    runner = asyncio.create_task(subscription.run())

    await broadcaster.publish("p1", {"type": "a"})
    await broadcaster.publish("p1", {"type": "b"})
    await subscription.flush()
    await runner

    assert subscription.closed
    assert await broadcaster.publish("p1", {"type": "c"}) == 0
    assert broadcaster.subscriber_count("p1") == 0


@pytest.mark.asyncio
async def test_unsubscribe_all_leaves_every_topic():
    broadcaster = ProjectBroadcaster()
    subscription = broadcaster.subscription(Sink().send)
    for topic in ("p1", "p2", user_topic("u1")):
        broadcaster.subscribe(topic, subscription)

    broadcaster.unsubscribe_all(subscription)

    assert subscription.topics == set()
    assert all(
        broadcaster.subscriber_count(t) == 0 for t in ("p1", "p2", user_topic("u1"))
    )


@pytest.mark.asyncio
async def test_cancelled_sender_is_collected_after_disconnect():
    broadcaster = ProjectBroadcaster(queue_size=4)
    sink = Sink()
    subscription = broadcaster.subscription(sink.send)
    sender = asyncio.create_task(subscription.run())
    broadcaster.subscribe("p1", subscription)
    await broadcaster.publish("p1", {"type": "task-created"})
    await subscription.flush()

    broadcaster.unsubscribe_all(subscription)
    subscription.close()
    sender.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await sender

    assert sender.done()
    assert sink.received == [{"type": "task-created"}]
    assert await broadcaster.publish("p1", {"type": "task-updated"}) == 0
