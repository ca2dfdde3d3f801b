"""
Realtime broadcast channel.

Topics are plain strings: a project's id for board events and
``user:<id>`` for a user's personal notifications. Every subscriber owns a
bounded FIFO queue drained by a single sender task, so messages reach each
connection in publish order without the publisher ever waiting on a socket.

Delivery is at-most-once: nothing is persisted or replayed, and a message
that cannot be queued (full queue, closed subscriber) is dropped with a
warning. Clients catch up by refetching.
"""

from __future__ import annotations

import asyncio
import uuid
from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from app.utils.logger import setup_logger

logger = setup_logger("broadcast")

Message = dict[str, Any]


def user_topic(user_id: uuid.UUID | str) -> str:
    return f"user:{user_id}"


class EventPublisher(Protocol):
    """Capability handed to services that need to announce mutations."""

    async def publish(self, topic: str, message: Message) -> int: ...


class Subscription:
    """One connected client: a queue plus the coroutine that drains it."""

    def __init__(
        self,
        send: Callable[[Message], Awaitable[None]],
        *,
        maxsize: int = 256,
        name: str | None = None,
    ):
        self._send = send
        self._queue: asyncio.Queue[Message] = asyncio.Queue(maxsize=maxsize)
        self.name = name or uuid.uuid4().hex[:8]
        self.topics: set[str] = set()
        self.closed = False

    def offer(self, message: Message) -> bool:
        """Queue a message without waiting. Returns False if it was dropped."""
        if self.closed:
            return False
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning(
                f"Subscriber {self.name} queue full, dropping '{message.get('type')}' message"
            )
            return False
        return True

    async def run(self) -> None:
        """Send queued messages in order until the subscriber is closed or fails."""
        while not self.closed:
            message = await self._queue.get()
            try:
                await self._send(message)
            except Exception as e:
                logger.warning(f"Subscriber {self.name} send failed, closing: {e}")
                self.closed = True
            finally:
                self._queue.task_done()

    async def flush(self) -> None:
        """Wait until every queued message has been handed to ``send``."""
        await self._queue.join()

    def close(self) -> None:
        self.closed = True


class ProjectBroadcaster:
    """In-process topic registry implementing ``EventPublisher``."""

    def __init__(self, queue_size: int = 256):
        self.queue_size = queue_size
        self._topics: dict[str, set[Subscription]] = defaultdict(set)

    def subscription(
        self, send: Callable[[Message], Awaitable[None]], *, name: str | None = None
    ) -> Subscription:
        return Subscription(send, maxsize=self.queue_size, name=name)

    def subscribe(self, topic: str, subscription: Subscription) -> None:
        self._topics[topic].add(subscription)
        subscription.topics.add(topic)
        logger.debug(f"Subscriber {subscription.name} joined topic {topic}")

    def unsubscribe(self, topic: str, subscription: Subscription) -> None:
        subscribers = self._topics.get(topic)
        if subscribers is not None:
            subscribers.discard(subscription)
            if not subscribers:
                del self._topics[topic]
        subscription.topics.discard(topic)

    def unsubscribe_all(self, subscription: Subscription) -> None:
        for topic in list(subscription.topics):
            self.unsubscribe(topic, subscription)

    def subscriber_count(self, topic: str) -> int:
        return len(self._topics.get(topic, ()))

    async def publish(self, topic: str, message: Message) -> int:
        """Fan a message out to the topic's subscribers; returns how many accepted it."""
        delivered = 0
        for subscription in list(self._topics.get(topic, ())):
            if subscription.offer(message):
                delivered += 1
            elif subscription.closed:
                self.unsubscribe_all(subscription)
        logger.debug(
            f"Published '{message.get('type')}' to {topic} ({delivered} subscriber(s))"
        )
        return delivered

    def close(self) -> None:
        for subscribers in list(self._topics.values()):
            for subscription in list(subscribers):
                subscription.close()
        self._topics.clear()
