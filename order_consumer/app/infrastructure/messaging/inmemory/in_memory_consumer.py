"""In-memory broker and consumer for tests and local mode.

Queues are plain deques keyed by name. publish() buffers the message and, when the
queue has a subscriber and no drain is running yet, delivers pending messages in
order before returning.
Messages published before anyone subscribes wait in the buffer. A nack/reject with
requeue parks the message, flagged redelivered, and the next drain puts it back at
the head. A drain is not re-entered: a handler that publishes to its own queue just
appends, and the running drain delivers that message before it returns.
"""
from __future__ import annotations

import itertools
from collections import deque
from typing import Any

from loguru import logger

from order_consumer.app.core import SERVICE_NAME
from order_consumer.app.domain.subscription import Subscription
from order_consumer.app.ports.message_consumer import MessageCallback

_tags = itertools.count(1)


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class InMemoryMessage:
    """Implements order_consumer.app.ports.incoming_message.IncomingMessage."""

    def __init__(
        self,
        broker: "InMemoryConsumer",
        queue_name: str,
        body: bytes,
        *,
        content_type: str | None = None,
        message_id: str | None = None,
        redelivered: bool = False,
    ) -> None:
        self._broker = broker
        self.queue_name = queue_name
        self._body = body
        self._content_type = content_type
        self._message_id = message_id
        self._redelivered = redelivered
        self.outcome: str | None = None

    @property
    def body(self) -> bytes:
        return self._body

    @property
    def content_type(self) -> str | None:
        return self._content_type

    @property
    def message_id(self) -> str | None:
        return self._message_id

    @property
    def redelivered(self) -> bool:
        return self._redelivered

    @property
    def processed(self) -> bool:
        return self.outcome is not None

    def _settle(self, outcome: str) -> None:
        if self.outcome is not None:
            raise RuntimeError(f"message already processed ({self.outcome})")
        self.outcome = outcome

    async def ack(self) -> None:
        self._settle("ack")

    async def nack(self, *, requeue: bool = True) -> None:
        self._settle("nack")
        if requeue:
            self._broker._requeue(self)
        else:
            self._broker.dead_letters.append(self)

    async def reject(self, *, requeue: bool = False) -> None:
        self._settle("reject")
        if requeue:
            self._broker._requeue(self)
        else:
            self._broker.dead_letters.append(self)


class InMemoryConsumer:
    """MessageConsumer implementation backed by process memory. One subscriber per queue."""

    def __init__(self) -> None:
        self._queues: dict[str, deque[InMemoryMessage]] = {}
        self._subscribers: dict[str, tuple[Subscription, MessageCallback]] = {}
        self._redeliveries: dict[str, deque[InMemoryMessage]] = {}
        self._draining: set[str] = set()
        self._connected = False
        self.dead_letters: list[InMemoryMessage] = []

    @property
    def ready(self) -> bool:
        return self._connected

    def pending(self, queue_name: str) -> int:
        return len(self._queues.get(queue_name, ())) + len(self._redeliveries.get(queue_name, ()))

    def is_subscribed(self, queue_name: str) -> bool:
        return queue_name in self._subscribers

    async def connect(self) -> None:
        self._connected = True

    async def publish(
        self,
        queue_name: str,
        body: bytes | str,
        *,
        content_type: str | None = "text/plain",
        message_id: str | None = None,
    ) -> None:
        if isinstance(body, str):
            body = body.encode("utf-8")
        message = InMemoryMessage(
            self,
            queue_name,
            body,
            content_type=content_type,
            message_id=message_id,
        )
        self._queues.setdefault(queue_name, deque()).append(message)
        await self._drain(queue_name)

    async def subscribe(self, queue_name: str, callback: MessageCallback) -> Subscription:
        if not self._connected:
            raise RuntimeError("consumer not connected")
        if queue_name in self._subscribers:
            raise RuntimeError(f"queue {queue_name!r} already has a subscriber")
        subscription = Subscription(queue_name, self._cancel_subscription, consumer_tag=f"inmemory-{next(_tags)}")
        self._subscribers[queue_name] = (subscription, callback)
        _log("subscribed", queue_name=queue_name, consumer_tag=subscription.consumer_tag)
        await self._drain(queue_name)
        return subscription

    async def _cancel_subscription(self, subscription: Subscription) -> None:
        current = self._subscribers.get(subscription.queue_name)
        if current is not None and current[0] is subscription:
            del self._subscribers[subscription.queue_name]
        _log("subscription_cancelled", queue_name=subscription.queue_name, consumer_tag=subscription.consumer_tag)

    def _requeue(self, message: InMemoryMessage) -> None:
        self._redeliveries.setdefault(message.queue_name, deque()).append(
            InMemoryMessage(
                self,
                message.queue_name,
                message.body,
                content_type=message.content_type,
                message_id=message.message_id,
                redelivered=True,
            )
        )

    async def _drain(self, queue_name: str) -> None:
        if queue_name in self._draining:
            return
        self._draining.add(queue_name)
        try:
            queue = self._queues.setdefault(queue_name, deque())
            redeliveries = self._redeliveries.pop(queue_name, None)
            if redeliveries:
                queue.extendleft(reversed(redeliveries))
            while queue:
                entry = self._subscribers.get(queue_name)
                if entry is None or not entry[0].active:
                    return
                message = queue.popleft()
                await entry[1](message)
        finally:
            self._draining.discard(queue_name)

    async def close(self) -> None:
        for subscription, _ in list(self._subscribers.values()):
            await subscription.cancel()
        self._connected = False
