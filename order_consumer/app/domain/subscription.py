"""Subscription handle returned by MessageConsumer.subscribe()."""
from __future__ import annotations

import uuid
from typing import Awaitable, Callable


class Subscription:
    """Handle for one queue subscription.

    The broker consumer tag may change across reconnects; the subscription_id
    stays fixed for the life of the handle. cancel() is idempotent.
    """

    def __init__(
        self,
        queue_name: str,
        canceller: Callable[["Subscription"], Awaitable[None]],
        *,
        consumer_tag: str | None = None,
    ) -> None:
        self.subscription_id = uuid.uuid4().hex
        self.queue_name = queue_name
        self.consumer_tag = consumer_tag
        self._canceller = canceller
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    async def cancel(self) -> None:
        if not self._active:
            return
        self._active = False
        await self._canceller(self)

    def __repr__(self) -> str:
        return (
            f"Subscription(queue_name={self.queue_name!r}, "
            f"consumer_tag={self.consumer_tag!r}, active={self._active})"
        )
