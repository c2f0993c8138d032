"""Port: message consumer for queue. Implementations live in infrastructure."""
from __future__ import annotations

from typing import Awaitable, Callable, Protocol

from order_consumer.app.domain.subscription import Subscription
from order_consumer.app.ports.incoming_message import IncomingMessage

MessageCallback = Callable[[IncomingMessage], Awaitable[None]]


class MessageConsumer(Protocol):
    async def connect(self) -> None: ...

    async def subscribe(self, queue_name: str, callback: MessageCallback) -> Subscription:
        """Start consuming queue_name; call callback for each delivery until the handle is cancelled."""
        ...

    async def close(self) -> None: ...

    @property
    def ready(self) -> bool: ...
