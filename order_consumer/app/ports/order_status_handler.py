"""Port: per-message handler contract."""
from __future__ import annotations

from typing import Awaitable, Protocol, Union

from order_consumer.app.domain.models import OrderStatus


class OrderStatusHandler(Protocol):
    """Invoked once per delivery. May be a plain function or a coroutine function."""

    def __call__(self, order_status: OrderStatus) -> Union[None, Awaitable[None]]: ...
