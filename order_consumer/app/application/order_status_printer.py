from __future__ import annotations

import sys
from typing import TextIO

from order_consumer.app.constants import OUTPUT_PREFIX
from order_consumer.app.domain.models import OrderStatus


class OrderStatusPrinter:
    """Default handler: one output line per order status."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    def __call__(self, order_status: OrderStatus) -> None:
        # Resolved per call so a swapped sys.stdout (pytest capture) is honoured.
        stream = self._stream if self._stream is not None else sys.stdout
        stream.write(f"{OUTPUT_PREFIX}{order_status}\n")
        stream.flush()
