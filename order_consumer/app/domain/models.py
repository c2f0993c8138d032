"""Domain models."""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class OrderStatus:
    """Decoded order status payload (value object).

    The schema belongs to the producer; the consumer only needs the value and
    its textual form.
    """

    payload: Any

    def __str__(self) -> str:
        if isinstance(self.payload, str):
            return self.payload
        return json.dumps(self.payload, separators=(",", ":"), ensure_ascii=False)

