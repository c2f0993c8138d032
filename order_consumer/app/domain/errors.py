"""Domain errors."""
from __future__ import annotations


class MessageDecodeError(ValueError):
    """Raised when a delivery body cannot be turned into an OrderStatus."""

    def __init__(self, reason: str, *, content_type: str | None = None) -> None:
        super().__init__(reason)
        self.content_type = content_type
