"""Adapter: wrap aio_pika.IncomingMessage to implement ports.IncomingMessage."""
from __future__ import annotations

from aio_pika.abc import AbstractIncomingMessage


class AioPikaMessageAdapter:
    """Implements order_consumer.app.ports.incoming_message.IncomingMessage for aio_pika."""

    def __init__(self, message: AbstractIncomingMessage) -> None:
        self._message = message

    @property
    def body(self) -> bytes:
        return self._message.body

    @property
    def content_type(self) -> str | None:
        return self._message.content_type

    @property
    def message_id(self) -> str | None:
        return self._message.message_id

    @property
    def redelivered(self) -> bool:
        return bool(self._message.redelivered)

    @property
    def processed(self) -> bool:
        return bool(self._message.processed)

    async def ack(self) -> None:
        await self._message.ack()

    async def nack(self, *, requeue: bool = True) -> None:
        await self._message.nack(requeue=requeue)

    async def reject(self, *, requeue: bool = False) -> None:
        await self._message.reject(requeue=requeue)
