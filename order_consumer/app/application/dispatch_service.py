from __future__ import annotations

import asyncio
import inspect
from typing import Any

from loguru import logger

from order_consumer.app.application.message_decoder import decode_order_status
from order_consumer.app.constants import DELIVERY_OUTCOME
from order_consumer.app.core import SERVICE_NAME
from order_consumer.app.ports.incoming_message import IncomingMessage
from order_consumer.app.ports.order_status_handler import OrderStatusHandler


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class DispatchService:
    """
    Dispatches deliveries to the order status handler: decode, invoke, settle.

    The handler runs exactly once per delivery. A delivery is acked only after the
    handler returns. On a decode or handler failure the delivery is rejected
    (requeue=False, so the broker dead-letters or drops it per queue policy), or
    nacked with requeue when requeue_on_failure is set, and the error re-raised.

    After close() no handler is invoked: late deliveries are nacked with requeue
    so another consumer can take them.
    """

    def __init__(
        self,
        handler: OrderStatusHandler,
        *,
        requeue_on_failure: bool = False,
    ) -> None:
        self._handler = handler
        self._requeue_on_failure = requeue_on_failure
        self._closed = False
        self._in_flight = 0
        self._idle = asyncio.Event()
        self._idle.set()
        self.handled_count = 0
        self.failed_count = 0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def in_flight(self) -> int:
        return self._in_flight

    async def process_message(self, message: IncomingMessage) -> str:
        if self._closed:
            await message.nack(requeue=True)
            _log("message_requeued", message_id=message.message_id, reason="dispatch_closed")
            return DELIVERY_OUTCOME.REQUEUED

        self._in_flight += 1
        self._idle.clear()
        try:
            return await self._dispatch(message)
        finally:
            self._in_flight -= 1
            if self._in_flight == 0:
                self._idle.set()

    async def _dispatch(self, message: IncomingMessage) -> str:
        message_id = message.message_id
        _log("message_received", message_id=message_id, redelivered=message.redelivered)
        try:
            order_status = decode_order_status(message.body, message.content_type)
            result = self._handler(order_status)
            if inspect.isawaitable(result):
                await result
        except Exception as exc:
            self.failed_count += 1
            outcome = await self._settle_failure(message)
            _log(
                "message_rejected" if outcome == DELIVERY_OUTCOME.REJECTED else "message_requeued",
                message_id=message_id,
                error=str(exc),
            )
            raise

        await message.ack()
        self.handled_count += 1
        _log("message_handled", message_id=message_id)
        return DELIVERY_OUTCOME.ACKED

    async def _settle_failure(self, message: IncomingMessage) -> str:
        if message.processed:
            return DELIVERY_OUTCOME.REJECTED
        if self._requeue_on_failure:
            await message.nack(requeue=True)
            return DELIVERY_OUTCOME.REQUEUED
        await message.reject(requeue=False)
        return DELIVERY_OUTCOME.REJECTED

    def close(self) -> None:
        self._closed = True

    async def wait_idle(self, timeout: float | None = None) -> bool:
        """Wait for in-flight deliveries to settle. Returns False on timeout."""
        try:
            await asyncio.wait_for(self._idle.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            _log("drain_timeout", in_flight=self._in_flight, timeout=timeout)
            return False
        return True
