"""Broker callback: hands each delivery to the dispatch service and settles failures."""
from __future__ import annotations

import asyncio
from typing import Any

from loguru import logger

from order_consumer.app.application.dispatch_service import DispatchService
from order_consumer.app.core import SERVICE_NAME
from order_consumer.app.ports.incoming_message import IncomingMessage
from order_consumer.app.ports.message_consumer import MessageCallback


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


def create_message_handler(
    dispatch_service: DispatchService,
    message_handler_errors: asyncio.Queue[Exception] | None = None,
) -> MessageCallback:
    """Create an async message callback that dispatches deliveries and records errors.

    message_handler_errors should be bounded (maxsize > 0); when it is full the
    error is logged and dropped instead of kept.
    """

    async def on_message(message: IncomingMessage) -> None:
        try:
            await dispatch_service.process_message(message)
        except Exception as e:
            logger.exception("message handling failed: {}", e)
            try:
                if not message.processed:
                    await message.reject(requeue=False)
            finally:
                if message_handler_errors is not None:
                    try:
                        message_handler_errors.put_nowait(e)
                    except asyncio.QueueFull:
                        _log("handler_error_dropped", error=str(e), message_id=message.message_id)

    return on_message
