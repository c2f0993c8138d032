"""Consumer composition root: build and lifecycle-manage concrete dependencies.

Composition may: import concrete classes, call factories, store interface types,
manage high-level lifecycle.
"""
from __future__ import annotations

from typing import Any

from loguru import logger

from order_consumer.app.application.dispatch_service import DispatchService
from order_consumer.app.application.order_status_printer import OrderStatusPrinter
from order_consumer.app.config.settings import Settings
from order_consumer.app.core import SERVICE_NAME
from order_consumer.app.infrastructure.messaging.factory import create_message_consumer
from order_consumer.app.ports.message_consumer import MessageConsumer
from order_consumer.app.ports.order_status_handler import OrderStatusHandler


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class ConsumerDependencies:
    """Holds wired consumer dependencies and their lifecycle."""

    def __init__(
        self,
        *,
        settings: Settings,
        handler: OrderStatusHandler | None = None,
    ) -> None:
        self._settings = settings
        self._handler = handler
        self._message_consumer: MessageConsumer | None = None
        self._dispatch_service: DispatchService | None = None
        self._connected = False

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def message_consumer(self) -> MessageConsumer:
        if self._message_consumer is None:
            raise RuntimeError("message_consumer is not initialized")
        return self._message_consumer

    @property
    def dispatch_service(self) -> DispatchService:
        if self._dispatch_service is None:
            raise RuntimeError("dispatch_service is not initialized")
        return self._dispatch_service

    def build(self) -> None:
        """Create collaborators without touching the network. connect() calls this if needed."""
        if self._message_consumer is None:
            self._message_consumer = create_message_consumer(self._settings)
        if self._dispatch_service is None:
            self._dispatch_service = DispatchService(
                self._handler or OrderStatusPrinter(),
                requeue_on_failure=self._settings.requeue_on_failure,
            )

    async def connect(self) -> None:
        self.build()
        await self.message_consumer.connect()
        self._connected = True
        _log("dependencies_connected", backend=self._settings.consumer_backend)

    async def close(self) -> None:
        if self._dispatch_service is not None:
            self._dispatch_service.close()
            await self._dispatch_service.wait_idle(self._settings.shutdown_timeout_seconds)

        if self._message_consumer is not None:
            try:
                await self._message_consumer.close()
            except Exception as exc:
                logger.warning("message consumer close failed: {}", exc)
            self._message_consumer = None

        self._dispatch_service = None
        self._connected = False


def create_consumer_dependencies(
    settings: Settings | None = None,
    *,
    handler: OrderStatusHandler | None = None,
) -> ConsumerDependencies:
    return ConsumerDependencies(settings=settings or Settings(), handler=handler)
