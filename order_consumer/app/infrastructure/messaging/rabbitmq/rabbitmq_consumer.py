"""
RabbitMQ consumer: connection lifecycle, queue declaration, and subscriptions.

Lifecycle:
  DISCONNECTED -> CONNECTING (backoff) -> CONNECTED -> CHANNEL_OPEN -> READY.
  On broker disconnect: READY -> RECONNECTING. The robust connection retries every
  reconnect_interval_seconds until the broker is back, then restores the channel, the
  declared queues and their consumers under the same consumer tags; the reconnect
  callback moves the state back to READY. Backoff settings apply to the initial
  connect only.
  On shutdown: READY/RECONNECTING -> CLOSING -> cancel consumers, close channel and
  connection -> CLOSED.

Concurrency:
  - subscribe(), subscription cancel and close() all hold _lock, so the channel is
    never closed while basic.consume or basic.cancel is in progress.
  - Deliveries are wrapped in AioPikaMessageAdapter before reaching the callback, so
    the application only ever sees the IncomingMessage port.
"""
from __future__ import annotations

import asyncio
from typing import Any

import aio_pika
from aio_pika.abc import AbstractIncomingMessage
from loguru import logger

from order_consumer.app.config.settings import Settings
from order_consumer.app.core import SERVICE_NAME
from order_consumer.app.core.backoff import exponential_backoff
from order_consumer.app.domain.subscription import Subscription
from order_consumer.app.infrastructure.messaging.rabbitmq.aio_pika_message_adapter import AioPikaMessageAdapter
from order_consumer.app.infrastructure.messaging.rabbitmq.constants import ConsumerState
from order_consumer.app.ports.message_consumer import MessageCallback


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class RabbitMQConsumer:
    """MessageConsumer implementation"""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._state = ConsumerState.DISCONNECTED
        self._connection: aio_pika.abc.AbstractRobustConnection | None = None
        self._channel: aio_pika.abc.AbstractChannel | None = None
        self._queues: dict[str, aio_pika.abc.AbstractQueue] = {}
        self._subscriptions: dict[str, Subscription] = {}
        self._lock = asyncio.Lock()
        self._closing = False

    @property
    def state(self) -> ConsumerState:
        return self._state

    @property
    def ready(self) -> bool:
        return self._state == ConsumerState.READY

    @property
    def subscriptions(self) -> list[Subscription]:
        return list(self._subscriptions.values())

    def _set_state(self, state: ConsumerState) -> None:
        self._state = state

    def _register_callbacks(self, connection: Any) -> None:
        close_callbacks = getattr(connection, "close_callbacks", None)
        if close_callbacks is not None and callable(getattr(close_callbacks, "add", None)):
            close_callbacks.add(self._on_connection_closed)
        reconnect_callbacks = getattr(connection, "reconnect_callbacks", None)
        if reconnect_callbacks is not None and callable(getattr(reconnect_callbacks, "add", None)):
            reconnect_callbacks.add(self._on_reconnected)

    def _on_connection_closed(self, *args: Any, **kwargs: Any) -> None:
        if self._closing:
            return
        self._set_state(ConsumerState.RECONNECTING)
        _log("broker_disconnect_detected")

    def _on_reconnected(self, *args: Any, **kwargs: Any) -> None:
        if self._closing:
            return
        self._set_state(ConsumerState.READY)
        _log("rmq_reconnected", subscriptions=len(self._subscriptions))

    def _queue_arguments(self) -> dict[str, Any] | None:
        if self._settings.queue_max_length <= 0:
            return None
        return {
            "x-max-length": self._settings.queue_max_length,
            "x-overflow": "reject-publish",
        }

    async def _open_channel(self) -> None:
        if not self._connection:
            return
        self._channel = await self._connection.channel()
        self._set_state(ConsumerState.CHANNEL_OPEN)
        await self._channel.set_qos(prefetch_count=self._settings.prefetch_count)
        self._set_state(ConsumerState.READY)

    async def _close_channel_and_connection(self) -> None:
        self._queues.clear()
        if self._channel:
            try:
                await self._channel.close()
            except Exception as e:
                logger.warning("channel close failed (continuing to close connection): {}", e)
            self._channel = None
        if self._connection:
            try:
                await self._connection.close()
            except Exception as e:
                logger.warning("connection close failed: {}", e)
            self._connection = None

    async def connect(self) -> None:
        self._set_state(ConsumerState.CONNECTING)
        _log("rmq_connecting", host=self._settings.broker_host, port=self._settings.broker_port)
        attempt = 0
        async for delay in exponential_backoff(
            self._settings.initial_backoff_seconds,
            self._settings.max_backoff_seconds,
            self._settings.backoff_multiplier,
            self._settings.max_connection_attempts,
        ):
            attempt += 1
            _log("rmq_connect_attempt", attempt=attempt, delay=delay)
            try:
                self._connection = await aio_pika.connect_robust(
                    self._settings.amqp_url,
                    reconnect_interval=self._settings.reconnect_interval_seconds,
                )
                self._register_callbacks(self._connection)
                break
            except Exception as e:
                logger.warning("rmq connect failed: {}", e)
                if attempt >= self._settings.max_connection_attempts:
                    _log("rmq_connect_failed", attempt=attempt)
                    self._set_state(ConsumerState.DISCONNECTED)
                    raise
        self._set_state(ConsumerState.CONNECTED)
        _log("rmq_connected")
        await self._open_channel()

    async def subscribe(self, queue_name: str, callback: MessageCallback) -> Subscription:
        if self._channel is None:
            raise RuntimeError("consumer not connected")

        subscription = Subscription(queue_name, self._cancel_subscription)

        async def on_raw_message(raw_message: AbstractIncomingMessage) -> None:
            message = AioPikaMessageAdapter(raw_message)
            if not subscription.active:
                # Delivered after cancel(): hand it back to the broker untouched.
                await message.nack(requeue=True)
                return
            await callback(message)

        async with self._lock:
            if self._channel is None or self._closing:
                raise RuntimeError("consumer not connected")
            queue = await self._channel.declare_queue(
                queue_name,
                durable=self._settings.queue_durable,
                arguments=self._queue_arguments(),
            )
            consumer_tag = await queue.consume(on_raw_message, no_ack=False)
            subscription.consumer_tag = consumer_tag
            self._queues[subscription.subscription_id] = queue
            self._subscriptions[subscription.subscription_id] = subscription
        _log("subscribed", queue_name=queue_name, consumer_tag=consumer_tag)
        return subscription

    async def _cancel_subscription(self, subscription: Subscription) -> None:
        async with self._lock:
            self._subscriptions.pop(subscription.subscription_id, None)
            queue = self._queues.pop(subscription.subscription_id, None)
            if queue is not None and subscription.consumer_tag is not None:
                await queue.cancel(subscription.consumer_tag)
        _log(
            "subscription_cancelled",
            queue_name=subscription.queue_name,
            consumer_tag=subscription.consumer_tag,
        )

    async def close(self) -> None:
        self._closing = True
        self._set_state(ConsumerState.CLOSING)
        _log("consumer_shutdown")
        for subscription in list(self._subscriptions.values()):
            try:
                await subscription.cancel()
            except Exception as e:
                logger.warning("consumer cancel failed for {}: {}", subscription.queue_name, e)
        async with self._lock:
            self._subscriptions.clear()
            await self._close_channel_and_connection()
        self._set_state(ConsumerState.CLOSED)
