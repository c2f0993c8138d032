"""Message consumer factory: selects implementation from config. Only place that imports concrete consumers."""
from __future__ import annotations

from order_consumer.app.config.settings import Settings
from order_consumer.app.infrastructure.messaging.inmemory.in_memory_consumer import InMemoryConsumer
from order_consumer.app.infrastructure.messaging.rabbitmq.rabbitmq_consumer import RabbitMQConsumer
from order_consumer.app.ports.message_consumer import MessageConsumer


def create_message_consumer(settings: Settings) -> MessageConsumer:
    backend = settings.consumer_backend.strip().lower()

    if backend == "rabbitmq":
        return RabbitMQConsumer(settings)
    if backend == "inmemory":
        return InMemoryConsumer()

    raise ValueError(f"Unsupported consumer backend: {backend}")
