"""Entrypoint lifecycle against the in-memory backend."""
from __future__ import annotations

import asyncio

import pytest

from order_consumer.app.application.order_status_printer import OrderStatusPrinter
from order_consumer.app.composition import ConsumerDependencies
from order_consumer.app.infrastructure.messaging.inmemory.in_memory_consumer import InMemoryConsumer
from order_consumer.app.main import run_consumer


@pytest.mark.asyncio
async def test_run_consumer_handles_n_messages_then_stops(settings, output):
    deps = ConsumerDependencies(settings=settings, handler=OrderStatusPrinter(output))  # type: ignore[arg-type]
    deps.build()
    broker = deps.message_consumer
    assert isinstance(broker, InMemoryConsumer)
    dispatch = deps.dispatch_service

    shutdown = asyncio.Event()
    started = asyncio.Event()
    task = asyncio.create_task(run_consumer(deps, shutdown=shutdown, started=started))
    await asyncio.wait_for(started.wait(), timeout=1.0)

    for status in ("ORDER_PLACED", "ORDER_PAID", "ORDER_SHIPPED"):
        await broker.publish(settings.queue_name, status)

    shutdown.set()
    await asyncio.wait_for(task, timeout=1.0)

    await broker.connect()
    await broker.publish(settings.queue_name, "AFTER_SHUTDOWN")

    assert output.getvalue().splitlines() == [
        "Message recieved from queue : ORDER_PLACED",
        "Message recieved from queue : ORDER_PAID",
        "Message recieved from queue : ORDER_SHIPPED",
    ]
    assert dispatch.handled_count == 3
    assert dispatch.closed is True
    assert broker.pending(settings.queue_name) == 1
    assert deps.connected is False


@pytest.mark.asyncio
async def test_run_consumer_uses_stdout_printer_by_default(settings, capsys):
    deps = ConsumerDependencies(settings=settings)  # type: ignore[arg-type]
    deps.build()
    broker = deps.message_consumer

    shutdown = asyncio.Event()
    started = asyncio.Event()
    task = asyncio.create_task(run_consumer(deps, shutdown=shutdown, started=started))
    await asyncio.wait_for(started.wait(), timeout=1.0)
    await broker.publish(settings.queue_name, "ORDER_PLACED")
    shutdown.set()
    await task

    assert capsys.readouterr().out == "Message recieved from queue : ORDER_PLACED\n"


@pytest.mark.asyncio
async def test_unknown_backend_fails_fast(settings):
    settings.consumer_backend = "kafka"
    deps = ConsumerDependencies(settings=settings)  # type: ignore[arg-type]

    with pytest.raises(ValueError, match="Unsupported consumer backend: kafka"):
        await run_consumer(deps, shutdown=asyncio.Event())


@pytest.mark.asyncio
async def test_signal_handler_failure_is_logged(monkeypatch):
    from loguru import logger

    from order_consumer.app.main import _install_signal_handlers

    def _unsupported(sig, callback):
        raise RuntimeError("not the main thread")

    monkeypatch.setattr(asyncio.get_running_loop(), "add_signal_handler", _unsupported)
    records: list[str] = []
    sink_id = logger.add(lambda message: records.append(str(message)), level="WARNING", format="{message}")
    try:
        _install_signal_handlers(asyncio.Event())
    finally:
        logger.remove(sink_id)

    assert any("signal handler for SIGINT not installed: not the main thread" in r for r in records)
    assert any("signal handler for SIGTERM not installed" in r for r in records)
