import asyncio
import signal
from typing import Any

from loguru import logger

from order_consumer.app.composition import ConsumerDependencies, create_consumer_dependencies
from order_consumer.app.config.settings import Settings
from order_consumer.app.constants import MAX_TRACKED_HANDLER_ERRORS
from order_consumer.app.core import SERVICE_NAME
from order_consumer.app.core.logging import configure_logging
from order_consumer.app.messaging.consumer import create_message_handler


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


def _install_signal_handlers(shutdown: asyncio.Event) -> None:
    def request_shutdown() -> None:
        if not shutdown.is_set():
            _log("shutdown_signal")
            shutdown.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, request_shutdown)
        except (NotImplementedError, RuntimeError) as e:
            # Not the main thread, or no loop signal support: SIGTERM will not drain.
            logger.warning("signal handler for {} not installed: {}", sig.name, e)


async def run_consumer(
    dependencies: ConsumerDependencies | None = None,
    *,
    shutdown: asyncio.Event | None = None,
    started: asyncio.Event | None = None,
) -> None:
    """Subscribe the configured queue and dispatch deliveries until shutdown is set."""
    deps = dependencies or create_consumer_dependencies()
    settings = deps.settings
    if shutdown is None:
        shutdown = asyncio.Event()
        _install_signal_handlers(shutdown)

    _log("consumer_starting", queue_name=settings.queue_name, backend=settings.consumer_backend)
    message_handler_errors: asyncio.Queue[Exception] = asyncio.Queue(maxsize=MAX_TRACKED_HANDLER_ERRORS)
    try:
        await deps.connect()
        subscription = await deps.message_consumer.subscribe(
            settings.queue_name,
            create_message_handler(deps.dispatch_service, message_handler_errors),
        )
        _log("consumer_started", queue_name=settings.queue_name, consumer_tag=subscription.consumer_tag)
        if started is not None:
            started.set()

        await shutdown.wait()
        await subscription.cancel()
        dispatch = deps.dispatch_service
        _log(
            "consumer_draining",
            handled=dispatch.handled_count,
            failed=dispatch.failed_count,
            unhandled_errors=message_handler_errors.qsize(),
        )
    finally:
        await deps.close()
        _log("consumer_stopped")


def main() -> None:
    settings = Settings()
    configure_logging(settings.log_level, serialize=settings.log_serialize)
    try:
        asyncio.run(run_consumer(create_consumer_dependencies(settings)))
    except KeyboardInterrupt:
        _log("consumer_interrupted")
    except Exception as e:
        logger.exception("consumer failed: {}", e)
        raise


if __name__ == "__main__":
    main()
