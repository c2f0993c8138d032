"""Loguru sink setup.

Log records go to stderr so stdout carries nothing but handled messages.
"""
from __future__ import annotations

import sys

from loguru import logger

from order_consumer.app.core import SERVICE_NAME

_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "{extra[service_name]} | {extra[event]} | {message} {extra}"
)


def configure_logging(level: str = "INFO", *, serialize: bool = False) -> None:
    logger.remove()
    logger.configure(extra={"service_name": SERVICE_NAME, "event": "-"})
    logger.add(
        sys.stderr,
        level=level.upper(),
        format=_FORMAT,
        serialize=serialize,
        backtrace=False,
        diagnose=False,
    )
