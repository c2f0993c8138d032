"""Shared core: service identity, backoff and logging setup."""

SERVICE_NAME = "order_consumer"
