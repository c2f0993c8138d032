from __future__ import annotations

import json

from order_consumer.app.constants import JSON_CONTENT_TYPES
from order_consumer.app.domain.errors import MessageDecodeError
from order_consumer.app.domain.models import OrderStatus


def _is_json(content_type: str | None) -> bool:
    if not content_type:
        return False
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type in JSON_CONTENT_TYPES or media_type.endswith("+json")


def decode_order_status(body: bytes, content_type: str | None = None) -> OrderStatus:
    """Decode a delivery body. JSON content types are parsed; anything else is UTF-8 text."""
    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MessageDecodeError(f"body is not valid utf-8: {exc}", content_type=content_type) from exc

    if not _is_json(content_type):
        return OrderStatus(payload=text)

    try:
        return OrderStatus(payload=json.loads(text))
    except json.JSONDecodeError as exc:
        raise MessageDecodeError(f"body is not valid json: {exc.msg}", content_type=content_type) from exc
