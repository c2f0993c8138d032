import pytest

from order_consumer.app.domain.models import OrderStatus
from order_consumer.app.domain.subscription import Subscription


@pytest.mark.asyncio
async def test_cancel_calls_canceller_once():
    calls = []

    async def canceller(subscription):
        calls.append(subscription.consumer_tag)

    subscription = Subscription("q", canceller, consumer_tag="ctag-1")
    await subscription.cancel()
    await subscription.cancel()

    assert calls == ["ctag-1"]
    assert subscription.active is False
    assert "active=False" in repr(subscription)


def test_subscription_ids_are_unique():
    async def canceller(subscription):
        return None

    assert Subscription("q", canceller).subscription_id != Subscription("q", canceller).subscription_id


@pytest.mark.parametrize(
    "payload, text",
    [
        ("ORDER_PLACED", "ORDER_PLACED"),
        ({"status": "PAID"}, '{"status":"PAID"}'),
        ([1, 2], "[1,2]"),
        (42, "42"),
        (None, "null"),
        ({"note": "café"}, '{"note":"café"}'),
    ],
)
def test_order_status_text(payload, text):
    assert str(OrderStatus(payload)) == text
