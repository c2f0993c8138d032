import asyncio

import pytest

from order_consumer.app.core import backoff


def _collect_with_fake_sleep(monkeypatch, *args):
    events: list[tuple[str, float]] = []

    async def _sleep(delay):
        events.append(("sleep", delay))

    monkeypatch.setattr(backoff.asyncio, "sleep", _sleep)

    async def _collect():
        async for delay in backoff.exponential_backoff(*args):
            events.append(("attempt", delay))

    asyncio.run(_collect())
    return events


def test_delays_grow_and_are_capped(monkeypatch):
    events = _collect_with_fake_sleep(monkeypatch, 1.0, 5.0, 2.0, 5)

    assert [d for kind, d in events if kind == "attempt"] == [0.0, 1.0, 2.0, 4.0, 5.0]
    assert [d for kind, d in events if kind == "sleep"] == [1.0, 2.0, 4.0, 5.0]


def test_yielded_delay_is_the_wait_that_preceded_the_attempt(monkeypatch):
    events = _collect_with_fake_sleep(monkeypatch, 0.5, 10.0, 3.0, 4)

    assert events == [
        ("attempt", 0.0),
        ("sleep", 0.5),
        ("attempt", 0.5),
        ("sleep", 1.5),
        ("attempt", 1.5),
        ("sleep", 4.5),
        ("attempt", 4.5),
    ]


def test_single_attempt_never_sleeps(monkeypatch):
    events = _collect_with_fake_sleep(monkeypatch, 0.5, 10.0, 3.0, 1)
    assert events == [("attempt", 0.0)]


@pytest.mark.asyncio
async def test_initial_delay_clamped_to_max():
    delays = [d async for d in backoff.exponential_backoff(3.0, 0.0, 2.0, 3)]
    assert delays == [0.0, 0.0, 0.0]
