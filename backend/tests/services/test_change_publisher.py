"""Change Publisher — non-blocking fan-out with per-subscriber bounded queues.

Tests:
    - Every healthy subscriber receives every payload, in generation order
    - A full subscriber is skipped without delaying a healthy one
    - Repeated misses drop the subscriber and end its stream
    - A closed subscription discards pending payloads
    - Stale generations are refused; closed subscriptions are pruned
    - notify() skips empty diffs unless publish_every_refresh
"""

import asyncio

import pytest

from statusboard.core.domain_types import AnchorId, Generation, Status
from statusboard.core.snapshot import Snapshot
from statusboard.services.change_publisher import (
    ChangePublisher, DeliveryResult, Subscription,
)


def _payload(generation):
    return {"generation": generation, "generated_at": "2026-01-01T00:00:00+00:00", "changes": []}


# ---------------------------------------------------------------------------
# Subscription
# ---------------------------------------------------------------------------

async def test_offer_then_receive():
    sub = Subscription(maxsize=2)
    assert sub.offer(_payload(1)) is DeliveryResult.DELIVERED
    assert await sub.next_payload() == _payload(1)
    assert sub.last_generation == 1


def test_stale_generation_refused():
    sub = Subscription()
    sub.offer(_payload(3))
    assert sub.offer(_payload(3)) is DeliveryResult.STALE
    assert sub.offer(_payload(2)) is DeliveryResult.STALE
    assert sub.pending == 1


def test_full_queue_counts_misses_and_delivery_resets():
    sub = Subscription(maxsize=1)
    sub.offer(_payload(1))
    assert sub.offer(_payload(2)) is DeliveryResult.FULL
    assert sub.offer(_payload(3)) is DeliveryResult.FULL
    assert sub.missed == 2
    sub._queue.get_nowait()
    assert sub.offer(_payload(4)) is DeliveryResult.DELIVERED
    assert sub.missed == 0


async def test_closed_subscription_discards_pending_and_ends():
    sub = Subscription()
    sub.offer(_payload(1))
    sub.close()
    assert sub.offer(_payload(2)) is DeliveryResult.CLOSED
    assert await sub.next_payload() is None
    assert await sub.next_payload() is None


async def test_next_payload_timeout():
    sub = Subscription()
    with pytest.raises(asyncio.TimeoutError):
        await sub.next_payload(timeout=0.01)


# ---------------------------------------------------------------------------
# Publisher
# ---------------------------------------------------------------------------

def test_subscribe_and_unsubscribe():
    publisher = ChangePublisher()
    sub = publisher.subscribe()
    assert publisher.subscriber_count == 1
    publisher.unsubscribe(sub)
    assert publisher.subscriber_count == 0
    assert sub.closed
    publisher.unsubscribe(sub)
    assert publisher.subscriber_count == 0


async def test_publish_reaches_every_subscriber_in_order():
    publisher = ChangePublisher()
    subs = [publisher.subscribe() for _ in range(3)]
    for generation in (1, 2, 3):
        assert publisher.publish(_payload(generation)) == 3
    for sub in subs:
        generations = [(await sub.next_payload())["generation"] for _ in range(3)]
        assert generations == [1, 2, 3]


async def test_full_subscriber_does_not_delay_healthy_one():
    publisher = ChangePublisher(queue_size=1, max_missed_deliveries=10)
    stalled = publisher.subscribe()
    healthy = publisher.subscribe()
    received = []

    async def consume():
        while len(received) < 5:
            payload = await healthy.next_payload()
            received.append(payload["generation"])

    consumer = asyncio.create_task(consume())
    for generation in range(1, 6):
        publisher.publish(_payload(generation))
        await asyncio.sleep(0)
    await asyncio.wait_for(consumer, timeout=1)
    assert received == [1, 2, 3, 4, 5]
    assert stalled.pending == 1
    assert stalled.missed == 4


def test_unresponsive_subscriber_dropped():
    publisher = ChangePublisher(queue_size=1, max_missed_deliveries=3)
    slow = publisher.subscribe()
    for generation in range(1, 5):
        publisher.publish(_payload(generation))
    assert publisher.subscriber_count == 0
    assert slow.closed


async def test_dropped_subscriber_stream_terminates():
    publisher = ChangePublisher(queue_size=1, max_missed_deliveries=1)
    slow = publisher.subscribe()
    publisher.publish(_payload(1))
    publisher.publish(_payload(2))
    assert await slow.next_payload(timeout=1) is None


def test_closed_subscription_pruned_on_publish():
    publisher = ChangePublisher()
    sub = publisher.subscribe()
    sub.close()
    assert publisher.publish(_payload(1)) == 0
    assert publisher.subscriber_count == 0


def test_unsubscribe_during_publish_is_safe():
    publisher = ChangePublisher(queue_size=1, max_missed_deliveries=1)
    full = publisher.subscribe()
    full.offer(_payload(1))
    other = publisher.subscribe()
    assert publisher.publish(_payload(2)) == 1
    assert publisher.subscriber_count == 1
    assert other.pending == 1


def test_close_all():
    publisher = ChangePublisher()
    subs = [publisher.subscribe() for _ in range(2)]
    publisher.close_all()
    assert publisher.subscriber_count == 0
    assert all(s.closed for s in subs)


# ---------------------------------------------------------------------------
# Store listener
# ---------------------------------------------------------------------------

def test_notify_publishes_change_payload():
    publisher = ChangePublisher()
    sub = publisher.subscribe()
    new = Snapshot(generation=Generation(2))
    publisher.notify(None, new, {AnchorId("A"): {Status.DONE: 0}})
    payload = sub._queue.get_nowait()
    assert payload["generation"] == 2
    assert payload["changes"] == [{"anchor_id": "A", "counts": {"Done": 0}}]


def test_notify_skips_empty_diff():
    publisher = ChangePublisher()
    sub = publisher.subscribe()
    publisher.notify(None, Snapshot(generation=Generation(1)), {})
    assert sub.pending == 0


def test_notify_every_refresh_when_configured():
    publisher = ChangePublisher(publish_every_refresh=True)
    sub = publisher.subscribe()
    publisher.notify(None, Snapshot(generation=Generation(1)), {})
    assert sub.pending == 1
