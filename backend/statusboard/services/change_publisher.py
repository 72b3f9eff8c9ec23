"""Change Publisher — fans out change payloads to subscribers without blocking.

Invariants:
    - Each subscriber owns a bounded asyncio.Queue; delivery is put_nowait, never awaited
    - A full queue skips that subscriber only (logged); others are unaffected
    - After max_missed_deliveries consecutive misses, or once closed, a subscriber is dropped
    - Per subscriber, payload generations strictly increase (stale payloads refused)
    - Publishing iterates over a copy: subscribe/unsubscribe mid-publish is safe

Design Decisions:
    - Registry of bounded queues over a synchronous send loop: one stalled consumer
      can never delay the rest (ADR: SSE clients disconnect silently)
    - Dropping closes the queue with a sentinel so the consumer's stream terminates
      and the client reconnects to resync via GET /snapshot
    - Empty diffs are not published unless publish_every_refresh is set
"""

import asyncio
import logging
import uuid
from enum import Enum

from statusboard.core.snapshot import Changes, Snapshot, build_change_payload

logger = logging.getLogger(__name__)

_CLOSED = object()


class DeliveryResult(str, Enum):
    """Outcome of offering one payload to one subscriber."""
    DELIVERED = "delivered"
    STALE = "stale"
    FULL = "full"
    CLOSED = "closed"


class Subscription:
    """One subscriber's bounded delivery queue (the subscribe() handle)."""

    def __init__(self, maxsize: int = 16):
        self.id = str(uuid.uuid4())
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.last_generation = 0
        self.missed = 0
        self.closed = False

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def offer(self, payload: dict) -> DeliveryResult:
        """Non-blocking enqueue."""
        if self.closed:
            return DeliveryResult.CLOSED
        generation = payload.get("generation", 0)
        if generation <= self.last_generation:
            return DeliveryResult.STALE
        try:
            self._queue.put_nowait(payload)
        except asyncio.QueueFull:
            self.missed += 1
            return DeliveryResult.FULL
        self.last_generation = generation
        self.missed = 0
        return DeliveryResult.DELIVERED

    def close(self) -> None:
        """Mark closed; pending payloads are discarded and the stream ends."""
        if self.closed:
            return
        self.closed = True
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(_CLOSED)

    async def next_payload(self, timeout: float | None = None) -> dict | None:
        """Wait for the next payload. None once closed.

        Raises asyncio.TimeoutError when timeout elapses first.
        """
        if timeout is None:
            item = await self._queue.get()
        else:
            item = await asyncio.wait_for(self._queue.get(), timeout=timeout)
        if item is _CLOSED:
            # keep the sentinel for any later reader
            self._queue.put_nowait(_CLOSED)
            return None
        return item


class ChangePublisher:
    """Registry of subscriptions plus the non-blocking publish loop."""

    def __init__(
        self,
        queue_size: int = 16,
        max_missed_deliveries: int = 3,
        publish_every_refresh: bool = False,
    ):
        self.queue_size = queue_size
        self.max_missed_deliveries = max_missed_deliveries
        self.publish_every_refresh = publish_every_refresh
        self._subscriptions: dict[str, Subscription] = {}

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self) -> Subscription:
        subscription = Subscription(maxsize=self.queue_size)
        self._subscriptions[subscription.id] = subscription
        logger.info(
            "Subscriber connected (%d total)", self.subscriber_count,
            extra={"subscriber_id": subscription.id},
        )
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        subscription.close()
        if self._subscriptions.pop(subscription.id, None) is not None:
            logger.info(
                "Subscriber removed (%d left)", self.subscriber_count,
                extra={"subscriber_id": subscription.id},
            )

    def publish(self, payload: dict) -> int:
        """Offer payload to every subscriber. Returns how many accepted it."""
        delivered = 0
        generation = payload.get("generation")
        for subscription in list(self._subscriptions.values()):
            result = subscription.offer(payload)
            match result:
                case DeliveryResult.DELIVERED:
                    delivered += 1
                case DeliveryResult.CLOSED:
                    self.unsubscribe(subscription)
                case DeliveryResult.FULL:
                    logger.warning(
                        "Subscriber queue full, payload skipped (%d/%d)",
                        subscription.missed, self.max_missed_deliveries,
                        extra={
                            "subscriber_id": subscription.id,
                            "generation": generation,
                        },
                    )
                    if subscription.missed >= self.max_missed_deliveries:
                        logger.warning(
                            "Dropping unresponsive subscriber",
                            extra={"subscriber_id": subscription.id},
                        )
                        self.unsubscribe(subscription)
        return delivered

    def notify(
        self, old: Snapshot | None, new: Snapshot, changes: Changes,
    ) -> None:
        """SnapshotStore listener: publish the diff of a completed refresh."""
        if not changes and not self.publish_every_refresh:
            logger.debug(
                "No changes, nothing published",
                extra={"generation": new.generation},
            )
            return
        delivered = self.publish(build_change_payload(new, changes))
        logger.info(
            "Published %d anchor change(s) to %d subscriber(s)",
            len(changes), delivered, extra={"generation": new.generation},
        )

    def close_all(self) -> None:
        for subscription in list(self._subscriptions.values()):
            self.unsubscribe(subscription)
