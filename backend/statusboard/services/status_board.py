"""Status Board — the engine facade: pull snapshots, force refreshes, push changes.

Invariants:
    - ONE StatusBoard per process, built in the app lifespan (never a module global)
    - get_snapshot and trigger_refresh share one pipeline through the store's single-flight
    - Every completed refresh reaches the publisher through the store listener

Design Decisions:
    - Facade over exposing store/publisher to routes: routes stay thin
    - trigger_refresh is get_or_refresh with ttl=0 — joins an in-flight refresh
      instead of starting a second one
"""

from statusboard.config import Settings
from statusboard.core.items import get_anchor_policy
from statusboard.core.snapshot import Snapshot
from statusboard.core.source_protocols import ItemSource, RecordNormalizer
from statusboard.services.change_publisher import ChangePublisher, Subscription
from statusboard.services.refresh_pipeline import RefreshPipeline
from statusboard.services.snapshot_store import SnapshotStore


class StatusBoard:
    """Pull + push access to the aggregated status snapshot."""

    def __init__(
        self,
        pipeline: RefreshPipeline,
        store: SnapshotStore,
        publisher: ChangePublisher,
        ttl_seconds: float = 30.0,
    ):
        self.pipeline = pipeline
        self.store = store
        self.publisher = publisher
        self.ttl_seconds = ttl_seconds
        store.add_listener(publisher.notify)

    @property
    def has_snapshot(self) -> bool:
        return self.store.snapshot is not None

    async def get_snapshot(self) -> Snapshot:
        """Cached Snapshot within the TTL window, otherwise a fresh one."""
        return await self.store.get_or_refresh(self.pipeline.run, self.ttl_seconds)

    async def trigger_refresh(self) -> Snapshot:
        """Up-to-date Snapshot, obeying the at-most-one-in-flight rule."""
        return await self.store.get_or_refresh(self.pipeline.run, ttl=0)

    def subscribe_to_changes(self) -> Subscription:
        return self.publisher.subscribe()

    def unsubscribe(self, subscription: Subscription) -> None:
        self.publisher.unsubscribe(subscription)

    def close(self) -> None:
        self.publisher.close_all()


def build_status_board(
    settings: Settings, source: ItemSource, normalizer: RecordNormalizer,
) -> StatusBoard:
    """Wire pipeline, store and publisher from settings."""
    pipeline = RefreshPipeline(
        source,
        normalizer,
        policy=get_anchor_policy(settings.anchor_policy),
        max_depth=settings.max_climb_depth,
    )
    store = SnapshotStore(
        refresh_timeout_seconds=settings.refresh_timeout_seconds,
    )
    publisher = ChangePublisher(
        queue_size=settings.subscriber_queue_size,
        max_missed_deliveries=settings.max_missed_deliveries,
        publish_every_refresh=settings.publish_every_refresh,
    )
    return StatusBoard(
        pipeline, store, publisher, ttl_seconds=settings.snapshot_ttl_seconds,
    )
