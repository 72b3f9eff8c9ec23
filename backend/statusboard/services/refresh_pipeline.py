"""Refresh Pipeline — one full pass: sources → items → resolution → counts → Snapshot.

Invariants:
    - Sources are fetched sequentially; each paginated until next_cursor is None
    - A failing source (any exception) is logged and listed in failed_sources;
      the rest still aggregate
    - A malformed record is logged and skipped; the batch continues
    - Only a total failure (listing failed, or every source failed) raises
      SnapshotUnavailableError
    - Generations increase monotonically per pipeline instance

Design Decisions:
    - Sequential sources over gather(): external APIs rate-limit per token and
      a refresh is already single-flight (ADR: predictable load)
    - Items are rebuilt every run and discarded after aggregation (no item cache)
"""

import itertools
import logging
from collections.abc import AsyncIterator

from statusboard.core.aggregator import aggregate, build_snapshot
from statusboard.core.domain_types import DEFAULT_MAX_CLIMB_DEPTH, Generation, SourceId
from statusboard.core.errors import (
    ErrorContext,
    MalformedItemError,
    SnapshotUnavailableError,
    SourceUnavailableError,
)
from statusboard.core.items import AnchorPolicy, Item, OrdinalAnchorPolicy
from statusboard.core.snapshot import AnchorCounts, Snapshot
from statusboard.core.source_protocols import (
    ItemSource,
    RawRecord,
    RecordNormalizer,
    SourceDescriptor,
)
from statusboard.core.tree_resolver import index_items, resolve

logger = logging.getLogger(__name__)


class RefreshPipeline:
    """Builds a fresh Snapshot from every configured source."""

    def __init__(
        self,
        source: ItemSource,
        normalizer: RecordNormalizer,
        policy: AnchorPolicy | None = None,
        max_depth: int = DEFAULT_MAX_CLIMB_DEPTH,
    ):
        self.source = source
        self.normalizer = normalizer
        self.policy = policy or OrdinalAnchorPolicy()
        self.max_depth = max_depth
        self._generations = itertools.count(1)

    async def run(self) -> Snapshot:
        """Execute one refresh. Raises SnapshotUnavailableError on total failure."""
        generation = Generation(next(self._generations))
        ctx = ErrorContext(generation=generation)
        try:
            sources = await self.source.list_sources()
        except SourceUnavailableError as e:
            logger.error(
                "Source listing failed: %s", e.message,
                extra={"generation": generation, "error_code": e.code},
            )
            raise SnapshotUnavailableError(
                "Could not list item sources", context=ctx,
            ) from e

        entries: list[AnchorCounts] = []
        failed: list[SourceId] = []
        for descriptor in sources:
            try:
                items = await self.collect_items(descriptor)
            except SourceUnavailableError as e:
                logger.warning(
                    "Source skipped: %s", e.message,
                    extra={
                        "source_id": descriptor.id, "generation": generation,
                        "error_code": e.code,
                    },
                )
                failed.append(descriptor.id)
                continue
            except Exception as e:
                logger.error(
                    "Source failed unexpectedly: %s", e,
                    extra={"source_id": descriptor.id, "generation": generation},
                    exc_info=True,
                )
                failed.append(descriptor.id)
                continue
            entries.extend(self._aggregate_source(descriptor, items))

        if sources and len(failed) == len(sources):
            raise SnapshotUnavailableError(
                f"All {len(sources)} item sources failed", context=ctx,
            )

        snapshot = build_snapshot(entries, generation, failed)
        logger.info(
            "Refresh complete: %d anchors from %d/%d sources",
            len(snapshot.anchors), len(sources) - len(failed), len(sources),
            extra={"generation": generation},
        )
        return snapshot

    async def iter_records(self, source_id: SourceId) -> AsyncIterator[RawRecord]:
        """Lazily walk every page of one source."""
        cursor: str | None = None
        while True:
            page = await self.source.fetch_page(source_id, cursor)
            for record in page.records:
                yield record
            if page.next_cursor is None:
                return
            cursor = page.next_cursor

    async def collect_items(self, descriptor: SourceDescriptor) -> list[Item]:
        """Normalize every record of one source, skipping malformed ones."""
        items: list[Item] = []
        skipped = 0
        async for record in self.iter_records(descriptor.id):
            try:
                items.append(self.normalizer.normalize(record))
            except MalformedItemError as e:
                skipped += 1
                logger.warning(
                    "Malformed record skipped: %s", e.message,
                    extra={"source_id": descriptor.id, "error_code": e.code},
                )
        if skipped:
            logger.info(
                "%d malformed record(s) skipped in %s", skipped, descriptor.name,
                extra={"source_id": descriptor.id},
            )
        return items

    def _aggregate_source(
        self, descriptor: SourceDescriptor, items: list[Item],
    ) -> list[AnchorCounts]:
        """Resolve + tally one source's items (pure core, logged here)."""
        _, duplicates = index_items(items)
        if duplicates:
            logger.warning(
                "%d duplicate item id(s) ignored", len(duplicates),
                extra={"source_id": descriptor.id},
            )
        resolution = resolve(items, self.policy, self.max_depth)
        unresolved = sum(1 for anchor_id in resolution.values() if anchor_id is None)
        if unresolved:
            logger.debug(
                "%d item(s) unresolved (no anchor within %d hops)",
                unresolved, self.max_depth,
                extra={"source_id": descriptor.id},
            )
        return aggregate(
            items, resolution, descriptor.name, descriptor.id, self.policy,
        )
