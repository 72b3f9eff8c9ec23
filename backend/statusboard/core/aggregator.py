"""Aggregator — tallies resolved items per anchor by status.

Invariants:
    - Every anchor gets a zeroed counts map over the FULL Status enum
    - Sum of an anchor's counts == number of items bound to it (anchor included)
    - Entry title is "<source_name>::<item_title>" so merged sources stay unique
    - Snapshot rows ordered by anchor_value ascending, None last, stable for ties

Design Decisions:
    - aggregate() is per source, build_snapshot() merges and orders across sources
      (ADR: one source failing must not affect the tally of another)
"""

from collections.abc import Iterable
from datetime import datetime

from statusboard.core.domain_types import AnchorId, Generation, SourceId, Status, zero_counts
from statusboard.core.items import AnchorPolicy, Item, OrdinalAnchorPolicy
from statusboard.core.snapshot import AnchorCounts, Snapshot, freeze_counts
from statusboard.core.tree_resolver import Resolution, index_items


def compose_title(source_name: str, item_title: str) -> str:
    return f"{source_name}::{item_title}"


def aggregate(
    items: Iterable[Item],
    resolution: Resolution,
    source_name: str,
    source_id: SourceId | None = None,
    policy: AnchorPolicy | None = None,
) -> list[AnchorCounts]:
    """Count items per anchor for one source. Unresolved items are dropped."""
    policy = policy or OrdinalAnchorPolicy()
    index, _ = index_items(items)

    tallies: dict[AnchorId, dict[Status, int]] = {
        AnchorId(item_id): zero_counts()
        for item_id, item in index.items()
        if policy.is_anchor(item)
    }
    for item_id, item in index.items():
        anchor_id = resolution.get(item_id)
        if anchor_id is None or anchor_id not in tallies:
            continue
        tallies[anchor_id][item.status] += 1

    return [
        AnchorCounts(
            anchor_id=anchor_id,
            title=compose_title(source_name, index[anchor_id].title),
            anchor_value=index[anchor_id].anchor_value,
            counts=freeze_counts(counts),
            source_id=source_id,
        )
        for anchor_id, counts in tallies.items()
    ]


def order_anchors(entries: Iterable[AnchorCounts]) -> list[AnchorCounts]:
    """Sort by anchor_value ascending; anchors without one go last."""
    return sorted(
        entries,
        key=lambda e: (e.anchor_value is None, e.anchor_value or 0),
    )


def build_snapshot(
    entries: Iterable[AnchorCounts],
    generation: Generation,
    failed_sources: Iterable[SourceId] = (),
    generated_at: datetime | None = None,
) -> Snapshot:
    """Freeze ordered rows into a new Snapshot."""
    kwargs = {"generated_at": generated_at} if generated_at else {}
    return Snapshot(
        generation=generation,
        anchors=tuple(order_anchors(entries)),
        failed_sources=tuple(failed_sources),
        **kwargs,
    )
