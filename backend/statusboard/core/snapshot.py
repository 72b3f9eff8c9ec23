"""Snapshot — immutable aggregation result and the minimal diff between two of them.

Invariants:
    - Snapshot and AnchorCounts are frozen; counts is a read-only mapping over EVERY status
    - A refresh produces a new Snapshot, never mutates the previous one
    - diff() only reports anchors present in the new snapshot, and only changed statuses
    - diff(s, s) == {} for any snapshot s
    - An anchor missing from the old snapshot compares against all-zero counts

Design Decisions:
    - MappingProxyType for counts: read-only view without a custom frozen dict
    - Payload builders live next to the types (ADR: JSON shape owned by core, not routes)
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType

from statusboard.core.domain_types import AnchorId, Generation, SourceId, Status

Changes = dict[AnchorId, dict[Status, int]]


@dataclass(frozen=True)
class AnchorCounts:
    """Per-anchor tally — one row of a Snapshot."""
    anchor_id: AnchorId
    title: str
    anchor_value: int | None
    counts: Mapping[Status, int]
    source_id: SourceId | None = None

    @property
    def total(self) -> int:
        """Number of items bound to this anchor (anchor included)."""
        return sum(self.counts.values())

    def to_payload(self) -> dict:
        return {
            "id": self.anchor_id,
            "title": self.title,
            "anchor_value": self.anchor_value,
            "source_id": self.source_id,
            "counts": {status.value: self.counts.get(status, 0) for status in Status},
        }


@dataclass(frozen=True)
class Snapshot:
    """Aggregation result for one refresh generation."""
    generation: Generation
    anchors: tuple[AnchorCounts, ...] = ()
    generated_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
    failed_sources: tuple[SourceId, ...] = ()

    def to_payload(self) -> dict:
        """JSON-safe dict served by get_snapshot / trigger_refresh."""
        return {
            "generation": self.generation,
            "generated_at": self.generated_at.isoformat(),
            "failed_sources": list(self.failed_sources),
            "anchors": [entry.to_payload() for entry in self.anchors],
        }


def freeze_counts(counts: Mapping[Status, int]) -> Mapping[Status, int]:
    """Read-only copy of a counts map, completed with zeros for absent statuses."""
    return MappingProxyType({status: counts.get(status, 0) for status in Status})


def diff(old: Snapshot | None, new: Snapshot) -> Changes:
    """Minimal per-anchor, per-status changes from old to new.

    old=None (first refresh) behaves like an empty snapshot.
    """
    previous: dict[AnchorId, Mapping[Status, int]] = (
        {entry.anchor_id: entry.counts for entry in old.anchors} if old else {}
    )
    changes: Changes = {}
    for entry in new.anchors:
        before = previous.get(entry.anchor_id, {})
        changed = {
            status: entry.counts.get(status, 0)
            for status in Status
            if entry.counts.get(status, 0) != before.get(status, 0)
        }
        if changed:
            changes[entry.anchor_id] = changed
    return changes


def build_change_payload(snapshot: Snapshot, changes: Changes) -> dict:
    """Push message for subscribers: one per published refresh."""
    return {
        "generation": snapshot.generation,
        "generated_at": snapshot.generated_at.isoformat(),
        "changes": [
            {
                "anchor_id": anchor_id,
                "counts": {status.value: value for status, value in counts.items()},
            }
            for anchor_id, counts in changes.items()
        ],
    }
