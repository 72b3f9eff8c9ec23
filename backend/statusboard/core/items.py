"""Items — the normalized work-item shape and the anchor qualification policy.

Invariants:
    - Item is frozen: lives for one refresh cycle, never mutated
    - status is always a Status member (normalizers map unknown labels to the default)
    - Anchor qualification is ONE predicate (AnchorPolicy), never inlined elsewhere

Design Decisions:
    - Protocol over ABC for AnchorPolicy: structural subtyping, no hierarchy
    - Two policies because anchors were defined both ways historically:
      ordinal presence (default) and parent absence (ADR: keep the predicate pluggable)
"""

from dataclasses import dataclass
from typing import Protocol

from statusboard.core.domain_types import AnchorPolicyName, ItemId, Status


@dataclass(frozen=True)
class Item:
    """One normalized work unit."""
    id: ItemId
    title: str
    status: Status = Status.NOT_STARTED
    parent_id: ItemId | None = None
    anchor_value: int | None = None


class AnchorPolicy(Protocol):
    """Decides whether an item is an aggregation anchor."""
    def is_anchor(self, item: Item) -> bool: ...


class OrdinalAnchorPolicy:
    """Anchor = item carrying an anchor ordinal."""

    def is_anchor(self, item: Item) -> bool:
        return item.anchor_value is not None


class RootAnchorPolicy:
    """Anchor = item without a parent reference (i.e. not a sub-item)."""

    def is_anchor(self, item: Item) -> bool:
        return item.parent_id is None


def get_anchor_policy(name: AnchorPolicyName | str) -> AnchorPolicy:
    """Resolve a configured policy name to its predicate."""
    match AnchorPolicyName(name):
        case AnchorPolicyName.ORDINAL:
            return OrdinalAnchorPolicy()
        case AnchorPolicyName.ROOT:
            return RootAnchorPolicy()
