"""Tree Resolver — rebuilds ownership over a flat item list and binds items to anchors.

Invariants:
    - Every item resolves to AT MOST one anchor (None = unresolved)
    - An anchor always resolves to itself, whatever its parent_id says
    - Climbing is iterative and bounded by max_depth hops — cycles, self-references
      and over-deep chains end unresolved, never raise
    - The nearest anchor wins (first one met while climbing)

Design Decisions:
    - Arena + id references (dict index) over object pointers: cycles are harmless
      because nothing recurses (ADR: bounded stack)
    - Duplicate ids: first occurrence wins; later ones are reported, not merged
"""

from collections.abc import Iterable

from statusboard.core.domain_types import AnchorId, DEFAULT_MAX_CLIMB_DEPTH, ItemId
from statusboard.core.items import AnchorPolicy, Item, OrdinalAnchorPolicy

Resolution = dict[ItemId, AnchorId | None]


def index_items(items: Iterable[Item]) -> tuple[dict[ItemId, Item], list[ItemId]]:
    """Build the id → Item index in one pass.

    Returns (index, duplicate_ids). Index preserves first-seen order.
    """
    index: dict[ItemId, Item] = {}
    duplicates: list[ItemId] = []
    for item in items:
        if item.id in index:
            duplicates.append(item.id)
            continue
        index[item.id] = item
    return index, duplicates


def resolve(
    items: Iterable[Item],
    policy: AnchorPolicy | None = None,
    max_depth: int = DEFAULT_MAX_CLIMB_DEPTH,
) -> Resolution:
    """Map every item id to its governing anchor id, or None when unresolved."""
    policy = policy or OrdinalAnchorPolicy()
    index, _ = index_items(items)
    anchors = {item_id for item_id, item in index.items() if policy.is_anchor(item)}

    resolution: Resolution = {}
    for item_id, item in index.items():
        if item_id in anchors:
            resolution[item_id] = AnchorId(item_id)
        else:
            resolution[item_id] = _climb(item, index, anchors, max_depth)
    return resolution


def _climb(
    item: Item,
    index: dict[ItemId, Item],
    anchors: set[ItemId],
    max_depth: int,
) -> AnchorId | None:
    """Walk parent references until an anchor, a gap, or the depth bound."""
    current = item.parent_id
    depth = 0
    while current is not None and depth < max_depth:
        if current in anchors:
            return AnchorId(current)
        parent = index.get(current)
        if parent is None:
            return None
        current = parent.parent_id
        depth += 1
    return None
