"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - ItemId, AnchorId, SourceId wrap str — never mix them in domain logic
    - Status enum order IS the chart order (Not started → Done)
    - Unknown raw status values normalize to Status.NOT_STARTED, never propagate

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders (ADR: counts keyed by label)
"""

from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

ItemId = NewType("ItemId", str)
AnchorId = NewType("AnchorId", str)
SourceId = NewType("SourceId", str)
Generation = NewType("Generation", int)


# ─── Limits ──────────────────────────────────────────────────────

DEFAULT_MAX_CLIMB_DEPTH = 30


# ─── Enums ───────────────────────────────────────────────────────

class Status(str, Enum):
    """Work item status — fixed taxonomy, ordered as rendered."""
    NOT_STARTED = "Not started"
    AWAIT = "Await"
    IN_PROGRESS = "In progress"
    DONE = "Done"

    @classmethod
    def parse(cls, raw: object) -> "Status":
        """Map a raw label to a Status. Anything unrecognized → NOT_STARTED."""
        if isinstance(raw, str):
            for status in cls:
                if status.value == raw:
                    return status
        return cls.NOT_STARTED


class AnchorPolicyName(str, Enum):
    """Which predicate qualifies an item as an aggregation anchor."""
    ORDINAL = "ordinal"  # anchor_value present
    ROOT = "root"        # no parent reference


def zero_counts() -> dict[Status, int]:
    """Counts map with every status explicitly present at zero."""
    return {status: 0 for status in Status}
