"""Snapshot Schemas — Pydantic models for snapshot and change-stream payloads.

Invariants:
    - counts always contains every Status label (zeros explicit)
    - anchors keep Snapshot order (anchor_value ascending, None last)

Design Decisions:
    - Built from core payload dicts (Snapshot.to_payload / build_change_payload):
      one JSON shape for REST and SSE (ADR: schema layer validates, core owns shape)
"""

from datetime import datetime

from pydantic import BaseModel

from statusboard.core.snapshot import Snapshot


class AnchorResponse(BaseModel):
    """One aggregated anchor row."""
    id: str
    title: str
    anchor_value: int | None = None
    source_id: str | None = None
    counts: dict[str, int]


class SnapshotResponse(BaseModel):
    """Current aggregation result."""
    generation: int
    generated_at: datetime
    failed_sources: list[str] = []
    anchors: list[AnchorResponse] = []

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> "SnapshotResponse":
        return cls.model_validate(snapshot.to_payload())


class AnchorChange(BaseModel):
    """Changed statuses of one anchor (new values only)."""
    anchor_id: str
    counts: dict[str, int]


class ChangeMessage(BaseModel):
    """One pushed message per published refresh."""
    generation: int
    generated_at: datetime
    changes: list[AnchorChange] = []
