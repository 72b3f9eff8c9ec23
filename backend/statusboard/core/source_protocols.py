"""Boundary Protocols — contracts between the aggregation core and item sources.

Invariants:
    - Core NEVER imports from infrastructure — dependency arrows point inward only
    - Sources are paginated: fetch_page is called until next_cursor is None
    - Normalizers return the exact Item shape or raise MalformedItemError

Design Decisions:
    - Protocol over ABC: structural subtyping, test fakes need no inheritance
    - Async in Protocol: implementations do IO; the pure resolver/aggregator never await
"""

from dataclasses import dataclass, field
from typing import Any, Protocol

from statusboard.core.domain_types import SourceId
from statusboard.core.items import Item

RawRecord = dict[str, Any]


@dataclass(frozen=True)
class SourceDescriptor:
    """One contributing source: id for fetching, name for titles."""
    id: SourceId
    name: str


@dataclass(frozen=True)
class RecordPage:
    """One page of raw records plus the cursor of the next page."""
    records: list[RawRecord] = field(default_factory=list)
    next_cursor: str | None = None


class ItemSource(Protocol):
    """Contract for paginated record retrieval — implemented by infrastructure."""
    async def list_sources(self) -> list[SourceDescriptor]: ...
    async def fetch_page(
        self, source_id: SourceId, cursor: str | None,
    ) -> RecordPage: ...


class RecordNormalizer(Protocol):
    """Contract for raw record → Item mapping — one per source schema."""
    def normalize(self, record: RawRecord) -> Item: ...
