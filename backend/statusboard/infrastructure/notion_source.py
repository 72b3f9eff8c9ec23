"""Notion Item Source — master database listing + paginated child database queries.

Invariants:
    - list_sources() returns only rows whose active checkbox is ticked and whose
      link parses to a database id; other rows are skipped with a warning
    - fetch_page() returns records with a string id and a properties object only
    - Every Notion failure surfaces as SourceUnavailableError (via ResilientNotionClient)

Design Decisions:
    - The master database is itself paginated through fetch_page (same code path)
    - Database ids normalized with notion_client.extract_database_id (dashed, lowercase)
"""

import logging
import re

from notion_client import extract_database_id

from statusboard.config import Settings
from statusboard.core.domain_types import SourceId
from statusboard.core.errors import SourceConfigurationError
from statusboard.core.source_protocols import RecordPage, SourceDescriptor
from statusboard.infrastructure.notion_records import (
    NotionRecordNormalizer,
    is_page_record,
    read_checkbox,
    read_text,
)
from statusboard.infrastructure.resilient_notion import ResilientNotionClient

logger = logging.getLogger(__name__)

_DASHED_UUID = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.IGNORECASE,
)


def database_id_from_url(url: str) -> SourceId:
    """Dashed database id from the last path segment of a Notion URL.

    The segment may hold 32 hex chars (optionally title-prefixed) or a dashed UUID.
    """
    if not url or not isinstance(url, str):
        raise SourceConfigurationError("Empty Notion database URL")
    segment = url.split("?")[0].split("#")[0].rstrip("/").rsplit("/", 1)[-1]
    database_id = extract_database_id(segment)
    if not database_id:
        match = _DASHED_UUID.search(segment)
        database_id = match.group(0).lower() if match else None
    if not database_id:
        raise SourceConfigurationError(
            f"Could not extract a database id from URL: {url}",
        )
    return SourceId(database_id)


class NotionItemSource:
    """ItemSource backed by a Notion master database of child databases."""

    def __init__(
        self,
        client: ResilientNotionClient,
        master_database_id: SourceId,
        page_size: int = 100,
        active_property: str = "Aktywna",
        link_property: str = "Link do bazy",
        name_property: str = "Nazwa bazy",
    ):
        self.client = client
        self.master_database_id = master_database_id
        self.page_size = page_size
        self.active_property = active_property
        self.link_property = link_property
        self.name_property = name_property

    async def list_sources(self) -> list[SourceDescriptor]:
        """Active child databases listed in the master database."""
        sources: list[SourceDescriptor] = []
        cursor: str | None = None
        while True:
            page = await self.fetch_page(self.master_database_id, cursor)
            for row in page.records:
                descriptor = self._read_master_row(row)
                if descriptor is not None:
                    sources.append(descriptor)
            if page.next_cursor is None:
                break
            cursor = page.next_cursor
        logger.info(
            "Master database lists %d active source(s)", len(sources),
            extra={"source_id": self.master_database_id},
        )
        return sources

    async def fetch_page(
        self, source_id: SourceId, cursor: str | None,
    ) -> RecordPage:
        response = await self.client.query_database(
            source_id, start_cursor=cursor, page_size=self.page_size,
        )
        results = response.get("results")
        records = [r for r in results if is_page_record(r)] if isinstance(results, list) else []
        next_cursor = response.get("next_cursor") if response.get("has_more") else None
        return RecordPage(records=records, next_cursor=next_cursor or None)

    def _read_master_row(self, row: dict) -> SourceDescriptor | None:
        properties = row["properties"]
        if not read_checkbox(properties.get(self.active_property)):
            return None
        url = read_text(properties.get(self.link_property))
        if not url:
            logger.warning(
                "Active master row without a database link, skipped",
                extra={"item_id": row["id"]},
            )
            return None
        try:
            source_id = database_id_from_url(url)
        except SourceConfigurationError as e:
            logger.warning(
                "Unparsable database link skipped: %s", e.message,
                extra={"item_id": row["id"]},
            )
            return None
        name = read_text(properties.get(self.name_property)) or url
        return SourceDescriptor(id=source_id, name=name)


def build_notion_source(
    settings: Settings,
) -> tuple[NotionItemSource, NotionRecordNormalizer]:
    """Construct the Notion source + normalizer from settings."""
    if not settings.notion_token:
        raise SourceConfigurationError("NOTION_TOKEN is not set")
    if not settings.notion_master_db_url:
        raise SourceConfigurationError("NOTION_MASTER_DB_URL is not set")
    client = ResilientNotionClient(
        token=settings.notion_token,
        notion_version=settings.notion_version,
        max_retries=settings.notion_max_retries,
        base_delay_ms=settings.notion_base_delay_ms,
        max_delay_ms=settings.notion_max_delay_ms,
        timeout_seconds=settings.notion_timeout_seconds,
    )
    source = NotionItemSource(
        client,
        database_id_from_url(settings.notion_master_db_url),
        page_size=settings.notion_page_size,
        active_property=settings.master_active_property,
        link_property=settings.master_link_property,
        name_property=settings.master_name_property,
    )
    normalizer = NotionRecordNormalizer(
        title_properties=settings.title_properties,
        anchor_property=settings.anchor_property,
        status_property=settings.status_property,
        parent_properties=settings.parent_properties,
    )
    return source, normalizer
