"""Notion Records — property readers and the Notion page → Item normalizer.

Invariants:
    - Only records with a string id and an object `properties` are items
      (anything else raises MalformedItemError)
    - Unknown/missing status → Status.NOT_STARTED; missing title → "(no title)"
    - Anchor ordinal parsed from a select name or rich text, leading integer only
    - Parent = first relation id of the first configured parent property present

Design Decisions:
    - Readers are plain functions over the `properties` dict (no SDK models):
      responses come back as JSON dicts regardless of SDK version
    - Property names injected from settings — the normalizer holds no schema literals
"""

import re
from collections.abc import Sequence

from statusboard.core.domain_types import ItemId, Status
from statusboard.core.errors import ErrorContext, MalformedItemError
from statusboard.core.items import Item
from statusboard.core.source_protocols import RawRecord

NO_TITLE = "(no title)"

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def is_page_record(record: object) -> bool:
    """A Notion object usable as a record: has string id and dict properties."""
    return (
        isinstance(record, dict)
        and isinstance(record.get("id"), str)
        and isinstance(record.get("properties"), dict)
    )


def plain_text(fragments: object) -> str:
    """Join plain_text of a rich-text/title fragment list."""
    if not isinstance(fragments, list):
        return ""
    return "".join(
        f.get("plain_text", "") or "" for f in fragments if isinstance(f, dict)
    )


def read_text(prop: object) -> str | None:
    """Text of a title / rich_text / url property, or None if absent/other type."""
    if isinstance(prop, str):
        return prop
    if not isinstance(prop, dict):
        return None
    match prop.get("type"):
        case "title":
            return plain_text(prop.get("title"))
        case "rich_text":
            return plain_text(prop.get("rich_text"))
        case "url":
            url = prop.get("url")
            return url if isinstance(url, str) else None
    return None


def read_title(properties: dict, names: Sequence[str]) -> str:
    prop = next((properties[n] for n in names if n in properties), None)
    text = read_text(prop) if prop is not None else None
    return text if text else NO_TITLE


def parse_leading_int(text: str) -> int | None:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else None


def read_ordinal(prop: object) -> int | None:
    """Anchor ordinal from a select name, rich text or number property."""
    if not isinstance(prop, dict):
        return None
    match prop.get("type"):
        case "select":
            select = prop.get("select") or {}
            name = select.get("name") if isinstance(select, dict) else None
            return parse_leading_int(name) if isinstance(name, str) else None
        case "rich_text":
            return parse_leading_int(plain_text(prop.get("rich_text")).strip())
        case "number":
            number = prop.get("number")
            return int(number) if isinstance(number, (int, float)) else None
    return None


def read_status(prop: object) -> Status:
    """Status from a select or native status property."""
    if not isinstance(prop, dict):
        return Status.NOT_STARTED
    kind = prop.get("type")
    if kind not in ("select", "status"):
        return Status.NOT_STARTED
    option = prop.get(kind)
    name = option.get("name") if isinstance(option, dict) else None
    return Status.parse(name)


def read_checkbox(prop: object) -> bool:
    return (
        isinstance(prop, dict)
        and prop.get("type") == "checkbox"
        and prop.get("checkbox") is True
    )


def read_relation_id(properties: dict, names: Sequence[str]) -> str | None:
    """First related page id of the first present relation property."""
    for name in names:
        prop = properties.get(name)
        if not isinstance(prop, dict) or prop.get("type") != "relation":
            continue
        relation = prop.get("relation")
        if isinstance(relation, list) and relation:
            first = relation[0]
            rel_id = first.get("id") if isinstance(first, dict) else None
            if isinstance(rel_id, str):
                return rel_id
        return None
    return None


class NotionRecordNormalizer:
    """Maps a Notion database page to an Item."""

    def __init__(
        self,
        title_properties: Sequence[str] = ("Name", "Nazwa", "Title"),
        anchor_property: str = "Slot",
        status_property: str = "Status",
        parent_properties: Sequence[str] = ("Parent item", "Parent", "Parent item (name)"),
    ):
        self.title_properties = tuple(title_properties)
        self.anchor_property = anchor_property
        self.status_property = status_property
        self.parent_properties = tuple(parent_properties)

    def normalize(self, record: RawRecord) -> Item:
        if not is_page_record(record):
            record_id = record.get("id") if isinstance(record, dict) else None
            raise MalformedItemError(
                "Record has no string id or no properties object",
                field="id" if not isinstance(record_id, str) else "properties",
                context=ErrorContext(
                    item_id=record_id if isinstance(record_id, str) else None,
                ),
            )
        properties = record["properties"]
        parent_id = read_relation_id(properties, self.parent_properties)
        return Item(
            id=ItemId(record["id"]),
            title=read_title(properties, self.title_properties),
            status=read_status(properties.get(self.status_property)),
            parent_id=ItemId(parent_id) if parent_id else None,
            anchor_value=read_ordinal(properties.get(self.anchor_property)),
        )
