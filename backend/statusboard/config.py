"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache) — single instance per process
    - Notion property names are settings, not literals in the normalizer

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
      (ADR: developer UX)
    - Defaults provided for all non-secret settings; property-name defaults match the
      workspace the board was first built for
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from statusboard.core.domain_types import AnchorPolicyName, DEFAULT_MAX_CLIMB_DEPTH


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Notion
    notion_token: str = ""
    notion_master_db_url: str = ""
    notion_version: str = "2022-06-28"
    notion_page_size: int = 100
    notion_max_retries: int = 3
    notion_timeout_seconds: int = 60
    notion_base_delay_ms: int = 500
    notion_max_delay_ms: int = 30_000

    # Notion property names: master database
    master_active_property: str = "Aktywna"
    master_link_property: str = "Link do bazy"
    master_name_property: str = "Nazwa bazy"

    # Notion property names: child databases
    title_properties: list[str] = ["Name", "Nazwa", "Title"]
    anchor_property: str = "Slot"
    status_property: str = "Status"
    parent_properties: list[str] = ["Parent item", "Parent", "Parent item (name)"]

    # Aggregation
    anchor_policy: AnchorPolicyName = AnchorPolicyName.ORDINAL
    max_climb_depth: int = DEFAULT_MAX_CLIMB_DEPTH

    @field_validator("max_climb_depth")
    @classmethod
    def positive_depth(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_climb_depth must be >= 1")
        return v

    # Snapshot store
    snapshot_ttl_seconds: float = 30.0
    refresh_timeout_seconds: float | None = None

    # Change publisher
    publish_every_refresh: bool = False
    subscriber_queue_size: int = 16
    max_missed_deliveries: int = 3
    sse_heartbeat_seconds: float = 15.0

    # API
    cors_origins: list[str] = ["http://localhost:3000"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
