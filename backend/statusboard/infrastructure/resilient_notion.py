"""Resilient Notion Client — wraps notion_client.AsyncClient with retry, backoff, and error mapping.

Invariants:
    - Rate limits (429): exponential backoff with jitter, respects Retry-After header
    - Transient errors (5xx, timeouts, transport): max N retries with exponential backoff
    - Client errors (4xx except 429): immediate failure, no retry
    - All failures mapped to SourceUnavailableError (core/errors.py)

Design Decisions:
    - Wrapper over raw client: isolates retry logic from the item source (ADR: single responsibility)
    - ±25% jitter on backoff: prevents thundering herd on the shared integration token
    - Generic request() over databases.query(): SDK 3.x moved queries to data sources;
      request() keeps the database endpoint pinned to notion_version
"""

import asyncio
import logging
import random

import httpx
from notion_client import APIErrorCode, APIResponseError, AsyncClient
from notion_client.errors import HTTPResponseError, RequestTimeoutError

from statusboard.core.errors import SourceUnavailableError

logger = logging.getLogger(__name__)

_TRANSIENT_CODES = (
    APIErrorCode.InternalServerError,
    APIErrorCode.ServiceUnavailable,
    APIErrorCode.GatewayTimeout,
    APIErrorCode.ConflictError,
)


def _is_transient_status(status: int | None) -> bool:
    return status is not None and status >= 500


class ResilientNotionClient:
    """Wraps the Notion SDK client with retry logic, timeouts, and error mapping."""

    def __init__(
        self,
        token: str,
        notion_version: str = "2022-06-28",
        max_retries: int = 3,
        base_delay_ms: int = 500,
        max_delay_ms: int = 30_000,
        timeout_seconds: int = 60,
        client: AsyncClient | None = None,
    ):
        # SDK retries off: this wrapper owns the retry policy
        self.client = client or AsyncClient(
            auth=token,
            notion_version=notion_version,
            timeout_ms=timeout_seconds * 1000,
            logger=logging.getLogger("notion_client"),
            retry=False,
        )
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms

    async def query_database(
        self,
        database_id: str,
        start_cursor: str | None = None,
        page_size: int = 100,
    ) -> dict:
        """POST databases/{id}/query with automatic retry on transient failures."""
        body: dict = {"page_size": page_size}
        if start_cursor:
            body["start_cursor"] = start_cursor

        for attempt in range(self.max_retries + 1):
            try:
                response = await self.client.request(
                    path=f"databases/{database_id}/query",
                    method="POST",
                    body=body,
                )
                logger.debug(
                    "Notion query success",
                    extra={"source_id": database_id, "attempt": attempt + 1},
                )
                return response

            except APIResponseError as e:
                if e.code == APIErrorCode.RateLimited:
                    await self._handle_rate_limit(e, attempt, database_id)
                elif e.code in _TRANSIENT_CODES or _is_transient_status(e.status):
                    await self._handle_transient_error(e, attempt, database_id)
                else:
                    raise SourceUnavailableError(
                        database_id, f"Notion API error ({e.code}): {e}",
                    ) from e

            except HTTPResponseError as e:
                if e.status == 429:
                    await self._handle_rate_limit(e, attempt, database_id)
                elif _is_transient_status(e.status):
                    await self._handle_transient_error(e, attempt, database_id)
                else:
                    raise SourceUnavailableError(
                        database_id, f"Notion HTTP {e.status}",
                    ) from e

            except (RequestTimeoutError, httpx.TransportError) as e:
                await self._handle_transient_error(e, attempt, database_id)

        raise SourceUnavailableError(database_id, "retries exhausted")

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _handle_rate_limit(
        self, e: HTTPResponseError, attempt: int, database_id: str,
    ) -> None:
        """Handle rate limit error with retry or raise."""
        retry_after_ms = self._extract_retry_after(e)
        if attempt >= self.max_retries:
            raise SourceUnavailableError(
                database_id,
                "rate limit exceeded after retries",
                retry_after_ms=retry_after_ms,
            ) from e
        delay = retry_after_ms or self._backoff(attempt)
        logger.warning(
            f"Notion rate limit hit, retry after {delay}ms (attempt {attempt + 1})",
            extra={"source_id": database_id, "attempt": attempt + 1},
        )
        await asyncio.sleep(delay / 1000)

    async def _handle_transient_error(
        self, e: Exception, attempt: int, database_id: str,
    ) -> None:
        """Handle transient errors with retry or raise."""
        if attempt >= self.max_retries:
            raise SourceUnavailableError(
                database_id,
                f"transient failure after {self.max_retries} retries: {e}",
            ) from e
        delay = self._backoff(attempt)
        logger.warning(
            f"Notion transient error, retry after {delay}ms: {e}",
            extra={"source_id": database_id, "attempt": attempt + 1},
        )
        await asyncio.sleep(delay / 1000)

    def _backoff(self, attempt: int) -> int:
        """Exponential backoff with ±25% jitter."""
        delay = min(self.max_delay_ms, (2 ** attempt) * self.base_delay_ms)
        return int(delay * random.uniform(0.75, 1.25))  # nosec B311

    def _extract_retry_after(self, error: HTTPResponseError) -> int | None:
        """Extract Retry-After header (returns milliseconds)."""
        headers = getattr(error, "headers", None)
        if not headers:
            return None
        val = headers.get("retry-after")
        try:
            return int(float(val) * 1000) if val else None
        except (TypeError, ValueError):
            return None
