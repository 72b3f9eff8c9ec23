"""Snapshot Store — one cached Snapshot, TTL freshness, single-flight refresh.

Invariants:
    - Holds exactly one Snapshot plus the monotonic time it was computed
    - At most ONE refresh runs at a time; overlapping callers await the same task
    - Only the in-flight refresh task writes _snapshot/_computed_at (single writer)
    - Listeners receive (old, new, changes) in generation order, before waiters resume
    - A failed refresh serves the last good Snapshot; with none cached it raises

Design Decisions:
    - asyncio.Task + shield over asyncio.Lock: no lock held across awaits, and a
      disconnecting caller never cancels the shared refresh (ADR: request storms
      collapse into one fetch)
    - Injectable clock: TTL behaviour testable without sleeping
    - Listener errors logged, never raised (publishing must not fail a refresh)
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from statusboard.core.errors import (
    RefreshTimeoutError,
    SnapshotUnavailableError,
    StatusBoardError,
)
from statusboard.core.snapshot import Changes, Snapshot, diff

logger = logging.getLogger(__name__)

RefreshFn = Callable[[], Awaitable[Snapshot]]
ChangeListener = Callable[[Snapshot | None, Snapshot, Changes], None]


class SnapshotStore:
    """Lifecycle-scoped cache for the latest Snapshot."""

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        refresh_timeout_seconds: float | None = None,
    ):
        self._clock = clock
        self.refresh_timeout_seconds = refresh_timeout_seconds
        self._snapshot: Snapshot | None = None
        self._computed_at: float | None = None
        self._inflight: asyncio.Task | None = None
        self._listeners: list[ChangeListener] = []

    @property
    def snapshot(self) -> Snapshot | None:
        return self._snapshot

    @property
    def refresh_in_flight(self) -> bool:
        return self._inflight is not None

    def age(self) -> float | None:
        """Seconds since the cached Snapshot was computed (None if empty)."""
        if self._computed_at is None:
            return None
        return self._clock() - self._computed_at

    def add_listener(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    async def get_or_refresh(self, refresh_fn: RefreshFn, ttl: float) -> Snapshot:
        """Return the cached Snapshot if younger than ttl, else refresh (single-flight)."""
        age = self.age()
        if self._snapshot is not None and age is not None and age < ttl:
            return self._snapshot
        if self._inflight is None:
            self._inflight = asyncio.create_task(self._refresh(refresh_fn))
        else:
            logger.debug("Refresh in flight, joining it")
        return await asyncio.shield(self._inflight)

    async def _refresh(self, refresh_fn: RefreshFn) -> Snapshot:
        try:
            try:
                new = await self._run(refresh_fn)
            except Exception as exc:
                return self._fallback(exc)
            old = self._snapshot
            self._snapshot = new
            self._computed_at = self._clock()
            self._notify(old, new, diff(old, new))
            return new
        finally:
            self._inflight = None

    async def _run(self, refresh_fn: RefreshFn) -> Snapshot:
        if self.refresh_timeout_seconds is None:
            return await refresh_fn()
        try:
            return await asyncio.wait_for(
                refresh_fn(), timeout=self.refresh_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise RefreshTimeoutError(self.refresh_timeout_seconds) from e

    def _fallback(self, exc: Exception) -> Snapshot:
        """Serve the last good Snapshot, or surface the failure."""
        if self._snapshot is not None:
            logger.warning(
                "Refresh failed, serving cached snapshot: %s", exc,
                extra={"generation": self._snapshot.generation},
            )
            return self._snapshot
        logger.error("Refresh failed with no cached snapshot: %s", exc)
        if isinstance(exc, StatusBoardError):
            raise exc
        raise SnapshotUnavailableError(
            "Refresh failed and no snapshot is cached",
        ) from exc

    def _notify(
        self, old: Snapshot | None, new: Snapshot, changes: Changes,
    ) -> None:
        for listener in self._listeners:
            try:
                listener(old, new, changes)
            except Exception as e:
                logger.error(
                    "Change listener failed: %s", e,
                    extra={"generation": new.generation}, exc_info=True,
                )
