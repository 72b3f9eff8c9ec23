"""Change Stream Helpers — SSE formatting and the per-subscriber event generator.

Invariants:
    - First event replays the cached snapshot (if any) so a client starts in sync
    - One `changes` event per payload the subscription receives, in generation order
    - Heartbeat comment every heartbeat_seconds of silence (detects dead connections)
    - When the publisher drops the subscription the stream ends with a `done` event
      carrying resync=True
    - The subscription is created by the generator itself and always unsubscribed
      when it exits

Design Decisions:
    - Extracted from the route so the generator is testable without an HTTP stream
    - SSE comments (": keepalive") for heartbeats: ignored by EventSource clients
"""

import asyncio
import json
import logging
from collections.abc import AsyncIterator

from statusboard.core.snapshot import Snapshot
from statusboard.schemas.snapshot import ChangeMessage
from statusboard.services.status_board import StatusBoard

logger = logging.getLogger(__name__)

# ADR: SSE headers prevent proxy/browser buffering of streamed events.
SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
    "Connection": "keep-alive",
}

KEEPALIVE = ": keepalive\n\n"


def sse_line(event: dict) -> str:
    """Format event as SSE data line."""
    return f"data: {json.dumps(event, ensure_ascii=False)}\n\n"


def snapshot_event(snapshot: Snapshot) -> dict:
    return {"type": "snapshot", "data": snapshot.to_payload()}


def changes_event(payload: dict) -> dict:
    """SSE changes event, validated against ChangeMessage."""
    message = ChangeMessage.model_validate(payload)
    return {"type": "changes", "data": message.model_dump(mode="json")}


def done_event(resync: bool = False) -> dict:
    """SSE done event — resync tells the client to GET the snapshot again."""
    return {"type": "done", "data": {"resync": resync}}


async def stream_changes(
    board: StatusBoard,
    heartbeat_seconds: float | None = 15.0,
) -> AsyncIterator[str]:
    """Yield SSE lines for one subscriber until it disconnects or is dropped.

    Subscribes on the first step, so a body that never starts registers nothing.
    """
    subscription = board.subscribe_to_changes()
    try:
        cached = board.store.snapshot
        if cached is not None:
            subscription.last_generation = cached.generation
            yield sse_line(snapshot_event(cached))
        while True:
            try:
                payload = await subscription.next_payload(timeout=heartbeat_seconds)
            except asyncio.TimeoutError:
                yield KEEPALIVE
                continue
            if payload is None:
                yield sse_line(done_event(resync=True))
                return
            yield sse_line(changes_event(payload))
    except asyncio.CancelledError:
        logger.info(
            "Client disconnected from change stream",
            extra={"subscriber_id": subscription.id},
        )
        raise
    finally:
        board.unsubscribe(subscription)
