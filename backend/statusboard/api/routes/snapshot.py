"""Snapshot Routes — pull the aggregated snapshot, force a refresh, stream changes.

Invariants:
    - GET /snapshot is served from cache within the TTL window
    - POST /snapshot/refresh never starts a second refresh while one is in flight
    - GET /snapshot/changes is an SSE stream; one subscription per connection,
      registered once the response body starts
    - Total refresh failure with nothing cached → 503 via StatusBoardError handler

Design Decisions:
    - StatusBoard resolved through a dependency (app.state), not a module global:
      tests override get_status_board
    - StreamingResponse for SSE: stream_changes yields formatted SSE lines
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from statusboard.api.dependencies import get_status_board
from statusboard.api.routes.change_stream_helpers import SSE_HEADERS, stream_changes
from statusboard.config import get_settings
from statusboard.schemas.snapshot import SnapshotResponse
from statusboard.services.status_board import StatusBoard

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/snapshot", tags=["snapshot"])


@router.get("", response_model=SnapshotResponse)
async def get_snapshot(board: StatusBoard = Depends(get_status_board)):
    """Current snapshot — cached within the freshness window."""
    snapshot = await board.get_snapshot()
    return SnapshotResponse.from_snapshot(snapshot)


@router.post("/refresh", response_model=SnapshotResponse)
async def trigger_refresh(board: StatusBoard = Depends(get_status_board)):
    """Recompute now (or join the refresh already running)."""
    snapshot = await board.trigger_refresh()
    return SnapshotResponse.from_snapshot(snapshot)


@router.get("/changes")
async def subscribe_to_changes(board: StatusBoard = Depends(get_status_board)):
    """SSE stream of per-refresh change payloads."""
    return StreamingResponse(
        stream_changes(
            board, heartbeat_seconds=get_settings().sse_heartbeat_seconds,
        ),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
