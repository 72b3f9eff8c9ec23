"""Health & Readiness Probes — liveness and readiness endpoints for container orchestration.

Invariants:
    - GET /health/ always returns 200 if process is up (liveness)
    - GET /health/ready returns 503 until a snapshot has been computed (readiness)

Design Decisions:
    - Separate liveness/readiness: liveness restarts, readiness removes from load
      balancer (ADR: production readiness)
    - Readiness never triggers a refresh — probes must not hit the item source
"""

import logging
from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    """Basic liveness probe. Returns 200 if the process is up."""
    return {
        "status": "healthy",
        "service": "statusboard-api",
        "version": "1.0.0",
    }


@router.get("/ready")
async def readiness_check(request: Request):
    """Readiness probe — a snapshot is cached."""
    board = getattr(request.app.state, "status_board", None)
    if board is None or not board.has_snapshot:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "reason": "no_snapshot" if board else "not_initialized",
            },
        )
    return {
        "status": "ready",
        "checks": {
            "generation": board.store.snapshot.generation,
            "refreshing": board.store.refresh_in_flight,
            "subscribers": board.publisher.subscriber_count,
        },
    }
