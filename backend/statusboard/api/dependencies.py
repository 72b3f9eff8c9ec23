"""API Dependencies — request-scoped access to lifecycle-scoped objects."""

from fastapi import Request

from statusboard.core.errors import SnapshotUnavailableError
from statusboard.services.status_board import StatusBoard


def get_status_board(request: Request) -> StatusBoard:
    """The process-wide StatusBoard built in the app lifespan."""
    board = getattr(request.app.state, "status_board", None)
    if board is None:
        raise SnapshotUnavailableError("Status board is not initialized")
    return board
