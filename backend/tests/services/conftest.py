"""Service test fixtures — fake item source, wired StatusBoard, FastAPI test client.

Invariants:
    - Every test gets a fresh StatusBoard (new store, publisher, generation counter)
    - The client fixture installs the board on app.state and overrides get_status_board
    - Overrides and app.state are cleaned up after each test

Design Decisions:
    - ASGITransport does not run the lifespan: no Notion client is ever built in tests
    - Fake source over mocking Notion: pipeline/store/publisher run for real
"""

import pytest
from httpx import ASGITransport, AsyncClient

from statusboard.api.dependencies import get_status_board
from statusboard.main import app
from statusboard.services.change_publisher import ChangePublisher
from statusboard.services.refresh_pipeline import RefreshPipeline
from statusboard.services.snapshot_store import SnapshotStore
from statusboard.services.status_board import StatusBoard
from tests.services.fake_source import DictNormalizer, FakeItemSource, record


@pytest.fixture
def fake_source():
    """One source with the A/B/C tree."""
    return FakeItemSource(
        pages={
            "sprint": [[
                record("A", "Done", slot=1, title="Checkout"),
                record("B", "In progress", parent="A"),
                record("C", "Await", parent="B"),
            ]],
        },
        names={"sprint": "Sprint"},
    )


@pytest.fixture
def board(fake_source):
    return StatusBoard(
        RefreshPipeline(fake_source, DictNormalizer()),
        SnapshotStore(),
        ChangePublisher(),
        ttl_seconds=30.0,
    )


@pytest.fixture
async def client(board):
    """FastAPI test client bound to the test StatusBoard."""
    app.state.status_board = board
    app.dependency_overrides[get_status_board] = lambda: board
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
    del app.state.status_board
