"""Status Board API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map StatusBoardError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - ONE StatusBoard built on startup via lifespan, stored on app.state

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - StatusBoard on app.state, never a module global: lifecycle-scoped cache + publisher
    - Subscribers closed on shutdown so SSE streams end instead of hanging
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from statusboard.api.error_handlers import register_error_handlers
from statusboard.api.routes import health, snapshot
from statusboard.config import get_settings
from statusboard.infrastructure.notion_source import build_notion_source
from statusboard.infrastructure.observability import setup_logging
from statusboard.services.status_board import build_status_board

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    source, normalizer = build_notion_source(settings)
    app.state.status_board = build_status_board(settings, source, normalizer)
    logger.info("Status Board API started")
    yield
    app.state.status_board.close()
    await source.client.aclose()
    logger.info("Status Board API shutting down")


app = FastAPI(
    title="Status Board API", version="1.0.0", lifespan=lifespan,
)

# CORS: origins from settings
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

app.include_router(health.router)
app.include_router(snapshot.router)

register_error_handlers(app)
