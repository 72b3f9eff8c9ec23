"""API Layer — FastAPI routes, dependencies and error handlers.

Invariants:
    - Routes registered explicitly in main.py (no auto-discovery)
    - All endpoints return structured JSON responses (SSE for the change stream)

Design Decisions:
    - Thin routes delegate to the StatusBoard facade (ADR: impureim sandwich)
"""
