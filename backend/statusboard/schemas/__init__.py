"""Pydantic Schemas — response validation for API endpoints.

Invariants:
    - Schemas validate at system boundary (API responses, pushed messages)

Design Decisions:
    - Separate from core dataclasses: schemas are API contracts (ADR: DDD boundary)
"""
