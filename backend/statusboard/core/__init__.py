"""Core Layer — pure domain logic: items, resolution, aggregation, snapshots, diffs.

Invariants:
    - No module in core/ imports from services/, api/ or infrastructure/
    - No IO, no logging: every function is deterministic (protocols only declare async seams)

Design Decisions:
    - Functional core separated from imperative shell (ADR: impureim sandwich)
"""
