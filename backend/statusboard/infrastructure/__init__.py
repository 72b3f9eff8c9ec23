"""Infrastructure Layer — external service clients and cross-cutting concerns.

Invariants:
    - All external calls wrapped with retry/timeout/error mapping
    - Schema-specific knowledge (Notion property shapes) lives only here

Design Decisions:
    - Resilient wrappers over raw clients (ADR: single responsibility)
"""
