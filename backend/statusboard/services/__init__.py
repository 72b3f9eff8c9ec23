"""Services Layer — refresh pipeline, snapshot store, change publisher, board facade.

Invariants:
    - Services orchestrate core functions around IO; they hold no schema knowledge
    - All shared mutable state lives in objects owned by one StatusBoard

Design Decisions:
    - One class per concern, wired in build_status_board (ADR: no god objects)
"""
