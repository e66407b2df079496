"""Core Layer — pure domain logic, no IO, no network, no event loop.

Invariants:
    - No module in core/ imports from services/ or infrastructure/
    - core/ may import schemas/ (pure pydantic data, no IO)
    - All functions are pure and deterministic (time is always passed in)

Design Decisions:
    - Functional core separated from the async shell in services/
"""
