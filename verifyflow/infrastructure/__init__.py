"""Infrastructure Layer — external service clients and cross-cutting concerns.

Invariants:
    - Every external call maps its failures to core/errors.py types before returning
    - Nothing here holds flow state; clients are reusable across flows

Design Decisions:
    - Thin adapters implementing core Protocols: services never see httpx
"""
