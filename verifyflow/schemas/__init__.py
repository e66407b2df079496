"""Pydantic Schemas — validation for data crossing the package boundary.

Invariants:
    - Schemas validate at system boundary (caller config, API requests and responses)
    - Domain types from core/ used for enum fields

Design Decisions:
    - api.py mirrors the remote wire format; flow.py holds caller-facing per-flow options
"""
