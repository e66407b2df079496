"""Services Layer — the async shell that drives a verification flow.

Invariants:
    - Services depend on core Protocols, never on infrastructure clients
    - Every task a service spawns is cancelled and awaited before the flow ends

Design Decisions:
    - One component per file (resolver, poller, orchestrator) for locality
"""
