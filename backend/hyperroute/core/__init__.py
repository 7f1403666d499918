"""Core Layer — pure request-kernel logic, no IO, no ASGI, no FastAPI types.

Invariants:
    - No module in core/ imports from http/, infrastructure/, or config
    - Routing, composition, workflow and negotiation are deterministic

Design Decisions:
    - Functional core separated from the ASGI shell in http/ (ADR: core testable without a server)
"""
