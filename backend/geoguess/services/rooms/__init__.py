"""Room domain services: registry, rounds, scoring and timers.

This package holds the in-memory game state machine. Socket handlers and
HTTP routes call into it; transport concerns stay in the broadcaster.
"""
