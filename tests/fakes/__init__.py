"""
Fake implementations for testing.

Fakes are simplified working implementations of the backing store
contracts, following the "fakes over mocks" philosophy.

Key fakes:
- InMemorySession: versioned in-memory node tree with explicit event dispatch
- InMemoryNode: node with builder helpers and failure switches
- InMemoryObservationManager: records registrations, delivers batches on demand
"""

from tests.fakes.node_store import (
    InMemoryNode,
    InMemoryObservationManager,
    InMemorySession,
    TrackingStream,
)

__all__ = [
    "InMemoryNode",
    "InMemoryObservationManager",
    "InMemorySession",
    "TrackingStream",
]
