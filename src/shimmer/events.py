"""Graph events emitted by a domain for diagnostics and visualization."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class EventKind(Enum):
    NODE_CREATED = "node_created"
    NODE_DISPOSED = "node_disposed"
    EDGE_ADDED = "edge_added"
    EDGE_REMOVED = "edge_removed"
    INVALIDATED = "invalidated"
    EXECUTION_START = "execution_start"
    EXECUTION_END = "execution_end"


@dataclass(frozen=True, slots=True)
class GraphEvent:
    """One change to the graph.

    For edge events ``node`` is the consumer and ``producer`` the producer.
    For EXECUTION_END ``outcome`` is "ok", "error" or "cancelled".
    """

    kind: EventKind
    node: int
    label: str
    producer: int | None = None
    outcome: str | None = None
