"""Diagnostics — watch and inspect a domain's graph from the outside.

Everything here is a subscriber to Domain.events or a read-only view of the
anchor. The engine never depends on any of it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from shimmer.domain import Domain
from shimmer.events import EventKind, GraphEvent
from shimmer.stream import Disposer

logger = logging.getLogger("shimmer.diagnostics")


def log_events(
    domain: Domain,
    *,
    level: int = logging.DEBUG,
    kinds: set[EventKind] | None = None,
    log: logging.Logger | None = None,
) -> Disposer:
    """Log every graph event of a domain. Returns an unsubscribe function."""
    log = log or logger
    stream = domain.events
    if kinds is not None:
        stream = stream.of_kind(*kinds)

    def _log(event: GraphEvent) -> None:
        if not log.isEnabledFor(level):
            return
        if event.producer is not None:
            log.log(
                level,
                "[%s] %s %s <- %s",
                domain.name,
                event.kind.value,
                event.label,
                domain.label(event.producer),
            )
        elif event.outcome is not None:
            log.log(level, "[%s] %s %s (%s)", domain.name, event.kind.value, event.label, event.outcome)
        else:
            log.log(level, "[%s] %s %s", domain.name, event.kind.value, event.label)

    unsubscribe = stream.subscribe(_log)
    if stream is domain.events:
        return unsubscribe
    return stream.dispose


class GraphRecorder:
    """Collects graph events in memory.

    Usage:
        with GraphRecorder(domain) as recorder:
            x.set(2)
            domain.flush()
        recorder.count(EventKind.EXECUTION_START)
    """

    def __init__(self, domain: Domain) -> None:
        self.domain = domain
        self.events: list[GraphEvent] = []
        self._unsubscribe: Disposer | None = domain.events.subscribe(self.events.append)

    def of_kind(self, kind: EventKind) -> list[GraphEvent]:
        return [event for event in self.events if event.kind is kind]

    def count(self, kind: EventKind, node: int | None = None) -> int:
        return sum(
            1
            for event in self.events
            if event.kind is kind and (node is None or event.node == node)
        )

    def clear(self) -> None:
        self.events.clear()

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def __enter__(self) -> GraphRecorder:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()


@dataclass(frozen=True)
class NodeInfo:
    id: int
    kind: str
    state: str
    label: str
    priority: int | None = None
    suspended: bool = False


@dataclass(frozen=True)
class GraphSnapshot:
    """Nodes and producer -> consumer edges at one instant."""

    domain: str
    nodes: list[NodeInfo] = field(default_factory=list)
    edges: list[tuple[int, int]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "domain": self.domain,
            "nodes": [vars(node) for node in self.nodes],
            "edges": [list(edge) for edge in self.edges],
        }


def snapshot(domain: Domain) -> GraphSnapshot:
    """Copy the current graph for an external visualizer."""
    anchor = domain.anchor
    nodes = [
        NodeInfo(
            id=node,
            kind=kind.value,
            state=anchor.states[node].value,
            label=anchor.labels[node],
            priority=anchor.priorities.get(node),
            suspended=node in anchor.suspended,
        )
        for node, kind in sorted(anchor.kinds.items())
    ]
    edges = sorted(
        (producer, consumer)
        for producer, consumers in anchor.dependents.items()
        for consumer in consumers
    )
    return GraphSnapshot(domain=domain.name, nodes=nodes, edges=edges)


def dependencies(handle: Any) -> frozenset[int]:
    """Ids of the producers a Computed/Observer read on its last run."""
    return frozenset(handle.domain.anchor.dependencies.get(handle.id, ()))


def dependents(handle: Any) -> frozenset[int]:
    """Ids of the consumers currently linked to a Value/Computed."""
    return frozenset(handle.domain.anchor.dependents.get(handle.id, ()))
