"""Data anchor — plain Python structures that hold all reactive state.

One Anchor per Domain stores the raw data for every Value, Computed and
Observer in that domain. Handles only hold an integer id; edges are id sets
in two mirrored adjacency dicts, so the ownership graph stays acyclic even
though the dependency graph is many-to-many.

Nothing here computes. This is bookkeeping only.
"""

from __future__ import annotations

import itertools
from enum import Enum
from typing import Any, Callable

from shimmer._outcome import Outcome


class NodeKind(Enum):
    VALUE = "value"
    COMPUTED = "computed"
    OBSERVER = "observer"


class NodeState(Enum):
    INVALIDATED = "invalidated"
    RUNNING = "running"
    VALID = "valid"


class Anchor:
    """Arena of node records, keyed by id."""

    def __init__(self) -> None:
        # Every node
        self.kinds: dict[int, NodeKind] = {}
        self.states: dict[int, NodeState] = {}
        self.labels: dict[int, str] = {}

        # Producers (Value + Computed)
        self.values: dict[int, Any] = {}  # value_id -> current value
        self.dependents: dict[int, set[int]] = {}  # producer_id -> consumer ids

        # Consumers (Computed + Observer)
        self.fns: dict[int, Callable[[], Any]] = {}
        self.dependencies: dict[int, set[int]] = {}  # consumer_id -> producer ids
        self.outcomes: dict[int, Outcome] = {}  # computed_id -> cached outcome

        # Observers
        self.priorities: dict[int, int] = {}
        self.suspended: set[int] = set()
        self.boundaries: dict[int, Callable[[Outcome], None]] = {}

        self.disposed: set[int] = set()

        self._id_counter = itertools.count(1)

    def new_node(
        self,
        kind: NodeKind,
        *,
        fn: Callable[[], Any] | None = None,
        value: Any = None,
        priority: int = 0,
        label: str | None = None,
    ) -> int:
        node = next(self._id_counter)
        self.kinds[node] = kind
        self.labels[node] = label or f"{kind.value}#{node}"
        if kind is NodeKind.VALUE:
            # Values are always available; they only originate invalidation.
            self.states[node] = NodeState.VALID
            self.values[node] = value
        else:
            self.states[node] = NodeState.INVALIDATED
            self.fns[node] = fn
            self.dependencies[node] = set()
        if kind is not NodeKind.OBSERVER:
            self.dependents[node] = set()
        if kind is NodeKind.OBSERVER:
            self.priorities[node] = priority
        return node

    def add_edge(self, producer: int, consumer: int) -> bool:
        """Record producer -> consumer. Returns False if it already existed."""
        dependents = self.dependents[producer]
        if consumer in dependents:
            return False
        dependents.add(consumer)
        self.dependencies[consumer].add(producer)
        return True

    def erase_edges(self, node: int) -> list[int]:
        """Detach node from every producer it read. Returns those producers."""
        producers = list(self.dependencies.get(node, ()))
        for producer in producers:
            self.dependents[producer].discard(node)
        if producers:
            self.dependencies[node].clear()
        return producers

    def drop(self, node: int) -> None:
        """Forget a node entirely. Edges must already be erased."""
        for table in (
            self.kinds,
            self.states,
            self.labels,
            self.values,
            self.dependents,
            self.fns,
            self.dependencies,
            self.outcomes,
            self.priorities,
            self.boundaries,
        ):
            table.pop(node, None)
        self.suspended.discard(node)

    def is_observer(self, node: int) -> bool:
        return self.kinds.get(node) is NodeKind.OBSERVER

    def __len__(self) -> int:
        return len(self.kinds)
