"""Computed values — derived state with automatic dependency tracking.

A Computed wraps a function. When read, it runs the function (if stale),
tracks which producers the function reads, and caches the outcome. When any
of those producers changes, the cache is invalidated. The next read runs the
function again.

Computed values are lazy: a Computed nobody reads never runs, and one read
many times between invalidations runs once. Errors are cached like values;
every read re-raises the same exception object until the next invalidation.
A SilentStop is the exception to that rule: it is never cached, so the next
read simply tries again.

All state lives in the domain's anchor — instances are thin handles holding
an _id.
"""

from __future__ import annotations

from typing import Callable, Generic, TypeVar, overload

from shimmer._anchor import NodeKind, NodeState
from shimmer._outcome import Ok
from shimmer.domain import Domain, get_domain

T = TypeVar("T")


class Computed(Generic[T]):
    """A derived value that auto-tracks dependencies and caches the result."""

    __slots__ = ("_id", "_domain")

    def __init__(
        self,
        fn: Callable[[], T],
        *,
        label: str | None = None,
        domain: Domain | None = None,
    ) -> None:
        self._domain = domain or get_domain()
        self._id = self._domain.create_node(
            NodeKind.COMPUTED,
            fn=fn,
            label=label or getattr(fn, "__name__", None),
        )

    @property
    def id(self) -> int:
        return self._id

    @property
    def domain(self) -> Domain:
        return self._domain

    def get(self) -> T:
        """Read the computed value. Recomputes if stale."""
        domain = self._domain
        outcome = domain.evaluate(self._id)
        domain.record_read(self._id)
        return outcome.unwrap()

    def peek(self) -> T:
        """Read without registering a dependency. Still recomputes if stale."""
        with self._domain.untracked():
            return self.get()

    def invalidate(self) -> None:
        """Drop the cached outcome, as if a dependency had changed."""
        self._domain.invalidate(self._id)

    def dispose(self) -> None:
        """Disconnect from the graph. Readers are invalidated; later reads raise."""
        self._domain.dispose(self._id)

    def __call__(self) -> T:
        return self.get()

    def __repr__(self) -> str:
        anchor = self._domain.anchor
        label = anchor.labels.get(self._id, "?")
        state = anchor.states.get(self._id)
        if state is None:
            return f"Computed({label}, disposed)"
        outcome = anchor.outcomes.get(self._id)
        if state is NodeState.VALID and isinstance(outcome, Ok):
            return f"Computed({label}, cached={outcome.value!r})"
        return f"Computed({label}, {state.value})"


@overload
def computed(fn: Callable[[], T]) -> Computed[T]: ...


@overload
def computed(
    *, label: str | None = None, domain: Domain | None = None
) -> Callable[[Callable[[], T]], Computed[T]]: ...


def computed(fn=None, *, label=None, domain=None):
    """Decorator/factory to create a Computed from a function.

    Usage:
        celsius = Value(10)

        @computed
        def fahrenheit():
            return celsius.get() * 9 / 5 + 32

        fahrenheit.get()  # 50.0
        celsius.set(-3)
        fahrenheit.get()  # 26.6
    """
    if fn is None:
        return lambda f: Computed(f, label=label, domain=domain)
    return Computed(fn, label=label, domain=domain)
