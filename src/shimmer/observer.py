"""Observers — side effects triggered by reactive state changes.

Unlike Computed (lazy, runs on read), an Observer is eager but batched: when
something it read changes, it is queued, and the next flush() runs it again.
A new observer starts queued, so its first flush discovers its dependencies.

Two flavors:
- observe(fn): re-runs fn whenever anything it read changes.
- reaction(data_fn, effect_fn): tracks data_fn only, and calls effect_fn with
  the new result when it differs from the previous one. effect_fn runs
  isolated, so nothing it reads becomes a dependency.

An ordinary error escaping an observer is fatal to its domain: flush() raises
FatalObserverError and the domain refuses further work. A SilentStop is
absorbed; the observer stays subscribed to whatever it read before stopping.

All state lives in the domain's anchor — instances are thin handles holding
an _id.
"""

from __future__ import annotations

from typing import Any, Callable, TypeVar

from shimmer._anchor import NodeKind
from shimmer.domain import Domain, get_domain

T = TypeVar("T")

_UNSET = object()


class Observer:
    """A reactive side effect that re-runs on flush after its dependencies change."""

    __slots__ = ("_id", "_domain")

    def __init__(
        self,
        fn: Callable[[], Any],
        *,
        priority: int = 0,
        label: str | None = None,
        domain: Domain | None = None,
    ) -> None:
        self._domain = domain or get_domain()
        self._id = self._domain.create_node(
            NodeKind.OBSERVER,
            fn=fn,
            priority=priority,
            label=label or getattr(fn, "__name__", None),
        )

    @property
    def id(self) -> int:
        return self._id

    @property
    def domain(self) -> Domain:
        return self._domain

    @property
    def priority(self) -> int:
        return self._domain.anchor.priorities.get(self._id, 0)

    @property
    def suspended(self) -> bool:
        return self._id in self._domain.anchor.suspended

    @property
    def disposed(self) -> bool:
        return self._id in self._domain.anchor.disposed

    def set_suspended(self, suspended: bool) -> None:
        """Stop (or resume) scheduling this observer.

        A suspended observer stays subscribed. If it is invalidated while
        suspended, resuming queues it for the next flush.
        """
        self._domain.set_suspended(self._id, suspended)

    def invalidate(self) -> None:
        """Queue a re-run without any dependency having changed."""
        self._domain.invalidate(self._id)

    def dispose(self) -> None:
        """Stop this observer for good. Disconnects from all dependencies."""
        self._domain.dispose(self._id)

    def __repr__(self) -> str:
        anchor = self._domain.anchor
        if self.disposed:
            return f"Observer(#{self._id}, disposed)"
        state = anchor.states[self._id].value
        if self.suspended:
            state += ", suspended"
        return f"Observer({anchor.labels[self._id]}, {state})"


def observe(
    fn: Callable[[], Any] | None = None,
    *,
    priority: int = 0,
    label: str | None = None,
    domain: Domain | None = None,
):
    """Create an Observer. Works as @observe or @observe(priority=...).

    Usage:
        counter = Value(0)
        log = []

        obs = observe(lambda: log.append(counter.get()))
        flush()
        # log == [0] — first flush runs every new observer

        counter.set(1)
        flush()
        # log == [0, 1]

        obs.dispose()
        counter.set(2)
        flush()
        # log == [0, 1] — stopped
    """
    if fn is None:
        return lambda f: Observer(f, priority=priority, label=label, domain=domain)
    return Observer(fn, priority=priority, label=label, domain=domain)


def reaction(
    data_fn: Callable[[], T],
    effect_fn: Callable[[T], None],
    *,
    fire_immediately: bool = False,
    priority: int = 0,
    label: str | None = None,
    domain: Domain | None = None,
) -> Observer:
    """Track data_fn; call effect_fn when its result changes.

    The first run only records the result unless fire_immediately is set.
    effect_fn runs isolated: reading inside it adds no dependency.

    Returns the underlying Observer (call .dispose() to stop).

    Usage:
        first = Value("Alice")
        last = Value("Smith")

        effects = []
        r = reaction(
            lambda: f"{first.get()} {last.get()}",
            lambda name: effects.append(name),
        )
        flush()
        # effects == [] — data_fn ran to establish deps, effect held back

        first.set("Bob")
        flush()
        # effects == ["Bob Smith"]
    """
    domain = domain or get_domain()
    last = [_UNSET]

    def _run() -> None:
        value = data_fn()
        previous, last[0] = last[0], value
        if previous is _UNSET and not fire_immediately:
            return
        if previous is not _UNSET and value == previous:
            return
        with domain.untracked():
            effect_fn(value)

    return Observer(
        _run,
        priority=priority,
        label=label or getattr(data_fn, "__name__", None),
        domain=domain,
    )
