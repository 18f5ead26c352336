"""Listener channels for what a domain does.

A Domain owns two of these: ``events`` carries one GraphEvent per structural
change (node created, edge added, invalidated, run started ...) and
``before_flush`` fires with the domain as each outermost flush begins.

The engine only pushes. Whether anything listens is checked with ``active``
so an unobserved domain never builds event objects. Derived channels
(``filter``, ``of_kind``, ``map``) hang off their source and are torn down
with it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Generic, TypeVar

if TYPE_CHECKING:
    from shimmer.events import EventKind

T = TypeVar("T")
U = TypeVar("U")

Disposer = Callable[[], None]


class EventStream(Generic[T]):
    """A push-only channel with derived sub-channels."""

    def __init__(self) -> None:
        self._listeners: list[Callable[[T], None]] = []
        self._derived: list[EventStream] = []
        self._release: Disposer | None = None
        self.closed = False

    @property
    def active(self) -> bool:
        return not self.closed and bool(self._listeners)

    def __len__(self) -> int:
        return len(self._listeners)

    def emit(self, item: T) -> None:
        if self.closed:
            return
        # Listeners may unsubscribe themselves while being called.
        for listener in tuple(self._listeners):
            listener(item)

    def subscribe(self, listener: Callable[[T], None]) -> Disposer:
        """Add a listener. The returned function removes it; calling it twice is fine."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def filter(self, keep: Callable[[T], bool]) -> EventStream[T]:
        return self._derive(lambda item, out: out.emit(item) if keep(item) else None)

    def of_kind(self, *kinds: EventKind) -> EventStream[T]:
        """Graph events whose kind is one of kinds."""
        wanted = frozenset(kinds)
        return self.filter(lambda event: event.kind in wanted)

    def map(self, fn: Callable[[T], U]) -> EventStream[U]:
        return self._derive(lambda item, out: out.emit(fn(item)))

    def dispose(self) -> None:
        """Close this channel, everything derived from it, and unhook from the source."""
        self.closed = True
        self._listeners.clear()
        derived, self._derived = self._derived, []
        for child in derived:
            child.dispose()
        if self._release is not None:
            release, self._release = self._release, None
            release()

    def _derive(self, forward: Callable[[T, EventStream], None]) -> EventStream:
        out: EventStream = EventStream()
        unsubscribe = self.subscribe(lambda item: forward(item, out))
        self._derived.append(out)

        def _release() -> None:
            unsubscribe()
            if out in self._derived:
                self._derived.remove(out)

        out._release = _release
        return out
