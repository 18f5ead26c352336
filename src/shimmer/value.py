"""Value nodes — state that tracks its readers.

When a Value is read inside a Computed or Observer run, the dependency is
registered automatically. set() invalidates every reader, even when the new
value equals the old one: there is no equality short-circuit.

All state lives in the domain's anchor — instances are thin handles holding
an _id.

Thread safety: a Value belongs to its domain's thread. set() from another
thread is marshaled through the domain scheduler if one was installed
(Domain.set_scheduler), and raises CrossThreadError otherwise.
"""

from __future__ import annotations

from typing import Generic, TypeVar

from shimmer._anchor import NodeKind
from shimmer.domain import Domain, get_domain

T = TypeVar("T")


class Value(Generic[T]):
    """A single reactive value with automatic dependency tracking."""

    __slots__ = ("_id", "_domain")

    def __init__(
        self,
        value: T,
        *,
        label: str | None = None,
        domain: Domain | None = None,
    ) -> None:
        self._domain = domain or get_domain()
        self._id = self._domain.create_node(NodeKind.VALUE, value=value, label=label)

    @property
    def id(self) -> int:
        return self._id

    @property
    def domain(self) -> Domain:
        return self._domain

    def get(self) -> T:
        """Read the value. If a consumer is running, registers the dependency."""
        return self._domain.read_value(self._id)

    def peek(self) -> T:
        """Read the value without registering a dependency."""
        with self._domain.untracked():
            return self._domain.read_value(self._id)

    def set(self, value: T) -> None:
        """Write a new value. Readers are invalidated; flush() re-runs observers."""
        domain = self._domain
        domain.marshal(lambda v=value: domain.write_value(self._id, v))

    def __repr__(self) -> str:
        value = self._domain.anchor.values.get(self._id, "<disposed>")
        return f"Value({value!r})"
