"""Isolation — use a value without depending on it.

The canonical case is an observer that reads and rewrites a counter while it
depends on something else: without isolation it would invalidate itself on
every run.

    @observe
    def count_clicks():
        clicks.get()
        isolate(lambda: counter.set(counter.get() + 1))
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Callable, Iterator, TypeVar

from shimmer.domain import Domain, get_domain

T = TypeVar("T")


def isolate(fn: Callable[[], T], *, domain: Domain | None = None) -> T:
    """Run fn with dependency recording switched off. Returns fn's result.

    Reads inside fn see exactly what they would see otherwise; they just add
    no edges. A consumer that starts running inside fn records its own edges
    as usual, since it pushes its own frame on top.
    """
    with (domain or get_domain()).untracked():
        return fn()


@contextmanager
def untracked(domain: Domain | None = None) -> Iterator[None]:
    """Context-manager form of isolate()."""
    with (domain or get_domain()).untracked():
        yield
