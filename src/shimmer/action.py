"""Actions and transactions — batched mutations followed by one flush.

A transport layer that receives a burst of related events should apply them
inside one batch, so observers re-run once over the final state instead of
once per event. The outermost scope exit calls flush(); inner scopes only
count depth.
"""

from __future__ import annotations

import functools
from contextlib import contextmanager
from typing import Callable, Iterator, ParamSpec, TypeVar

from shimmer.domain import Domain, get_domain

P = ParamSpec("P")
R = TypeVar("R")


def action(fn: Callable[P, R]) -> Callable[P, R]:
    """Decorator: batch all mutations inside fn, then flush once.

    The batch uses whichever domain is current when the wrapper is called.

    Usage:
        first = Value(0)
        second = Value(0)

        @action
        def swap():
            a, b = first.get(), second.get()
            first.set(b)
            second.set(a)
            # observers see both changes at once, after swap() returns
    """

    @functools.wraps(fn)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        domain = get_domain()
        domain.begin_batch()
        try:
            return fn(*args, **kwargs)
        finally:
            domain.end_batch()

    return wrapper


@contextmanager
def transaction(domain: Domain | None = None) -> Iterator[Domain]:
    """Context manager for batching mutations.

    Usage:
        with transaction():
            first.set(1)
            second.set(2)
            # observers run here, after both are set
    """
    domain = domain or get_domain()
    domain.begin_batch()
    try:
        yield domain
    finally:
        domain.end_batch()
