"""Context stack — which consumer is executing right now.

Every get() on a producer asks the owning domain's stack for its top frame.
If the top is a consumer id, the read becomes an edge producer -> consumer.
If the top is NO_RECORDING (pushed by isolate()), the read records nothing.

Dependencies are discovered only this way, so a consumer's dependency set is
exactly what it touched on the branch it actually took.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Callable, Iterator, TypeVar, Union

T = TypeVar("T")


class _NoRecording:
    __slots__ = ()

    def __repr__(self) -> str:
        return "NO_RECORDING"


NO_RECORDING = _NoRecording()

Frame = Union[int, _NoRecording]


class ContextStack:
    """Stack of executing consumers for a single domain."""

    __slots__ = ("_frames",)

    def __init__(self) -> None:
        self._frames: list[Frame] = []

    @contextmanager
    def frame(self, marker: Frame) -> Iterator[None]:
        """Push marker for the duration of the block, popping on every exit."""
        self._frames.append(marker)
        try:
            yield
        finally:
            self._frames.pop()

    def with_context(self, marker: Frame, fn: Callable[[], T]) -> T:
        with self.frame(marker):
            return fn()

    def current(self) -> int | None:
        """The consumer that a read should link to, or None."""
        if not self._frames:
            return None
        top = self._frames[-1]
        return None if top is NO_RECORDING else top

    def executing(self) -> list[int]:
        """Consumer ids on the stack, outermost first. Isolation frames skipped."""
        return [f for f in self._frames if f is not NO_RECORDING]

    def __len__(self) -> int:
        return len(self._frames)

    def __bool__(self) -> bool:
        return bool(self._frames)
