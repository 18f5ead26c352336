"""Outputs — observers that show a value somewhere, and own their errors.

An Output runs a render function on every flush where its inputs changed and
hands the result to ``render``. It is a stricter boundary than a bare
Observer:

- a value is rendered and becomes ``current``;
- an ordinary error is shown locally through ``on_error`` instead of
  terminating the domain; sibling consumers are unaffected;
- a SilentStop with ``preserve=False`` resets the output to ``blank``;
- a SilentStop with ``preserve=True`` leaves it showing what it showed.

Visibility is the rendering layer's business: it toggles set_suspended() as
the output scrolls in and out of view.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Generic, TypeVar

from shimmer._outcome import Cancelled, Failed, Ok, Outcome
from shimmer.domain import Domain
from shimmer.observer import Observer

logger = logging.getLogger("shimmer.output")

T = TypeVar("T")


class Output(Observer, Generic[T]):
    """An observer whose result is rendered, with errors displayed in place."""

    __slots__ = ("_render", "_on_error", "blank", "current", "error")

    def __init__(
        self,
        fn: Callable[[], T],
        render: Callable[[T], Any] | None = None,
        *,
        on_error: Callable[[Exception], Any] | None = None,
        blank: Any = None,
        priority: int = 0,
        label: str | None = None,
        domain: Domain | None = None,
    ) -> None:
        self._render = render
        self._on_error = on_error
        self.blank = blank
        self.current: Any = blank
        self.error: Exception | None = None
        super().__init__(fn, priority=priority, label=label, domain=domain)
        self._domain.anchor.boundaries[self._id] = self._settle

    def _settle(self, outcome: Outcome) -> None:
        if isinstance(outcome, Ok):
            self.error = None
            self._show(outcome.value)
        elif isinstance(outcome, Failed):
            logger.warning(
                "Output %s failed: %r", self._domain.label(self._id), outcome.error
            )
            self.error = outcome.error
            self.current = self.blank
            if self._on_error is not None:
                self._on_error(outcome.error)
        elif isinstance(outcome, Cancelled) and not outcome.preserve:
            self.error = None
            self._show(self.blank)

    def _show(self, value: Any) -> None:
        self.current = value
        if self._render is not None:
            self._render(value)


def output(
    render: Callable[[Any], Any] | None = None,
    *,
    on_error: Callable[[Exception], Any] | None = None,
    blank: Any = None,
    priority: int = 0,
    label: str | None = None,
    domain: Domain | None = None,
) -> Callable[[Callable[[], T]], Output[T]]:
    """Decorator: turn a render function into an Output.

    Usage:
        @output(render=label_widget.update, blank="")
        def greeting():
            return f"Hello, {req(name.get())}"
    """

    def decorate(fn: Callable[[], T]) -> Output[T]:
        return Output(
            fn,
            render,
            on_error=on_error,
            blank=blank,
            priority=priority,
            label=label,
            domain=domain,
        )

    return decorate
