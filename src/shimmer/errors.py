"""Exceptions and control signals raised by the reactive runtime.

Two families:
- ReactiveError and its subclasses. UsageError marks programmer mistakes
  (cycles, cross-thread mutation, use after dispose) and is never cached.
- SilentStop, a control signal rather than an error. A consumer raises it to
  say "nothing to do right now"; the nearest observer/output boundary absorbs it.
"""

from __future__ import annotations


class ReactiveError(Exception):
    """Base class for errors raised by shimmer itself."""


class UsageError(ReactiveError):
    """The reactive graph was used in a way it does not support."""


class CycleError(UsageError):
    """A node was read while it was already running."""

    def __init__(self, label: str) -> None:
        super().__init__(f"Cyclic read of {label}: it is already running")
        self.label = label


class CrossThreadError(UsageError):
    """A domain was mutated or flushed from a thread that does not own it."""


class DisposedError(UsageError):
    """A disposed node was used."""


class DomainTerminatedError(UsageError):
    """The domain was closed, or an observer failed and took it down."""


class FatalObserverError(ReactiveError):
    """An observer raised an ordinary error. The domain is now terminated.

    The user error is chained as ``__cause__``.
    """

    def __init__(self, observer: str, error: BaseException) -> None:
        super().__init__(f"Observer {observer} failed: {error!r}")
        self.observer = observer
        self.error = error


class SilentStop(Exception):
    """Abort the current consumer run without treating it as an error.

    ``preserve=False`` resets an output's visible state to blank.
    ``preserve=True`` leaves whatever it showed before.
    """

    def __init__(self, preserve: bool = False) -> None:
        super().__init__("silent stop" + (" (preserve)" if preserve else ""))
        self.preserve = preserve


def req(*values: object, cancel_output: bool = False):
    """Stop the current consumer silently unless every value is truthy.

    Returns the first value, so it can wrap a read inline:

        name = req(name_input.get())

    With ``cancel_output=True`` an output keeps showing its previous value
    instead of going blank.
    """
    for value in values:
        if not value:
            raise SilentStop(preserve=cancel_output)
    return values[0] if values else None
