"""Result of running a consumer body once.

Every execution ends in exactly one of Ok, Failed or Cancelled. Boundaries
(computed cache, observer, output) decide what each one means; in between,
get() turns the outcome back into a return value or a raise.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import TracebackType
from typing import Any, Union

from shimmer.errors import SilentStop


@dataclass(frozen=True, slots=True)
class Ok:
    value: Any

    def unwrap(self) -> Any:
        return self.value


@dataclass(frozen=True, slots=True)
class Failed:
    error: Exception
    tb: TracebackType | None = None

    def unwrap(self) -> Any:
        # Same object every time, restarted from the traceback of the original
        # failure so repeated re-raises do not stack frames onto it.
        raise self.error.with_traceback(self.tb)


@dataclass(frozen=True, slots=True)
class Cancelled:
    preserve: bool = False

    def unwrap(self) -> Any:
        raise SilentStop(preserve=self.preserve)


Outcome = Union[Ok, Failed, Cancelled]
