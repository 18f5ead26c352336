"""shimmer: a reactive dependency-tracking runtime for Python."""

from importlib.metadata import version as _version

__version__ = _version("shimmer")

from shimmer.domain import Domain, get_domain, flush
from shimmer.value import Value
from shimmer.computed import Computed, computed
from shimmer.observer import Observer, observe, reaction
from shimmer.output import Output, output
from shimmer.isolation import isolate, untracked
from shimmer.action import action, transaction
from shimmer.store import Store
from shimmer.stream import EventStream
from shimmer.events import EventKind, GraphEvent
from shimmer.errors import (
    ReactiveError,
    UsageError,
    CycleError,
    CrossThreadError,
    DisposedError,
    DomainTerminatedError,
    FatalObserverError,
    SilentStop,
    req,
)
# textual NOT auto-imported — opt-in only

__all__ = [
    "Domain",
    "get_domain",
    "flush",
    "Value",
    "Computed",
    "computed",
    "Observer",
    "observe",
    "reaction",
    "Output",
    "output",
    "isolate",
    "untracked",
    "action",
    "transaction",
    "Store",
    "EventStream",
    "EventKind",
    "GraphEvent",
    "ReactiveError",
    "UsageError",
    "CycleError",
    "CrossThreadError",
    "DisposedError",
    "DomainTerminatedError",
    "FatalObserverError",
    "SilentStop",
    "req",
]
