"""Reactive domain — the owner of one dependency graph.

A Domain holds everything mutable: the node arena (Anchor), the context stack,
the flush queue, the batch depth and the graph event stream. Two domains share
nothing, so independent sessions can live on independent threads.

The three engines live here because each needs all of that state at once:
- invalidate(): walk from a changed producer, mark consumers stale, erase
  their edges, queue observers.
- evaluate(): lazy, memoizing execution of a computed node.
- flush(): drain the observer queue, highest priority first.

Thread model: a domain belongs to the thread that created it. Mutating or
flushing from any other thread raises CrossThreadError, unless a scheduler was
installed with set_scheduler(), in which case writes are marshaled through it.
"""

from __future__ import annotations

import contextvars
import heapq
import itertools
import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator

from shimmer._anchor import Anchor, NodeKind, NodeState
from shimmer._outcome import Cancelled, Failed, Ok, Outcome
from shimmer._tracking import NO_RECORDING, ContextStack
from shimmer.errors import (
    CrossThreadError,
    CycleError,
    DisposedError,
    DomainTerminatedError,
    FatalObserverError,
    SilentStop,
    UsageError,
)
from shimmer.events import EventKind, GraphEvent
from shimmer.stream import EventStream

logger = logging.getLogger("shimmer.domain")

# The domain that new handles bind to, set by Domain.activate().
_active: contextvars.ContextVar[Domain | None] = contextvars.ContextVar(
    "shimmer_active_domain", default=None
)

# Fallback when nothing is active: one lazily created domain per thread.
_thread_default = threading.local()


def get_domain() -> Domain:
    """The active domain, or this thread's default domain."""
    domain = _active.get()
    if domain is not None:
        return domain
    domain = getattr(_thread_default, "domain", None)
    if domain is None:
        domain = Domain(name=f"default:{threading.current_thread().name}")
        _thread_default.domain = domain
    return domain


def flush() -> int:
    """Flush the current domain. Returns the number of observer runs."""
    return get_domain().flush()


class Domain:
    """One reactive graph plus its scheduler."""

    def __init__(self, name: str | None = None) -> None:
        self.name = name or f"domain-{id(self):x}"
        self.anchor = Anchor()
        self.stack = ContextStack()
        self.events: EventStream[GraphEvent] = EventStream()
        # Fires at the start of each outermost flush, before any observer runs.
        self.before_flush: EventStream[Domain] = EventStream()

        # Heap of (-priority, seq, node). Stale entries are skipped on pop.
        self._queue: list[tuple[int, int, int]] = []
        self._queued: set[int] = set()
        self._seq = itertools.count()
        self._flushing = False
        self._batch_depth = 0

        self._owner = threading.current_thread()
        self._scheduler: Callable[[Callable[[], None]], Any] | None = None

        self._fatal: BaseException | None = None
        self._closed = False

    # ─── Activation & threads ────────────────────────────────────────────

    @contextmanager
    def activate(self) -> Iterator[Domain]:
        """Make this the domain that new handles bind to, for the block."""
        token = _active.set(self)
        try:
            yield self
        finally:
            _active.reset(token)

    def untracked(self):
        """Context manager: reads inside the block record no edges."""
        return self.stack.frame(NO_RECORDING)

    def set_scheduler(self, scheduler: Callable[[Callable[[], None]], Any] | None) -> None:
        """Install a callable that runs a thunk on the owning thread.

        Call once from the owning thread, e.g.
            domain.set_scheduler(app.call_from_thread)

        After this, Value.set() from another thread is marshaled through it.
        """
        self._owner = threading.current_thread()
        self._scheduler = scheduler

    @property
    def on_owner_thread(self) -> bool:
        return threading.current_thread() is self._owner

    def check_thread(self, action: str) -> None:
        if not self.on_owner_thread:
            raise CrossThreadError(
                f"Cannot {action} domain {self.name} from thread "
                f"{threading.current_thread().name}; it belongs to {self._owner.name}"
            )

    def marshal(self, fn: Callable[[], None]) -> None:
        """Run fn on the owning thread: inline if already there, else via the scheduler."""
        if self.on_owner_thread:
            fn()
        elif self._scheduler is not None:
            self._scheduler(fn)
        else:
            self.check_thread("mutate")

    # ─── Lifetime ────────────────────────────────────────────────────────

    @property
    def terminated(self) -> bool:
        """True after close() or after an observer failed."""
        return self._closed or self._fatal is not None

    @property
    def fatal_error(self) -> BaseException | None:
        return self._fatal

    def check_alive(self) -> None:
        if self._closed:
            raise DomainTerminatedError(f"Domain {self.name} is closed")
        if self._fatal is not None:
            raise DomainTerminatedError(
                f"Domain {self.name} was terminated by {self._fatal!r}"
            ) from self._fatal

    def close(self) -> None:
        """Tear the domain down: dispose every node and stop emitting events."""
        if self._closed:
            return
        for node in list(self.anchor.kinds):
            self.dispose(node)
        self._queue.clear()
        self._queued.clear()
        self._closed = True
        self.events.dispose()
        self.before_flush.dispose()
        logger.debug("Closed domain %s", self.name)

    # ─── Nodes ───────────────────────────────────────────────────────────

    def create_node(self, kind: NodeKind, **fields: Any) -> int:
        self.check_alive()
        node = self.anchor.new_node(kind, **fields)
        self._emit(EventKind.NODE_CREATED, node)
        if kind is NodeKind.OBSERVER:
            # New observers start stale so the next flush discovers their deps.
            self._enqueue(node)
        return node

    def dispose(self, node: int) -> None:
        """Remove a node from the graph permanently."""
        anchor = self.anchor
        if node in anchor.disposed or node not in anchor.kinds:
            return
        anchor.disposed.add(node)
        self._queued.discard(node)
        if anchor.kinds[node] is NodeKind.VALUE:
            self.invalidate(*anchor.dependents[node])
        else:
            self.invalidate(node)
        self._emit(EventKind.NODE_DISPOSED, node)
        anchor.drop(node)

    def label(self, node: int) -> str:
        return self.anchor.labels.get(node, f"node#{node}")

    def state(self, node: int) -> NodeState:
        try:
            return self.anchor.states[node]
        except KeyError:
            raise DisposedError(f"node#{node} is not part of domain {self.name}") from None

    # ─── Reads & edges ───────────────────────────────────────────────────

    def record_read(self, producer: int) -> None:
        """Link producer to the executing consumer, if there is one."""
        consumer = self.stack.current()
        if consumer is None:
            return
        anchor = self.anchor
        if anchor.states.get(consumer) is not NodeState.RUNNING:
            # Invalidated mid-run: it is already queued to start over.
            return
        if anchor.states.get(producer) is not NodeState.VALID:
            # The producer went stale while we read it; so did our result.
            self.invalidate(consumer)
            return
        if anchor.add_edge(producer, consumer):
            self._emit(EventKind.EDGE_ADDED, consumer, producer=producer)

    def read_value(self, node: int) -> Any:
        try:
            value = self.anchor.values[node]
        except KeyError:
            self.check_alive()
            raise DisposedError(f"{self.label(node)} has been disposed") from None
        self.record_read(node)
        return value

    def write_value(self, node: int, value: Any) -> None:
        """Store a new value and invalidate every reader, equal or not."""
        self.check_alive()
        anchor = self.anchor
        if node not in anchor.values:
            raise DisposedError(f"{self.label(node)} has been disposed")
        anchor.values[node] = value
        self.invalidate(*anchor.dependents[node])

    # ─── Invalidation ────────────────────────────────────────────────────

    def invalidate(self, *nodes: int) -> None:
        """Mark nodes and everything downstream stale, erasing their edges.

        Idempotent: an already-invalidated node is skipped, which also makes
        the INVALIDATED flag the visited guard of the walk.
        """
        anchor = self.anchor
        pending = list(nodes)
        while pending:
            node = pending.pop()
            state = anchor.states.get(node)
            if state is None or state is NodeState.INVALIDATED:
                continue
            if anchor.kinds[node] is NodeKind.VALUE:
                pending.extend(anchor.dependents[node])
                continue

            former = list(anchor.dependents.get(node, ()))
            anchor.states[node] = NodeState.INVALIDATED
            self._erase(node)
            self._emit(EventKind.INVALIDATED, node)
            if anchor.kinds[node] is NodeKind.OBSERVER:
                self._enqueue(node)
            pending.extend(former)

    def _erase(self, node: int) -> None:
        for producer in self.anchor.erase_edges(node):
            self._emit(EventKind.EDGE_REMOVED, node, producer=producer)

    # ─── Execution ───────────────────────────────────────────────────────

    def execute(self, node: int) -> Outcome:
        """Run a consumer body once under its own context frame."""
        anchor = self.anchor
        anchor.states[node] = NodeState.RUNNING
        self._emit(EventKind.EXECUTION_START, node)
        try:
            value = self.stack.with_context(node, anchor.fns[node])
        except SilentStop as stop:
            outcome: Outcome = Cancelled(stop.preserve)
        except UsageError:
            self._reset(node)
            raise
        except Exception as exc:
            outcome = Failed(exc, exc.__traceback__)
        except BaseException:
            self._reset(node)
            raise
        else:
            outcome = Ok(value)
        self._emit(EventKind.EXECUTION_END, node, outcome=_outcome_tag(outcome))
        return outcome

    def _reset(self, node: int) -> None:
        # Programmer error or interrupt: leave the node stale and unlinked.
        if node in self.anchor.states:
            self.anchor.states[node] = NodeState.INVALIDATED
            self._erase(node)

    def evaluate(self, node: int) -> Outcome:
        """Outcome of a computed node, running it only if it is stale."""
        anchor = self.anchor
        state = anchor.states.get(node)
        if state is None:
            self.check_alive()
            raise DisposedError(f"{self.label(node)} has been disposed")
        if state is NodeState.RUNNING:
            raise CycleError(self.label(node))
        if state is NodeState.VALID:
            outcome = anchor.outcomes[node]
            if not isinstance(outcome, Cancelled):
                return outcome
            # A silent stop is never served from cache; run again from scratch.
            self._erase(node)

        outcome = self.execute(node)
        if anchor.states.get(node) is NodeState.RUNNING:
            anchor.states[node] = NodeState.VALID
            anchor.outcomes[node] = outcome
        return outcome

    # ─── Scheduling ──────────────────────────────────────────────────────

    def _enqueue(self, node: int) -> None:
        anchor = self.anchor
        if node in self._queued or node in anchor.suspended or node in anchor.disposed:
            return
        self._queued.add(node)
        heapq.heappush(self._queue, (-anchor.priorities[node], next(self._seq), node))

    def set_suspended(self, node: int, suspended: bool) -> None:
        """Suspend or resume an observer. Its edges are left alone either way."""
        anchor = self.anchor
        if suspended:
            anchor.suspended.add(node)
            # Leaves its heap entry stale; resuming re-queues it if still invalid.
            self._queued.discard(node)
            return
        anchor.suspended.discard(node)
        if anchor.states.get(node) is NodeState.INVALIDATED:
            self._enqueue(node)

    @property
    def pending(self) -> int:
        """Number of observers waiting for the next flush."""
        return len(self._queued)

    def flush(self) -> int:
        """Run queued observers until none are left. Returns how many ran.

        Observers queued while flushing run in the same call. Calling flush()
        from inside a running consumer does nothing; the outer flush drains.
        """
        self.check_alive()
        self.check_thread("flush")
        if self._flushing or self.stack.executing():
            return 0

        self.before_flush.emit(self)

        anchor = self.anchor
        runs = 0
        self._flushing = True
        try:
            while self._queue:
                _, _, node = heapq.heappop(self._queue)
                if node not in self._queued:
                    continue
                self._queued.discard(node)
                if anchor.states.get(node) is not NodeState.INVALIDATED:
                    continue
                outcome = self.execute(node)
                runs += 1
                if anchor.states.get(node) is NodeState.RUNNING:
                    anchor.states[node] = NodeState.VALID
                self._settle(node, outcome)
        finally:
            self._flushing = False

        if runs:
            logger.debug("Flushed %s: %d observer run(s)", self.name, runs)
        return runs

    def _settle(self, node: int, outcome: Outcome) -> None:
        boundary = self.anchor.boundaries.get(node)
        try:
            if boundary is not None:
                boundary(outcome)
            elif isinstance(outcome, Failed):
                outcome.unwrap()
        except UsageError:
            raise
        except Exception as exc:
            label = self.label(node)
            logger.exception("Observer %s failed; terminating domain %s", label, self.name)
            self._fatal = exc
            self._queue.clear()
            self._queued.clear()
            raise FatalObserverError(label, exc) from exc

    # ─── Batching ────────────────────────────────────────────────────────

    def begin_batch(self) -> None:
        """Enter a batching scope. Nested batches are supported."""
        self.check_thread("batch")
        self._batch_depth += 1

    def end_batch(self) -> None:
        """Exit a batching scope. The outermost exit flushes once."""
        self._batch_depth -= 1
        if self._batch_depth == 0 and not self.terminated:
            self.flush()

    @property
    def in_batch(self) -> bool:
        return self._batch_depth > 0

    # ─── Events ──────────────────────────────────────────────────────────

    def _emit(
        self,
        kind: EventKind,
        node: int,
        *,
        producer: int | None = None,
        outcome: str | None = None,
    ) -> None:
        if self.events.active:
            self.events.emit(GraphEvent(kind, node, self.label(node), producer, outcome))

    def __repr__(self) -> str:
        status = "terminated" if self.terminated else f"{len(self.anchor)} nodes"
        return f"Domain({self.name!r}, {status})"


def _outcome_tag(outcome: Outcome) -> str:
    if isinstance(outcome, Ok):
        return "ok"
    if isinstance(outcome, Failed):
        return "error"
    return "cancelled"
