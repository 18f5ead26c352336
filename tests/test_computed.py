"""Tests for Computed values."""

import pytest

from shimmer import Computed, CycleError, DisposedError, Value, computed, flush, observe
from shimmer._anchor import NodeState
from shimmer.diagnostics import dependencies


class TestComputed:
    def test_lazy_eval(self):
        call_count = 0
        v = Value(5)

        def fn():
            nonlocal call_count
            call_count += 1
            return v.get() * 2

        c = Computed(fn)
        assert call_count == 0  # not yet evaluated
        assert c.get() == 10
        assert call_count == 1

    def test_caches_until_invalidated(self):
        call_count = 0
        v = Value(5)

        def fn():
            nonlocal call_count
            call_count += 1
            return v.get() * 2

        c = Computed(fn)
        c.get()
        c.get()
        c.get()
        assert call_count == 1  # cached, no re-eval

    def test_invalidation(self):
        v = Value(5)
        c = Computed(lambda: v.get() * 2)
        assert c.get() == 10
        v.set(10)
        assert c.get() == 20

    def test_dependency_tracking_follows_branch(self):
        """Computed tracks only what the taken branch read."""
        flag = Value(True)
        a = Value(1)
        b = Value(2)
        runs = []

        def pick():
            runs.append(1)
            return a.get() if flag.get() else b.get()

        c = Computed(pick)
        assert c.get() == 1
        b.set(20)  # not read on this branch
        assert c.get() == 1
        assert len(runs) == 1

        flag.set(False)
        assert c.get() == 20  # now depends on b, not a
        a.set(100)
        assert c.get() == 20
        assert len(runs) == 2
        assert dependencies(c) == {flag.id, b.id}

    def test_chained_computed(self):
        v = Value(3)
        doubled = Computed(lambda: v.get() * 2)
        quadrupled = Computed(lambda: doubled.get() * 2)
        assert quadrupled.get() == 12
        v.set(5)
        assert quadrupled.get() == 20

    def test_chain_invalidates_transitively(self, domain):
        v = Value(1)
        first = Computed(lambda: v.get() + 1)
        second = Computed(lambda: first.get() + 1)
        assert second.get() == 3
        v.set(10)
        assert domain.state(first.id) is NodeState.INVALIDATED
        assert domain.state(second.id) is NodeState.INVALIDATED

    def test_propagates_to_observers(self):
        v = Value(5)
        c = Computed(lambda: v.get() * 2)
        log = []
        observe(lambda: log.append(c.get()))
        flush()
        assert log == [10]
        v.set(10)
        flush()
        assert log == [10, 20]

    def test_peek_does_not_track(self, domain):
        v = Value(1)
        c = Computed(lambda: v.get() + 1)
        observe(lambda: c.peek())
        flush()
        v.set(2)
        assert domain.pending == 0
        assert c.peek() == 3

    def test_manual_invalidate_reruns(self):
        calls = []
        c = Computed(lambda: calls.append(1) or len(calls))
        assert c.get() == 1
        c.invalidate()
        assert c.get() == 2

    def test_dispose(self):
        v = Value(5)
        c = Computed(lambda: v.get() * 2)
        c.get()
        c.dispose()
        with pytest.raises(DisposedError):
            c.get()

    def test_dispose_invalidates_readers(self, domain):
        v = Value(5)
        c = Computed(lambda: v.get() * 2)
        observe(lambda: c.get())
        flush()
        c.dispose()
        assert domain.pending == 1

    def test_repr(self):
        v = Value(2)

        @computed
        def doubled():
            return v.get() * 2

        assert repr(doubled) == "Computed(doubled, invalidated)"
        doubled.get()
        assert repr(doubled) == "Computed(doubled, cached=4)"


class TestCycles:
    def test_self_read_is_a_cycle(self, domain):
        c = Computed(lambda: c.get() + 1)
        with pytest.raises(CycleError):
            c.get()
        assert domain.state(c.id) is NodeState.INVALIDATED
        assert len(domain.stack) == 0

    def test_mutual_cycle(self, domain):
        a = Computed(lambda: b.get(), label="a")
        b = Computed(lambda: a.get(), label="b")
        with pytest.raises(CycleError, match="a"):
            a.get()
        assert domain.state(a.id) is NodeState.INVALIDATED
        assert domain.state(b.id) is NodeState.INVALIDATED
        assert dependencies(a) == frozenset()

    def test_cycle_is_not_cached(self):
        calls = []
        a = Computed(lambda: calls.append(1) or a.get())
        with pytest.raises(CycleError):
            a.get()
        with pytest.raises(CycleError):
            a.get()
        assert len(calls) == 2


class TestComputedDecorator:
    def test_decorator_factory(self):
        v = Value(7)

        @computed
        def doubled():
            return v.get() * 2

        assert doubled.get() == 14
        v.set(3)
        assert doubled.get() == 6

    def test_decorator_with_label(self):
        v = Value(1)

        @computed(label="plus-one")
        def inc():
            return v.get() + 1

        assert inc() == 2
        assert "plus-one" in repr(inc)
