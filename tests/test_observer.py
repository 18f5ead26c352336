"""Tests for Observer, observe, and reaction."""

from shimmer import Observer, Value, flush, isolate, observe, reaction
from shimmer.diagnostics import dependencies


class TestObserve:
    def test_runs_on_first_flush(self):
        v = Value(10)
        log = []
        observe(lambda: log.append(v.get()))
        assert log == []
        flush()
        assert log == [10]

    def test_reruns_on_change(self):
        v = Value(10)
        log = []
        observe(lambda: log.append(v.get()))
        flush()
        v.set(20)
        flush()
        assert log == [10, 20]

    def test_batches_mutations_between_flushes(self):
        a = Value(0)
        b = Value(0)
        log = []
        observe(lambda: log.append((a.get(), b.get())))
        flush()
        a.set(1)
        b.set(2)
        assert flush() == 1
        assert log == [(0, 0), (1, 2)]

    def test_dispose_stops(self):
        v = Value(10)
        log = []
        obs = observe(lambda: log.append(v.get()))
        flush()
        obs.dispose()
        v.set(20)
        flush()
        assert log == [10]  # no additional run
        assert obs.disposed

    def test_dispose_before_first_flush(self):
        obs = observe(lambda: None)
        obs.dispose()
        assert flush() == 0

    def test_decorator_form(self):
        v = Value(1)
        log = []

        @observe(priority=3, label="logger")
        def watcher():
            log.append(v.get())

        assert isinstance(watcher, Observer)
        assert watcher.priority == 3
        assert "logger" in repr(watcher)
        flush()
        assert log == [1]

    def test_flush_with_empty_queue_is_noop(self):
        assert flush() == 0
        assert flush() == 0

    def test_invalidate_is_idempotent(self, domain):
        v = Value(0)
        obs = observe(lambda: v.get())
        flush()
        v.set(1)
        v.set(2)
        obs.invalidate()
        assert domain.pending == 1
        assert flush() == 1


class TestScheduling:
    def test_higher_priority_runs_first(self):
        v = Value(0)
        order = []
        observe(lambda: (v.get(), order.append("low")), priority=0)
        observe(lambda: (v.get(), order.append("high")), priority=10)
        observe(lambda: (v.get(), order.append("mid")), priority=5)
        flush()
        assert order == ["high", "mid", "low"]
        order.clear()
        v.set(1)
        flush()
        assert order == ["high", "mid", "low"]

    def test_observers_queued_during_flush_run_in_same_flush(self):
        a = Value(0)
        b = Value(0)
        seen = []

        def forward():
            b.set(a.get() * 10)

        observe(forward, priority=10)
        observe(lambda: seen.append(b.get()))
        flush()
        assert seen == [0]

        a.set(2)
        assert flush() == 2
        assert seen == [0, 20]

    def test_reentrant_flush_is_noop(self):
        results = []
        observe(lambda: results.append(flush()))
        flush()
        assert results == [0]

    def test_self_invalidating_observer_reruns_until_settled(self):
        x = Value(0)
        log = []

        def climb():
            current = x.get()
            log.append(current)
            if current < 3:
                x.set(current + 1)

        observe(climb)
        assert flush() == 4
        assert log == [0, 1, 2, 3]


class TestSuspension:
    def test_suspended_observer_is_not_queued(self, domain):
        v = Value(0)
        log = []
        obs = observe(lambda: log.append(v.get()))
        flush()
        obs.set_suspended(True)
        v.set(1)
        assert domain.pending == 0
        assert flush() == 0
        assert log == [0]

    def test_resume_runs_accumulated_invalidation_once(self):
        v = Value(0)
        log = []
        obs = observe(lambda: log.append(v.get()))
        flush()
        obs.set_suspended(True)
        v.set(1)
        v.set(2)
        obs.set_suspended(False)
        assert flush() == 1
        assert log == [0, 2]

    def test_suspending_keeps_edges(self):
        v = Value(0)
        obs = observe(lambda: v.get())
        flush()
        obs.set_suspended(True)
        assert obs.suspended
        assert dependencies(obs) == {v.id}

    def test_resume_without_changes_does_not_queue(self, domain):
        v = Value(0)
        obs = observe(lambda: v.get())
        flush()
        obs.set_suspended(True)
        obs.set_suspended(False)
        assert domain.pending == 0


class TestReaction:
    def test_no_initial_effect(self):
        """Without fire_immediately, effect doesn't run on the first flush."""
        v = Value("a")
        effects = []
        reaction(lambda: v.get(), lambda x: effects.append(x))
        flush()
        assert effects == []

    def test_fires_on_change(self):
        v = Value("a")
        effects = []
        reaction(lambda: v.get(), lambda x: effects.append(x))
        flush()
        v.set("b")
        flush()
        assert effects == ["b"]

    def test_fire_immediately(self):
        v = Value("a")
        effects = []
        reaction(lambda: v.get(), lambda x: effects.append(x), fire_immediately=True)
        flush()
        assert effects == ["a"]

    def test_dedup_effect(self):
        """Effect only fires when data_fn's result actually changes."""
        v = Value(1)
        effects = []
        reaction(
            lambda: "even" if v.get() % 2 == 0 else "odd",
            lambda x: effects.append(x),
        )
        flush()
        v.set(3)  # still odd
        flush()
        assert effects == []
        v.set(4)  # now even
        flush()
        assert effects == ["even"]

    def test_effect_is_isolated(self, domain):
        trigger = Value(0)
        other = Value("x")
        effects = []
        reaction(lambda: trigger.get(), lambda t: effects.append((t, other.get())))
        flush()
        trigger.set(1)
        flush()
        other.set("y")
        assert domain.pending == 0
        assert effects == [(1, "x")]

    def test_dispose(self):
        v = Value(1)
        effects = []
        r = reaction(lambda: v.get(), lambda x: effects.append(x))
        flush()
        v.set(2)
        flush()
        assert effects == [2]
        r.dispose()
        v.set(3)
        flush()
        assert effects == [2]  # no more effects

    def test_effect_can_write_back(self):
        """Writes from the isolated effect do not loop back into the reaction."""
        source = Value(1)
        mirror = Value(0)
        reaction(lambda: source.get(), lambda x: isolate(lambda: mirror.set(x * 2)))
        flush()
        source.set(5)
        flush()
        assert mirror.get() == 10
