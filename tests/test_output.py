"""Tests for Output — the rendering boundary."""

import logging

from shimmer import Output, Value, flush, observe, output, req


class TestRender:
    def test_renders_value(self):
        v = Value(1)
        shown = []
        out = Output(lambda: v.get() * 2, shown.append)
        flush()
        assert shown == [2]
        assert out.current == 2
        v.set(5)
        flush()
        assert shown == [2, 10]

    def test_without_render_callback_tracks_current(self):
        v = Value("a")
        out = Output(lambda: v.get().upper())
        flush()
        assert out.current == "A"

    def test_decorator_form(self):
        name = Value("world")
        shown = []

        @output(render=shown.append, blank="")
        def greeting():
            return f"Hello, {name.get()}"

        assert isinstance(greeting, Output)
        flush()
        assert shown == ["Hello, world"]


class TestErrorBoundary:
    def test_error_is_rendered_not_fatal(self, domain):
        v = Value(0)
        errors = []
        out = Output(lambda: 10 / v.get(), on_error=errors.append, blank="-")
        flush()
        assert not domain.terminated
        assert len(errors) == 1
        assert isinstance(errors[0], ZeroDivisionError)
        assert out.error is errors[0]
        assert out.current == "-"

    def test_recovers_after_error(self):
        v = Value(0)
        shown = []
        out = Output(lambda: 10 / v.get(), shown.append)
        flush()
        v.set(2)
        flush()
        assert shown == [5.0]
        assert out.error is None

    def test_error_does_not_affect_siblings(self):
        v = Value(0)
        sibling = []
        Output(lambda: 1 / v.get())
        observe(lambda: sibling.append(v.get()))
        flush()
        v.set(1)
        flush()
        assert sibling == [0, 1]

    def test_error_is_logged_as_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger="shimmer.output"):
            Output(lambda: {}["missing"], label="lookup")
            flush()
        assert "Output lookup failed" in caplog.text


class TestSilentStop:
    def test_stop_resets_to_blank(self):
        name = Value("x")
        shown = []
        out = Output(lambda: req(name.get()), shown.append, blank="")
        flush()
        name.set("")
        flush()
        assert shown == ["x", ""]
        assert out.current == ""

    def test_stop_with_preserve_keeps_previous(self):
        name = Value("x")
        shown = []
        out = Output(lambda: req(name.get(), cancel_output=True), shown.append, blank="")
        flush()
        name.set("")
        flush()
        assert shown == ["x"]
        assert out.current == "x"

        name.set("y")
        flush()
        assert shown == ["x", "y"]


class TestVisibility:
    def test_hidden_output_renders_after_resume(self):
        v = Value(1)
        shown = []
        out = Output(lambda: v.get(), shown.append)
        flush()
        out.set_suspended(True)
        v.set(2)
        v.set(3)
        flush()
        assert shown == [1]
        out.set_suspended(False)
        flush()
        assert shown == [1, 3]
