"""Textual integration for shimmer. Not auto-imported — ``import shimmer.textual``.

Plays the rendering layer: binds Outputs and Observers to a Textual App,
suspends them while the widget tree is being rebuilt, and keeps widget lookups
and thread hops out of user code.

- NoMatches from a widget query is swallowed: the widget is simply not mounted.
- Renders triggered off the app thread go through app.call_from_thread.
- pause(app) suspends every consumer bound to app; leaving the block resumes
  them, and anything invalidated meanwhile runs on the next flush.
- Work skipped because the app was not running yet is redone at the first
  flush after it starts.
- unbind(app) disposes app's consumers when the app goes away.
"""

from __future__ import annotations

import threading
import weakref
from contextlib import contextmanager
from typing import Any, Callable, Iterator

from textual.css.query import NoMatches

from shimmer.domain import Domain
from shimmer.observer import Observer
from shimmer.output import Output

# Module-owned state, keyed weakly by app so several apps can coexist in tests.
_paused_apps: weakref.WeakSet = weakref.WeakSet()
_bound: weakref.WeakKeyDictionary[Any, list[Observer]] = weakref.WeakKeyDictionary()
# Consumers waiting for their app to become safe again.
_deferred: set[Observer] = set()


def _bind(app, consumer: Observer) -> None:
    _bound.setdefault(app, []).append(consumer)
    if app in _paused_apps:
        consumer.set_suspended(True)


def bound(app) -> list[Observer]:
    """Live consumers bound to app."""
    consumers = [c for c in _bound.get(app, []) if not c.disposed]
    if consumers:
        _bound[app] = consumers
    else:
        _bound.pop(app, None)
    return consumers


def unbind(app) -> None:
    """Dispose every consumer bound to app and forget the app."""
    for consumer in _bound.pop(app, []):
        _deferred.discard(consumer)
        if not consumer.disposed:
            consumer.dispose()
    _paused_apps.discard(app)


def _defer(app, consumer: Observer) -> None:
    """Re-run consumer at the first flush where app is safe."""
    if consumer in _deferred:
        return
    _deferred.add(consumer)

    def _wake(domain: Domain) -> None:
        if consumer not in _deferred or consumer.disposed:
            _deferred.discard(consumer)
            unsubscribe()
        elif is_safe(app):
            _deferred.discard(consumer)
            unsubscribe()
            consumer.invalidate()

    unsubscribe = consumer.domain.before_flush.subscribe(_wake)


@contextmanager
def pause(app) -> Iterator[None]:
    """Suspend app's consumers during widget replacement."""
    _paused_apps.add(app)
    for consumer in bound(app):
        consumer.set_suspended(True)
    try:
        yield
    finally:
        _paused_apps.discard(app)
        for consumer in bound(app):
            consumer.set_suspended(False)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and app not in _paused_apps


def _on_app_thread(
    app, fn: Callable[..., None], on_skip: Callable[[], None]
) -> Callable[..., None]:
    main = threading.get_ident()

    def _guarded(*args: Any) -> None:
        if not is_safe(app):
            on_skip()
            return
        if threading.get_ident() != main:
            app.call_from_thread(_safe, *args)
        else:
            _safe(*args)

    def _safe(*args: Any) -> None:
        try:
            fn(*args)
        except NoMatches:
            pass

    return _guarded


def format_error(error: Exception) -> str:
    return f"{type(error).__name__}: {error}"


def output(
    app,
    selector: str,
    fn: Callable[[], Any],
    *,
    blank: Any = "",
    priority: int = 0,
    label: str | None = None,
    domain: Domain | None = None,
) -> Output:
    """Render fn's result into ``app.query_one(selector)`` via ``widget.update``.

    Errors from fn are shown in the widget instead of ending the session.
    A render dropped while the app is down is redone once it is up.
    """

    def _update(content: Any) -> None:
        app.query_one(selector).update(content)

    render = _on_app_thread(app, _update, lambda: _defer(app, out))
    out = Output(
        fn,
        render,
        on_error=lambda error: render(format_error(error)),
        blank=blank,
        priority=priority,
        label=label or selector,
        domain=domain,
    )
    _bind(app, out)
    return out


def observe(
    app,
    fn: Callable[[], Any],
    *,
    priority: int = 0,
    label: str | None = None,
    domain: Domain | None = None,
) -> Observer:
    """Observer that touches widgets: deferred while the app is down, NoMatches swallowed.

    fn runs on the flushing thread so its reads are tracked; pause(app)
    suspends it rather than skipping it.
    """

    def _body() -> None:
        if not app.is_running:
            _defer(app, out)
            return
        try:
            fn()
        except NoMatches:
            pass

    out = Observer(
        _body,
        priority=priority,
        label=label or getattr(fn, "__name__", None),
        domain=domain,
    )
    _bind(app, out)
    return out
