"""Textual integration for atomx. Opt-in — requires textual.

Guard, NoMatches handling and thread marshalling live here rather than at
callsites; the core package stays unaware of Textual.
"""

import threading
from contextlib import contextmanager

from textual.css.query import NoMatches

from atomx._structural import same_value
from atomx._tracking import track_dependency
from atomx.effect import Effect, create_effect

# Module-owned pause state, keyed by id(app) so multiple apps work in tests.
_paused_apps: set[int] = set()


@contextmanager
def pause(app):
    """Suspend guarded effects during widget replacement."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


def _deliver(app, main_thread: int, fn, *args) -> None:
    def _safe():
        try:
            fn(*args)
        except NoMatches:
            pass

    if threading.get_ident() != main_thread:
        app.call_from_thread(_safe)
    else:
        _safe()


def effect(app, fn) -> Effect:
    """create_effect() that safely bridges to Textual widgets.

    Skips runs while the app is paused or not running, swallows NoMatches
    from widget queries and marshals cross-thread runs via call_from_thread.
    A skipped or marshalled run keeps the previous run's subscriptions.
    """
    _main = threading.get_ident()
    handle: Effect | None = None

    def _replay():
        if handle is None:
            return
        for atom_id, paths in handle.dependencies.items():
            for path in paths:
                track_dependency(atom_id, path)

    def _guarded():
        if not is_safe(app) or threading.get_ident() != _main:
            _replay()
            if is_safe(app):
                _deliver(app, _main, fn)
            return
        try:
            fn()
        except NoMatches:
            pass

    handle = create_effect(_guarded)
    return handle


def bind(app, source, callback, *, fire_immediately=False) -> Effect:
    """Push ``source``'s value into ``callback`` whenever it changes.

    ``source`` is an atom, a derived value or a zero-argument function that
    reads atoms. The read is always tracked; only delivery is guarded.
    """
    _main = threading.get_ident()
    read = source.get if hasattr(source, "get") else source
    state = {"first": True, "last": None}

    def _run():
        value = read()
        first, last = state["first"], state["last"]
        state["first"], state["last"] = False, value
        if first and not fire_immediately:
            return
        if not first and same_value(last, value):
            return
        if is_safe(app):
            _deliver(app, _main, callback, value)

    return create_effect(_run)
