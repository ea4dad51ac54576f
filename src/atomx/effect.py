"""Effects — side effects that re-run when the atoms they read change.

An effect runs immediately, records every atom (and path) it reads, and
subscribes to exactly those. If the body returns a callable, it is kept as a
cleanup and invoked before the next run and on disposal.
"""

from __future__ import annotations

import logging
from typing import Callable, Union

from atomx._paths import Path
from atomx._runtime import Runtime, get_runtime
from atomx._tracking import with_tracking
from atomx.atom import Unsubscribe, subscribe_dependencies
from atomx.errors import ErrorCode, StateError, handle_error

logger = logging.getLogger("atomx.effect")

Cleanup = Callable[[], None]
EffectFn = Callable[[], Union[Cleanup, None]]


class Effect:
    """A reactive side effect. Calling the instance disposes it."""

    __slots__ = ("_fn", "_runtime", "_active", "_cleanup", "_unsubscribers", "_dependencies", "run_count")

    def __init__(self, fn: EffectFn, *, runtime: Runtime | None = None) -> None:
        if not callable(fn):
            raise handle_error(StateError(ErrorCode.INVALID_OPERATION, "Effect must be callable"))
        self._fn = fn
        self._runtime = runtime or get_runtime()
        self._active = True
        self._cleanup: Cleanup | None = None
        self._unsubscribers: list[Unsubscribe] = []
        self._dependencies: dict[int, set[Path]] = {}
        self.run_count = 0
        self._runtime.effects[self] = None

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def dependencies(self) -> dict[int, set[Path]]:
        """Atom ids (and paths within them) read by the last successful run."""
        return {atom_id: set(paths) for atom_id, paths in self._dependencies.items()}

    def run(self) -> None:
        """Re-run the body and re-subscribe. A no-op once disposed."""
        if not self._active:
            return
        self.run_count += 1
        self._run_cleanup("Error in effect cleanup function")

        try:
            result, dependencies = with_tracking(None, self._fn)
        except Exception as exc:
            handle_error(StateError(ErrorCode.UNKNOWN, "Error in effect function", cause=exc))
            return

        self._cleanup = result if callable(result) else None
        self._dependencies = dependencies
        logger.debug("effect ran with %d dependencies", len(dependencies))

        self._unsubscribe_all("Error unsubscribing from dependency")
        self._unsubscribers = subscribe_dependencies(
            self._runtime,
            dependencies,
            self.run,
            lambda message, exc: StateError(ErrorCode.SUBSCRIPTION_ERROR, message, cause=exc),
        )

    def dispose(self) -> None:
        """Stop re-running, drop subscriptions, run the last cleanup. Idempotent."""
        if not self._active:
            return
        self._active = False
        logger.debug("disposing effect")
        self._unsubscribe_all("Error unsubscribing during effect disposal")
        self._run_cleanup("Error in effect cleanup during disposal")
        self._runtime.effects.pop(self, None)

    __call__ = dispose

    def _run_cleanup(self, message: str) -> None:
        cleanup, self._cleanup = self._cleanup, None
        if cleanup is None:
            return
        try:
            cleanup()
        except Exception as exc:
            handle_error(StateError(ErrorCode.UNKNOWN, message, cause=exc))

    def _unsubscribe_all(self, message: str) -> None:
        unsubscribers, self._unsubscribers = self._unsubscribers, []
        for unsubscribe in unsubscribers:
            try:
                unsubscribe()
            except Exception as exc:
                handle_error(StateError(ErrorCode.UNKNOWN, message, cause=exc))

    def __repr__(self) -> str:
        state = "active" if self._active else "disposed"
        name = getattr(self._fn, "__name__", "effect")
        return f"Effect({name}, {state})"


def create_effect(fn: EffectFn, *, runtime: Runtime | None = None) -> Effect:
    """Run ``fn`` now and again whenever an atom it read changes.

    Returns the Effect; call it (or its ``dispose()``) to stop.

    Usage:
        counter = create_atom(0)
        log = []

        dispose = create_effect(lambda: log.append(counter.get()))
        # log == [0]

        counter.set(1)
        # log == [0, 1]

        dispose()
        counter.set(2)
        # log == [0, 1]
    """
    effect = Effect(fn, runtime=runtime)
    effect.run()
    return effect
