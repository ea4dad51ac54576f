"""Actions and transactions — batched state mutations.

Writes inside a transaction apply immediately (a read right after a write
sees the new value), but subscriber notification is deferred until the
outermost transaction exits, and several writes to one atom are delivered as
a single notification.
"""

from __future__ import annotations

import functools
from contextlib import AbstractContextManager
from typing import Callable, ParamSpec, TypeVar, overload

from atomx._runtime import get_runtime

P = ParamSpec("P")
R = TypeVar("R")


@overload
def transaction(fn: Callable[[], R]) -> R: ...


@overload
def transaction() -> AbstractContextManager[None]: ...


def transaction(fn=None):
    """Run ``fn`` in a batch and return its result, or open a batch as a context manager.

    Usage:
        transaction(lambda: (a.set(1), b.set(2)))

        with transaction():
            a.set(1)
            b.set(2)
            # subscribers run here, once, after both writes
    """
    batch = get_runtime().batch
    if fn is None:
        return batch.scope()
    return batch.execute(fn)


def action(fn: Callable[P, R]) -> Callable[P, R]:
    """Decorator: batch all atom writes inside fn.

    Usage:
        @action
        def swap():
            x, y = a.get(), b.get()
            a.set(y)
            b.set(x)
            # subscribers see both changes at once
    """

    @functools.wraps(fn)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        with get_runtime().batch.scope():
            return fn(*args, **kwargs)

    return wrapper
