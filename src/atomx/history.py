"""Time travel — undo/redo history for one atom.

History is a plain client of an atom: it reads with ``get()``, restores with
``set()`` and records through ``subscribe()``. Snapshots are identified by the
canonical hash of their value, so consecutive identical states collapse into
one entry.
"""

from __future__ import annotations

import time
import weakref
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from atomx._structural import compute_hash, deep_freeze, structural_clone
from atomx.errors import ErrorCode, TimeError

T = TypeVar("T")


@dataclass(frozen=True)
class Snapshot(Generic[T]):
    value: T
    timestamp: float
    id: str


def create_snapshot(value: T) -> Snapshot[T]:
    return Snapshot(deep_freeze(structural_clone(value)), time.time(), compute_hash(value))


def snapshots_equal(a: Snapshot, b: Snapshot) -> bool:
    return a.id == b.id


def limit_snapshots(snapshots: list[Snapshot], max_count: int) -> list[Snapshot]:
    """Keep the newest ``max_count`` snapshots."""
    if len(snapshots) <= max_count:
        return snapshots
    return snapshots[-max_count:]


class History(Generic[T]):
    """Bounded past/future stacks over an atom's values.

    The last entry of ``past`` is always the current state.
    """

    def __init__(self, atom: Any, limit: int = 100) -> None:
        if limit < 1:
            raise TimeError(ErrorCode.TIME_ERROR, "History limit must be at least 1")
        self._atom = atom
        self._limit = limit
        self._past: list[Snapshot[T]] = []
        self._future: list[Snapshot[T]] = []
        self.record(atom.get())
        self._unsubscribe = atom.subscribe(lambda: self.record(atom.get()))

    @property
    def past(self) -> tuple[Snapshot[T], ...]:
        return tuple(self._past)

    @property
    def future(self) -> tuple[Snapshot[T], ...]:
        return tuple(self._future)

    @property
    def limit(self) -> int:
        return self._limit

    def record(self, value: T) -> None:
        """Push ``value`` as the new current state and drop the redo branch."""
        snapshot = create_snapshot(value)
        if self._past and self._past[-1].id == snapshot.id:
            return
        self._past.append(snapshot)
        self._future.clear()
        self._past = limit_snapshots(self._past, self._limit)

    def undo(self) -> bool:
        if len(self._past) <= 1:
            return False
        self._future.insert(0, self._past.pop())
        self._atom.set(self._past[-1].value)
        return True

    def redo(self) -> bool:
        if not self._future:
            return False
        self._past.append(self._future.pop(0))
        self._atom.set(self._past[-1].value)
        return True

    def goto(self, snapshot_id: str) -> bool:
        """Jump to a snapshot in either stack. False if unknown or already current."""
        for index, snapshot in enumerate(self._past):
            if snapshot.id == snapshot_id:
                if index == len(self._past) - 1:
                    return False
                self._future[:0] = self._past[index + 1:]
                del self._past[index + 1:]
                self._atom.set(self._past[-1].value)
                return True

        for index, snapshot in enumerate(self._future):
            if snapshot.id == snapshot_id:
                self._past.extend(self._future[: index + 1])
                del self._future[: index + 1]
                self._atom.set(self._past[-1].value)
                return True

        return False

    def clear(self) -> None:
        """Forget everything except the current state."""
        self._past = self._past[-1:]
        self._future.clear()

    def set_limit(self, limit: int) -> None:
        if limit < 1:
            raise TimeError(ErrorCode.TIME_ERROR, "History limit must be at least 1")
        self._limit = limit
        self._past = limit_snapshots(self._past, limit)

    def dispose(self) -> None:
        self._unsubscribe()
        _histories.pop(self._atom, None)


_histories: weakref.WeakKeyDictionary[Any, History] = weakref.WeakKeyDictionary()


def get_history(atom: Any) -> History:
    """The shared History for ``atom``, created on first use."""
    history = _histories.get(atom)
    if history is None:
        history = _histories[atom] = History(atom)
    return history
