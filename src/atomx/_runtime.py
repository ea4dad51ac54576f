"""Runtime — one independent reactive universe.

A runtime owns the dependency graph, the registry (id -> reactive), the batch
scheduler and the per-atom notifications pending inside a batch. Reactives
bind to the runtime that is current when they are created. A process-wide
default exists; tests and embedders can create and activate their own.

Atom ids come from one module-level counter, so they are unique across
runtimes and a stray cross-runtime read can never alias another atom.
"""

from __future__ import annotations

import contextvars
import itertools
import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Iterator

from atomx._batch import BatchScheduler, Scheduler
from atomx._graph import DependencyGraph
from atomx._notify import NotificationQueue

logger = logging.getLogger("atomx.runtime")

_id_counter = itertools.count(1)


def new_id() -> int:
    return next(_id_counter)


class Runtime:
    def __init__(self, scheduler: Scheduler | None = None) -> None:
        self.graph = DependencyGraph()
        self.batch = BatchScheduler(scheduler)
        self._registry: dict[int, Any] = {}
        self.effects: dict[Any, None] = {}
        self.notifications = NotificationQueue()

    # --- Registry ---

    def register(self, atom_id: int, atom: Any) -> None:
        self._registry[atom_id] = atom

    def unregister(self, atom_id: int) -> bool:
        return self._registry.pop(atom_id, None) is not None

    def get_atom(self, atom_id: int) -> Any | None:
        return self._registry.get(atom_id)

    @property
    def registry_size(self) -> int:
        return len(self._registry)

    def atoms(self) -> list[Any]:
        return list(self._registry.values())

    # --- Scheduling ---

    def set_scheduler(self, scheduler: Scheduler) -> None:
        self.batch.scheduler = scheduler

    def is_batching(self) -> bool:
        return self.batch.is_batching()

    # --- Lifecycle ---

    @contextmanager
    def use(self) -> Iterator[Runtime]:
        """Make this runtime current inside the ``with`` block."""
        token = _current.set(self)
        try:
            yield self
        finally:
            _current.reset(token)

    def dispose(self) -> None:
        """Dispose every effect and registered reactive, and forget the graph."""
        for effect in list(self.effects):
            effect.dispose()
        for atom in self.atoms():
            atom.dispose()
        self.effects.clear()
        self._registry.clear()
        self.notifications.clear()
        self.graph.reset()
        logger.debug("runtime disposed")


_default = Runtime()
_current: contextvars.ContextVar[Runtime | None] = contextvars.ContextVar("atomx_runtime", default=None)


def get_runtime() -> Runtime:
    """The current runtime: the innermost ``Runtime.use()`` block, else the default."""
    return _current.get() or _default


def set_runtime(runtime: Runtime) -> None:
    """Replace the process-wide default runtime."""
    global _default
    _default = runtime


def reset_runtime() -> Runtime:
    """Dispose the default runtime and install a fresh one."""
    global _default
    _default.dispose()
    _default = Runtime()
    return _default


def set_scheduler(scheduler: Scheduler) -> None:
    """Set the deferral hook for flushes scheduled outside a batch.

    Call once at startup, e.g. with a GUI loop's ``call_soon`` equivalent:
        atomx.set_scheduler(app.call_later)
    """
    get_runtime().set_scheduler(scheduler)
