"""Derived values — read-only atoms computed from other atoms.

A Derived runs its compute function under dependency tracking, subscribes to
whatever it read, and caches the result. When a dependency changes it is
marked dirty and recomputed right away; its own subscribers are notified only
when the new result differs from the cached one under ``equals``.

Derived shares Atom's read and subscribe surface (``get``, ``at``,
``get_path``, ``subscribe``, ``subscribe_path``) but every write raises.
"""

from __future__ import annotations

from typing import Any, Callable, TypeVar, overload

from atomx._paths import Path, PathLike
from atomx._runtime import Runtime
from atomx._structural import same_value
from atomx._tracking import track_dependency, with_tracking
from atomx.atom import EqualsFn, PathAccessor, ReadableAtom, Unsubscribe, subscribe_dependencies
from atomx.errors import (
    CircularDependencyError,
    DerivationError,
    ErrorCode,
    StateError,
    handle_error,
)

T = TypeVar("T")


class Derived(ReadableAtom[T]):
    """A cached, automatically re-tracked computation."""

    kind = "derived"

    def __init__(
        self,
        compute: Callable[[], T],
        *,
        equals: EqualsFn | None = None,
        name: str | None = None,
        retrack_interval: int = 1,
        runtime: Runtime | None = None,
    ) -> None:
        if not callable(compute):
            raise StateError(ErrorCode.INVALID_OPERATION, "Derived compute must be callable")
        super().__init__(None, name=name, runtime=runtime)
        self._compute = compute
        self._equals = equals or same_value
        self._retrack_interval = max(1, retrack_interval)
        self._recompute_count = 0
        self._dirty = True
        self._disposed = False
        self._initialized = False
        self._value: Any = None
        self._dependencies: dict[int, set[Path]] = {}
        self._tracked = False
        self._unsubscribers: list[Unsubscribe] = []
        self._handler = self._on_dependency_change

        try:
            self._refresh()
        except CircularDependencyError:
            self.dispose()
            raise

    # --- Introspection ---

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    @property
    def dependencies(self) -> dict[int, set[Path]]:
        """Atom ids (and paths within them) read by the last tracked computation."""
        return {atom_id: set(paths) for atom_id, paths in self._dependencies.items()}

    # --- Reads ---

    def get(self) -> T:
        track_dependency(self._id, ())
        self._refresh_if_dirty()
        return self._node.get()

    def get_path(self, path: PathLike) -> Any:
        self._refresh_if_dirty()
        return super().get_path(path)

    def at(self, key: Any) -> PathAccessor:
        self._refresh_if_dirty()
        return super().at(key)

    def force_recompute(self) -> T:
        self._dirty = True
        return self.get()

    # --- Writes are not allowed ---

    def set(self, value: Any) -> None:
        raise StateError(
            ErrorCode.INVALID_OPERATION,
            "Cannot directly set a derived state. Derived states are computed from their dependencies.",
            self._id,
        )

    def update(self, updater: Callable[[Any], Any]) -> None:
        raise StateError(
            ErrorCode.INVALID_OPERATION,
            "Cannot directly update a derived state. Derived states are computed from their dependencies.",
            self._id,
        )

    def set_path(self, path: PathLike, value: Any) -> None:
        raise StateError(
            ErrorCode.INVALID_OPERATION,
            "Cannot directly set a path on a derived state.",
            self._id,
        )

    # --- Recomputation ---

    def _recompute(self) -> Any:
        self._recompute_count += 1
        full = not self._tracked or (self._recompute_count - 1) % self._retrack_interval == 0
        if not full:
            # Reuse the last dependency set; the private session keeps these
            # reads out of any enclosing tracker.
            value, _ = with_tracking(self._id, self._compute)
            return value

        failure: Exception | None = None

        def compute() -> Any:
            nonlocal failure
            try:
                return self._compute()
            except Exception as exc:
                failure = exc
                return None

        value, dependencies = with_tracking(self._id, compute)
        if failure is not None:
            # Never wired: subscribe to whatever was read before the failure
            # so a fix to a source retries the computation.
            if not self._tracked:
                self._wire(dependencies)
            raise failure

        self._runtime.graph.update(self._id, dependencies)
        if not self._tracked or dependencies != self._dependencies:
            self._wire(dependencies)
        self._tracked = True
        return value

    def _refresh(self) -> None:
        try:
            value = self._recompute()
        except CircularDependencyError as exc:
            handle_error(exc)
            raise
        except Exception as exc:
            # Keep the cached value and stay dirty so the next read retries.
            handle_error(DerivationError(f"Error in derived computation ({self._label})", self._id, exc))
            return

        self._dirty = False
        if self._initialized and self._equals(self._value, value):
            return
        self._value = value
        self._initialized = True
        self._publish(value)

    def _refresh_if_dirty(self) -> None:
        if self._dirty and not self._disposed:
            self._refresh()

    def _on_dependency_change(self) -> None:
        if self._disposed:
            return
        self._dirty = True
        self._refresh()

    def _wire(self, dependencies: dict[int, set[Path]]) -> None:
        self._unwire()
        self._dependencies = dependencies
        self._unsubscribers = subscribe_dependencies(
            self._runtime,
            dependencies,
            self._handler,
            lambda message, exc: DerivationError(message, self._id, exc),
        )

    def _unwire(self) -> None:
        for unsubscribe in self._unsubscribers:
            try:
                unsubscribe()
            except Exception as exc:
                handle_error(DerivationError("Error unsubscribing from dependency", self._id, exc))
        self._unsubscribers = []

    def dispose(self) -> None:
        """Stop tracking dependencies and leave the graph. Reads return the last value."""
        self._disposed = True
        self._unwire()
        self._dependencies = {}
        super().dispose()


def create_derived(
    compute: Callable[[], T],
    *,
    equals: EqualsFn | None = None,
    name: str | None = None,
    retrack_interval: int = 1,
    runtime: Runtime | None = None,
) -> Derived[T]:
    """Create a read-only value computed from other atoms.

    Usage:
        cart = create_atom({"items": [3, 4]})
        total = create_derived(lambda: sum(cart.at("items").get()))
        total.get()  # 7
    """
    return Derived(compute, equals=equals, name=name, retrack_interval=retrack_interval, runtime=runtime)


@overload
def derived(fn: Callable[[], T]) -> Derived[T]: ...


@overload
def derived(*, equals: EqualsFn | None = None, name: str | None = None) -> Callable[[Callable[[], T]], Derived[T]]: ...


def derived(fn=None, *, equals=None, name=None):
    """Decorator form of create_derived.

    Usage:
        counter = create_atom(0)

        @derived
        def doubled():
            return counter.get() * 2

        doubled.get()  # 0
        counter.set(5)
        doubled.get()  # 10
    """

    def wrap(compute):
        return Derived(compute, equals=equals, name=name or getattr(compute, "__name__", None))

    if fn is None:
        return wrap
    return wrap(fn)
