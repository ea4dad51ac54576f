"""Atoms — mutable roots holding one immutable, versioned value.

Reads inside a Derived or Effect register the atom (or the path read) as a
dependency. Writes go through the atom's state node, which reports exactly
which paths changed; subscribers whose interest overlaps those paths are
notified, immediately or at the end of the enclosing transaction.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Generic, TypeVar

from atomx._notify import Handler, notify_state_change
from atomx._paths import Path, PathLike, normalize_path, path_to_string
from atomx._runtime import Runtime, get_runtime, new_id
from atomx._state import PrimitiveStateNode, StateNode, create_state_node
from atomx._structural import is_container
from atomx._tracking import track_dependency
from atomx.errors import (
    DependencyError,
    ErrorCode,
    PathError,
    ReactiveError,
    StateError,
    handle_error,
)

T = TypeVar("T")

devtools_logger = logging.getLogger("atomx.devtools")

Unsubscribe = Callable[[], None]
EqualsFn = Callable[[Any, Any], bool]


class ReadableAtom(Generic[T]):
    """Read, path access and subscription shared by Atom and Derived."""

    kind = "atom"

    def __init__(
        self,
        initial: T,
        *,
        name: str | None = None,
        devtools: bool = False,
        runtime: Runtime | None = None,
    ) -> None:
        self._runtime = runtime or get_runtime()
        self._id = new_id()
        self.name = name
        self._devtools = devtools
        self._node: StateNode | PrimitiveStateNode = create_state_node(initial)
        self._subscribers: dict[Handler, None] = {}
        self._path_subscribers: dict[str, dict[Handler, None]] = {}
        self._runtime.register(self._id, self)
        if devtools:
            devtools_logger.info("%s created: %r", self._label, self._node.get())

    @property
    def id(self) -> int:
        return self._id

    @property
    def runtime(self) -> Runtime:
        return self._runtime

    @property
    def is_primitive(self) -> bool:
        """True when the current value has no child paths."""
        return self._node.is_primitive

    @property
    def _label(self) -> str:
        return self.name or f"{self.kind}#{self._id}"

    # --- Reads ---

    def get(self) -> T:
        track_dependency(self._id, ())
        return self._node.get()

    def peek(self) -> T:
        """The current value, without registering a dependency."""
        return self._node.get()

    def get_path(self, path: PathLike) -> Any:
        path = normalize_path(path)
        if self._node.is_primitive:
            raise StateError(ErrorCode.INVALID_OPERATION, "Cannot access path on primitive values", self._id)
        track_dependency(self._id, path)
        try:
            return self._node.get_path(path)
        except PathError as exc:
            raise handle_error(exc)

    def at(self, key: Any) -> PathAccessor:
        if not is_container(self._node.get()):
            raise StateError(ErrorCode.INVALID_OPERATION, "Cannot use 'at' on primitive values", self._id)
        return PathAccessor(self, (key,))

    # --- Subscriptions ---

    def subscribe(self, handler: Handler) -> Unsubscribe:
        """Call ``handler()`` after every accepted write. Returns an unsubscribe function."""
        if not callable(handler):
            raise StateError(ErrorCode.SUBSCRIPTION_ERROR, "Subscriber must be callable", self._id)
        self._subscribers[handler] = None
        if self._devtools:
            devtools_logger.info("%s subscription added", self._label)

        def _unsubscribe() -> None:
            if handler not in self._subscribers:
                return
            del self._subscribers[handler]
            if self._devtools:
                devtools_logger.info("%s subscription removed", self._label)

        return _unsubscribe

    def subscribe_path(self, path: PathLike, handler: Handler) -> Unsubscribe:
        """Call ``handler()`` when a write touches ``path``, an ancestor, or a descendant."""
        if self._node.is_primitive:
            raise StateError(ErrorCode.INVALID_OPERATION, "Cannot subscribe to path on primitive values", self._id)
        if not callable(handler):
            raise StateError(ErrorCode.SUBSCRIPTION_ERROR, "Subscriber must be callable", self._id)
        key = path_to_string(normalize_path(path))
        self._path_subscribers.setdefault(key, {})[handler] = None
        if self._devtools:
            devtools_logger.info("%s path subscription added: %s", self._label, key)

        def _unsubscribe() -> None:
            handlers = self._path_subscribers.get(key)
            if handlers is None or handler not in handlers:
                return
            del handlers[handler]
            if not handlers:
                del self._path_subscribers[key]
            if self._devtools:
                devtools_logger.info("%s path subscription removed: %s", self._label, key)

        return _unsubscribe

    # --- Writes (internal) ---

    def _commit(self, node: StateNode | PrimitiveStateNode, changed: set[Path]) -> None:
        if not changed:
            return
        self._node = node
        if self._devtools:
            devtools_logger.info(
                "%s updated: %r (changed %s)",
                self._label,
                node.get(),
                sorted(path_to_string(path) for path in changed),
            )
        notify_state_change(self._runtime, self._id, changed, self._subscribers, self._path_subscribers)

    def _publish(self, value: Any) -> None:
        node, changed = self._node.update(lambda _: value)
        self._commit(node, changed)

    def dispose(self) -> None:
        """Drop subscribers and leave the registry and dependency graph."""
        self._subscribers.clear()
        self._path_subscribers.clear()
        self._runtime.unregister(self._id)
        self._runtime.graph.remove_node(self._id)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._label}, {self._node.get()!r})"


class Atom(ReadableAtom[T]):
    """A mutable reactive root."""

    def __init__(
        self,
        initial: T,
        *,
        name: str | None = None,
        equals: EqualsFn | None = None,
        devtools: bool = False,
        runtime: Runtime | None = None,
    ) -> None:
        super().__init__(initial, name=name, devtools=devtools, runtime=runtime)
        self._equals = equals

    def set(self, value: T) -> None:
        if self._equals is not None and self._equals(self._node.get(), value):
            return
        self._publish(value)

    def update(self, updater: Callable[[T], T]) -> None:
        """Replace the value with ``updater(current)``. Updater errors are reported, not raised."""
        try:
            current = self._node.get()
            value = updater(current)
            if self._equals is not None and self._equals(current, value):
                return
            node, changed = self._node.update(lambda _: value)
        except Exception as exc:
            handle_error(StateError(ErrorCode.UNKNOWN, f"Error updating {self._label}: {exc}", self._id, exc))
            return
        self._commit(node, changed)

    def set_path(self, path: PathLike, value: Any) -> None:
        path = normalize_path(path)
        if self._node.is_primitive:
            raise StateError(ErrorCode.INVALID_OPERATION, "Cannot set path on primitive values", self._id)
        try:
            node, changed = self._node.set_path(path, value)
        except PathError as exc:
            handle_error(exc)
            return
        except Exception as exc:
            handle_error(PathError(ErrorCode.INVALID_PATH, path, f"Error setting path: {exc}", exc))
            return
        self._commit(node, changed)


class PathAccessor:
    """A cursor at one nested position of an atom. Chain with ``.at()``."""

    __slots__ = ("_atom", "_path")

    def __init__(self, atom: ReadableAtom, path: Path) -> None:
        self._atom = atom
        self._path = tuple(path)

    @property
    def path(self) -> Path:
        return self._path

    def get(self) -> Any:
        return self._atom.get_path(self._path)

    def set(self, value: Any) -> None:
        self._atom.set_path(self._path, value)

    def update(self, updater: Callable[[Any], Any]) -> None:
        self.set(updater(self.get()))

    def at(self, key: Any) -> PathAccessor:
        return PathAccessor(self._atom, self._path + (key,))

    def subscribe(self, handler: Handler) -> Unsubscribe:
        return self._atom.subscribe_path(self._path, handler)

    def __repr__(self) -> str:
        return f"PathAccessor({self._atom._label}, {path_to_string(self._path)!r})"


def subscribe_dependencies(
    runtime: Runtime,
    dependencies: dict[int, set[Path]],
    handler: Handler,
    make_error: Callable[[str, BaseException], ReactiveError],
) -> list[Unsubscribe]:
    """Subscribe ``handler`` to everything a tracked computation read.

    An atom is subscribed as a whole when its value is primitive, when no path
    was recorded, or when the root itself was read; otherwise once per
    recorded path. Each failure is reported on its own and the rest proceed.
    """
    unsubscribers: list[Unsubscribe] = []
    for atom_id, paths in dependencies.items():
        atom = runtime.get_atom(atom_id)
        if atom is None:
            handle_error(DependencyError(ErrorCode.ATOM_NOT_FOUND, f"Atom {atom_id} not found"))
            continue
        if atom.is_primitive or not paths or () in paths:
            targets: list[Path | None] = [None]
        else:
            targets = list(paths)
        for path in targets:
            try:
                if path is None:
                    unsubscribers.append(atom.subscribe(handler))
                else:
                    unsubscribers.append(atom.subscribe_path(path, handler))
            except Exception as exc:
                handle_error(make_error(f"Error subscribing to {atom._label}", exc))
    return unsubscribers


def create_atom(
    initial: T,
    *,
    name: str | None = None,
    equals: EqualsFn | None = None,
    devtools: bool = False,
    runtime: Runtime | None = None,
) -> Atom[T]:
    """Create a mutable atom.

    Usage:
        user = create_atom({"name": "Ada", "langs": ["en"]})
        user.at("name").subscribe(lambda: print("renamed"))
        user.at("name").set("Grace")   # prints "renamed"
        user.at("langs").set(["en"])   # no-op: value unchanged
    """
    return Atom(initial, name=name, equals=equals, devtools=devtools, runtime=runtime)
