"""Immutable state nodes.

A node wraps one frozen value and its canonical hash. Transitions never mutate
a node: update() and set_path() return ``(successor, changed_paths)``, and an
unchanged value comes back as ``(self, set())``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Callable

from atomx._paths import Path, compact_paths, path_to_string
from atomx._structural import (
    compute_hash,
    deep_freeze,
    is_container,
    is_missing,
    is_sequence,
    lookup,
    same_value,
    set_value_at_path,
)
from atomx.errors import ErrorCode, PathError, StateError


class StateNode:
    """Node for a container root (dict, list or tuple)."""

    __slots__ = ("_value", "_hash")

    is_primitive = False

    def __init__(self, value: Any) -> None:
        # deep_freeze rebuilds every mutable container, so the node never
        # aliases the caller's value.
        self._value = deep_freeze(value)
        self._hash = compute_hash(self._value)

    def get(self) -> Any:
        return self._value

    @property
    def hash(self) -> str:
        return self._hash

    def update(self, updater: Callable[[Any], Any]) -> tuple[StateNode | PrimitiveStateNode, set[Path]]:
        candidate = updater(self._value)
        if compute_hash(candidate) == self._hash:
            return self, set()
        # Differing hashes always change something, at worst the root.
        changed = compute_changed_paths(self._value, candidate) or {()}
        return create_state_node(candidate), changed

    def get_path(self, path: Path) -> Any:
        current = self._value
        for i, segment in enumerate(path):
            reached = path_to_string(path[: i + 1])
            if current is None or not is_container(current):
                parent = "None" if current is None else type(current).__name__
                raise PathError(
                    ErrorCode.INVALID_PATH,
                    path,
                    f"Cannot access path {reached}: parent is {parent}",
                )
            current = lookup(current, segment)
            if is_missing(current):
                raise PathError(
                    ErrorCode.INVALID_PATH,
                    path,
                    f"Cannot access path {reached}: key {segment!r} does not exist",
                )
        return current

    def set_path(self, path: Path, value: Any) -> tuple[StateNode, set[Path]]:
        if not path:
            if not is_container(value):
                raise PathError(ErrorCode.INVALID_PATH, path, "Cannot set a non-container value at the root")
            return self.update(lambda _: value)

        try:
            current = self.get_path(path)
        except PathError:
            current = None
        else:
            if compute_hash(current) == compute_hash(value):
                return self, set()

        return StateNode(set_value_at_path(self._value, path, value)), {tuple(path)}

    def __repr__(self) -> str:
        return f"StateNode({self._value!r})"


class PrimitiveStateNode:
    """Node for a scalar root. Has no child paths."""

    __slots__ = ("_value", "_hash")

    is_primitive = True

    def __init__(self, value: Any) -> None:
        self._value = deep_freeze(value)
        self._hash = compute_hash(self._value)

    def get(self) -> Any:
        return self._value

    @property
    def hash(self) -> str:
        return self._hash

    def update(self, updater: Callable[[Any], Any]) -> tuple[StateNode | PrimitiveStateNode, set[Path]]:
        candidate = updater(self._value)
        if same_value(self._value, candidate):
            return self, set()
        return create_state_node(candidate), {()}

    def get_path(self, path: Path) -> Any:
        raise StateError(ErrorCode.INVALID_OPERATION, "Cannot access path on primitive value")

    def set_path(self, path: Path, value: Any) -> tuple[PrimitiveStateNode, set[Path]]:
        raise StateError(ErrorCode.INVALID_OPERATION, "Cannot set path on primitive value")

    def __repr__(self) -> str:
        return f"PrimitiveStateNode({self._value!r})"


def create_state_node(value: Any) -> StateNode | PrimitiveStateNode:
    if is_container(value):
        return StateNode(value)
    return PrimitiveStateNode(value)


def _sequence_kind(value: Any) -> type:
    return list if isinstance(value, list) else type(value)


def compute_changed_paths(old: Any, new: Any) -> set[Path]:
    """Lock-step structural diff, compacted so a parent path wins over its children.

    A non-root container whose children all changed wholesale is reported as
    one path: ``{"a": {"b": 1, "c": 2}}`` -> ``{"a": {"b": 9, "c": 9}}`` gives
    ``{("a",)}``.
    """
    changed: list[Path] = []

    def detect(a: Any, b: Any, path: Path) -> bool:
        """Record changes below ``path``; True when ``path`` itself was reported."""
        if a is b:
            return False
        if a is None or b is None:
            changed.append(path)
            return True
        a_mapping, b_mapping = isinstance(a, Mapping), isinstance(b, Mapping)
        a_seq, b_seq = is_sequence(a), is_sequence(b)
        if a_mapping != b_mapping or a_seq != b_seq:
            changed.append(path)
            return True
        if not (a_mapping or a_seq):
            if compute_hash(a) != compute_hash(b):
                changed.append(path)
                return True
            return False

        if a_seq and (_sequence_kind(a) is not _sequence_kind(b) or len(a) != len(b)):
            changed.append(path)
            return True

        keys = range(len(a)) if a_seq else {**a, **b}
        mark = len(changed)
        wholesale = True
        for key in keys:
            if a_mapping and (key not in a or key not in b):
                changed.append(path + (key,))
            elif not detect(a[key], b[key], path + (key,)):
                wholesale = False

        if path and wholesale and len(changed) > mark:
            del changed[mark:]
            changed.append(path)
            return True
        return False

    detect(old, new, ())
    return compact_paths(changed)
