"""Structural primitives: clone, freeze, canonical hash and path navigation.

Containers are dicts (mappings) and lists/tuples (sequences). Frozen values use
FrozenDict / FrozenList, which are real dict / list subclasses so they compare
equal to plain containers and serialize the same way, but refuse mutation.
Because frozen containers are immutable they are shared, never copied, which is
what gives successive state versions their structural sharing.
"""

from __future__ import annotations

import dataclasses
import datetime
import enum
import numbers
import uuid
from collections.abc import Mapping
from typing import Any

_MISSING = object()


def _readonly(self, *args, **kwargs):
    raise TypeError(f"{type(self).__name__} is immutable; build a new value instead")


class FrozenDict(dict):
    """A dict that raises TypeError on mutation."""

    __slots__ = ()

    __setitem__ = _readonly
    __delitem__ = _readonly
    __ior__ = _readonly
    clear = _readonly
    pop = _readonly
    popitem = _readonly
    setdefault = _readonly
    update = _readonly

    def __reduce__(self):
        return (FrozenDict, (dict(self),))


class FrozenList(list):
    """A list that raises TypeError on mutation."""

    __slots__ = ()

    __setitem__ = _readonly
    __delitem__ = _readonly
    __iadd__ = _readonly
    __imul__ = _readonly
    append = _readonly
    extend = _readonly
    insert = _readonly
    pop = _readonly
    remove = _readonly
    clear = _readonly
    sort = _readonly
    reverse = _readonly

    def __reduce__(self):
        return (FrozenList, (list(self),))


def is_container(value: Any) -> bool:
    return isinstance(value, (Mapping, list, tuple))


def is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def _rebuild_tuple(original: tuple, items: list) -> tuple:
    # Named tuples keep their type.
    if hasattr(type(original), "_fields"):
        return type(original)(*items)
    return tuple(items)


# ─── Clone / freeze ──────────────────────────────────────────────────────────


def structural_clone(value: Any, _memo: dict[int, Any] | None = None) -> Any:
    """Deep-copy every mutable container. Frozen and scalar values are shared."""
    if isinstance(value, (FrozenDict, FrozenList)):
        return value
    if _memo is None:
        _memo = {}
    key = id(value)
    if key in _memo:
        return _memo[key]

    if isinstance(value, Mapping):
        copy: dict = {}
        _memo[key] = copy
        for k, v in value.items():
            copy[k] = structural_clone(v, _memo)
        return copy
    if isinstance(value, list):
        copy_list: list = []
        _memo[key] = copy_list
        copy_list.extend(structural_clone(item, _memo) for item in value)
        return copy_list
    if isinstance(value, tuple):
        return _rebuild_tuple(value, [structural_clone(item, _memo) for item in value])
    if isinstance(value, set):
        return set(value)
    return value


def deep_freeze(value: Any, _memo: dict[int, Any] | None = None) -> Any:
    """Return the immutable rendition of ``value``. Frozen input comes back unchanged.

    Every mutable container is rebuilt, so the result never aliases the input.
    """
    if isinstance(value, (FrozenDict, FrozenList)):
        return value
    if _memo is None:
        _memo = {}
    key = id(value)
    if key in _memo:
        return _memo[key]

    if isinstance(value, Mapping):
        frozen = FrozenDict()
        _memo[key] = frozen
        dict.update(frozen, {k: deep_freeze(v, _memo) for k, v in value.items()})
        return frozen
    if isinstance(value, list):
        frozen_list = FrozenList()
        _memo[key] = frozen_list
        list.extend(frozen_list, [deep_freeze(item, _memo) for item in value])
        return frozen_list
    if isinstance(value, tuple):
        return _rebuild_tuple(value, [deep_freeze(item, _memo) for item in value])
    if isinstance(value, set):
        return frozenset(value)
    return value


# ─── Hash / equality ─────────────────────────────────────────────────────────


def _type_name(value: Any) -> str:
    return f"{type(value).__module__}.{type(value).__qualname__}"


def _is_value_dataclass(value: Any) -> bool:
    """Dataclass instances that compare by field values (eq=True)."""
    if isinstance(value, type) or not dataclasses.is_dataclass(value):
        return False
    return value.__dataclass_params__.eq


def compute_hash(value: Any, _memo: dict[int, str] | None = None) -> str:
    """Canonical string: equal for deeply equal values, different otherwise.

    Mapping keys are order-independent; sequences are order and length
    sensitive. Scalars are type-tagged so 1, 1.0, True and "1" all differ.
    """
    if value is None:
        return "none"
    if isinstance(value, enum.Enum):
        return f"enum:{_type_name(value)}.{value.name}"
    if isinstance(value, bool):
        return f"bool:{value}"
    if isinstance(value, numbers.Number):
        return f"{type(value).__name__}:{value!r}"
    if isinstance(value, str):
        return f"str:{value!r}"
    if isinstance(value, (bytes, bytearray)):
        return f"bytes:{bytes(value)!r}"
    if isinstance(value, (datetime.date, datetime.time)):
        return f"{type(value).__name__}:{value.isoformat()}"
    if isinstance(value, (datetime.timedelta, uuid.UUID)):
        return f"{type(value).__name__}:{value}"

    if _memo is None:
        _memo = {}
    key = id(value)
    if key in _memo:
        return _memo[key]

    if isinstance(value, Mapping):
        _memo[key] = "[Circular]"
        pairs = sorted(f"{compute_hash(k, _memo)}={compute_hash(v, _memo)}" for k, v in value.items())
        result = "dict:{" + ",".join(pairs) + "}"
    elif isinstance(value, list):
        _memo[key] = "[Circular]"
        result = "list:[" + ",".join(compute_hash(item, _memo) for item in value) + "]"
    elif isinstance(value, tuple):
        _memo[key] = "[Circular]"
        tag = "tuple" if type(value) is tuple else _type_name(value)
        result = f"{tag}:(" + ",".join(compute_hash(item, _memo) for item in value) + ")"
    elif isinstance(value, (set, frozenset)):
        _memo[key] = "[Circular]"
        result = "set:{" + ",".join(sorted(compute_hash(item, _memo) for item in value)) + "}"
    elif _is_value_dataclass(value):
        _memo[key] = "[Circular]"
        fields = ",".join(
            f"{field.name}={compute_hash(getattr(value, field.name), _memo)}"
            for field in dataclasses.fields(value)
        )
        result = f"{_type_name(value)}:({fields})"
    elif callable(value):
        result = f"callable:{id(value)}"
    else:
        # Opaque objects compare by identity; a repr says nothing about equality.
        result = f"object:{_type_name(value)}:{id(value)}"

    _memo[key] = result
    return result


def same_value(a: Any, b: Any) -> bool:
    """Identity, or equality between values of the exact same type."""
    if a is b:
        return True
    if type(a) is not type(b):
        return False
    try:
        return bool(a == b)
    except Exception:
        return False


# ─── Path navigation ─────────────────────────────────────────────────────────


def _mapping_key(container: Mapping, segment: Any) -> Any:
    # Digit segments are parsed as ints; fall back to the string key.
    if segment not in container and isinstance(segment, int) and str(segment) in container:
        return str(segment)
    return segment


def _as_index(segment: Any) -> int | None:
    if isinstance(segment, bool):
        return None
    if isinstance(segment, int):
        return segment
    if isinstance(segment, str) and segment.isdigit():
        return int(segment)
    return None


def lookup(container: Any, segment: Any) -> Any:
    """One navigation step. Returns the module sentinel when nothing is there."""
    if isinstance(container, Mapping):
        return container.get(_mapping_key(container, segment), _MISSING)
    if is_sequence(container):
        index = _as_index(segment)
        if index is None or not -len(container) <= index < len(container):
            return _MISSING
        return container[index]
    return _MISSING


def is_missing(value: Any) -> bool:
    return value is _MISSING


def get_value_at_path(value: Any, path: tuple) -> Any:
    """Lenient lookup: None when any segment is unresolvable."""
    current = value
    for segment in path:
        current = lookup(current, segment)
        if current is _MISSING:
            return None
    return current


def _replace(container: Any, segment: Any, child: Any) -> Any:
    if isinstance(container, Mapping):
        copy = dict(container)
        copy[_mapping_key(container, segment)] = child
        return copy
    if is_sequence(container):
        index = _as_index(segment)
        if index is None:
            raise TypeError(f"sequence index must be an int, got {segment!r}")
        items = list(container)
        if index == len(items):
            items.append(child)
        else:
            items[index] = child
        return _rebuild_tuple(container, items) if isinstance(container, tuple) else items
    raise TypeError(f"cannot set {segment!r} on {type(container).__name__}")


def set_value_at_path(value: Any, path: tuple, new_value: Any) -> Any:
    """Return a copy of ``value`` with ``new_value`` at ``path``.

    Only the containers on the path are reallocated; siblings keep their
    identity. Missing intermediates become a list when the next segment is an
    int, else a dict. Writing at index ``len(list)`` appends.
    """
    if not path:
        return structural_clone(new_value)
    head, rest = path[0], tuple(path[1:])
    child = lookup(value, head)
    if rest and (child is _MISSING or child is None):
        child = [] if isinstance(rest[0], int) else {}
    return _replace(value, head, set_value_at_path(child, rest, new_value))
