"""Path helpers. A path is a tuple of keys: str for mappings, int for sequences."""

from __future__ import annotations

from typing import Iterable, Union

Segment = Union[str, int]
Path = tuple
PathLike = Union[str, int, Iterable[Segment]]


def string_to_path(path: str) -> Path:
    """``"users.0.name"`` -> ``("users", 0, "name")``."""
    if path == "":
        return ()
    return tuple(int(segment) if segment.isdigit() else segment for segment in path.split("."))


def path_to_string(path: Iterable[Segment]) -> str:
    return ".".join(str(segment) for segment in path)


def normalize_path(path: PathLike) -> Path:
    """Accept a dotted string, a single key, or a sequence of segments."""
    if isinstance(path, str):
        return string_to_path(path)
    if isinstance(path, int):
        return (path,)
    segments: list[Segment] = []
    for segment in path:
        if isinstance(segment, str) and "." in segment:
            segments.extend(string_to_path(segment))
        else:
            segments.append(segment)
    return tuple(segments)


def _key(path: Iterable[Segment]) -> tuple[str, ...]:
    # A mapping key "42" and a parsed segment 42 name the same position.
    return tuple(str(segment) for segment in path)


def are_same_paths(a: Path, b: Path) -> bool:
    return _key(a) == _key(b)


def is_subpath(sub: Path, parent: Path) -> bool:
    """True when ``sub`` is a strict descendant of ``parent``."""
    return len(sub) > len(parent) and _key(sub[: len(parent)]) == _key(parent)


def are_related_paths(a: Path, b: Path) -> bool:
    """True when one path is a prefix of the other. The root relates to everything."""
    shorter, longer = (a, b) if len(a) <= len(b) else (b, a)
    return _key(longer[: len(shorter)]) == _key(shorter)


def is_direct_parent_path(parent: Path, child: Path) -> bool:
    return len(parent) == len(child) - 1 and is_subpath(child, parent)


def compact_paths(paths: Iterable[Path]) -> set[Path]:
    """Drop every path that is related to a shorter one already kept."""
    kept: list[Path] = []
    for path in sorted(set(paths), key=len):
        if not any(are_related_paths(path, existing) for existing in kept):
            kept.append(path)
    return set(kept)
