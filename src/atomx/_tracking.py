"""Dependency tracking — records which atoms a computation reads.

A tracking session is a TrackingContext pushed on a stack held in a
ContextVar, so asyncio tasks and threads each see their own stack. While a
session is active, every Atom.get() / get_path() calls track_dependency(),
which files ``(atom_id, path)`` under the innermost session. Sessions nest: a
Derived read inside another Derived's computation opens its own session.
"""

from __future__ import annotations

import contextvars
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, TypeVar

from atomx._paths import Path, path_to_string
from atomx.errors import DependencyError, ErrorCode, handle_error

if TYPE_CHECKING:
    from atomx._graph import DependencyGraph

T = TypeVar("T")

logger = logging.getLogger("atomx.tracking")

Dependencies = dict[int, set[Path]]


@dataclass
class TrackingContext:
    source_id: int | None
    dependencies: Dependencies = field(default_factory=dict)


_stack: contextvars.ContextVar[tuple[TrackingContext, ...]] = contextvars.ContextVar(
    "atomx_tracking_stack", default=()
)


def is_tracking() -> bool:
    return bool(_stack.get())


def current_tracker() -> TrackingContext | None:
    stack = _stack.get()
    return stack[-1] if stack else None


def start_tracking(source_id: int | None = None) -> TrackingContext:
    """Open a tracking session for ``source_id`` (None for anonymous readers such as effects)."""
    context = TrackingContext(source_id)
    _stack.set(_stack.get() + (context,))
    logger.debug("start tracking for %s", source_id)
    return context


def stop_tracking() -> Dependencies:
    """Close the innermost session and return what it recorded."""
    stack = _stack.get()
    if not stack:
        raise handle_error(DependencyError(ErrorCode.DEPENDENCY_ERROR, "No active dependency tracker"))
    context = stack[-1]
    _stack.set(stack[:-1])
    logger.debug(
        "stop tracking for %s (%d dependencies)", context.source_id, len(context.dependencies)
    )
    return context.dependencies


def track_dependency(atom_id: int, path: Path = ()) -> None:
    """Record a read. No-op outside a session and for reads of the session's own source."""
    context = current_tracker()
    if context is None or context.source_id == atom_id:
        return
    logger.debug("track %s path=%r", atom_id, path_to_string(path))
    context.dependencies.setdefault(atom_id, set()).add(tuple(path))


def cleanup_all_tracking() -> None:
    """Drop every open session. For error recovery and tests."""
    _stack.set(())


def with_tracking(
    source_id: int | None,
    fn: Callable[[], T],
    graph: DependencyGraph | None = None,
) -> tuple[T, Dependencies]:
    """Run ``fn`` in a fresh session and return ``(result, dependencies)``.

    When both ``source_id`` and ``graph`` are given, the discovered
    dependencies replace the source's edges in the graph; a cycle raises
    CircularDependencyError and leaves the graph as it was.
    """
    start_tracking(source_id)
    try:
        result = fn()
    finally:
        dependencies = stop_tracking()

    if source_id is not None and graph is not None:
        graph.update(source_id, dependencies)
    return result, dependencies
