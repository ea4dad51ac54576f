"""Introspection helpers for development."""

from __future__ import annotations

import logging
from typing import Any

from atomx._runtime import Runtime, get_runtime

logger = logging.getLogger("atomx.debug")


def get_atom_by_id(atom_id: int, runtime: Runtime | None = None) -> Any | None:
    return (runtime or get_runtime()).get_atom(atom_id)


def describe_graph(runtime: Runtime | None = None) -> dict[str, list[dict[str, Any]]]:
    """Nodes and ``depends`` edges of the current reactive universe.

    Atoms and derived values are keyed by id; effects, which have no id, are
    keyed ``effect:<n>`` in creation order.
    """
    runtime = runtime or get_runtime()
    nodes: list[dict[str, Any]] = []
    edges: list[dict[str, Any]] = []

    for atom in runtime.atoms():
        nodes.append({"id": str(atom.id), "kind": atom.kind, "label": atom._label})
        for dep_id in sorted(runtime.graph.dependencies_of(atom.id)):
            edges.append({"from": str(atom.id), "to": str(dep_id), "kind": "depends"})

    for index, effect in enumerate(runtime.effects, 1):
        key = f"effect:{index}"
        nodes.append({"id": key, "kind": "effect", "label": repr(effect)})
        for dep_id in sorted(effect.dependencies):
            edges.append({"from": key, "to": str(dep_id), "kind": "depends"})

    return {"nodes": nodes, "edges": edges}


def log_atoms(runtime: Runtime | None = None, level: int = logging.INFO) -> None:
    """Log every registered reactive and its current value."""
    for atom in (runtime or get_runtime()).atoms():
        logger.log(level, "%s %s = %r", atom.kind, atom._label, atom.peek())
