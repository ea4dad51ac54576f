"""Persistent dependency graph with cycle detection.

Vertices are atom ids. An edge ``source -> dependency`` means the source read
the dependency during its last tracked computation. Both directions are stored
(``dependencies`` and ``dependents``) and only _set_edges() touches them, which
keeps them symmetric.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from atomx._paths import Path, path_to_string
from atomx.errors import CircularDependencyError

logger = logging.getLogger("atomx.graph")


@dataclass
class DependencyNode:
    id: int
    paths: set[str] = field(default_factory=set)
    dependents: set[int] = field(default_factory=set)
    dependencies: set[int] = field(default_factory=set)


class DependencyGraph:
    def __init__(self) -> None:
        self._nodes: dict[int, DependencyNode] = {}

    def _node(self, atom_id: int) -> DependencyNode:
        node = self._nodes.get(atom_id)
        if node is None:
            node = self._nodes[atom_id] = DependencyNode(atom_id)
        return node

    def _set_edges(self, source_id: int, dependency_ids: Iterable[int]) -> None:
        source = self._node(source_id)
        for old_id in source.dependencies:
            old = self._nodes.get(old_id)
            if old is not None:
                old.dependents.discard(source_id)
        source.dependencies = set()
        for dep_id in dependency_ids:
            if dep_id == source_id:
                continue
            self._node(dep_id).dependents.add(source_id)
            source.dependencies.add(dep_id)

    def update(self, source_id: int, dependencies: dict[int, set[Path]]) -> None:
        """Replace the source's edges; all-or-nothing with respect to cycles."""
        logger.debug("update graph for %s -> %s", source_id, sorted(dependencies))
        source = self._node(source_id)
        previous_edges = set(source.dependencies)
        previous_paths = set(source.paths)

        self._set_edges(source_id, dependencies)
        source.paths = {
            path_to_string(path)
            for dep_id, paths in dependencies.items()
            if dep_id != source_id
            for path in paths
        }

        cycle = self.detect_cycle(source_id)
        if cycle is not None:
            self._set_edges(source_id, previous_edges)
            source.paths = previous_paths
            raise CircularDependencyError(
                "Circular dependency detected: " + " -> ".join(str(atom_id) for atom_id in cycle),
                cycle,
            )

    def detect_cycle(self, start_id: int) -> list[int] | None:
        """DFS from ``start_id``; returns the cycle as an ordered id list, or None."""
        visited: set[int] = set()
        path: list[int] = []

        def dfs(node_id: int) -> list[int] | None:
            if node_id in path:
                return path[path.index(node_id):] + [node_id]
            if node_id in visited:
                return None
            visited.add(node_id)
            path.append(node_id)
            node = self._nodes.get(node_id)
            if node is not None:
                for dep_id in node.dependencies:
                    cycle = dfs(dep_id)
                    if cycle is not None:
                        return cycle
            path.pop()
            return None

        return dfs(start_id)

    def remove_node(self, atom_id: int) -> None:
        node = self._nodes.pop(atom_id, None)
        if node is None:
            return
        for dep_id in node.dependencies:
            dep = self._nodes.get(dep_id)
            if dep is not None:
                dep.dependents.discard(atom_id)
        for dependent_id in node.dependents:
            dependent = self._nodes.get(dependent_id)
            if dependent is not None:
                dependent.dependencies.discard(atom_id)

    def get_node(self, atom_id: int) -> DependencyNode | None:
        return self._nodes.get(atom_id)

    def dependencies_of(self, atom_id: int) -> set[int]:
        node = self._nodes.get(atom_id)
        return set(node.dependencies) if node else set()

    def dependents_of(self, atom_id: int) -> set[int]:
        node = self._nodes.get(atom_id)
        return set(node.dependents) if node else set()

    def snapshot(self) -> dict[int, DependencyNode]:
        """Copy of every vertex, for debugging."""
        return {
            atom_id: DependencyNode(node.id, set(node.paths), set(node.dependents), set(node.dependencies))
            for atom_id, node in self._nodes.items()
        }

    def reset(self) -> None:
        self._nodes.clear()

    def __contains__(self, atom_id: object) -> bool:
        return atom_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)
