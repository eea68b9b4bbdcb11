"""
Module graph and bounded bidirectional traversal.

The graph is built once per run from resolver output and is read-only
afterward. `related_files` walks it breadth-first in both import directions,
starting from the changed files, and stops expanding at the depth bound.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass, field


def normalize_path(file_path: str) -> str:
    """Canonical spelling used for every graph key and comparison."""
    normalized = file_path.replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized


@dataclass(frozen=True)
class DependencyRecord:
    """One resolved import of a module."""

    resolved: str
    module_name: str | None = None
    line_number: int | None = None


@dataclass
class ModuleRecord:
    """A parsed module and the project files it imports."""

    source: str
    dependencies: list[DependencyRecord] = field(default_factory=list)


@dataclass
class ModuleGraph:
    """Forward and reverse adjacency built from module records.

    `dependencies` answers "what does this file import", `dependents` answers
    "who imports this file".
    """

    dependencies: dict[str, set[str]] = field(default_factory=dict)
    dependents: dict[str, set[str]] = field(default_factory=dict)

    @classmethod
    def from_modules(cls, modules: Iterable[ModuleRecord]) -> ModuleGraph:
        """Build both adjacency maps.

        Raises:
            ValueError: A record has no source or a dependency has no
                resolved path.
        """
        graph = cls()
        for module in modules:
            if not getattr(module, "source", None):
                raise ValueError(f"Malformed module record: {module!r}")

            source = normalize_path(module.source)
            for dep in module.dependencies:
                if not getattr(dep, "resolved", None):
                    raise ValueError(f"Malformed dependency in {source}: {dep!r}")

                resolved = normalize_path(dep.resolved)
                graph.dependents.setdefault(resolved, set()).add(source)
                graph.dependencies.setdefault(source, set()).add(resolved)
        return graph

    @property
    def edge_count(self) -> int:
        return sum(len(targets) for targets in self.dependencies.values())

    def neighbors(self, file_path: str) -> set[str]:
        """Files one hop away in either direction."""
        return self.dependents.get(file_path, set()) | self.dependencies.get(
            file_path, set()
        )

    def related_files(self, seeds: Iterable[str], max_depth: int) -> set[str]:
        """Files within `max_depth` hops of any seed, seeds excluded.

        The depth check runs when a node is dequeued, so a node discovered at
        exactly `max_depth` is reported but not expanded. With
        `max_depth == 0` nothing is expanded and the result is empty.
        """
        seed_set = {normalize_path(seed) for seed in seeds}
        related: set[str] = set()
        visited: set[str] = set()
        frontier: deque[tuple[str, int]] = deque(
            (seed, 0) for seed in sorted(seed_set)
        )

        while frontier:
            file_path, depth = frontier.popleft()
            if file_path in visited or depth >= max_depth:
                continue

            visited.add(file_path)

            for neighbor in sorted(self.neighbors(file_path)):
                if neighbor in seed_set:
                    continue
                related.add(neighbor)
                frontier.append((neighbor, depth + 1))

        return related
