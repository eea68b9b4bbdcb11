"""
Dependency expander tool.

Finds the files related to a change set: files that import the changed files
and files the changed files import, transitively, up to a depth bound.
Expansion is best-effort. When the resolver fails the run continues with no
related files.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from loguru import logger

from tools.base import BaseTool, ToolResult
from tools.config import CatcherConfig
from tools.dependencies.graph import ModuleGraph, ModuleRecord, normalize_path
from tools.dependencies.resolver import ImportResolver


class ModuleResolver(Protocol):
    """Anything that turns seed files into module records."""

    def resolve(self, seeds: list[str], max_depth: int) -> list[ModuleRecord]: ...


@dataclass
class ExpansionInput:
    changed_files: list[str]
    max_depth: int


class DependencyExpander(BaseTool[ExpansionInput, list[str]]):
    """Bounded bidirectional expansion over the import graph."""

    def __init__(self, resolver: ModuleResolver) -> None:
        super().__init__("DependencyExpander")
        self.resolver = resolver
        self.graph: ModuleGraph | None = None

    def validate_input(self, input_data: ExpansionInput) -> bool:
        return input_data.max_depth >= 0

    def execute(self, input_data: ExpansionInput) -> ToolResult[list[str]]:
        seeds = [normalize_path(f) for f in input_data.changed_files]
        modules = self.resolver.resolve(seeds, input_data.max_depth)

        self.graph = ModuleGraph.from_modules(modules)
        logger.debug(
            "Built dependency maps: {} importing file(s), {} imported file(s), {} edge(s)",
            len(self.graph.dependencies),
            len(self.graph.dependents),
            self.graph.edge_count,
        )

        related = sorted(self.graph.related_files(seeds, input_data.max_depth))
        return ToolResult.success(
            output=related,
            metrics=self._create_metrics(files_processed=len(modules)),
        )


def find_related_files(
    changed_files: list[str],
    depth: int,
    config: CatcherConfig | None = None,
    root: str = ".",
    resolver: ModuleResolver | None = None,
) -> list[str]:
    """Return files related to `changed_files`, never raising.

    Args:
        changed_files: Seed paths, relative to `root`.
        depth: Maximum number of import hops in either direction.
        config: Supplies exclude patterns, extensions and source roots.
        root: Project root.
        resolver: Overrides the default `ImportResolver`.

    Returns:
        Sorted related paths (seeds excluded); empty when expansion fails.
    """
    if not changed_files:
        return []

    if resolver is None:
        config = config or CatcherConfig()
        resolver = ImportResolver(
            root=root,
            source_roots=config.dependency_options.source_roots,
            exclude_patterns=config.exclude_patterns,
            extensions=config.extensions,
        )

    result = DependencyExpander(resolver).run(
        ExpansionInput(changed_files=list(changed_files), max_depth=depth)
    )
    if not result.ok or result.output is None:
        logger.warning(
            "Failed to generate dependency graph, continuing without related files: {}",
            result.error_message,
        )
        return []
    return result.output
