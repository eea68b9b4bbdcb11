"""Tests for the module graph and the bounded bidirectional traversal."""

from __future__ import annotations

import pytest

from tools.dependencies.graph import (
    DependencyRecord,
    ModuleGraph,
    ModuleRecord,
    normalize_path,
)


def _graph(edges: dict[str, list[str]]) -> ModuleGraph:
    modules = [
        ModuleRecord(source=src, dependencies=[DependencyRecord(resolved=d) for d in deps])
        for src, deps in edges.items()
    ]
    return ModuleGraph.from_modules(modules)


@pytest.fixture
def chain_graph() -> ModuleGraph:
    # a imports b, b imports c, d imports a
    return _graph({"a.py": ["b.py"], "b.py": ["c.py"], "d.py": ["a.py"]})


class TestNormalizePath:
    def test_backslashes_and_dot_prefix(self) -> None:
        assert normalize_path(".\\pkg\\mod.py") == "pkg/mod.py"
        assert normalize_path("././pkg/mod.py") == "pkg/mod.py"
        assert normalize_path("pkg/mod.py") == "pkg/mod.py"

    def test_parent_prefix_is_kept(self) -> None:
        assert normalize_path("../pkg/mod.py") == "../pkg/mod.py"


class TestGraphBuilder:
    def test_both_maps_are_filled(self, chain_graph: ModuleGraph) -> None:
        assert chain_graph.dependencies["a.py"] == {"b.py"}
        assert chain_graph.dependents["a.py"] == {"d.py"}
        assert chain_graph.dependents["c.py"] == {"b.py"}
        assert chain_graph.edge_count == 3

    def test_keys_are_normalized(self) -> None:
        graph = _graph({"./pkg\\a.py": ["./pkg/b.py"]})
        assert graph.dependencies == {"pkg/a.py": {"pkg/b.py"}}
        assert graph.dependents == {"pkg/b.py": {"pkg/a.py"}}

    def test_record_without_source_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            ModuleGraph.from_modules([ModuleRecord(source="")])

    def test_dependency_without_target_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            ModuleGraph.from_modules(
                [ModuleRecord(source="a.py", dependencies=[DependencyRecord(resolved="")])]
            )


class TestRelatedFiles:
    def test_depth_one(self, chain_graph: ModuleGraph) -> None:
        assert chain_graph.related_files(["a.py"], 1) == {"b.py", "d.py"}

    def test_depth_two(self, chain_graph: ModuleGraph) -> None:
        assert chain_graph.related_files(["a.py"], 2) == {"b.py", "c.py", "d.py"}

    def test_depth_zero_is_empty(self, chain_graph: ModuleGraph) -> None:
        assert chain_graph.related_files(["a.py"], 0) == set()

    def test_seeds_never_in_result(self) -> None:
        graph = _graph({"a.py": ["b.py"], "b.py": ["a.py", "c.py"], "c.py": ["a.py"]})
        result = graph.related_files(["a.py", "b.py"], 5)
        assert result == {"c.py"}

    def test_nodes_beyond_depth_are_excluded(self) -> None:
        graph = _graph({"a.py": ["b.py"], "b.py": ["c.py"], "c.py": ["d.py"]})
        assert graph.related_files(["a.py"], 2) == {"b.py", "c.py"}

    def test_nearest_seed_decides_depth(self) -> None:
        graph = _graph({"a.py": ["b.py"], "b.py": ["c.py"], "x.py": ["c.py"]})
        # c is 2 hops from a but 1 hop from x
        assert graph.related_files(["a.py", "x.py"], 1) == {"b.py", "c.py"}

    def test_normalized_seed_matches_graph_node(self, chain_graph: ModuleGraph) -> None:
        assert chain_graph.related_files(["./a.py"], 1) == {"b.py", "d.py"}

    def test_unknown_seed_has_no_neighbors(self, chain_graph: ModuleGraph) -> None:
        assert chain_graph.related_files(["zzz.py"], 3) == set()

    def test_idempotent(self, chain_graph: ModuleGraph) -> None:
        first = chain_graph.related_files(["a.py"], 2)
        second = chain_graph.related_files(["a.py"], 2)
        assert first == second
