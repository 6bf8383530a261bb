"""Tests for the dependency graph and graph analysis."""

from __future__ import annotations

import networkx as nx
import pytest

import statute_verifier
from statute_verifier import verification
from statute_verifier.conditions import Custom
from statute_verifier.core import Settings
from statute_verifier.graph import (
    DependencyGraph,
    analyze_graph_metrics,
    betweenness,
    detect_cycles,
    diameter,
    isolated_nodes,
    pagerank,
    scc_count,
)


def _digraph(*edges: tuple[str, str], nodes: tuple[str, ...] = ()) -> nx.DiGraph:
    graph = nx.DiGraph()
    graph.add_nodes_from(nodes)
    graph.add_edges_from(edges)
    return graph


@pytest.fixture
def chain() -> nx.DiGraph:
    """A -> B -> C"""
    return _digraph(("A", "B"), ("B", "C"))


# =============================================================================
# Builder Tests
# =============================================================================

class TestDependencyGraph:
    """Test building the reference graph from statutes."""

    def test_edges_from_references(self, make_statute):
        statutes = [
            make_statute("s1", references=["s2"]),
            make_statute("s2", references=["s3"]),
            make_statute("s3"),
        ]
        graph = DependencyGraph.from_statutes(statutes)
        assert graph.nodes == ["s1", "s2", "s3"]
        assert graph.edges == [("s1", "s2"), ("s2", "s3")]
        assert graph.references_of("s1") == ["s2"]
        assert graph.referenced_by("s3") == ["s2"]
        assert len(graph) == 3

    def test_dangling_references_kept_aside(self, make_statute):
        graph = DependencyGraph.from_statutes([make_statute("s1", references=["missing"])])
        assert graph.edges == []
        assert graph.dangling_references == [("s1", "missing")]

    def test_legacy_custom_references(self, make_statute):
        """Custom("statute:<id>") counts as a reference unless disabled."""
        statutes = [
            make_statute("s1", Custom(description="statute:s2")),
            make_statute("s2"),
        ]
        assert DependencyGraph.from_statutes(statutes).edges == [("s1", "s2")]
        assert DependencyGraph.from_statutes(statutes, legacy_custom_references=False).edges == []

    def test_graph_is_frozen(self, make_statute):
        graph = DependencyGraph.from_statutes([make_statute("s1")])
        with pytest.raises(nx.NetworkXError):
            graph.graph.add_node("s2")


# =============================================================================
# Cycle Tests
# =============================================================================

class TestDetectCycles:
    """Test reference cycle detection."""

    def test_two_statute_cycle(self):
        assert detect_cycles(_digraph(("s1", "s2"), ("s2", "s1"))) == [["s1", "s2"]]

    def test_self_reference(self):
        assert detect_cycles(_digraph(("A", "A"))) == [["A"]]

    def test_acyclic(self, chain):
        assert detect_cycles(chain) == []

    def test_every_cyclic_node_reported(self):
        """A node reached only through a cross edge still appears in a cycle."""
        graph = _digraph(("A", "B"), ("A", "C"), ("B", "A"), ("C", "B"))
        cycles = detect_cycles(graph)
        assert cycles == [["A", "B"], ["A", "C", "B"]]
        assert {node for cycle in cycles for node in cycle} == {"A", "B", "C"}

    def test_accepts_dependency_graph(self, make_statute):
        statutes = [make_statute("s1", references=["s2"]), make_statute("s2", references=["s1"])]
        assert detect_cycles(DependencyGraph.from_statutes(statutes)) == [["s1", "s2"]]


# =============================================================================
# Metric Tests
# =============================================================================

class TestGraphMetrics:
    """Test structural metrics."""

    def test_scc_count(self):
        graph = _digraph(("A", "B"), ("B", "A"), ("B", "C"))
        assert scc_count(graph) == 2

    def test_diameter(self, chain):
        assert diameter(chain) == 2
        assert diameter(nx.DiGraph()) is None

    def test_diameter_disconnected(self, chain):
        graph = chain.copy()
        graph.add_node("D")
        assert diameter(graph) is None
        assert diameter(graph, per_component=True) == 2

    def test_pagerank(self, chain):
        """The end of a reference chain is the most central statute."""
        ranks = pagerank(chain)
        assert ranks["C"] > ranks["B"] > ranks["A"]
        assert sum(ranks.values()) == pytest.approx(1.0)
        assert pagerank(nx.DiGraph()) == {}

    def test_betweenness(self, chain):
        scores = betweenness(chain)
        assert scores["B"] == pytest.approx(0.5)
        assert scores["A"] == pytest.approx(0.0)

    def test_isolated_nodes(self, chain):
        graph = chain.copy()
        graph.add_node("D")
        assert isolated_nodes(graph) == ["D"]

    def test_analyze_graph_metrics(self, make_statute):
        statutes = [
            make_statute("s1", references=["s2"]),
            make_statute("s2", references=["s1", "gone"]),
            make_statute("s3"),
        ]
        metrics = analyze_graph_metrics(statutes, legacy_custom_references=True)
        assert metrics.node_count == 3
        assert metrics.edge_count == 2
        assert metrics.has_cycles
        assert metrics.cycles == [["s1", "s2"]]
        assert metrics.scc_count == 2
        assert metrics.diameter is None
        assert metrics.isolated_nodes == ["s3"]
        assert metrics.dangling_references == [("s2", "gone")]
        assert metrics.top_ranked(1)[0][0] in {"s1", "s2"}

    def test_metrics_follow_settings(self, make_statute):
        statutes = [make_statute("s1", Custom(description="statute:s2")), make_statute("s2")]
        legacy_off = Settings(legacy_custom_references=False)
        assert analyze_graph_metrics(statutes, settings=legacy_off).edge_count == 0
        overridden = analyze_graph_metrics(statutes, legacy_custom_references=True, settings=legacy_off)
        assert overridden.edge_count == 1

    def test_one_metrics_entry_point(self):
        assert verification.analyze_graph_metrics is analyze_graph_metrics
        assert statute_verifier.analyze_graph_metrics is analyze_graph_metrics
