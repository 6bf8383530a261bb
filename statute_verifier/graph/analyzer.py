"""
Graph analysis over a dependency snapshot.

All functions are pure: they read the graph and never modify it. They accept
either a DependencyGraph or a bare networkx DiGraph.
"""

from __future__ import annotations

from typing import Iterable

import networkx as nx
from pydantic import BaseModel, Field

from statute_verifier.core.config import Settings, get_settings
from statute_verifier.graph.builder import DependencyGraph
from statute_verifier.statutes.schema import Statute

# DFS colours
WHITE, GREY, BLACK = 0, 1, 2


class GraphMetrics(BaseModel):
    """Structural metrics of a statute dependency graph."""

    node_count: int = 0
    edge_count: int = 0
    density: float = 0.0
    cycles: list[list[str]] = Field(default_factory=list)
    scc_count: int = 0
    diameter: int | None = None
    pagerank: dict[str, float] = Field(default_factory=dict)
    betweenness: dict[str, float] = Field(default_factory=dict)
    isolated_nodes: list[str] = Field(default_factory=list)
    dangling_references: list[tuple[str, str]] = Field(default_factory=list)

    @property
    def has_cycles(self) -> bool:
        return bool(self.cycles)

    def top_ranked(self, n: int = 5) -> list[tuple[str, float]]:
        """Most central statutes by PageRank (ties broken by ID)."""
        ranked = sorted(self.pagerank.items(), key=lambda item: (-item[1], item[0]))
        return ranked[:n]


def _as_digraph(graph: DependencyGraph | nx.DiGraph) -> nx.DiGraph:
    return graph.graph if isinstance(graph, DependencyGraph) else graph


def _canonical(cycle: list[str]) -> list[str]:
    """Rotate a cycle so it starts at its smallest ID."""
    start = cycle.index(min(cycle))
    return cycle[start:] + cycle[:start]


# =============================================================================
# Cycles and Components
# =============================================================================

def detect_cycles(graph: DependencyGraph | nx.DiGraph) -> list[list[str]]:
    """Find reference cycles.

    An iterative depth-first search reports one simple cycle per back edge.
    A completion pass then adds a shortest cycle through any statute that
    sits on a cycle but was only reached through cross edges, so every
    cyclic statute appears in at least one reported cycle.

    Returns:
        Canonical (rotated to smallest ID), de-duplicated cycles in discovery
        order; a self-reference is a cycle of length 1
    """
    g = _as_digraph(graph)
    color = {node: WHITE for node in g.nodes}
    seen: set[tuple[str, ...]] = set()
    cycles: list[list[str]] = []

    def record(cycle: list[str]) -> None:
        canonical = _canonical(cycle)
        key = tuple(canonical)
        if key not in seen:
            seen.add(key)
            cycles.append(canonical)

    for root in sorted(g.nodes):
        if color[root] != WHITE:
            continue
        color[root] = GREY
        path = [root]
        stack = [(root, iter(sorted(g.successors(root))))]
        while stack:
            node, successors = stack[-1]
            child = next(successors, None)
            if child is None:
                stack.pop()
                path.pop()
                color[node] = BLACK
            elif color[child] == WHITE:
                color[child] = GREY
                path.append(child)
                stack.append((child, iter(sorted(g.successors(child)))))
            elif color[child] == GREY:
                record(path[path.index(child):])

    covered = {node for cycle in cycles for node in cycle}
    for component in nx.strongly_connected_components(g):
        if len(component) < 2:
            continue
        subgraph = g.subgraph(component)
        for node in sorted(component - covered):
            best: list[str] | None = None
            for successor in sorted(subgraph.successors(node)):
                back = nx.shortest_path(subgraph, successor, node)
                candidate = [node] + back[:-1]
                if best is None or len(candidate) < len(best):
                    best = candidate
            if best is not None:
                record(best)
                covered.update(best)

    return cycles


def scc_count(graph: DependencyGraph | nx.DiGraph) -> int:
    """Number of strongly connected components."""
    return sum(1 for _ in nx.strongly_connected_components(_as_digraph(graph)))


def diameter(graph: DependencyGraph | nx.DiGraph, per_component: bool = False) -> int | None:
    """Longest shortest directed path between any two statutes.

    Args:
        graph: Snapshot to measure
        per_component: Measure within weakly connected components instead of
            returning None for a disconnected graph

    Returns:
        The diameter, or None for an empty (or, unless per_component,
        disconnected) graph
    """
    g = _as_digraph(graph)
    if g.number_of_nodes() == 0:
        return None
    if not per_component and not nx.is_weakly_connected(g):
        return None

    longest = 0
    for node in g.nodes:
        lengths = nx.single_source_shortest_path_length(g, node)
        longest = max(longest, max(lengths.values()))
    return longest


# =============================================================================
# Centrality
# =============================================================================

def pagerank(
    graph: DependencyGraph | nx.DiGraph,
    damping: float = 0.85,
    max_iterations: int = 100,
    tolerance: float = 1e-6,
) -> dict[str, float]:
    """PageRank by power iteration.

    Rank mass of statutes with no outgoing references is spread uniformly.
    Iteration stops when the L1 change drops below ``tolerance`` or after
    ``max_iterations`` rounds.
    """
    g = _as_digraph(graph)
    nodes = list(g.nodes)
    n = len(nodes)
    if n == 0:
        return {}

    rank = {node: 1.0 / n for node in nodes}
    out_edges = {node: list(g.successors(node)) for node in nodes}

    for _ in range(max_iterations):
        dangling_mass = sum(rank[node] for node in nodes if not out_edges[node])
        base = (1.0 - damping) / n + damping * dangling_mass / n
        updated = {node: base for node in nodes}
        for node in nodes:
            targets = out_edges[node]
            if targets:
                share = damping * rank[node] / len(targets)
                for target in targets:
                    updated[target] += share
        change = sum(abs(updated[node] - rank[node]) for node in nodes)
        rank = updated
        if change < tolerance:
            break

    return rank


def betweenness(graph: DependencyGraph | nx.DiGraph) -> dict[str, float]:
    """Normalised betweenness centrality (Brandes)."""
    g = _as_digraph(graph)
    if g.number_of_nodes() == 0:
        return {}
    return nx.betweenness_centrality(g, normalized=True)


def isolated_nodes(graph: DependencyGraph | nx.DiGraph) -> list[str]:
    """Statutes that neither reference nor are referenced."""
    g = _as_digraph(graph)
    return [node for node in g.nodes if g.degree(node) == 0]


# =============================================================================
# Summary
# =============================================================================

def compute_graph_metrics(dependency_graph: DependencyGraph) -> GraphMetrics:
    g = dependency_graph.graph
    return GraphMetrics(
        node_count=g.number_of_nodes(),
        edge_count=g.number_of_edges(),
        density=nx.density(g) if g.number_of_nodes() > 1 else 0.0,
        cycles=detect_cycles(g),
        scc_count=scc_count(g),
        diameter=diameter(g),
        pagerank=pagerank(g),
        betweenness=betweenness(g),
        isolated_nodes=isolated_nodes(g),
        dangling_references=dependency_graph.dangling_references,
    )


def analyze_graph_metrics(
    statutes: Iterable[Statute],
    legacy_custom_references: bool | None = None,
    settings: Settings | None = None,
) -> GraphMetrics:
    """Build the dependency graph for ``statutes`` and summarise it.

    Args:
        statutes: Statute collection
        legacy_custom_references: Override the settings' legacy_custom_references
        settings: Settings to read defaults from (defaults to get_settings())

    Returns:
        GraphMetrics for the collection
    """
    if legacy_custom_references is None:
        legacy_custom_references = (settings or get_settings()).legacy_custom_references
    dependency_graph = DependencyGraph.from_statutes(
        statutes, legacy_custom_references=legacy_custom_references
    )
    return compute_graph_metrics(dependency_graph)
