"""Statute dependency graph and graph analysis."""

from .builder import DependencyGraph
from .analyzer import (
    GraphMetrics,
    detect_cycles,
    scc_count,
    diameter,
    pagerank,
    betweenness,
    isolated_nodes,
    compute_graph_metrics,
    analyze_graph_metrics,
)

__all__ = [
    "DependencyGraph",
    "GraphMetrics",
    "detect_cycles",
    "scc_count",
    "diameter",
    "pagerank",
    "betweenness",
    "isolated_nodes",
    "compute_graph_metrics",
    "analyze_graph_metrics",
]
