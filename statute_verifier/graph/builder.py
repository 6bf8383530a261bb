"""Dependency graph over a statute collection.

Nodes are statute IDs; an edge A -> B means statute A references statute B.
References are read from ``Statute.references`` and, unless disabled, from
legacy ``Custom("statute:<id>")`` preconditions.
"""

from __future__ import annotations

from typing import Iterable

import networkx as nx

from statute_verifier.statutes.schema import Statute


class DependencyGraph:
    """Immutable snapshot of statute references."""

    def __init__(self, graph: nx.DiGraph, dangling_references: list[tuple[str, str]] | None = None):
        self._graph = nx.freeze(graph)
        self._dangling = list(dangling_references or [])

    @classmethod
    def from_statutes(
        cls,
        statutes: Iterable[Statute],
        legacy_custom_references: bool = True,
    ) -> DependencyGraph:
        """Build the graph for a statute collection.

        Args:
            statutes: Statutes to include (duplicate IDs share one node)
            legacy_custom_references: Also read ``Custom("statute:<id>")`` references

        Returns:
            DependencyGraph with references to unknown IDs kept aside as dangling
        """
        statutes = list(statutes)
        graph = nx.DiGraph()
        for statute in statutes:
            if not graph.has_node(statute.id):
                graph.add_node(
                    statute.id,
                    title=statute.title,
                    jurisdiction=statute.jurisdiction,
                )

        dangling: list[tuple[str, str]] = []
        for statute in statutes:
            for target in statute.referenced_ids(include_legacy=legacy_custom_references):
                if graph.has_node(target):
                    graph.add_edge(statute.id, target)
                elif (statute.id, target) not in dangling:
                    dangling.append((statute.id, target))

        return cls(graph, dangling)

    @property
    def graph(self) -> nx.DiGraph:
        """The frozen networkx graph."""
        return self._graph

    @property
    def dangling_references(self) -> list[tuple[str, str]]:
        """(source ID, missing target ID) pairs."""
        return list(self._dangling)

    @property
    def nodes(self) -> list[str]:
        return list(self._graph.nodes)

    @property
    def edges(self) -> list[tuple[str, str]]:
        return list(self._graph.edges)

    def references_of(self, statute_id: str) -> list[str]:
        """IDs the given statute references."""
        if not self._graph.has_node(statute_id):
            return []
        return list(self._graph.successors(statute_id))

    def referenced_by(self, statute_id: str) -> list[str]:
        """IDs of statutes referencing the given statute."""
        if not self._graph.has_node(statute_id):
            return []
        return list(self._graph.predecessors(statute_id))

    def __len__(self) -> int:
        return self._graph.number_of_nodes()
