"""
Topology Engine
===============

Structural view of the investigation graph using NetworkX.

This engine computes TOPOLOGY (geometry), not PLAUSIBILITY (judgment).

ALLOWED:
- Directed graph construction
- Cycle detection and removal of cycle-closing edges
- Root/sink identification
- Ordered successor traversal

FORBIDDEN:
- Scoring or ranking nodes (centrality, PageRank)
- Interpreting relation kinds
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple
import networkx as nx

from ..contracts.graph import Edge, Node


@dataclass(frozen=True)
class GraphMetrics:
    """Immutable structural metrics for the evidence graph."""
    node_count: int
    edge_count: int
    root_count: int
    sink_count: int


class TopologyEngine:
    """
    Directed evidence graph with deterministic traversal order.

    Node order is the order nodes were supplied in (temporal order when the
    graph comes from ingestion); every query that returns several nodes
    returns them in that order.
    """

    def __init__(self):
        self._graph = nx.DiGraph()
        self._order: Dict[str, int] = {}

    def build_graph(self, nodes: Sequence[Node], edges: Sequence[Edge]) -> Tuple[Edge, ...]:
        """
        Build the directed graph, replacing internal state.

        Endpoints must already be validated. Returns the edges dropped to
        break cycles, in the order they were dropped.
        """
        self._graph = nx.DiGraph()
        self._order = {}

        for position, node in enumerate(nodes):
            self._order[node.id] = position
            self._graph.add_node(node.id)

        for sequence, edge in enumerate(edges):
            # First edge wins for repeated endpoints
            if self._graph.has_edge(edge.from_id, edge.to_id):
                continue
            self._graph.add_edge(edge.from_id, edge.to_id, sequence=sequence, edge=edge)

        return self._break_cycles()

    def _break_cycles(self) -> Tuple[Edge, ...]:
        """
        Drop the latest-supplied edge of every cycle until the graph is a DAG.

        Evidence pipelines occasionally emit an out-of-order pair; the edge
        that closed the loop is treated as the corrupt one.
        """
        dropped: List[Edge] = []
        while True:
            try:
                cycle = nx.find_cycle(self._graph)
            except nx.NetworkXNoCycle:
                break
            u, v = max(
                ((a, b) for a, b, *_ in cycle),
                key=lambda pair: self._graph.edges[pair]['sequence'],
            )
            dropped.append(self._graph.edges[u, v]['edge'])
            self._graph.remove_edge(u, v)
        return tuple(dropped)

    def _ordered(self, node_ids) -> List[str]:
        return sorted(node_ids, key=self._order.__getitem__)

    def roots(self) -> List[str]:
        """Nodes with in-degree 0."""
        return self._ordered(n for n, d in self._graph.in_degree() if d == 0)

    def sinks(self) -> List[str]:
        """Nodes with out-degree 0."""
        return self._ordered(n for n, d in self._graph.out_degree() if d == 0)

    def successors(self, node_id: str) -> List[str]:
        return self._ordered(self._graph.successors(node_id))

    def edge(self, from_id: str, to_id: str) -> Edge:
        return self._graph.edges[from_id, to_id]['edge']

    def compute_metrics(self) -> GraphMetrics:
        return GraphMetrics(
            node_count=self._graph.number_of_nodes(),
            edge_count=self._graph.number_of_edges(),
            root_count=len(self.roots()),
            sink_count=len(self.sinks()),
        )
