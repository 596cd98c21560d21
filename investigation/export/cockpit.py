"""
Cockpit projection.

Maps the graph onto the dashboard vocabulary: node and edge types are
collapsed onto the cockpit's smaller set, every path carries its key nodes
and the sources behind them.
"""

from __future__ import annotations
from typing import Any, Dict, List

from ..contracts.graph import InvestigationGraph, Node, NodeType, Path, RelationKind
from .serialization import _iso

COCKPIT_NODE_TYPES: Dict[NodeType, str] = {
    NodeType.EVENT: "event",
    NodeType.ACTOR: "actor",
    NodeType.RESOURCE: "resource",
    NodeType.DECISION: "decision",
    NodeType.IMPACT: "event",
}

COCKPIT_EDGE_TYPES: Dict[RelationKind, str] = {
    RelationKind.CAUSES: "causes",
    RelationKind.INFLUENCES: "related_to",
    RelationKind.FUNDS: "enables",
    RelationKind.RESTRICTS: "reacts_to",
    RelationKind.SUPPORTS: "enables",
    RelationKind.WEAKENS: "reacts_to",
    RelationKind.TRIGGERS: "precedes",
}


def _cockpit_node_type(node: Node) -> str:
    return COCKPIT_NODE_TYPES.get(node.type, "actor")


def _cockpit_path(path: Path, graph: InvestigationGraph, node_map: Dict[str, Node]) -> Dict[str, Any]:
    members = set(path.node_ids)
    edges_in_path = [e for e in graph.edges if e.from_id in members and e.to_id in members]
    nodes = [node_map[n] for n in path.node_ids if n in node_map]
    return {
        "id": path.id,
        "hypothesis": path.hypothesis_label or path.id,
        "status": path.status.value,
        "confidence": path.confidence_pct,
        "nodesCount": len(path.node_ids),
        "edgesCount": len(edges_in_path),
        "keyNodes": [
            {"id": n.id, "type": _cockpit_node_type(n), "label": n.label}
            for n in nodes
        ],
        "evidence": [
            {"text": "", "source": source, "confidence": "medium"}
            for n in nodes
            for source in n.sources
        ],
    }


def to_cockpit_dict(
    investigation_id: str,
    query: str,
    started_at: str,
    total_sources: int,
    graph: InvestigationGraph,
) -> Dict[str, Any]:
    """Dashboard-shaped view of an investigation graph."""
    node_map = graph.node_map()
    nodes: List[Dict[str, Any]] = [
        {
            "id": n.id,
            "type": _cockpit_node_type(n),
            "label": n.label,
            "date": _iso(n.date),
            "confidence": n.confidence_pct,
        }
        for n in graph.nodes
    ]
    edges = [
        {
            "from": e.from_id,
            "to": e.to_id,
            "type": COCKPIT_EDGE_TYPES.get(e.relation, "related_to"),
            "confidence": e.confidence_pct,
        }
        for e in graph.edges
    ]
    return {
        "id": investigation_id,
        "query": query,
        "status": "active",
        "startedAt": started_at,
        "totalSources": total_sources,
        "paths": [_cockpit_path(p, graph, node_map) for p in graph.paths],
        "graph": {"nodes": nodes, "edges": edges},
    }
