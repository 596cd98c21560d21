"""
JSON serialization for graphs and briefings.

Output is byte-identical for identical inputs: keys are sorted, sets are
sorted, confidences leave this module as integer percentages.
"""

from __future__ import annotations
import json
from dataclasses import asdict
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional

from ..contracts.base import Timestamp
from ..contracts.briefing import BriefingPayload
from ..contracts.graph import Edge, InvestigationGraph, Node, Path


class StrictInvestigationEncoder(json.JSONEncoder):
    """
    JSON Encoder that prioritizes fidelity over flexibility.

    RULES:
    1. Timestamps and dates MUST be ISO 8601 strings (UTC).
    2. Enums MUST use their .value.
    3. Sets -> Lists (sorted for determinism).
    4. Objects exposing to_dict() serialize through it; other dataclasses
       through asdict().
    """

    def default(self, obj: Any) -> Any:
        if isinstance(obj, Timestamp):
            return obj.to_iso()
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, (set, frozenset)):
            return sorted(obj)
        if hasattr(obj, "to_dict"):
            return obj.to_dict()
        if hasattr(obj, "__dataclass_fields__"):
            return asdict(obj)

        return super().default(obj)


def _iso(value: Optional[Timestamp]) -> Optional[str]:
    return value.to_iso() if value is not None else None


def node_to_dict(node: Node) -> Dict[str, Any]:
    return {
        "id": node.id,
        "type": node.type.value,
        "label": node.label,
        "confidence": node.confidence_pct,
        "date": _iso(node.date),
        "sources": list(node.sources),
    }


def edge_to_dict(edge: Edge) -> Dict[str, Any]:
    return {
        "from": edge.from_id,
        "to": edge.to_id,
        "relation": edge.relation.value,
        "polarity": edge.polarity.value,
        "strength": round(edge.strength, 4),
        "confidence": edge.confidence_pct,
    }


def path_to_dict(path: Path) -> Dict[str, Any]:
    return {
        "id": path.id,
        "nodes": list(path.node_ids),
        "status": path.status.value,
        "confidence": path.confidence_pct,
        "hypothesis_label": path.hypothesis_label,
    }


def graph_to_dict(graph: InvestigationGraph) -> Dict[str, Any]:
    """`{nodes, edges, paths}` with display percentages."""
    return {
        "nodes": [node_to_dict(n) for n in graph.nodes],
        "edges": [edge_to_dict(e) for e in graph.edges],
        "paths": [path_to_dict(p) for p in graph.paths],
    }


def briefing_to_dict(payload: BriefingPayload) -> Dict[str, Any]:
    inv = payload.investigation
    primary = payload.primary_path
    unc = payload.uncertainty
    return {
        "investigation": {
            "hypothesis": inv.hypothesis,
            "title": inv.title,
            "status": inv.status.value,
            "updated_at": inv.updated_at,
            "investigative_axes": list(inv.investigative_axes),
        },
        "primary_path": None if primary is None else {
            "path_id": primary.path_id,
            "hypothesis_label": primary.hypothesis_label,
            "confidence": primary.confidence,
            "status": primary.status.value,
            "key_node_ids": list(primary.key_node_ids),
        },
        "turning_points": [
            {
                "node_id": tp.node_id,
                "label": tp.label,
                "date": tp.date,
                "confidence": tp.confidence,
                "reasons": list(tp.reasons),
            }
            for tp in payload.turning_points
        ],
        "alternative_paths": [
            {
                "path_id": alt.path_id,
                "hypothesis_label": alt.hypothesis_label,
                "status": alt.status.value,
                "confidence": alt.confidence,
            }
            for alt in payload.alternative_paths
        ],
        "uncertainty": {
            "blind_spots": list(unc.blind_spots),
            "low_confidence_node_ids": list(unc.low_confidence_node_ids),
            "has_contradictions": unc.has_contradictions,
        },
        "disclaimer": payload.disclaimer,
    }


def dumps(obj: Any, indent: Optional[int] = 2) -> str:
    """Deterministic JSON text for any exportable value."""
    if isinstance(obj, InvestigationGraph):
        obj = graph_to_dict(obj)
    elif isinstance(obj, BriefingPayload):
        obj = briefing_to_dict(obj)
    return json.dumps(obj, cls=StrictInvestigationEncoder, indent=indent, sort_keys=True, ensure_ascii=False)
