"""
Export Layer

RESPONSIBILITY: Serialize graphs and briefings for consumers
ALLOWED INPUTS: InvestigationGraph, BriefingPayload
OUTPUTS: JSON-ready dicts, deterministic JSON text, cockpit projection

WHAT THIS LAYER MUST NOT DO:
============================
- Recompute paths or confidences
- Expose internal [0, 1] confidences (integer percentages only)
"""

from .serialization import (
    StrictInvestigationEncoder, briefing_to_dict, dumps, edge_to_dict,
    graph_to_dict, node_to_dict, path_to_dict,
)
from .cockpit import COCKPIT_EDGE_TYPES, COCKPIT_NODE_TYPES, to_cockpit_dict

__all__ = [
    "StrictInvestigationEncoder", "briefing_to_dict", "dumps", "edge_to_dict",
    "graph_to_dict", "node_to_dict", "path_to_dict",
    "COCKPIT_EDGE_TYPES", "COCKPIT_NODE_TYPES", "to_cockpit_dict",
]
