"""
Briefing Layer

RESPONSIBILITY: Read-only summary of a completed investigation graph
ALLOWED INPUTS: InvestigationThread, InvestigationGraph (with paths)
OUTPUTS: BriefingPayload, plain-text export

WHAT THIS LAYER MUST NOT DO:
============================
- Create, modify or delete nodes, edges or paths
- Choose the truth: the primary path is the best-ranked one, nothing more
- Hide dead paths: they are listed with the alternatives for audit
- Generate narrative prose beyond the structured fields
"""

from __future__ import annotations
from typing import Dict, List, Optional, Tuple

from ..contracts.base import to_percent
from ..contracts.briefing import (
    BriefingAlternativePath, BriefingInvestigation, BriefingPayload,
    BriefingPrimaryPath, BriefingTurningPoint, BriefingUncertainty,
    InvestigationThread,
)
from ..contracts.graph import InvestigationGraph, Node, Path, PathStatus, path_rank_key
from .text import briefing_to_text

MAX_TURNING_POINTS = 4
MAX_KEY_NODES_PRIMARY = 4
LOW_CONFIDENCE_THRESHOLD = 50
WEAK_EDGE_STRENGTH = 0.5
DISCLAIMER = (
    "This briefing is subject to change as new signals are integrated. "
    "It reflects current paths and uncertainties, not a final conclusion."
)


def rank_paths(graph: InvestigationGraph) -> List[Path]:
    node_map = graph.node_map()
    return sorted(graph.paths, key=lambda p: path_rank_key(p, node_map))


def sample_key_nodes(node_ids: Tuple[str, ...]) -> Tuple[str, ...]:
    """All nodes up to the cap, otherwise first, ~1/3, ~2/3 and last."""
    n = len(node_ids)
    if n <= MAX_KEY_NODES_PRIMARY:
        return tuple(node_ids)
    indices = dict.fromkeys((0, n // 3, (2 * n) // 3, n - 1))
    return tuple(node_ids[i] for i in indices)[:MAX_KEY_NODES_PRIMARY]


def _investigation_section(thread: InvestigationThread) -> BriefingInvestigation:
    return BriefingInvestigation(
        hypothesis=thread.initial_hypothesis,
        title=thread.title,
        status=thread.status,
        updated_at=thread.updated_at,
        investigative_axes=tuple(thread.investigative_axes),
    )


def _primary_section(primary: Optional[Path]) -> Optional[BriefingPrimaryPath]:
    if primary is None:
        return None
    return BriefingPrimaryPath(
        path_id=primary.id,
        hypothesis_label=primary.hypothesis_label or primary.id,
        confidence=primary.confidence_pct,
        status=primary.status,
        key_node_ids=sample_key_nodes(primary.node_ids),
    )


def _turning_points(graph: InvestigationGraph) -> Tuple[BriefingTurningPoint, ...]:
    """
    Nodes shared by two or more paths, or where the graph branches/merges.

    Ranked by node confidence (descending), then id; capped.
    """
    path_count: Dict[str, int] = {}
    for path in graph.paths:
        for node_id in set(path.node_ids):
            path_count[node_id] = path_count.get(node_id, 0) + 1

    in_degree: Dict[str, int] = {}
    out_degree: Dict[str, int] = {}
    for edge in graph.edges:
        out_degree[edge.from_id] = out_degree.get(edge.from_id, 0) + 1
        in_degree[edge.to_id] = in_degree.get(edge.to_id, 0) + 1

    candidates: List[Tuple[Node, Tuple[str, ...]]] = []
    for node in graph.nodes:
        reasons = []
        if path_count.get(node.id, 0) >= 2:
            reasons.append("shared")
        if in_degree.get(node.id, 0) > 1:
            reasons.append("merge")
        if out_degree.get(node.id, 0) > 1:
            reasons.append("branch")
        if reasons:
            candidates.append((node, tuple(reasons)))

    candidates.sort(key=lambda c: (-c[0].confidence_pct, c[0].id))
    return tuple(
        BriefingTurningPoint(
            node_id=node.id,
            label=node.label,
            date=node.date.to_iso() if node.date else None,
            confidence=node.confidence_pct,
            reasons=reasons,
        )
        for node, reasons in candidates[:MAX_TURNING_POINTS]
    )


def _alternatives(ranked: List[Path]) -> Tuple[BriefingAlternativePath, ...]:
    return tuple(
        BriefingAlternativePath(
            path_id=p.id,
            hypothesis_label=p.hypothesis_label or p.id,
            status=p.status,
            confidence=p.confidence_pct,
        )
        for p in ranked[1:]
    )


def _uncertainty(
    thread: InvestigationThread,
    graph: InvestigationGraph,
    primary: Optional[Path],
) -> BriefingUncertainty:
    low_confidence = tuple(
        n.id for n in graph.nodes if to_percent(n.confidence) < LOW_CONFIDENCE_THRESHOLD
    )
    has_contradictions = any(p.status == PathStatus.DEAD for p in graph.paths)
    if primary is not None and not has_contradictions:
        edges = graph.edge_map()
        has_contradictions = any(
            key in edges and edges[key].strength < WEAK_EDGE_STRENGTH for key in primary.edge_keys
        )
    return BriefingUncertainty(
        blind_spots=tuple(thread.blind_spots),
        low_confidence_node_ids=low_confidence,
        has_contradictions=has_contradictions,
    )


def build_briefing(thread: InvestigationThread, graph: InvestigationGraph) -> BriefingPayload:
    """
    Build a briefing from thread + graph. Read-only; no side effects.

    Never modifies the graph or the thread.
    """
    ranked = rank_paths(graph)
    primary = ranked[0] if ranked else None
    return BriefingPayload(
        investigation=_investigation_section(thread),
        primary_path=_primary_section(primary),
        turning_points=_turning_points(graph),
        alternative_paths=_alternatives(ranked),
        uncertainty=_uncertainty(thread, graph, primary),
        disclaimer=DISCLAIMER,
    )


__all__ = [
    "build_briefing", "briefing_to_text", "rank_paths", "sample_key_nodes",
    "DISCLAIMER", "MAX_TURNING_POINTS", "MAX_KEY_NODES_PRIMARY",
]
