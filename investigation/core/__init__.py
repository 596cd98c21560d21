"""
Path Engine

RESPONSIBILITY: Path enumeration, scoring, lifecycle classification
ALLOWED INPUTS: InvestigationGraph (nodes + edges), prior Path state
OUTPUTS: PathEngineResult (immutable)

WHAT THIS LAYER MUST NOT DO:
============================
- Persist paths or transitions (external persistence collaborator)
- Mutate the input graph
- Resolve contradictions or pick "the truth"
- Block on an external labeler

ALGORITHM:
==========
1. Validate edge endpoints (dangling endpoint -> GraphValidationError)
2. Drop cycle-closing edges (recorded, never fatal)
3. DFS from every root to every sink; over-long walks keep their newest nodes
4. Discard paths contained in another path (maximal threads only)
5. Score: recency-weighted mean of per-edge support
6. Classify: decisive contradiction -> dead, else by score band
7. Reconcile against prior statuses (core.lifecycle)

Re-running on an unchanged graph with the same prior state yields
identical paths.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple
import numpy as np

# ONLY import from contracts - never from other layers' implementations
from ..contracts.base import Error, ErrorCode, GraphValidationError, to_percent
from ..contracts.events import AuditEventType, AuditLogEntry
from ..contracts.graph import (
    Edge, InvestigationGraph, Node, Path, PathStatus, RelationKind,
    path_rank_key, validate_graph,
)
from .lifecycle import PathLifecycleMachine, PathTransition, is_subsequence
from .topology import TopologyEngine

Labeler = Callable[[Path], Optional[str]]


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass
class PathEngineConfig:
    """Configuration for the path engine."""
    max_path_length: int = 12
    max_paths: int = 256
    recency_decay: float = 0.85
    decisive_contradiction_strength: float = 0.6
    active_threshold: int = 65
    weak_threshold: int = 35

    def __post_init__(self):
        if self.max_path_length < 1:
            raise ValueError("max_path_length must be at least 1")
        if self.max_paths < 1:
            raise ValueError("max_paths must be at least 1")
        if not 0.0 < self.recency_decay <= 1.0:
            raise ValueError("recency_decay must be in (0, 1]")
        if not 0 <= self.weak_threshold <= self.active_threshold <= 100:
            raise ValueError("thresholds must satisfy 0 <= weak <= active <= 100")


@dataclass(frozen=True)
class PathEngineResult:
    """Everything one engine run produced."""
    paths: Tuple[Path, ...]
    transitions: Tuple[PathTransition, ...] = field(default_factory=tuple)
    # (prior path id, successor path id or None)
    superseded: Tuple[Tuple[str, Optional[str]], ...] = field(default_factory=tuple)
    dropped_edges: Tuple[Edge, ...] = field(default_factory=tuple)
    errors: Tuple[Error, ...] = field(default_factory=tuple)


# =============================================================================
# ENUMERATION
# =============================================================================

def enumerate_paths(
    topology: TopologyEngine,
    max_path_length: int,
    max_paths: int,
) -> Tuple[List[Tuple[str, ...]], bool]:
    """
    Every root-to-sink walk, depth first in node order.

    A walk longer than `max_path_length` keeps its newest `max_path_length`
    nodes, so every sink stays reachable from some path. Returns the walks in
    discovery order and whether `max_paths` stopped the search early.
    """
    found: List[Tuple[str, ...]] = []

    for root in topology.roots():
        stack: List[Tuple[str, ...]] = [(root,)]
        while stack:
            if len(found) >= max_paths:
                return found, True
            trail = stack.pop()
            nexts = [n for n in topology.successors(trail[-1]) if n not in trail]
            if not nexts:
                found.append(trail[-max_path_length:])
                continue
            # Reversed so the first successor is walked first
            stack.extend(trail + (n,) for n in reversed(nexts))
    return found, False


def keep_maximal(candidates: Sequence[Tuple[str, ...]]) -> List[Tuple[str, ...]]:
    """Drop duplicates and any path contained in order in a longer one."""
    unique = list(dict.fromkeys(candidates))
    return [
        p for p in unique
        if not any(len(q) > len(p) and is_subsequence(p, q) for q in unique)
    ]


# =============================================================================
# SCORING AND CLASSIFICATION
# =============================================================================

def score_path(
    node_ids: Tuple[str, ...],
    edges: Sequence[Edge],
    node_map: Dict[str, Node],
    recency_decay: float,
) -> float:
    """
    Path confidence in [0, 1].

    Each edge contributes sqrt(strength * confidence); the latest edge has
    weight 1 and each earlier one is discounted by `recency_decay`, so a
    weak latest link costs more than a weak first link. A single-node path
    carries its node's confidence.
    """
    if not edges:
        return node_map[node_ids[0]].confidence
    support = np.sqrt([e.strength * e.confidence for e in edges])
    weights = recency_decay ** np.arange(len(edges) - 1, -1, -1, dtype=float)
    return float(np.clip(np.average(support, weights=weights), 0.0, 1.0))


def classify_path(score: float, edges: Sequence[Edge], config: PathEngineConfig) -> PathStatus:
    """Explicit falsification dominates averaging; otherwise score bands."""
    for edge in edges:
        if edge.relation == RelationKind.WEAKENS and edge.strength > config.decisive_contradiction_strength:
            return PathStatus.DEAD
    percent = to_percent(score)
    if percent >= config.active_threshold:
        return PathStatus.ACTIVE
    if percent >= config.weak_threshold:
        return PathStatus.WEAK
    return PathStatus.DEAD


# =============================================================================
# PATH ENGINE
# =============================================================================

class PathEngine:
    """
    Core path engine.

    BOUNDARY ENFORCEMENT:
    - Consumes ONLY InvestigationGraph and prior Path values
    - Produces ONLY PathEngineResult
    - Holds no investigation state between runs
    """

    def __init__(self, config: Optional[PathEngineConfig] = None):
        self._config = config or PathEngineConfig()
        self._lifecycle = PathLifecycleMachine()
        self._audit_log: List[AuditLogEntry] = []

    @property
    def config(self) -> PathEngineConfig:
        return self._config

    def run(
        self,
        graph: InvestigationGraph,
        prior_paths: Sequence[Path] = (),
        labeler: Optional[Labeler] = None,
    ) -> PathEngineResult:
        """Compute the current paths for `graph`."""
        structural = validate_graph(graph.with_paths(()))
        if structural:
            raise GraphValidationError(structural)

        errors: List[Error] = []
        topology = TopologyEngine()
        dropped = topology.build_graph(graph.nodes, graph.edges)
        metrics = topology.compute_metrics()
        for edge in dropped:
            errors.append(Error.create(
                ErrorCode.CYCLE_EDGE_DROPPED,
                f"Edge {edge.from_id}->{edge.to_id} closes a cycle and was dropped",
                from_id=edge.from_id,
                to_id=edge.to_id,
            ))
            self._log_audit(
                "cycle_edge_dropped",
                entity_id=f"{edge.from_id}->{edge.to_id}",
                event_type=AuditEventType.ERROR,
            )

        walks, capped = enumerate_paths(
            topology, self._config.max_path_length, self._config.max_paths
        )
        if capped:
            self._log_audit("enumeration_capped", metadata=(("max_paths", str(self._config.max_paths)),))

        node_map = graph.node_map()
        prior_by_id = {p.id: p for p in prior_paths}
        paths: List[Path] = []
        transitions: List[PathTransition] = []
        successors: Dict[str, str] = {}

        for node_ids in keep_maximal(walks):
            path_id = Path.make_id(node_ids)
            edges = [topology.edge(a, b) for a, b in zip(node_ids, node_ids[1:])]
            score = score_path(node_ids, edges, node_map, self._config.recency_decay)
            computed = classify_path(score, edges, self._config)

            prior = self._lifecycle.match_prior(path_id, node_ids, prior_by_id)
            status, transition = self._lifecycle.reconcile(path_id, computed, edges, prior)
            if transition is not None:
                transitions.append(transition)
                self._log_audit(
                    "status_transition",
                    entity_id=path_id,
                    event_type=AuditEventType.LIFECYCLE,
                    metadata=(
                        ("from", transition.from_status.value),
                        ("to", transition.to_status.value),
                        ("reason", transition.reason),
                    ),
                )
            elif prior is not None and status != computed:
                self._log_audit(
                    "status_held",
                    entity_id=path_id,
                    event_type=AuditEventType.LIFECYCLE,
                    metadata=(("held", status.value), ("computed", computed.value)),
                )
            if prior is not None and prior.id != path_id:
                successors.setdefault(prior.id, path_id)

            path = Path(id=path_id, node_ids=node_ids, status=status, confidence=score)
            fallback = prior.hypothesis_label if prior is not None and prior.id == path_id else None
            label, label_error = self._label(path, labeler, fallback or node_map[node_ids[0]].label)
            if label_error is not None:
                errors.append(label_error)
            paths.append(path.with_label(label))

        paths.sort(key=lambda p: path_rank_key(p, node_map))
        current_ids = {p.id for p in paths}
        superseded = tuple(
            (p.id, successors.get(p.id))
            for p in sorted(prior_paths, key=lambda p: p.id)
            if p.id not in current_ids
        )

        self._log_audit(
            "paths_built",
            metadata=(
                ("paths", str(len(paths))),
                ("transitions", str(len(transitions))),
                ("superseded", str(len(superseded))),
                ("nodes", str(metrics.node_count)),
                ("edges", str(metrics.edge_count)),
                ("roots", str(metrics.root_count)),
                ("sinks", str(metrics.sink_count)),
            ),
        )

        return PathEngineResult(
            paths=tuple(paths),
            transitions=tuple(transitions),
            superseded=superseded,
            dropped_edges=dropped,
            errors=tuple(errors),
        )

    def _label(
        self,
        path: Path,
        labeler: Optional[Labeler],
        fallback: str,
    ) -> Tuple[str, Optional[Error]]:
        """External label when available, deterministic fallback otherwise."""
        if labeler is None:
            return fallback, None
        try:
            label = labeler(path)
        except Exception as exc:  # labeler is an untrusted external capability
            self._log_audit(
                "labeler_failed",
                entity_id=path.id,
                event_type=AuditEventType.ERROR,
                metadata=(("error", type(exc).__name__),),
            )
            return fallback, Error.create(
                ErrorCode.LABELER_FAILED,
                f"Labeler failed for {path.id}: {exc}",
                path_id=path.id,
            )
        if isinstance(label, str) and label.strip():
            return label.strip(), None
        return fallback, None

    def _log_audit(
        self,
        action: str,
        entity_id: Optional[str] = None,
        event_type: AuditEventType = AuditEventType.PATH_ENGINE,
        metadata: tuple = ()
    ):
        """Add entry to internal audit log."""
        self._audit_log.append(AuditLogEntry.record(
            layer="core",
            event_type=event_type,
            action=action,
            sequence=len(self._audit_log),
            entity_id=entity_id,
            entity_type="path",
            metadata=metadata,
        ))

    def get_audit_log(self) -> List[AuditLogEntry]:
        """Return copy of audit log entries."""
        return list(self._audit_log)


def build_paths(
    graph: InvestigationGraph,
    prior_paths: Sequence[Path] = (),
    labeler: Optional[Labeler] = None,
    config: Optional[PathEngineConfig] = None,
) -> Tuple[Path, ...]:
    """Convenience wrapper returning only the paths."""
    return PathEngine(config).run(graph, prior_paths, labeler).paths
