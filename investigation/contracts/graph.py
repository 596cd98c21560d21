"""
Graph Aggregate Contracts
=========================

The `{nodes, edges, paths}` value every reader consumes.

INVARIANTS:
- Every edge endpoint references an existing node id
- Every path node id exists
- Node ids are unique
- A path's node sequence never changes; only status and confidence are
  recomputed (new instances, never in-place mutation)

The aggregate owns no behaviour beyond these structural checks. Producers
build new instances; nothing here mutates.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple
from enum import Enum
import hashlib
import json

from .base import Error, ErrorCode, GraphValidationError, Polarity, Timestamp, to_percent


class NodeType(Enum):
    """Kind of canonical fact a node represents."""
    EVENT = "event"
    ACTOR = "actor"
    RESOURCE = "resource"
    DECISION = "decision"
    IMPACT = "impact"
    FACT = "fact"

    @staticmethod
    def parse(value: object, default: NodeType) -> NodeType:
        if isinstance(value, NodeType):
            return value
        if isinstance(value, str):
            try:
                return NodeType(value.strip().lower())
            except ValueError:
                return default
        return default


class RelationKind(Enum):
    """Directed relation between two nodes."""
    CAUSES = "causes"
    INFLUENCES = "influences"
    FUNDS = "funds"
    RESTRICTS = "restricts"
    TRIGGERS = "triggers"
    SUPPORTS = "supports"
    WEAKENS = "weakens"


class PathStatus(Enum):
    """
    Lifecycle of a hypothesis path.

    Transitions are governed by core.lifecycle; dead paths are kept.
    """
    ACTIVE = "active"
    WEAK = "weak"
    DEAD = "dead"

    @property
    def rank(self) -> int:
        return _STATUS_RANK[self]


_STATUS_RANK = {PathStatus.DEAD: 0, PathStatus.WEAK: 1, PathStatus.ACTIVE: 2}


def _check_unit(name: str, value: float):
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{name} must be between 0.0 and 1.0, got {value!r}")


@dataclass(frozen=True)
class Node:
    """Canonical fact/event/actor derived from exactly one evidence record."""
    id: str
    type: NodeType
    label: str
    confidence: float
    date: Optional[Timestamp] = None
    sources: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not self.id:
            raise ValueError("Node id must be a non-empty string")
        _check_unit("confidence", self.confidence)

    @property
    def confidence_pct(self) -> int:
        return to_percent(self.confidence)


_RELATION_POLARITY = {
    RelationKind.WEAKENS: Polarity.WEAKENS,
    RelationKind.INFLUENCES: Polarity.NEUTRAL,
}


@dataclass(frozen=True)
class Edge:
    """
    Directed causal/evidentiary relation `from_id -> to_id`.

    `polarity` is the stance of the evidence the edge points at. Left unset,
    it follows the relation: weakens -> weakens, influences -> neutral,
    anything else -> supports.
    """
    from_id: str
    to_id: str
    relation: RelationKind
    strength: float
    confidence: float
    polarity: Optional[Polarity] = None

    def __post_init__(self):
        if self.from_id == self.to_id:
            raise ValueError(f"Edge may not loop on {self.from_id!r}")
        _check_unit("strength", self.strength)
        _check_unit("confidence", self.confidence)
        if self.polarity is None:
            object.__setattr__(
                self, 'polarity', _RELATION_POLARITY.get(self.relation, Polarity.SUPPORTS)
            )

    @property
    def key(self) -> Tuple[str, str]:
        return (self.from_id, self.to_id)

    @property
    def confidence_pct(self) -> int:
        return to_percent(self.confidence)


@dataclass(frozen=True)
class Path:
    """
    One maximal hypothesis thread through the graph.

    The id is derived from the node sequence, so an unchanged thread keeps
    its id across re-runs.
    """
    id: str
    node_ids: Tuple[str, ...]
    status: PathStatus
    confidence: float
    hypothesis_label: Optional[str] = None

    def __post_init__(self):
        if not self.node_ids:
            raise ValueError("Path must contain at least one node")
        if len(set(self.node_ids)) != len(self.node_ids):
            raise ValueError(f"Path {self.id} repeats a node")
        _check_unit("confidence", self.confidence)

    @staticmethod
    def make_id(node_ids: Tuple[str, ...]) -> str:
        """Generate deterministic path ID from its node sequence."""
        seed = json.dumps(list(node_ids), ensure_ascii=False)
        return f"path_{hashlib.sha256(seed.encode('utf-8')).hexdigest()[:16]}"

    @property
    def confidence_pct(self) -> int:
        return to_percent(self.confidence)

    @property
    def edge_keys(self) -> Tuple[Tuple[str, str], ...]:
        return tuple(zip(self.node_ids, self.node_ids[1:]))

    def with_status(self, status: PathStatus, confidence: Optional[float] = None) -> Path:
        """Return a new Path; the node sequence is carried over unchanged."""
        return replace(
            self,
            status=status,
            confidence=self.confidence if confidence is None else confidence,
        )

    def with_label(self, label: Optional[str]) -> Path:
        return replace(self, hypothesis_label=label)


@dataclass(frozen=True)
class InvestigationGraph:
    """Immutable-until-extended graph aggregate."""
    nodes: Tuple[Node, ...] = field(default_factory=tuple)
    edges: Tuple[Edge, ...] = field(default_factory=tuple)
    paths: Tuple[Path, ...] = field(default_factory=tuple)

    @staticmethod
    def empty() -> InvestigationGraph:
        return InvestigationGraph()

    def node_map(self) -> Dict[str, Node]:
        return {n.id: n for n in self.nodes}

    def edge_map(self) -> Dict[Tuple[str, str], Edge]:
        return {e.key: e for e in self.edges}

    def with_paths(self, paths: Tuple[Path, ...]) -> InvestigationGraph:
        return InvestigationGraph(nodes=self.nodes, edges=self.edges, paths=tuple(paths))


def path_rank_key(path: Path, node_map: Dict[str, Node]) -> tuple:
    """
    Ordering used wherever paths are ranked.

    Highest display confidence first; ties go to the longer sequence, then
    the path whose last node is most recent (undated counts as oldest), then
    the lexicographically smallest id.
    """
    last = node_map.get(path.node_ids[-1])
    dated = last is not None and last.date is not None
    recency = last.date.value.timestamp() if dated else 0.0
    return (-path.confidence_pct, -len(path.node_ids), not dated, -recency, path.id)


# =============================================================================
# VALIDATION
# =============================================================================

def validate_graph(graph: InvestigationGraph) -> Tuple[Error, ...]:
    """
    Check the aggregate's structural invariants.

    Returns every violation found; an empty tuple means the graph is valid.
    """
    errors: List[Error] = []
    seen = set()
    for node in graph.nodes:
        if node.id in seen:
            errors.append(Error.create(
                ErrorCode.DUPLICATE_NODE_ID,
                f"Duplicate node id {node.id!r}",
                node_id=node.id,
            ))
        seen.add(node.id)

    for edge in graph.edges:
        for endpoint in (edge.from_id, edge.to_id):
            if endpoint not in seen:
                errors.append(Error.create(
                    ErrorCode.DANGLING_EDGE_ENDPOINT,
                    f"Edge {edge.from_id}->{edge.to_id} references unknown node {endpoint!r}",
                    from_id=edge.from_id,
                    to_id=edge.to_id,
                ))

    for path in graph.paths:
        for node_id in path.node_ids:
            if node_id not in seen:
                errors.append(Error.create(
                    ErrorCode.UNKNOWN_PATH_NODE,
                    f"Path {path.id} references unknown node {node_id!r}",
                    path_id=path.id,
                ))

    return tuple(errors)


def require_valid_graph(graph: InvestigationGraph) -> InvestigationGraph:
    """Raise GraphValidationError if the graph breaks an invariant."""
    errors = validate_graph(graph)
    if errors:
        raise GraphValidationError(errors)
    return graph
