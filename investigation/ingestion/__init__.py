"""
Ingestion Layer

RESPONSIBILITY: Evidence records -> graph nodes and edges
ALLOWED INPUTS: Signal, Claim, raw extractor mappings, ExplicitRelation
OUTPUTS: IngestionReport (InvestigationGraph without paths + skipped records)

WHAT THIS LAYER MUST NOT DO:
============================
- Merge or resolve entities across records (one record -> one node)
- Enumerate or score paths (core layer's job)
- Judge which hypothesis is true
- Drop a whole batch because one record is bad

BOUNDARY ENFORCEMENT:
=====================
This layer ONLY produces IngestionReport objects.
It does NOT import from core, briefing or observability layers.
The ONLY shared dependency is the contracts module.

ERROR SEMANTICS:
================
- Malformed record (missing id, bad date, bad payload): the record is
  skipped and reported, the rest of the batch continues
- Structural invariant broken after building: GraphValidationError, since
  that can only be a bug in this adapter
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union
import hashlib

# ONLY import from contracts - never from other layers
from ..contracts.base import (
    CredibilityTier, Error, ErrorCode, Polarity, Timestamp,
)
from ..contracts.evidence import Claim, ExplicitRelation, Signal
from ..contracts.events import AuditEventType, AuditLogEntry
from ..contracts.graph import (
    Edge, InvestigationGraph, Node, NodeType, RelationKind, require_valid_graph,
)
from .relations import endpoint_confidence, infer_relation, strength_in_band

EvidenceInput = Union[Signal, Claim, Mapping[str, Any]]


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass
class IngestionConfig:
    """Configuration for evidence ingestion."""
    tier_confidence: Dict[CredibilityTier, float] = field(default_factory=lambda: {
        CredibilityTier.A: 0.9,
        CredibilityTier.B: 0.7,
        CredibilityTier.C: 0.5,
        CredibilityTier.D: 0.3,
    })
    default_confidence: float = 0.5
    strength_bands: Dict[Polarity, Tuple[float, float]] = field(default_factory=lambda: {
        Polarity.SUPPORTS: (0.5, 0.95),
        Polarity.WEAKENS: (0.2, 0.4),
        Polarity.NEUTRAL: (0.45, 0.75),
    })
    default_node_type: NodeType = NodeType.EVENT


# =============================================================================
# NORMALIZED RECORDS
# =============================================================================

@dataclass(frozen=True)
class EvidenceRecord:
    """
    One validated evidence item, ready to become a node.

    `order_time` is the date, or the ingestion timestamp when the item has
    no date; only `date` is ever shown on the node.
    """
    id: str
    kind: str  # "signal" | "claim"
    order_time: Timestamp
    date: Optional[Timestamp]
    polarity: Polarity
    confidence: float
    label: str
    node_type: NodeType
    sources: Tuple[str, ...]
    action: Optional[str] = None


def evidence_sort_key(record: EvidenceRecord) -> Tuple[Any, str]:
    """
    Global evidence ordering: `(date ?? created_at ?? ingested_at, id)`.

    Ties on time are broken by id (lexicographic) so the temporal chain, and
    therefore the path engine, is deterministic.
    """
    return (record.order_time.value, record.id)


@dataclass(frozen=True)
class SkippedRecord:
    """Record of an evidence item or relation rejected during ingestion."""
    record_id: str
    position: int
    error: Error

    def to_dict(self) -> dict:
        return {
            'record_id': self.record_id,
            'position': self.position,
            'code': self.error.code.name,
            'reason': self.error.message,
        }


@dataclass(frozen=True)
class IngestionReport:
    """
    Complete report of one ingestion call.

    TRACEABLE:
    Every input item results in exactly one of:
    - A node in `graph.nodes`
    - A confidence refinement listed in `refined_node_ids`
    - An entry in `skipped_records`
    """
    graph: InvestigationGraph
    skipped_records: Tuple[SkippedRecord, ...] = field(default_factory=tuple)
    refined_node_ids: Tuple[str, ...] = field(default_factory=tuple)
    processed_count: int = 0

    @property
    def success_count(self) -> int:
        return len(self.graph.nodes)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped_records)

    def to_dict(self) -> dict:
        return {
            'processed_count': self.processed_count,
            'success_count': self.success_count,
            'skipped_count': self.skipped_count,
            'refined_node_ids': list(self.refined_node_ids),
            'skipped_records': [s.to_dict() for s in self.skipped_records],
        }


class RecordRejected(ValueError):
    """Internal signal that a single record failed validation."""

    def __init__(self, code: ErrorCode, message: str):
        super().__init__(message)
        self.code = code


# =============================================================================
# GRAPH BUILDER
# =============================================================================

class EvidenceGraphBuilder:
    """
    Converts an ordered evidence collection into nodes and edges.

    BOUNDARY ENFORCEMENT:
    - Pure with respect to its inputs: same evidence, same graph
    - One node per evidence id (re-ingesting an id only refines confidence)
    - Edges come only from temporal adjacency and explicit relations
    """

    def __init__(self, config: Optional[IngestionConfig] = None):
        self._config = config or IngestionConfig()
        self._audit_log: List[AuditLogEntry] = []

    def build(
        self,
        evidence: Iterable[EvidenceInput],
        relations: Iterable[Union[ExplicitRelation, Mapping[str, Any]]] = (),
        ingested_at: Optional[Timestamp] = None,
    ) -> IngestionReport:
        """
        Build the node/edge graph for an evidence batch.

        `ingested_at` orders undated items; it is never exposed as a date.
        """
        fallback_time = ingested_at or Timestamp.now()
        skipped: List[SkippedRecord] = []
        records: Dict[str, EvidenceRecord] = {}
        refined: List[str] = []
        processed = 0

        for position, item in enumerate(evidence):
            processed += 1
            try:
                record = self._normalize(item, fallback_time)
            except RecordRejected as exc:
                skipped.append(self._skip(_raw_id(item), position, exc.code, str(exc)))
                continue

            existing = records.get(record.id)
            if existing is None:
                records[record.id] = record
            else:
                records[record.id] = replace(existing, confidence=record.confidence)
                refined.append(record.id)
                self._log_audit(
                    "node_confidence_refined",
                    entity_id=record.id,
                    metadata=(("confidence", f"{record.confidence:.4f}"),),
                )

        ordered = sorted(records.values(), key=evidence_sort_key)
        nodes = tuple(self._to_node(r) for r in ordered)
        edges = self._chain_edges(ordered)
        edges = self._merge_explicit(edges, records, relations, skipped)

        graph = require_valid_graph(InvestigationGraph(nodes=nodes, edges=edges))

        self._log_audit(
            "graph_built",
            metadata=(
                ("nodes", str(len(nodes))),
                ("edges", str(len(edges))),
                ("skipped", str(len(skipped))),
            ),
        )

        return IngestionReport(
            graph=graph,
            skipped_records=tuple(skipped),
            refined_node_ids=tuple(refined),
            processed_count=processed,
        )

    # -------------------------------------------------------------------------
    # Record normalization
    # -------------------------------------------------------------------------

    def _normalize(self, item: EvidenceInput, fallback_time: Timestamp) -> EvidenceRecord:
        evidence = _coerce(item)

        if not isinstance(evidence.id, str) or not evidence.id.strip():
            raise RecordRejected(ErrorCode.MISSING_ID, "evidence item has no id")

        date = _parse_time(evidence.date, "date")
        created_at = _parse_time(evidence.created_at, "created_at")
        order_time = date or created_at or fallback_time
        node_type = NodeType.parse(evidence.node_type, self._config.default_node_type)

        if isinstance(evidence, Claim):
            if not isinstance(evidence.confidence, (int, float)) or not 0.0 <= evidence.confidence <= 1.0:
                raise RecordRejected(
                    ErrorCode.MALFORMED_RECORD,
                    f"claim confidence {evidence.confidence!r} outside [0, 1]",
                )
            sources = tuple(s for s in (evidence.source_url,) if s)
            return EvidenceRecord(
                id=evidence.id.strip(),
                kind="claim",
                order_time=order_time,
                date=date,
                polarity=Polarity.parse(evidence.polarity),
                confidence=float(evidence.confidence),
                label=evidence.text or evidence.statement,
                node_type=node_type,
                sources=sources,
                action=evidence.action,
            )

        tier = CredibilityTier.parse(evidence.credibility_tier)
        confidence = self._config.tier_confidence.get(tier, self._config.default_confidence)
        label = evidence.title or (evidence.extracted_facts[0] if evidence.extracted_facts else evidence.source)
        return EvidenceRecord(
            id=evidence.id.strip(),
            kind="signal",
            order_time=order_time,
            date=date,
            polarity=Polarity.parse(evidence.impact),
            confidence=confidence,
            label=label,
            node_type=node_type,
            sources=tuple(s for s in (evidence.url,) if s),
        )

    @staticmethod
    def _to_node(record: EvidenceRecord) -> Node:
        return Node(
            id=record.id,
            type=record.node_type,
            label=record.label,
            confidence=record.confidence,
            date=record.date,
            sources=record.sources,
        )

    # -------------------------------------------------------------------------
    # Edge derivation
    # -------------------------------------------------------------------------

    def _chain_edges(self, ordered: List[EvidenceRecord]) -> Tuple[Edge, ...]:
        """One edge per temporally consecutive pair, shaped by the target."""
        edges = []
        for source, target in zip(ordered, ordered[1:]):
            band = self._config.strength_bands[target.polarity]
            edges.append(Edge(
                from_id=source.id,
                to_id=target.id,
                relation=infer_relation(target.polarity, target.action),
                strength=strength_in_band(band, target.confidence),
                confidence=endpoint_confidence(source.confidence, target.confidence),
                polarity=target.polarity,
            ))
        return tuple(edges)

    def _merge_explicit(
        self,
        edges: Tuple[Edge, ...],
        records: Dict[str, EvidenceRecord],
        relations: Iterable[Union[ExplicitRelation, Mapping[str, Any]]],
        skipped: List[SkippedRecord],
    ) -> Tuple[Edge, ...]:
        """
        Add relations that carry their own evidence.

        An explicit relation replaces the chain edge with the same endpoints;
        among explicit duplicates the first one wins.
        """
        by_key: Dict[Tuple[str, str], Edge] = {e.key: e for e in edges}
        explicit_keys = set()

        for position, raw in enumerate(relations):
            try:
                relation = raw if isinstance(raw, ExplicitRelation) else ExplicitRelation.from_dict(raw)
            except (TypeError, ValueError, KeyError) as exc:
                skipped.append(self._skip(_raw_relation_id(raw), position, ErrorCode.MALFORMED_RECORD, str(exc)))
                continue

            record_id = f"{relation.from_id}->{relation.to_id}"
            missing = [x for x in (relation.from_id, relation.to_id) if x not in records]
            if missing:
                skipped.append(self._skip(
                    record_id, position, ErrorCode.DANGLING_EDGE_ENDPOINT,
                    f"relation references unknown evidence {', '.join(missing)}",
                ))
                continue
            key = (relation.from_id, relation.to_id)
            if key in explicit_keys:
                continue

            source, target = records[relation.from_id], records[relation.to_id]
            # A stated relation is itself the evidence: it supports unless it weakens
            weakens = relation.relation == RelationKind.WEAKENS
            confidence = relation.confidence
            if confidence is None:
                confidence = endpoint_confidence(source.confidence, target.confidence)
            try:
                edge = Edge(
                    from_id=relation.from_id,
                    to_id=relation.to_id,
                    relation=relation.relation,
                    strength=relation.strength,
                    confidence=confidence,
                    polarity=Polarity.WEAKENS if weakens else Polarity.SUPPORTS,
                )
            except ValueError as exc:
                skipped.append(self._skip(record_id, position, ErrorCode.MALFORMED_RECORD, str(exc)))
                continue

            by_key[key] = edge
            explicit_keys.add(key)

        return tuple(by_key.values())

    # -------------------------------------------------------------------------
    # Audit
    # -------------------------------------------------------------------------

    def _skip(self, record_id: str, position: int, code: ErrorCode, reason: str) -> SkippedRecord:
        error = Error.create(code, reason, record_id=record_id, position=str(position))
        self._log_audit(
            "record_skipped",
            entity_id=record_id or None,
            event_type=AuditEventType.ERROR,
            metadata=(("code", code.name), ("reason", reason), ("position", str(position))),
        )
        return SkippedRecord(record_id=record_id, position=position, error=error)

    def _log_audit(
        self,
        action: str,
        entity_id: Optional[str] = None,
        event_type: AuditEventType = AuditEventType.INGESTION,
        metadata: tuple = ()
    ):
        """Add entry to internal audit log."""
        self._audit_log.append(AuditLogEntry.record(
            layer="ingestion",
            event_type=event_type,
            action=action,
            sequence=len(self._audit_log),
            entity_id=entity_id,
            entity_type="evidence",
            metadata=metadata,
        ))

    def get_audit_log(self) -> List[AuditLogEntry]:
        """Return copy of audit log entries."""
        return list(self._audit_log)


# =============================================================================
# HELPERS
# =============================================================================

def _coerce(item: EvidenceInput) -> Union[Signal, Claim]:
    if isinstance(item, (Signal, Claim)):
        return item
    if isinstance(item, Mapping):
        try:
            if 'subject' in item or 'polarity' in item:
                return Claim.from_dict(item)
            return Signal.from_dict(item)
        except (TypeError, ValueError) as exc:
            raise RecordRejected(ErrorCode.MALFORMED_RECORD, str(exc))
    raise RecordRejected(
        ErrorCode.UNKNOWN_EVIDENCE_KIND,
        f"unsupported evidence type {type(item).__name__}",
    )


def _parse_time(value: Optional[str], field_name: str) -> Optional[Timestamp]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise RecordRejected(ErrorCode.MALFORMED_DATE, f"{field_name} is not a string: {value!r}")
    try:
        return Timestamp.from_iso(value)
    except ValueError:
        raise RecordRejected(ErrorCode.MALFORMED_DATE, f"{field_name} is not ISO-8601: {value!r}")


def _raw_id(item: Any) -> str:
    raw = item.get('id') if isinstance(item, Mapping) else getattr(item, 'id', None)
    return raw if isinstance(raw, str) else ""


def _raw_relation_id(raw: Any) -> str:
    if isinstance(raw, Mapping):
        return f"{raw.get('from', '')}->{raw.get('to', '')}"
    return hashlib.sha256(repr(raw).encode('utf-8')).hexdigest()[:12]


def build_graph(
    evidence: Iterable[EvidenceInput],
    relations: Iterable[Union[ExplicitRelation, Mapping[str, Any]]] = (),
    ingested_at: Optional[Timestamp] = None,
    config: Optional[IngestionConfig] = None,
) -> InvestigationGraph:
    """Convenience wrapper: evidence -> `{nodes, edges}` with no paths."""
    return EvidenceGraphBuilder(config).build(evidence, relations, ingested_at).graph
