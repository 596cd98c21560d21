"""
Unified Investigation Engine

This module provides the single entry point that wires the layers together.
Each layer operates independently; the engine only passes immutable
contract values from one to the next and forwards their audit logs.

LAYER FLOW:
===========
1. Ingestion: Signal / Claim / relations -> InvestigationGraph (no paths)
2. Path engine: InvestigationGraph + prior paths -> PathEngineResult
3. Briefing: InvestigationThread + graph with paths -> BriefingPayload
4. Observability: Records all layer activity

NO LAYER BYPASSES THIS FLOW.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

from .contracts.base import Timestamp
from .contracts.briefing import BriefingPayload, InvestigationThread
from .contracts.events import AuditEventType, AuditLogEntry
from .contracts.evidence import ExplicitRelation
from .contracts.graph import InvestigationGraph, Path, PathStatus
from .ingestion import EvidenceGraphBuilder, EvidenceInput, IngestionConfig, IngestionReport
from .core import Labeler, PathEngine, PathEngineConfig, PathEngineResult
from .briefing import build_briefing
from .observability import ObservabilityConfig, ObservabilityEngine


@dataclass
class EngineConfig:
    """Unified configuration for every layer."""
    ingestion: IngestionConfig = None
    path_engine: PathEngineConfig = None
    observability: ObservabilityConfig = None

    def __post_init__(self):
        self.ingestion = self.ingestion or IngestionConfig()
        self.path_engine = self.path_engine or PathEngineConfig()
        self.observability = self.observability or ObservabilityConfig()


@dataclass(frozen=True)
class InvestigationSnapshot:
    """Result of one full rebuild."""
    graph: InvestigationGraph
    briefing: BriefingPayload
    ingestion_report: IngestionReport
    path_result: PathEngineResult

    @property
    def paths(self):
        return self.graph.paths


class InvestigationEngine:
    """
    Orchestrates ingestion, path building and briefing for one thread.

    The engine keeps no investigation state between rebuilds: prior paths
    come from the caller's persistence layer and transitions go back to it
    through the snapshot.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self._config = config or EngineConfig()
        self._observability = ObservabilityEngine(self._config.observability)
        self._rebuilds = 0

    @property
    def observability(self) -> ObservabilityEngine:
        return self._observability

    def rebuild(
        self,
        thread: InvestigationThread,
        evidence: Iterable[EvidenceInput],
        relations: Iterable[Union[ExplicitRelation, Mapping[str, Any]]] = (),
        prior_paths: Sequence[Path] = (),
        labeler: Optional[Labeler] = None,
        ingested_at: Optional[Timestamp] = None,
    ) -> InvestigationSnapshot:
        """
        Recompute graph, paths and briefing from the full evidence set.

        Raises GraphValidationError when the graph is structurally broken;
        malformed records are skipped and reported instead.
        """
        builder = EvidenceGraphBuilder(self._config.ingestion)
        try:
            report = builder.build(evidence, relations, ingested_at)
        finally:
            self._forward(builder.get_audit_log())

        path_engine = PathEngine(self._config.path_engine)
        try:
            result = path_engine.run(report.graph, prior_paths, labeler)
        finally:
            self._forward(path_engine.get_audit_log())

        graph = report.graph.with_paths(result.paths)
        briefing = build_briefing(thread, graph)

        self._record_metrics(report, result)
        self._observability.collect_audit(AuditLogEntry.record(
            layer="engine",
            event_type=AuditEventType.BRIEFING,
            action="rebuild_completed",
            sequence=self._rebuilds,
            entity_id=thread.id,
            entity_type="investigation",
            metadata=(
                ("nodes", str(len(graph.nodes))),
                ("paths", str(len(graph.paths))),
                ("primary", briefing.primary_path.path_id if briefing.primary_path else ""),
            ),
        ))
        self._rebuilds += 1

        return InvestigationSnapshot(
            graph=graph,
            briefing=briefing,
            ingestion_report=report,
            path_result=result,
        )

    def _forward(self, entries: Iterable[AuditLogEntry]):
        for entry in entries:
            self._observability.collect_audit(entry)

    def _record_metrics(self, report: IngestionReport, result: PathEngineResult):
        self._observability.collect_metric("evidence_records_total", float(report.processed_count))
        self._observability.collect_metric("evidence_records_skipped", float(report.skipped_count))
        self._observability.collect_metric("cycle_edges_dropped", float(len(result.dropped_edges)))
        self._observability.collect_metric("path_transitions", float(len(result.transitions)))
        for status in PathStatus:
            count = sum(1 for p in result.paths if p.status == status)
            self._observability.collect_metric("paths_by_status", float(count), {"status": status.value})

    def get_audit_report(self) -> dict:
        return self._observability.generate_audit_report()
