"""
Investigation Reasoning Engine

This package turns a stream of time-stamped evidence items (signals or
claims) about a hypothesis into a directed graph of facts, derives the
competing explanatory paths through that graph, and projects the result into
an auditable briefing. Each layer communicates only through explicit
contracts, never through shared mutable state.

LAYER STRUCTURE:
================

1. CONTRACTS (contracts/)
   - Responsibility: Immutable data shapes shared by every layer
   - Outputs: Signal, Claim, Node, Edge, Path, InvestigationGraph, Briefing*
   - MUST NOT: Carry behaviour beyond structural validation

2. INGESTION LAYER (ingestion/)
   - Responsibility: Evidence records -> nodes and edges
   - Allowed inputs: Signal, Claim, raw extractor mappings, ExplicitRelation
   - Outputs: IngestionReport (graph without paths + skipped records)
   - MUST NOT: Merge entities, enumerate paths, judge hypotheses

3. PATH ENGINE (core/)
   - Responsibility: Enumerate, score and classify hypothesis paths
   - Allowed inputs: InvestigationGraph, prior Path state
   - Outputs: PathEngineResult (paths, lifecycle transitions)
   - MUST NOT: Persist state, mutate the input graph

4. BRIEFING (briefing/)
   - Responsibility: Read-only summary of the completed graph
   - Allowed inputs: InvestigationThread, InvestigationGraph
   - Outputs: BriefingPayload, plain text export
   - MUST NOT: Create, modify or choose truth

5. OBSERVABILITY (observability/)
   - Responsibility: Audit log collection and metrics
   - MUST NOT: Modify system behaviour

CONSTRAINTS ENFORCED:
=====================
- Immutability-first: All contract types are frozen dataclasses
- Append-only: Paths keep their node sequence; only status/confidence move
- Deterministic: Identical evidence always produces identical output
- Explicit errors: Skipped records and dropped edges are queryable
- No truth adjudication: Competing paths are ranked, never resolved
"""

from .contracts.base import GraphValidationError, to_percent, from_percent
from .contracts.evidence import Signal, Claim, ExplicitRelation
from .contracts.graph import (
    Node, Edge, Path, InvestigationGraph, NodeType, RelationKind, PathStatus,
    validate_graph,
)
from .contracts.briefing import InvestigationThread, BriefingPayload
from .ingestion import build_graph
from .core import build_paths
from .briefing import build_briefing, briefing_to_text
from .engine import InvestigationEngine, EngineConfig

__version__ = "0.3.0"

__all__ = [
    "GraphValidationError", "to_percent", "from_percent",
    "Signal", "Claim", "ExplicitRelation",
    "Node", "Edge", "Path", "InvestigationGraph",
    "NodeType", "RelationKind", "PathStatus", "validate_graph",
    "InvestigationThread", "BriefingPayload",
    "build_graph", "build_paths", "build_briefing", "briefing_to_text",
    "InvestigationEngine", "EngineConfig",
]
