"""
Briefing Contracts

Read-only projection of the graph for a reader. The payload has no identity
of its own and is recomputed on demand; it is never the source of truth.
All confidence values here are integer display percentages.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Tuple
from enum import Enum

from .graph import PathStatus


class InvestigationStatus(Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"


@dataclass(frozen=True)
class InvestigationThread:
    """Investigation metadata the briefing reads alongside the graph."""
    id: str
    title: str
    initial_hypothesis: str
    status: InvestigationStatus = InvestigationStatus.ACTIVE
    updated_at: Optional[str] = None
    investigative_axes: Tuple[str, ...] = field(default_factory=tuple)
    blind_spots: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class BriefingInvestigation:
    hypothesis: str
    title: str
    status: InvestigationStatus
    updated_at: Optional[str]
    investigative_axes: Tuple[str, ...]


@dataclass(frozen=True)
class BriefingPrimaryPath:
    path_id: str
    hypothesis_label: str
    confidence: int
    status: PathStatus
    key_node_ids: Tuple[str, ...]


@dataclass(frozen=True)
class BriefingTurningPoint:
    node_id: str
    label: str
    date: Optional[str]
    confidence: int
    reasons: Tuple[str, ...]  # "shared", "merge", "branch"


@dataclass(frozen=True)
class BriefingAlternativePath:
    path_id: str
    hypothesis_label: str
    status: PathStatus
    confidence: int


@dataclass(frozen=True)
class BriefingUncertainty:
    blind_spots: Tuple[str, ...]
    low_confidence_node_ids: Tuple[str, ...]
    has_contradictions: bool


@dataclass(frozen=True)
class BriefingPayload:
    investigation: BriefingInvestigation
    primary_path: Optional[BriefingPrimaryPath]
    turning_points: Tuple[BriefingTurningPoint, ...]
    alternative_paths: Tuple[BriefingAlternativePath, ...]
    uncertainty: BriefingUncertainty
    disclaimer: str
