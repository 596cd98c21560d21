"""
Relation Inference

Maps the polarity (and, for claims, the action verb) of the *target*
evidence item of a temporally consecutive pair onto a relation kind and a
strength inside the polarity's band.
"""

from __future__ import annotations
from typing import Dict, Optional, Tuple
import re

from ..contracts.base import Polarity, from_percent, to_percent
from ..contracts.graph import RelationKind


_POLARITY_RELATION: Dict[Polarity, RelationKind] = {
    Polarity.SUPPORTS: RelationKind.SUPPORTS,
    Polarity.WEAKENS: RelationKind.WEAKENS,
    Polarity.NEUTRAL: RelationKind.INFLUENCES,
}

# Checked in order; first match wins.
_ACTION_KEYWORDS: Tuple[Tuple[re.Pattern, RelationKind], ...] = (
    (re.compile(r"\b(fund|finance|bankroll|invest)", re.I), RelationKind.FUNDS),
    (re.compile(r"\b(restrict|sanction|ban|block|embargo|limit)", re.I), RelationKind.RESTRICTS),
    (re.compile(r"\b(trigger|spark|prompt|provoke)", re.I), RelationKind.TRIGGERS),
    (re.compile(r"\b(cause|lead|result)", re.I), RelationKind.CAUSES),
)


def infer_relation(polarity: Polarity, action: Optional[str] = None) -> RelationKind:
    """
    Relation kind for an edge pointing at an item with this polarity.

    A weakening item always yields WEAKENS so contradictions stay visible to
    the path engine; otherwise a claim's action verb may refine the kind.
    """
    if polarity == Polarity.WEAKENS:
        return RelationKind.WEAKENS
    if action:
        for pattern, kind in _ACTION_KEYWORDS:
            if pattern.search(action):
                return kind
    return _POLARITY_RELATION[polarity]


def strength_in_band(band: Tuple[float, float], confidence: float) -> float:
    """Place a strength inside `band` in proportion to the target's confidence."""
    low, high = band
    if not 0.0 <= low <= high <= 1.0:
        raise ValueError(f"invalid strength band {band!r}")
    return round(low + (high - low) * confidence, 4)


def endpoint_confidence(source: float, target: float) -> float:
    """Mean of the endpoints' display percentages, rounded half up."""
    return from_percent((to_percent(source) + to_percent(target) + 1) // 2)
