"""
Evidence Contracts
==================

Structured evidence records supplied by the external extraction pipeline.

CONSTRAINTS:
- Records are created once and never mutated or deleted
- Dates stay as the raw ISO strings the extractor produced; parsing (and
  rejecting malformed values) is the ingestion layer's job
- One record maps to exactly one graph node; no entity resolution here
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Tuple

from .base import Polarity, clamp_unit
from .graph import RelationKind


def _clean(value: Any, fallback: Optional[str] = None) -> Optional[str]:
    if value is None:
        return fallback
    text = value.strip() if isinstance(value, str) else str(value).strip()
    return text or fallback


@dataclass(frozen=True)
class Signal:
    """
    Raw, immutable evidentiary observation.

    `credibility_tier` is kept as supplied; unmapped tiers fall back to the
    default confidence during ingestion rather than failing the record.
    """
    id: str
    source: str
    impact: Polarity = Polarity.NEUTRAL
    credibility_tier: Optional[str] = None
    url: Optional[str] = None
    date: Optional[str] = None
    created_at: Optional[str] = None
    extracted_facts: Tuple[str, ...] = field(default_factory=tuple)
    title: Optional[str] = None
    node_type: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> Signal:
        facts = raw.get('extracted_facts') or ()
        if isinstance(facts, str):
            facts = (facts,)
        return cls(
            id=_clean(raw.get('id'), ''),
            source=_clean(raw.get('source') or raw.get('source_name'), 'unknown'),
            impact=Polarity.parse(raw.get('impact_on_hypothesis', raw.get('impact'))),
            credibility_tier=_clean(raw.get('credibility_tier', raw.get('credibility'))),
            url=_clean(raw.get('url')),
            date=_clean(raw.get('date')),
            created_at=_clean(raw.get('created_at')),
            extracted_facts=tuple(f for f in (_clean(x) for x in facts) if f),
            title=_clean(raw.get('title')),
            node_type=_clean(raw.get('node_type') or raw.get('type')),
        )


@dataclass(frozen=True)
class Claim:
    """
    Canonical subject/action/object extraction of a signal.

    Functionally equivalent to a Signal for graph purposes.
    """
    id: str
    subject: str
    action: str
    object: str
    polarity: Polarity = Polarity.NEUTRAL
    confidence: float = 0.5
    text: Optional[str] = None
    date: Optional[str] = None
    created_at: Optional[str] = None
    source_url: Optional[str] = None
    source_name: Optional[str] = None
    signal_id: Optional[str] = None
    node_type: Optional[str] = None

    @property
    def statement(self) -> str:
        return f"{self.subject} {self.action} {self.object}"

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> Claim:
        """
        Build a claim from an extractor payload.

        Empty subject/action/object become "unknown", the confidence is
        clamped into [0, 1] and unknown polarities become neutral.
        """
        try:
            confidence = clamp_unit(float(raw.get('confidence', 0.5)))
        except (TypeError, ValueError):
            raise ValueError(f"claim confidence is not a number: {raw.get('confidence')!r}")
        return cls(
            id=_clean(raw.get('id'), ''),
            subject=_clean(raw.get('subject'), 'unknown'),
            action=_clean(raw.get('action'), 'unknown'),
            object=_clean(raw.get('object'), 'unknown'),
            polarity=Polarity.parse(raw.get('polarity')),
            confidence=confidence,
            text=_clean(raw.get('text')),
            date=_clean(raw.get('date')),
            created_at=_clean(raw.get('created_at')),
            source_url=_clean(raw.get('source_url')),
            source_name=_clean(raw.get('source_name')),
            signal_id=_clean(raw.get('signal_id')),
            node_type=_clean(raw.get('node_type') or raw.get('type')),
        )


@dataclass(frozen=True)
class ExplicitRelation:
    """
    A relation that carries its own evidence.

    Used by extractors that detect forks and merges directly; the temporal
    chain built by ingestion never produces them.
    """
    from_id: str
    to_id: str
    relation: RelationKind
    strength: float
    confidence: Optional[float] = None

    def __post_init__(self):
        if not 0.0 <= self.strength <= 1.0:
            raise ValueError("strength must be between 0.0 and 1.0")
        if self.confidence is not None and not 0.0 <= self.confidence <= 1.0:
            raise ValueError("confidence must be between 0.0 and 1.0")

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> ExplicitRelation:
        confidence = raw.get('confidence')
        return cls(
            from_id=_clean(raw.get('from'), ''),
            to_id=_clean(raw.get('to'), ''),
            relation=RelationKind(_clean(raw.get('relation'), 'influences').lower()),
            strength=float(raw.get('strength', 0.5)),
            confidence=None if confidence is None else float(confidence),
        )
