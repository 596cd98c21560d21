"""
Base Contracts and Shared Types

These are the foundational types used across all layers.
All types here are IMMUTABLE and represent pure data.
No behavior, no side effects, no dependencies.

BOUNDARY ENFORCEMENT:
=====================
- This module is READ-ONLY from all layers
- Layers may import types but MUST NOT modify this module
- All types are frozen dataclasses for immutability guarantee
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Tuple
from enum import Enum, auto
import math
import re


# =============================================================================
# ERROR STATES (Explicit, never silent)
# =============================================================================

class ErrorCode(Enum):
    """
    Explicit error codes for deterministic error handling.
    No silent fallbacks - every error state is enumerated.
    """
    # Ingestion errors (fatal for the offending record only)
    MISSING_ID = auto()
    MALFORMED_DATE = auto()
    MALFORMED_RECORD = auto()
    UNKNOWN_EVIDENCE_KIND = auto()

    # Structural errors (fatal for the whole call)
    DANGLING_EDGE_ENDPOINT = auto()
    DUPLICATE_NODE_ID = auto()
    UNKNOWN_PATH_NODE = auto()

    # Path engine errors (recoverable)
    CYCLE_EDGE_DROPPED = auto()
    LABELER_FAILED = auto()


@dataclass(frozen=True)
class Error:
    """
    Immutable error representation with full context.
    Errors are data, not exceptions - they can be stored and queried.
    """
    code: ErrorCode
    message: str
    timestamp: datetime
    context: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    @staticmethod
    def create(code: ErrorCode, message: str, **context: str) -> Error:
        return Error(
            code=code,
            message=message,
            timestamp=datetime.now(timezone.utc),
            context=tuple(sorted((k, str(v)) for k, v in context.items())),
        )

    def context_value(self, key: str) -> Optional[str]:
        for k, v in self.context:
            if k == key:
                return v
        return None


class GraphValidationError(ValueError):
    """
    Raised when a graph violates a structural invariant.

    This indicates a bug upstream (adapter or caller), not transient bad
    data, so it surfaces loudly instead of being dropped.
    """

    def __init__(self, errors: Tuple[Error, ...]):
        self.errors = tuple(errors)
        summary = "; ".join(e.message for e in self.errors[:5])
        if len(self.errors) > 5:
            summary += f" (+{len(self.errors) - 5} more)"
        super().__init__(f"Invalid investigation graph: {summary}")


# =============================================================================
# TEMPORAL TYPES (Immutable, explicit semantics)
# =============================================================================

_YEAR_ONLY = re.compile(r"^\d{4}$")


@dataclass(frozen=True)
class Timestamp:
    """
    Immutable timestamp with explicit semantics.
    All timestamps are UTC, never local time.
    """
    value: datetime

    def __post_init__(self):
        # Ensure UTC timezone
        if self.value.tzinfo is None:
            object.__setattr__(self, 'value', self.value.replace(tzinfo=timezone.utc))
        else:
            object.__setattr__(self, 'value', self.value.astimezone(timezone.utc))

    @staticmethod
    def now() -> Timestamp:
        return Timestamp(value=datetime.now(timezone.utc))

    @staticmethod
    def from_iso(iso_string: str) -> Timestamp:
        """
        Parse an ISO-8601 datetime, date, or bare year.

        Raises ValueError for anything else.
        """
        text = iso_string.strip()
        if _YEAR_ONLY.match(text):
            return Timestamp(value=datetime(int(text), 1, 1, tzinfo=timezone.utc))
        dt = datetime.fromisoformat(text.replace('Z', '+00:00'))
        return Timestamp(value=dt)

    def to_iso(self) -> str:
        return self.value.isoformat()

    def __lt__(self, other: Timestamp) -> bool:
        return self.value < other.value


# =============================================================================
# CONFIDENCE CONVERSION (single boundary between 0-1 and 0-100)
# =============================================================================

def clamp_unit(value: float) -> float:
    """Clamp a float into [0, 1]."""
    return min(1.0, max(0.0, float(value)))


def to_percent(value: float) -> int:
    """
    Convert an internal [0, 1] confidence to the integer display percentage.

    Rounds half up and clamps to [0, 100].
    """
    if value is None or math.isnan(value):
        raise ValueError("confidence must be a number")
    scaled = round(clamp_unit(value) * 100, 9)
    return int(math.floor(scaled + 0.5))


def from_percent(percent: int) -> float:
    """Convert an integer display percentage back to the internal [0, 1] scale."""
    return clamp_unit(percent / 100.0)


# =============================================================================
# EVIDENCE TAGS (Closed enums)
# =============================================================================

class Polarity(Enum):
    """Impact of an evidence item on the investigated hypothesis."""
    SUPPORTS = "supports"
    WEAKENS = "weakens"
    NEUTRAL = "neutral"

    @staticmethod
    def parse(value: object) -> Polarity:
        """Unknown or missing tags are treated as neutral."""
        if isinstance(value, Polarity):
            return value
        if isinstance(value, str):
            try:
                return Polarity(value.strip().lower())
            except ValueError:
                return Polarity.NEUTRAL
        return Polarity.NEUTRAL


class CredibilityTier(Enum):
    """Coarse source credibility, ordered A > B > C > D."""
    A = "A"
    B = "B"
    C = "C"
    D = "D"

    @staticmethod
    def parse(value: object) -> Optional[CredibilityTier]:
        """Return the tier, or None when the value is unmapped."""
        if isinstance(value, CredibilityTier):
            return value
        if isinstance(value, str):
            try:
                return CredibilityTier(value.strip().upper())
            except ValueError:
                return None
        return None
