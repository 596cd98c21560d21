"""
Audit and Metric Contracts

Every layer records what it did as immutable audit entries. Entries are
data: the observability layer collects copies, nothing consumes them to
change behaviour.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Tuple
from enum import Enum
import hashlib

from .base import Timestamp


class AuditEventType(Enum):
    """Explicit audit event types."""
    INGESTION = "ingestion"
    PATH_ENGINE = "path_engine"
    LIFECYCLE = "lifecycle"
    BRIEFING = "briefing"
    ERROR = "error"


@dataclass(frozen=True)
class AuditLogEntry:
    """Immutable audit log entry."""
    entry_id: str
    event_type: AuditEventType
    timestamp: Timestamp
    layer: str  # Which layer generated this
    action: str
    entity_id: Optional[str] = None
    entity_type: Optional[str] = None
    metadata: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    @staticmethod
    def record(
        layer: str,
        event_type: AuditEventType,
        action: str,
        sequence: int,
        entity_id: Optional[str] = None,
        entity_type: Optional[str] = None,
        metadata: Tuple[Tuple[str, str], ...] = (),
    ) -> AuditLogEntry:
        """Create an entry whose id is stable for a given layer/sequence/action."""
        seed = f"{layer}|{sequence}|{action}|{entity_id or ''}"
        entry_id = hashlib.sha256(seed.encode('utf-8')).hexdigest()[:16]
        return AuditLogEntry(
            entry_id=f"audit_{entry_id}",
            event_type=event_type,
            timestamp=Timestamp.now(),
            layer=layer,
            action=action,
            entity_id=entity_id,
            entity_type=entity_type,
            metadata=tuple(metadata),
        )


@dataclass(frozen=True)
class MetricPoint:
    """Immutable metric data point."""
    metric_name: str
    value: float
    timestamp: Timestamp
    labels: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)
