"""
Path Lifecycle State Machine
============================

Reconciles freshly computed path statuses against previously persisted
ones so that status only moves in evidence-consistent directions.

RULES:
- active -> weak/dead, weak -> dead: only when the path gained a new
  `weakens` edge since the prior state
- weak -> active, dead -> weak/active: only when the path gained a new
  edge pointing at supporting evidence; neutral evidence never revives
- Anything else keeps the prior status: recomputing old evidence never
  moves a path on its own
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Set, Tuple

from ..contracts.base import Polarity
from ..contracts.graph import Edge, Path, PathStatus


@dataclass(frozen=True)
class PathTransition:
    """A status change the external persistence layer should record."""
    path_id: str
    prior_path_id: str
    from_status: PathStatus
    to_status: PathStatus
    reason: str


def is_subsequence(shorter: Sequence[str], longer: Sequence[str]) -> bool:
    """True if `shorter` appears in `longer` in order (gaps allowed)."""
    remaining = iter(longer)
    return all(item in remaining for item in shorter)


class PathLifecycleMachine:
    """
    Status reconciliation against prior path state.

    All transitions are explicit and deterministic. The machine holds no
    state; prior paths are passed in on every call.
    """

    _VALID_TRANSITIONS: Dict[PathStatus, Set[PathStatus]] = {
        PathStatus.ACTIVE: {PathStatus.WEAK, PathStatus.DEAD},
        PathStatus.WEAK: {PathStatus.ACTIVE, PathStatus.DEAD},
        # Revival requires new supporting evidence, checked in reconcile()
        PathStatus.DEAD: {PathStatus.WEAK, PathStatus.ACTIVE},
    }

    def validate_transition(self, from_state: PathStatus, to_state: PathStatus) -> bool:
        """Check if a state transition is valid."""
        if from_state == to_state:
            return True
        return to_state in self._VALID_TRANSITIONS.get(from_state, set())

    def match_prior(
        self,
        path_id: str,
        node_ids: Tuple[str, ...],
        prior_paths: Dict[str, Path],
    ) -> Optional[Path]:
        """
        Find the prior path this one continues.

        Same id first; otherwise the longest prior path whose node sequence
        is contained in order in this one (ties broken by id).
        """
        if path_id in prior_paths:
            return prior_paths[path_id]
        candidates = [
            p for p in prior_paths.values()
            if len(p.node_ids) < len(node_ids) and is_subsequence(p.node_ids, node_ids)
        ]
        if not candidates:
            return None
        candidates.sort(key=lambda p: (-len(p.node_ids), p.id))
        return candidates[0]

    def reconcile(
        self,
        path_id: str,
        computed: PathStatus,
        path_edges: Sequence[Edge],
        prior: Optional[Path],
    ) -> Tuple[PathStatus, Optional[PathTransition]]:
        """
        Decide the status to publish for a path.

        Returns the status and, when it differs from the prior one, the
        transition to persist.
        """
        if prior is None:
            return computed, None

        prior_keys = set(prior.edge_keys)
        new_edges = [e for e in path_edges if e.key not in prior_keys]
        new_contradiction = any(e.polarity == Polarity.WEAKENS for e in new_edges)
        new_support = any(e.polarity == Polarity.SUPPORTS for e in new_edges)

        status = prior.status
        reason = "unchanged"
        if computed.rank < prior.status.rank and new_contradiction:
            status, reason = computed, "contradicted_by_new_evidence"
        elif computed.rank > prior.status.rank and new_support:
            status = computed
            reason = "revived_by_new_evidence" if prior.status == PathStatus.DEAD else "strengthened_by_new_evidence"

        if status == prior.status or not self.validate_transition(prior.status, status):
            return prior.status, None

        return status, PathTransition(
            path_id=path_id,
            prior_path_id=prior.id,
            from_status=prior.status,
            to_status=status,
            reason=reason,
        )
