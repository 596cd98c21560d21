"""
Plain-text briefing export.

Section-by-section serialization of a BriefingPayload; no prose beyond
the structured fields.
"""

from __future__ import annotations
from typing import List

from ..contracts.briefing import BriefingPayload


def briefing_to_text(payload: BriefingPayload) -> str:
    inv = payload.investigation
    lines: List[str] = [
        f"INVESTIGATION: {inv.title}",
        f"Hypothesis: {inv.hypothesis}",
        f"Status: {inv.status.value}",
    ]
    if inv.updated_at:
        lines.append(f"Updated: {inv.updated_at}")
    if inv.investigative_axes:
        lines.append("Axes: " + ", ".join(inv.investigative_axes))

    lines += ["", "PRIMARY PATH"]
    primary = payload.primary_path
    if primary is None:
        lines.append("- none")
    else:
        lines.append(f"- {primary.hypothesis_label} [{primary.status.value}, {primary.confidence}%]")
        lines.append("  Key nodes: " + " -> ".join(primary.key_node_ids))

    lines += ["", "TURNING POINTS"]
    if not payload.turning_points:
        lines.append("- none")
    for tp in payload.turning_points:
        date = f" ({tp.date[:10]})" if tp.date else ""
        lines.append(f"- {tp.label}{date} [{tp.confidence}%] {'/'.join(tp.reasons)}")

    lines += ["", "ALTERNATIVE PATHS"]
    if not payload.alternative_paths:
        lines.append("- none")
    for alt in payload.alternative_paths:
        lines.append(f"- {alt.hypothesis_label} [{alt.status.value}, {alt.confidence}%]")

    unc = payload.uncertainty
    lines += ["", "UNCERTAINTY"]
    lines.append(f"- Contradictions: {'yes' if unc.has_contradictions else 'no'}")
    if unc.low_confidence_node_ids:
        lines.append("- Low-confidence nodes: " + ", ".join(unc.low_confidence_node_ids))
    for spot in unc.blind_spots:
        lines.append(f"- Blind spot: {spot}")

    lines += ["", payload.disclaimer]
    return "\n".join(lines) + "\n"
