"""
Investigation command line.

Reads one JSON document and prints the derived briefing or graph:

    {
      "thread": {"id": ..., "title": ..., "initial_hypothesis": ...},
      "evidence": [ {signal or claim}, ... ],
      "relations": [ {"from": ..., "to": ..., "relation": ..., "strength": ...} ],
      "prior_paths": [ {"id": ..., "nodes": [...], "status": ..., "confidence": 0-100} ]
    }

Usage:
    python -m investigation.cli briefing FILE [--format text|json]
    python -m investigation.cli graph FILE
"""

import argparse
import json
import sys
from typing import Any, Dict, List, Optional

from .briefing import briefing_to_text
from .contracts.base import GraphValidationError, Timestamp, from_percent
from .contracts.briefing import InvestigationStatus, InvestigationThread
from .contracts.graph import Path, PathStatus
from .engine import InvestigationEngine, InvestigationSnapshot
from .export import briefing_to_dict, dumps, graph_to_dict


def thread_from_dict(data: Dict[str, Any]) -> InvestigationThread:
    return InvestigationThread(
        id=str(data.get("id", "investigation")),
        title=data.get("title") or "",
        initial_hypothesis=data.get("initial_hypothesis") or data.get("hypothesis") or "",
        status=InvestigationStatus(data.get("status", "active")),
        updated_at=data.get("updated_at"),
        investigative_axes=tuple(data.get("investigative_axes") or ()),
        blind_spots=tuple(data.get("blind_spots") or ()),
    )


def path_from_dict(data: Dict[str, Any]) -> Path:
    """Persisted path as exported by graph_to_dict (percent confidence)."""
    return Path(
        id=data["id"],
        node_ids=tuple(data["nodes"]),
        status=PathStatus(data["status"]),
        confidence=from_percent(data.get("confidence", 0)),
        hypothesis_label=data.get("hypothesis_label"),
    )


def load_document(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        document = json.load(f)
    if not isinstance(document, dict):
        raise ValueError("input document must be a JSON object")
    return document


def run_document(document: Dict[str, Any], ingested_at: Optional[Timestamp] = None) -> InvestigationSnapshot:
    engine = InvestigationEngine()
    return engine.rebuild(
        thread=thread_from_dict(document.get("thread") or {}),
        evidence=document.get("evidence") or [],
        relations=document.get("relations") or [],
        prior_paths=[path_from_dict(p) for p in document.get("prior_paths") or []],
        ingested_at=ingested_at,
    )


def _report_skipped(snapshot: InvestigationSnapshot):
    for skipped in snapshot.ingestion_report.skipped_records:
        print(
            f"[WARN] Skipped record {skipped.record_id or '?'} (#{skipped.position}): {skipped.error.message}",
            file=sys.stderr,
        )
    for error in snapshot.path_result.errors:
        print(f"[WARN] {error.code.name}: {error.message}", file=sys.stderr)


def cmd_briefing(args) -> int:
    snapshot = run_document(load_document(args.file))
    _report_skipped(snapshot)
    if args.format == "json":
        print(dumps(briefing_to_dict(snapshot.briefing)))
    else:
        sys.stdout.write(briefing_to_text(snapshot.briefing))
    return 0


def cmd_graph(args) -> int:
    snapshot = run_document(load_document(args.file))
    _report_skipped(snapshot)
    print(dumps(graph_to_dict(snapshot.graph)))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Investigation reasoning engine")
    subparsers = parser.add_subparsers(dest="command")

    briefing_parser = subparsers.add_parser("briefing", help="Print the investigation briefing")
    briefing_parser.add_argument("file", help="JSON document with thread, evidence and relations")
    briefing_parser.add_argument("--format", choices=("text", "json"), default="text")

    graph_parser = subparsers.add_parser("graph", help="Print nodes, edges and paths as JSON")
    graph_parser.add_argument("file", help="JSON document with thread, evidence and relations")

    args = parser.parse_args(argv)

    try:
        if args.command == "briefing":
            return cmd_briefing(args)
        elif args.command == "graph":
            return cmd_graph(args)
    except GraphValidationError as exc:
        for error in exc.errors:
            print(f"[FAIL] {error.code.name}: {error.message}", file=sys.stderr)
        return 1
    except (OSError, KeyError, ValueError) as exc:
        print(f"[FAIL] {exc}", file=sys.stderr)
        return 1

    parser.print_help()
    return 2


if __name__ == "__main__":
    sys.exit(main())
