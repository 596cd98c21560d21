"""
Path Engine Tests
=================

Tests verifying path enumeration, scoring and classification.

INVARIANTS TESTED:
1. Paths are maximal root-to-sink threads of distinct nodes
2. Forks and merges yield separate paths, never a merged super-path
3. A decisive weakens edge forces dead regardless of the average
4. Cycles are broken by dropping an edge, never by failing
5. Re-running on an unchanged graph yields identical paths
"""

import pytest
from hypothesis import given, settings, strategies as st
from hypothesis.strategies import composite

from investigation.contracts.base import ErrorCode, GraphValidationError, Timestamp
from investigation.contracts.graph import (
    Edge, InvestigationGraph, Node, NodeType, Path, PathStatus, RelationKind,
)
from investigation.core import (
    PathEngine, PathEngineConfig, build_paths, classify_path, keep_maximal, score_path,
)
from investigation.core.topology import TopologyEngine
from investigation.ingestion import build_graph


def make_node(node_id: str, confidence: float = 0.7, date: str = None) -> Node:
    """Factory for test nodes."""
    return Node(
        id=node_id,
        type=NodeType.EVENT,
        label=f"Event {node_id}",
        confidence=confidence,
        date=Timestamp.from_iso(date) if date else None,
    )


def make_edge(
    a: str,
    b: str,
    relation: RelationKind = RelationKind.SUPPORTS,
    strength: float = 0.8,
    confidence: float = 0.8,
) -> Edge:
    return Edge(from_id=a, to_id=b, relation=relation, strength=strength, confidence=confidence)


def make_graph(node_ids, edges) -> InvestigationGraph:
    return InvestigationGraph(nodes=tuple(make_node(n) for n in node_ids), edges=tuple(edges))


def node_sequences(paths):
    return sorted(p.node_ids for p in paths)


class TestScenarios:
    """End-to-end behaviour on the reference shapes."""

    def test_linear_chain_is_one_active_path(self):
        graph = build_graph(
            [
                {"id": "A", "source": "s", "date": "2024-01-01", "credibility_tier": "A", "impact_on_hypothesis": "supports"},
                {"id": "B", "source": "s", "date": "2024-01-02", "credibility_tier": "B", "impact_on_hypothesis": "supports"},
                {"id": "C", "source": "s", "date": "2024-01-03", "credibility_tier": "B", "impact_on_hypothesis": "neutral"},
            ],
            ingested_at=Timestamp.from_iso("2025-01-01"),
        )
        paths = build_paths(graph)
        assert len(paths) == 1
        assert paths[0].node_ids == ("A", "B", "C")
        assert paths[0].status == PathStatus.ACTIVE
        assert paths[0].confidence_pct == 74

    def test_fork_merge_yields_two_paths(self):
        graph = make_graph(["D", "E", "F"], [make_edge("D", "F"), make_edge("E", "F")])
        paths = build_paths(graph)
        assert node_sequences(paths) == [("D", "F"), ("E", "F")]
        assert len({p.id for p in paths}) == 2

    def test_fork_from_shared_root(self):
        graph = make_graph(["R", "X", "Y"], [make_edge("R", "X"), make_edge("R", "Y")])
        assert node_sequences(build_paths(graph)) == [("R", "X"), ("R", "Y")]

    def test_decisive_contradiction_is_dead(self):
        graph = InvestigationGraph(
            nodes=(make_node("P", 0.75), make_node("Q", 0.8)),
            edges=(make_edge("P", "Q", RelationKind.WEAKENS, strength=0.8, confidence=0.78),),
        )
        paths = build_paths(graph)
        assert paths[0].status == PathStatus.DEAD

    def test_weak_band(self):
        graph = make_graph(["a", "b"], [make_edge("a", "b", strength=0.635, confidence=0.3)])
        path = build_paths(graph)[0]
        assert path.confidence_pct == 44
        assert path.status == PathStatus.WEAK

    def test_low_score_is_dead_without_decisive_edge(self):
        graph = make_graph(["a", "b"], [make_edge("a", "b", RelationKind.WEAKENS, strength=0.26, confidence=0.3)])
        path = build_paths(graph)[0]
        assert path.confidence_pct == 28
        assert path.status == PathStatus.DEAD

    def test_zero_edges_gives_single_node_paths(self):
        graph = InvestigationGraph(nodes=(make_node("x", 0.9), make_node("y", 0.4)))
        paths = build_paths(graph)
        assert [p.node_ids for p in paths] == [("x",), ("y",)]
        assert [p.status for p in paths] == [PathStatus.ACTIVE, PathStatus.WEAK]

    def test_empty_graph(self):
        assert build_paths(InvestigationGraph.empty()) == ()


class TestEnumeration:
    """Maximality, caps and cycle handling."""

    def test_contained_path_is_dropped(self):
        graph = make_graph(["A", "B", "C"], [make_edge("A", "B"), make_edge("A", "C"), make_edge("B", "C")])
        assert node_sequences(build_paths(graph)) == [("A", "B", "C")]

    def test_keep_maximal(self):
        kept = keep_maximal([("a", "b", "c"), ("a", "c"), ("a", "b", "c"), ("d",)])
        assert kept == [("a", "b", "c"), ("d",)]

    def test_length_cap_keeps_newest_nodes(self):
        ids = [f"n{i:02d}" for i in range(15)]
        graph = make_graph(ids, [make_edge(a, b) for a, b in zip(ids, ids[1:])])
        paths = build_paths(graph, config=PathEngineConfig(max_path_length=12))
        assert len(paths) == 1
        assert paths[0].node_ids == tuple(ids[3:])

    def test_late_contradiction_on_long_chain_is_scored(self):
        evidence = [
            {"id": f"n{i:02d}", "source": "wire", "date": f"2024-01-{i:02d}", "credibility_tier": "B",
             "impact_on_hypothesis": "supports"}
            for i in range(1, 14)
        ]
        evidence.append({"id": "n14", "source": "wire", "date": "2024-01-14", "credibility_tier": "A",
                         "impact_on_hypothesis": "weakens"})
        graph = build_graph(evidence, ingested_at=Timestamp.from_iso("2025-01-01"))
        paths = build_paths(graph)
        covered = {n for p in paths for n in p.node_ids}
        assert "n14" in covered
        assert paths[0].node_ids[-1] == "n14"
        assert len(paths[0].node_ids) == 12

    def test_path_count_cap(self):
        # Three independent forks: 2 * 2 * 2 = 8 root-to-sink walks
        ids = ["r", "a1", "b1", "m1", "a2", "b2", "m2", "a3", "b3", "m3"]
        edges = []
        prev = "r"
        for i in (1, 2, 3):
            edges += [make_edge(prev, f"a{i}"), make_edge(prev, f"b{i}"),
                      make_edge(f"a{i}", f"m{i}"), make_edge(f"b{i}", f"m{i}")]
            prev = f"m{i}"
        graph = make_graph(ids, edges)
        engine = PathEngine(PathEngineConfig(max_paths=3))
        result = engine.run(graph)
        assert len(result.paths) == 3
        assert "enumeration_capped" in [e.action for e in engine.get_audit_log()]

    def test_cycle_edge_dropped_and_reported(self):
        graph = make_graph(["A", "B", "C"], [make_edge("A", "B"), make_edge("B", "C"), make_edge("C", "A")])
        result = PathEngine().run(graph)
        assert node_sequences(result.paths) == [("A", "B", "C")]
        assert [e.key for e in result.dropped_edges] == [("C", "A")]
        assert result.errors[0].code == ErrorCode.CYCLE_EDGE_DROPPED

    def test_dangling_endpoint_raises(self):
        graph = InvestigationGraph(nodes=(make_node("A"),), edges=(make_edge("A", "ghost"),))
        with pytest.raises(GraphValidationError) as exc_info:
            build_paths(graph)
        assert exc_info.value.errors[0].code == ErrorCode.DANGLING_EDGE_ENDPOINT

    def test_run_summary_reports_graph_shape(self):
        engine = PathEngine()
        engine.run(make_graph(["A", "B", "C"], [make_edge("A", "B"), make_edge("A", "C")]))
        summary = [e for e in engine.get_audit_log() if e.action == "paths_built"][0]
        metadata = dict(summary.metadata)
        assert (metadata["nodes"], metadata["edges"]) == ("3", "2")
        assert (metadata["roots"], metadata["sinks"]) == ("1", "2")

    def test_input_graph_untouched(self):
        graph = make_graph(["A", "B"], [make_edge("A", "B")])
        build_paths(graph)
        assert graph.paths == ()


class TestTopology:

    def test_roots_and_sinks_follow_supply_order(self):
        topology = TopologyEngine()
        topology.build_graph(
            [make_node(n) for n in ("b", "a", "c")],
            [make_edge("b", "c"), make_edge("a", "c")],
        )
        assert topology.roots() == ["b", "a"]
        assert topology.sinks() == ["c"]
        assert topology.successors("b") == ["c"]

    def test_metrics(self):
        topology = TopologyEngine()
        topology.build_graph([make_node("a"), make_node("b")], [make_edge("a", "b"), make_edge("b", "a")])
        metrics = topology.compute_metrics()
        assert metrics.node_count == 2
        assert metrics.edge_count == 1
        assert (metrics.root_count, metrics.sink_count) == (1, 1)


class TestScoring:
    """Recency-weighted scoring."""

    def setup_method(self):
        self.node_map = {n: make_node(n) for n in "abc"}

    def test_latest_edge_weighs_most(self):
        strong, weak = make_edge("a", "b", strength=0.9, confidence=0.9), make_edge("b", "c", strength=0.1, confidence=0.1)
        weak_last = score_path(("a", "b", "c"), [strong, weak], self.node_map, 0.85)
        weak_first = score_path(("a", "b", "c"), [weak, strong], self.node_map, 0.85)
        assert weak_last < weak_first

    def test_single_node_uses_node_confidence(self):
        assert score_path(("a",), [], self.node_map, 0.85) == pytest.approx(0.7)

    def test_score_in_unit_interval(self):
        edge = make_edge("a", "b", strength=1.0, confidence=1.0)
        assert score_path(("a", "b"), [edge], self.node_map, 0.85) == pytest.approx(1.0)

    def test_classification_thresholds(self):
        config = PathEngineConfig()
        assert classify_path(0.65, [], config) == PathStatus.ACTIVE
        assert classify_path(0.6449, [], config) == PathStatus.WEAK
        assert classify_path(0.35, [], config) == PathStatus.WEAK
        assert classify_path(0.344, [], config) == PathStatus.DEAD

    def test_non_decisive_weakens_uses_score(self):
        config = PathEngineConfig()
        edge = make_edge("a", "b", RelationKind.WEAKENS, strength=0.6)
        assert classify_path(0.9, [edge], config) == PathStatus.ACTIVE

    def test_invalid_config(self):
        with pytest.raises(ValueError):
            PathEngineConfig(max_path_length=0)
        with pytest.raises(ValueError):
            PathEngineConfig(active_threshold=30, weak_threshold=40)


class TestLabeling:
    """Injected labeler with deterministic fallback."""

    def setup_method(self):
        self.graph = make_graph(["A", "B"], [make_edge("A", "B")])

    def test_fallback_is_first_node_label(self):
        assert build_paths(self.graph)[0].hypothesis_label == "Event A"

    def test_labeler_result_used(self):
        paths = build_paths(self.graph, labeler=lambda path: "  Funding route ")
        assert paths[0].hypothesis_label == "Funding route"

    def test_empty_label_falls_back(self):
        assert build_paths(self.graph, labeler=lambda path: None)[0].hypothesis_label == "Event A"

    def test_failing_labeler_does_not_block(self):
        def labeler(path):
            raise RuntimeError("model timeout")

        result = PathEngine().run(self.graph, labeler=labeler)
        assert result.paths[0].hypothesis_label == "Event A"
        assert result.errors[0].code == ErrorCode.LABELER_FAILED

    def test_prior_label_kept_for_same_path(self):
        path_id = Path.make_id(("A", "B"))
        prior = Path(id=path_id, node_ids=("A", "B"), status=PathStatus.ACTIVE, confidence=0.8, hypothesis_label="Known story")
        assert build_paths(self.graph, prior_paths=[prior])[0].hypothesis_label == "Known story"


# =============================================================================
# PROPERTY TESTS
# =============================================================================

@composite
def dags(draw):
    """Random DAGs over up to 8 nodes (edges only go forward in index order)."""
    count = draw(st.integers(min_value=0, max_value=8))
    ids = [f"n{i}" for i in range(count)]
    nodes = tuple(
        make_node(node_id, draw(st.floats(min_value=0.0, max_value=1.0)))
        for node_id in ids
    )
    edges = []
    for i in range(count):
        for j in range(i + 1, count):
            if draw(st.booleans()):
                edges.append(make_edge(
                    ids[i], ids[j],
                    relation=draw(st.sampled_from(RelationKind)),
                    strength=draw(st.floats(min_value=0.0, max_value=1.0)),
                    confidence=draw(st.floats(min_value=0.0, max_value=1.0)),
                ))
    return InvestigationGraph(nodes=nodes, edges=tuple(edges))


class TestPathProperties:

    @settings(max_examples=60, deadline=None)
    @given(dags())
    def test_idempotent(self, graph):
        assert build_paths(graph) == build_paths(graph)

    @settings(max_examples=60, deadline=None)
    @given(dags())
    def test_paths_are_valid_maximal_walks(self, graph):
        paths = build_paths(graph)
        edge_keys = set(graph.edge_map())
        sequences = [p.node_ids for p in paths]
        assert len(set(sequences)) == len(sequences)
        for path in paths:
            assert len(set(path.node_ids)) == len(path.node_ids)
            assert all(key in edge_keys for key in path.edge_keys)
            assert 0.0 <= path.confidence <= 1.0
        if graph.nodes:
            covered = {n for p in paths for n in p.node_ids}
            assert covered == {n.id for n in graph.nodes}
