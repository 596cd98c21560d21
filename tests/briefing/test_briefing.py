"""
Briefing Derivation Tests
=========================

Tests verifying the read-only briefing projection.

INVARIANTS TESTED:
1. Null-safe on empty graphs
2. Primary path follows the shared ranking and its tie-breaks
3. Turning points include shared sinks, ranked and capped
4. Dead paths stay visible among the alternatives
5. The graph is never modified
"""

from investigation.briefing import (
    DISCLAIMER, MAX_TURNING_POINTS, briefing_to_text, build_briefing, sample_key_nodes,
)
from investigation.contracts.base import Timestamp
from investigation.contracts.briefing import InvestigationStatus, InvestigationThread
from investigation.contracts.graph import (
    Edge, InvestigationGraph, Node, NodeType, Path, PathStatus, RelationKind,
)


def make_thread(**overrides) -> InvestigationThread:
    """Factory for test threads."""
    fields = dict(
        id="inv_1",
        title="Port contract",
        initial_hypothesis="The tender was steered",
        updated_at="2024-02-01T00:00:00+00:00",
        investigative_axes=("funding", "timeline"),
        blind_spots=("No access to bank records",),
    )
    fields.update(overrides)
    return InvestigationThread(**fields)


def make_node(node_id: str, confidence: float = 0.7, date: str = None) -> Node:
    return Node(
        id=node_id,
        type=NodeType.EVENT,
        label=f"Event {node_id}",
        confidence=confidence,
        date=Timestamp.from_iso(date) if date else None,
    )


def make_path(node_ids, confidence: float, status: PathStatus = PathStatus.ACTIVE, label: str = None) -> Path:
    node_ids = tuple(node_ids)
    return Path(
        id=Path.make_id(node_ids),
        node_ids=node_ids,
        status=status,
        confidence=confidence,
        hypothesis_label=label,
    )


def make_edge(a, b, relation=RelationKind.SUPPORTS, strength=0.8) -> Edge:
    return Edge(from_id=a, to_id=b, relation=relation, strength=strength, confidence=0.8)


def fork_merge_graph() -> InvestigationGraph:
    nodes = (make_node("D", 0.8, "2024-01-01"), make_node("E", 0.6, "2024-01-02"), make_node("F", 0.9, "2024-01-03"))
    edges = (make_edge("D", "F"), make_edge("E", "F"))
    paths = (
        make_path("DF", 0.8, label="Direct payment"),
        make_path("EF", 0.6, PathStatus.WEAK, label="Broker route"),
    )
    return InvestigationGraph(nodes=nodes, edges=edges, paths=paths)


class TestNullSafety:

    def test_empty_graph(self):
        briefing = build_briefing(make_thread(), InvestigationGraph.empty())
        assert briefing.primary_path is None
        assert briefing.turning_points == ()
        assert briefing.alternative_paths == ()
        assert briefing.uncertainty.has_contradictions is False
        assert briefing.uncertainty.blind_spots == ("No access to bank records",)
        assert briefing.disclaimer == DISCLAIMER

    def test_thread_section(self):
        briefing = build_briefing(make_thread(status=InvestigationStatus.ARCHIVED), InvestigationGraph.empty())
        assert briefing.investigation.hypothesis == "The tender was steered"
        assert briefing.investigation.status == InvestigationStatus.ARCHIVED
        assert briefing.investigation.investigative_axes == ("funding", "timeline")


class TestPrimaryPath:

    def test_highest_confidence_wins(self):
        briefing = build_briefing(make_thread(), fork_merge_graph())
        primary = briefing.primary_path
        assert primary.hypothesis_label == "Direct payment"
        assert primary.confidence == 80
        assert primary.key_node_ids == ("D", "F")

    def test_tie_goes_to_longer_path(self):
        nodes = tuple(make_node(n) for n in "abcde")
        graph = InvestigationGraph(nodes=nodes, paths=(make_path("ab", 0.7), make_path("cde", 0.7)))
        assert build_briefing(make_thread(), graph).primary_path.key_node_ids == ("c", "d", "e")

    def test_tie_goes_to_most_recent_last_node(self):
        nodes = (make_node("a", date="2024-01-01"), make_node("b", date="2024-03-01"),
                 make_node("c", date="2024-01-01"), make_node("d", date="2024-02-01"))
        graph = InvestigationGraph(nodes=nodes, paths=(make_path("cd", 0.7), make_path("ab", 0.7)))
        assert build_briefing(make_thread(), graph).primary_path.key_node_ids == ("a", "b")

    def test_unlabeled_path_uses_id(self):
        graph = InvestigationGraph(nodes=(make_node("a"),), paths=(make_path("a", 0.7),))
        primary = build_briefing(make_thread(), graph).primary_path
        assert primary.hypothesis_label == primary.path_id

    def test_key_node_sampling(self):
        assert sample_key_nodes(tuple("abcd")) == tuple("abcd")
        assert sample_key_nodes(tuple("abcdefg")) == ("a", "c", "e", "g")
        assert sample_key_nodes(tuple("abcde")) == ("a", "b", "d", "e")


class TestTurningPoints:

    def test_shared_sink_is_turning_point(self):
        briefing = build_briefing(make_thread(), fork_merge_graph())
        assert [tp.node_id for tp in briefing.turning_points] == ["F"]
        turning_point = briefing.turning_points[0]
        assert turning_point.reasons == ("shared", "merge")
        assert turning_point.confidence == 90
        assert turning_point.date.startswith("2024-01-03")

    def test_ranked_and_capped(self):
        # Hub h branches to six leaves, each of which merges two parents
        nodes = [make_node("h", 0.2), make_node("g", 0.3)]
        edges = []
        for i in range(6):
            leaf = f"x{i}"
            nodes.append(make_node(leaf, 0.4 + i * 0.1))
            edges += [make_edge("h", leaf), make_edge("g", leaf)]
        graph = InvestigationGraph(nodes=tuple(nodes), edges=tuple(edges))
        points = build_briefing(make_thread(), graph).turning_points
        assert len(points) == MAX_TURNING_POINTS
        assert [tp.node_id for tp in points] == ["x5", "x4", "x3", "x2"]

    def test_chain_has_no_turning_points(self):
        nodes = tuple(make_node(n) for n in "abc")
        graph = InvestigationGraph(
            nodes=nodes,
            edges=(make_edge("a", "b"), make_edge("b", "c")),
            paths=(make_path("abc", 0.8),),
        )
        assert build_briefing(make_thread(), graph).turning_points == ()


class TestAlternativesAndUncertainty:

    def test_dead_paths_listed(self):
        graph = fork_merge_graph()
        dead = make_path("F", 0.1, PathStatus.DEAD, label="Coincidence")
        graph = graph.with_paths(graph.paths + (dead,))
        briefing = build_briefing(make_thread(), graph)
        alternatives = [(a.hypothesis_label, a.status) for a in briefing.alternative_paths]
        assert alternatives == [("Broker route", PathStatus.WEAK), ("Coincidence", PathStatus.DEAD)]
        assert briefing.uncertainty.has_contradictions is True

    def test_weak_edge_on_primary_is_contradiction(self):
        nodes = (make_node("a"), make_node("b"))
        graph = InvestigationGraph(
            nodes=nodes,
            edges=(make_edge("a", "b", RelationKind.WEAKENS, strength=0.3),),
            paths=(make_path("ab", 0.7),),
        )
        assert build_briefing(make_thread(), graph).uncertainty.has_contradictions is True

    def test_low_confidence_nodes(self):
        briefing = build_briefing(make_thread(), fork_merge_graph())
        assert briefing.uncertainty.low_confidence_node_ids == ()
        graph = InvestigationGraph(nodes=(make_node("a", 0.49), make_node("b", 0.5)))
        assert build_briefing(make_thread(), graph).uncertainty.low_confidence_node_ids == ("a",)

    def test_graph_not_modified(self):
        graph = fork_merge_graph()
        before = (graph.nodes, graph.edges, graph.paths)
        build_briefing(make_thread(), graph)
        assert (graph.nodes, graph.edges, graph.paths) == before

    def test_deterministic(self):
        graph = fork_merge_graph()
        assert build_briefing(make_thread(), graph) == build_briefing(make_thread(), graph)


class TestTextExport:

    def test_sections_present(self):
        text = briefing_to_text(build_briefing(make_thread(), fork_merge_graph()))
        assert text.startswith("INVESTIGATION: Port contract\n")
        for heading in ("PRIMARY PATH", "TURNING POINTS", "ALTERNATIVE PATHS", "UNCERTAINTY"):
            assert f"\n{heading}\n" in text
        assert "- Direct payment [active, 80%]" in text
        assert "- Broker route [weak, 60%]" in text
        assert "- Event F (2024-01-03) [90%] shared/merge" in text
        assert "- Blind spot: No access to bank records" in text
        assert text.rstrip().endswith(DISCLAIMER)

    def test_empty_sections(self):
        text = briefing_to_text(build_briefing(make_thread(), InvestigationGraph.empty()))
        assert "PRIMARY PATH\n- none" in text
        assert "- Contradictions: no" in text
