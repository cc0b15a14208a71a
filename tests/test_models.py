import pytest

from stepgraph.errors import RecordError
from stepgraph.models import CaseStudy, Edge, Node, Step, Tier


def test_node_tier_from_parent_links():
    assert Node(0, "Root").tier is Tier.ROOT
    assert Node(1, "Parent", parent_id=0).tier is Tier.PARENT
    assert Node(2, "Child", parent_id=1, grandparent_id=0).tier is Tier.CHILD


def test_node_with_parent_zero_is_not_a_root():
    assert Node.from_record({"node_id": 5, "node_name": "X", "node_parent_id": 0}).tier is Tier.PARENT


def test_node_from_record_rejects_missing_id():
    with pytest.raises(RecordError, match="node"):
        Node.from_record({"node_name": "Nobody"})


def test_node_from_record_rejects_non_mapping():
    with pytest.raises(RecordError):
        Node.from_record(["node_id", 1])


def test_edge_pairs_follow_declaration_order():
    edge = Edge(1, (4, 7), (6,))
    assert list(edge.pairs()) == [(4, 6), (7, 6)]
    assert edge.endpoints() == {4, 6, 7}
    assert not edge.is_self_loop


def test_edge_from_record_flags_and_scalar_endpoints():
    edge = Edge.from_record({
        "interaction_id": 3,
        "from_nodes": 2,
        "to_nodes": [2],
        "step_id": 0,
        "violated": 1,
        "bidirectional": 0,
    })
    assert edge.from_nodes == (2,)
    assert edge.is_self_loop
    assert edge.violated
    assert not edge.bidirectional
    assert not edge.unused


def test_edge_with_empty_endpoints_is_rejected():
    with pytest.raises(RecordError, match="empty endpoint"):
        Edge.from_record({"interaction_id": 3, "from_nodes": [], "to_nodes": [1]})


def test_steps_are_sorted_by_id(small):
    assert [s.id for s in small.steps] == [1, 2]


def test_lookups(small):
    assert small.node(3).name == "Lab"
    assert small.node(99) is None
    assert small.edge(12).violated
    assert [e.id for e in small.edges_for_step(1)] == [10, 11]
    assert small.edges_for_step(99) == []
    assert [n.id for n in small.nodes_of_tier(Tier.ROOT)] == [1, 2]


def test_hierarchy_queries(small):
    assert [n.id for n in small.children_of(1)] == [3]
    assert small.descendants_of(1) == {3, 4}
    graph = small.hierarchy_graph()
    assert graph.has_edge(1, 3)
    assert graph.has_edge(3, 4)


def test_interaction_graph_keeps_parallel_edges(small):
    graph = small.interaction_graph()
    assert graph.number_of_edges(1, 2) == 1
    assert graph.number_of_edges(2, 1) == 1
    assert graph.has_edge(3, 3, key=12)


def test_round_trip_is_structurally_equal(small):
    records = small.to_records()
    rebuilt = CaseStudy.from_entities(
        [Node.from_record(r) for r in records["nodes"]],
        [Edge.from_record(r) for r in records["edges"]],
        [Step.from_record(r) for r in records["steps"]],
    )
    assert rebuilt.structurally_equal(small)


def test_structural_equality_detects_changes(small):
    changed = CaseStudy.from_entities(small.nodes, small.edges[:-1], small.steps)
    assert not changed.structurally_equal(small)


def test_bundled_case_study_validates_cleanly(bell):
    assert bell.validate() == []


def test_validate_reports_dangling_references():
    study = CaseStudy.from_entities(
        [Node(1, "A"), Node(2, "B", parent_id=9), Node(3, "C", parent_id=1, grandparent_id=7)],
        [Edge(1, (1,), (5,), step_id=4)],
        [Step(1)],
    )
    issues = study.validate()
    assert any("missing nodes" in issue and "5" in issue for issue in issues)
    assert any("missing steps" in issue for issue in issues)
    assert any("missing parent 9" in issue for issue in issues)
    assert any("grandparent 7" in issue for issue in issues)


def test_steps_by_phase(small):
    groups = small.steps_by_phase(["plan", "build"])
    assert [s.id for s in groups["plan"]] == [1]
    assert [s.id for s in groups["build"]] == [2]
    assert "other" not in groups


def test_summary(bell):
    summary = bell.summary()
    assert summary["nodes"] == 25
    assert summary["edges"] == 11
    assert summary["steps"] == 4
    assert summary["roots"] == 4
    assert summary["violated"] == 1
