import pytest

from stepgraph.geometry import curve_control_point
from stepgraph.models import Edge
from stepgraph.offsets import (
    EdgeOffsets,
    compute_edge_offsets,
    group_edge_pairs,
    pair_key,
    self_loops,
)


def test_pair_key_is_undirected():
    assert pair_key(7, 3) == pair_key(3, 7) == (3, 7)


def test_single_edge_has_no_offset():
    offsets = compute_edge_offsets([Edge(1, (1,), (2,))])
    assert offsets == {}


def test_parallel_pair_is_symmetric_and_distinct():
    offsets = compute_edge_offsets([Edge(1, (1,), (2,)), Edge(2, (2,), (1,))], spacing=30)
    assert offsets[(1, 1, 2)] == pytest.approx(-15)
    assert offsets[(2, 2, 1)] == pytest.approx(15)


def test_three_parallel_edges_center_on_zero():
    edges = [Edge(i, (1,), (2,)) for i in range(3)]
    offsets = compute_edge_offsets(edges, spacing=30)
    assert [offsets[(i, 1, 2)] for i in range(3)] == [-30, 0, 30]
    assert sum(offsets.values()) == 0


def test_self_loops_are_excluded_from_groups():
    edges = [Edge(1, (1,), (1,)), Edge(2, (1,), (1,))]
    assert group_edge_pairs(edges) == {}
    assert compute_edge_offsets(edges) == {}
    assert [(edge.id, node) for edge, node in self_loops(edges)] == [(1, 1), (2, 1)]


def test_multi_endpoint_edges_expand_into_pairs():
    groups = group_edge_pairs([Edge(1, (1, 2), (3,)), Edge(2, (3,), (1,))])
    assert groups[(1, 3)] == [(1, 1, 3), (2, 3, 1)]
    assert groups[(2, 3)] == [(1, 2, 3)]


def test_bell_offsets(bell):
    offsets = EdgeOffsets(bell.edges)
    # edges 2, 3 and the 0 -> 2 pair of edge 8 share one node pair
    assert offsets.offset(2, 0, 2) == -30
    assert offsets.offset(3, 0, 2) == 0
    assert offsets.offset(8, 0, 2) == 30
    # 4 -> 6 is shared by edges 6, 7 (reversed) and 19
    assert offsets.offset(6, 4, 6) == -30
    assert offsets.offset(7, 6, 4) == 0
    assert offsets.offset(19, 4, 6) == 30
    # 4 -> 7 only appears in edge 19
    assert (19, 4, 7) not in offsets
    assert offsets.offset(19, 4, 7) == 0


def test_curve_offset_keeps_opposite_directions_apart():
    offsets = EdgeOffsets([Edge(1, (1,), (2,)), Edge(2, (2,), (1,))])
    # The reversed edge keeps its sign flipped so its curve bends away from the forward one
    assert offsets.curve_offset(1, 1, 2) == -15
    assert offsets.curve_offset(2, 2, 1) == -15

    forward = curve_control_point((0, 0), (100, 0), offsets.curve_offset(1, 1, 2))
    backward = curve_control_point((100, 0), (0, 0), offsets.curve_offset(2, 2, 1))
    assert forward[1] * backward[1] < 0


def test_recompute_replaces_table():
    offsets = EdgeOffsets([Edge(1, (1,), (2,)), Edge(2, (1,), (2,))])
    assert len(offsets) == 2
    offsets.recompute([Edge(1, (1,), (2,))])
    assert len(offsets) == 0
    assert offsets.groups() == {(1, 2): [(1, 1, 2)]}


def test_as_dict_is_a_copy():
    offsets = EdgeOffsets([Edge(1, (1,), (2,)), Edge(2, (1,), (2,))])
    table = offsets.as_dict()
    table.clear()
    assert len(offsets) == 2
