import pytest

from stepgraph.interaction import (
    Camera,
    CameraConfig,
    HitResult,
    HitTestConfig,
    HitTester,
    click_event,
    hover_event,
)
from stepgraph.offsets import EdgeOffsets
from stepgraph.selection import ClearSelection, SelectionState, SelectStep, SetHover


@pytest.fixture()
def tester(small):
    return HitTester(small)


@pytest.fixture()
def offsets(small):
    return EdgeOffsets(small.edges)


def test_node_hit_wins_over_edges(tester, small_positions, offsets):
    hit = tester.hit_test(5, 0, small_positions, offsets, SelectionState())
    assert hit == HitResult(node_id=1)


def test_first_declared_node_wins_on_overlap(small, small_positions, offsets):
    small_positions[2].x = 10
    hit = HitTester(small).hit_test(5, 0, small_positions, offsets, SelectionState())
    assert hit.node_id == 1


def test_parallel_edges_are_picked_on_their_curves(tester, small_positions, offsets):
    # 1 -> 2 and 2 -> 1 bend 15 either side of the x axis; the apex is at 0.75 * 15
    above = tester.hit_test(100, -11.25, small_positions, offsets, SelectionState())
    below = tester.hit_test(100, 11.25, small_positions, offsets, SelectionState())
    assert {above.edge_id, below.edge_id} == {10, 11}
    assert above.edge_id != below.edge_id


def test_straight_edge_within_threshold(tester, small_positions, offsets):
    # 4 -> 5 is a lone edge along y = 300
    assert tester.hit_test(0, 305, small_positions, offsets, SelectionState()).edge_id == 13
    assert tester.hit_test(0, 320, small_positions, offsets, SelectionState()).is_empty


def test_self_loop_annulus(tester, small_positions, offsets):
    # node 3 at (0, -200) has a self loop
    assert tester.hit_test(25, -200, small_positions, offsets, SelectionState()).edge_id == 12
    assert tester.hit_test(0, -200 - 40, small_positions, offsets, SelectionState()).is_empty
    # inside the annulus but within the node radius the node wins
    assert tester.hit_test(0, -190, small_positions, offsets, SelectionState()).node_id == 3


def test_filtered_edges_are_not_hit(tester, small_positions, offsets):
    state = SelectionState(selected_step=2, selected_edges=frozenset({12}))
    assert tester.hit_test(0, 305, small_positions, offsets, state).is_empty
    state = SelectionState(selected_step=1, selected_edges=frozenset({10}))
    assert tester.hit_test(0, 305, small_positions, offsets, state).edge_id == 13


def test_missing_positions_are_skipped(tester, small_positions, offsets):
    del small_positions[5]
    assert tester.hit_test(0, 305, small_positions, offsets, SelectionState()).is_empty


def test_zoom_scaled_tolerance(small, small_positions, offsets):
    scaled = HitTester(small, HitTestConfig(scale_with_zoom=True))
    assert scaled.hit_test(0, 315, small_positions, offsets, SelectionState(), zoom=0.5).edge_id == 13
    assert scaled.hit_test(0, 305, small_positions, offsets, SelectionState(), zoom=2.0).is_empty


def test_hit_test_config_validation():
    with pytest.raises(ValueError):
        HitTestConfig(curve_samples=0)
    with pytest.raises(ValueError):
        HitTestConfig(loop_inner=40, loop_outer=30)


def test_hover_event():
    assert hover_event(HitResult(node_id=3)) == SetHover(node_id=3)
    assert hover_event(HitResult()) == SetHover()


def test_click_edge_selects_its_step(small):
    event = click_event(HitResult(edge_id=12), SelectionState(), small)
    assert event == SelectStep(2)
    assert click_event(HitResult(edge_id=12), SelectionState(selected_step=2), small) is None


def test_click_empty_canvas_clears_selection(small):
    assert click_event(HitResult(), SelectionState(selected_step=1), small) == ClearSelection()
    assert click_event(HitResult(), SelectionState(), small) is None


def test_click_node_does_nothing(small):
    assert click_event(HitResult(node_id=1), SelectionState(selected_step=1), small) is None


def test_camera_round_trip():
    camera = Camera(width=800, height=600)
    camera.set_pan(30, -20)
    camera.set_zoom(2)
    camera.snap()
    world = camera.screen_to_world(500, 200)
    assert camera.world_to_screen(*world) == pytest.approx((500, 200))
    assert camera.screen_to_world(400, 300) == pytest.approx((-30, 20))


def test_camera_zoom_is_clamped():
    camera = Camera()
    camera.set_zoom(10)
    assert camera.target_zoom == 3.0
    camera.set_zoom(0.01)
    assert camera.target_zoom == 0.2


def test_camera_smoothing_moves_toward_target():
    camera = Camera(CameraConfig(smoothing=0.5))
    camera.set_pan(100, 0)
    camera.update()
    assert camera.pan_x == pytest.approx(50)
    camera.update()
    assert camera.pan_x == pytest.approx(75)
    assert not camera.is_settled()
    camera.snap()
    assert camera.is_settled()


def test_pan_by_divides_by_zoom():
    camera = Camera()
    camera.set_zoom(2)
    camera.snap()
    camera.pan_by(10, -20)
    assert (camera.target_pan_x, camera.target_pan_y) == pytest.approx((5, -10))


def test_zoom_at_keeps_focus_point_fixed():
    camera = Camera(width=800, height=600)
    before = camera.screen_to_world(600, 100)
    camera.zoom_at(600, 100, 1.5)
    camera.snap()
    assert camera.zoom == pytest.approx(1.5)
    assert camera.screen_to_world(600, 100) == pytest.approx(before)


def test_zoom_in_and_out_use_zoom_step():
    camera = Camera()
    camera.zoom_in()
    assert camera.target_zoom == pytest.approx(1.1)
    camera.zoom_out()
    assert camera.target_zoom == pytest.approx(1.0)


def test_fit_centres_box():
    camera = Camera(width=1200, height=800)
    assert camera.fit([(100, 100), (300, 200)])
    assert camera.target_pan_x == pytest.approx(-200)
    assert camera.target_pan_y == pytest.approx(-150)
    # padded box is 280 x 180; (1200 - 60) / 280 > 3, clamped
    assert camera.target_zoom == pytest.approx(3.0)
    assert not camera.fit([])


def test_camera_config_validation():
    with pytest.raises(ValueError):
        CameraConfig(smoothing=0)
    with pytest.raises(ValueError):
        CameraConfig(min_zoom=2, max_zoom=1)
