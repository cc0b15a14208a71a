import drawsvg as draw

from stepgraph.renderer import (
    DARK_THEME,
    LIGHT_THEME,
    SnapshotRenderer,
    render_to_svg,
    truncate_text,
)
from stepgraph.visualization import Visualization


def test_render_returns_drawing(bell):
    vis = Visualization(bell)
    drawing = SnapshotRenderer().render(vis)
    assert isinstance(drawing, draw.Drawing)


def test_svg_contains_node_labels(bell):
    svg = render_to_svg(Visualization(bell))
    assert "<svg" in svg
    assert "Solid-State Research Group" in svg
    assert DARK_THEME.background in svg


def test_loading_placeholder():
    svg = render_to_svg(Visualization())
    assert "Loading data..." in svg


def test_no_data_placeholder(tmp_path, no_sleep):
    vis = Visualization()
    vis.load(tmp_path, sleep=no_sleep, fallback=False)
    assert "No data" in render_to_svg(vis)


def test_violated_edge_is_drawn_broken(bell):
    vis = Visualization(bell)
    vis.select_step(6)
    svg = render_to_svg(vis, theme=LIGHT_THEME)
    assert LIGHT_THEME.violated_color in svg
    assert LIGHT_THEME.background in svg


def test_active_edges_use_active_color(small):
    vis = Visualization(small)
    vis.select_step(1)
    assert DARK_THEME.active_color in render_to_svg(vis)


def test_render_to_svg_writes_file(tmp_path, bell):
    target = tmp_path / "snapshot"
    svg = render_to_svg(Visualization(bell), filename=str(target))
    assert (tmp_path / "snapshot.svg").read_text(encoding="utf-8") == svg


def test_truncate_text():
    assert truncate_text("short", 10) == "short"
    assert truncate_text("a very long label", 8) == "a very …"
