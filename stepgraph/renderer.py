"""SVG snapshot renderer using drawsvg."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

import drawsvg as draw

from .geometry import (
    broken_curve_segments,
    broken_loop_segments,
    broken_segments,
    curve_control_point,
    segment_circle_intersections,
    self_loop_geometry,
)
from .models import Tier
from .offsets import OffsetConfig
from .selection import EdgeRelevance, NodeRelevance

if TYPE_CHECKING:
    from .geometry import Point
    from .models import Edge, Node
    from .selection import EdgeAppearance
    from .visualization import Visualization


class Theme:
    """Color theme for snapshots."""

    def __init__(
        self,
        background: str = "#0f172a",
        text_color: str = "#e2e8f0",
        root_color: str = "#f59e0b",
        parent_color: str = "#38bdf8",
        child_color: str = "#a78bfa",
        highlighted_child_color: str = "#f472b6",
        edge_color: str = "#94a3b8",
        active_color: str = "#facc15",
        violated_color: str = "#ef4444",
        hover_color: str = "#ffffff",
        font_family: str = "Inter, -apple-system, BlinkMacSystemFont, sans-serif",
    ):
        self.background = background
        self.text_color = text_color
        self.root_color = root_color
        self.parent_color = parent_color
        self.child_color = child_color
        self.highlighted_child_color = highlighted_child_color
        self.edge_color = edge_color
        self.active_color = active_color
        self.violated_color = violated_color
        self.hover_color = hover_color
        self.font_family = font_family

    def tier_color(self, tier: Tier) -> str:
        if tier is Tier.ROOT:
            return self.root_color
        if tier is Tier.PARENT:
            return self.parent_color
        return self.child_color


DARK_THEME = Theme()

LIGHT_THEME = Theme(
    background="#ffffff",
    text_color="#1e293b",
    root_color="#d97706",
    parent_color="#0284c7",
    child_color="#7c3aed",
    highlighted_child_color="#db2777",
    edge_color="#64748b",
    active_color="#ca8a04",
    violated_color="#dc2626",
    hover_color="#0f172a",
)


def truncate_text(text: str, max_chars: int) -> str:
    """Truncate text to max characters with ellipsis."""
    if len(text) <= max_chars:
        return text
    return text[: max_chars - 1] + "…"


class SnapshotRenderer:
    """Renders the current frame of a visualization to SVG.

    The camera's current pan and zoom are applied as one group transform, so
    everything inside is drawn in world coordinates.
    """

    node_size = 12.0
    font_size = 10
    max_label_chars = 28
    arrow_size = 8.0

    def __init__(
        self,
        theme: Theme | None = None,
        offset_config: OffsetConfig | None = None,
    ):
        self.theme = theme or DARK_THEME
        self.offset_config = offset_config or OffsetConfig()

    def render(self, visualization: Visualization) -> draw.Drawing:
        """Render a visualization to an SVG Drawing object."""
        width = visualization.state.width
        height = visualization.state.height

        d = draw.Drawing(width, height)
        d.append(draw.Rectangle(0, 0, width, height, fill=self.theme.background))

        if not visualization.is_ready:
            self._placeholder(d, width, height, "Loading data...")
            return d
        if not visualization.nodes:
            self._placeholder(d, width, height, "No data")
            return d

        camera = visualization.camera
        world = draw.Group(
            transform=(
                f"translate({width / 2},{height / 2}) "
                f"scale({camera.zoom}) "
                f"translate({camera.pan_x},{camera.pan_y})"
            )
        )

        # Edges first so nodes sit on top
        for edge in visualization.edges:
            self._render_edge(world, visualization, edge)
        for node in visualization.nodes:
            self._render_node(world, visualization, node)

        d.append(world)
        return d

    def _placeholder(self, d: draw.Drawing, width: float, height: float, message: str) -> None:
        d.append(
            draw.Text(
                message,
                16,
                width / 2, height / 2,
                fill=self.theme.text_color,
                font_family=self.theme.font_family,
                text_anchor="middle",
                dominant_baseline="middle",
            )
        )

    def _render_node(self, d: draw.Group, visualization: Visualization, node: Node) -> None:
        pos = visualization.positions.get(node.id)
        if pos is None:
            return

        appearance = visualization.node_appearance(node.id)
        if appearance.hovered:
            color = self.theme.hover_color
        elif appearance.relevance is NodeRelevance.HIGHLIGHTED_CHILD:
            color = self.theme.highlighted_child_color
        else:
            color = self.theme.tier_color(appearance.tier)
        opacity = appearance.alpha / 255

        half = self.node_size / 2
        d.append(
            draw.Rectangle(
                pos.x - half, pos.y - half, self.node_size, self.node_size,
                fill=color,
                fill_opacity=opacity,
            )
        )
        d.append(
            draw.Text(
                truncate_text(node.name, self.max_label_chars),
                self.font_size,
                pos.x + half + 4, pos.y,
                fill=self.theme.text_color,
                fill_opacity=opacity,
                font_family=self.theme.font_family,
                dominant_baseline="middle",
            )
        )

    def _edge_color(self, appearance: EdgeAppearance) -> str:
        if appearance.hovered:
            return self.theme.hover_color
        if appearance.broken:
            return self.theme.violated_color
        if appearance.relevance is EdgeRelevance.ACTIVE:
            return self.theme.active_color
        return self.theme.edge_color

    def _render_edge(self, d: draw.Group, visualization: Visualization, edge: Edge) -> None:
        appearance = visualization.edge_appearance(edge.id)
        if not appearance.visible:
            return

        style = {
            "stroke": self._edge_color(appearance),
            "stroke_width": appearance.stroke_width,
            "stroke_opacity": appearance.alpha / 255,
            "fill": "none",
        }
        positions = visualization.positions
        cfg = self.offset_config

        for from_id, to_id in edge.pairs():
            a = positions.get(from_id)
            b = positions.get(to_id)
            if a is None or b is None:
                continue

            if from_id == to_id:
                if appearance.broken:
                    self._draw_dashes(d, broken_loop_segments(
                        a.xy, cfg.loop_radius, cfg.node_radius, cfg.loop_start_angle
                    ), style)
                    continue
                anchor, c1, c2 = self_loop_geometry(
                    a.xy, cfg.loop_radius, cfg.node_radius, cfg.loop_start_angle
                )
                path = draw.Path(**style)
                path.M(*anchor).C(*c1, *c2, *anchor)
                d.append(path)
                continue

            offset = visualization.offsets.curve_offset(edge.id, from_id, to_id)
            control = curve_control_point(a.xy, b.xy, offset) if offset else None

            if control is None:
                if appearance.broken:
                    self._draw_dashes(d, broken_segments(a.xy, b.xy), style)
                else:
                    d.append(draw.Line(a.x, a.y, b.x, b.y, **style))
                tail = a.xy
            else:
                if appearance.broken:
                    self._draw_dashes(d, broken_curve_segments(a.xy, b.xy, offset), style)
                else:
                    path = draw.Path(**style)
                    path.M(a.x, a.y).C(*control, *control, b.x, b.y)
                    d.append(path)
                tail = control

            if appearance.arrow:
                tip = self._arrow_tip(tail, b.xy)
                angle = math.atan2(b.y - tail[1], b.x - tail[0])
                self._draw_arrowhead(d, tip[0], tip[1], angle, style["stroke"], style["stroke_opacity"])

    def _arrow_tip(self, tail: Point, head: Point) -> Point:
        """Where the edge meets the target square, approximated by its inscribed circle."""
        hits = segment_circle_intersections(tail, head, head, self.node_size / 2)
        return hits[0] if hits else head

    def _draw_dashes(self, d: draw.Group, dashes: list[tuple[Point, Point]], style: dict) -> None:
        for (x1, y1), (x2, y2) in dashes:
            d.append(draw.Line(x1, y1, x2, y2, **style))

    def _draw_arrowhead(
        self,
        d: draw.Group,
        x: float,
        y: float,
        angle: float,
        color: str,
        opacity: float,
    ) -> None:
        """Draw an arrowhead at the given position and angle."""
        size = self.arrow_size
        p1_x = x - size * math.cos(angle - math.pi / 6)
        p1_y = y - size * math.sin(angle - math.pi / 6)
        p2_x = x - size * math.cos(angle + math.pi / 6)
        p2_y = y - size * math.sin(angle + math.pi / 6)

        d.append(
            draw.Lines(
                x, y,
                p1_x, p1_y,
                p2_x, p2_y,
                x, y,
                fill=color,
                fill_opacity=opacity,
                stroke="none",
            )
        )


def render_to_svg(
    visualization: Visualization,
    filename: str | None = None,
    theme: Theme | None = None,
) -> str:
    """Render a visualization to SVG.

    Args:
        visualization: The visualization to render
        filename: Optional filename to save to (without extension)
        theme: Color theme, dark by default

    Returns:
        SVG content as string
    """
    renderer = SnapshotRenderer(theme, visualization.offset_config)
    drawing = renderer.render(visualization)

    if filename:
        drawing.save_svg(f"{filename}.svg")

    return drawing.as_svg()
