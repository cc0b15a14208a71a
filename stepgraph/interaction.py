"""Pointer interaction: camera transform, hit testing and click handling."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .geometry import (
    bounding_box,
    constrain,
    distance,
    distance_point_to_bezier,
    distance_point_to_segment,
    fit_zoom,
    lerp,
)
from .selection import ClearSelection, SelectStep, SetHover, edge_is_shown

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from .models import CaseStudy, Position
    from .offsets import EdgeOffsets
    from .selection import Event, SelectionState

logger = logging.getLogger(__name__)


@dataclass
class CameraConfig:
    """Smoothing and limits of the pan/zoom camera."""

    smoothing: float = 0.05
    min_zoom: float = 0.2
    max_zoom: float = 3.0
    zoom_step: float = 1.1
    # World-space padding around framed nodes, screen-space margin of the view
    fit_padding: float = 40.0
    fit_margin: float = 60.0

    def __post_init__(self) -> None:
        if not 0 < self.smoothing <= 1:
            raise ValueError(f"smoothing must be in (0, 1], got {self.smoothing}")
        if not 0 < self.min_zoom <= self.max_zoom:
            raise ValueError(f"Invalid zoom range {self.min_zoom}..{self.max_zoom}")


class Camera:
    """Pan and zoom with exponential smoothing toward a target.

    Input changes only the targets; ``update`` moves the current values a
    fraction of the way there once per frame. World coordinates map to the
    screen as ``screen = (world + pan) * zoom + viewport_center``.
    """

    def __init__(self, config: CameraConfig | None = None, width: float = 1200, height: float = 800):
        self.config = config or CameraConfig()
        self.width = width
        self.height = height
        self.pan_x = 0.0
        self.pan_y = 0.0
        self.zoom = 1.0
        self.target_pan_x = 0.0
        self.target_pan_y = 0.0
        self.target_zoom = 1.0

    def set_viewport(self, width: float, height: float) -> None:
        self.width = width
        self.height = height

    def set_pan(self, x: float, y: float) -> None:
        self.target_pan_x = x
        self.target_pan_y = y

    def set_zoom(self, zoom: float) -> None:
        self.target_zoom = constrain(zoom, self.config.min_zoom, self.config.max_zoom)

    def pan_by(self, dx: float, dy: float) -> None:
        """Pan by a screen-space drag delta."""
        self.target_pan_x += dx / self.zoom
        self.target_pan_y += dy / self.zoom

    def zoom_at(self, screen_x: float, screen_y: float, factor: float) -> None:
        """Zoom by ``factor`` keeping the world point under the cursor in place."""
        before_x, before_y = self._target_world(screen_x, screen_y)
        self.set_zoom(self.target_zoom * factor)
        after_x, after_y = self._target_world(screen_x, screen_y)
        self.target_pan_x += after_x - before_x
        self.target_pan_y += after_y - before_y

    def zoom_in(self) -> None:
        self.set_zoom(self.target_zoom * self.config.zoom_step)

    def zoom_out(self) -> None:
        self.set_zoom(self.target_zoom / self.config.zoom_step)

    def _target_world(self, screen_x: float, screen_y: float) -> tuple[float, float]:
        return (
            (screen_x - self.width / 2) / self.target_zoom - self.target_pan_x,
            (screen_y - self.height / 2) / self.target_zoom - self.target_pan_y,
        )

    def update(self) -> None:
        """One smoothing step toward the targets."""
        t = self.config.smoothing
        self.pan_x = lerp(self.pan_x, self.target_pan_x, t)
        self.pan_y = lerp(self.pan_y, self.target_pan_y, t)
        self.zoom = lerp(self.zoom, self.target_zoom, t)

    def snap(self) -> None:
        """Jump straight to the targets."""
        self.pan_x = self.target_pan_x
        self.pan_y = self.target_pan_y
        self.zoom = self.target_zoom

    def is_settled(self, tolerance: float = 1e-3) -> bool:
        return (
            abs(self.pan_x - self.target_pan_x) < tolerance
            and abs(self.pan_y - self.target_pan_y) < tolerance
            and abs(self.zoom - self.target_zoom) < tolerance
        )

    def screen_to_world(self, screen_x: float, screen_y: float) -> tuple[float, float]:
        return (
            (screen_x - self.width / 2) / self.zoom - self.pan_x,
            (screen_y - self.height / 2) / self.zoom - self.pan_y,
        )

    def world_to_screen(self, world_x: float, world_y: float) -> tuple[float, float]:
        return (
            (world_x + self.pan_x) * self.zoom + self.width / 2,
            (world_y + self.pan_y) * self.zoom + self.height / 2,
        )

    def fit(self, points: Iterable[tuple[float, float]]) -> bool:
        """Aim the camera at the bounding box of ``points``.

        Returns False (camera untouched) when there are no points.
        """
        box = bounding_box(points)
        if box is None:
            return False
        pad = self.config.fit_padding
        box = (box[0] - pad, box[1] - pad, box[2] + pad, box[3] + pad)
        self.target_pan_x = -(box[0] + box[2]) / 2
        self.target_pan_y = -(box[1] + box[3]) / 2
        self.target_zoom = fit_zoom(
            box, self.width, self.height,
            margin=self.config.fit_margin,
            min_zoom=self.config.min_zoom,
            max_zoom=self.config.max_zoom,
        )
        return True


@dataclass
class HitTestConfig:
    """Pick tolerances, in world units unless ``scale_with_zoom`` is set."""

    node_radius: float = 20.0
    edge_threshold: float = 8.0
    # Self loops are picked in an annulus around the node centre
    loop_inner: float = 15.0
    loop_outer: float = 35.0
    curve_samples: int = 20
    # Divide the tolerances by zoom so they stay constant on screen
    scale_with_zoom: bool = False

    def __post_init__(self) -> None:
        if self.curve_samples < 1:
            raise ValueError(f"curve_samples must be at least 1, got {self.curve_samples}")
        if self.loop_inner > self.loop_outer:
            raise ValueError("loop_inner must not exceed loop_outer")


@dataclass(frozen=True)
class HitResult:
    """What lies under the pointer: a node, an edge, or nothing."""

    node_id: int | None = None
    edge_id: int | None = None

    @property
    def is_empty(self) -> bool:
        return self.node_id is None and self.edge_id is None


class HitTester:
    """Finds the node or edge under a world-space point.

    Nodes are tested first and the first node in declaration order within
    the pick radius wins. Only when no node is hit are edges tested, again
    first match in declaration order. Nodes without a position are skipped.
    """

    def __init__(self, case_study: CaseStudy, config: HitTestConfig | None = None):
        self.case_study = case_study
        self.config = config or HitTestConfig()

    def hit_test(
        self,
        world_x: float,
        world_y: float,
        positions: Mapping[int, Position],
        offsets: EdgeOffsets,
        state: SelectionState,
        zoom: float = 1.0,
    ) -> HitResult:
        scale = 1.0 / zoom if self.config.scale_with_zoom and zoom > 0 else 1.0

        node_id = self.node_at(world_x, world_y, positions, scale)
        if node_id is not None:
            return HitResult(node_id=node_id)

        edge_id = self.edge_at(world_x, world_y, positions, offsets, state, scale)
        if edge_id is not None:
            return HitResult(edge_id=edge_id)
        return HitResult()

    def node_at(
        self,
        world_x: float,
        world_y: float,
        positions: Mapping[int, Position],
        scale: float = 1.0,
    ) -> int | None:
        radius = self.config.node_radius * scale
        for node in self.case_study.nodes:
            pos = positions.get(node.id)
            if pos is not None and distance(world_x, world_y, pos.x, pos.y) < radius:
                return node.id
        return None

    def edge_at(
        self,
        world_x: float,
        world_y: float,
        positions: Mapping[int, Position],
        offsets: EdgeOffsets,
        state: SelectionState,
        scale: float = 1.0,
    ) -> int | None:
        cfg = self.config
        threshold = cfg.edge_threshold * scale
        inner = cfg.loop_inner * scale
        outer = cfg.loop_outer * scale

        for edge in self.case_study.edges:
            if not edge_is_shown(state, edge):
                continue
            for from_id, to_id in edge.pairs():
                a = positions.get(from_id)
                b = positions.get(to_id)
                if a is None or b is None:
                    continue

                if from_id == to_id:
                    d = distance(world_x, world_y, a.x, a.y)
                    if inner < d < outer:
                        return edge.id
                    continue

                offset = offsets.curve_offset(edge.id, from_id, to_id)
                if offset == 0:
                    d = distance_point_to_segment(world_x, world_y, a.x, a.y, b.x, b.y)
                else:
                    d = distance_point_to_bezier(
                        world_x, world_y, a.xy, b.xy, offset, samples=cfg.curve_samples
                    )
                if d < threshold:
                    return edge.id
        return None


def hover_event(hit: HitResult) -> SetHover:
    """The hover update for whatever is under the pointer."""
    return SetHover(node_id=hit.node_id, edge_id=hit.edge_id)


def click_event(hit: HitResult, state: SelectionState, case_study: CaseStudy) -> Event | None:
    """The selection change a click causes, if any.

    Clicking an edge selects its step unless that step is already selected;
    clicking empty canvas clears the selection; clicking a node does nothing.
    """
    if hit.edge_id is not None:
        edge = case_study.edge(hit.edge_id)
        if edge is None or edge.step_id is None or edge.step_id == state.selected_step:
            return None
        return SelectStep(edge.step_id)

    if hit.is_empty and state.has_step:
        return ClearSelection()
    return None
