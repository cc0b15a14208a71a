"""The visualization controller: one owner for data, layout, selection and camera."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from .interaction import Camera, HitResult, HitTester, click_event, hover_event
from .layout import ForceSimulation, compute_hierarchical_layout
from .loader import load_bundled_case_study, load_case_study
from .offsets import EdgeOffsets, OffsetConfig
from .selection import (
    RelevanceIndex,
    SelectionState,
    SelectStep,
    SetHover,
    ToggleEdge,
    reduce,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from pathlib import Path

    from .interaction import CameraConfig, HitTestConfig
    from .layout import ForceConfig, HierarchicalConfig
    from .loader import RetryPolicy
    from .models import CaseStudy, Edge, Node, Position, Step, Tier
    from .selection import EdgeAppearance, Event, NodeAppearance

logger = logging.getLogger(__name__)

STRATEGIES = ("hierarchical", "physics")


class FrameStatus(Enum):
    """What a render loop should draw this frame."""

    LOADING = "loading"
    NO_DATA = "no_data"
    READY = "ready"


@dataclass
class VisualizationState:
    """Everything a frame is drawn from."""

    case_study: CaseStudy | None = None
    positions: dict[int, Position] = field(default_factory=dict)
    offsets: EdgeOffsets = field(default_factory=EdgeOffsets)
    selection: SelectionState = field(default_factory=SelectionState)
    camera: Camera = field(default_factory=Camera)
    ready: bool = False
    width: float = 1200
    height: float = 800


class Visualization:
    """Owns a case study and the state of its interactive diagram.

    Layout runs once on ``initialize`` (hierarchical) or continuously
    through ``frame`` (physics). Selection only changes through ``dispatch``
    so pointer input, step lists and tests all share one path.

    Example:
        vis = Visualization(load_bundled_case_study())
        vis.select_step(6)
        vis.pointer_move(640, 400)
        print(vis.tooltip())
    """

    def __init__(
        self,
        case_study: CaseStudy | None = None,
        strategy: str = "hierarchical",
        hierarchical_config: HierarchicalConfig | None = None,
        force_config: ForceConfig | None = None,
        offset_config: OffsetConfig | None = None,
        hit_config: HitTestConfig | None = None,
        camera_config: CameraConfig | None = None,
        fixed_tiers: Iterable[Tier] = (),
        width: float = 1200,
        height: float = 800,
    ):
        if strategy not in STRATEGIES:
            raise ValueError(f"Unknown layout strategy {strategy!r}, expected one of {STRATEGIES}")
        self.strategy = strategy
        self.hierarchical_config = hierarchical_config
        self.force_config = force_config
        self.offset_config = offset_config or OffsetConfig()
        self.hit_config = hit_config
        self.fixed_tiers = tuple(fixed_tiers)

        self._state = VisualizationState(
            case_study=case_study,
            camera=Camera(camera_config, width, height),
            width=width,
            height=height,
        )
        self._simulation: ForceSimulation | None = None
        self._relevance: RelevanceIndex | None = None
        self._hit_tester: HitTester | None = None

        if case_study is not None:
            self.initialize()

    # Data

    def load(
        self,
        source: str | Path | None = None,
        retry: RetryPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
        fallback: bool = True,
    ) -> CaseStudy:
        """Load a case study directory (the bundled one when None) and initialize."""
        self._state.ready = False
        if source is None:
            study = load_bundled_case_study()
        else:
            study = load_case_study(source, retry=retry, sleep=sleep, fallback=fallback)
        self._state.case_study = study
        self.initialize()
        return study

    def initialize(self) -> None:
        """Lay out the loaded case study and build the per-study indexes."""
        study = self._state.case_study
        if study is None:
            raise ValueError("No case study to initialize")

        self._relevance = RelevanceIndex(study)
        self._hit_tester = HitTester(study, self.hit_config)
        self._state.offsets = EdgeOffsets(study.edges, self.offset_config.spacing)
        self._state.selection = SelectionState()
        self.compute_hierarchical_layout()

        self._state.ready = True
        logger.info(
            "Initialized %r: %d nodes, %d edges, %d steps (%s layout)",
            study.name, len(study.nodes), len(study.edges), len(study.steps), self.strategy,
        )

    @property
    def is_ready(self) -> bool:
        return self._state.ready

    # Accessors

    @property
    def state(self) -> VisualizationState:
        return self._state

    @property
    def case_study(self) -> CaseStudy | None:
        return self._state.case_study

    @property
    def nodes(self) -> list[Node]:
        return self.case_study.nodes if self.case_study is not None else []

    @property
    def edges(self) -> list[Edge]:
        return self.case_study.edges if self.case_study is not None else []

    @property
    def steps(self) -> list[Step]:
        return self.case_study.steps if self.case_study is not None else []

    @property
    def positions(self) -> dict[int, Position]:
        return self._state.positions

    @property
    def offsets(self) -> EdgeOffsets:
        return self._state.offsets

    @property
    def selection(self) -> SelectionState:
        return self._state.selection

    @property
    def camera(self) -> Camera:
        return self._state.camera

    @property
    def relevance(self) -> RelevanceIndex:
        if self._relevance is None:
            raise RuntimeError("Visualization is not initialized")
        return self._relevance

    # Selection

    def dispatch(self, event: Event) -> SelectionState:
        """Apply a selection event; a newly selected step is framed by the camera."""
        previous = self._state.selection
        self._state.selection = reduce(previous, event)
        step = self._state.selection.selected_step
        if step != previous.selected_step:
            logger.debug("Selected step %s", step)
            if step is not None:
                self.pan_to_step(step)
        return self._state.selection

    def select_step(self, step_id: int | None) -> SelectionState:
        return self.dispatch(SelectStep(step_id))

    def toggle_edge_checkbox(self, edge_id: int) -> SelectionState:
        return self.dispatch(ToggleEdge(edge_id))

    def set_hover(self, node_id: int | None = None, edge_id: int | None = None) -> SelectionState:
        return self.dispatch(SetHover(node_id, edge_id))

    # Camera

    def set_pan(self, x: float, y: float) -> None:
        self.camera.set_pan(x, y)

    def set_zoom(self, zoom: float) -> None:
        self.camera.set_zoom(zoom)

    def set_viewport(self, width: float, height: float) -> None:
        self._state.width = width
        self._state.height = height
        self.camera.set_viewport(width, height)

    def zoom_at(self, screen_x: float, screen_y: float, factor: float) -> None:
        self.camera.zoom_at(screen_x, screen_y, factor)

    def pan_to_step(self, step_id: int) -> bool:
        """Aim the camera at the nodes the step's interactions touch."""
        if self._relevance is None:
            return False
        points = [
            self.positions[node_id].xy
            for node_id in sorted(self.relevance.active_nodes(step_id))
            if node_id in self.positions
        ]
        if not self.camera.fit(points):
            logger.debug("Step %s has no placed nodes to frame", step_id)
            return False
        return True

    # Layout

    def compute_hierarchical_layout(self) -> dict[int, Position]:
        """Recompute positions from the hierarchy, restarting any simulation."""
        study = self._state.case_study
        if study is None:
            return {}
        positions = compute_hierarchical_layout(study, self.hierarchical_config)
        self._simulation = None
        if self.strategy == "physics":
            self._simulation = ForceSimulation(
                study, self.force_config, positions=positions, fixed_tiers=self.fixed_tiers
            )
            positions = self._simulation.positions
        self._state.positions = positions
        return positions

    def apply_forces_tick(self) -> None:
        """Advance the force simulation one step, starting it from the current positions."""
        study = self._state.case_study
        if study is None:
            return
        if self._simulation is None:
            self._simulation = ForceSimulation(
                study, self.force_config, positions=self.positions, fixed_tiers=self.fixed_tiers
            )
            self._state.positions = self._simulation.positions
        self._simulation.tick()

    @property
    def simulation(self) -> ForceSimulation | None:
        return self._simulation

    # Pointer input

    def hit_test(self, screen_x: float, screen_y: float) -> HitResult:
        if not self.is_ready or self._hit_tester is None:
            return HitResult()
        world_x, world_y = self.camera.screen_to_world(screen_x, screen_y)
        return self._hit_tester.hit_test(
            world_x, world_y, self.positions, self.offsets, self.selection, zoom=self.camera.zoom
        )

    def pointer_move(self, screen_x: float, screen_y: float) -> HitResult:
        hit = self.hit_test(screen_x, screen_y)
        self.dispatch(hover_event(hit))
        return hit

    def pointer_click(self, screen_x: float, screen_y: float) -> HitResult:
        hit = self.hit_test(screen_x, screen_y)
        if self.case_study is not None:
            event = click_event(hit, self.selection, self.case_study)
            if event is not None:
                self.dispatch(event)
        return hit

    def pointer_drag(self, dx: float, dy: float) -> None:
        self.camera.pan_by(dx, dy)

    def drag_node(self, node_id: int, screen_x: float, screen_y: float) -> bool:
        """Move a node under the pointer, pinning it until ``release_node``.

        Returns False when the node has no position.
        """
        pos = self.positions.get(node_id)
        if pos is None:
            return False
        world_x, world_y = self.camera.screen_to_world(screen_x, screen_y)
        if self._simulation is not None:
            self._simulation.drag(node_id, world_x, world_y)
        else:
            pos.x, pos.y = world_x, world_y
            pos.vx = pos.vy = 0.0
            pos.fixed = True
        return True

    def release_node(self, node_id: int) -> None:
        """Unpin a dragged node; nodes of a fixed tier stay pinned."""
        node = self.case_study.node(node_id) if self.case_study is not None else None
        if node is not None and node.tier in self.fixed_tiers:
            return
        if self._simulation is not None:
            self._simulation.release(node_id)
            return
        pos = self.positions.get(node_id)
        if pos is not None:
            pos.fixed = False

    # Frame

    def frame(self) -> FrameStatus:
        """Advance one animation frame and report what should be drawn."""
        if not self.is_ready:
            return FrameStatus.LOADING
        if not self.nodes:
            return FrameStatus.NO_DATA

        self.camera.update()
        if self.strategy == "physics":
            self.apply_forces_tick()
        return FrameStatus.READY

    def node_appearance(self, node_id: int) -> NodeAppearance:
        return self.relevance.node_appearance(self.selection, node_id)

    def edge_appearance(self, edge_id: int) -> EdgeAppearance:
        edge = self.case_study.edge(edge_id) if self.case_study is not None else None
        if edge is None:
            raise KeyError(edge_id)
        return self.relevance.edge_appearance(self.selection, edge)

    def tooltip(self) -> str | None:
        """Text for whatever the pointer is over, or None."""
        study = self.case_study
        if study is None:
            return None
        selection = self.selection
        if selection.hovered_node is not None:
            node = study.node(selection.hovered_node)
            if node is None:
                return None
            if node.description and node.description.strip():
                return f"{node.name}\n{node.description}"
            return node.name
        if selection.hovered_edge is not None:
            edge = study.edge(selection.hovered_edge)
            return edge.description if edge is not None else None
        return None
