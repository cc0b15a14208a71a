"""Layout algorithms for stepgraph case studies.

Two interchangeable strategies assign node positions:

* ``compute_hierarchical_layout`` places the organisation forest on
  concentric rings in one deterministic pass.
* ``ForceSimulation`` runs a damped spring/repulsion simulation that is
  stepped once per frame.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, fields
from typing import TYPE_CHECKING, Any, Literal

from .geometry import distance
from .models import Position, Tier

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from .models import CaseStudy, Node

logger = logging.getLogger(__name__)

ContainerShape = Literal["ellipse", "rectangle"]


@dataclass
class HierarchicalConfig:
    """Radii and angles of the hierarchical layout."""

    root_radius: float = 300.0
    parent_radius: float = 150.0
    child_radius: float = 80.0
    # Fallback rings are multiples of root_radius
    parent_ring_factor: float = 1.5
    orphan_ring_factor: float = 2.0
    parent_angle_offset: float = math.pi / 4
    # Pseudo-3D: spread of z around the anchor; 0 keeps the layout planar
    depth_jitter: float = 0.0
    seed: int | None = None

    def __post_init__(self) -> None:
        for name in ("root_radius", "parent_radius", "child_radius", "depth_jitter"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative, got {getattr(self, name)}")


def _ring_position(
    index: int,
    count: int,
    radius: float,
    cx: float = 0.0,
    cy: float = 0.0,
    angle_offset: float = 0.0,
) -> tuple[float, float]:
    angle = index / max(count, 1) * math.tau + angle_offset
    return cx + math.cos(angle) * radius, cy + math.sin(angle) * radius


def compute_hierarchical_layout(
    case_study: CaseStudy,
    config: HierarchicalConfig | None = None,
) -> dict[int, Position]:
    """Place every node of a case study on rings derived from its hierarchy.

    Roots go on a circle around the origin, parents around their root, and
    children in groups around their parent. Nodes whose anchor has no
    position fall back to rings around the origin, so every node ends up
    with a position. Ordering follows declaration order throughout.

    Returns:
        Mapping of node id to a fresh Position
    """
    if config is None:
        config = HierarchicalConfig()

    positions: dict[int, Position] = {}
    if not case_study.nodes:
        logger.warning("No nodes to lay out")
        return positions

    rng = random.Random(config.seed)

    def depth(anchor: Position | None) -> float:
        base = anchor.z if anchor is not None else 0.0
        if config.depth_jitter <= 0:
            return base
        return base + (rng.random() - 0.5) * config.depth_jitter

    roots = case_study.nodes_of_tier(Tier.ROOT)
    parents = case_study.nodes_of_tier(Tier.PARENT)
    children = case_study.nodes_of_tier(Tier.CHILD)
    logger.info(
        "Hierarchical layout: %d roots, %d parents, %d children",
        len(roots), len(parents), len(children),
    )

    for i, node in enumerate(roots):
        x, y = _ring_position(i, len(roots), config.root_radius)
        positions[node.id] = Position(x, y)

    siblings: dict[int | None, list[Node]] = {}
    for node in parents:
        siblings.setdefault(node.parent_id, []).append(node)

    orphan_parents: list[Node] = []
    for parent_id, group in siblings.items():
        anchor = positions.get(parent_id) if parent_id is not None else None
        if anchor is None:
            orphan_parents.extend(group)
            continue
        for i, node in enumerate(group):
            x, y = _ring_position(i, len(group), config.parent_radius, anchor.x, anchor.y)
            positions[node.id] = Position(x, y, depth(anchor))

    ring = config.root_radius * config.parent_ring_factor
    for i, node in enumerate(orphan_parents):
        x, y = _ring_position(i, len(orphan_parents), ring, angle_offset=config.parent_angle_offset)
        positions[node.id] = Position(x, y, depth(None))

    groups: dict[int | None, list[Node]] = {}
    for node in children:
        groups.setdefault(node.parent_id, []).append(node)

    orphans: list[Node] = []
    for parent_id, group in groups.items():
        anchor = positions.get(parent_id) if parent_id is not None else None
        if anchor is None:
            orphans.extend(group)
            continue
        for i, node in enumerate(group):
            x, y = _ring_position(i, len(group), config.child_radius, anchor.x, anchor.y)
            positions[node.id] = Position(x, y, depth(anchor))

    if orphans:
        logger.warning("%d child node(s) have no placed parent; using the outer ring", len(orphans))
        ring = config.root_radius * config.orphan_ring_factor
        for i, node in enumerate(orphans):
            x, y = _ring_position(i, len(orphans), ring)
            positions[node.id] = Position(x, y, depth(None))

    logger.info("Generated positions for %d nodes", len(positions))
    return positions


@dataclass
class ForceConfig:
    """Force constants of the simulation.

    The integrator is explicit Euler; ``damping`` below 1 and the velocity
    cap are what keep it from diverging.
    """

    repel_force: float = 2000.0
    repel_dist: float = 200.0
    spring_force: float = 0.01
    spring_length: float = 120.0
    center_force: float = 0.001
    contain_force: float = 0.05
    damping: float = 0.9
    min_velocity: float = 0.01
    max_velocity: float = 10.0
    force_center: bool = False
    container: ContainerShape | None = None
    container_margin: float = 30.0
    # Canvas the centering and containment forces refer to
    width: float = 1200.0
    height: float = 800.0
    center_x: float = 0.0
    center_y: float = 0.0

    def __post_init__(self) -> None:
        if not 0 <= self.damping < 1:
            raise ValueError(f"damping must be in [0, 1), got {self.damping}")
        if self.max_velocity <= 0:
            raise ValueError(f"max_velocity must be positive, got {self.max_velocity}")
        if self.min_velocity < 0:
            raise ValueError(f"min_velocity must not be negative, got {self.min_velocity}")
        if self.container not in (None, "ellipse", "rectangle"):
            raise ValueError(
                f"Invalid container '{self.container}', must be 'ellipse', 'rectangle' or None"
            )

    @classmethod
    def from_settings(cls, settings: Mapping[str, Any], **overrides: Any) -> ForceConfig:
        """Build a config from a ``settings.json`` style mapping.

        camelCase keys are mapped onto fields; unknown keys are ignored.
        """
        keys = {
            "repelForce": "repel_force",
            "repelDist": "repel_dist",
            "springForce": "spring_force",
            "springLength": "spring_length",
            "centerForce": "center_force",
            "containForce": "contain_force",
            "minVelocity": "min_velocity",
            "maxVelocity": "max_velocity",
            "damping": "damping",
            "container": "container",
            "width": "width",
            "height": "height",
        }
        values: dict[str, Any] = {}
        for key, name in keys.items():
            if settings.get(key) is not None:
                values[name] = settings[key]

        gui = settings.get("guiSettings") or {}
        if "forceCenter" in gui:
            values["force_center"] = bool(gui["forceCenter"])

        if values.get("container") not in (None, "ellipse", "rectangle"):
            logger.warning("Unknown container '%s' in settings; ignoring", values["container"])
            values.pop("container")

        known = {f.name for f in fields(cls)}
        values.update({k: v for k, v in overrides.items() if k in known})
        return cls(**values)


class ForceSimulation:
    """Spring and repulsion simulation over the nodes of a case study.

    Positions are owned here and mutated by ``tick``. A fixed node is never
    moved by forces but still pushes and pulls the nodes around it; hidden
    nodes take no part at all.
    """

    def __init__(
        self,
        case_study: CaseStudy,
        config: ForceConfig | None = None,
        positions: Mapping[int, Position] | None = None,
        visible: Iterable[int] | None = None,
        fixed_tiers: Iterable[Tier] = (),
    ):
        self.case_study = case_study
        self.config = config or ForceConfig()

        if positions is None:
            positions = compute_hierarchical_layout(case_study)
        self.positions: dict[int, Position] = {
            node_id: Position(p.x, p.y, p.z, p.vx, p.vy, p.fixed)
            for node_id, p in positions.items()
        }

        tiers = set(fixed_tiers)
        for node in case_study.nodes:
            if node.tier in tiers and node.id in self.positions:
                self.positions[node.id].fixed = True

        self._visible: set[int] | None = None
        if visible is not None:
            self.set_visible(visible)

        self._pairs = [
            (from_id, to_id)
            for edge in case_study.edges
            for from_id, to_id in edge.pairs()
            if from_id != to_id
        ]
        self.ticks = 0

    def is_visible(self, node_id: int) -> bool:
        return self._visible is None or node_id in self._visible

    def set_visible(self, node_ids: Iterable[int] | None) -> None:
        """Restrict the simulation to these nodes; None shows every node."""
        self._visible = None if node_ids is None else set(node_ids)

    def _active(self) -> list[tuple[int, Position]]:
        return [
            (node_id, pos)
            for node_id, pos in self.positions.items()
            if self.is_visible(node_id)
        ]

    # User interaction

    def pin(self, node_id: int, x: float | None = None, y: float | None = None) -> None:
        """Fix a node in place, optionally moving it first."""
        pos = self.positions.get(node_id)
        if pos is None:
            return
        if x is not None:
            pos.x = x
        if y is not None:
            pos.y = y
        pos.vx = pos.vy = 0.0
        pos.fixed = True

    def release(self, node_id: int) -> None:
        pos = self.positions.get(node_id)
        if pos is not None:
            pos.fixed = False

    def drag(self, node_id: int, x: float, y: float) -> None:
        """Move a node with the pointer; it stays pinned until released."""
        self.pin(node_id, x, y)

    # Stepping

    def tick(self) -> None:
        """Advance the simulation by one frame."""
        cfg = self.config
        active = self._active()

        self._integrate(active)
        self._repel(active)
        self._spring()
        if cfg.force_center:
            self._center(active)
        if cfg.container is not None:
            self._contain(active)

        self.ticks += 1
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Tick %d: kinetic energy %.4f", self.ticks, self.kinetic_energy())

    def run(self, iterations: int) -> float:
        """Run several ticks; returns the kinetic energy after the last one."""
        for _ in range(iterations):
            self.tick()
        return self.kinetic_energy()

    def kinetic_energy(self) -> float:
        return sum(
            0.5 * (p.vx * p.vx + p.vy * p.vy)
            for _, p in self._active()
            if not p.fixed
        )

    def _integrate(self, active: list[tuple[int, Position]]) -> None:
        cfg = self.config
        for _, pos in active:
            if pos.fixed:
                continue

            pos.vx *= cfg.damping
            pos.vy *= cfg.damping

            # Stop creeping motion instead of jittering forever
            if abs(pos.vx) < cfg.min_velocity:
                pos.vx = 0.0
            if abs(pos.vy) < cfg.min_velocity:
                pos.vy = 0.0

            speed = math.hypot(pos.vx, pos.vy)
            if speed > cfg.max_velocity:
                scale = cfg.max_velocity / speed
                pos.vx *= scale
                pos.vy *= scale

            pos.x += pos.vx
            pos.y += pos.vy

    def _repel(self, active: list[tuple[int, Position]]) -> None:
        cfg = self.config
        for i, (_, a) in enumerate(active):
            for _, b in active[i + 1:]:
                dx = b.x - a.x
                dy = b.y - a.y
                d = math.hypot(dx, dy)
                if d == 0 or d >= cfg.repel_dist:
                    continue
                force = cfg.repel_force / (d * d)
                fx = force * dx / d
                fy = force * dy / d
                if not a.fixed:
                    a.vx -= fx
                    a.vy -= fy
                if not b.fixed:
                    b.vx += fx
                    b.vy += fy

    def _spring(self) -> None:
        cfg = self.config
        for from_id, to_id in self._pairs:
            if not (self.is_visible(from_id) and self.is_visible(to_id)):
                continue
            a = self.positions.get(from_id)
            b = self.positions.get(to_id)
            if a is None or b is None:
                continue

            dx = b.x - a.x
            dy = b.y - a.y
            d = math.hypot(dx, dy)
            if d == 0:
                continue
            force = (d - cfg.spring_length) * cfg.spring_force
            fx = force * dx / d
            fy = force * dy / d
            if not a.fixed:
                a.vx += fx
                a.vy += fy
            if not b.fixed:
                b.vx -= fx
                b.vy -= fy

    def _center(self, active: list[tuple[int, Position]]) -> None:
        cfg = self.config
        for _, pos in active:
            if pos.fixed:
                continue
            pos.vx += (cfg.center_x - pos.x) * cfg.center_force
            pos.vy += (cfg.center_y - pos.y) * cfg.center_force

    def _contain(self, active: list[tuple[int, Position]]) -> None:
        cfg = self.config
        for _, pos in active:
            if pos.fixed:
                continue

            if cfg.container == "ellipse":
                semi_a = cfg.width / 2 - cfg.container_margin
                semi_b = cfg.height / 2 - cfg.container_margin
                dx = pos.x - cfg.center_x
                dy = pos.y - cfg.center_y
                d = math.hypot(dx, dy)
                if d == 0 or semi_a <= 0 or semi_b <= 0:
                    continue
                angle = math.atan2(dy, dx)
                boundary = (semi_a * semi_b) / math.hypot(
                    semi_b * math.cos(angle), semi_a * math.sin(angle)
                )
                if d > boundary:
                    push = cfg.contain_force * (d - boundary)
                    pos.vx -= push * math.cos(angle)
                    pos.vy -= push * math.sin(angle)
            else:
                min_x = cfg.center_x - cfg.width / 2 + cfg.container_margin
                max_x = cfg.center_x + cfg.width / 2 - cfg.container_margin
                min_y = cfg.center_y - cfg.height / 2 + cfg.container_margin
                max_y = cfg.center_y + cfg.height / 2 - cfg.container_margin
                if pos.x < min_x:
                    pos.vx += cfg.contain_force * (min_x - pos.x)
                elif pos.x > max_x:
                    pos.vx -= cfg.contain_force * (pos.x - max_x)
                if pos.y < min_y:
                    pos.vy += cfg.contain_force * (min_y - pos.y)
                elif pos.y > max_y:
                    pos.vy -= cfg.contain_force * (pos.y - max_y)

    def separation(self, a: int, b: int) -> float:
        """Distance between two nodes, ``math.inf`` if either has no position."""
        pa = self.positions.get(a)
        pb = self.positions.get(b)
        if pa is None or pb is None:
            return math.inf
        return distance(pa.x, pa.y, pb.x, pb.y)
