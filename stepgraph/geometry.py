"""Geometry kernel: distances, bezier curves and the shapes of drawn edges.

All functions are pure. Degenerate input (coincident endpoints, zero-length
vectors) never raises: distances come back as ``math.inf`` and constructions
that need a direction come back as ``None``.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

Point = tuple[float, float]


def distance(x1: float, y1: float, x2: float, y2: float) -> float:
    """Euclidean distance between two points."""
    return math.hypot(x2 - x1, y2 - y1)


def lerp(start: float, end: float, t: float) -> float:
    """Linear interpolation between two values."""
    return start + (end - start) * t


def constrain(value: float, low: float, high: float) -> float:
    """Clamp value to [low, high]."""
    return min(max(value, low), high)


def distance_point_to_segment(
    px: float, py: float, x1: float, y1: float, x2: float, y2: float
) -> float:
    """Distance from a point to the nearest point of a segment.

    The projection parameter is clamped to [0, 1]; a zero-length segment
    gives the distance to its single point.
    """
    dx = x2 - x1
    dy = y2 - y1
    length_sq = dx * dx + dy * dy

    if length_sq == 0:
        return distance(px, py, x1, y1)

    t = constrain(((px - x1) * dx + (py - y1) * dy) / length_sq, 0.0, 1.0)
    return distance(px, py, x1 + t * dx, y1 + t * dy)


def evaluate_cubic_bezier(p0: float, c1: float, c2: float, p3: float, t: float) -> float:
    """One axis of a cubic bezier in Bernstein form."""
    mt = 1 - t
    return mt * mt * mt * p0 + 3 * mt * mt * t * c1 + 3 * mt * t * t * c2 + t * t * t * p3


def bezier_point(p0: Point, c1: Point, c2: Point, p3: Point, t: float) -> Point:
    """A 2D point of a cubic bezier."""
    return (
        evaluate_cubic_bezier(p0[0], c1[0], c2[0], p3[0], t),
        evaluate_cubic_bezier(p0[1], c1[1], c2[1], p3[1], t),
    )


def sample_bezier(p0: Point, c1: Point, c2: Point, p3: Point, samples: int) -> list[Point]:
    """``samples + 1`` points at equal parameter steps, both ends included."""
    if samples < 1:
        raise ValueError(f"samples must be at least 1, got {samples}")
    return [bezier_point(p0, c1, c2, p3, i / samples) for i in range(samples + 1)]


def curve_control_point(from_pos: Point, to_pos: Point, offset: float) -> Point | None:
    """Control point of an offset edge curve.

    Both control points of the pseudo-cubic curve sit here: at the chord
    midpoint, pushed ``offset`` along the left-hand perpendicular of
    from -> to. Returns None when the endpoints coincide.
    """
    dx = to_pos[0] - from_pos[0]
    dy = to_pos[1] - from_pos[1]
    length = math.hypot(dx, dy)
    if length == 0:
        return None

    mid_x = (from_pos[0] + to_pos[0]) / 2
    mid_y = (from_pos[1] + to_pos[1]) / 2
    return mid_x - dy / length * offset, mid_y + dx / length * offset


def distance_point_to_bezier(
    px: float,
    py: float,
    from_pos: Point,
    to_pos: Point,
    offset: float,
    samples: int = 20,
) -> float:
    """Approximate distance from a point to an offset edge curve.

    The curve is sampled at ``samples`` equal parameter steps and the nearest
    sample wins, which is close enough for hover tolerance at the small
    offsets edges use. Coincident endpoints give ``math.inf``.
    """
    if samples < 1:
        raise ValueError(f"samples must be at least 1, got {samples}")

    control = curve_control_point(from_pos, to_pos, offset)
    if control is None:
        return math.inf

    return min(
        distance(px, py, x, y)
        for x, y in sample_bezier(from_pos, control, control, to_pos, samples)
    )


def segment_intersection(a1: Point, a2: Point, b1: Point, b2: Point) -> Point | None:
    """Intersection point of two segments, or None.

    Parallel, collinear and zero-length segments report no intersection.
    """
    rx, ry = a2[0] - a1[0], a2[1] - a1[1]
    sx, sy = b2[0] - b1[0], b2[1] - b1[1]
    denom = rx * sy - ry * sx
    if denom == 0:
        return None

    qpx, qpy = b1[0] - a1[0], b1[1] - a1[1]
    t = (qpx * sy - qpy * sx) / denom
    u = (qpx * ry - qpy * rx) / denom
    if 0 <= t <= 1 and 0 <= u <= 1:
        return a1[0] + t * rx, a1[1] + t * ry
    return None


def segment_circle_intersections(a: Point, b: Point, center: Point, radius: float) -> list[Point]:
    """Points where segment a-b crosses a circle, ordered from a to b."""
    dx, dy = b[0] - a[0], b[1] - a[1]
    fx, fy = a[0] - center[0], a[1] - center[1]

    qa = dx * dx + dy * dy
    if qa == 0 or radius <= 0:
        return []
    qb = 2 * (fx * dx + fy * dy)
    qc = fx * fx + fy * fy - radius * radius
    disc = qb * qb - 4 * qa * qc
    if disc < 0:
        return []

    root = math.sqrt(disc)
    hits = []
    for t in sorted({(-qb - root) / (2 * qa), (-qb + root) / (2 * qa)}):
        if 0 <= t <= 1:
            hits.append((a[0] + t * dx, a[1] + t * dy))
    return hits


def broken_segments(from_pos: Point, to_pos: Point, segments: int = 8) -> list[tuple[Point, Point]]:
    """Dashes of a broken straight line: every other of ``segments`` equal pieces."""
    dx = (to_pos[0] - from_pos[0]) / segments
    dy = (to_pos[1] - from_pos[1]) / segments
    return [
        (
            (from_pos[0] + dx * i, from_pos[1] + dy * i),
            (from_pos[0] + dx * (i + 1), from_pos[1] + dy * (i + 1)),
        )
        for i in range(0, segments, 2)
    ]


def broken_curve_segments(
    from_pos: Point, to_pos: Point, offset: float, segments: int = 20
) -> list[tuple[Point, Point]]:
    """Dashes of a broken offset curve, as straight chords between samples."""
    control = curve_control_point(from_pos, to_pos, offset)
    if control is None:
        return []
    return [
        (
            bezier_point(from_pos, control, control, to_pos, i / segments),
            bezier_point(from_pos, control, control, to_pos, (i + 1) / segments),
        )
        for i in range(0, segments, 2)
    ]


def self_loop_geometry(
    center: Point,
    loop_radius: float = 25.0,
    node_radius: float = 6.0,
    start_angle: float = -math.pi / 4,
) -> tuple[Point, Point, Point]:
    """Anchor and control points of a self loop.

    The loop starts and ends at an anchor on the node perimeter and bulges
    out to the right through two controls at 1.2 loop radii. It does not
    depend on any other edge of the node.

    Returns:
        (anchor, control1, control2)
    """
    cx, cy = center
    anchor = (cx + math.cos(start_angle) * node_radius, cy + math.sin(start_angle) * node_radius)
    reach = loop_radius * 1.2
    return anchor, (cx + reach, cy - reach), (cx + reach, cy + reach)


def broken_loop_segments(
    center: Point,
    loop_radius: float = 25.0,
    node_radius: float = 6.0,
    start_angle: float = -math.pi / 4,
    segments: int = 8,
) -> list[tuple[Point, Point]]:
    """Dashes of a broken self loop, drawn on a circle around the node."""
    radius = node_radius + loop_radius * 0.7
    cx, cy = center
    dashes = []
    for i in range(0, segments, 2):
        a1 = start_angle + i / segments * math.tau
        a2 = start_angle + (i + 1) / segments * math.tau
        dashes.append((
            (cx + math.cos(a1) * radius, cy + math.sin(a1) * radius),
            (cx + math.cos(a2) * radius, cy + math.sin(a2) * radius),
        ))
    return dashes


def bounding_box(points: Iterable[Point]) -> tuple[float, float, float, float] | None:
    """(min_x, min_y, max_x, max_y) of the points, or None when there are none."""
    min_x = min_y = math.inf
    max_x = max_y = -math.inf
    for x, y in points:
        min_x = min(min_x, x)
        min_y = min(min_y, y)
        max_x = max(max_x, x)
        max_y = max(max_y, y)
    if min_x == math.inf:
        return None
    return min_x, min_y, max_x, max_y


def fit_zoom(
    box: tuple[float, float, float, float],
    width: float,
    height: float,
    margin: float = 60.0,
    min_zoom: float = 0.2,
    max_zoom: float = 3.0,
) -> float:
    """Zoom that fits ``box`` into a ``width`` x ``height`` view, clamped.

    A box with no area keeps zoom 1.0.
    """
    box_width = box[2] - box[0]
    box_height = box[3] - box[1]
    if box_width <= 0 or box_height <= 0:
        return 1.0
    zoom = min((width - margin) / box_width, (height - margin) / box_height)
    return constrain(zoom, min_zoom, max_zoom)
