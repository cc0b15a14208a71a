"""Lateral offsets for edges that share a node pair."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from .models import Edge

logger = logging.getLogger(__name__)

# (edge id, from node id, to node id)
EdgeKey = tuple[int, int, int]
PairKey = tuple[int, int]


@dataclass
class OffsetConfig:
    """Spacing of parallel edges and the shape of self loops."""

    spacing: float = 30.0
    loop_radius: float = 25.0
    node_radius: float = 6.0
    loop_start_angle: float = -math.pi / 4


def pair_key(from_id: int, to_id: int) -> PairKey:
    """Undirected key of a node pair."""
    return (min(from_id, to_id), max(from_id, to_id))


def group_edge_pairs(edges: Iterable[Edge]) -> dict[PairKey, list[EdgeKey]]:
    """Group every non-loop (edge, from, to) triple by its undirected node pair.

    Groups and their members keep encounter order.
    """
    groups: dict[PairKey, list[EdgeKey]] = {}
    for edge in edges:
        for from_id, to_id in edge.pairs():
            if from_id == to_id:
                continue
            groups.setdefault(pair_key(from_id, to_id), []).append((edge.id, from_id, to_id))
    return groups


def compute_edge_offsets(edges: Iterable[Edge], spacing: float = 30.0) -> dict[EdgeKey, float]:
    """Assign symmetric lateral offsets to edges sharing a node pair.

    Member ``i`` of a group of ``n`` gets ``(i - (n - 1) / 2) * spacing``.
    Groups of one are left out of the result: their offset is implicitly 0
    and they are drawn straight.
    """
    offsets: dict[EdgeKey, float] = {}
    for members in group_edge_pairs(edges).values():
        n = len(members)
        if n < 2:
            continue
        for i, key in enumerate(members):
            offsets[key] = (i - (n - 1) / 2) * spacing
    return offsets


def self_loops(edges: Iterable[Edge]) -> Iterator[tuple[Edge, int]]:
    """Yield (edge, node id) for every self loop pair."""
    for edge in edges:
        for from_id, to_id in edge.pairs():
            if from_id == to_id:
                yield edge, from_id


class EdgeOffsets:
    """Offset table for an edge set.

    The table is always rebuilt in full from the current edge list; it is
    never patched edge by edge.
    """

    def __init__(self, edges: Iterable[Edge] = (), spacing: float = 30.0):
        self.spacing = spacing
        self._offsets: dict[EdgeKey, float] = {}
        self._groups: dict[PairKey, list[EdgeKey]] = {}
        self.recompute(edges)

    def recompute(self, edges: Iterable[Edge]) -> None:
        edges = list(edges)
        self._groups = group_edge_pairs(edges)
        self._offsets = compute_edge_offsets(edges, self.spacing)
        logger.info("Calculated offsets for %d edge pairs", len(self._offsets))

    def offset(self, edge_id: int, from_id: int, to_id: int) -> float:
        return self._offsets.get((edge_id, from_id, to_id), 0.0)

    def curve_offset(self, edge_id: int, from_id: int, to_id: int) -> float:
        """Offset to bend the from -> to curve by.

        Offsets are assigned per undirected pair, but the perpendicular of a
        curve flips with its direction. Measuring every curve against the
        low id -> high id direction keeps a -> b and b -> a on separate sides.
        """
        offset = self.offset(edge_id, from_id, to_id)
        return offset if from_id <= to_id else -offset

    def groups(self) -> dict[PairKey, list[EdgeKey]]:
        return {key: list(members) for key, members in self._groups.items()}

    def as_dict(self) -> dict[EdgeKey, float]:
        return dict(self._offsets)

    def __contains__(self, key: object) -> bool:
        return key in self._offsets

    def __len__(self) -> int:
        return len(self._offsets)
