"""Selection state, its reducer, and the relevance derived from it.

``SelectionState`` is an immutable value; every change goes through
``reduce(state, event)`` so any input binding (pointer handler, step list,
test) drives it the same way. ``RelevanceIndex`` answers, per node and per
edge, how the current state wants it drawn.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Union

from .models import Tier

if TYPE_CHECKING:
    from .models import CaseStudy, Edge

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectionState:
    """What the user has selected and what the pointer is over."""

    selected_step: int | None = None
    selected_edges: frozenset[int] = field(default_factory=frozenset)
    hovered_node: int | None = None
    hovered_edge: int | None = None

    @property
    def has_step(self) -> bool:
        return self.selected_step is not None


@dataclass(frozen=True)
class SelectStep:
    """Select a step; selecting the current step again deselects it."""

    step_id: int | None


@dataclass(frozen=True)
class ToggleEdge:
    """Add or remove an edge from the filter within the selected step."""

    edge_id: int


@dataclass(frozen=True)
class SetHover:
    node_id: int | None = None
    edge_id: int | None = None


@dataclass(frozen=True)
class ClearSelection:
    pass


Event = Union[SelectStep, ToggleEdge, SetHover, ClearSelection]


def reduce(state: SelectionState, event: Event) -> SelectionState:
    """Apply one input event to the selection state."""
    if isinstance(event, SelectStep):
        if event.step_id is None or event.step_id == state.selected_step:
            step = None
        else:
            step = event.step_id
        return replace(state, selected_step=step, selected_edges=frozenset())

    if isinstance(event, ToggleEdge):
        if state.selected_step is None:
            return state
        if event.edge_id in state.selected_edges:
            edges = state.selected_edges - {event.edge_id}
        else:
            edges = state.selected_edges | {event.edge_id}
        return replace(state, selected_edges=frozenset(edges))

    if isinstance(event, SetHover):
        # A node under the pointer always wins over an edge
        if event.node_id is not None:
            return replace(state, hovered_node=event.node_id, hovered_edge=None)
        return replace(state, hovered_node=None, hovered_edge=event.edge_id)

    if isinstance(event, ClearSelection):
        return replace(state, selected_step=None, selected_edges=frozenset())

    raise TypeError(f"Unknown selection event: {event!r}")


def edge_is_shown(state: SelectionState, edge: Edge) -> bool:
    """False only for step edges filtered out by the edge checkboxes."""
    if state.selected_step is None or edge.step_id != state.selected_step:
        return True
    return not state.selected_edges or edge.id in state.selected_edges


class NodeRelevance(Enum):
    RELEVANT = "relevant"
    ACTIVE = "active"
    HIGHLIGHTED_CHILD = "highlighted_child"
    DIMMED = "dimmed"


class EdgeRelevance(Enum):
    NEUTRAL = "neutral"
    ACTIVE = "active"
    DIMMED = "dimmed"


@dataclass(frozen=True)
class NodeAppearance:
    relevance: NodeRelevance
    tier: Tier
    hovered: bool
    alpha: int


@dataclass(frozen=True)
class EdgeAppearance:
    relevance: EdgeRelevance
    broken: bool
    alpha: int
    stroke_width: float
    hovered: bool
    arrow: bool

    @property
    def visible(self) -> bool:
        return self.alpha > 0


NODE_ALPHA = {
    NodeRelevance.RELEVANT: 225,
    NodeRelevance.ACTIVE: 225,
    NodeRelevance.HIGHLIGHTED_CHILD: 180,
    NodeRelevance.DIMMED: 80,
}
HOVER_ALPHA = 255

ACTIVE_EDGE_ALPHA = 200
UNUSED_EDGE_ALPHA = 80
VIOLATED_EDGE_MIN_ALPHA = 180


class RelevanceIndex:
    """Per-step lookups behind node and edge relevance.

    Everything is derived from the case study once per step and cached, so
    the per-frame questions are set lookups.
    """

    def __init__(self, case_study: CaseStudy):
        self.case_study = case_study
        self._active: dict[int, frozenset[int]] = {}
        self._highlighted: dict[int, frozenset[int]] = {}

    def step_edges(self, step_id: int) -> list[Edge]:
        return self.case_study.edges_for_step(step_id)

    def active_nodes(self, step_id: int | None) -> frozenset[int]:
        """Nodes that are endpoints of an interaction of the step."""
        if step_id is None:
            return frozenset()
        if step_id not in self._active:
            ids: set[int] = set()
            for edge in self.step_edges(step_id):
                ids |= edge.endpoints()
            self._active[step_id] = frozenset(ids)
        return self._active[step_id]

    def highlighted_children(self, step_id: int | None) -> frozenset[int]:
        """Structural children of organisations the step's interactions reference.

        A parent-tier endpoint highlights its direct children; a root-tier
        endpoint highlights its children and grandchildren. Active nodes are
        excluded.
        """
        if step_id is None:
            return frozenset()
        if step_id not in self._highlighted:
            study = self.case_study
            parents: set[int] = set()
            roots: set[int] = set()
            for node_id in self.active_nodes(step_id):
                target = study.node(node_id)
                if target is None:
                    continue
                if target.tier is Tier.PARENT:
                    parents.add(target.id)
                elif target.tier is Tier.ROOT:
                    roots.add(target.id)

            ids = {
                node.id
                for node in study.nodes
                if node.parent_id in parents
                or node.parent_id in roots
                or node.grandparent_id in roots
            }
            self._highlighted[step_id] = frozenset(ids - self.active_nodes(step_id))
        return self._highlighted[step_id]

    def node_relevance(self, state: SelectionState, node_id: int) -> NodeRelevance:
        if state.selected_step is None:
            return NodeRelevance.RELEVANT
        if node_id in self.active_nodes(state.selected_step):
            return NodeRelevance.ACTIVE
        if node_id in self.highlighted_children(state.selected_step):
            return NodeRelevance.HIGHLIGHTED_CHILD
        return NodeRelevance.DIMMED

    def node_appearance(self, state: SelectionState, node_id: int) -> NodeAppearance:
        """Relevance, tier and opacity of a node.

        Hover raises the node to full opacity whatever its relevance.
        """
        relevance = self.node_relevance(state, node_id)
        node = self.case_study.node(node_id)
        tier = node.tier if node is not None else Tier.ROOT
        hovered = state.hovered_node == node_id
        alpha = HOVER_ALPHA if hovered else NODE_ALPHA[relevance]
        return NodeAppearance(relevance, tier, hovered, alpha)

    def edge_relevance(self, state: SelectionState, edge: Edge) -> EdgeRelevance:
        if state.selected_step is None:
            return EdgeRelevance.NEUTRAL
        if edge.step_id == state.selected_step and edge_is_shown(state, edge):
            return EdgeRelevance.ACTIVE
        return EdgeRelevance.DIMMED

    def edge_appearance(self, state: SelectionState, edge: Edge) -> EdgeAppearance:
        relevance = self.edge_relevance(state, edge)
        broken = False
        width = 1.0

        if relevance is EdgeRelevance.NEUTRAL:
            alpha = 40 if edge.violated else 60
        elif relevance is EdgeRelevance.DIMMED:
            alpha = 30
        else:
            alpha = ACTIVE_EDGE_ALPHA
            width = 2.0
            if edge.unused:
                alpha = min(alpha, UNUSED_EDGE_ALPHA)
            # A violated edge never fades below the floor, even when unused
            if edge.violated:
                broken = True
                alpha = max(alpha, VIOLATED_EDGE_MIN_ALPHA)

        hovered = state.hovered_edge == edge.id and edge_is_shown(state, edge)
        if hovered:
            width = 3.0
            alpha = HOVER_ALPHA

        return EdgeAppearance(
            relevance=relevance,
            broken=broken,
            alpha=alpha,
            stroke_width=width,
            hovered=hovered,
            arrow=not edge.bidirectional,
        )
