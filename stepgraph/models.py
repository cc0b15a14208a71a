"""Data models for stepgraph case studies."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from itertools import product
from typing import TYPE_CHECKING, Any

import networkx as nx

from .errors import RecordError

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Sequence

logger = logging.getLogger(__name__)


class Tier(Enum):
    """Depth of a node in the organisation forest."""

    ROOT = "root"
    PARENT = "parent"
    CHILD = "child"


def _require_mapping(kind: str, record: Any) -> dict[str, Any]:
    if not isinstance(record, dict):
        raise RecordError(kind, f"expected an object, got {type(record).__name__}", record)
    return record


def _as_int(kind: str, key: str, value: Any) -> int:
    if isinstance(value, bool):
        raise RecordError(kind, f"'{key}' must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise RecordError(kind, f"'{key}' must be an integer, got {value!r}") from None


def _required_int(kind: str, record: dict[str, Any], key: str) -> int:
    if record.get(key) is None:
        raise RecordError(kind, f"missing '{key}'", record)
    return _as_int(kind, key, record[key])


def _optional_int(kind: str, record: dict[str, Any], key: str) -> int | None:
    value = record.get(key)
    if value is None:
        return None
    return _as_int(kind, key, value)


def _id_tuple(kind: str, record: dict[str, Any], key: str) -> tuple[int, ...]:
    """Coerce an id list, keeping first-seen order and dropping repeats."""
    value = record.get(key)
    if value is None:
        return ()
    if not isinstance(value, (list, tuple)):
        value = [value]
    ids: dict[int, None] = {}
    for item in value:
        ids[_as_int(kind, key, item)] = None
    return tuple(ids)


def _flag(value: Any) -> bool:
    """JSON 0/1 flags (and real booleans) to bool."""
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes")
    return bool(value)


def _text(value: Any) -> str:
    return "" if value is None else str(value)


@dataclass(frozen=True)
class Node:
    """A person or organisation placed in the diagram."""

    id: int
    name: str
    description: str | None = None
    parent_id: int | None = None
    grandparent_id: int | None = None

    @property
    def tier(self) -> Tier:
        if self.grandparent_id is not None:
            return Tier.CHILD
        if self.parent_id is not None:
            return Tier.PARENT
        return Tier.ROOT

    @classmethod
    def from_record(cls, record: Any) -> Node:
        """Build a node from a ``nodes.json`` record."""
        data = _require_mapping("node", record)
        node_id = _required_int("node", data, "node_id")
        description = data.get("node_description")
        return cls(
            id=node_id,
            name=_text(data.get("node_name")) or f"Node {node_id}",
            description=None if description is None else str(description),
            parent_id=_optional_int("node", data, "node_parent_id"),
            grandparent_id=_optional_int("node", data, "node_grandparent_id"),
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "node_id": self.id,
            "node_name": self.name,
            "node_description": self.description,
            "node_parent_id": self.parent_id,
            "node_grandparent_id": self.grandparent_id,
        }


@dataclass(frozen=True)
class Edge:
    """An interaction from one or more nodes to one or more nodes, scoped to a step.

    The edge stands for every (from, to) pair of the cartesian product of its
    endpoint sets; a pair whose ids coincide is drawn as a self loop.
    """

    id: int
    from_nodes: tuple[int, ...]
    to_nodes: tuple[int, ...]
    description: str = ""
    step_id: int | None = None
    bidirectional: bool = False
    unused: bool = False
    violated: bool = False

    def pairs(self) -> Iterator[tuple[int, int]]:
        """Yield (from_id, to_id) pairs in declaration order."""
        return product(self.from_nodes, self.to_nodes)

    def endpoints(self) -> frozenset[int]:
        return frozenset(self.from_nodes) | frozenset(self.to_nodes)

    @property
    def is_self_loop(self) -> bool:
        return not set(self.from_nodes).isdisjoint(self.to_nodes)

    @classmethod
    def from_record(cls, record: Any) -> Edge:
        """Build an edge from an ``edges.json`` record."""
        data = _require_mapping("edge", record)
        edge_id = _required_int("edge", data, "interaction_id")
        from_nodes = _id_tuple("edge", data, "from_nodes")
        to_nodes = _id_tuple("edge", data, "to_nodes")
        if not from_nodes or not to_nodes:
            raise RecordError("edge", f"interaction {edge_id} has an empty endpoint list", record)
        return cls(
            id=edge_id,
            from_nodes=from_nodes,
            to_nodes=to_nodes,
            description=_text(data.get("interaction_description")),
            step_id=_optional_int("edge", data, "step_id"),
            bidirectional=_flag(data.get("bidirectional", 0)),
            unused=_flag(data.get("unused", 0)),
            violated=_flag(data.get("violated", 0)),
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "interaction_id": self.id,
            "from_nodes": list(self.from_nodes),
            "to_nodes": list(self.to_nodes),
            "interaction_description": self.description,
            "step_id": self.step_id,
            "bidirectional": int(self.bidirectional),
            "unused": int(self.unused),
            "violated": int(self.violated),
        }


@dataclass(frozen=True)
class Step:
    """A narrative unit that groups the interactions shown together."""

    id: int
    description: str = ""
    date: str = ""
    phase: str | None = None
    document_ids: tuple[int, ...] = ()

    @classmethod
    def from_record(cls, record: Any) -> Step:
        """Build a step from a ``steps.json`` record."""
        data = _require_mapping("step", record)
        phase = data.get("phase")
        return cls(
            id=_required_int("step", data, "step_id"),
            description=_text(data.get("step_description")),
            date=_text(data.get("date")),
            phase=str(phase) if phase else None,
            document_ids=_id_tuple("step", data, "document_ids"),
        )

    def to_record(self) -> dict[str, Any]:
        record: dict[str, Any] = {
            "step_id": self.id,
            "step_description": self.description,
            "date": self.date,
            "phase": self.phase,
        }
        if self.document_ids:
            record["document_ids"] = list(self.document_ids)
        return record


@dataclass(frozen=True)
class Document:
    """A source document referenced by steps."""

    id: int
    tldr: str = ""
    description: str = ""
    author: str = ""
    date: str = ""

    @classmethod
    def from_record(cls, record: Any) -> Document:
        data = _require_mapping("document", record)
        return cls(
            id=_required_int("document", data, "document_id"),
            tldr=_text(data.get("tldr")),
            description=_text(data.get("document_description")),
            author=_text(data.get("author")),
            date=_text(data.get("date")),
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "document_id": self.id,
            "tldr": self.tldr,
            "document_description": self.description,
            "author": self.author,
            "date": self.date,
        }


@dataclass
class Position:
    """Layout state of one node.

    ``z`` is only non-zero for the pseudo-3D hierarchical layout; velocity and
    ``fixed`` are only used by the force simulation.
    """

    x: float
    y: float
    z: float = 0.0
    vx: float = 0.0
    vy: float = 0.0
    fixed: bool = False

    @property
    def xy(self) -> tuple[float, float]:
        return self.x, self.y


@dataclass
class CaseStudy:
    """The entity graph of one case study: nodes, interactions and steps."""

    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)
    steps: list[Step] = field(default_factory=list)
    documents: list[Document] = field(default_factory=list)
    name: str = "case study"

    def __post_init__(self) -> None:
        # Steps are presented in id order; sorted() keeps ties stable
        self.steps = sorted(self.steps, key=lambda s: s.id)
        self.reindex()

    def reindex(self) -> None:
        """Rebuild the lookup tables after the entity lists changed."""
        self._nodes = {n.id: n for n in self.nodes}
        self._edges = {e.id: e for e in self.edges}
        self._steps = {s.id: s for s in self.steps}
        self._documents = {d.id: d for d in self.documents}
        self._edges_by_step: dict[int | None, list[Edge]] = {}
        for edge in self.edges:
            self._edges_by_step.setdefault(edge.step_id, []).append(edge)
        self._hierarchy = self._build_hierarchy_graph()

    # Lookups

    def node(self, node_id: int) -> Node | None:
        return self._nodes.get(node_id)

    def edge(self, edge_id: int) -> Edge | None:
        return self._edges.get(edge_id)

    def step(self, step_id: int) -> Step | None:
        return self._steps.get(step_id)

    def document(self, document_id: int) -> Document | None:
        return self._documents.get(document_id)

    def has_node(self, node_id: int) -> bool:
        return node_id in self._nodes

    def edges_for_step(self, step_id: int | None) -> list[Edge]:
        return list(self._edges_by_step.get(step_id, ()))

    def documents_for_step(self, step_id: int) -> list[Document]:
        step = self.step(step_id)
        if step is None:
            return []
        return [self._documents[d] for d in step.document_ids if d in self._documents]

    def nodes_of_tier(self, tier: Tier) -> list[Node]:
        return [n for n in self.nodes if n.tier is tier]

    # Hierarchy

    def _build_hierarchy_graph(self) -> nx.DiGraph:
        graph = nx.DiGraph()
        for node in self.nodes:
            graph.add_node(node.id, name=node.name, tier=node.tier.value)
        for node in self.nodes:
            if node.parent_id is not None and node.parent_id in self._nodes:
                graph.add_edge(node.parent_id, node.id)
        return graph

    def hierarchy_graph(self) -> nx.DiGraph:
        """Parent to child structure as a networkx DiGraph (a copy)."""
        return self._hierarchy.copy()

    def children_of(self, node_id: int) -> list[Node]:
        """Direct structural children, in declaration order."""
        return [n for n in self.nodes if n.parent_id == node_id]

    def descendants_of(self, node_id: int) -> set[int]:
        """Every node below ``node_id``, by parent chain or grandparent id."""
        found: set[int] = set()
        if node_id in self._hierarchy:
            found |= nx.descendants(self._hierarchy, node_id)
        found |= {n.id for n in self.nodes if n.grandparent_id == node_id}
        found.discard(node_id)
        return found

    def interaction_graph(self) -> nx.MultiDiGraph:
        """One directed edge per (from, to) pair, keyed by interaction id."""
        graph = nx.MultiDiGraph()
        for node in self.nodes:
            graph.add_node(node.id, name=node.name, tier=node.tier.value)
        for edge in self.edges:
            for from_id, to_id in edge.pairs():
                graph.add_edge(
                    from_id, to_id,
                    key=edge.id,
                    step_id=edge.step_id,
                    bidirectional=edge.bidirectional,
                    unused=edge.unused,
                    violated=edge.violated,
                )
        return graph

    def structurally_equal(self, other: CaseStudy) -> bool:
        """True when both case studies have the same ids and relations."""
        return (
            nx.utils.graphs_equal(self._hierarchy, other._hierarchy)
            and nx.utils.graphs_equal(self.interaction_graph(), other.interaction_graph())
            and [s.id for s in self.steps] == [s.id for s in other.steps]
        )

    # Validation and summaries

    def validate(self) -> list[str]:
        """Check cross references; problems are logged and returned, never raised."""
        issues: list[str] = []

        for kind, items in (("node", self.nodes), ("edge", self.edges), ("step", self.steps)):
            seen: set[int] = set()
            for item in items:
                if item.id in seen:
                    issues.append(f"duplicate {kind} id {item.id}")
                seen.add(item.id)

        referenced_nodes: dict[int, None] = {}
        for edge in self.edges:
            for node_id in (*edge.from_nodes, *edge.to_nodes):
                referenced_nodes[node_id] = None
        missing_nodes = [i for i in referenced_nodes if i not in self._nodes]
        if missing_nodes:
            issues.append(f"missing nodes referenced in edges: {missing_nodes}")

        referenced_steps = {e.step_id for e in self.edges}
        missing_steps = sorted(
            (s for s in referenced_steps if s not in self._steps),
            key=lambda s: (s is None, s or 0),
        )
        if missing_steps:
            issues.append(f"missing steps referenced in edges: {missing_steps}")

        for node in self.nodes:
            if node.parent_id is not None and node.parent_id not in self._nodes:
                issues.append(f"node {node.id} references missing parent {node.parent_id}")
            if node.grandparent_id is None:
                continue
            parent = self._nodes.get(node.parent_id) if node.parent_id is not None else None
            if parent is None or parent.parent_id != node.grandparent_id:
                issues.append(
                    f"node {node.id} grandparent {node.grandparent_id} does not match "
                    f"the parent of its parent {node.parent_id}"
                )

        for issue in issues:
            logger.warning("Validation: %s", issue)

        logger.info(
            "Node coverage: %d defined, %d referenced; step coverage: %d defined, %d referenced",
            len(self._nodes), len(referenced_nodes), len(self._steps), len(referenced_steps),
        )
        return issues

    def steps_by_phase(self, phase_order: Sequence[str]) -> dict[str, list[Step]]:
        """Group steps by phase in ``phase_order``; unknown phases go to ``"other"``."""
        groups: dict[str, list[Step]] = {phase: [] for phase in phase_order}
        groups["other"] = []
        for step in self.steps:
            if step.phase and step.phase in groups and step.phase != "other":
                groups[step.phase].append(step)
            else:
                groups["other"].append(step)
        if not groups["other"]:
            del groups["other"]
        return groups

    def summary(self) -> dict[str, int]:
        return {
            "nodes": len(self.nodes),
            "roots": len(self.nodes_of_tier(Tier.ROOT)),
            "parents": len(self.nodes_of_tier(Tier.PARENT)),
            "children": len(self.nodes_of_tier(Tier.CHILD)),
            "edges": len(self.edges),
            "violated": sum(1 for e in self.edges if e.violated),
            "unused": sum(1 for e in self.edges if e.unused),
            "steps": len(self.steps),
            "documents": len(self.documents),
        }

    def to_records(self) -> dict[str, list[dict[str, Any]]]:
        """The JSON shapes this case study would be loaded from."""
        return {
            "nodes": [n.to_record() for n in self.nodes],
            "edges": [e.to_record() for e in self.edges],
            "steps": [s.to_record() for s in self.steps],
            "documents": [d.to_record() for d in self.documents],
        }

    @classmethod
    def from_entities(
        cls,
        nodes: Iterable[Node],
        edges: Iterable[Edge],
        steps: Iterable[Step],
        documents: Iterable[Document] = (),
        name: str = "case study",
    ) -> CaseStudy:
        return cls(list(nodes), list(edges), list(steps), list(documents), name=name)
