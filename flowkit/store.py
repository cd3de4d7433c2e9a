"""In-memory graph store backing one editing session.

The store is the single source of truth the editor renders from. Every
write goes through a method here so the graph invariants hold after each
mutation:

- node ids are unique,
- every edge references nodes of this graph,
- no two edges are structurally identical,
- removing a node removes the edges touching it.

Readers only ever get copies.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from pydantic import BaseModel

from flowkit.models.graph import (
    FlowEdge,
    FlowNode,
    Position,
    make_conditional_node,
    make_end_node,
    make_initial_node,
    make_stage_node,
    parse_node,
)

logger = logging.getLogger(__name__)

# (x column, first y, vertical spacing) per node family
_STACKING: dict[str, tuple[float, float, float]] = {
    "stage": (400, 250, 200),
    "conditional": (600, 250, 150),
    "end": (400, 800, 150),
}


def default_nodes() -> list[FlowNode]:
    """The two seed nodes every new flow starts with."""
    return [
        make_initial_node("initial-1", Position(x=400, y=50)),
        make_end_node("end-1", Position(x=400, y=800)),
    ]


class GraphSnapshot(BaseModel):
    """serializable copy of a store's full state."""

    nodes: list[FlowNode] = []
    edges: list[FlowEdge] = []
    flow_name: str = ""
    flow_description: str = ""


class GraphStore:
    """Mutable flow graph with a narrow mutation API.

    Usage:
        store = GraphStore()
        stage_id = store.add_stage_node()
        store.add_edge(FlowEdge(source="initial-1", target=stage_id))
        store.update_node(stage_id, {"inline_content": "Hola {{nombre}}"})
    """

    def __init__(self) -> None:
        self._nodes: list[FlowNode] = default_nodes()
        self._edges: list[FlowEdge] = []
        self.flow_name = ""
        self.flow_description = ""

    # read access

    @property
    def nodes(self) -> list[FlowNode]:
        return [node.model_copy(deep=True) for node in self._nodes]

    @property
    def edges(self) -> list[FlowEdge]:
        return [edge.model_copy(deep=True) for edge in self._edges]

    def get_node(self, node_id: str) -> FlowNode | None:
        node = self._find_node(node_id)
        return node.model_copy(deep=True) if node else None

    def get_stage_count(self) -> int:
        return sum(1 for node in self._nodes if node.type == "stage")

    def get_conditional_count(self) -> int:
        return sum(1 for node in self._nodes if node.type == "conditional")

    def _find_node(self, node_id: str) -> FlowNode | None:
        for node in self._nodes:
            if node.id == node_id:
                return node
        return None

    def _next_position(self, variant: str) -> Position:
        """Place a new node below the lowest sibling of the same family."""
        x, first_y, spacing = _STACKING[variant]
        sibling_ys = [node.position.y for node in self._nodes if node.type == variant]
        if not sibling_ys:
            return Position(x=x, y=first_y)
        return Position(x=x, y=max(sibling_ys) + spacing)

    # node actions

    def add_stage_node(self) -> str:
        node = make_stage_node(position=self._next_position("stage"))
        self._nodes.append(node)
        return node.id

    def add_conditional_node(self) -> str:
        node = make_conditional_node(position=self._next_position("conditional"))
        self._nodes.append(node)
        return node.id

    def add_end_node(self) -> str:
        node = make_end_node(position=self._next_position("end"))
        self._nodes.append(node)
        return node.id

    def remove_node(self, node_id: str) -> None:
        """Remove a node and every edge that starts or ends at it."""
        if self._find_node(node_id) is None:
            return
        self._nodes = [node for node in self._nodes if node.id != node_id]
        self._edges = [
            edge
            for edge in self._edges
            if edge.source != node_id and edge.target != node_id
        ]

    def update_node(self, node_id: str, data: dict[str, Any]) -> None:
        """Shallow-merge ``data`` into the node's data.

        Raises pydantic.ValidationError if the merged data is invalid; the
        node is left untouched in that case.
        """
        node = self._find_node(node_id)
        if node is None:
            return
        merged = {**node.data.model_dump(), **data}
        node.data = type(node.data).model_validate(merged)

    def set_node_position(self, node_id: str, position: Position | dict) -> None:
        node = self._find_node(node_id)
        if node is None:
            return
        node.position = Position.model_validate(position)

    # edge actions

    def add_edge(self, edge: FlowEdge | dict) -> None:
        """Append an edge unless it duplicates an existing edge or its id,
        or an endpoint is missing."""
        if isinstance(edge, dict):
            edge = FlowEdge.model_validate(edge)

        if any(existing.key == edge.key for existing in self._edges):
            logger.warning("edge already exists: %s", edge.id)
            return

        if any(existing.id == edge.id for existing in self._edges):
            logger.warning("edge id already in use: %s", edge.id)
            return

        missing = [
            node_id
            for node_id in (edge.source, edge.target)
            if self._find_node(node_id) is None
        ]
        if missing:
            logger.warning("edge %s references unknown nodes: %s", edge.id, missing)
            return

        self._edges.append(edge.model_copy(deep=True))

    def remove_edge(self, edge_id: str) -> None:
        self._edges = [edge for edge in self._edges if edge.id != edge_id]

    # flow actions

    def set_flow_name(self, name: str) -> None:
        self.flow_name = name

    def set_flow_description(self, description: str) -> None:
        self.flow_description = description

    def reset_flow(self) -> None:
        """Back to the two seed nodes with no edges, name or description."""
        self._nodes = default_nodes()
        self._edges = []
        self.flow_name = ""
        self.flow_description = ""

    def load(
        self,
        nodes: Iterable[FlowNode | dict],
        edges: Iterable[FlowEdge | dict],
    ) -> None:
        """Replace the graph wholesale.

        Items that would break an invariant are dropped with a warning:
        later nodes reusing an id, edges with a missing endpoint, duplicate
        edges and later edges reusing an id. Stored edge ids are kept.
        """
        loaded_nodes: list[FlowNode] = []
        node_ids: set[str] = set()
        for raw in nodes:
            node = parse_node(raw) if isinstance(raw, dict) else raw.model_copy(deep=True)
            if node.id in node_ids:
                logger.warning("dropping node with duplicate id: %s", node.id)
                continue
            node_ids.add(node.id)
            loaded_nodes.append(node)

        loaded_edges: list[FlowEdge] = []
        edge_keys: set[tuple[str, str, str, str]] = set()
        edge_ids: set[str] = set()
        for raw in edges:
            edge = FlowEdge.model_validate(raw) if isinstance(raw, dict) else raw.model_copy(deep=True)
            if edge.source not in node_ids or edge.target not in node_ids:
                logger.warning("dropping dangling edge: %s", edge.id)
                continue
            if edge.key in edge_keys:
                logger.warning("dropping duplicate edge: %s", edge.id)
                continue
            if edge.id in edge_ids:
                logger.warning("dropping edge with duplicate id: %s", edge.id)
                continue
            edge_keys.add(edge.key)
            edge_ids.add(edge.id)
            loaded_edges.append(edge)

        self._nodes = loaded_nodes
        self._edges = loaded_edges

    # presentation-layer change batches

    def apply_node_changes(self, changes: Iterable[dict]) -> None:
        """Apply canvas change events: 'position' moves, 'remove' deletes."""
        for change in changes:
            kind = change.get("type")
            if kind == "position" and change.get("position") is not None:
                self.set_node_position(change["id"], change["position"])
            elif kind == "remove":
                self.remove_node(change["id"])

    def apply_edge_changes(self, changes: Iterable[dict]) -> None:
        for change in changes:
            if change.get("type") == "remove":
                self.remove_edge(change["id"])

    # persistence

    def snapshot(self) -> GraphSnapshot:
        return GraphSnapshot(
            nodes=self.nodes,
            edges=self.edges,
            flow_name=self.flow_name,
            flow_description=self.flow_description,
        )

    @classmethod
    def from_snapshot(cls, snapshot: GraphSnapshot) -> GraphStore:
        store = cls()
        store.load(snapshot.nodes, snapshot.edges)
        store.flow_name = snapshot.flow_name
        store.flow_description = snapshot.flow_description
        return store

    def __repr__(self) -> str:
        return (
            f"GraphStore(name={self.flow_name!r}, nodes={len(self._nodes)}, "
            f"edges={len(self._edges)})"
        )
