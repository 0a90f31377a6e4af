"""
Graph Model - typed directed graph with referential integrity

Owns the nodes and edges of one board. Every public mutation keeps the
invariants below and reports expected failures as OperationResult values
instead of raising:

- every edge's source and target exist in the node set
- node ids are unique, edge ids are unique
- removing a node removes every edge touching it in the same call

Cycles, self-loops and parallel edges are all allowed here; the interaction
controller decides whether an editor may create them.

Usage:
    from graphboard.core.graph_model import GraphModel

    graph = GraphModel()
    a = graph.add_node({"kind": "feature", "name": "Pose Recognition"}).unwrap()
    b = graph.add_node({"kind": "capability"}).unwrap()
    graph.add_edge(a.id, b.id)
    graph.nodes_by_kind("feature")
"""

import logging
import uuid
from collections import Counter
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

import networkx as nx
from pydantic import ValidationError

from graphboard.core.errors import (
    DuplicateId,
    GraphError,
    InvalidEndpoint,
    InvalidField,
    OperationResult,
)
from graphboard.models.graph import Edge, Node, NodeData, Position
from graphboard.models.profile import GraphProfile, load_profile

logger = logging.getLogger(__name__)

DEFAULT_PROFILE = "architecture"

DATA_FIELDS = ("name", "description", "status", "priority", "tags")
NODE_FIELDS = ("kind", "position", "data") + DATA_FIELDS
EDGE_FIELDS = ("source", "target", "label", "kind")

NodeDraft = Union[Mapping[str, Any], Node]


class GraphModel:
    """Nodes and edges of one board, keyed by id in insertion order.

    Insertion order is part of the contract: queries and the layout engine
    iterate in it, which keeps layouts deterministic.
    """

    def __init__(self, profile: Optional[GraphProfile] = None):
        self.profile = profile or load_profile(DEFAULT_PROFILE)
        self._nodes: Dict[str, Node] = {}
        self._edges: Dict[str, Edge] = {}
        # Bumped on structural changes (nodes/edges added, removed or rewired)
        self.structure_version = 0

    # ------------------------------------------------------------------
    # Node mutations
    # ------------------------------------------------------------------

    def add_node(self, draft: NodeDraft) -> OperationResult[Node]:
        """Create a node from a draft.

        The draft is a Node or a mapping with ``kind`` and any of ``id``,
        ``position``, ``data`` and the flat data fields (``name``,
        ``description``, ``status``, ``priority``, ``tags``). Missing display
        fields take the profile defaults.

        Returns:
            Success with the stored node, or failure with InvalidField or
            DuplicateId (explicit id already taken)
        """
        fields = draft.model_dump() if isinstance(draft, Node) else dict(draft)

        kind = fields.get("kind", fields.get("type"))
        if not isinstance(kind, str) or not self.profile.allows_kind(kind):
            return OperationResult.failure(InvalidField("kind", kind, self.profile.kinds))

        node_id = fields.get("id")
        if node_id is not None:
            if not isinstance(node_id, str) or not node_id:
                return OperationResult.failure(InvalidField("id", node_id))
            if node_id in self._nodes:
                return OperationResult.failure(DuplicateId("node", node_id))
        else:
            node_id = self._new_node_id()

        base = NodeData(
            name=self.profile.default_name(kind),
            description=self.profile.default_description(kind),
            status=self.profile.default_status,
            priority=self.profile.default_priority,
        )
        data, error = self._merge_data(base, fields)
        if error is not None:
            return OperationResult.failure(error)

        position, error = self._coerce_position(fields.get("position"))
        if error is not None:
            return OperationResult.failure(error)

        node = Node(id=node_id, kind=kind, position=position, data=data)
        self._nodes[node_id] = node
        self.structure_version += 1
        logger.debug(f"Added node {node_id} ({kind})")
        return OperationResult.success(node.model_copy(deep=True))

    def remove_node(self, node_id: str) -> Optional[Node]:
        """Remove a node and every edge touching it.

        Returns:
            The removed node, or None if it did not exist (no-op)
        """
        node = self._nodes.pop(node_id, None)
        if node is None:
            return None

        doomed = [
            edge_id for edge_id, edge in self._edges.items()
            if edge.source == node_id or edge.target == node_id
        ]
        for edge_id in doomed:
            del self._edges[edge_id]

        self.structure_version += 1
        logger.debug(f"Removed node {node_id} and {len(doomed)} incident edges")
        return node

    def update_node(self, node_id: str, partial: Mapping[str, Any]) -> OperationResult[Node]:
        """Merge ``partial`` into a node.

        Accepts ``kind``, ``position``, a nested ``data`` mapping and the flat
        data fields. Unknown node ids are a successful no-op (value None) so
        UI handlers can fire blindly; callers that need strictness check
        ``result.value``.
        """
        node = self._nodes.get(node_id)
        if node is None:
            logger.debug(f"update_node ignored unknown node {node_id}")
            return OperationResult.success(None)

        unknown = [key for key in partial if key not in NODE_FIELDS]
        if unknown:
            return OperationResult.failure(
                InvalidField(unknown[0], partial[unknown[0]], NODE_FIELDS)
            )

        kind = partial.get("kind", node.kind)
        if not self.profile.allows_kind(kind):
            return OperationResult.failure(InvalidField("kind", kind, self.profile.kinds))

        data, error = self._merge_data(node.data, partial)
        if error is not None:
            return OperationResult.failure(error)

        position = node.position
        if "position" in partial:
            position, error = self._coerce_position(partial["position"])
            if error is not None:
                return OperationResult.failure(error)

        updated = Node(id=node_id, kind=kind, position=position, data=data)
        self._nodes[node_id] = updated
        return OperationResult.success(updated.model_copy(deep=True))

    # ------------------------------------------------------------------
    # Edge mutations
    # ------------------------------------------------------------------

    def add_edge(
        self,
        source: str,
        target: str,
        label: Optional[str] = None,
        kind: Optional[str] = None,
        edge_id: Optional[str] = None,
    ) -> OperationResult[Edge]:
        """Connect two existing nodes.

        Self-loops and parallel edges are accepted. Generated ids follow the
        ``e<source>-<target>`` scheme with a numeric suffix on collision.

        Returns:
            Success with the stored edge, or failure with InvalidEndpoint
            (nothing is stored), DuplicateId or InvalidField
        """
        if source not in self._nodes:
            return OperationResult.failure(InvalidEndpoint(source, "source"))
        if target not in self._nodes:
            return OperationResult.failure(InvalidEndpoint(target, "target"))

        if edge_id is not None:
            if edge_id in self._edges:
                return OperationResult.failure(DuplicateId("edge", edge_id))
        else:
            edge_id = self._new_edge_id(source, target)

        try:
            edge = Edge(
                id=edge_id,
                source=source,
                target=target,
                label=label,
                kind=kind if kind is not None else self.profile.default_edge_kind,
            )
        except ValidationError as e:
            return OperationResult.failure(self._field_error(e, "edge"))
        self._edges[edge_id] = edge
        self.structure_version += 1
        logger.debug(f"Added edge {edge_id}: {source} -> {target}")
        return OperationResult.success(edge.model_copy())

    def remove_edge(self, edge_id: str) -> Optional[Edge]:
        """Remove an edge; returns it, or None if absent (no-op)."""
        edge = self._edges.pop(edge_id, None)
        if edge is not None:
            self.structure_version += 1
            logger.debug(f"Removed edge {edge_id}")
        return edge

    def update_edge(self, edge_id: str, partial: Mapping[str, Any]) -> OperationResult[Edge]:
        """Merge ``partial`` (source, target, label, kind) into an edge.

        Rewiring is checked against the node set. Unknown edge ids are a
        successful no-op.
        """
        edge = self._edges.get(edge_id)
        if edge is None:
            logger.debug(f"update_edge ignored unknown edge {edge_id}")
            return OperationResult.success(None)

        unknown = [key for key in partial if key not in EDGE_FIELDS]
        if unknown:
            return OperationResult.failure(
                InvalidField(unknown[0], partial[unknown[0]], EDGE_FIELDS)
            )

        source = partial.get("source", edge.source)
        target = partial.get("target", edge.target)
        if source not in self._nodes:
            return OperationResult.failure(InvalidEndpoint(source, "source"))
        if target not in self._nodes:
            return OperationResult.failure(InvalidEndpoint(target, "target"))

        try:
            updated = Edge.model_validate({**edge.model_dump(), **partial})
        except ValidationError as e:
            return OperationResult.failure(self._field_error(e, "edge"))
        self._edges[edge_id] = updated
        if (source, target) != (edge.source, edge.target):
            self.structure_version += 1
        return OperationResult.success(updated.model_copy())

    # ------------------------------------------------------------------
    # Wholesale operations
    # ------------------------------------------------------------------

    def replace_contents(self, nodes: Iterable[Node], edges: Iterable[Edge]) -> None:
        """Overwrite the whole graph.

        Callers are expected to have validated ids and endpoints (the
        document serializer does); this only re-checks and raises, so a
        bad call never leaves a half-written graph.

        Raises:
            DuplicateId: If ids repeat
            InvalidEndpoint: If an edge references a missing node
        """
        new_nodes: Dict[str, Node] = {}
        for node in nodes:
            if node.id in new_nodes:
                raise DuplicateId("node", node.id)
            new_nodes[node.id] = node.model_copy(deep=True)

        new_edges: Dict[str, Edge] = {}
        for edge in edges:
            if edge.id in new_edges:
                raise DuplicateId("edge", edge.id)
            if edge.source not in new_nodes:
                raise InvalidEndpoint(edge.source, "source")
            if edge.target not in new_nodes:
                raise InvalidEndpoint(edge.target, "target")
            new_edges[edge.id] = edge.model_copy()

        self._nodes = new_nodes
        self._edges = new_edges
        self.structure_version += 1
        logger.debug(f"Replaced graph contents: {len(new_nodes)} nodes, {len(new_edges)} edges")

    def clear(self) -> None:
        self.replace_contents([], [])

    def seed(self) -> None:
        """Replace contents with the profile's seed graph."""
        self.replace_contents(self.profile.seed.nodes, self.profile.seed.edges)

    # ------------------------------------------------------------------
    # Queries (all return copies)
    # ------------------------------------------------------------------

    def get_node(self, node_id: str) -> Optional[Node]:
        node = self._nodes.get(node_id)
        return node.model_copy(deep=True) if node is not None else None

    def get_edge(self, edge_id: str) -> Optional[Edge]:
        edge = self._edges.get(edge_id)
        return edge.model_copy() if edge is not None else None

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def has_edge(self, edge_id: str) -> bool:
        return edge_id in self._edges

    def nodes(self) -> List[Node]:
        return [node.model_copy(deep=True) for node in self._nodes.values()]

    def edges(self) -> List[Edge]:
        return [edge.model_copy() for edge in self._edges.values()]

    def node_ids(self) -> List[str]:
        return list(self._nodes)

    def edge_ids(self) -> List[str]:
        return list(self._edges)

    def nodes_by_kind(self, kind: str) -> List[Node]:
        return self._select(lambda n: n.kind == kind)

    def nodes_by_status(self, status: str) -> List[Node]:
        return self._select(lambda n: n.data.status == status)

    def nodes_by_priority(self, priority: str) -> List[Node]:
        return self._select(lambda n: n.data.priority == priority)

    def nodes_by_tag(self, tag: str) -> List[Node]:
        return self._select(lambda n: tag in n.data.tags)

    def incident_edges(self, node_id: str) -> List[Edge]:
        """Edges whose source or target is ``node_id``."""
        return [
            edge.model_copy() for edge in self._edges.values()
            if edge.source == node_id or edge.target == node_id
        ]

    def has_edge_between(self, source: str, target: str) -> bool:
        return any(
            edge.source == source and edge.target == target
            for edge in self._edges.values()
        )

    def positions(self) -> Dict[str, Position]:
        return {node_id: node.position.model_copy() for node_id, node in self._nodes.items()}

    def stats(self) -> Dict[str, Any]:
        """Counts for dashboards: totals plus breakdowns by kind and status."""
        return {
            "node_count": len(self._nodes),
            "edge_count": len(self._edges),
            "by_kind": dict(Counter(n.kind for n in self._nodes.values())),
            "by_status": dict(Counter(n.data.status for n in self._nodes.values())),
            "self_loops": sum(1 for e in self._edges.values() if e.is_self_loop),
        }

    def to_networkx(self) -> nx.MultiDiGraph:
        """Build a NetworkX view of the graph.

        Nodes carry kind, display fields and position; edges are keyed by
        edge id and carry label/kind. Both are added in insertion order.
        """
        graph = nx.MultiDiGraph(profile=self.profile.name)
        for node in self._nodes.values():
            graph.add_node(
                node.id,
                kind=node.kind,
                name=node.data.name,
                description=node.data.description,
                status=node.data.status,
                priority=node.data.priority,
                tags=list(node.data.tags),
                x=node.position.x,
                y=node.position.y,
            )
        for edge in self._edges.values():
            attrs = {"id": edge.id}
            if edge.label is not None:
                attrs["label"] = edge.label
            if edge.kind is not None:
                attrs["kind"] = edge.kind
            graph.add_edge(edge.source, edge.target, key=edge.id, **attrs)
        return graph

    def iter_nodes(self):
        """Iterate stored nodes without copying. Read-only use only."""
        return iter(self._nodes.values())

    def iter_edges(self):
        """Iterate stored edges without copying. Read-only use only."""
        return iter(self._edges.values())

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __repr__(self) -> str:
        return (
            f"GraphModel(profile={self.profile.name!r}, "
            f"nodes={len(self._nodes)}, edges={len(self._edges)})"
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _select(self, predicate) -> List[Node]:
        return [node.model_copy(deep=True) for node in self._nodes.values() if predicate(node)]

    def _new_node_id(self) -> str:
        node_id = f"n_{uuid.uuid4().hex[:12]}"
        while node_id in self._nodes:
            node_id = f"n_{uuid.uuid4().hex[:12]}"
        return node_id

    def _new_edge_id(self, source: str, target: str) -> str:
        base = f"e{source}-{target}"
        edge_id = base
        suffix = 2
        while edge_id in self._edges:
            edge_id = f"{base}-{suffix}"
            suffix += 1
        return edge_id

    def _merge_data(
        self, base: NodeData, fields: Mapping[str, Any]
    ) -> Tuple[Optional[NodeData], Optional[GraphError]]:
        updates: Dict[str, Any] = {}
        nested = fields.get("data")
        if nested is not None:
            if isinstance(nested, NodeData):
                nested = nested.model_dump()
            if not isinstance(nested, Mapping):
                return None, InvalidField("data", nested)
            for key, value in nested.items():
                if key not in DATA_FIELDS:
                    return None, InvalidField(f"data.{key}", value, DATA_FIELDS)
                updates[key] = value
        for key in DATA_FIELDS:
            if key in fields:
                updates[key] = fields[key]

        if "status" in updates and not self.profile.allows_status(updates["status"]):
            return None, InvalidField("status", updates["status"], self.profile.statuses)
        if "priority" in updates and not self.profile.allows_priority(updates["priority"]):
            return None, InvalidField("priority", updates["priority"], self.profile.priorities)

        try:
            data = NodeData.model_validate({**base.model_dump(), **updates})
        except ValidationError as e:
            return None, self._field_error(e, "data")
        return data, None

    @staticmethod
    def _field_error(error: ValidationError, default: str) -> InvalidField:
        first = error.errors()[0]
        field_name = ".".join(str(part) for part in first["loc"]) or default
        return InvalidField(field_name, first.get("input"))

    @staticmethod
    def _coerce_position(value: Any) -> Tuple[Optional[Position], Optional[GraphError]]:
        if value is None:
            return Position(), None
        if isinstance(value, Position):
            return value.model_copy(), None
        if isinstance(value, (list, tuple)) and len(value) == 2:
            value = {"x": value[0], "y": value[1]}
        try:
            return Position.model_validate(value), None
        except ValidationError:
            return None, InvalidField("position", value)
