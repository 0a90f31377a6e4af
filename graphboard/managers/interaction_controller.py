"""
InteractionController - editor actions over one board graph.

Translates editor gestures (select, connect, delete, filter, drag,
auto-arrange) into GraphModel mutations and layout runs. The controller is
bound to exactly one graph; view state (selection, active filter, last
layout) lives here and never leaks into the graph itself.

Design decisions:
- Connect policy (self-loops, duplicate pairs) is enforced here, not in the
  model, so imports and scripts can still build any multigraph
- relayout computes the full position map first, then commits it node by
  node through GraphModel.update_node
- Persistence is an explicit snapshot handed to a BoardStore under the
  profile's storage key
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

from graphboard.config.settings import is_enabled
from graphboard.converters.document_converter import DocumentInput, DocumentSerializer
from graphboard.core.board_store import BoardStore
from graphboard.core.errors import (
    BoardNotFound,
    ConnectionRejected,
    InvalidDocument,
    OperationResult,
)
from graphboard.core.graph_model import GraphModel
from graphboard.layout.engines import LayeredLayoutEngine, LayoutEngine
from graphboard.models.graph import Edge, Node
from graphboard.models.layout_metadata import LayoutMetadata
from graphboard.models.profile import GraphProfile, load_profile

logger = logging.getLogger(__name__)

NodePredicate = Callable[[Node], bool]


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class ConnectPolicy:
    """Which connections an editor may create."""
    allow_self_loops: bool = field(default_factory=lambda: is_enabled('allow_self_loops'))
    allow_duplicates: bool = field(default_factory=lambda: is_enabled('allow_duplicate_edges'))


@dataclass(frozen=True)
class NodeFilter:
    """Criteria of the active node filter. Unset criteria match everything."""
    kind: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    tag: Optional[str] = None
    predicate: Optional[NodePredicate] = None

    def matches(self, node: Node) -> bool:
        if self.kind is not None and node.kind != self.kind:
            return False
        if self.status is not None and node.data.status != self.status:
            return False
        if self.priority is not None and node.data.priority != self.priority:
            return False
        if self.tag is not None and self.tag not in node.data.tags:
            return False
        if self.predicate is not None and not self.predicate(node):
            return False
        return True

    def describe(self) -> Dict[str, Any]:
        criteria = {
            "kind": self.kind,
            "status": self.status,
            "priority": self.priority,
            "tag": self.tag,
        }
        result = {k: v for k, v in criteria.items() if v is not None}
        if self.predicate is not None:
            result["predicate"] = getattr(self.predicate, "__name__", "predicate")
        return result


# ============================================================================
# Controller
# ============================================================================

class InteractionController:
    """Editor-facing operations on a single GraphModel.

    Example:
        controller = create_board("architecture")
        edge = controller.connect("1", "2").unwrap()
        controller.relayout("LR")
        controller.save()
    """

    def __init__(
        self,
        graph: GraphModel,
        engine: Optional[LayoutEngine] = None,
        serializer: Optional[DocumentSerializer] = None,
        store: Optional[BoardStore] = None,
        policy: Optional[ConnectPolicy] = None,
        autosave: bool = False,
    ):
        """Bind a controller to a graph.

        Args:
            graph: The board graph this controller edits
            engine: Layout engine (layered engine with default options if omitted)
            serializer: Document serializer for export/import/persistence
            store: Persistence collaborator, required for save/load
            policy: Connect policy (feature-flag defaults if omitted)
            autosave: Save to the store after every successful mutation
        """
        self.graph = graph
        self.engine = engine or LayeredLayoutEngine()
        self.serializer = serializer or DocumentSerializer()
        self.store = store
        self.policy = policy or ConnectPolicy()
        self.autosave = autosave

        self.direction: str = graph.profile.default_direction
        self.selected_id: Optional[str] = None
        self.active_filter: Optional[NodeFilter] = None
        self.last_layout: Optional[LayoutMetadata] = None
        self._layout_version: Optional[int] = None

    @property
    def profile(self) -> GraphProfile:
        return self.graph.profile

    @property
    def layout_stale(self) -> bool:
        """True when the structure changed since the last relayout."""
        return self._layout_version != self.graph.structure_version

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select(self, node_id: Optional[str]) -> Optional[Node]:
        """Select a node; unknown ids and None clear the selection."""
        if node_id is None or not self.graph.has_node(node_id):
            self.selected_id = None
            return None
        self.selected_id = node_id
        return self.graph.get_node(node_id)

    @property
    def selected(self) -> Optional[Node]:
        if self.selected_id is None:
            return None
        return self.graph.get_node(self.selected_id)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_node(self, kind: str, **fields) -> OperationResult[Node]:
        """Add a node of ``kind``; ``fields`` as accepted by GraphModel.add_node."""
        result = self.graph.add_node({"kind": kind, **fields})
        if not result.ok:
            logger.warning(f"Add node rejected: {result.error}")
            return result
        self._after_mutation()
        return result

    def update_node(self, node_id: str, **fields) -> OperationResult[Node]:
        result = self.graph.update_node(node_id, fields)
        if not result.ok:
            logger.warning(f"Update of node {node_id} rejected: {result.error}")
        elif result.value is not None:
            self._after_mutation()
        return result

    def update_edge(self, edge_id: str, **fields) -> OperationResult[Edge]:
        result = self.graph.update_edge(edge_id, fields)
        if not result.ok:
            logger.warning(f"Update of edge {edge_id} rejected: {result.error}")
        elif result.value is not None:
            self._after_mutation()
        return result

    def connect(
        self, source: str, target: str, label: Optional[str] = None
    ) -> OperationResult[Edge]:
        """Create an edge subject to the connect policy.

        Missing endpoints are reported as InvalidEndpoint by the model;
        self-loops and repeated (source, target) pairs are refused with
        ConnectionRejected unless the policy allows them.
        """
        if self.graph.has_node(source) and self.graph.has_node(target):
            reason = None
            if source == target and not self.policy.allow_self_loops:
                reason = "self-loops are not allowed"
            elif not self.policy.allow_duplicates and self.graph.has_edge_between(source, target):
                reason = "an edge between these nodes already exists"
            if reason is not None:
                error = ConnectionRejected(source, target, reason)
                logger.warning(str(error))
                return OperationResult.failure(error)

        result = self.graph.add_edge(source, target, label=label)
        if not result.ok:
            logger.warning(f"Connect rejected: {result.error}")
            return result
        self._after_mutation()
        return result

    def delete_selected(self, item_id: Optional[str] = None) -> OperationResult[Union[Node, Edge]]:
        """Delete a node (with its edges) or an edge.

        Args:
            item_id: Node or edge id; defaults to the current selection

        Returns:
            Success with the removed entity, or success(None) when there was
            nothing to delete
        """
        target_id = item_id if item_id is not None else self.selected_id
        if target_id is None:
            return OperationResult.success(None)

        removed: Optional[Union[Node, Edge]] = None
        if self.graph.has_node(target_id):
            removed = self.graph.remove_node(target_id)
        elif self.graph.has_edge(target_id):
            removed = self.graph.remove_edge(target_id)

        if self.selected_id is not None and not self.graph.has_node(self.selected_id):
            self.selected_id = None
        if removed is not None:
            logger.debug(f"Deleted {target_id}")
            self._after_mutation()
        return OperationResult.success(removed)

    def drag_node(self, node_id: str, x: float, y: float) -> OperationResult[Node]:
        """Move a node; the next relayout may move it again."""
        return self.update_node(node_id, position={"x": x, "y": y})

    # ------------------------------------------------------------------
    # Filtering (view state only)
    # ------------------------------------------------------------------

    def apply_filter(
        self,
        kind: Optional[str] = None,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        tag: Optional[str] = None,
        predicate: Optional[NodePredicate] = None,
    ) -> List[Node]:
        """Set the active filter and return the matching nodes.

        The graph is not modified; hidden nodes keep their edges and positions.
        """
        node_filter = NodeFilter(kind, status, priority, tag, predicate)
        self.active_filter = node_filter
        return self._filtered(node_filter)

    def clear_filter(self) -> None:
        self.active_filter = None

    def visible_nodes(self) -> List[Node]:
        if self.active_filter is None:
            return self.graph.nodes()
        return self._filtered(self.active_filter)

    def visible_edges(self) -> List[Edge]:
        """Edges whose endpoints are both visible."""
        if self.active_filter is None:
            return self.graph.edges()
        visible = {node.id for node in self.visible_nodes()}
        return [
            edge for edge in self.graph.edges()
            if edge.source in visible and edge.target in visible
        ]

    def _filtered(self, node_filter: NodeFilter) -> List[Node]:
        if node_filter.kind is not None:
            candidates = self.graph.nodes_by_kind(node_filter.kind)
        elif node_filter.status is not None:
            candidates = self.graph.nodes_by_status(node_filter.status)
        else:
            candidates = self.graph.nodes()
        return [node for node in candidates if node_filter.matches(node)]

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    def relayout(self, direction: Optional[str] = None) -> LayoutMetadata:
        """Lay out the whole graph and commit every node position.

        Args:
            direction: TB, BT, LR or RL; defaults to the last direction used

        Raises:
            ValueError: If direction is unknown
        """
        direction = self.engine.normalize_direction(direction or self.direction)
        layout = self.engine.layout(self.graph, direction)

        for node_id, position in layout.positions.items():
            self.graph.update_node(node_id, {"position": position})

        self.direction = direction
        self.last_layout = layout
        self._layout_version = self.graph.structure_version
        logger.info(f"Relayout committed {len(layout.positions)} positions ({direction})")
        self._after_mutation()
        return layout

    # ------------------------------------------------------------------
    # Documents and persistence
    # ------------------------------------------------------------------

    def export_document(self) -> Dict[str, Any]:
        return self.serializer.export(self.graph)

    def import_document(self, document: DocumentInput) -> OperationResult[GraphModel]:
        """Replace the graph with a document; untouched if it is rejected."""
        result = self.serializer.load_into(self.graph, document)
        if not result.ok:
            return result
        self.selected_id = None
        self.last_layout = None
        self._layout_version = None
        self._after_mutation()
        return result

    def save(self, key: Optional[str] = None) -> str:
        """Hand a snapshot to the store.

        Returns:
            The key the board was saved under

        Raises:
            RuntimeError: If the controller has no store
            ValueError: If the key is not a valid store key
        """
        store = self._require_store()
        key = key or self.profile.storage_key
        store.save(key, self.export_document())
        logger.info(f"Saved board {key} ({len(self.graph)} nodes)")
        return key

    def load(self, key: Optional[str] = None) -> OperationResult[GraphModel]:
        """Replace the graph with the document stored under ``key``.

        A missing key fails with BoardNotFound; unreadable stored data fails
        with InvalidDocument. The graph is left untouched in both cases.
        """
        store = self._require_store()
        key = key or self.profile.storage_key
        try:
            document = store.load(key)
        except InvalidDocument as e:
            logger.warning(str(e))
            return OperationResult.failure(e)
        if document is None:
            error = BoardNotFound(key)
            logger.warning(str(error))
            return OperationResult.failure(error)
        result = self.serializer.load_into(self.graph, document)
        if result.ok:
            self.selected_id = None
            self.last_layout = None
            self._layout_version = None
        return result

    def _require_store(self) -> BoardStore:
        if self.store is None:
            raise RuntimeError("No board store configured for this controller")
        return self.store

    def _after_mutation(self) -> None:
        if self.autosave and self.store is not None:
            self.save()

    def __repr__(self) -> str:
        return f"InteractionController({self.graph!r}, direction={self.direction!r})"


def create_board(
    profile: Union[str, GraphProfile] = "architecture",
    seed: bool = True,
    store: Optional[BoardStore] = None,
    engine: Optional[LayoutEngine] = None,
    policy: Optional[ConnectPolicy] = None,
    autosave: bool = False,
) -> InteractionController:
    """Create a controller over a new board.

    A board previously saved under the profile's storage key is restored;
    otherwise the board starts from the profile's seed graph (or empty when
    ``seed`` is False).
    """
    graph_profile = load_profile(profile) if isinstance(profile, str) else profile
    graph = GraphModel(graph_profile)
    controller = InteractionController(
        graph, engine=engine, store=store, policy=policy, autosave=autosave
    )

    if store is not None and store.exists(graph_profile.storage_key):
        result = controller.load()
        if result.ok:
            return controller
        logger.warning(
            f"Stored board {graph_profile.storage_key} could not be restored: {result.error}"
        )

    if seed:
        graph.seed()
    logger.info(f"Created {graph_profile.name} board with {len(graph)} nodes")
    return controller
