"""MCP tools for editing board graphs.

Provides tools to:
- Create boards from a profile (seeded, empty, or restored from storage)
- Add, update, connect, select and delete nodes and edges
- Filter nodes, auto-arrange and drag
- Export/import interchange documents and save/load through a BoardStore

Every open board is an InteractionController held in the ``boards`` dict
under its board id.
"""

import logging
from typing import Any, Dict, List, Optional
from uuid import uuid4

from mcp import Tool

from ..config.settings import STORAGE_DIR
from ..core.board_store import BoardStore, FileBoardStore
from ..layout.engines import DIRECTIONS
from ..managers.interaction_controller import InteractionController, create_board
from ..models.graph import Edge, Node
from ..models.profile import ProfileLoadError, list_profiles
from ..utils.response import error_response, result_response, success_response

logger = logging.getLogger(__name__)

_NODE_FIELD_PROPERTIES = {
    "name": {"type": "string", "description": "Node title"},
    "description": {"type": "string", "description": "Node description"},
    "status": {"type": "string", "description": "Status from the board profile"},
    "priority": {
        "type": "string",
        "enum": ["critical", "high", "medium", "low"],
        "description": "Priority bucket",
    },
    "tags": {"type": "array", "items": {"type": "string"}, "description": "Tags"},
}


def _node_dict(node: Node) -> Dict[str, Any]:
    return node.model_dump()


def _edge_dict(edge: Edge) -> Dict[str, Any]:
    return edge.to_dict()


def _board_id_property() -> Dict[str, Any]:
    return {"type": "string", "description": "ID of the open board"}


class BoardTools:
    """Provides board editing, layout and persistence tools."""

    def __init__(
        self,
        boards: Dict[str, InteractionController],
        store: Optional[BoardStore] = None,
    ):
        """Initialize with the open-board registry and a store.

        Args:
            boards: Open boards keyed by board id
            store: Board store (file store under STORAGE_DIR if not provided)
        """
        self.boards = boards
        self._store = store

    @property
    def store(self) -> BoardStore:
        """Lazy initialization of the file store."""
        if self._store is None:
            self._store = FileBoardStore(STORAGE_DIR)
        return self._store

    def get_tools(self) -> List[Tool]:
        """Return board MCP tools."""
        return [
            Tool(
                name="board_create",
                description="Open a new board for a profile (architecture or screen), seeded with the profile's starter graph",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "profile": {
                            "type": "string",
                            "description": "Profile name",
                            "default": "architecture"
                        },
                        "board_id": {
                            "type": "string",
                            "description": "Optional ID for the board (generated if omitted)"
                        },
                        "seed": {
                            "type": "boolean",
                            "description": "Start from the profile's seed graph",
                            "default": True
                        },
                        "restore": {
                            "type": "boolean",
                            "description": "Restore the board saved under the profile's storage key if present",
                            "default": False
                        }
                    }
                }
            ),
            Tool(
                name="board_list",
                description="List open boards, available profiles and stored board keys",
                inputSchema={"type": "object", "properties": {}}
            ),
            Tool(
                name="board_add_node",
                description="Add a node to a board",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "board_id": _board_id_property(),
                        "kind": {
                            "type": "string",
                            "description": "Node kind from the board profile"
                        },
                        **_NODE_FIELD_PROPERTIES,
                        "position": {
                            "type": "object",
                            "properties": {"x": {"type": "number"}, "y": {"type": "number"}},
                            "description": "Top-left position (defaults to 0,0)"
                        }
                    },
                    "required": ["board_id", "kind"]
                }
            ),
            Tool(
                name="board_update_node",
                description="Merge field updates into a node (name, description, status, priority, tags, kind, position)",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "board_id": _board_id_property(),
                        "node_id": {"type": "string", "description": "Node to update"},
                        "updates": {
                            "type": "object",
                            "description": "Fields to merge into the node"
                        }
                    },
                    "required": ["board_id", "node_id", "updates"]
                }
            ),
            Tool(
                name="board_connect",
                description="Connect two nodes with a directed edge. Self-loops and duplicate connections are rejected by default",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "board_id": _board_id_property(),
                        "source": {"type": "string", "description": "Source node ID"},
                        "target": {"type": "string", "description": "Target node ID"},
                        "label": {"type": "string", "description": "Optional edge label"}
                    },
                    "required": ["board_id", "source", "target"]
                }
            ),
            Tool(
                name="board_delete",
                description="Delete a node (and its edges) or an edge. Defaults to the selected node",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "board_id": _board_id_property(),
                        "item_id": {"type": "string", "description": "Node or edge ID"}
                    },
                    "required": ["board_id"]
                }
            ),
            Tool(
                name="board_select",
                description="Select a node, or clear the selection when node_id is omitted",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "board_id": _board_id_property(),
                        "node_id": {"type": "string", "description": "Node to select"}
                    },
                    "required": ["board_id"]
                }
            ),
            Tool(
                name="board_filter",
                description="Show only nodes matching kind/status/priority/tag. The graph is not modified",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "board_id": _board_id_property(),
                        "kind": {"type": "string"},
                        "status": {"type": "string"},
                        "priority": {"type": "string"},
                        "tag": {"type": "string"},
                        "clear": {
                            "type": "boolean",
                            "description": "Clear the active filter",
                            "default": False
                        }
                    },
                    "required": ["board_id"]
                }
            ),
            Tool(
                name="board_relayout",
                description="Auto-arrange the board with the layered layout and commit node positions",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "board_id": _board_id_property(),
                        "direction": {
                            "type": "string",
                            "enum": list(DIRECTIONS),
                            "description": "Flow direction (defaults to the board's current direction)"
                        },
                        "include_positions": {
                            "type": "boolean",
                            "description": "Include node positions in the response",
                            "default": True
                        }
                    },
                    "required": ["board_id"]
                }
            ),
            Tool(
                name="board_drag_node",
                description="Move a node to a new position",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "board_id": _board_id_property(),
                        "node_id": {"type": "string"},
                        "x": {"type": "number"},
                        "y": {"type": "number"}
                    },
                    "required": ["board_id", "node_id", "x", "y"]
                }
            ),
            Tool(
                name="board_export",
                description="Export a board as an interchange document (json) or GraphML",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "board_id": _board_id_property(),
                        "format": {
                            "type": "string",
                            "enum": ["json", "graphml"],
                            "default": "json"
                        }
                    },
                    "required": ["board_id"]
                }
            ),
            Tool(
                name="board_import",
                description="Replace a board's graph with an interchange document. The board is unchanged if the document is invalid",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "board_id": _board_id_property(),
                        "document": {
                            "type": ["object", "string"],
                            "description": "Document object or JSON text"
                        }
                    },
                    "required": ["board_id", "document"]
                }
            ),
            Tool(
                name="board_save",
                description="Save a board to the board store",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "board_id": _board_id_property(),
                        "key": {
                            "type": "string",
                            "description": "Storage key (defaults to the profile's storage key)"
                        }
                    },
                    "required": ["board_id"]
                }
            ),
            Tool(
                name="board_load",
                description="Load a stored board into an open board",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "board_id": _board_id_property(),
                        "key": {
                            "type": "string",
                            "description": "Storage key (defaults to the profile's storage key)"
                        }
                    },
                    "required": ["board_id"]
                }
            ),
        ]

    async def handle_tool(self, name: str, arguments: dict) -> dict:
        """Route tool call to appropriate handler.

        Args:
            name: Tool name
            arguments: Tool arguments

        Returns:
            Standardized response
        """
        handlers = {
            "board_create": self._create_board,
            "board_list": self._list_boards,
            "board_add_node": self._add_node,
            "board_update_node": self._update_node,
            "board_connect": self._connect,
            "board_delete": self._delete,
            "board_select": self._select,
            "board_filter": self._filter,
            "board_relayout": self._relayout,
            "board_drag_node": self._drag_node,
            "board_export": self._export,
            "board_import": self._import,
            "board_save": self._save,
            "board_load": self._load,
        }

        handler = handlers.get(name)
        if not handler:
            return error_response(f"Unknown board tool: {name}", code="UNKNOWN_TOOL")

        try:
            return await handler(arguments)
        except KeyError as e:
            return error_response(f"Missing required argument: {e}", code="MISSING_ARGUMENT")
        except ValueError as e:
            return error_response(str(e), code="INVALID_ARGUMENT")
        except Exception as e:
            logger.error(f"Error in {name}: {e}", exc_info=True)
            return error_response(str(e), code="TOOL_ERROR")

    def _board(self, args: dict) -> Optional[InteractionController]:
        return self.boards.get(args["board_id"])

    @staticmethod
    def _not_found(board_id: str) -> dict:
        return error_response(f"Board {board_id} not found", code="NOT_FOUND")

    async def _create_board(self, args: dict) -> dict:
        """Open a new board."""
        profile = args.get("profile", "architecture")
        board_id = args.get("board_id") or f"board_{uuid4().hex[:8]}"
        if board_id in self.boards:
            return error_response(f"Board {board_id} already exists", code="DUPLICATE_ID")

        try:
            controller = create_board(
                profile,
                seed=args.get("seed", True),
                store=self.store if args.get("restore", False) else None,
            )
        except ProfileLoadError as e:
            return error_response(str(e), code="UNKNOWN_PROFILE")

        # Attach the store after creation so save/load work on every board
        controller.store = self.store
        self.boards[board_id] = controller
        logger.info(f"Opened board {board_id} ({controller.profile.name})")

        return success_response({
            "board_id": board_id,
            "profile": controller.profile.name,
            "direction": controller.direction,
            "kinds": list(controller.profile.kinds),
            "statuses": list(controller.profile.statuses),
            **controller.graph.stats(),
        })

    async def _list_boards(self, args: dict) -> dict:
        """List open boards, profiles and stored keys."""
        boards = [
            {
                "board_id": board_id,
                "profile": controller.profile.name,
                "node_count": len(controller.graph),
                "edge_count": len(controller.graph.edge_ids()),
                "layout_stale": controller.layout_stale,
            }
            for board_id, controller in self.boards.items()
        ]
        return success_response({
            "boards": boards,
            "profiles": list_profiles(),
            "stored": self.store.list_keys(),
        })

    async def _add_node(self, args: dict) -> dict:
        controller = self._board(args)
        if controller is None:
            return self._not_found(args["board_id"])

        fields = {
            key: args[key] for key in ("name", "description", "status", "priority", "tags", "position")
            if key in args
        }
        result = controller.add_node(args["kind"], **fields)
        return result_response(result, _node_dict)

    async def _update_node(self, args: dict) -> dict:
        controller = self._board(args)
        if controller is None:
            return self._not_found(args["board_id"])

        result = controller.update_node(args["node_id"], **args["updates"])
        return result_response(result, _node_dict)

    async def _connect(self, args: dict) -> dict:
        controller = self._board(args)
        if controller is None:
            return self._not_found(args["board_id"])

        result = controller.connect(args["source"], args["target"], label=args.get("label"))
        return result_response(result, _edge_dict)

    async def _delete(self, args: dict) -> dict:
        controller = self._board(args)
        if controller is None:
            return self._not_found(args["board_id"])

        result = controller.delete_selected(args.get("item_id"))
        if result.value is None:
            return result_response(result)
        removed = result.value
        entity = "node" if isinstance(removed, Node) else "edge"
        return success_response({"deleted": entity, "id": removed.id})

    async def _select(self, args: dict) -> dict:
        controller = self._board(args)
        if controller is None:
            return self._not_found(args["board_id"])

        node = controller.select(args.get("node_id"))
        return success_response({"selected": _node_dict(node) if node else None})

    async def _filter(self, args: dict) -> dict:
        controller = self._board(args)
        if controller is None:
            return self._not_found(args["board_id"])

        if args.get("clear", False):
            controller.clear_filter()
            nodes = controller.visible_nodes()
        else:
            nodes = controller.apply_filter(
                kind=args.get("kind"),
                status=args.get("status"),
                priority=args.get("priority"),
                tag=args.get("tag"),
            )

        return success_response({
            "filter": controller.active_filter.describe() if controller.active_filter else None,
            "node_count": len(nodes),
            "node_ids": [node.id for node in nodes],
            "edge_ids": [edge.id for edge in controller.visible_edges()],
        })

    async def _relayout(self, args: dict) -> dict:
        controller = self._board(args)
        if controller is None:
            return self._not_found(args["board_id"])

        layout = controller.relayout(args.get("direction"))
        result = layout.summary()
        if args.get("include_positions", True):
            result["positions"] = {
                node_id: {"x": pos.x, "y": pos.y}
                for node_id, pos in layout.positions.items()
            }
            result["ranks"] = layout.rank_groups()
        return success_response(result)

    async def _drag_node(self, args: dict) -> dict:
        controller = self._board(args)
        if controller is None:
            return self._not_found(args["board_id"])

        result = controller.drag_node(args["node_id"], args["x"], args["y"])
        return result_response(result, _node_dict)

    async def _export(self, args: dict) -> dict:
        controller = self._board(args)
        if controller is None:
            return self._not_found(args["board_id"])

        export_format = args.get("format", "json")
        if export_format == "graphml":
            return success_response({
                "format": "graphml",
                "content": controller.serializer.to_graphml(controller.graph),
            })
        if export_format != "json":
            return error_response(f"Unknown export format: {export_format}", code="INVALID_ARGUMENT")
        return success_response({"format": "json", "document": controller.export_document()})

    async def _import(self, args: dict) -> dict:
        controller = self._board(args)
        if controller is None:
            return self._not_found(args["board_id"])

        result = controller.import_document(args["document"])
        return result_response(result, lambda graph: graph.stats())

    async def _save(self, args: dict) -> dict:
        controller = self._board(args)
        if controller is None:
            return self._not_found(args["board_id"])

        key = controller.save(args.get("key"))
        return success_response({"key": key, "node_count": len(controller.graph)})

    async def _load(self, args: dict) -> dict:
        controller = self._board(args)
        if controller is None:
            return self._not_found(args["board_id"])

        result = controller.load(args.get("key"))
        return result_response(result, lambda graph: graph.stats())
