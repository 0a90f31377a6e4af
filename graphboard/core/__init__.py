"""
Core Layer - graph model, error taxonomy and storage

Modules:
- errors: recoverable error classes and OperationResult
- graph_model: typed directed graph with referential integrity
- board_store: persistence collaborator for interchange documents
"""

from .errors import (
    BoardNotFound,
    ConnectionRejected,
    DuplicateId,
    GraphError,
    InvalidDocument,
    InvalidEndpoint,
    InvalidField,
    OperationResult,
)
from .graph_model import GraphModel
from .board_store import (
    BoardStore,
    FileBoardStore,
    InMemoryBoardStore,
    create_board_store,
)

__all__ = [
    # Errors
    "GraphError",
    "InvalidEndpoint",
    "InvalidDocument",
    "DuplicateId",
    "InvalidField",
    "ConnectionRejected",
    "BoardNotFound",
    "OperationResult",

    # Graph
    "GraphModel",

    # Storage
    "BoardStore",
    "InMemoryBoardStore",
    "FileBoardStore",
    "create_board_store",
]
