"""Base layout engine protocol.

Defines the interface that all layout engines must implement.
"""

from abc import ABC, abstractmethod

from graphboard.core.graph_model import GraphModel
from graphboard.models.layout_metadata import LayoutMetadata

DIRECTIONS = ("TB", "BT", "LR", "RL")


class LayoutEngine(ABC):
    """Abstract base class for layout engines.

    Layout engines read a GraphModel snapshot and return positioned layout
    metadata. They never write to the graph; committing positions is the
    caller's job.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Engine name (e.g., 'layered')."""
        ...

    @abstractmethod
    def layout(self, graph: GraphModel, direction: str = "TB") -> LayoutMetadata:
        """Compute layout for a graph.

        Args:
            graph: Graph to layout
            direction: One of TB, BT, LR, RL

        Returns:
            LayoutMetadata with positions, ranks and edge routes
        """
        ...

    def is_available(self) -> bool:
        """Check if engine is available (dependencies installed)."""
        return True

    @staticmethod
    def normalize_direction(direction: str) -> str:
        """Upper-case and validate a direction.

        Raises:
            ValueError: If direction is not one of TB, BT, LR, RL
        """
        value = (direction or "").upper()
        if value not in DIRECTIONS:
            raise ValueError(f"Unknown layout direction: {direction}. Available: {list(DIRECTIONS)}")
        return value
