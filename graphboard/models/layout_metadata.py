"""Layout metadata produced by layout engines.

A layout result carries everything a view needs to draw a board without
re-running the algorithm:
- Node positions (top-left corners) keyed by node id
- Rank and in-rank order of every node
- Edge routes with bend points through intermediate ranks
- The edges reversed during cycle breaking
- An overall bounding box

The etag is a SHA-256 over the canonical content and excludes timestamps,
so two runs over the same graph produce the same etag.
"""

import hashlib
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from graphboard.models.graph import Position

logger = logging.getLogger(__name__)

Point = Tuple[float, float]


class BoundingBox(BaseModel):
    """Bounding box around a set of node boxes.

    Attributes:
        min_x: Minimum x coordinate
        max_x: Maximum x coordinate
        min_y: Minimum y coordinate
        max_y: Maximum y coordinate
    """

    min_x: float = Field(..., description="Minimum x coordinate")
    max_x: float = Field(..., description="Maximum x coordinate")
    min_y: float = Field(..., description="Minimum y coordinate")
    max_y: float = Field(..., description="Maximum y coordinate")

    @property
    def width(self) -> float:
        """Computed width of bounding box."""
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        """Computed height of bounding box."""
        return self.max_y - self.min_y

    @classmethod
    def from_positions(
        cls,
        positions: Dict[str, Position],
        width: float = 0.0,
        height: float = 0.0,
    ) -> "BoundingBox":
        """Compute bounding box from top-left positions of equally sized boxes.

        Raises:
            ValueError: If positions is empty
        """
        if not positions:
            raise ValueError("Cannot compute bounding box from empty positions")

        x_coords = [pos.x for pos in positions.values()]
        y_coords = [pos.y for pos in positions.values()]

        return cls(
            min_x=min(x_coords),
            max_x=max(x_coords) + width,
            min_y=min(y_coords),
            max_y=max(y_coords) + height,
        )


class EdgeRoute(BaseModel):
    """Polyline for one edge: source center, bend points, target center."""

    source: str = Field(..., description="Source node id")
    target: str = Field(..., description="Target node id")
    points: List[Point] = Field(default_factory=list, description="Route points in order")
    reversed: bool = Field(
        default=False, description="True if the edge was a back edge during cycle breaking"
    )

    @property
    def bend_points(self) -> List[Point]:
        return self.points[1:-1]


class LayoutMetadata(BaseModel):
    """Result of one layout run.

    Attributes:
        algorithm: Engine name (e.g. 'layered')
        direction: Flow direction (TB, BT, LR, RL)
        layout_options: Options the engine ran with
        positions: Node id -> top-left position
        ranks: Node id -> rank index
        order: Node id -> index within its rank (virtual nodes included)
        back_edges: Ids of edges reversed to break cycles
        edges: Edge id -> route (self-loops omitted)
        crossings: Edge crossings left after ordering
        sweeps: Ordering sweeps actually run
        bounding_box: Box around all node boxes (None for empty graphs)
        created_at: ISO 8601 creation timestamp
        etag: SHA-256 of canonical content
    """

    algorithm: str = Field(..., description="Layout algorithm used")
    direction: str = Field(default="TB", description="Flow direction")
    layout_options: Dict[str, Any] = Field(default_factory=dict)
    positions: Dict[str, Position] = Field(default_factory=dict)
    ranks: Dict[str, int] = Field(default_factory=dict)
    order: Dict[str, int] = Field(default_factory=dict)
    back_edges: List[str] = Field(default_factory=list)
    edges: Dict[str, EdgeRoute] = Field(default_factory=dict)
    crossings: int = Field(default=0)
    sweeps: int = Field(default=0)
    bounding_box: Optional[BoundingBox] = Field(default=None)
    created_at: Optional[str] = Field(default=None)
    etag: Optional[str] = Field(default=None)

    def model_post_init(self, __context) -> None:
        """Stamp creation time and etag if not provided."""
        if self.created_at is None:
            object.__setattr__(self, "created_at", datetime.now(timezone.utc).isoformat())
        if self.etag is None:
            object.__setattr__(self, "etag", self.compute_etag())

    def compute_etag(self) -> str:
        """Compute SHA-256 etag from canonical content (excludes timestamps)."""
        canonical = {
            "algorithm": self.algorithm,
            "direction": self.direction,
            "layout_options": dict(sorted(self.layout_options.items())),
            "positions": {
                k: v.model_dump() for k, v in sorted(self.positions.items())
            },
            "ranks": dict(sorted(self.ranks.items())),
            "order": dict(sorted(self.order.items())),
            "back_edges": sorted(self.back_edges),
            "edges": {
                k: v.model_dump() for k, v in sorted(self.edges.items())
            },
        }
        canonical_json = json.dumps(canonical, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical_json.encode()).hexdigest()

    def rank_groups(self) -> Dict[int, List[str]]:
        """Real node ids per rank, in layout order."""
        groups: Dict[int, List[str]] = {}
        for node_id in sorted(self.ranks, key=lambda n: (self.ranks[n], self.order.get(n, 0))):
            groups.setdefault(self.ranks[node_id], []).append(node_id)
        return groups

    def summary(self) -> Dict[str, Any]:
        """Compact description for tool responses and logs."""
        box = self.bounding_box
        return {
            "algorithm": self.algorithm,
            "direction": self.direction,
            "node_count": len(self.positions),
            "edge_count": len(self.edges),
            "rank_count": len(set(self.ranks.values())),
            "back_edges": list(self.back_edges),
            "crossings": self.crossings,
            "sweeps": self.sweeps,
            "bounding_box": {
                "min_x": box.min_x,
                "max_x": box.max_x,
                "min_y": box.min_y,
                "max_y": box.max_y,
                "width": box.width,
                "height": box.height,
            } if box else None,
            "etag": self.etag[:16] + "..." if self.etag else None,
        }


__all__ = [
    "BoundingBox",
    "EdgeRoute",
    "LayoutMetadata",
]
