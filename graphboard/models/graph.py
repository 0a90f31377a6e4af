"""Node and edge schemas for board graphs.

These pydantic models are the stored form of graph entities and match the
interchange document field for field:

    node: {"id", "kind", "position": {"x", "y"},
           "data": {"name", "description", "status", "priority", "tags"}}
    edge: {"id", "source", "target", "label"?, "kind"?}

Status, priority and tags are display metadata. Layout reads only ids and
edge endpoints.
"""

import logging
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

PRIORITIES = ("critical", "high", "medium", "low")


class Position(BaseModel):
    """Top-left corner of a node box in board coordinates."""

    x: float = Field(default=0.0, description="Horizontal coordinate")
    y: float = Field(default=0.0, description="Vertical coordinate")

    def to_tuple(self):
        return (self.x, self.y)


class NodeData(BaseModel):
    """Display payload of a node."""

    name: str = Field(default="", description="Node title")
    description: str = Field(default="", description="Free text description")
    status: str = Field(default="planned", description="Workflow status")
    priority: str = Field(default="medium", description="Priority bucket")
    tags: List[str] = Field(default_factory=list, description="Tag set")

    @field_validator("tags")
    @classmethod
    def dedupe_tags(cls, v: List[str]) -> List[str]:
        """Tags behave as a set; keep first occurrence order for stable output."""
        seen = []
        for tag in v:
            if tag not in seen:
                seen.append(tag)
        return seen


class Node(BaseModel):
    """A typed graph node.

    Attributes:
        id: Opaque identifier, stable for the node's lifetime
        kind: Member of the owning graph profile's kind set
        position: Last layout or drag position
        data: Display payload
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1, description="Node identifier")
    kind: str = Field(
        ...,
        validation_alias=AliasChoices("kind", "type"),
        description="Node category",
    )
    position: Position = Field(default_factory=Position)
    data: NodeData = Field(default_factory=NodeData)

    @property
    def name(self) -> str:
        return self.data.name

    @property
    def status(self) -> str:
        return self.data.status

    @property
    def priority(self) -> str:
        return self.data.priority

    @property
    def tags(self) -> List[str]:
        return self.data.tags


class Edge(BaseModel):
    """A directed edge between two nodes.

    ``kind`` is a rendering hint (for example ``smoothstep``); legacy
    documents carry it under ``type``.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1, description="Edge identifier")
    source: str = Field(..., min_length=1, description="Source node id")
    target: str = Field(..., min_length=1, description="Target node id")
    label: Optional[str] = Field(default=None, description="Edge caption")
    kind: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("kind", "type"),
        description="Rendering hint",
    )

    @property
    def is_self_loop(self) -> bool:
        return self.source == self.target

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


__all__ = [
    "PRIORITIES",
    "Position",
    "NodeData",
    "Node",
    "Edge",
]
