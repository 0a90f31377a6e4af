"""Schemas for board graphs, profiles and layout results.

Everything here is a pydantic model so documents, profiles and layouts are
validated on the way in and dumped deterministically on the way out.
"""

from .graph import PRIORITIES, Edge, Node, NodeData, Position
from .layout_metadata import BoundingBox, EdgeRoute, LayoutMetadata
from .profile import (
    GraphProfile,
    ProfileLoadError,
    SeedGraph,
    list_profiles,
    load_profile,
)

__all__ = [
    # Graph entities
    "PRIORITIES",
    "Position",
    "NodeData",
    "Node",
    "Edge",

    # Layout results
    "BoundingBox",
    "EdgeRoute",
    "LayoutMetadata",

    # Profiles
    "GraphProfile",
    "ProfileLoadError",
    "SeedGraph",
    "list_profiles",
    "load_profile",
]
