"""Layout module for automatic board positioning.

This module provides:
- Layout engine abstraction (LayoutEngine)
- Layered engine with deterministic ranking and ordering
"""

from graphboard.layout.engines import (
    DIRECTIONS,
    LayoutEngine,
    LayeredLayoutEngine,
    LayeredLayoutOptions,
    get_engine,
)

__all__ = [
    "DIRECTIONS",
    "LayoutEngine",
    "LayeredLayoutEngine",
    "LayeredLayoutOptions",
    "get_engine",
]
