"""Layout engines registry.

Available engines:
- layered: Sugiyama-style layered layout (cycle breaking, longest-path
  ranking, median crossing reduction)
"""

from graphboard.layout.engines.base import DIRECTIONS, LayoutEngine
from graphboard.layout.engines.layered import LayeredLayoutEngine, LayeredLayoutOptions

# Engine registry
ENGINES = {
    "layered": LayeredLayoutEngine,
}


def get_engine(name: str) -> type:
    """Get layout engine class by name.

    Args:
        name: Engine name ('layered')

    Returns:
        Layout engine class

    Raises:
        ValueError: If engine not found
    """
    if name not in ENGINES:
        raise ValueError(f"Unknown layout engine: {name}. Available: {list(ENGINES.keys())}")
    return ENGINES[name]


__all__ = [
    "DIRECTIONS",
    "LayoutEngine",
    "LayeredLayoutEngine",
    "LayeredLayoutOptions",
    "ENGINES",
    "get_engine",
]
