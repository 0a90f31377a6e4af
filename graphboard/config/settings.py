"""
Configuration and Feature Flags for graph boards

Layout defaults, storage location and editor policy flags are read from
environment variables once at import time, so a deployment can tune them
without code changes.

Usage:
    from graphboard.config.settings import is_enabled, LAYOUT_DEFAULTS

    if is_enabled('allow_self_loops'):
        ...

Environment Variables:
    GRAPHBOARD_RANK_SEPARATION=...   - Fixed distance between rank lines
    GRAPHBOARD_RANK_GAP=100          - Gap between rank boxes when no fixed distance is set
    GRAPHBOARD_NODE_SEPARATION=50   - Gap between neighbouring nodes in a rank
    GRAPHBOARD_EDGE_SEPARATION=10    - Gap after a virtual edge node
    GRAPHBOARD_NODE_WIDTH=200        - Default node box width
    GRAPHBOARD_NODE_HEIGHT=100       - Default node box height
    GRAPHBOARD_MAX_SWEEPS=8          - Crossing-reduction sweep budget
    GRAPHBOARD_STORAGE_DIR=...       - Directory for FileBoardStore
    GRAPHBOARD_LOG_LEVEL=INFO        - Log level for the MCP server
    GRAPHBOARD_ALLOW_SELF_LOOPS=true/false
    GRAPHBOARD_ALLOW_DUPLICATE_EDGES=true/false
"""

import os
from typing import Any, Dict, Optional


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


def _env_optional_float(name: str) -> Optional[float]:
    value = os.getenv(name)
    return float(value) if value else None


def _env_flag(name: str, default: str = 'false') -> bool:
    return os.getenv(name, default).lower() == 'true'


# Spacing follows the board views: 200x100 node boxes, 100 units between
# rank boxes and 50 between siblings.
LAYOUT_DEFAULTS: Dict[str, Any] = {
    'rank_separation': _env_optional_float('GRAPHBOARD_RANK_SEPARATION'),
    'rank_gap': _env_float('GRAPHBOARD_RANK_GAP', 100.0),
    'node_separation': _env_float('GRAPHBOARD_NODE_SEPARATION', 50.0),
    'edge_separation': _env_float('GRAPHBOARD_EDGE_SEPARATION', 10.0),
    'node_width': _env_float('GRAPHBOARD_NODE_WIDTH', 200.0),
    'node_height': _env_float('GRAPHBOARD_NODE_HEIGHT', 100.0),
    'max_sweeps': int(os.getenv('GRAPHBOARD_MAX_SWEEPS', '8')),
}

STORAGE_DIR: str = os.getenv(
    'GRAPHBOARD_STORAGE_DIR',
    os.path.join(os.path.expanduser('~'), '.graphboard'),
)

LOG_LEVEL: str = os.getenv('GRAPHBOARD_LOG_LEVEL', 'INFO').upper()

DOCUMENT_VERSION = "1.0"


# Feature flags with environment variable overrides
FEATURE_FLAGS: Dict[str, bool] = {
    # Editor connect policy
    'allow_self_loops': _env_flag('GRAPHBOARD_ALLOW_SELF_LOOPS'),
    'allow_duplicate_edges': _env_flag('GRAPHBOARD_ALLOW_DUPLICATE_EDGES'),
}


def is_enabled(flag: str) -> bool:
    """
    Check if a feature flag is enabled.

    Args:
        flag: Feature flag name (e.g., 'allow_self_loops')

    Returns:
        True if flag is enabled, False otherwise

    Raises:
        KeyError: If flag name is not recognized
    """
    if flag not in FEATURE_FLAGS:
        available = ', '.join(FEATURE_FLAGS.keys())
        raise KeyError(
            f"Unknown feature flag: '{flag}'. "
            f"Available flags: {available}"
        )

    return FEATURE_FLAGS[flag]


def get_all_flags() -> Dict[str, bool]:
    """Get all feature flags and their current state."""
    return FEATURE_FLAGS.copy()


def set_flag(flag: str, enabled: bool) -> None:
    """
    Programmatically set a feature flag (for testing only).

    Args:
        flag: Feature flag name
        enabled: True to enable, False to disable
    """
    if flag not in FEATURE_FLAGS:
        available = ', '.join(FEATURE_FLAGS.keys())
        raise KeyError(
            f"Unknown feature flag: '{flag}'. "
            f"Available flags: {available}"
        )

    FEATURE_FLAGS[flag] = enabled
