"""
Manager components for graph boards.
"""

from .interaction_controller import (
    ConnectPolicy,
    InteractionController,
    NodeFilter,
    create_board,
)

__all__ = [
    'ConnectPolicy',
    'InteractionController',
    'NodeFilter',
    'create_board',
]
