"""Typed directed graph boards with layered auto-layout.

Quick start:
    from graphboard.managers import create_board

    board = create_board("architecture")
    board.connect("1", "6")
    board.relayout("TB")
"""

__version__ = "0.1.0"
