"""Shared fixtures for graph board tests."""

import pytest

from graphboard.config import settings
from graphboard.core.board_store import InMemoryBoardStore
from graphboard.core.graph_model import GraphModel
from graphboard.models.profile import load_profile


def build_graph(node_ids, edges, profile="architecture", kind=None):
    """Build a graph with explicit ids; edges are (source, target) pairs."""
    graph = GraphModel(load_profile(profile))
    kind = kind or graph.profile.kinds[0]
    for node_id in node_ids:
        graph.add_node({"id": node_id, "kind": kind}).unwrap()
    for source, target in edges:
        graph.add_edge(source, target).unwrap()
    return graph


@pytest.fixture
def make_graph():
    """Factory: make_graph(node_ids, edges, profile="architecture")."""
    return build_graph


@pytest.fixture
def graph():
    """Empty graph with the architecture profile."""
    return GraphModel()


@pytest.fixture
def diamond():
    """A -> B, A -> C, B -> D, C -> D."""
    return build_graph(
        ["A", "B", "C", "D"],
        [("A", "B"), ("A", "C"), ("B", "D"), ("C", "D")],
    )


@pytest.fixture
def two_cycle():
    """A -> B, B -> A."""
    return build_graph(["A", "B"], [("A", "B"), ("B", "A")])


@pytest.fixture
def store():
    return InMemoryBoardStore()


@pytest.fixture(autouse=True)
def reset_feature_flags():
    """Restore feature flags after each test."""
    saved = settings.get_all_flags()
    yield
    for flag, enabled in saved.items():
        settings.set_flag(flag, enabled)
