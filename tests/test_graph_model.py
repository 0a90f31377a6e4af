"""Tests for GraphModel: CRUD, referential integrity, cascade and queries."""

import random

import networkx as nx
import pytest

from graphboard.core.errors import (
    DuplicateId,
    InvalidEndpoint,
    InvalidField,
    OperationResult,
)
from graphboard.core.graph_model import GraphModel
from graphboard.models.graph import Edge, Node
from graphboard.models.profile import load_profile


def assert_integrity(graph: GraphModel):
    node_ids = set(graph.node_ids())
    for edge in graph.edges():
        assert edge.source in node_ids
        assert edge.target in node_ids
    assert len(node_ids) == len(graph.node_ids())
    assert len(set(graph.edge_ids())) == len(graph.edge_ids())


class TestAddNode:
    """Test node creation."""

    def test_defaults_from_profile(self, graph):
        node = graph.add_node({"kind": "feature"}).unwrap()
        assert node.id.startswith("n_")
        assert len(node.id) == 14
        assert node.data.name == "New feature"
        assert node.data.description == "Description for new feature"
        assert node.data.status == "planned"
        assert node.data.priority == "medium"
        assert node.data.tags == []
        assert node.position.to_tuple() == (0.0, 0.0)

    def test_flat_and_nested_fields(self, graph):
        node = graph.add_node({
            "kind": "api",
            "name": "Sessions API",
            "data": {"priority": "high", "tags": ["REST", "REST", "Auth"]},
            "position": {"x": 10, "y": 20},
        }).unwrap()
        assert node.name == "Sessions API"
        assert node.priority == "high"
        assert node.tags == ["REST", "Auth"]
        assert node.position.to_tuple() == (10.0, 20.0)

    def test_generated_ids_are_unique(self, graph):
        ids = {graph.add_node({"kind": "feature"}).unwrap().id for _ in range(50)}
        assert len(ids) == 50

    def test_explicit_id_collision_rejected(self, graph):
        graph.add_node({"id": "A", "kind": "feature"}).unwrap()
        result = graph.add_node({"id": "A", "kind": "screen"})
        assert not result.ok
        assert isinstance(result.error, DuplicateId)
        assert result.error.entity_id == "A"
        assert len(graph) == 1

    @pytest.mark.parametrize("fields,field_name", [
        ({"kind": "rocket"}, "kind"),
        ({"kind": "feature", "status": "shipped"}, "status"),
        ({"kind": "feature", "priority": "urgent"}, "priority"),
    ])
    def test_vocabulary_checked(self, graph, fields, field_name):
        result = graph.add_node(fields)
        assert not result.ok
        assert isinstance(result.error, InvalidField)
        assert result.error.field_name == field_name
        assert len(graph) == 0

    def test_legacy_type_key(self, graph):
        node = graph.add_node({"type": "screen"}).unwrap()
        assert node.kind == "screen"

    def test_screen_profile_vocabulary(self):
        graph = GraphModel(load_profile("screen"))
        node = graph.add_node({"kind": "workout"}).unwrap()
        assert node.status == "designed"
        assert not graph.add_node({"kind": "feature"}).ok

    def test_returned_node_is_a_copy(self, graph):
        node = graph.add_node({"id": "A", "kind": "feature"}).unwrap()
        node.data.name = "changed"
        assert graph.get_node("A").name == "New feature"


class TestAddEdge:
    """Test edge creation and referential integrity."""

    def test_connect_on_empty_graph(self, graph):
        result = graph.add_edge("X", "Y")
        assert not result.ok
        assert isinstance(result.error, InvalidEndpoint)
        assert result.error.node_id == "X"
        assert result.error.role == "source"
        assert graph.edges() == []
        assert len(graph) == 0

    def test_missing_target_named(self, graph):
        graph.add_node({"id": "X", "kind": "feature"})
        result = graph.add_edge("X", "Y")
        assert result.error.node_id == "Y"
        assert result.error.role == "target"
        assert graph.edges() == []

    def test_id_scheme_and_default_kind(self, make_graph):
        graph = make_graph(["A", "B"], [])
        edge = graph.add_edge("A", "B", label="uses").unwrap()
        assert edge.id == "eA-B"
        assert edge.label == "uses"
        assert edge.kind == "smoothstep"

    def test_parallel_edges_get_suffix(self, make_graph):
        graph = make_graph(["A", "B"], [("A", "B")])
        second = graph.add_edge("A", "B").unwrap()
        third = graph.add_edge("A", "B").unwrap()
        assert second.id == "eA-B-2"
        assert third.id == "eA-B-3"
        assert len(graph.edges()) == 3

    def test_self_loop_accepted(self, make_graph):
        graph = make_graph(["A"], [])
        edge = graph.add_edge("A", "A").unwrap()
        assert edge.is_self_loop
        assert graph.stats()["self_loops"] == 1

    def test_explicit_edge_id_collision(self, make_graph):
        graph = make_graph(["A", "B"], [])
        graph.add_edge("A", "B", edge_id="link").unwrap()
        result = graph.add_edge("B", "A", edge_id="link")
        assert isinstance(result.error, DuplicateId)
        assert len(graph.edges()) == 1

    @pytest.mark.parametrize("kwargs,field_name", [
        ({"label": 5}, "label"),
        ({"edge_id": ""}, "id"),
    ])
    def test_bad_edge_fields_rejected(self, make_graph, kwargs, field_name):
        graph = make_graph(["A", "B"], [])
        version = graph.structure_version
        result = graph.add_edge("A", "B", **kwargs)
        assert not result.ok
        assert isinstance(result.error, InvalidField)
        assert result.error.field_name == field_name
        assert graph.edges() == []
        assert graph.structure_version == version


class TestRemove:
    """Test removal and cascade."""

    def test_cascade_removes_exactly_incident_edges(self, diamond):
        diamond.add_edge("B", "B")
        before = {e.id for e in diamond.edges()}
        incident = {e.id for e in diamond.incident_edges("B")}

        removed = diamond.remove_node("B")

        assert removed.id == "B"
        assert {e.id for e in diamond.edges()} == before - incident
        assert incident == {"eA-B", "eB-D", "eB-B"}
        assert_integrity(diamond)

    def test_remove_missing_node_is_noop(self, diamond):
        version = diamond.structure_version
        assert diamond.remove_node("nope") is None
        assert diamond.structure_version == version
        assert len(diamond) == 4

    def test_remove_edge(self, diamond):
        assert diamond.remove_edge("eA-B").id == "eA-B"
        assert diamond.remove_edge("eA-B") is None
        assert not diamond.has_edge("eA-B")

    def test_randomized_integrity(self):
        rng = random.Random(1234)
        graph = GraphModel()
        for _ in range(500):
            node_ids = graph.node_ids()
            action = rng.random()
            if action < 0.35 or not node_ids:
                graph.add_node({"kind": rng.choice(graph.profile.kinds)})
            elif action < 0.7:
                graph.add_edge(rng.choice(node_ids), rng.choice(node_ids + ["ghost"]))
            elif action < 0.85:
                graph.remove_node(rng.choice(node_ids))
            else:
                edge_ids = graph.edge_ids()
                if edge_ids:
                    graph.remove_edge(rng.choice(edge_ids))
            assert_integrity(graph)


class TestUpdate:
    """Test partial updates."""

    def test_update_node_merges(self, diamond):
        node = diamond.update_node("A", {"name": "Root", "tags": ["x"], "status": "blocked"}).unwrap()
        assert node.name == "Root"
        assert node.tags == ["x"]
        assert node.status == "blocked"
        assert node.priority == "medium"
        assert diamond.get_node("A").name == "Root"

    def test_update_position_and_kind(self, diamond):
        node = diamond.update_node("A", {"position": {"x": 5, "y": 6}, "kind": "api"}).unwrap()
        assert node.position.to_tuple() == (5.0, 6.0)
        assert node.kind == "api"

    def test_update_unknown_node_is_noop(self, diamond):
        result = diamond.update_node("nope", {"name": "x"})
        assert result.ok
        assert result.value is None

    def test_update_rejects_unknown_field(self, diamond):
        result = diamond.update_node("A", {"colour": "red"})
        assert isinstance(result.error, InvalidField)
        assert result.error.field_name == "colour"

    def test_update_rejects_bad_status(self, diamond):
        result = diamond.update_node("A", {"status": "done"})
        assert isinstance(result.error, InvalidField)
        assert diamond.get_node("A").status == "planned"

    def test_update_does_not_bump_structure_version(self, diamond):
        version = diamond.structure_version
        diamond.update_node("A", {"position": {"x": 1, "y": 1}})
        assert diamond.structure_version == version

    def test_update_edge_rewire(self, diamond):
        edge = diamond.update_edge("eA-B", {"target": "D", "label": "skip"}).unwrap()
        assert (edge.source, edge.target, edge.label) == ("A", "D", "skip")

    def test_update_edge_checks_endpoints(self, diamond):
        result = diamond.update_edge("eA-B", {"target": "Z"})
        assert isinstance(result.error, InvalidEndpoint)
        assert diamond.get_edge("eA-B").target == "B"

    def test_update_unknown_edge_is_noop(self, diamond):
        result = diamond.update_edge("nope", {"label": "x"})
        assert result.ok and result.value is None


class TestQueries:
    """Test read-side queries."""

    def test_filters(self):
        graph = GraphModel()
        graph.seed()
        assert [n.id for n in graph.nodes_by_kind("capability")] == ["2", "3"]
        assert [n.id for n in graph.nodes_by_status("in-progress")] == ["1", "5"]
        assert [n.id for n in graph.nodes_by_priority("critical")] == ["1", "4", "5"]
        assert [n.id for n in graph.nodes_by_tag("AI")] == ["1", "2", "3", "5"]

    def test_queries_return_copies(self, diamond):
        nodes = diamond.nodes()
        nodes[0].data.name = "mutated"
        assert diamond.get_node("A").name == "New feature"

    def test_has_edge_between(self, diamond):
        assert diamond.has_edge_between("A", "B")
        assert not diamond.has_edge_between("B", "A")

    def test_stats(self):
        graph = GraphModel()
        graph.seed()
        stats = graph.stats()
        assert stats["node_count"] == 6
        assert stats["edge_count"] == 6
        assert stats["by_kind"] == {"feature": 1, "capability": 2, "component": 2, "screen": 1}

    def test_to_networkx(self, diamond):
        diamond.add_edge("A", "B")
        nxg = diamond.to_networkx()
        assert isinstance(nxg, nx.MultiDiGraph)
        assert list(nxg.nodes) == ["A", "B", "C", "D"]
        assert nxg.number_of_edges("A", "B") == 2
        assert nxg.nodes["A"]["kind"] == "feature"

    def test_contains_and_len(self, diamond):
        assert "A" in diamond
        assert "Z" not in diamond
        assert len(diamond) == 4


class TestReplaceContents:
    """Test wholesale replacement."""

    def test_replace_rejects_dangling_edge(self, diamond):
        nodes = [Node(id="X", kind="feature")]
        edges = [Edge(id="e", source="X", target="Y")]
        with pytest.raises(InvalidEndpoint):
            diamond.replace_contents(nodes, edges)
        assert diamond.node_ids() == ["A", "B", "C", "D"]

    def test_seed(self, graph):
        graph.seed()
        assert graph.node_ids() == ["1", "2", "3", "4", "5", "6"]
        assert_integrity(graph)

    def test_clear(self, diamond):
        diamond.clear()
        assert len(diamond) == 0
        assert diamond.edges() == []


class TestOperationResult:
    """Test the result wrapper."""

    def test_unwrap_raises_carried_error(self, graph):
        result = graph.add_edge("X", "Y")
        assert not result
        with pytest.raises(InvalidEndpoint):
            result.unwrap()

    def test_success_is_truthy(self):
        assert OperationResult.success(1)
        assert OperationResult.success().value is None

    def test_error_to_dict(self, graph):
        error = graph.add_edge("X", "Y").error
        assert error.to_dict() == {
            "code": "INVALID_ENDPOINT",
            "message": "Cannot connect: source node 'X' not found",
            "details": {"node_id": "X", "role": "source"},
        }
