"""Tests for InteractionController and create_board."""

import pytest

from graphboard.config.settings import set_flag
from graphboard.core.board_store import FileBoardStore
from graphboard.core.errors import (
    BoardNotFound,
    ConnectionRejected,
    InvalidDocument,
    InvalidEndpoint,
    InvalidField,
)
from graphboard.core.graph_model import GraphModel
from graphboard.layout.engines.layered import LayeredLayoutEngine, LayeredLayoutOptions
from graphboard.managers.interaction_controller import (
    ConnectPolicy,
    InteractionController,
    create_board,
)


@pytest.fixture
def controller(diamond, store):
    return InteractionController(diamond, store=store, policy=ConnectPolicy(False, False))


@pytest.fixture
def seeded():
    return create_board("architecture")


class TestSelection:
    """Selection state."""

    def test_select_and_clear(self, controller):
        assert controller.select("B").id == "B"
        assert controller.selected_id == "B"
        assert controller.select(None) is None
        assert controller.selected_id is None

    def test_select_unknown_clears(self, controller):
        controller.select("A")
        assert controller.select("nope") is None
        assert controller.selected is None


class TestConnect:
    """Connect policy."""

    def test_connect_creates_edge(self, controller):
        edge = controller.connect("A", "D", label="shortcut").unwrap()
        assert (edge.source, edge.target, edge.label) == ("A", "D", "shortcut")

    def test_self_loop_rejected_by_default(self, controller):
        result = controller.connect("A", "A")
        assert isinstance(result.error, ConnectionRejected)
        assert "self-loops" in result.error.reason
        assert not controller.graph.has_edge_between("A", "A")

    def test_duplicate_rejected(self, controller):
        count = len(controller.graph.edges())
        result = controller.connect("A", "B")
        assert isinstance(result.error, ConnectionRejected)
        assert len(controller.graph.edges()) == count

    def test_reverse_direction_is_not_a_duplicate(self, controller):
        assert controller.connect("B", "A").ok

    def test_missing_endpoint_reported_before_policy(self, controller):
        result = controller.connect("ghost", "ghost")
        assert isinstance(result.error, InvalidEndpoint)

    def test_permissive_policy(self, diamond):
        controller = InteractionController(diamond, policy=ConnectPolicy(True, True))
        assert controller.connect("A", "A").ok
        assert controller.connect("A", "B").unwrap().id == "eA-B-2"

    def test_policy_defaults_follow_feature_flags(self):
        set_flag("allow_self_loops", True)
        policy = ConnectPolicy()
        assert policy.allow_self_loops is True


class TestDelete:
    """delete_selected."""

    def test_delete_selected_node_cascades(self, controller):
        controller.select("B")
        removed = controller.delete_selected().unwrap()
        assert removed.id == "B"
        assert controller.selected_id is None
        assert not controller.graph.has_edge("eA-B")
        assert not controller.graph.has_edge("eB-D")

    def test_delete_edge_by_id(self, controller):
        controller.select("A")
        removed = controller.delete_selected("eA-B").unwrap()
        assert removed.id == "eA-B"
        assert controller.selected_id == "A"

    def test_nothing_selected_is_noop(self, controller):
        result = controller.delete_selected()
        assert result.ok and result.value is None
        assert len(controller.graph) == 4


class TestFilter:
    """Filtering is a projection."""

    def test_filter_by_kind_leaves_graph_unchanged(self, seeded):
        before = seeded.export_document()
        nodes = seeded.apply_filter(kind="capability")
        assert [n.id for n in nodes] == ["2", "3"]

        filtered = seeded.export_document()
        assert filtered["nodes"] == before["nodes"]
        assert filtered["edges"] == before["edges"]

        seeded.clear_filter()
        cleared = seeded.export_document()
        assert cleared["nodes"] == before["nodes"]
        assert cleared["edges"] == before["edges"]
        assert len(seeded.graph.edges()) == 6

    def test_combined_criteria(self, seeded):
        nodes = seeded.apply_filter(status="in-progress", priority="critical", tag="ML")
        assert [n.id for n in nodes] == ["5"]

    def test_predicate(self, seeded):
        nodes = seeded.apply_filter(predicate=lambda n: n.name.startswith("Work"))
        assert [n.id for n in nodes] == ["6"]

    def test_visible_edges_need_both_endpoints(self, seeded):
        seeded.apply_filter(tag="AI")
        assert [e.id for e in seeded.visible_edges()] == ["e1-2", "e1-3", "e2-5"]

    def test_clear_filter(self, seeded):
        seeded.apply_filter(kind="screen")
        assert len(seeded.visible_nodes()) == 1
        seeded.clear_filter()
        assert len(seeded.visible_nodes()) == 6
        assert len(seeded.visible_edges()) == 6


class TestRelayout:
    """Layout commits."""

    def test_relayout_commits_positions(self, controller):
        layout = controller.relayout("TB")
        positions = controller.graph.positions()
        assert positions["A"].to_tuple() == (125.0, 0.0)
        assert positions["D"].to_tuple() == (125.0, 400.0)
        assert {k: v for k, v in positions.items()} == layout.positions
        assert controller.last_layout is layout
        assert controller.direction == "TB"

    def test_direction_remembered(self, controller):
        controller.relayout("LR")
        layout = controller.relayout()
        assert layout.direction == "LR"

    def test_profile_default_direction(self):
        board = create_board("screen")
        assert board.direction == "LR"

    def test_relayout_is_idempotent(self, seeded):
        first = seeded.relayout()
        second = seeded.relayout()
        assert first.etag == second.etag
        assert seeded.graph.positions() == second.positions

    def test_stale_flag(self, controller):
        assert controller.layout_stale
        controller.relayout()
        assert not controller.layout_stale
        controller.drag_node("A", 1, 1)
        assert not controller.layout_stale
        controller.add_node("feature")
        assert controller.layout_stale

    def test_drag_then_relayout_restores(self, controller):
        controller.relayout("TB")
        controller.drag_node("B", 999, 999)
        assert controller.graph.get_node("B").position.to_tuple() == (999.0, 999.0)
        controller.relayout()
        assert controller.graph.get_node("B").position.to_tuple() == (0.0, 200.0)

    def test_custom_engine(self, diamond):
        engine = LayeredLayoutEngine(LayeredLayoutOptions(rank_separation=500))
        controller = InteractionController(diamond, engine=engine)
        controller.relayout("TB")
        assert controller.graph.get_node("D").position.y == 1000.0

    def test_relayout_rejects_unknown_direction(self, controller):
        with pytest.raises(ValueError):
            controller.relayout("UP")


class TestEdits:
    """add_node / update_node / drag."""

    def test_add_node(self, controller):
        node = controller.add_node("api", name="Sync API", tags=["sync"]).unwrap()
        assert node.kind == "api"
        assert controller.graph.get_node(node.id).name == "Sync API"

    def test_add_node_invalid_kind(self, controller):
        result = controller.add_node("rocket")
        assert isinstance(result.error, InvalidField)

    def test_update_node(self, controller):
        node = controller.update_node("A", status="completed").unwrap()
        assert node.status == "completed"

    def test_drag_unknown_node_is_noop(self, controller):
        result = controller.drag_node("nope", 1, 2)
        assert result.ok and result.value is None

    def test_update_edge(self, controller):
        edge = controller.update_edge("eA-B", label="depends").unwrap()
        assert edge.label == "depends"


class TestDocuments:
    """Import, export and persistence."""

    def test_import_failure_keeps_graph(self, controller):
        before = controller.export_document()["nodes"]
        result = controller.import_document({"nodes": [], "edges": [
            {"id": "x", "source": "a", "target": "b"}
        ]})
        assert isinstance(result.error, InvalidDocument)
        assert controller.export_document()["nodes"] == before

    def test_import_replaces_graph_and_clears_selection(self, controller, seeded):
        controller.select("A")
        controller.import_document(seeded.export_document()).unwrap()
        assert controller.graph.node_ids() == ["1", "2", "3", "4", "5", "6"]
        assert controller.selected_id is None
        assert controller.layout_stale

    def test_save_and_load_default_key(self, controller, store):
        key = controller.save()
        assert key == "architecture"
        assert store.list_keys() == ["architecture"]

        controller.graph.remove_node("A")
        controller.load().unwrap()
        assert controller.graph.node_ids() == ["A", "B", "C", "D"]

    def test_load_missing_key(self, controller):
        result = controller.load("nothing-here")
        assert isinstance(result.error, BoardNotFound)
        assert len(controller.graph) == 4

    def test_load_corrupt_file(self, diamond, tmp_path):
        (tmp_path / "broken.board.json").write_text('{"nodes": [')
        controller = InteractionController(diamond, store=FileBoardStore(tmp_path))
        result = controller.load("broken")
        assert isinstance(result.error, InvalidDocument)
        assert result.error.details["key"] == "broken"
        assert controller.graph.node_ids() == ["A", "B", "C", "D"]

    def test_save_without_store(self, diamond):
        controller = InteractionController(diamond)
        with pytest.raises(RuntimeError):
            controller.save()

    def test_save_rejects_bad_key(self, controller):
        with pytest.raises(ValueError):
            controller.save("../escape")

    def test_autosave(self, diamond, store):
        controller = InteractionController(diamond, store=store, autosave=True)
        controller.add_node("feature", id="E")
        saved = store.load("architecture")
        assert [n["id"] for n in saved["nodes"]] == ["A", "B", "C", "D", "E"]


class TestCreateBoard:
    """Board factory."""

    def test_seeded(self, seeded):
        assert len(seeded.graph) == 6
        assert seeded.profile.name == "architecture"

    def test_empty(self):
        board = create_board("screen", seed=False)
        assert len(board.graph) == 0
        assert isinstance(board.graph, GraphModel)

    def test_restores_saved_board(self, store):
        first = create_board("architecture", store=store)
        first.add_node("api", id="extra")
        first.save()

        second = create_board("architecture", store=store)
        assert "extra" in second.graph

    def test_unrestorable_board_falls_back_to_seed(self, store):
        store.save("architecture", {"nodes": "not a list", "edges": []})
        board = create_board("architecture", store=store)
        assert len(board.graph) == 6

    def test_truncated_file_falls_back_to_seed(self, tmp_path):
        (tmp_path / "architecture.board.json").write_text('{"nodes": [')
        board = create_board("architecture", store=FileBoardStore(tmp_path))
        assert len(board.graph) == 6
        assert board.graph.node_ids()[0] == "1"
