"""Tests for the graph store mutation API."""

import logging

import pytest
from pydantic import ValidationError

from flowkit.models.graph import FlowEdge, Position, check_graph_invariants, make_stage_node
from flowkit.store import GraphStore
from flowkit.utils.identifiers import no_handle, yes_handle


class TestSeeding:
    """Test the initial state of a store."""

    def test_new_store_is_seeded(self):
        """A new flow starts with one initial and one end node, no edges."""
        store = GraphStore()
        assert [node.type for node in store.nodes] == ["initial", "end"]
        assert store.nodes[0].id == "initial-1"
        assert store.nodes[0].position == Position(x=400, y=50)
        assert store.nodes[1].position == Position(x=400, y=800)
        assert store.edges == []
        assert store.flow_name == ""

    def test_reset_restores_seed(self):
        """reset_flow drops everything back to the seed state."""
        store = GraphStore()
        store.add_stage_node()
        store.add_edge(FlowEdge(source="initial-1", target="end-1"))
        store.set_flow_name("Bienvenida")
        store.set_flow_description("desc")

        store.reset_flow()

        assert [node.id for node in store.nodes] == ["initial-1", "end-1"]
        assert store.edges == []
        assert store.flow_name == ""
        assert store.flow_description == ""


class TestNodeActions:
    """Test adding, updating and removing nodes."""

    def test_add_stage_node_stacks_vertically(self):
        """New stages go below the lowest existing stage."""
        store = GraphStore()
        first = store.add_stage_node()
        second = store.add_stage_node()
        assert store.get_node(first).position == Position(x=400, y=250)
        assert store.get_node(second).position == Position(x=400, y=450)
        assert store.get_stage_count() == 2

    def test_positions_do_not_overlap_after_removal(self):
        """Removing a middle stage does not make the next one land on top of another."""
        store = GraphStore()
        ids = [store.add_stage_node() for _ in range(3)]
        store.remove_node(ids[1])
        new_id = store.add_stage_node()
        ys = [node.position.y for node in store.nodes if node.type == "stage"]
        assert len(ys) == len(set(ys))
        assert store.get_node(new_id).position.y == 850

    def test_add_conditional_node(self):
        store = GraphStore()
        node_id = store.add_conditional_node()
        node = store.get_node(node_id)
        assert node.type == "conditional"
        assert node.position == Position(x=600, y=250)
        assert node.data.yes_label == "Sí"
        assert store.get_conditional_count() == 1

    def test_add_end_node(self):
        """Extra end nodes go below the seeded one."""
        store = GraphStore()
        node_id = store.add_end_node()
        assert store.get_node(node_id).position == Position(x=400, y=950)

    def test_update_node_merges(self):
        """update_node shallow-merges into the existing data."""
        store = GraphStore()
        node_id = store.add_stage_node()
        store.update_node(node_id, {"inline_content": "Hola {{nombre}}"})
        store.update_node(node_id, {"day_offset": 3})
        data = store.get_node(node_id).data
        assert data.inline_content == "Hola {{nombre}}"
        assert data.day_offset == 3
        assert data.channel == "email"

    def test_update_node_rejects_invalid_data(self):
        """Invalid data raises and leaves the node untouched."""
        store = GraphStore()
        node_id = store.add_stage_node()
        with pytest.raises(ValidationError):
            store.update_node(node_id, {"channel": "fax"})
        assert store.get_node(node_id).data.channel == "email"

    def test_update_missing_node_is_noop(self):
        store = GraphStore()
        store.update_node("ghost", {"label": "x"})
        assert store.get_node("ghost") is None

    def test_set_node_position(self):
        store = GraphStore()
        store.set_node_position("end-1", {"x": 10, "y": 20})
        assert store.get_node("end-1").position == Position(x=10, y=20)

    def test_remove_node_cascades_edges(self):
        """No edge may reference a removed node."""
        store = GraphStore()
        stage = store.add_stage_node()
        cond = store.add_conditional_node()
        store.add_edge(FlowEdge(source="initial-1", target=stage))
        store.add_edge(FlowEdge(source=stage, target=cond))
        store.add_edge(FlowEdge(source=cond, target="end-1", source_handle=yes_handle(cond)))
        store.add_edge(FlowEdge(source=cond, target="end-1", source_handle=no_handle(cond)))

        store.remove_node(cond)

        assert all(
            edge.source != cond and edge.target != cond for edge in store.edges
        )
        assert len(store.edges) == 1


class TestEdgeActions:
    """Test edge invariants."""

    def test_duplicate_edge_is_noop(self, caplog):
        """Adding a structurally identical edge leaves the edge set unchanged."""
        store = GraphStore()
        store.add_edge(FlowEdge(source="initial-1", target="end-1"))
        with caplog.at_level(logging.WARNING, logger="flowkit.store"):
            store.add_edge({"source": "initial-1", "target": "end-1", "sourceHandle": "center"})
        assert len(store.edges) == 1
        assert "edge already exists" in caplog.text

    def test_dangling_edge_rejected(self):
        store = GraphStore()
        store.add_edge(FlowEdge(source="initial-1", target="ghost"))
        assert store.edges == []

    def test_remove_edge(self):
        store = GraphStore()
        edge = FlowEdge(source="initial-1", target="end-1")
        store.add_edge(edge)
        store.remove_edge(edge.id)
        assert store.edges == []

    def test_reused_edge_id_rejected(self, caplog):
        """Two different edges may not share an id; removal stays one-for-one."""
        store = GraphStore()
        stage = store.add_stage_node()
        store.add_edge({"id": "e1", "source": "initial-1", "target": stage})
        with caplog.at_level(logging.WARNING, logger="flowkit.store"):
            store.add_edge({"id": "e1", "source": stage, "target": "end-1"})

        assert [(edge.id, edge.source) for edge in store.edges] == [("e1", "initial-1")]
        assert "edge id already in use" in caplog.text

        store.add_edge(FlowEdge(source=stage, target="end-1"))
        store.remove_edge("e1")
        assert len(store.edges) == 1
        assert store.edges[0].source == stage


class TestCopies:
    """Readers must never get references into the store."""

    def test_mutating_a_read_copy_does_not_leak(self):
        store = GraphStore()
        nodes = store.nodes
        nodes[0].position.x = 9999
        nodes.clear()
        assert store.get_node("initial-1").position.x == 400
        assert len(store.nodes) == 2

    def test_added_edge_is_copied(self):
        store = GraphStore()
        edge = FlowEdge(source="initial-1", target="end-1")
        store.add_edge(edge)
        edge.label = "changed"
        assert store.edges[0].label is None


class TestLoad:
    """Test wholesale replacement of the graph."""

    def test_load_drops_invalid_items(self):
        """Duplicate nodes, dangling and duplicate edges are dropped."""
        store = GraphStore()
        stage = make_stage_node("stage-1")
        store.load(
            [stage, stage, {"id": "end-9", "type": "end"}],
            [
                {"source": "stage-1", "target": "end-9"},
                {"source": "stage-1", "target": "end-9", "targetHandle": "center"},
                {"source": "stage-1", "target": "missing"},
            ],
        )
        assert [node.id for node in store.nodes] == ["stage-1", "end-9"]
        assert len(store.edges) == 1
        assert check_graph_invariants(store.nodes, store.edges) == []

    def test_load_keeps_stored_edge_ids(self):
        """Stored ids survive a load; a later edge reusing one is dropped."""
        store = GraphStore()
        store.load(
            [make_stage_node("stage-1"), {"id": "end-9", "type": "end"}, {"id": "initial-1", "type": "initial"}],
            [
                {"id": "saved-a", "source": "initial-1", "target": "stage-1"},
                {"id": "saved-a", "source": "stage-1", "target": "end-9"},
                {"id": "saved-b", "source": "stage-1", "target": "end-9"},
            ],
        )
        assert [edge.id for edge in store.edges] == ["saved-a", "saved-b"]
        assert store.edges[0].target == "stage-1"
        assert check_graph_invariants(store.nodes, store.edges) == []

    def test_change_batches(self):
        """Canvas change events route to the mutation API."""
        store = GraphStore()
        stage = store.add_stage_node()
        edge = FlowEdge(source="initial-1", target=stage)
        store.add_edge(edge)

        store.apply_node_changes([
            {"type": "position", "id": "end-1", "position": {"x": 1, "y": 2}},
            {"type": "select", "id": "end-1"},
        ])
        store.apply_edge_changes([{"type": "remove", "id": edge.id}])
        store.apply_node_changes([{"type": "remove", "id": stage}])

        assert store.get_node("end-1").position == Position(x=1, y=2)
        assert store.edges == []
        assert store.get_node(stage) is None

    def test_snapshot_round_trip(self):
        store = GraphStore()
        stage = store.add_stage_node()
        store.add_edge(FlowEdge(source="initial-1", target=stage))
        store.set_flow_name("Bienvenida")

        restored = GraphStore.from_snapshot(store.snapshot())

        assert restored.nodes == store.nodes
        assert restored.edges == store.edges
        assert restored.flow_name == "Bienvenida"
