"""Tests for the editor API server."""

import httpx
import pytest
from fastapi.testclient import TestClient

import server.draft_db as draft_db
from flowkit.sdk.client import FlowsClient
from server.app import app
from server.dependencies import get_client

BASE = "http://flows.test/api"

STORED_FLOW = {
    "id": 5,
    "nombre": "Reactivación",
    "config_visual": {
        "nodes": [
            {"id": "initial-1", "type": "initial", "position": {"x": 400, "y": 50}, "data": {}},
            {"id": "stage-a", "type": "stage", "position": {"x": 400, "y": 250},
             "data": {"label": "Día 1", "inline_content": "Hola"}},
            {"id": "end-1", "type": "end", "position": {"x": 400, "y": 800}, "data": {}},
        ],
        "edges": [
            {"source": "initial-1", "target": "stage-a"},
            {"source": "stage-a", "target": "end-1"},
        ],
    },
}


def _backend(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/api/flujos/5":
        return httpx.Response(200, json={"data": STORED_FLOW})
    if path == "/api/flujos/5/ejecuciones/activa":
        return httpx.Response(200, json={"tiene_ejecucion_activa": False})
    if path == "/api/flujos/5/ejecuciones":
        return httpx.Response(200, json={"data": [{"id": 7, "estado": "completed"}]})
    if path == "/api/flujos/5/ejecuciones/7":
        return httpx.Response(200, json={"data": {
            "id": 7,
            "estado": "completed",
            "nodo_actual": "stage-a",
            "etapas": [{"id": 1, "node_id": "stage-a", "estado": "completed"}],
            "timeline": [{"node_id": "stage-a", "estado": "completed", "orden_ejecucion": 1}],
        }})
    if path == "/api/flujos/6/ejecuciones/activa":
        return httpx.Response(500)
    if path == "/api/flujos/8/ejecuciones/activa":
        return httpx.Response(200, json={"tiene_ejecucion_activa": False})
    if path == "/api/flujos/8/ejecuciones":
        return httpx.Response(200, json={"data": [{"id": 3, "estado": "perdido"}]})
    return httpx.Response(404)


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setattr(draft_db, "DRAFT_DB_PATH", tmp_path / "drafts.db")
    app.dependency_overrides[get_client] = lambda: FlowsClient(
        base_url=BASE, transport=httpx.MockTransport(_backend)
    )
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _new_draft(client: TestClient, **body) -> dict:
    response = client.post("/api/drafts", json=body)
    assert response.status_code == 200
    return response.json()


class TestDrafts:
    """Test draft lifecycle."""

    def test_create_seeded_draft(self, client):
        draft = _new_draft(client, name="Bienvenida")
        assert draft["flow_name"] == "Bienvenida"
        assert [node["id"] for node in draft["nodes"]] == ["initial-1", "end-1"]
        assert draft["edges"] == []

    def test_list_and_get(self, client):
        draft = _new_draft(client, name="Uno")
        listed = client.get("/api/drafts").json()
        assert listed[0]["draft_id"] == draft["draft_id"]
        assert listed[0]["node_count"] == 2

        fetched = client.get(f"/api/drafts/{draft['draft_id']}").json()
        assert fetched["flow_name"] == "Uno"

    def test_missing_draft(self, client):
        assert client.get("/api/drafts/nope").status_code == 404
        assert client.delete("/api/drafts/nope").status_code == 404
        assert client.post("/api/drafts/nope/nodes", json={"variant": "stage"}).status_code == 404

    def test_delete(self, client):
        draft = _new_draft(client)
        assert client.delete(f"/api/drafts/{draft['draft_id']}").json() == {"deleted": draft["draft_id"]}
        assert client.get(f"/api/drafts/{draft['draft_id']}").status_code == 404

    def test_draft_from_stored_flow(self, client):
        draft = _new_draft(client, flow_id=5)
        assert draft["flow_id"] == 5
        assert draft["flow_name"] == "Reactivación"
        assert [node["id"] for node in draft["nodes"]] == ["initial-1", "stage-a", "end-1"]
        assert len(draft["edges"]) == 2

    def test_flow_id_persisted(self, client):
        """The source flow stays attached to the draft across reads and edits."""
        draft_id = _new_draft(client, flow_id=5)["draft_id"]
        assert client.get(f"/api/drafts/{draft_id}").json()["flow_id"] == 5

        client.put(f"/api/drafts/{draft_id}/meta", json={"name": "Otro"})
        assert client.get(f"/api/drafts/{draft_id}").json()["flow_id"] == 5
        assert client.get("/api/drafts").json()[0]["flow_id"] == 5

    def test_draft_from_unknown_flow(self, client):
        assert client.post("/api/drafts", json={"flow_id": 99}).status_code == 404


class TestEditing:
    """Test mutations through the API."""

    def test_add_update_move_remove_node(self, client):
        draft_id = _new_draft(client, name="F")["draft_id"]

        added = client.post(f"/api/drafts/{draft_id}/nodes", json={"variant": "stage"}).json()
        node_id = added["node_id"]
        assert any(node["id"] == node_id for node in added["draft"]["nodes"])

        updated = client.patch(
            f"/api/drafts/{draft_id}/nodes/{node_id}",
            json={"inline_content": "Hola", "day_offset": 2},
        ).json()
        stage = next(node for node in updated["nodes"] if node["id"] == node_id)
        assert stage["data"]["day_offset"] == 2

        moved = client.put(
            f"/api/drafts/{draft_id}/nodes/{node_id}/position", json={"x": 10, "y": 20}
        ).json()
        stage = next(node for node in moved["nodes"] if node["id"] == node_id)
        assert stage["position"] == {"x": 10, "y": 20}

        client.post(f"/api/drafts/{draft_id}/edges", json={"source": "initial-1", "target": node_id})
        removed = client.delete(f"/api/drafts/{draft_id}/nodes/{node_id}").json()
        assert all(node["id"] != node_id for node in removed["nodes"])
        assert removed["edges"] == []

    def test_invalid_update_rejected(self, client):
        draft_id = _new_draft(client)["draft_id"]
        node_id = client.post(f"/api/drafts/{draft_id}/nodes", json={"variant": "stage"}).json()["node_id"]
        response = client.patch(f"/api/drafts/{draft_id}/nodes/{node_id}", json={"day_offset": -3})
        assert response.status_code == 422

    def test_unknown_node(self, client):
        draft_id = _new_draft(client)["draft_id"]
        response = client.patch(f"/api/drafts/{draft_id}/nodes/ghost", json={"label": "x"})
        assert response.status_code == 404

    def test_duplicate_edge_ignored(self, client):
        draft_id = _new_draft(client)["draft_id"]
        edge = {"source": "initial-1", "target": "end-1"}
        client.post(f"/api/drafts/{draft_id}/edges", json=edge)
        draft = client.post(f"/api/drafts/{draft_id}/edges", json={**edge, "sourceHandle": "center"}).json()
        assert len(draft["edges"]) == 1

        removed = client.delete(f"/api/drafts/{draft_id}/edges/{draft['edges'][0]['id']}").json()
        assert removed["edges"] == []

    def test_meta_and_reset(self, client):
        draft_id = _new_draft(client)["draft_id"]
        client.post(f"/api/drafts/{draft_id}/nodes", json={"variant": "conditional"})
        draft = client.put(
            f"/api/drafts/{draft_id}/meta", json={"name": "Nuevo", "description": "d"}
        ).json()
        assert draft["flow_name"] == "Nuevo"
        assert draft["flow_description"] == "d"

        draft = client.post(f"/api/drafts/{draft_id}/reset").json()
        assert draft["flow_name"] == ""
        assert len(draft["nodes"]) == 2

    def test_validation_and_configuration(self, client):
        draft_id = _new_draft(client, flow_id=5)["draft_id"]

        report = client.get(f"/api/drafts/{draft_id}/validation").json()
        assert report["check"]["is_valid"]
        assert report["validation"]["is_valid"]

        config = client.get(f"/api/drafts/{draft_id}/configuration").json()
        assert config["nombre"] == "Reactivación"
        assert config["structure"]["initial_node"] == "initial-1"
        assert [stage["id"] for stage in config["structure"]["stages"]] == ["stage-a"]

    def test_validation_reports_problems(self, client):
        draft_id = _new_draft(client)["draft_id"]
        report = client.get(f"/api/drafts/{draft_id}/validation").json()
        assert report["check"]["code"] == "MISSING_NAME"
        assert not report["validation"]["is_valid"]


class TestExecutionRoutes:
    """Test resolved execution state and overlays."""

    def test_execution_state(self, client):
        state = client.get("/api/flows/5/execution-state").json()
        assert state["can_execute"] is True
        assert state["display_execution"]["id"] == 7
        assert state["display_execution"]["progreso"]["percentage"] == 100

    def test_backend_error(self, client):
        assert client.get("/api/flows/6/execution-state").status_code == 502

    def test_unreadable_execution_is_a_backend_error(self, client):
        response = client.get("/api/flows/8/execution-state")
        assert response.status_code == 502
        assert "FlowExecution" in response.json()["detail"]

    def test_overlay(self, client):
        overlays = client.get("/api/flows/5/executions/7/overlay").json()
        by_id = {overlay["node_id"]: overlay for overlay in overlays}
        assert by_id["stage-a"]["execution_state"] == "completed"
        assert by_id["stage-a"]["is_current"] is True
        assert by_id["stage-a"]["in_path"] is True
        assert by_id["end-1"]["execution_state"] is None

    def test_overlay_unknown_execution(self, client):
        assert client.get("/api/flows/5/executions/99/overlay").status_code == 404
