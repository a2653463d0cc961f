"""
Integration tests for the FastAPI backend.

Each test gets a fresh session backed by a temporary store.
"""

import pytest
from fastapi.testclient import TestClient

from treediagram.backend import main
from treediagram.backend.session import SourceStore, TreeSession


@pytest.fixture
def store(tmp_path):
    return SourceStore(tmp_path / "store.json")


@pytest.fixture
def client(monkeypatch, store):
    monkeypatch.setattr(main, "session", TreeSession(store=store))
    with TestClient(main.app) as client:
        yield client


class TestHealth:
    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestSource:
    def test_initial_state_is_empty_error(self, client):
        state = client.get("/api/diagram").json()
        assert state["status"] == {"ok": False, "message": "No Nodes Defined"}
        assert state["model"] is None

    def test_restores_saved_source(self, monkeypatch, store, org_source):
        store.save(org_source)
        monkeypatch.setattr(main, "session", TreeSession(store=store))
        with TestClient(main.app) as client:
            state = client.get("/api/diagram").json()
        assert state["source"] == org_source
        assert state["model"]["root"] == "ceo"

    def test_put_source(self, client, store, org_source):
        response = client.put("/api/source", json={"text": org_source})
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["status"]["message"] == "Parsed 6 Nodes"
        assert store.load() == org_source

    def test_put_invalid_source(self, client):
        body = client.put("/api/source", json={"text": 'node A "x"\nedge A -> B'}).json()
        assert body["success"] is False
        assert body["error"]["node_id"] == "B"
        assert body["drawing"]["commands"] == []


class TestToggle:
    def test_toggle_collapses(self, client, org_source):
        client.put("/api/source", json={"text": org_source})
        body = client.post("/api/nodes/cto/toggle").json()
        assert body["success"] is True
        assert body["collapsed"] is True
        assert body["state"]["collapsed"] == ["cto"]

    def test_toggle_leaf(self, client, org_source):
        client.put("/api/source", json={"text": org_source})
        body = client.post("/api/nodes/eng/toggle").json()
        assert body["success"] is False
        assert body["collapsed"] is None

    def test_toggle_unknown_node(self, client, org_source):
        client.put("/api/source", json={"text": org_source})
        assert client.post("/api/nodes/nobody/toggle").status_code == 404

    def test_toggle_without_diagram(self, client):
        assert client.post("/api/nodes/cto/toggle").status_code == 400

    def test_toggle_id_with_slash(self, client):
        client.put("/api/source", json={"text": 'node a/b "p"\nnode c "c"\nedge a/b -> c'})
        body = client.post("/api/nodes/a/b/toggle").json()
        assert body["success"] is True
        assert body["state"]["collapsed"] == ["a/b"]

    def test_toggle_percent_encoded_id(self, client):
        client.put("/api/source", json={"text": 'node a#b "p"\nnode c "c"\nedge a#b -> c'})
        body = client.post("/api/nodes/a%23b/toggle").json()
        assert body["success"] is True
        assert body["state"]["collapsed"] == ["a#b"]


class TestExport:
    def test_svg(self, client, org_source):
        client.put("/api/source", json={"text": org_source})
        response = client.get("/api/diagram/svg")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("image/svg+xml")
        assert "Chief Executive" in response.text

    def test_svg_without_diagram(self, client):
        assert client.get("/api/diagram/svg").status_code == 400

    def test_validate(self, client):
        client.put("/api/source", json={"text": 'node A "a"\nnode B "b"\nedge A -> B\nedge A -> B'})
        body = client.get("/api/diagram/validate").json()
        assert body["summary"]["warnings"] == 1


class TestStatelessParse:
    def test_parse_and_layout(self, client, org_source):
        body = client.post("/api/parse", json={"text": org_source, "collapsed": ["cto", "ghost"]}).json()
        assert body["model"]["root"] == "ceo"
        assert set(body["coordinates"]) == {"ceo", "cto", "cfo"}
        assert body["coordinates"]["cfo"] == {"x": 166.0, "y": 126.0}

    def test_custom_geometry(self, client):
        body = client.post("/api/parse", json={
            "text": 'node A "a"\nnode B "b"\nedge A -> B',
            "config": {"node_width": 100, "node_height": 10, "x_gap": 0, "y_gap": 10},
        }).json()
        assert body["coordinates"]["B"] == {"x": 0.0, "y": 20.0}

    def test_parse_error(self, client):
        response = client.post("/api/parse", json={"text": "node A"})
        assert response.status_code == 422
        assert response.json()["detail"] == {
            "type": "bad_node_syntax",
            "message": "Line 1: Bad Node Syntax",
            "line": 1,
        }

    def test_does_not_touch_session(self, client, org_source):
        client.post("/api/parse", json={"text": org_source})
        assert client.get("/api/diagram").json()["model"] is None


class TestWebSocket:
    def test_ping(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_text("ping")
            # A startup broadcast may arrive first
            message = ws.receive_json()
            while message["type"] != "pong":
                message = ws.receive_json()
            assert message == {"type": "pong"}

    def test_editors_notified_of_changes(self, client, org_source):
        def wait_for(ws, status):
            message = ws.receive_json()
            while message.get("status") != status:
                message = ws.receive_json()
            return message

        with client.websocket_connect("/ws") as ws:
            # Pong confirms the socket is registered before the source changes
            ws.send_text("ping")
            while ws.receive_json()["type"] != "pong":
                pass

            client.put("/api/source", json={"text": org_source})
            assert wait_for(ws, "Parsed 6 Nodes") == {
                "type": "diagram_updated", "ok": True, "status": "Parsed 6 Nodes"
            }

            client.post("/api/nodes/cto/toggle")
            assert wait_for(ws, "Collapsed Technology")["type"] == "diagram_updated"
