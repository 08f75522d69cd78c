import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from app.main import create_app


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setenv("STORE_BACKEND", "memory")
    monkeypatch.delenv("CATEGORY_API_URL", raising=False)
    with TestClient(create_app()) as c:
        yield c


def _create(client, name="Host"):
    with client.websocket_connect("/ws") as ws:
        assert ws.receive_json()["type"] == "hello"
        ws.send_json({"type": "create_session", "name": name})
        created = ws.receive_json()
        snap = ws.receive_json()
    return created, snap


def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"ok": True, "store": "memory"}


def test_ws_create_pushes_own_view(client):
    created, snap = _create(client)

    assert created["type"] == "session_created"
    assert snap["type"] == "session_snapshot"
    assert snap["session"]["id"] == created["session_id"]
    assert snap["session"]["viewer_id"] == created["participant_id"]
    assert snap["session"]["participants"][0]["is_host"] is True


def test_ws_join_pushes_to_both_players(client):
    with client.websocket_connect("/ws") as host:
        host.receive_json()
        host.send_json({"type": "create_session", "name": "Host"})
        created = host.receive_json()
        host.receive_json()

        with client.websocket_connect("/ws") as guest:
            guest.receive_json()
            guest.send_json({"type": "join", "join_code": created["join_code"], "name": "Guest"})
            joined = guest.receive_json()
            assert joined["type"] == "joined"

            guest_view = guest.receive_json()
            assert len(guest_view["session"]["participants"]) == 2

            host_view = host.receive_json()
            assert host_view["type"] == "session_snapshot"
            assert [p["display_name"] for p in host_view["session"]["participants"]] == ["Host", "Guest"]


def test_ws_leave_answers_left_not_removed(client):
    with client.websocket_connect("/ws") as host:
        host.receive_json()
        host.send_json({"type": "create_session", "name": "Host"})
        created = host.receive_json()
        host.receive_json()

        with client.websocket_connect("/ws") as guest:
            guest.receive_json()
            guest.send_json({"type": "join", "join_code": created["join_code"], "name": "Guest"})
            guest.receive_json()
            guest.receive_json()
            host.receive_json()

            guest.send_json({"type": "leave"})
            left = guest.receive_json()
            assert left == {"type": "left", "session_id": created["session_id"]}

            # unbound: no push in between, snapshot now needs a session
            guest.send_json({"type": "snapshot"})
            assert guest.receive_json()["code"] == "NO_SESSION"

            host_view = host.receive_json()
            assert [p["display_name"] for p in host_view["session"]["participants"]] == ["Host"]


def test_ws_rejects_bad_messages(client):
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        ws.send_json({"type": "teleport"})
        err = ws.receive_json()
        assert err["type"] == "error"
        assert err["code"] == "BAD_MESSAGE"

        ws.send_json({"type": "list_categories"})
        out = ws.receive_json()
        assert out["type"] == "categories"
        assert out["can_generate"] is False
        assert "Animals" in out["names"]


def test_ws_rejects_foreign_origin(client):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/ws", headers={"origin": "https://evil.example"}) as ws:
            ws.receive_json()


def test_admin_list_get_and_end(client):
    created, _ = _create(client)
    sid = created["session_id"]

    listing = client.get("/admin/sessions").json()["sessions"]
    assert [s["session_id"] for s in listing] == [sid]
    assert listing[0]["participants"] == 1
    assert listing[0]["host"] == "Host"

    full = client.get(f"/admin/sessions/{sid}").json()
    assert full["join_code"] == created["join_code"]

    ended = client.post(f"/admin/sessions/{sid}/end").json()
    assert ended == {"ok": True, "session_id": sid, "status": "ENDED"}

    assert client.get("/admin/sessions/missing").status_code == 404
    assert client.post("/admin/sessions/missing/end").status_code == 404
