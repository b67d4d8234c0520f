import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from chatroom.api.ws import UNKNOWN_PARTICIPANT_CLOSE_CODE
from chatroom.config import refresh_settings


def _create_app(monkeypatch):
    monkeypatch.setenv("LONG_POLLING_TIMEOUT", "0.05")
    refresh_settings()

    from chatroom.main import create_app

    return create_app()


def test_unknown_nick_is_closed(monkeypatch) -> None:
    app = _create_app(monkeypatch)

    with TestClient(app) as client:
        with client.websocket_connect("/ws/ghost") as ws:
            with pytest.raises(WebSocketDisconnect) as exc_info:
                ws.receive_json()
        assert exc_info.value.code == UNKNOWN_PARTICIPANT_CLOSE_CODE


def test_push_channel_delivers_events_and_marks_presence(monkeypatch) -> None:
    app = _create_app(monkeypatch)

    with TestClient(app) as client:
        client.post("/api/users", json={"nick": "alice"})
        client.post("/api/users", json={"nick": "bob"})

        with client.websocket_connect("/ws/alice") as ws:
            buffered = ws.receive_json()
            assert (buffered["type"], buffered["nick"]) == ("join", "bob")
            assert client.get("/api/users/present").json() == {"users": [{"nick": "alice"}]}

            client.post("/api/users/bob/messages", json={"text": "hi"})
            pushed = ws.receive_json()
            assert (pushed["type"], pushed["nick"], pushed["text"]) == ("message", "bob", "hi")

            ws.send_json({"text": "hello bob"})
            echoed = ws.receive_json()
            assert (echoed["nick"], echoed["text"]) == ("alice", "hello bob")

            events = client.get("/api/users/bob/events").json()["events"]
            assert [event["text"] for event in events] == ["hi", "hello bob"]

        assert client.get("/api/users/present").json() == {"users": []}
        assert app.state.registry.get("alice").channel is None


def test_invalid_frames_get_error_replies(monkeypatch) -> None:
    app = _create_app(monkeypatch)

    with TestClient(app) as client:
        client.post("/api/users", json={"nick": "alice"})

        with client.websocket_connect("/ws/alice") as ws:
            ws.send_text("not json")
            assert ws.receive_json() == {"type": "error", "detail": "invalid JSON"}

            ws.send_json({"body": "missing text"})
            assert ws.receive_json()["type"] == "error"

            ws.send_json({"text": "  "})
            assert ws.receive_json() == {"type": "error", "detail": "text must not be blank"}


def test_leaving_closes_the_socket(monkeypatch) -> None:
    app = _create_app(monkeypatch)

    with TestClient(app) as client:
        client.post("/api/users", json={"nick": "alice"})

        with client.websocket_connect("/ws/alice") as ws:
            assert client.delete("/api/users/alice").status_code == 200
            with pytest.raises(WebSocketDisconnect):
                ws.receive_json()

        assert client.get("/api/users").json() == {"users": []}
