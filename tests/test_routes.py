"""Tests for the FastAPI application: REST routes and the WebSocket."""

import pytest
from fastapi.testclient import TestClient

from conftest import FakeSpeechClient, ScriptedCompletionProvider, fast_config
from mockpanel.api.app import build_manager, create_app
from mockpanel.api.websocket import WELCOME_MESSAGE
from mockpanel.core.session_manager import SessionManager
from mockpanel.voice.deepgram_speak import DeepgramSpeakClient


@pytest.fixture
def provider():
    return ScriptedCompletionProvider()


@pytest.fixture
def client(provider):
    # Long start delay keeps sessions idle for inspection
    config = fast_config(session_start_delay_s=30)
    manager = SessionManager(config, provider, FakeSpeechClient())
    with TestClient(create_app(config, manager)) as test_client:
        yield test_client


def start_session(client, session_id=None):
    with client.websocket_connect("/ws") as ws:
        assert ws.receive_json() == {"type": "connected", "message": WELCOME_MESSAGE}
        command = {
            "type": "start_session",
            "scenario": "Salary negotiation",
            "userName": "Priya",
            "userRole": "Engineer",
        }
        if session_id:
            command["sessionId"] = session_id
        ws.send_json(command)
        return ws.receive_json()


class TestRestRoutes:
    """Tests for the REST endpoints."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert "timestamp" in body

    def test_no_sessions(self, client):
        assert client.get("/api/sessions").json() == {"sessions": []}

    def test_session_lifecycle(self, client):
        created = start_session(client, session_id="room-1")
        assert created["type"] == "session_created"

        # Sessions outlive their WebSocket connection
        response = client.get("/api/sessions/room-1")
        assert response.status_code == 200
        session = response.json()["session"]
        assert session["state"] == "idle"
        assert session["scenario"] == "Salary negotiation"
        assert [a["id"] for a in session["agents"]] == ["Alice_Coach", "Bob_Manager"]

        listed = client.get("/api/sessions").json()["sessions"]
        assert [s["sessionId"] for s in listed] == ["room-1"]

        response = client.delete("/api/sessions/room-1")
        assert response.json() == {"message": "Session deleted successfully"}
        assert client.get("/api/sessions/room-1").status_code == 404

    def test_unknown_session(self, client):
        assert client.get("/api/sessions/nope").json() == {"detail": "Session not found"}
        assert client.delete("/api/sessions/nope").status_code == 404


class TestWebSocket:
    """Tests for the practice WebSocket."""

    def test_ping(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json({"type": "ping"})
            assert ws.receive_json() == {"type": "pong"}

    def test_bad_frames_keep_connection_open(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_bytes(b"\x00\x01")
            ws.send_text("not json")
            assert ws.receive_json() == {"type": "error", "message": "Invalid message format"}
            ws.send_json({"type": "ping"})
            assert ws.receive_json() == {"type": "pong"}

    def test_duplicate_session_id(self, client):
        start_session(client, session_id="room-1")
        reply = start_session(client, session_id="room-1")
        assert reply == {"type": "error", "message": "Session room-1 already exists"}


class TestAppWiring:
    """Tests for application construction."""

    def test_shutdown_closes_providers(self, provider):
        config = fast_config(session_start_delay_s=30)
        speech = FakeSpeechClient()
        manager = SessionManager(config, provider, speech)
        with TestClient(create_app(config, manager)) as test_client:
            start_session(test_client, session_id="room-1")

        assert len(manager) == 0
        assert provider.closed
        assert speech.closed

    def test_build_manager(self):
        manager = build_manager(fast_config(anthropic_api_key="k"))
        assert isinstance(manager.speech_client, DeepgramSpeakClient)
        assert manager.speech_client.dry_run is True
