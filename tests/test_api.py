"""
End-to-end tests driving the relay through FastAPI's TestClient.
"""

import json
import time

import pytest
from fastapi.testclient import TestClient

from signalbox.main import create_app
from signalbox.modules.config import ConfigModule

pytestmark = pytest.mark.integration


@pytest.fixture
def client(app_config):
    app = create_app(app_config)
    with TestClient(app) as test_client:
        yield test_client


def wait_for_sessions(client, expected, attempts=100):
    """Disconnect cleanup runs on the server task; poll until it lands."""
    for _ in range(attempts):
        if client.get("/health").json()["sessions"] == expected:
            return True
        time.sleep(0.01)
    return False


def test_create_and_join_scenario(client):
    with client.websocket_connect("/ws") as sender, client.websocket_connect("/ws") as receiver:
        sender.send_json({"type": "create-session", "pin": "1234", "fileName": "a.txt", "fileSize": 10})
        assert sender.receive_json() == {
            "type": "session-created",
            "pin": "1234",
            "fileName": "a.txt",
            "fileSize": 10,
        }

        receiver.send_json({"type": "join-session", "pin": "1234"})
        assert receiver.receive_json() == {"type": "session-joined", "fileName": "a.txt", "fileSize": 10}
        assert sender.receive_json() == {"type": "receiver-joined", "fileName": "a.txt", "fileSize": 10}


def test_join_unknown_pin(client):
    with client.websocket_connect("/ws") as receiver:
        receiver.send_json({"type": "join-session", "pin": "9999"})

        assert receiver.receive_json() == {"type": "session-not-found"}


def test_duplicate_create(client):
    with client.websocket_connect("/ws") as first, client.websocket_connect("/") as second:
        first.send_json({"type": "create-session", "pin": "1234"})
        first.receive_json()

        second.send_json({"type": "create-session", "pin": "1234"})

        assert second.receive_json() == {"type": "pin-taken"}


def test_offer_relayed_verbatim(client):
    with client.websocket_connect("/ws") as sender, client.websocket_connect("/ws") as receiver:
        sender.send_json({"type": "create-session", "pin": "1234"})
        sender.receive_json()
        receiver.send_json({"type": "join-session", "pin": "1234"})
        receiver.receive_json()
        sender.receive_json()

        offer = '{"type":"offer","pin":"1234","sdp":"v=0\\r\\n..."}'
        sender.send_text(offer)
        assert receiver.receive_text() == offer

        answer = json.dumps({"type": "answer", "pin": "1234", "sdp": "answer"})
        receiver.send_text(answer)
        assert sender.receive_text() == answer


def test_malformed_frame_keeps_connection(client):
    with client.websocket_connect("/ws") as sender:
        sender.send_text("definitely not json")
        sender.send_json({"type": "unknown-thing"})
        sender.send_json({"type": "create-session", "pin": "4321"})

        assert sender.receive_json() == {"type": "session-created", "pin": "4321"}


def test_disconnect_removes_session(client):
    with client.websocket_connect("/ws") as sender:
        sender.send_json({"type": "create-session", "pin": "1234"})
        sender.receive_json()

        with client.websocket_connect("/ws") as receiver:
            receiver.send_json({"type": "join-session", "pin": "1234"})
            receiver.receive_json()
            sender.receive_json()

        assert wait_for_sessions(client, 0)

        sender.send_json({"type": "offer", "pin": "1234", "sdp": "x"})
        assert sender.receive_json() == {"type": "session-not-found"}


def test_delete_session(client):
    with client.websocket_connect("/ws") as sender:
        sender.send_json({"type": "create-session", "pin": "1234"})
        sender.receive_json()

        assert client.delete("/sessions/1234").status_code == 204
        assert client.delete("/sessions/1234").status_code == 404

        sender.send_json({"type": "create-session", "pin": "1234"})
        assert sender.receive_json()["type"] == "session-created"


def test_health_and_metrics(client):
    assert client.get("/healthz").json() == {"status": "ok"}

    health = client.get("/health").json()
    assert health["status"] == "healthy"
    assert health["reaper"] == "running"

    with client.websocket_connect("/ws") as sender:
        sender.send_json({"type": "create-session", "pin": "1234"})
        sender.receive_json()

        body = client.get("/metrics").text
        assert "signalbox_sessions_total 1" in body
        assert "signalbox_sessions_open 1" in body
        assert "signalbox_sessions_paired 0" in body


def test_health_without_lifespan(app_config):
    """Without the lifespan the registry does not exist yet."""
    client = TestClient(create_app(app_config))

    response = client.get("/health")

    assert response.status_code == 503
    assert client.get("/metrics").status_code == 503


def test_static_client_served(app_config, tmp_path):
    (tmp_path / "index.html").write_text("<h1>share</h1>")
    config = ConfigModule(overrides={"static_dir": str(tmp_path)})

    with TestClient(create_app(config)) as client:
        response = client.get("/")
        assert response.status_code == 200
        assert "share" in response.text

        with client.websocket_connect("/") as ws:
            ws.send_json({"type": "join-session", "pin": "0000"})
            assert ws.receive_json() == {"type": "session-not-found"}


def test_missing_static_dir_ignored(app_config, tmp_path):
    config = ConfigModule(overrides={"static_dir": str(tmp_path / "missing")})

    with TestClient(create_app(config)) as client:
        assert client.get("/healthz").status_code == 200


def test_cors_headers(client):
    response = client.get("/healthz", headers={"Origin": "https://peer.example"})

    assert response.headers["access-control-allow-origin"] == "*"


def test_shutdown_clears_registry(app_config):
    app = create_app(app_config)
    with TestClient(app) as client:
        with client.websocket_connect("/ws") as sender:
            sender.send_json({"type": "create-session", "pin": "1234"})
            sender.receive_json()
        registry = app.state.registry

    assert len(registry) == 0
    assert app.state.reaper.running is False
