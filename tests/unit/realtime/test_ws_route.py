"""Tests for the /ws job channel endpoint."""

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from app.main import app
from app.realtime.channel import ConnectionRegistry


@pytest.fixture
def client():
    app.state.channel = ConnectionRegistry()
    return TestClient(app)


class TestJobChannel:
    def test_register_and_ping(self, client):
        with client.websocket_connect("/ws?shopId=shop_test01&printerId=HP-01") as ws:
            ws.send_json({"type": "REGISTER", "shopId": "shop_test01", "printerId": "HP-01"})
            assert ws.receive_json() == {"type": "REGISTERED"}
            assert app.state.channel.count("shop_test01") == 1

            ws.send_json({"type": "PING"})
            assert ws.receive_json() == {"type": "PONG"}

    def test_malformed_and_unknown_frames_ignored(self, client):
        with client.websocket_connect("/ws?shopId=shop_test01") as ws:
            ws.send_text("garbage")
            ws.send_json({"type": "HELLO"})
            ws.send_json({"type": "PING"})
            assert ws.receive_json() == {"type": "PONG"}

    def test_missing_shop_id_rejected(self, client):
        with pytest.raises(WebSocketDisconnect) as exc:
            with client.websocket_connect("/ws") as ws:
                ws.receive_json()
        assert exc.value.code == 1008
        assert app.state.channel.count("") == 0

    def test_disconnect_frame_closes(self, client):
        with client.websocket_connect("/ws?shopId=shop_test01") as ws:
            ws.send_json({"type": "DISCONNECT"})
            with pytest.raises(WebSocketDisconnect):
                ws.receive_json()
        assert app.state.channel.count("shop_test01") == 0

    def test_idle_connection_closed_and_unregistered(self, client, monkeypatch):
        from app.realtime import views

        monkeypatch.setattr(views.settings, "WS_IDLE_TIMEOUT_SECONDS", 0.05)
        with client.websocket_connect("/ws?shopId=shop_test01") as ws:
            with pytest.raises(WebSocketDisconnect):
                ws.receive_json()
        assert app.state.channel.count("shop_test01") == 0
