"""
Where: services/kube_gateway/tests/test_websocket_relay.py
What: Tests for WebSocket upgrade handling and the frame relay.
Why: Exec/attach sessions must reach the upstream untouched and close cleanly.
"""

import threading

import pytest
from fastapi import FastAPI, WebSocket
from fastapi.testclient import TestClient
from starlette.testclient import WebSocketDenialResponse
from starlette.websockets import WebSocketDisconnect
from websockets.sync.server import serve

from services.kube_gateway.core.websocket_relay import (
    _wire_close_code,
    relay_websocket,
    to_websocket_url,
)

EXEC_PROTOCOL = "v4.channel.k8s.io"


def test_to_websocket_url():
    assert to_websocket_url("https://api.scarmonit.com/api?x=1") == "wss://api.scarmonit.com/api?x=1"
    assert to_websocket_url("http://127.0.0.1:8080/x") == "ws://127.0.0.1:8080/x"
    assert to_websocket_url("wss://already") == "wss://already"


def test_wire_close_code():
    assert _wire_close_code(None) == 1000
    assert _wire_close_code(1006) == 1000
    assert _wire_close_code(1005, default=1011) == 1011
    assert _wire_close_code(4001) == 4001


# ===========================================
# Relay against a real upstream WebSocket server
# ===========================================


@pytest.fixture
def ws_upstream():
    """Echo server on loopback that records the handshake headers it saw."""
    seen = {}

    def process_request(connection, request):
        seen["headers"] = request.headers
        seen["path"] = request.path
        if request.path.startswith("/forbidden"):
            return connection.respond(403, "forbidden by upstream\n")
        return None

    def echo(connection):
        for message in connection:
            connection.send(message)

    server = serve(
        echo,
        "127.0.0.1",
        0,
        subprotocols=[EXEC_PROTOCOL],
        process_request=process_request,
    )
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    port = server.socket.getsockname()[1]

    yield f"http://127.0.0.1:{port}", seen

    server.shutdown()
    thread.join(timeout=5)


@pytest.fixture
def relay_client(ws_upstream):
    base_url, _ = ws_upstream
    relay_app = FastAPI()

    @relay_app.websocket("/{path:path}")
    async def relay(websocket: WebSocket, path: str):
        await relay_websocket(websocket, f"{base_url}/{path}")

    return TestClient(relay_app)


def test_relay_echoes_text_and_binary_frames(relay_client, ws_upstream):
    _, seen = ws_upstream

    with relay_client.websocket_connect(
        "/api/v1/namespaces/default/pods/web/exec?command=sh",
        subprotocols=[EXEC_PROTOCOL],
        headers={"Cookie": "session=1"},
    ) as ws:
        assert ws.accepted_subprotocol == EXEC_PROTOCOL

        ws.send_text("ls")
        assert ws.receive_text() == "ls"

        ws.send_bytes(b"\x00\x01stdin")
        assert ws.receive_bytes() == b"\x00\x01stdin"

    assert seen["path"] == "/api/v1/namespaces/default/pods/web/exec?command=sh"
    assert seen["headers"]["Cookie"] == "session=1"
    assert "Authorization" not in seen["headers"]


def test_relay_passes_on_upstream_handshake_rejection(relay_client):
    with pytest.raises(WebSocketDenialResponse) as exc_info:
        with relay_client.websocket_connect("/forbidden"):
            pass

    assert exc_info.value.status_code == 403


# ===========================================
# Gateway websocket route
# ===========================================


def test_websocket_outside_proxy_paths_is_refused(main_app):
    client = TestClient(main_app)

    for path in ("/other", "/kubernetes/proxy-health", "/kubernetes/dashboard"):
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect(path):
                pass
        assert exc_info.value.code == 1008


def test_websocket_rejected_origin_under_strict_policy(main_app, configure):
    configure(ALLOWED_ORIGIN="https://app.example.com")
    client = TestClient(main_app)

    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect(
            "/kubernetes/api/v1/watch", headers={"Origin": "https://evil.example"}
        ):
            pass
    assert exc_info.value.code == 1008


def test_websocket_with_invalid_config_closes_with_internal_error(main_app, configure):
    configure(K8S_API_URL="http://api.example.com")
    client = TestClient(main_app)

    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/kubernetes/api/v1/watch"):
            pass
    assert exc_info.value.code == 1011


def test_websocket_targets_sanitized_upstream_url(main_app, monkeypatch):
    async def fake_relay(websocket, target_url):
        await websocket.accept()
        await websocket.send_text(target_url)
        await websocket.close()

    monkeypatch.setattr("services.kube_gateway.main.relay_websocket", fake_relay)
    client = TestClient(main_app)

    with client.websocket_connect("/kubernetes/api//v1//pods/web/exec?command=ls") as ws:
        assert ws.receive_text() == "https://api.scarmonit.com/api/v1/pods/web/exec?command=ls"
