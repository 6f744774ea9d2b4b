"""
Tests for the WebSocket acceptor application.

Tests verify:
- Plain HTTP requests on any path get 400 and register nothing
- WebSocket upgrades on any path register a connection
- Closing the WebSocket deregisters it
- Upgrades are refused once shutdown begins
"""

import time

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from osc_gateway.components.core.constants import UPGRADE_REQUIRED_DETAIL, WSCloseCode
from osc_gateway.components.endpoints import create_app


def poll(condition, timeout: float = 2.0) -> None:
    deadline = time.monotonic() + timeout
    while not condition():
        if time.monotonic() > deadline:
            pytest.fail("Condition not met before timeout")
        time.sleep(0.01)


@pytest.fixture
def client(lifecycle):
    return TestClient(create_app(lifecycle))


class TestPlainHttp:
    """Requests without an upgrade."""

    @pytest.mark.parametrize("path", ["/", "/osc", "/docs", "/openapi.json"])
    def test_get_returns_400(self, client, registry, path):
        response = client.get(path)

        assert response.status_code == 400
        assert response.text == UPGRADE_REQUIRED_DETAIL
        assert registry.size == 0

    @pytest.mark.parametrize("method", ["post", "put", "delete"])
    def test_other_methods_return_400(self, client, method):
        response = getattr(client, method)("/")

        assert response.status_code == 400


class TestWebSocketUpgrade:
    """Requests that upgrade to WebSocket."""

    @pytest.mark.parametrize("path", ["/", "/any/path/at/all"])
    def test_upgrade_registers_and_close_deregisters(self, client, registry, path):
        with client.websocket_connect(path):
            poll(lambda: registry.size == 1)

        poll(lambda: registry.size == 0)

    def test_two_clients(self, client, registry):
        with client.websocket_connect("/"):
            with client.websocket_connect("/"):
                poll(lambda: registry.size == 2)
            poll(lambda: registry.size == 1)
        poll(lambda: registry.size == 0)

    def test_client_frames_are_ignored(self, client, registry, stats):
        with client.websocket_connect("/") as ws:
            ws.send_text("hello")
            ws.send_bytes(b"\x00\x01")
            poll(lambda: registry.size == 1)

        poll(lambda: registry.size == 0)
        assert stats.connections_accepted == 1
        assert stats.connections_closed == 1

    def test_upgrade_refused_during_shutdown(self, client, lifecycle, registry):
        lifecycle.set_shutdown(True)

        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect("/"):
                pass

        assert exc_info.value.code == WSCloseCode.GOING_AWAY
        assert registry.size == 0
