"""
Pytest configuration and fixtures for gateway tests.
"""

import asyncio
import socket
from types import SimpleNamespace

import pytest
from pythonosc.osc_message_builder import OscMessageBuilder
from starlette.websockets import WebSocketState

from osc_gateway.connection_registry import ClientRegistry
from osc_gateway.core.connection import (
    ConnectionBroadcaster,
    ConnectionLifecycle,
    RelayConnection,
    RelayStats,
)


class FakeWebSocket:
    """
    Stand-in for starlette.websockets.WebSocket.

    Records binary frames and close calls; can be told to fail sends, to
    stall sends or closes the way a consumer that stops reading does, or
    to look closed from the client side.
    """

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 50000,
        fail_with: Exception | None = None,
        stalled: bool = False,
    ):
        self.client = SimpleNamespace(host=host, port=port)
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED
        self.fail_with = fail_with
        self.stalled = stalled
        self.sent: list[bytes] = []
        self.close_calls: list[tuple[int, str | None]] = []
        self.accepted = False

    async def accept(self) -> None:
        self.accepted = True

    async def send_bytes(self, data: bytes) -> None:
        if self.stalled:
            await asyncio.Event().wait()
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append(data)

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        if self.stalled:
            await asyncio.Event().wait()
        self.close_calls.append((code, reason))
        self.application_state = WebSocketState.DISCONNECTED

    def drop(self) -> None:
        """Simulate the client's socket being closed externally."""
        self.client_state = WebSocketState.DISCONNECTED


def osc_message(address: str, *args) -> bytes:
    """Build a well-formed OSC message datagram."""
    builder = OscMessageBuilder(address=address)
    for arg in args:
        builder.add_arg(arg)
    return builder.build().dgram


def free_udp_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


async def wait_for(condition, timeout: float = 2.0, interval: float = 0.01) -> None:
    """Poll until condition() is truthy or fail the test."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not condition():
        if loop.time() > deadline:
            pytest.fail("Condition not met before timeout")
        await asyncio.sleep(interval)


@pytest.fixture
def registry():
    return ClientRegistry()


@pytest.fixture
def stats():
    return RelayStats()


@pytest.fixture
def broadcaster(registry, stats):
    return ConnectionBroadcaster(registry, stats)


@pytest.fixture
def lifecycle(registry, stats):
    return ConnectionLifecycle(registry, stats)


@pytest.fixture
def make_connection():
    """Factory for RelayConnection objects backed by FakeWebSocket."""
    counter = iter(range(50000, 60000))

    def _make(fail_with: Exception | None = None, stalled: bool = False) -> RelayConnection:
        ws = FakeWebSocket(port=next(counter), fail_with=fail_with, stalled=stalled)
        return RelayConnection(ws)

    return _make
