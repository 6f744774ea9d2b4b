"""
Connection Lifecycle Management.

Handles WebSocket connection acceptance and disconnection.

Every way a connection can end (client close, network drop, transport
error, shutdown) is reported through ConnectionLifecycle.disconnect(),
the single path that removes a connection from the registry.
"""

from __future__ import annotations

import uuid
from enum import Enum
from typing import TYPE_CHECKING

from starlette.websockets import WebSocketState

from osc_gateway.components.core.constants import RelayConstants, WSCloseCode
from shared.config.logging import get_logger

if TYPE_CHECKING:
    from fastapi import WebSocket
    from osc_gateway.connection_registry import ClientRegistry
    from osc_gateway.core.connection.stats import RelayStats

logger = get_logger(__name__)


def is_ws_connected(ws: "WebSocket") -> bool:
    """
    Check if WebSocket is in connected state before sending.

    Starlette WebSockets have limited state visibility:
    - CONNECTING: Initial state (not observable here)
    - CONNECTED: Active connection
    - DISCONNECTED: Closed connection

    Transitional states are not exposed, so connections may appear
    connected briefly after disconnect initiated.
    """
    return (
        ws.client_state == WebSocketState.CONNECTED
        and ws.application_state == WebSocketState.CONNECTED
    )


class ConnectionState(str, Enum):
    """Liveness of a relay connection."""

    OPEN = "open"
    CLOSED = "closed"


class RelayConnection:
    """
    One accepted WebSocket consumer.

    Identity is the connection object itself; ``id`` is a short unique
    string used as the registry key and in logs.
    """

    def __init__(self, websocket: "WebSocket", connection_id: str | None = None) -> None:
        self.websocket = websocket
        self.id = connection_id or uuid.uuid4().hex[:12]
        client = websocket.client
        self.peer = f"{client.host}:{client.port}" if client else "unknown"
        self._closed = False
        self._released = False

    def __repr__(self) -> str:
        return f"RelayConnection(id={self.id!r}, peer={self.peer!r}, state={self.state.value})"

    @property
    def state(self) -> ConnectionState:
        if self._closed or not is_ws_connected(self.websocket):
            return ConnectionState.CLOSED
        return ConnectionState.OPEN

    @property
    def is_open(self) -> bool:
        return self.state is ConnectionState.OPEN

    def mark_closed(self) -> None:
        """Record the CLOSED transition without touching the socket."""
        self._closed = True

    def mark_released(self) -> bool:
        """Record that the lifecycle has handled the disconnect. True the first time."""
        first = not self._released
        self._released = True
        return first

    async def send(self, payload: bytes) -> None:
        """Send one payload as a single binary frame."""
        await self.websocket.send_bytes(payload)

    async def close(
        self,
        code: int = WSCloseCode.NORMAL,
        reason: str = "",
    ) -> None:
        """
        Close the underlying WebSocket if it is still connected.

        Idempotent. Errors from the transport propagate to the caller,
        which decides whether they matter.
        """
        was_open = self.is_open
        self._closed = True
        if was_open:
            await self.websocket.close(code=code, reason=reason)


class ConnectionLifecycle:
    """
    Manages the lifecycle of WebSocket connections.

    Responsibilities:
    - Accept new connections and register them
    - Deregister connections on close or error (idempotent)
    - Refuse new connections once shutdown has begun
    """

    def __init__(
        self,
        registry: "ClientRegistry",
        stats: "RelayStats | None" = None,
    ) -> None:
        """
        Initialize lifecycle manager with dependencies.

        Args:
            registry: Shared client registry
            stats: Optional relay statistics
        """
        self._registry = registry
        self._stats = stats
        self._shutdown = False

    @property
    def registry(self) -> "ClientRegistry":
        return self._registry

    @property
    def is_shutdown(self) -> bool:
        """Whether shutdown has been initiated."""
        return self._shutdown

    def set_shutdown(self, value: bool) -> None:
        """Set shutdown state."""
        self._shutdown = value

    async def connect(self, websocket: "WebSocket") -> RelayConnection | None:
        """
        Complete the WebSocket handshake and register the connection.

        Args:
            websocket: The upgraded request.

        Returns:
            The registered connection, or None if the handshake was refused
            or failed.
        """
        if self._shutdown:
            logger.debug("Refusing WebSocket client during shutdown")
            await websocket.close(
                code=RelayConstants.SHUTDOWN_CLOSE_CODE,
                reason=RelayConstants.SHUTDOWN_CLOSE_REASON,
            )
            return None

        try:
            await websocket.accept()
        except Exception as e:
            logger.error("WebSocket accept failed", error=str(e))
            return None

        connection = RelayConnection(websocket)
        total = await self._registry.add(connection)
        if self._stats is not None:
            self._stats.record_connect()

        logger.debug(
            "WebSocket client connected",
            connection_id=connection.id,
            peer=connection.peer,
            total=total,
        )
        return connection

    async def disconnect(
        self,
        connection: RelayConnection,
        error: BaseException | None = None,
    ) -> None:
        """
        Remove a connection from the registry.

        Safe to call more than once for the same connection, and after the
        broadcaster has already evicted it.
        The disconnect is counted and logged once per connection, including
        connections the broadcaster evicted earlier.

        Args:
            connection: The connection that ended.
            error: Transport error that ended it, if any.
        """
        connection.mark_closed()
        removed = await self._registry.remove(connection)

        if error is not None:
            logger.error(
                "WebSocket error",
                connection_id=connection.id,
                peer=connection.peer,
                error=str(error) or type(error).__name__,
            )

        if not connection.mark_released():
            return

        if self._stats is not None:
            self._stats.record_disconnect()

        logger.debug(
            "WebSocket client disconnected",
            connection_id=connection.id,
            evicted=not removed,
            total=len(self._registry),
        )
