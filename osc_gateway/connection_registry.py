"""
Client Registry.

The set of WebSocket connections that receive relayed OSC packets.
It is the only state shared between the connection acceptor and the
broadcaster, and every mutation and snapshot happens under one
asyncio.Lock.

Usage:
    registry = ClientRegistry()
    await registry.add(connection)
    for connection in await registry.snapshot():
        ...
    await registry.remove(connection)
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Iterable

from osc_gateway.components.core.constants import RelayConstants
from shared.config.logging import get_logger

if TYPE_CHECKING:
    from osc_gateway.core.connection.lifecycle import RelayConnection

logger = get_logger(__name__)


class ClientRegistry:
    """
    Concurrency-safe set of active connections, keyed by connection id.

    All operations are total: adding a present connection and removing an
    absent one are no-ops.
    """

    def __init__(self, close_timeout: float = RelayConstants.WS_CLOSE_TIMEOUT) -> None:
        self._connections: dict[str, "RelayConnection"] = {}
        self._lock = asyncio.Lock()
        self._close_timeout = close_timeout

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, connection: object) -> bool:
        connection_id = getattr(connection, "id", None)
        return self._connections.get(connection_id) is connection

    @property
    def size(self) -> int:
        """Current number of registered connections."""
        return len(self._connections)

    async def add(self, connection: "RelayConnection") -> int:
        """
        Register a connection.

        Returns:
            Registry size after the insert.
        """
        async with self._lock:
            self._connections.setdefault(connection.id, connection)
            return len(self._connections)

    async def remove(self, connection: "RelayConnection") -> bool:
        """
        Deregister a connection if present.

        Returns:
            True if the connection was registered.
        """
        async with self._lock:
            return self._discard(connection)

    async def remove_many(self, connections: Iterable["RelayConnection"]) -> int:
        """
        Deregister several connections in one locked pass.

        Returns:
            Number of connections that were registered.
        """
        async with self._lock:
            return sum(1 for connection in connections if self._discard(connection))

    async def snapshot(self) -> list["RelayConnection"]:
        """
        Copy of the current members.

        Iterating the returned list is unaffected by later mutations.
        """
        async with self._lock:
            return list(self._connections.values())

    async def close_all(
        self,
        code: int = RelayConstants.SHUTDOWN_CLOSE_CODE,
        reason: str = RelayConstants.SHUTDOWN_CLOSE_REASON,
    ) -> int:
        """
        Drain the registry and close every connection, best-effort.

        Connections are closed concurrently and each close is bounded by
        the close timeout. Close errors and timeouts are logged at debug
        level and otherwise ignored.

        Returns:
            Number of connections drained.
        """
        async with self._lock:
            drained = list(self._connections.values())
            self._connections.clear()

        await asyncio.gather(
            *(self._close_quietly(connection, code, reason) for connection in drained)
        )
        return len(drained)

    async def _close_quietly(self, connection: "RelayConnection", code: int, reason: str) -> None:
        try:
            await asyncio.wait_for(
                connection.close(code=code, reason=reason),
                timeout=self._close_timeout,
            )
        except asyncio.TimeoutError:
            connection.mark_closed()
            logger.debug(
                "Timed out closing WebSocket client",
                connection_id=connection.id,
                timeout=self._close_timeout,
            )
        except Exception as e:
            logger.debug(
                "Failed to close WebSocket client",
                connection_id=connection.id,
                error=str(e),
            )

    def _discard(self, connection: "RelayConnection") -> bool:
        """Remove a connection; caller must hold the lock."""
        if self._connections.get(connection.id) is connection:
            del self._connections[connection.id]
            return True
        return False
