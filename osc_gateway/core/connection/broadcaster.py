"""
Connection Broadcaster.

Fans each relayed OSC packet out to every registered WebSocket
connection and evicts the connections that can no longer take writes.

Delivery is at-most-once and best effort: no retry, no buffering. A send
that does not finish within the send timeout counts as a failure, so a
consumer that stops reading cannot hold back the others.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING

from osc_gateway.components.core.constants import RelayConstants
from shared.config.logging import get_logger

if TYPE_CHECKING:
    from osc_gateway.connection_registry import ClientRegistry
    from osc_gateway.core.connection.lifecycle import RelayConnection
    from osc_gateway.core.connection.stats import RelayStats

logger = get_logger(__name__)


@dataclass
class BroadcastResult:
    """Result of broadcasting one payload."""

    recipients: int = 0  # Connections in the snapshot
    sent: int = 0
    evicted: int = 0

    @property
    def failed(self) -> int:
        """Connections that did not receive the payload."""
        return self.recipients - self.sent


class ConnectionBroadcaster:
    """
    Sends payloads to every connection in the client registry.

    Responsibilities:
    - Send one payload to all registered connections, independently
    - Skip connections that are no longer OPEN
    - Evict closed and failing connections in one pass per broadcast
    """

    def __init__(
        self,
        registry: "ClientRegistry",
        stats: "RelayStats | None" = None,
        send_timeout: float = RelayConstants.WS_SEND_TIMEOUT,
    ) -> None:
        """
        Initialize broadcaster with dependencies.

        Args:
            registry: Shared client registry
            stats: Optional relay statistics
            send_timeout: Seconds one send may wait for the socket to drain
        """
        self._registry = registry
        self._stats = stats
        self._send_timeout = send_timeout

    async def broadcast(self, payload: bytes) -> BroadcastResult:
        """
        Send a payload to every registered connection.

        One connection failing never prevents delivery to the others.
        Connections that are closed or whose send raised or timed out are
        removed from the registry before this returns.

        Args:
            payload: Raw datagram bytes, forwarded unchanged.

        Returns:
            BroadcastResult with recipient, delivery and eviction counts.
        """
        connections = await self._registry.snapshot()
        if not connections:
            logger.debug("Received OSC message, but no WebSocket clients are connected")
            return BroadcastResult()

        outcomes = await asyncio.gather(
            *(self._send_to_connection(connection, payload) for connection in connections)
        )

        dead = [
            connection
            for connection, delivered in zip(connections, outcomes)
            if not delivered
        ]
        result = BroadcastResult(
            recipients=len(connections),
            sent=len(connections) - len(dead),
        )

        if dead:
            result.evicted = await self._registry.remove_many(dead)
            logger.debug("Removed invalid WebSocket clients", count=result.evicted)

        if self._stats is not None:
            self._stats.record_broadcast(result.sent, result.evicted)

        logger.debug("Sent OSC message to WebSocket clients", count=result.sent)
        return result

    async def _send_to_connection(self, connection: "RelayConnection", payload: bytes) -> bool:
        """
        Send to one connection.

        Returns:
            True if the payload was written, False if the connection
            should be evicted.
        """
        if not connection.is_open:
            return False

        try:
            await asyncio.wait_for(connection.send(payload), timeout=self._send_timeout)
            return True
        except asyncio.TimeoutError:
            logger.error(
                "Timed out sending to WebSocket client",
                connection_id=connection.id,
                timeout=self._send_timeout,
            )
            connection.mark_closed()
            return False
        except Exception as e:
            logger.error(
                "Error sending to WebSocket client",
                connection_id=connection.id,
                error=str(e) or type(e).__name__,
            )
            connection.mark_closed()
            return False
