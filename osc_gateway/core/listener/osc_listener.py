"""
OSC UDP Listener.

Receives OSC datagrams on a UDP socket and hands every one of them,
unchanged, to the broadcaster.

The asyncio datagram protocol only enqueues; a single consumer loop
(serve) drains the queue, so payloads are broadcast strictly in the
order they were received.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Union

from osc_gateway.core.listener.decoder import decode_osc_packet, describe_packet, is_bundle
from shared.config.logging import get_logger
from shared.utils.exceptions import ListenerError, OscDecodeError, RelayStartupError

if TYPE_CHECKING:
    from osc_gateway.core.connection.broadcaster import ConnectionBroadcaster
    from osc_gateway.core.connection.stats import RelayStats

logger = get_logger(__name__)

# Queued by the protocol when the transport closes without an error.
_CLOSED = object()

_QueueItem = Union[tuple[bytes, Any], Exception, object]


def format_address(addr: Any) -> str:
    """Render a datagram source address as host:port."""
    if isinstance(addr, tuple) and len(addr) >= 2:
        return f"{addr[0]}:{addr[1]}"
    return "unknown"


class _DatagramQueueProtocol(asyncio.DatagramProtocol):
    """Feeds received datagrams and transport errors into a queue."""

    def __init__(self, queue: "asyncio.Queue[_QueueItem]") -> None:
        self._queue = queue

    def datagram_received(self, data: bytes, addr: Any) -> None:
        self._queue.put_nowait((data, addr))

    def error_received(self, exc: Exception) -> None:
        self._queue.put_nowait(exc)

    def connection_lost(self, exc: Exception | None) -> None:
        self._queue.put_nowait(exc if exc is not None else _CLOSED)


class OSCListener:
    """
    UDP receive loop for OSC packets.

    Usage:
        listener = OSCListener("127.0.0.1", 57121, broadcaster)
        await listener.start()   # raises RelayStartupError on bind failure
        await listener.serve()   # returns after close(), raises ListenerError
    """

    def __init__(
        self,
        host: str,
        port: int,
        broadcaster: "ConnectionBroadcaster",
        stats: "RelayStats | None" = None,
    ) -> None:
        """
        Initialize the listener.

        Args:
            host: Address to bind
            port: UDP port to bind (0 picks a free port)
            broadcaster: Receives every datagram
            stats: Optional relay statistics
        """
        self.host = host
        self.port = port
        self._broadcaster = broadcaster
        self._stats = stats
        self._queue: asyncio.Queue[_QueueItem] = asyncio.Queue()
        self._transport: asyncio.DatagramTransport | None = None

    @property
    def address(self) -> tuple[str, int] | None:
        """The (host, port) actually bound, or None before start()."""
        if self._transport is None:
            return None
        sockname = self._transport.get_extra_info("sockname")
        return sockname[0], sockname[1]

    @property
    def transport(self) -> asyncio.DatagramTransport | None:
        """The bound datagram transport, or None before start()."""
        return self._transport

    @property
    def is_running(self) -> bool:
        return self._transport is not None and not self._transport.is_closing()

    async def start(self) -> None:
        """
        Bind the UDP socket.

        Raises:
            RelayStartupError: If the address cannot be bound.
        """
        loop = asyncio.get_running_loop()
        try:
            self._transport, _ = await loop.create_datagram_endpoint(
                lambda: _DatagramQueueProtocol(self._queue),
                local_addr=(self.host, self.port),
            )
        except OSError as e:
            raise RelayStartupError(
                "Failed to bind OSC UDP server",
                host=self.host,
                port=self.port,
                error=str(e),
            ) from e

        host, port = self.address
        logger.info("OSC UDP server started", host=host, port=port)

    async def serve(self) -> None:
        """
        Receive loop: handle datagrams until the socket closes.

        Raises:
            ListenerError: On a socket-level error. The socket is released
                before the error propagates.
        """
        if self._transport is None:
            raise ListenerError("OSC UDP server is not started")

        try:
            while True:
                item = await self._queue.get()
                if item is _CLOSED:
                    break
                if isinstance(item, Exception):
                    logger.critical("OSC server error", error=str(item) or type(item).__name__)
                    raise ListenerError("OSC UDP socket failed", error=str(item)) from item
                data, addr = item
                await self.handle_datagram(data, addr)
        finally:
            self.close()

    async def handle_datagram(self, data: bytes, addr: Any = None) -> None:
        """
        Decode one datagram for logging, then forward it unchanged.

        Decode failures are logged and counted; they never stop forwarding.
        """
        sender = format_address(addr)
        decoded = False
        try:
            packet = decode_osc_packet(data)
        except OscDecodeError as e:
            logger.debug("Failed to parse OSC message", sender=sender, size=len(data), error=e.detail)
        except Exception as e:
            logger.error("OSC message parse error", sender=sender, error=str(e) or type(e).__name__)
        else:
            decoded = True
            logger.debug(
                "Received OSC message",
                sender=sender,
                messages=describe_packet(packet, bundled=is_bundle(data)),
            )

        if self._stats is not None:
            self._stats.record_datagram(decoded)

        await self._broadcaster.broadcast(data)

    def close(self) -> None:
        """Release the UDP socket. Idempotent."""
        if self._transport is not None and not self._transport.is_closing():
            self._transport.close()
