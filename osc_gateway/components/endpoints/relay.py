"""
Relay WebSocket Endpoint.

The outbound side of the gateway: a FastAPI application that upgrades
requests on any path to a WebSocket subscribed to the OSC stream, and
answers plain HTTP requests with 400.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import FastAPI, WebSocket
from fastapi.responses import PlainTextResponse

from osc_gateway.components.core.constants import UPGRADE_REQUIRED_DETAIL
from shared.config.logging import get_logger

if TYPE_CHECKING:
    from osc_gateway.core.connection.lifecycle import ConnectionLifecycle

logger = get_logger(__name__)

_HTTP_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


class RelayEndpoint:
    """
    Handles one WebSocket subscriber from handshake to disconnect.

    Frames sent by the client are read only to notice the disconnect and
    are otherwise ignored.

    Usage:
        endpoint = RelayEndpoint(websocket, lifecycle)
        await endpoint.run()
    """

    def __init__(self, websocket: WebSocket, lifecycle: "ConnectionLifecycle"):
        self.websocket = websocket
        self.lifecycle = lifecycle

    async def run(self) -> None:
        """
        Main entry point - run the WebSocket endpoint.

        1. Accept and register
        2. Read until the client goes away
        3. Deregister (always)
        """
        connection = await self.lifecycle.connect(self.websocket)
        if connection is None:
            return

        error: Exception | None = None
        try:
            await self._receive_loop(connection.id)
        except Exception as e:
            error = e
        finally:
            await self.lifecycle.disconnect(connection, error=error)

    async def _receive_loop(self, connection_id: str) -> None:
        while True:
            message = await self.websocket.receive()
            if message["type"] == "websocket.disconnect":
                logger.debug(
                    "WebSocket client closed",
                    connection_id=connection_id,
                    code=message.get("code"),
                )
                return
            logger.debug("Ignoring message from WebSocket client", connection_id=connection_id)


def create_app(lifecycle: "ConnectionLifecycle") -> FastAPI:
    """
    Build the FastAPI application for the outbound WebSocket server.

    Documentation routes are disabled so that every plain HTTP request,
    whatever its path, gets the same 400 answer.

    Args:
        lifecycle: Registers and deregisters accepted connections.
    """
    app = FastAPI(
        title="OSC WebSocket Gateway",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    @app.websocket("/{path:path}")
    async def relay_websocket(websocket: WebSocket, path: str):
        """Subscribe a client to the relayed OSC stream."""
        endpoint = RelayEndpoint(websocket, lifecycle)
        await endpoint.run()

    @app.api_route("/{path:path}", methods=_HTTP_METHODS, include_in_schema=False)
    async def upgrade_required(path: str):
        """Reject requests that are not WebSocket upgrades."""
        return PlainTextResponse(UPGRADE_REQUIRED_DETAIL, status_code=400)

    return app
