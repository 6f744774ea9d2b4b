"""
OSC Gateway Constants.

Close codes, task names and fixed response text.
"""

from enum import IntEnum
from typing import Final

__all__ = [
    "WSCloseCode",
    "RelayConstants",
    "UPGRADE_REQUIRED_DETAIL",
]


class WSCloseCode(IntEnum):
    """
    WebSocket close codes used by the gateway.

    Standard codes (1000-1999) from RFC 6455.
    """

    NORMAL = 1000  # Normal closure
    GOING_AWAY = 1001  # Server shutting down


class RelayConstants:
    """
    Gateway operational constants.

    Host and port values live in shared.config.settings, not here.
    """

    # ==========================================================================
    # Delivery Constants
    # ==========================================================================

    # WS_SEND_TIMEOUT: 1 second
    # A consumer that stops reading fills its socket buffer and send_bytes
    # waits for it to drain. Past this bound the send counts as failed and
    # the connection is evicted, so the other consumers keep receiving.
    WS_SEND_TIMEOUT: Final[float] = 1.0

    # ==========================================================================
    # Shutdown Constants
    # ==========================================================================

    SHUTDOWN_CLOSE_CODE: Final[int] = WSCloseCode.GOING_AWAY
    SHUTDOWN_CLOSE_REASON: Final[str] = "Server shutting down"

    # WS_CLOSE_TIMEOUT: 1 second
    # Closing a stalled consumer blocks on the same drain as a send.
    WS_CLOSE_TIMEOUT: Final[float] = 1.0

    # SERVER_GRACE_TIMEOUT: 3 seconds
    # How long uvicorn waits for open connections before cancelling them.
    SERVER_GRACE_TIMEOUT: Final[float] = 3.0

    # SHUTDOWN_TIMEOUT: 5 seconds
    # How long shutdown waits for the server tasks before cancelling them.
    # Longer than SERVER_GRACE_TIMEOUT so uvicorn normally stops by itself.
    SHUTDOWN_TIMEOUT: Final[float] = 5.0

    # ==========================================================================
    # Task Names
    # ==========================================================================

    LISTENER_TASK_NAME: Final[str] = "osc_listener"
    WS_SERVER_TASK_NAME: Final[str] = "websocket_server"


# Body of the response sent to plain HTTP requests on the WebSocket endpoint.
UPGRADE_REQUIRED_DETAIL: Final[str] = "400 Bad Request: WebSocket upgrade required"
