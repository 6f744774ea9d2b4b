"""
OSC Gateway Core Module.

- connection/: Connection lifecycle, broadcasting, stats
- listener/: UDP receive loop and OSC decoding
"""

from osc_gateway.core.connection import (
    BroadcastResult,
    ConnectionBroadcaster,
    ConnectionLifecycle,
    ConnectionState,
    RelayConnection,
    RelayStats,
    is_ws_connected,
)
from osc_gateway.core.listener import OSCListener

__all__ = [
    # Connection module
    "BroadcastResult",
    "ConnectionBroadcaster",
    "ConnectionLifecycle",
    "ConnectionState",
    "RelayConnection",
    "RelayStats",
    "is_ws_connected",
    # Listener module
    "OSCListener",
]
