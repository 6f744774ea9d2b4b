"""
Connection Module.

Components for the relay's WebSocket side:
- lifecycle.py: RelayConnection and accept/disconnect handling
- broadcaster.py: Fan-out of payloads with dead-connection eviction
- stats.py: Traffic and connection counters
"""

from osc_gateway.core.connection.lifecycle import (
    ConnectionLifecycle,
    ConnectionState,
    RelayConnection,
    is_ws_connected,
)
from osc_gateway.core.connection.broadcaster import BroadcastResult, ConnectionBroadcaster
from osc_gateway.core.connection.stats import RelayStats

__all__ = [
    "ConnectionLifecycle",
    "ConnectionState",
    "RelayConnection",
    "is_ws_connected",
    "BroadcastResult",
    "ConnectionBroadcaster",
    "RelayStats",
]
