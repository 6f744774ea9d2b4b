"""
Relay Statistics.

Counters for the relay's traffic and connection churn, logged as one
snapshot at shutdown.

All increments happen on the event loop thread, so plain integer
updates are sufficient.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any


@dataclass
class RelayStats:
    """Counters for datagrams, broadcasts and connection churn."""

    datagrams_received: int = 0
    decode_failures: int = 0
    broadcasts: int = 0
    deliveries: int = 0
    evictions: int = 0
    connections_accepted: int = 0
    connections_closed: int = 0

    def record_datagram(self, decoded: bool) -> None:
        self.datagrams_received += 1
        if not decoded:
            self.decode_failures += 1

    def record_broadcast(self, sent: int, evicted: int) -> None:
        self.broadcasts += 1
        self.deliveries += sent
        self.evictions += evicted

    def record_connect(self) -> None:
        self.connections_accepted += 1

    def record_disconnect(self) -> None:
        self.connections_closed += 1

    def get_snapshot(self) -> dict[str, Any]:
        """Get a copy of all counters."""
        return asdict(self)
