"""
WebSocket endpoints.

- relay.py: RelayEndpoint and the FastAPI application factory
"""

from osc_gateway.components.endpoints.relay import RelayEndpoint, create_app

__all__ = [
    "RelayEndpoint",
    "create_app",
]
