"""
Utility module: exception types shared by the gateway components.
"""

from shared.utils.exceptions import (
    RelayError,
    RelayStartupError,
    ListenerError,
    OscDecodeError,
)

__all__ = [
    "RelayError",
    "RelayStartupError",
    "ListenerError",
    "OscDecodeError",
]
