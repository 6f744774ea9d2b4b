"""
Core components: constants shared by the gateway modules.
"""

from osc_gateway.components.core.constants import (
    WSCloseCode,
    RelayConstants,
    UPGRADE_REQUIRED_DETAIL,
)

__all__ = [
    "WSCloseCode",
    "RelayConstants",
    "UPGRADE_REQUIRED_DETAIL",
]
