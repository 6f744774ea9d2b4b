"""
Listener Module.

Components for the relay's UDP side:
- osc_listener.py: UDP receive loop feeding the broadcaster
- decoder.py: Observational OSC decoding for logs
"""

from osc_gateway.core.listener.osc_listener import OSCListener, format_address
from osc_gateway.core.listener.decoder import decode_osc_packet, describe_packet, is_bundle

__all__ = [
    "OSCListener",
    "format_address",
    "decode_osc_packet",
    "describe_packet",
    "is_bundle",
]
