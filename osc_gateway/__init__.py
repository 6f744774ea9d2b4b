"""
OSC WebSocket Gateway.

Relays OSC packets received over UDP to WebSocket clients, so that
browser front-ends can consume output from hardware controllers and
media tools.
"""

__version__ = "0.1.0"
