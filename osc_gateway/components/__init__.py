"""
OSC Gateway Components.

- core/      - Foundational components (constants)
- endpoints/ - WebSocket endpoint and application factory
"""
