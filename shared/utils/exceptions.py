"""
Relay exception hierarchy.

Usage:
    from shared.utils.exceptions import RelayStartupError, OscDecodeError

    raise RelayStartupError("Failed to bind WebSocket server", host=host, port=port)
    raise OscDecodeError("Could not parse packet", size=len(data))

Each exception keeps its human readable ``detail`` plus keyword context
that callers pass straight into structured log calls:

    except RelayError as e:
        logger.error(e.detail, **e.context)
"""

from typing import Any


class RelayError(Exception):
    """
    Base exception for the gateway.

    All gateway exceptions inherit from this class so the supervisor
    can tell expected failures apart from programming errors.
    """

    def __init__(self, detail: str, **context: Any):
        self.detail = detail
        self.context = context
        super().__init__(detail)

    def __str__(self) -> str:
        if not self.context:
            return self.detail
        context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{self.detail} ({context_str})"


# =============================================================================
# Fatal errors
# =============================================================================


class RelayStartupError(RelayError):
    """
    A transport could not be bound (address in use, permission denied,
    unresolvable host). Fatal: the process exits with status 1.
    """


class ListenerError(RelayError):
    """Socket-level failure inside the UDP receive loop. Fatal."""


# =============================================================================
# Recoverable errors
# =============================================================================


class OscDecodeError(RelayError):
    """
    A datagram is not a well-formed OSC message or bundle.

    Only used for diagnostics: the raw datagram is forwarded regardless.
    """
