"""
OSC Packet Decoding.

Decodes inbound datagrams with python-osc for diagnostic logging only.
The relay never filters on the outcome: undecodable datagrams are still
forwarded to the WebSocket clients unchanged.
"""

from __future__ import annotations

from typing import Any

from pythonosc.osc_bundle import OscBundle
from pythonosc.osc_packet import OscPacket, ParseError

from shared.utils.exceptions import OscDecodeError


def decode_osc_packet(data: bytes) -> OscPacket:
    """
    Parse a datagram as an OSC message or bundle.

    Args:
        data: Raw datagram bytes.

    Returns:
        The parsed packet. Bundles are flattened into their messages.

    Raises:
        OscDecodeError: If the datagram is neither a message nor a bundle.
    """
    try:
        return OscPacket(data)
    except ParseError as e:
        raise OscDecodeError(str(e), size=len(data)) from e


def is_bundle(data: bytes) -> bool:
    """Whether the datagram starts with the "#bundle" marker."""
    return OscBundle.dgram_is_bundle(data)


def _loggable(value: Any) -> Any:
    """Make an OSC argument JSON friendly."""
    if isinstance(value, (bytes, bytearray)):
        return value.hex()
    if isinstance(value, (list, tuple)):
        return [_loggable(v) for v in value]
    return value


def describe_packet(packet: OscPacket, bundled: bool = False) -> list[dict[str, Any]]:
    """
    Summarize a decoded packet for structured logs.

    Args:
        packet: Result of decode_osc_packet().
        bundled: Include each message's bundle time tag.

    Returns:
        One dict per message with "address" and "args" keys, plus "timetag"
        when bundled is set.
    """
    described = []
    for timed in packet.messages:
        entry: dict[str, Any] = {
            "address": timed.message.address,
            "args": [_loggable(arg) for arg in timed.message.params],
        }
        if bundled:
            entry["timetag"] = timed.time
        described.append(entry)
    return described
