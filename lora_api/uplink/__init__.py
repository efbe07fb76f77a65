"""Decodificación de uplinks y construcción de topics."""

from .decoder import UplinkEnvelope, UplinkMessage, decode_uplink
from .topic import build_topic

__all__ = [
    "UplinkEnvelope",
    "UplinkMessage",
    "decode_uplink",
    "build_topic",
]
