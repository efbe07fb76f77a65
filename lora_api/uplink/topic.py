"""Construcción de topics MQTT para uplinks."""

from __future__ import annotations

from .decoder import UplinkMessage

SEPARATOR = "/"
UPLINK_SEGMENT = "up"


def build_topic(base_topic: str, msg: UplinkMessage) -> str:
    """``<base>/<applicationID?>/<devEUI|deviceName?>/up``.

    El devEUI tiene prioridad sobre deviceName; nunca se agregan ambos.
    Los valores no se escapan: se asume que no contienen "/".
    """
    parts = [base_topic.strip(SEPARATOR)]
    if msg.application_id:
        parts.append(msg.application_id)
    if msg.dev_eui:
        parts.append(msg.dev_eui)
    elif msg.device_name:
        parts.append(msg.device_name)
    parts.append(UPLINK_SEGMENT)
    return SEPARATOR.join(parts)
