"""Publicación MQTT del adaptador LoRa.

Estructura modular:
- broker_url.py: esquema de URL -> transporte de paho
- deadline.py: arbitraje de timeouts
- publisher.py: publicador de larga vida
"""

from .broker_url import BrokerEndpoint, parse_broker_url
from .deadline import effective_timeout
from .publisher import MQTTPublisher, UplinkPublisher, connect_publisher

__all__ = [
    "BrokerEndpoint",
    "parse_broker_url",
    "effective_timeout",
    "MQTTPublisher",
    "UplinkPublisher",
    "connect_publisher",
]
