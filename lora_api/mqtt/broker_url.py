"""Parsing of MQTT broker URLs into paho-mqtt connection parameters."""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlsplit

from ..errors import ConfigError

# scheme -> (transport, tls, default port)
_SCHEMES = {
    "mqtt": ("tcp", False, 1883),
    "tcp": ("tcp", False, 1883),
    "mqtts": ("tcp", True, 8883),
    "ssl": ("tcp", True, 8883),
    "tls": ("tcp", True, 8883),
    "ws": ("websockets", False, 80),
    "wss": ("websockets", True, 443),
}


@dataclass(frozen=True)
class BrokerEndpoint:
    """Broker address resolved to what paho-mqtt expects."""
    scheme: str
    host: str
    port: int
    transport: str
    tls: bool
    path: str = "/mqtt"

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"


def parse_broker_url(raw: str) -> BrokerEndpoint:
    """Parse ``raw`` and map its scheme to a concrete transport.

    ``mqtt`` is the plaintext alias (same as ``tcp``) and ``mqtts`` the TLS
    alias (same as ``ssl``/``tls``).

    Raises:
        ConfigError: empty URL, unsupported scheme, missing host or bad port
    """
    if not raw or not raw.strip():
        raise ConfigError("mqtt URL must not be empty")

    try:
        parts = urlsplit(raw.strip())
        port = parts.port
    except ValueError as e:
        raise ConfigError(f"invalid mqtt URL: {e}") from e

    scheme = parts.scheme.lower()
    if scheme not in _SCHEMES:
        raise ConfigError(f"unsupported mqtt scheme: {parts.scheme}")
    if not parts.hostname:
        raise ConfigError("mqtt URL missing host")

    transport, tls, default_port = _SCHEMES[scheme]
    return BrokerEndpoint(
        scheme=scheme,
        host=parts.hostname,
        port=port or default_port,
        transport=transport,
        tls=tls,
        path=parts.path or "/mqtt",
    )
