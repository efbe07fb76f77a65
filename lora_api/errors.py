"""Excepciones del adaptador.

- ConfigError / MQTTConnectError: fatales al arrancar.
- DecodeError: payload inválido -> 400.
- PublishError y subclases: fallo aguas abajo -> 502.
"""

from __future__ import annotations


class ConfigError(ValueError):
    """Configuración inválida; el servicio no debe arrancar."""


class MQTTConnectError(RuntimeError):
    """No se pudo completar la conexión inicial al broker."""


class DecodeError(ValueError):
    """El cuerpo del webhook no es un uplink válido."""


class PublishError(RuntimeError):
    """Fallo al publicar en el broker."""


class PublisherNotConnectedError(PublishError):
    def __init__(self) -> None:
        super().__init__("mqtt client is not connected")


class PublishTimeoutError(PublishError):
    def __init__(self, topic: str, timeout: float):
        self.topic = topic
        self.timeout = timeout
        super().__init__(f"publishing to topic {topic} timed out after {timeout:.3f}s")


class PublishCancelledError(PublishError):
    """El deadline del llamador expiró antes de confirmar la publicación."""

    def __init__(self, topic: str):
        self.topic = topic
        super().__init__(f"publish cancelled: request deadline exceeded for topic {topic}")
