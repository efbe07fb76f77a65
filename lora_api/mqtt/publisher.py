"""Publicador MQTT para uplinks LoRa.

Una sola conexión de larga vida, compartida por todos los requests.
paho-mqtt es thread-safe para ``publish``; no se agrega locking propio.

- Conexión inicial bloqueante con reintento automático (hilo de paho).
- Reconexión automática a cargo de paho, sin loop propio.
- QoS 0, retain=False.
- Espera acotada por min(timeout configurado, deadline del llamador).
"""

from __future__ import annotations

import logging
import secrets
import threading
import time
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable, Optional

import paho.mqtt.client as mqtt

from ..errors import (
    MQTTConnectError,
    PublishCancelledError,
    PublishError,
    PublisherNotConnectedError,
    PublishTimeoutError,
)
from .broker_url import BrokerEndpoint
from .deadline import deadline_expired, effective_timeout

if TYPE_CHECKING:
    from ..config import Settings

logger = logging.getLogger(__name__)

DEFAULT_PUBLISH_TIMEOUT = 5.0
RECONNECT_DELAY_SECONDS = 2
RECONNECT_MAX_DELAY_SECONDS = 120
DISCONNECT_GRACE_SECONDS = 0.25
KEEPALIVE_SECONDS = 60


class UplinkPublisher(ABC):
    """Interfaz del publicador.

    Implementaciones:
    - MQTTPublisher: publica al broker vía paho-mqtt
    - dobles de prueba en tests/
    """

    @abstractmethod
    def publish(self, topic: str, payload: bytes, deadline: Optional[float] = None) -> None:
        """Publica ``payload`` en ``topic``.

        Args:
            topic: topic MQTT destino
            payload: bytes a publicar tal cual
            deadline: instante absoluto (``time.monotonic()``) en que el
                llamador deja de esperar, o None

        Raises:
            PublishError: si no se pudo publicar
        """

    @abstractmethod
    def close(self) -> None:
        """Cierra la conexión. Idempotente."""


def default_client_id() -> str:
    return f"lora-adapter-{secrets.token_hex(3)}"


def _default_client_factory(client_id: str, transport: str) -> mqtt.Client:
    return mqtt.Client(
        callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
        client_id=client_id,
        protocol=mqtt.MQTTv311,
        transport=transport,
    )


class MQTTPublisher(UplinkPublisher):
    """Publicador respaldado por un cliente paho-mqtt.

    Uso:
        publisher = MQTTPublisher.from_settings(settings)
        publisher.start()
        publisher.publish("lora/1/AA/up", body)
        publisher.close()
    """

    def __init__(
        self,
        endpoint: BrokerEndpoint,
        username: str = "",
        password: str = "",
        client_id: str = "",
        publish_timeout: float = DEFAULT_PUBLISH_TIMEOUT,
        connect_timeout: float = 30.0,
        client_factory: Optional[Callable[[str, str], mqtt.Client]] = None,
    ):
        self.endpoint = endpoint
        self.client_id = client_id or default_client_id()
        self.publish_timeout = publish_timeout if publish_timeout > 0 else DEFAULT_PUBLISH_TIMEOUT
        self.connect_timeout = connect_timeout

        self._username = username
        self._password = password
        self._client_factory = client_factory or _default_client_factory
        self._client: Optional[mqtt.Client] = None
        self._connected = threading.Event()
        self._disconnected = threading.Event()

    @classmethod
    def from_settings(cls, settings: "Settings", **kwargs) -> "MQTTPublisher":
        return cls(
            endpoint=settings.broker,
            username=settings.mqtt_username,
            password=settings.mqtt_password,
            client_id=settings.mqtt_client_id,
            publish_timeout=settings.mqtt_publish_timeout,
            connect_timeout=settings.mqtt_connect_timeout,
            **kwargs,
        )

    def start(self) -> None:
        """Conecta al broker y bloquea hasta el primer CONNACK.

        Raises:
            MQTTConnectError: si no hay conexión antes de ``connect_timeout``
        """
        client = self._client_factory(self.client_id, self.endpoint.transport)
        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect

        if self._username:
            client.username_pw_set(self._username, self._password)
        if self.endpoint.tls:
            client.tls_set()
        if self.endpoint.transport == "websockets":
            client.ws_set_options(path=self.endpoint.path)
        client.reconnect_delay_set(
            min_delay=RECONNECT_DELAY_SECONDS,
            max_delay=RECONNECT_MAX_DELAY_SECONDS,
        )

        logger.info(
            "[MQTT] Connecting to %s://%s client_id=%s",
            self.endpoint.scheme,
            self.endpoint.address,
            self.client_id,
        )
        self._client = client
        try:
            client.connect_async(self.endpoint.host, self.endpoint.port, keepalive=KEEPALIVE_SECONDS)
            client.loop_start()
        except (OSError, ValueError) as e:
            self.close()
            raise MQTTConnectError(f"failed to connect to MQTT broker: {e}") from e

        if not self._connected.wait(self.connect_timeout):
            self.close()
            raise MQTTConnectError(
                f"failed to connect to MQTT broker: no CONNACK from "
                f"{self.endpoint.address} within {self.connect_timeout:.1f}s"
            )

    @property
    def is_connected(self) -> bool:
        return self._is_connected(self._client)

    def _is_connected(self, client) -> bool:
        if client is None:
            return False
        return self._connected.is_set() and client.is_connected()

    def publish(self, topic: str, payload: bytes, deadline: Optional[float] = None) -> None:
        client = self._client
        if not self._is_connected(client):
            raise PublisherNotConnectedError()
        if deadline_expired(deadline):
            raise PublishCancelledError(topic)

        try:
            info = client.publish(topic, payload, qos=0, retain=False)
        except ValueError as e:
            # paho rechaza topics con comodines o de más de 65535 bytes
            raise PublishError(f"publish error: {e}") from e
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise PublishError(f"publish error: {mqtt.error_string(info.rc)}")

        wait = effective_timeout(self.publish_timeout, deadline)
        info.wait_for_publish(timeout=wait)
        if info.is_published():
            return

        # Si mandó el deadline del llamador, es cancelación y no timeout.
        if deadline_expired(deadline) or (deadline is not None and wait < self.publish_timeout):
            raise PublishCancelledError(topic)
        raise PublishTimeoutError(topic, wait)

    def close(self) -> None:
        client = self._client
        if client is None:
            return
        self._client = None

        try:
            if self._connected.is_set():
                client.disconnect()
                self._disconnected.wait(DISCONNECT_GRACE_SECONDS)
            client.loop_stop()
        except (OSError, RuntimeError) as e:
            logger.warning("[MQTT] Disconnect error: %s", e)
        self._connected.clear()
        logger.info("[MQTT] Publisher closed")

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        if reason_code.is_failure:
            self._connected.clear()
            logger.error("[MQTT] Connection refused: %s", reason_code)
            return
        self._disconnected.clear()
        self._connected.set()
        logger.info("[MQTT] Connected to broker %s", self.endpoint.address)

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None):
        self._connected.clear()
        self._disconnected.set()
        if reason_code.is_failure:
            logger.warning("[MQTT] Disconnected (%s), paho will reconnect", reason_code)
        else:
            logger.info("[MQTT] Disconnected")


def connect_publisher(settings: "Settings") -> MQTTPublisher:
    """Crea y conecta el publicador a partir de la configuración."""
    started = time.monotonic()
    publisher = MQTTPublisher.from_settings(settings)
    publisher.start()
    logger.info("[MQTT] Publisher ready in %.0fms", (time.monotonic() - started) * 1000)
    return publisher
