"""Configuración del adaptador LoRa.

Lee variables de entorno (opcionalmente precargadas desde un .env) y las
valida una sola vez al arrancar. Si la validación falla el proceso no debe
servir tráfico.
"""

from __future__ import annotations

import ipaddress
import os
import re
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigError
from .logging_setup import resolve_level
from .mqtt.broker_url import BrokerEndpoint, parse_broker_url

DEFAULT_HTTP_PORT = "8080"
DEFAULT_UPLINK_PATH = "/uplink"
DEFAULT_MAX_BODY_SIZE = 1048576
DEFAULT_BASE_TOPIC = "lora"

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(raw: str) -> float:
    """Convierte una duración a segundos.

    Acepta el formato de Go (``5s``, ``250ms``, ``1m30s``) o un número
    de segundos (``2.5``).
    """
    value = raw.strip()
    if not value:
        raise ConfigError("empty duration")

    try:
        return float(value)
    except ValueError:
        pass

    sign = 1.0
    if value[0] in "+-":
        sign = -1.0 if value[0] == "-" else 1.0
        value = value[1:]

    total = 0.0
    pos = 0
    for match in _DURATION_PART.finditer(value):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()

    if pos == 0 or pos != len(value):
        raise ConfigError(f"invalid duration: {raw}")
    return sign * total


def sanitize_path(path: str) -> str:
    if path == "":
        return DEFAULT_UPLINK_PATH
    if not path.startswith("/"):
        path = "/" + path
    if path != "/" and path.endswith("/"):
        path = path.rstrip("/") or "/"
    return path


@dataclass(frozen=True)
class Settings:
    # HTTP
    http_host: str = "0.0.0.0"
    http_port: str = DEFAULT_HTTP_PORT
    uplink_path: str = DEFAULT_UPLINK_PATH
    read_header_timeout: float = 5.0
    shutdown_timeout: float = 5.0
    request_timeout: float = 0.0
    max_body_size: int = DEFAULT_MAX_BODY_SIZE

    # MQTT
    mqtt_url: str = ""
    mqtt_username: str = ""
    mqtt_password: str = ""
    mqtt_client_id: str = ""
    mqtt_base_topic: str = DEFAULT_BASE_TOPIC
    mqtt_publish_timeout: float = 5.0
    mqtt_connect_timeout: float = 30.0

    log_level: str = "info"

    @property
    def port(self) -> int:
        return int(self.http_port)

    @property
    def broker(self) -> BrokerEndpoint:
        return parse_broker_url(self.mqtt_url)

    @classmethod
    def from_env(cls) -> "Settings":
        """Construye Settings desde el entorno sin validar."""
        return cls(
            http_host=os.getenv("LORA_HTTP_HOST", "0.0.0.0"),
            http_port=os.getenv("LORA_HTTP_PORT", DEFAULT_HTTP_PORT),
            uplink_path=os.getenv("LORA_HTTP_UPLINK_PATH", DEFAULT_UPLINK_PATH),
            read_header_timeout=_env_duration("LORA_HTTP_READ_HEADER_TIMEOUT", "5s"),
            shutdown_timeout=_env_duration("LORA_HTTP_SHUTDOWN_TIMEOUT", "5s"),
            request_timeout=_env_duration("LORA_HTTP_REQUEST_TIMEOUT", "0"),
            max_body_size=_env_int("LORA_HTTP_MAX_BODY_SIZE", str(DEFAULT_MAX_BODY_SIZE)),
            mqtt_url=os.getenv("MQTT_URL", ""),
            mqtt_username=os.getenv("MQTT_USERNAME", ""),
            mqtt_password=os.getenv("MQTT_PASSWORD", ""),
            mqtt_client_id=os.getenv("MQTT_CLIENT_ID", ""),
            mqtt_base_topic=os.getenv("MQTT_BASE_TOPIC", DEFAULT_BASE_TOPIC),
            mqtt_publish_timeout=_env_duration("MQTT_PUBLISH_TIMEOUT", "5s"),
            mqtt_connect_timeout=_env_duration("MQTT_CONNECT_TIMEOUT", "30s"),
            log_level=os.getenv("LOG_LEVEL", "info"),
        )

    def validated(self) -> "Settings":
        """Normaliza y valida; retorna una copia lista para usar.

        Raises:
            ConfigError: si algún parámetro es inválido
        """
        cfg = self
        if not cfg.http_port.strip():
            cfg = replace(cfg, http_port=DEFAULT_HTTP_PORT)

        try:
            int(cfg.http_port)
        except ValueError as e:
            raise ConfigError(f"invalid http port: {e}") from e

        if cfg.max_body_size <= 0:
            raise ConfigError(f"invalid max body size: {cfg.max_body_size}")

        cfg = replace(cfg, uplink_path=sanitize_path(cfg.uplink_path))
        if not cfg.uplink_path.startswith("/"):
            raise ConfigError(f"uplink path must start with '/' got {cfg.uplink_path}")

        cfg = replace(cfg, mqtt_base_topic=cfg.mqtt_base_topic.strip("/"))
        if not cfg.mqtt_base_topic:
            raise ConfigError("mqtt base topic must not be empty")

        # Valida esquema/host antes de intentar cualquier conexión.
        parse_broker_url(cfg.mqtt_url)

        if cfg.mqtt_publish_timeout <= 0:
            raise ConfigError("mqtt publish timeout must be positive")
        if cfg.mqtt_connect_timeout <= 0:
            raise ConfigError("mqtt connect timeout must be positive")
        if cfg.request_timeout < 0:
            raise ConfigError("http request timeout must not be negative")

        if cfg.http_host and cfg.http_host != "localhost" and not _is_ip(cfg.http_host):
            if " " in cfg.http_host:
                raise ConfigError(f"invalid http host: {cfg.http_host}")

        try:
            resolve_level(cfg.log_level)
        except ValueError as e:
            raise ConfigError(str(e)) from e

        return cfg


def _is_ip(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
        return True
    except ValueError:
        return False


def _env_duration(name: str, default: str) -> float:
    raw = os.getenv(name, default)
    try:
        return parse_duration(raw)
    except ConfigError as e:
        raise ConfigError(f"failed to parse environment: {name}: {e}") from e


def _env_int(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        return int(raw.strip())
    except ValueError as e:
        raise ConfigError(f"failed to parse environment: {name}: {e}") from e


def load_settings(env_file: Optional[str] = None) -> Settings:
    """Carga y valida la configuración.

    El .env (si existe) no pisa variables reales del entorno.
    """
    env_file = env_file or os.getenv("LORA_ENV_FILE", ".env")
    if env_file and Path(env_file).exists():
        load_dotenv(env_file, override=False)

    return Settings.from_env().validated()
