"""Decodificación tolerante de uplinks recibidos por webhook.

Los servidores de red (ChirpStack v3/v4, integraciones propias) envían los
mismos identificadores con distintas grafías. Cada campo lógico tiene una
lista ordenada de selectores; gana el primer valor no vacío.

Formato mínimo aceptado:
{
    "applicationID": "42",
    "devEUI": "0102030405060708",
    "deviceName": "sensor-1"
}
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import DecodeError


class DeviceInfo(BaseModel):
    """Bloque ``deviceInfo`` de ChirpStack v4."""

    model_config = ConfigDict(extra="ignore")

    application_id: Optional[str] = Field(default=None, alias="applicationId")
    dev_eui: Optional[str] = Field(default=None, alias="devEui")
    device_name: Optional[str] = Field(default=None, alias="deviceName")


class UplinkEnvelope(BaseModel):
    """Forma cruda del cuerpo del webhook (no confiable)."""

    model_config = ConfigDict(extra="ignore")

    application_id: Optional[str] = Field(default=None, alias="applicationID")
    application_id_camel: Optional[str] = Field(default=None, alias="applicationId")
    application_id_snake: Optional[str] = Field(default=None, alias="application_id")
    dev_eui: Optional[str] = Field(default=None, alias="devEUI")
    dev_eui_camel: Optional[str] = Field(default=None, alias="devEui")
    dev_eui_snake: Optional[str] = Field(default=None, alias="dev_eui")
    device_name: Optional[str] = Field(default=None, alias="deviceName")
    device_name_snake: Optional[str] = Field(default=None, alias="device_name")
    device_info: Optional[DeviceInfo] = Field(default=None, alias="deviceInfo")


@dataclass(frozen=True)
class UplinkMessage:
    application_id: str = ""
    dev_eui: str = ""
    device_name: str = ""


Selector = Callable[[UplinkEnvelope], Optional[str]]


def _info(getter: Callable[[DeviceInfo], Optional[str]]) -> Selector:
    return lambda env: getter(env.device_info) if env.device_info is not None else None


APPLICATION_ID_SELECTORS: Sequence[Selector] = (
    lambda env: env.application_id,
    lambda env: env.application_id_camel,
    lambda env: env.application_id_snake,
    _info(lambda info: info.application_id),
)

DEV_EUI_SELECTORS: Sequence[Selector] = (
    lambda env: env.dev_eui,
    lambda env: env.dev_eui_camel,
    lambda env: env.dev_eui_snake,
    _info(lambda info: info.dev_eui),
)

DEVICE_NAME_SELECTORS: Sequence[Selector] = (
    lambda env: env.device_name,
    lambda env: env.device_name_snake,
    _info(lambda info: info.device_name),
)


def first_non_blank(env: UplinkEnvelope, selectors: Sequence[Selector]) -> str:
    """Primer valor no vacío (ignorando espacios) según el orden dado."""
    for select in selectors:
        value = select(env)
        if value is not None and value.strip():
            return value
    return ""


def decode_uplink(body: bytes) -> UplinkMessage:
    """Normaliza el cuerpo del webhook.

    Raises:
        DecodeError: JSON inválido o sin applicationID ni devEUI
    """
    try:
        env = UplinkEnvelope.model_validate_json(body)
    except ValidationError as e:
        raise DecodeError(f"invalid uplink payload: {_first_error(e)}") from e

    msg = UplinkMessage(
        application_id=first_non_blank(env, APPLICATION_ID_SELECTORS),
        dev_eui=first_non_blank(env, DEV_EUI_SELECTORS).upper(),
        device_name=first_non_blank(env, DEVICE_NAME_SELECTORS),
    )
    # deviceName solo no alcanza
    if not msg.application_id and not msg.dev_eui:
        raise DecodeError("uplink payload missing identifiers")
    return msg


def _first_error(e: ValidationError) -> str:
    errors = e.errors()
    if not errors:
        return str(e)
    first = errors[0]
    loc = ".".join(str(part) for part in first.get("loc", ()))
    return f"{loc}: {first['msg']}" if loc else first["msg"]
