"""Endpoint de uplinks: webhook HTTP -> MQTT.

Flujo por request (sin estado entre requests):
    lectura del body (con límite) -> decode -> topic -> publish -> respuesta

- 413 si el body excede ``max_body_size``
- 400 si el body está vacío o no decodifica
- 502 si falla la publicación (broker caído, timeout, deadline)
- 202 {"status": "forwarded"} si se publicó
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.requests import ClientDisconnect

from ..config import Settings
from ..errors import DecodeError, PublishError
from ..metrics import PUBLISH_SECONDS, UPLINKS_TOTAL
from ..mqtt.publisher import UplinkPublisher
from ..uplink import build_topic, decode_uplink
from .responses import error_response, status_response

logger = logging.getLogger(__name__)


class BodyTooLarge(Exception):
    def __init__(self) -> None:
        super().__init__("request body too large")


async def read_limited_body(request: Request, limit: int) -> bytes:
    """Lee el body completo sin aceptar más de ``limit`` bytes."""
    declared = request.headers.get("content-length")
    if declared is not None and declared.strip().isdigit() and int(declared) > limit:
        raise BodyTooLarge()

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            raise BodyTooLarge()
    return bytes(body)


def request_deadline(settings: Settings, started: float) -> Optional[float]:
    if settings.request_timeout > 0:
        return started + settings.request_timeout
    return None


def forward_uplink(
    publisher: UplinkPublisher,
    settings: Settings,
    body: bytes,
    deadline: Optional[float] = None,
) -> JSONResponse:
    """Decodifica, arma el topic y publica. Bloqueante (corre en threadpool)."""
    try:
        msg = decode_uplink(body)
    except DecodeError as e:
        logger.error("[HTTP] failed to decode uplink payload error=%s", e)
        UPLINKS_TOTAL.labels(status="rejected").inc()
        return error_response(400, e)

    topic = build_topic(settings.mqtt_base_topic, msg)

    started = time.monotonic()
    try:
        publisher.publish(topic, body, deadline=deadline)
    except PublishError as e:
        logger.error(
            "[HTTP] failed to forward uplink to MQTT topic=%s error=%s",
            topic,
            e,
            extra={"topic": topic},
        )
        UPLINKS_TOTAL.labels(status="publish_failed").inc()
        return error_response(502, e)
    finally:
        PUBLISH_SECONDS.observe(time.monotonic() - started)

    logger.info(
        "uplink forwarded topic=%s application_id=%s dev_eui=%s",
        topic,
        msg.application_id,
        msg.dev_eui,
        extra={"topic": topic, "application_id": msg.application_id, "dev_eui": msg.dev_eui},
    )
    UPLINKS_TOTAL.labels(status="forwarded").inc()
    return status_response(202, "forwarded")


def build_uplink_router(uplink_path: str) -> APIRouter:
    router = APIRouter(tags=["uplink"])

    async def uplink(request: Request) -> JSONResponse:
        settings: Settings = request.app.state.settings
        publisher: UplinkPublisher = request.app.state.publisher
        deadline = request_deadline(settings, time.monotonic())

        try:
            body = await read_limited_body(request, settings.max_body_size)
        except (BodyTooLarge, ClientDisconnect) as e:
            logger.error("[HTTP] failed to read request body error=%s", e)
            UPLINKS_TOTAL.labels(status="too_large").inc()
            return error_response(413, f"failed to read body: {e}")

        if not body:
            logger.error("[HTTP] empty uplink payload error=empty body")
            UPLINKS_TOTAL.labels(status="rejected").inc()
            return error_response(400, "empty request body")

        return await run_in_threadpool(forward_uplink, publisher, settings, body, deadline)

    router.add_api_route(uplink_path, uplink, methods=["POST"], name="uplink")
    return router
