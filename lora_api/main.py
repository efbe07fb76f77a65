from __future__ import annotations

import logging
import uuid

from fastapi import FastAPI, Request

from .config import Settings
from .endpoints import build_uplink_router, health_router
from .endpoints.responses import error_response
from .mqtt.publisher import UplinkPublisher

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-Id"

__version__ = "0.1.0"


def _real_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else ""


def create_app(settings: Settings, publisher: UplinkPublisher) -> FastAPI:
    """Arma la app HTTP con el publicador compartido.

    El publicador vive en ``app.state`` y lo usan todos los requests.
    """
    app = FastAPI(title="LoRa Uplink Adapter", version=__version__)
    app.state.settings = settings
    app.state.publisher = publisher

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        logger.debug(
            "[HTTP] %s %s request_id=%s remote=%s",
            request.method,
            request.url.path,
            request_id,
            _real_ip(request),
        )
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("[HTTP] Unhandled error request_id=%s", request_id)
            response = error_response(500, "internal server error")
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    app.include_router(health_router)
    app.include_router(build_uplink_router(settings.uplink_path))
    return app
