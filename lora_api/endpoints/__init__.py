"""Endpoints HTTP del adaptador."""

from .health import router as health_router
from .uplink import build_uplink_router

__all__ = ["health_router", "build_uplink_router"]
