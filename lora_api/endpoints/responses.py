"""Respuestas JSON del adaptador: ``{"status": ...}`` o ``{"error": ...}``."""

from __future__ import annotations

from fastapi.responses import JSONResponse


def status_response(status_code: int, status: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"status": status})


def error_response(status_code: int, error: Exception | str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": str(error)})
