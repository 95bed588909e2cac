# exception handlers (error_id)
from __future__ import annotations

import uuid
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from upflix.errors import CacheIOError, UpstreamError

from upflix_api.api.logging_config import configure_logging
from upflix_api.api.services import metrics
from upflix_api.api.settings import Settings


def _error_payload(request: Request, *, detail: str, error_id: str, **fields: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {"detail": detail, "error_id": error_id, **fields}
    req_id = getattr(request.state, "request_id", None)
    if isinstance(req_id, str) and req_id:
        payload["request_id"] = req_id
    return payload


def build_upstream_error_handler(settings: Settings):
    """UpstreamError (transporte / extracción) -> 502. Nunca 429."""
    logger = configure_logging(settings)

    async def handler(request: Request, exc: Exception) -> JSONResponse:
        error_id = uuid.uuid4().hex
        kind = getattr(exc, "kind", UpstreamError.kind)

        logger.error(
            "upstream_error",
            extra={
                "error_id": error_id,
                "request_id": getattr(request.state, "request_id", None),
                "path": request.url.path,
                "outcome": kind,
                "error": str(exc),
            },
        )
        metrics.inc("http_errors_5xx_total", 1)

        return JSONResponse(
            status_code=502,
            content=_error_payload(
                request, detail="Upstream fetch failed", error_id=error_id, error=kind
            ),
        )

    return handler


def build_cache_error_handler(settings: Settings):
    """CacheIOError -> 500: la caché rota no se enmascara con un fetch."""
    logger = configure_logging(settings)

    async def handler(request: Request, exc: Exception) -> JSONResponse:
        error_id = uuid.uuid4().hex

        logger.error(
            "cache_io_error",
            extra={
                "error_id": error_id,
                "request_id": getattr(request.state, "request_id", None),
                "path": request.url.path,
                "error": str(exc),
            },
        )
        metrics.inc("http_errors_5xx_total", 1)

        return JSONResponse(
            status_code=500,
            content=_error_payload(
                request, detail="Cache unavailable", error_id=error_id, error="cache_io_error"
            ),
        )

    return handler


def build_exception_handler(settings: Settings):
    logger = configure_logging(settings)

    async def handler(request: Request, exc: Exception) -> JSONResponse:
        error_id = uuid.uuid4().hex

        logger.exception(
            "unhandled_exception",
            extra={
                "error_id": error_id,
                "request_id": getattr(request.state, "request_id", None),
                "path": request.url.path,
            },
        )
        metrics.inc("http_errors_5xx_total", 1)

        return JSONResponse(
            status_code=500,
            content=_error_payload(request, detail="Internal Server Error", error_id=error_id),
        )

    return handler


def register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    app.add_exception_handler(UpstreamError, build_upstream_error_handler(settings))
    app.add_exception_handler(CacheIOError, build_cache_error_handler(settings))
    app.add_exception_handler(Exception, build_exception_handler(settings))
