from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from upflix_api.api.deps import get_settings
from upflix_api.api.middleware import build_request_id_middleware, register_exception_handlers
from upflix_api.api.routers.health import router as health_router
from upflix_api.api.routers.titles import router as titles_router

_settings = get_settings()


def create_app() -> FastAPI:
    app = FastAPI(title="Upflix API", version="1.0.0")

    app.add_middleware(GZipMiddleware, minimum_size=max(0, _settings.gzip_min_size))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_settings.cors_allow_origins(),
        allow_credentials=_settings.cors_allow_credentials,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    app.middleware("http")(build_request_id_middleware(_settings))
    register_exception_handlers(app, _settings)

    # Orden importa: titles es un catch-all y va el último.
    app.include_router(health_router)
    app.include_router(titles_router)

    return app


app = create_app()
