"""FastAPI web server."""

from __future__ import annotations

import logging
import os
import sys
import time
from contextlib import asynccontextmanager
from typing import Final

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from core.errors import JobTrackingError
from web.api_utils import tracking_error_response
from web.dependencies import (
    KernelFactory,
    initialize_app_services,
    shutdown_app_services,
)

logger = logging.getLogger(__name__)

APP_VERSION: Final[str] = os.getenv("APP_VERSION", "dev")

_CORS_ORIGINS: Final[list[str]] = [
    o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()
]


def create_app(kernel_factory: KernelFactory | None = None) -> FastAPI:
    """Construye la aplicación FastAPI con las rutas de la API.

    ``kernel_factory`` permite inyectar un kernel propio (p. ej. con un
    transporte HTTP simulado en tests).
    """
    from web.routes.dashboard import router as dashboard_router
    from web.routes.downloads import router as downloads_router
    from web.routes.system import router as system_router

    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        """Inicializa y apaga ordenadamente todos los servicios de la app."""
        app.state.started_at = time.monotonic()
        app.state.app_version = APP_VERSION
        initialize_app_services(app, kernel_factory)
        logger.info("App v%s iniciada.", APP_VERSION)
        try:
            yield
        finally:
            await shutdown_app_services(app)
            logger.info("App apagada correctamente.")

    app = FastAPI(
        docs_url=None,
        redoc_url=None,
        openapi_url="/api/openapi.json",
        lifespan=_lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(JobTrackingError)
    async def _handle_tracking_error(_: Request, exc: JobTrackingError) -> Response:
        return tracking_error_response(exc)

    for router in (dashboard_router, downloads_router, system_router):
        app.include_router(router)

    @app.get("/favicon.ico", include_in_schema=False)
    def _favicon() -> Response:
        return Response(status_code=204)

    return app


def _configure_stdio_utf8() -> None:
    """Fuerza UTF-8 en terminales Windows para evitar crashes de charmap."""
    for stream in (sys.stdout, sys.stderr):
        reconfigure = getattr(stream, "reconfigure", None)
        if reconfigure is not None:
            reconfigure(encoding="utf-8", errors="replace")


def configure_logging() -> None:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


app = create_app()


def run_server(host: str | None = None, port: int | None = None) -> None:
    """Configura stdio e inicia la app con Uvicorn de forma estricta."""
    _configure_stdio_utf8()
    configure_logging()

    host = host or os.getenv("HOST", "127.0.0.1").strip() or "127.0.0.1"
    if port is None:
        port_raw = os.getenv("PORT", "8000").strip()
        try:
            port = int(port_raw)
            if not 1 <= port <= 65535:
                raise ValueError
        except ValueError:
            logger.warning("PORT inválido=%r; usando 8000.", port_raw)
            port = 8000

    logger.info("Servidor iniciando en http://%s:%d", host, port)

    uvicorn.run("web.server:app", host=host, port=port)


def main() -> None:
    """Entrypoint del módulo: ``python -m web.server``."""
    run_server()


if __name__ == "__main__":
    main()
