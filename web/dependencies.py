"""FastAPI dependency providers."""

from __future__ import annotations

import logging
from typing import Callable

from fastapi import FastAPI, Request

import config
from core import create_default_kernel
from core.bookmarks import BookmarkStore
from core.dashboard import DashboardAggregator
from core.kernel import Kernel
from core.tracking import JobTrackingService

logger = logging.getLogger(__name__)

KernelFactory = Callable[[], Kernel]


def initialize_app_services(app: FastAPI, kernel_factory: KernelFactory | None = None) -> None:
    """Inicializa todos los servicios con scope de app durante el startup.

    Se llama una sola vez desde el lifespan (ya dentro del event loop). Las
    dependencias ``get_*`` asumen que este método ya se ejecutó y simplemente
    leen del estado.
    """
    kernel = (kernel_factory or create_default_kernel)()
    jobs = kernel["jobs"]
    nav = kernel["nav"]

    app.state.kernel = kernel
    app.state.tracking = JobTrackingService(jobs)
    app.state.dashboard = DashboardAggregator(jobs, nav)
    app.state.bookmarks = BookmarkStore(nav)
    app.state.dashboard.subscribe(lambda view: app.state.bookmarks.replace(view.bookmarks))
    if config.DASHBOARD_AUTO_REFRESH_SECONDS > 0:
        app.state.dashboard.start_auto_refresh(config.DASHBOARD_AUTO_REFRESH_SECONDS)
    logger.info("Servicios de app inicializados correctamente.")


async def shutdown_app_services(app: FastAPI) -> None:
    """Para los servicios de app de forma ordenada durante el shutdown."""
    dashboard: DashboardAggregator | None = getattr(app.state, "dashboard", None)
    if dashboard is not None:
        try:
            await dashboard.aclose()
            logger.info("DashboardAggregator detenido.")
        except Exception:
            logger.exception("Error al detener DashboardAggregator.")

    tracking: JobTrackingService | None = getattr(app.state, "tracking", None)
    if tracking is not None:
        tracking.close()
        logger.info("Seguimiento de jobs detenido.")

    kernel: Kernel | None = getattr(app.state, "kernel", None)
    if kernel is not None and getattr(kernel, "http", None) is not None:
        try:
            await kernel.close()
            logger.info("Sesión HTTP del kernel cerrada.")
        except Exception:
            logger.exception("Error al cerrar la sesión HTTP del kernel.")


def get_kernel(request: Request) -> Kernel:
    """Retorna el kernel con scope de app."""
    return request.app.state.kernel  # type: ignore[no-any-return]


def get_tracking_service(request: Request) -> JobTrackingService:
    """Retorna el JobTrackingService con scope de app."""
    return request.app.state.tracking  # type: ignore[no-any-return]


def get_dashboard(request: Request) -> DashboardAggregator:
    """Retorna el DashboardAggregator con scope de app."""
    return request.app.state.dashboard  # type: ignore[no-any-return]


def get_bookmark_store(request: Request) -> BookmarkStore:
    """Retorna el BookmarkStore con scope de app."""
    return request.app.state.bookmarks  # type: ignore[no-any-return]
