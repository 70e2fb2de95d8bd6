"""System and settings routes."""

from __future__ import annotations

import time

from fastapi import APIRouter, Request

import config
from web.schemas import HealthResponse, SettingsResponse

router = APIRouter(prefix="/api", tags=["system"])


def _uptime(request: Request) -> float:
    started_at = float(getattr(request.app.state, "started_at", time.monotonic()))
    return max(0.0, time.monotonic() - started_at)


def _app_version(request: Request) -> str:
    return str(getattr(request.app.state, "app_version", "dev"))


@router.get("/health", response_model=HealthResponse)
def health(request: Request) -> HealthResponse:
    return HealthResponse(
        status="ok",
        uptime_seconds=_uptime(request),
        version=_app_version(request),
    )


@router.get("/settings", response_model=SettingsResponse)
def get_settings() -> SettingsResponse:
    return SettingsResponse(
        api_base_url=config.API_BASE_URL,
        nav_api_url=config.NAV_API_URL,
        environment=config.ENVIRONMENT,
        poll_interval_seconds=config.POLL_INTERVAL_SECONDS,
        dashboard_refresh_cooldown_seconds=config.DASHBOARD_REFRESH_COOLDOWN_SECONDS,
        historical_max_span_days=config.HISTORICAL_MAX_SPAN_DAYS,
    )
