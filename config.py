"""Runtime configuration.

Precedence (highest -> lowest):
  1. Environment variables
  2. .env file
  3. Built-in defaults
"""

from __future__ import annotations

import logging
from pathlib import Path
from types import MappingProxyType
from typing import Final, Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

BASE_DIR: Final = Path(__file__).resolve().parent


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables and .env."""

    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_base_url: str = Field(
        default="http://localhost:8080", validation_alias="API_BASE_URL"
    )
    nav_api_prefix: str = Field(default="/api/nav", validation_alias="NAV_API_PREFIX")
    environment: Literal["live", "test"] = Field(
        default="test", validation_alias="ENVIRONMENT"
    )
    tenant_id: str | None = Field(default=None, validation_alias="TENANT_ID")
    access_token: str | None = Field(default=None, validation_alias="ACCESS_TOKEN")

    request_timeout: int = Field(default=30, ge=1, validation_alias="REQUEST_TIMEOUT")
    request_retries: int = Field(default=2, ge=0, validation_alias="REQUEST_RETRIES")
    request_retry_backoff: float = Field(
        default=0.5, ge=0.0, validation_alias="REQUEST_RETRY_BACKOFF"
    )

    poll_interval_seconds: float = Field(
        default=2.0, gt=0.0, validation_alias="POLL_INTERVAL_SECONDS"
    )
    dashboard_refresh_cooldown_seconds: float = Field(
        default=5.0, ge=0.0, validation_alias="DASHBOARD_REFRESH_COOLDOWN_SECONDS"
    )
    dashboard_auto_refresh_seconds: float = Field(
        default=0.0, ge=0.0, validation_alias="DASHBOARD_AUTO_REFRESH_SECONDS"
    )
    dashboard_bookmarks_page_size: int = Field(
        default=10, ge=1, validation_alias="DASHBOARD_BOOKMARKS_PAGE_SIZE"
    )
    historical_max_span_days: int = Field(
        default=3650, ge=1, validation_alias="HISTORICAL_MAX_SPAN_DAYS"
    )
    unit_error_display_limit: int = Field(
        default=5, ge=0, validation_alias="UNIT_ERROR_DISPLAY_LIMIT"
    )
    terminal_job_retention: int = Field(
        default=100, ge=0, validation_alias="TERMINAL_JOB_RETENTION"
    )

    @field_validator("api_base_url", mode="after")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("nav_api_prefix", mode="after")
    @classmethod
    def _normalize_prefix(cls, v: str) -> str:
        prefix = v.strip().rstrip("/")
        if prefix and not prefix.startswith("/"):
            prefix = "/" + prefix
        return prefix

    @field_validator("tenant_id", "access_token", mode="after")
    @classmethod
    def _blank_to_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None

    @model_validator(mode="after")
    def _warn_if_env_missing(self) -> "Settings":
        env_path = BASE_DIR / ".env"
        if not env_path.exists():
            logger.debug(
                ".env not found at %s; using environment variables and defaults only.",
                env_path,
            )
        return self


SETTINGS: Final = Settings()

API_BASE_URL: Final[str] = SETTINGS.api_base_url
NAV_API_URL: Final[str] = f"{API_BASE_URL}{SETTINGS.nav_api_prefix}"
ENVIRONMENT: Final[str] = SETTINGS.environment
IS_LIVE: Final[bool] = ENVIRONMENT == "live"

REQUEST_TIMEOUT: Final[int] = SETTINGS.request_timeout
REQUEST_RETRIES: Final[int] = SETTINGS.request_retries
REQUEST_RETRY_BACKOFF: Final[float] = SETTINGS.request_retry_backoff

POLL_INTERVAL_SECONDS: Final[float] = SETTINGS.poll_interval_seconds
DASHBOARD_REFRESH_COOLDOWN_SECONDS: Final[float] = SETTINGS.dashboard_refresh_cooldown_seconds
DASHBOARD_AUTO_REFRESH_SECONDS: Final[float] = SETTINGS.dashboard_auto_refresh_seconds
DASHBOARD_BOOKMARKS_PAGE_SIZE: Final[int] = SETTINGS.dashboard_bookmarks_page_size
HISTORICAL_MAX_SPAN_DAYS: Final[int] = SETTINGS.historical_max_span_days
UNIT_ERROR_DISPLAY_LIMIT: Final[int] = SETTINGS.unit_error_display_limit
TERMINAL_JOB_RETENTION: Final[int] = SETTINGS.terminal_job_retention


def _build_headers() -> dict[str, str]:
    headers = {
        "Accept": "application/json",
        "Content-Type": "application/json",
        "X-Environment": ENVIRONMENT,
    }
    if SETTINGS.tenant_id:
        headers["X-Tenant-ID"] = SETTINGS.tenant_id
    if SETTINGS.access_token:
        headers["Authorization"] = f"Bearer {SETTINGS.access_token}"
    return headers


HEADERS: Final[MappingProxyType[str, str]] = MappingProxyType(_build_headers())
