"""Dashboard view, refresh and bookmark toggle routes."""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends, Path

from core.bookmarks import BookmarkStore
from core.dashboard import DashboardAggregator
from core.types import DashboardView
from web.dependencies import get_bookmark_store, get_dashboard
from web.schemas import (
    BookmarkResponse,
    BookmarkToggleRequest,
    DashboardResponse,
    RefreshResponse,
)

router = APIRouter(prefix="/api", tags=["dashboard"])


def _dashboard_payload(view: DashboardView, dashboard: DashboardAggregator) -> DashboardResponse:
    data = view.model_dump(mode="json")
    return DashboardResponse(**data, is_loading=dashboard.is_loading)


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard_view(
    dashboard: DashboardAggregator = Depends(get_dashboard),
) -> DashboardResponse:
    view = dashboard.view
    if view.refreshed_at is None:
        view = await dashboard.refresh_all()
    return _dashboard_payload(view, dashboard)


@router.post("/dashboard/refresh", response_model=RefreshResponse)
async def refresh_dashboard(
    dashboard: DashboardAggregator = Depends(get_dashboard),
) -> RefreshResponse:
    return RefreshResponse(
        scheduled=dashboard.refresh(), cooldown_seconds=dashboard.cooldown_seconds
    )


@router.put("/bookmarks/{bookmark_id}/daily-download", response_model=BookmarkResponse)
async def toggle_daily_download(
    bookmark_id: int = Path(...),
    data: BookmarkToggleRequest = Body(...),
    bookmarks: BookmarkStore = Depends(get_bookmark_store),
    dashboard: DashboardAggregator = Depends(get_dashboard),
) -> BookmarkResponse:
    if bookmarks.get(bookmark_id) is None:
        await bookmarks.load()
    bookmark = await bookmarks.set_daily_download(bookmark_id, data.enabled)
    # Repeated toggles collapse into one refresh thanks to the cooldown.
    dashboard.refresh()
    return BookmarkResponse(**bookmark.model_dump())
