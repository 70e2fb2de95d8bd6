"""NAV read endpoints: statistics, today's data status and bookmarks."""

from __future__ import annotations

from typing import Any

from core.errors import RemoteError
from core.types import NavStatistics, SchemeBookmark, TodayDataStatus
from plugins.base import Plugin


class NavPlugin(Plugin):
    async def get_statistics(self) -> NavStatistics:
        data = await self.http.get_data("/statistics")
        return self.parse(NavStatistics.model_validate, data or {}, "statistics")

    async def check_today(self) -> TodayDataStatus:
        data = await self.http.get_data("/check-today")
        return self.parse(TodayDataStatus.model_validate, data or {}, "today status")

    async def list_bookmarks(self, page_size: int | None = None, page: int = 1) -> list[SchemeBookmark]:
        params: dict[str, Any] = {"page": page}
        if page_size is not None:
            params["page_size"] = page_size
        data = await self.http.get_data("/bookmarks", params=params)
        items = data.get("bookmarks") if isinstance(data, dict) else data
        if items is None:
            return []
        if not isinstance(items, list):
            raise RemoteError("Unexpected bookmarks payload: expected a list")
        return [self.parse(SchemeBookmark.model_validate, item, "bookmark") for item in items]

    async def update_bookmark(self, bookmark_id: int, updates: dict[str, Any]) -> SchemeBookmark | None:
        """Apply ``updates``; returns the confirmed bookmark when the backend echoes it."""
        data = await self.http.put_data(f"/bookmarks/{int(bookmark_id)}", json=updates)
        if not isinstance(data, dict):
            return None
        return self.parse(SchemeBookmark.model_validate, data, "bookmark")
