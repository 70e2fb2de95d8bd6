"""Local bookmark state with optimistic, reconciled updates."""

from __future__ import annotations

import logging
from typing import Any, Callable

import config
from core.errors import ValidationError
from core.types import SchemeBookmark

logger = logging.getLogger(__name__)

BookmarkListener = Callable[[list[SchemeBookmark]], None]


class BookmarkStore:
    """Holds the tenant's bookmarks and applies toggles in two phases.

    A toggle is applied locally first, then replaced by the value the backend
    confirms. If the backend rejects it, the previous value is restored,
    unless a newer toggle of the same bookmark has been applied since.
    """

    def __init__(self, nav: Any):
        self.nav = nav
        self._bookmarks: dict[int, SchemeBookmark] = {}
        self._versions: dict[int, int] = {}
        self._listeners: list[BookmarkListener] = []

    @property
    def bookmarks(self) -> list[SchemeBookmark]:
        return list(self._bookmarks.values())

    def get(self, bookmark_id: int) -> SchemeBookmark | None:
        return self._bookmarks.get(bookmark_id)

    def subscribe(self, listener: BookmarkListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def load(self, page_size: int | None = None) -> list[SchemeBookmark]:
        size = page_size if page_size is not None else config.DASHBOARD_BOOKMARKS_PAGE_SIZE
        self.replace(await self.nav.list_bookmarks(page_size=size))
        return self.bookmarks

    def replace(self, bookmarks: list[SchemeBookmark]) -> None:
        self._bookmarks = {bookmark.id: bookmark for bookmark in bookmarks}
        self._emit()

    async def set_daily_download(self, bookmark_id: int, enabled: bool) -> SchemeBookmark:
        previous = self._bookmarks.get(bookmark_id)
        if previous is None:
            raise ValidationError(f"Unknown bookmark: {bookmark_id!r}", field="bookmark_id")

        version = self._versions.get(bookmark_id, 0) + 1
        self._versions[bookmark_id] = version
        optimistic = previous.model_copy(update={"daily_download_enabled": bool(enabled)})
        self._apply(optimistic)

        try:
            confirmed = await self.nav.update_bookmark(
                bookmark_id, {"daily_download_enabled": bool(enabled)}
            )
        except Exception:
            if self._versions.get(bookmark_id) == version:
                logger.warning("Reverting daily download toggle for bookmark %s.", bookmark_id)
                self._apply(previous)
            raise

        if self._versions.get(bookmark_id) != version:
            return self._bookmarks.get(bookmark_id, optimistic)
        final = confirmed if confirmed is not None else optimistic
        self._apply(final)
        return final

    def _apply(self, bookmark: SchemeBookmark) -> None:
        self._bookmarks[bookmark.id] = bookmark
        self._emit()

    def _emit(self) -> None:
        snapshot = self.bookmarks
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Bookmark listener failed.")
