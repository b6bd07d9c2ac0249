"""Records for tabs saved in the extension's database."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Dict, Iterable, List, Set

from tabview.tab_policy import epoch_ms, now_ms, to_datetime

from .base import DataSource

logger = logging.getLogger(__name__)

SAVED_TABS_SCHEMA: Dict[str, dict] = {
    "id": {"type": "number", "indexed": True},
    "url": {"type": "string", "indexed": True, "searchable": True},
    "title": {"type": "string", "searchable": True},
    "domain": {"type": "string", "indexed": True, "searchable": True, "groupable": True},
    "category": {"type": "number", "indexed": True, "groupable": True},
    "favIconUrl": {"type": "string"},
    "savedDate": {"type": "number", "sortable": True, "indexed": True, "groupable": True},
    "lastSeen": {"type": "number", "sortable": True, "indexed": True},
    "weekNumber": {"type": "number", "groupable": True},
    "monthYear": {"type": "string", "groupable": True},
    "yearQuarter": {"type": "string", "groupable": True},
    "lastCloseTime": {"type": "string", "sortable": True, "indexed": True},
    "lastAccessed": {"type": "number", "sortable": True, "indexed": True},
    "lastAccessedWeekNumber": {"type": "number", "groupable": True},
    "lastAccessedMonthYear": {"type": "string", "groupable": True},
    "lastAccessedYearQuarter": {"type": "string", "groupable": True},
    "isCurrentlyOpen": {"type": "boolean", "indexed": True},
}

OpenUrls = Callable[[], Awaitable[Iterable[str]]]


class SavedTabsDataSource(DataSource):
    """Normalizes `database.get_all_saved_tabs()` rows into records.

    `open_urls` is optional; when given it is awaited once per fetch and used
    to flag saved tabs that are open right now.
    """

    SOURCE_ID = "saved_tabs"

    def __init__(self, database, open_urls: OpenUrls | None = None):
        self.database = database
        self.open_urls = open_urls

    def get_source_id(self) -> str:
        return self.SOURCE_ID

    def get_schema(self) -> Dict[str, dict]:
        return SAVED_TABS_SCHEMA

    async def is_available(self) -> bool:
        return self.database is not None and callable(getattr(self.database, "get_all_saved_tabs", None))

    async def get_data(self) -> List[dict]:
        if self.database is None:
            return []

        saved_tabs = await self.database.get_all_saved_tabs()
        open_urls = await self._current_urls()
        return [self._normalize(tab, open_urls) for tab in saved_tabs or []]

    async def _current_urls(self) -> Set[str]:
        if self.open_urls is None:
            return set()
        try:
            return set(await self.open_urls() or [])
        except Exception as exc:
            logger.warning("Could not fetch open tab URLs for matching: %s", exc)
            return set()

    def _normalize(self, tab: dict, open_urls: Set[str]) -> dict:
        url = tab.get("url") or ""
        last_accessed = to_datetime(tab.get("lastCloseTime") or tab.get("savedDate") or now_ms())

        record = dict(tab)
        record["domain"] = self.extract_domain(url)
        record.update(self.calendar_fields("", tab.get("savedDate")))
        record["lastAccessed"] = epoch_ms(last_accessed) if last_accessed is not None else None
        record.update(self.calendar_fields("lastAccessed", last_accessed))
        record["isCurrentlyOpen"] = url in open_urls
        return record
