"""Records for the tabs currently open in the browser."""

from __future__ import annotations

from typing import Dict, List

from tabview.tab_policy import Category, coerce_category, now_ms

from .base import DataSource

CURRENT_TABS_SCHEMA: Dict[str, dict] = {
    "id": {"type": "number", "indexed": True},
    "url": {"type": "string", "indexed": True, "searchable": True},
    "title": {"type": "string", "searchable": True},
    "domain": {"type": "string", "indexed": True, "searchable": True, "groupable": True},
    "category": {"type": "number", "indexed": True, "groupable": True},
    "favIconUrl": {"type": "string"},
    "windowId": {"type": "number", "indexed": True, "groupable": True},
    "index": {"type": "number", "sortable": True},
    "active": {"type": "boolean", "indexed": True},
    "pinned": {"type": "boolean", "indexed": True, "groupable": True},
    "audible": {"type": "boolean", "indexed": True},
    "mutedInfo": {"type": "object"},
    "lastAccessed": {"type": "number", "sortable": True, "indexed": True},
    "lastAccessedWeekNumber": {"type": "number", "groupable": True},
    "lastAccessedMonthYear": {"type": "string", "groupable": True},
    "lastAccessedYearQuarter": {"type": "string", "groupable": True},
    "duplicateIds": {"type": "array"},
    "isUncategorized": {"type": "boolean", "indexed": True},
}


class CurrentTabsDataSource(DataSource):
    """Flattens the tab processor's `{category: [tab, ...]}` view into records.

    `tabs_processor` must provide an awaitable
    `get_current_tabs_with_categories()` returning
    `(categorized_tabs, url_to_duplicate_ids)`.
    """

    SOURCE_ID = "current_tabs"

    def __init__(self, tabs_processor):
        self.tabs_processor = tabs_processor

    def get_source_id(self) -> str:
        return self.SOURCE_ID

    def get_schema(self) -> Dict[str, dict]:
        return CURRENT_TABS_SCHEMA

    async def is_available(self) -> bool:
        return self.tabs_processor is not None

    async def get_data(self) -> List[dict]:
        if self.tabs_processor is None:
            return []

        categorized, url_to_duplicate_ids = await self.tabs_processor.get_current_tabs_with_categories()
        url_to_duplicate_ids = url_to_duplicate_ids or {}

        records: List[dict] = []
        for category_key, tabs in (categorized or {}).items():
            category = coerce_category(category_key)
            for tab in tabs or []:
                records.append(self._normalize(tab, category, url_to_duplicate_ids))
        return records

    def _normalize(self, tab: dict, category: int | None, url_to_duplicate_ids: Dict) -> dict:
        url = tab.get("url") or ""
        last_accessed = tab.get("lastAccessed") or now_ms()
        record = dict(tab)
        record.update(
            {
                "category": category,
                "domain": self.extract_domain(url),
                "duplicateIds": list(url_to_duplicate_ids.get(url) or []),
                "isUncategorized": category == Category.UNCATEGORIZED,
                "lastAccessed": last_accessed,
            }
        )
        record.update(self.calendar_fields("lastAccessed", last_accessed))
        return record
