"""Tab view queries: the options a popup exposes, mapped onto the pipeline.

A view option (grouping or sort dropdown value) resolves through one of the
tables below to a named preset. Unknown options fall back to the view's
default rather than failing the query.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Mapping, Sequence

from .aggregation import AggregationBuilder, Aggregator
from .config import Limits
from .filtering import CategoryFilter, DateRangeFilter, DomainFilter, FilteringEngine, TextSearchFilter
from .grouping import GroupingEngine
from .sorting import SortingEngine

logger = logging.getLogger(__name__)

CURRENT_TABS_SOURCE = "current_tabs"
SAVED_TABS_SOURCE = "saved_tabs"

CURRENT_TABS_GROUPINGS: Dict[str, str] = {
    "category": "category",
    "domain": "domain",
    "window": "window",
    "lastAccessedDate": "last_accessed_date",
    "lastAccessedWeek": "last_accessed_week",
    "lastAccessedMonth": "last_accessed_month",
    "none": "none",
}

SAVED_TABS_GROUPINGS: Dict[str, str] = {
    "category": "category",
    "domain": "domain",
    "savedDate": "saved_date",
    "saveDate": "saved_date",
    "closeTime": "saved_date",
    "savedWeek": "week",
    "week": "week",
    "savedMonth": "month_year",
    "monthYear": "month_year",
    "quarter": "year_quarter",
    "lastAccessedDate": "last_accessed_date",
    "lastAccessedWeek": "last_accessed_week",
    "lastAccessedMonth": "last_accessed_month",
    "none": "none",
}

CURRENT_TABS_SORTS: Dict[str, str] = {
    "title": "title",
    "domain": "domain",
    "lastAccessed": "last_accessed",
    "priority": "priority",
    "window": "window_then_index",
}

SAVED_TABS_SORTS: Dict[str, str] = {
    "title": "title",
    "domain": "domain",
    "savedDate": "saved_date",
    "lastAccessed": "last_accessed",
    "recency": "recency",
}

CURRENT_TABS_DEFAULT_GROUPING = "category"
CURRENT_TABS_DEFAULT_SORT = "category_then_title"
SAVED_TABS_DEFAULT_GROUPING = "month_year"
SAVED_TABS_DEFAULT_SORT = "saved_date"


def resolve_option(option: str | None, table: Mapping[str, str], default: str, kind: str) -> str:
    """Map a view option to a preset name, falling back to `default`."""
    if not option:
        return default
    preset = table.get(option)
    if preset is None:
        logger.warning("Unknown %s option '%s', falling back to '%s'", kind, option, default)
        return default
    return preset


def _configure_filters(
    engine: FilteringEngine,
    search_fields: Sequence[str],
    search_query: str = "",
    categories: Sequence | None = None,
    domains: Sequence | None = None,
) -> None:
    engine.clear_filters()
    if search_query:
        engine.add_filter("search", TextSearchFilter(search_query, search_fields=search_fields).create_filter())
    if categories:
        engine.add_filter("categories", CategoryFilter(categories).create_filter())
    if domains:
        engine.add_filter("domains", DomainFilter(domains).create_filter())


class TabViews:
    """Canned current-tab and saved-tab queries over one Aggregator."""

    def __init__(self, aggregator: Aggregator):
        self.aggregator = aggregator

    @property
    def search_fields(self) -> List[str]:
        """Fields the search box matches against, from the aggregator's `searchFields`."""
        return list(self.aggregator.cfg["searchFields"])

    def _builder(self, source_id: str) -> AggregationBuilder:
        return AggregationBuilder(self.aggregator).from_(source_id)

    async def current_tabs(
        self,
        search_query: str = "",
        categories: Sequence | None = None,
        group_by: str | None = "category",
        sort_by: str | None = None,
        domains: Sequence | None = None,
        limits: "Dict | Limits | None" = None,
    ) -> Dict:
        grouping = resolve_option(group_by, CURRENT_TABS_GROUPINGS, CURRENT_TABS_DEFAULT_GROUPING, "grouping")
        sort = CURRENT_TABS_SORTS.get(sort_by or "", CURRENT_TABS_DEFAULT_SORT)

        builder = (
            self._builder(CURRENT_TABS_SOURCE)
            .filter(lambda engine: _configure_filters(engine, self.search_fields, search_query, categories, domains))
            .sort(lambda engine: engine.use_preset(sort))
            .group(lambda engine: engine.use_preset(grouping))
        )
        if limits:
            builder.limit(limits)
        return await builder.execute()

    async def saved_tabs(
        self,
        search_query: str = "",
        categories: Sequence | None = None,
        group_by: str | None = "monthYear",
        sort_by: str | None = "savedDate",
        domains: Sequence | None = None,
        date_range: Mapping | None = None,
        limits: "Dict | Limits | None" = None,
    ) -> Dict:
        grouping = resolve_option(group_by, SAVED_TABS_GROUPINGS, SAVED_TABS_DEFAULT_GROUPING, "grouping")
        sort = SAVED_TABS_SORTS.get(sort_by or "", SAVED_TABS_DEFAULT_SORT)

        def configure_filters(engine: FilteringEngine) -> None:
            _configure_filters(engine, self.search_fields, search_query, categories, domains)
            start = (date_range or {}).get("start")
            end = (date_range or {}).get("end")
            if start or end:
                engine.add_filter("dateRange", DateRangeFilter("savedDate", start, end).create_filter())

        builder = (
            self._builder(SAVED_TABS_SOURCE)
            .filter(configure_filters)
            .sort(lambda engine: engine.use_preset(sort))
            .group(lambda engine: engine.use_preset(grouping))
        )
        if limits:
            builder.limit(limits)
        return await builder.execute()

    async def custom(
        self,
        source_id: str,
        filter: Callable[[FilteringEngine], None] | None = None,
        sort: Callable[[SortingEngine], None] | None = None,
        group: Callable[[GroupingEngine], None] | None = None,
        limits: "Dict | Limits | None" = None,
    ) -> Dict:
        builder = self._builder(source_id)
        if filter is not None:
            builder.filter(filter)
        if sort is not None:
            builder.sort(sort)
        if group is not None:
            builder.group(group)
        if limits:
            builder.limit(limits)
        return await builder.execute()

    def available_sources(self) -> List[str]:
        return list(self.aggregator.data_sources)

    def statistics(self) -> Dict:
        return self.aggregator.statistics()

    def update_limits(self, limits: "Dict | Limits") -> None:
        self.aggregator.set_limits(limits)
