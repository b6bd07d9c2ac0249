"""Aggregation orchestrator: filter -> sort -> group -> limit.

`run_pipeline` is a pure function of its inputs. `Aggregator` keeps the
mutable configuration a UI reconfigures between queries, but every
`process_data` call first freezes that configuration into a PipelineQuery so
changes made while the fetch is pending do not leak into the running query.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Sequence, Tuple

from tabview.sources.base import DataSource

from .config import Limits, merge_cfg
from .errors import ConfigurationError, SourceUnavailableError
from .filtering import FilteringEngine, Predicate, apply_filters
from .grouping import GroupingEngine, GroupSpec, group_records
from .sorting import SortCriterion, SortingEngine, sort_records

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineQuery:
    filters: Tuple[Tuple[str, Predicate], ...] = ()
    sort_criteria: Tuple[SortCriterion, ...] = ()
    group_spec: GroupSpec = field(default_factory=GroupSpec)
    limits: Limits = field(default_factory=Limits)


def run_pipeline(
    records: Sequence[dict],
    schema: Dict | None,
    query: PipelineQuery,
    source_id: str | None = None,
    cfg: Dict | None = None,
) -> Dict:
    cfg = cfg or merge_cfg()
    schema = schema or {}
    records = list(records or [])
    started = time.perf_counter()

    filtered = apply_filters(records, query.filters, schema)
    sorted_records = sort_records(filtered, query.sort_criteria, schema)
    grouped = group_records(sorted_records, query.group_spec, schema, cfg)
    limited = apply_limits(grouped, query.limits)
    metadata = build_metadata(query, records, filtered, sorted_records, grouped, limited)

    processing_time = (time.perf_counter() - started) * 1000.0
    metadata["processingTime"] = processing_time
    metadata["sourceId"] = source_id
    metadata["timestamp"] = datetime.now(timezone.utc).isoformat()
    logger.debug(
        "Pipeline %s: raw=%d filtered=%d groups=%d/%d in %.2fms",
        source_id,
        len(records),
        len(filtered),
        metadata["counts"]["visibleGroups"],
        metadata["counts"]["totalGroups"],
        processing_time,
    )

    limited["metadata"] = metadata
    return limited


def apply_limits(grouped: Dict, limits: Limits) -> Dict:
    """Truncate ordered groups and their items.

    Counts and pagination flags come from the pre-truncation groups, so "N more"
    messaging stays accurate without re-querying.
    """
    groups = grouped["groups"]
    group_counts = grouped["groupCounts"]
    sub_counts = grouped["subCounts"]
    group_labels = grouped.get("groupLabels", {})
    max_groups = limits.max_groups
    max_items = limits.max_items_per_group

    entries = list(groups.items())
    visible = entries[:max_groups] if max_groups else entries

    result = {
        "groups": {},
        "groupCounts": {},
        "subCounts": {},
        "groupLabels": {},
        "totalCount": grouped["totalCount"],
        "ungroupedCount": grouped["ungroupedCount"],
        "pagination": {
            "hasMoreGroups": bool(max_groups) and len(entries) > max_groups,
            "hasMoreItems": {},
            "visibleGroupCount": len(visible),
            "totalGroupCount": len(entries),
            "hiddenGroupCount": max(0, len(entries) - len(visible)),
        },
    }

    for key, records in visible:
        shown = records[:max_items] if max_items else records
        result["groups"][key] = list(shown)
        result["groupCounts"][key] = group_counts[key]
        result["subCounts"][key] = sub_counts[key]
        result["groupLabels"][key] = group_labels.get(key, key)
        result["pagination"]["hasMoreItems"][key] = group_counts[key] > len(shown)
    return result


def build_metadata(
    query: PipelineQuery,
    raw: List[dict],
    filtered: List[dict],
    sorted_records: List[dict],
    grouped: Dict,
    limited: Dict,
) -> Dict:
    return {
        "counts": {
            "raw": len(raw),
            "filtered": len(filtered),
            "sorted": len(sorted_records),
            "totalGroups": len(grouped["groups"]),
            "visibleGroups": len(limited["groups"]),
            "ungrouped": grouped["ungroupedCount"],
        },
        "filters": {
            "active": len(query.filters),
            "names": [name for name, _ in query.filters],
        },
        "sorting": {
            "criteria": len(query.sort_criteria),
            "fields": [criterion.label for criterion in query.sort_criteria],
        },
        "grouping": {
            "fields": list(query.group_spec.group_by),
            "countFields": list(query.group_spec.count_by),
        },
        "limits": {
            "applied": query.limits.applied,
            "maxGroups": query.limits.max_groups,
            "maxItemsPerGroup": query.limits.max_items_per_group,
        },
    }


class Aggregator:
    """Holds data sources and query configuration; runs the pipeline.

    Construct one per application session and pass it to the code that needs it.
    """

    def __init__(self, cfg: Dict | None = None):
        self.cfg = merge_cfg(cfg)
        self._sources: Dict[str, DataSource] = {}
        self.active_source_id: str | None = None
        self.filtering = FilteringEngine()
        self.sorting = SortingEngine()
        self.grouping = GroupingEngine(cfg=self.cfg)
        self._limits = Limits.from_cfg(self.cfg["limits"])

    def register_data_source(self, source: DataSource) -> None:
        if not isinstance(source, DataSource):
            raise ConfigurationError("Data source must implement DataSource")
        self._sources[source.get_source_id()] = source

    def set_active_data_source(self, source_id: str) -> None:
        if source_id not in self._sources:
            raise ConfigurationError(f"Data source '{source_id}' not registered")
        self.active_source_id = source_id

    @property
    def active_data_source(self) -> DataSource | None:
        if self.active_source_id is None:
            return None
        return self._sources.get(self.active_source_id)

    @property
    def data_sources(self) -> Dict[str, DataSource]:
        return dict(self._sources)

    @property
    def limits(self) -> Limits:
        return self._limits

    def set_limits(self, limits: "Dict | Limits") -> None:
        self._limits = self._limits.merged(limits)

    def snapshot(self) -> PipelineQuery:
        return PipelineQuery(
            filters=self.filtering.snapshot(),
            sort_criteria=self.sorting.criteria,
            group_spec=self.grouping.spec,
            limits=self._limits,
        )

    async def process_data(self) -> Dict:
        query = self.snapshot()
        source_id = self.active_source_id
        source = self.active_data_source
        if source is None:
            raise ConfigurationError("No active data source set")

        try:
            if not await source.is_available():
                raise SourceUnavailableError(source_id)
            records = await source.get_data()
            schema = source.get_schema()
            return run_pipeline(records, schema, query, source_id=source_id, cfg=self.cfg)
        except SourceUnavailableError:
            logger.warning("Data source '%s' is not available", source_id)
            raise
        except Exception:
            logger.exception("Error processing data from '%s'", source_id)
            raise

    def statistics(self) -> Dict:
        return {
            "registeredSources": len(self._sources),
            "activeSource": self.active_source_id,
            "limits": self._limits.to_cfg(),
        }


class AggregationBuilder:
    """Fluent configuration over an Aggregator.

    `from` is a keyword in Python, hence `from_`.
    """

    def __init__(self, aggregator: Aggregator | None = None):
        self.aggregator = aggregator or Aggregator()

    def from_(self, source_id: str) -> "AggregationBuilder":
        self.aggregator.set_active_data_source(source_id)
        return self

    def filter(self, configure: Callable[[FilteringEngine], None]) -> "AggregationBuilder":
        configure(self.aggregator.filtering)
        return self

    def sort(self, configure: Callable[[SortingEngine], None]) -> "AggregationBuilder":
        configure(self.aggregator.sorting)
        return self

    def group(self, configure: Callable[[GroupingEngine], None]) -> "AggregationBuilder":
        configure(self.aggregator.grouping)
        return self

    def limit(self, limits: "Dict | Limits") -> "AggregationBuilder":
        self.aggregator.set_limits(limits)
        return self

    async def execute(self) -> Dict:
        return await self.aggregator.process_data()

    def build(self) -> Aggregator:
        return self.aggregator
