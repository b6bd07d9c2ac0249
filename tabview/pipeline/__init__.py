"""Filter, sort, group and limit tab records from any data source."""

from .aggregation import AggregationBuilder, Aggregator, PipelineQuery, apply_limits, build_metadata, run_pipeline
from .config import DEFAULT_CFG, Limits, merge_cfg
from .errors import ConfigurationError, PipelineError, SourceUnavailableError
from .filtering import (
    CategoryFilter,
    CompositeFilter,
    CustomFieldFilter,
    DateRangeFilter,
    DomainFilter,
    FilterBuilder,
    FilteringEngine,
    TextSearchFilter,
    apply_filters,
)
from .grouping import (
    GROUPING_PRESETS,
    GROUPING_STRATEGIES,
    GroupBuilder,
    GroupingEngine,
    GroupSpec,
    calculate_sub_counts,
    group_records,
    grouping_preset,
)
from .sorting import SORT_PRESETS, SortBuilder, SortCriterion, SortingEngine, default_compare, sort_preset, sort_records
from .views import TabViews

__all__ = [
    "Aggregator",
    "AggregationBuilder",
    "PipelineQuery",
    "run_pipeline",
    "apply_limits",
    "build_metadata",
    "DEFAULT_CFG",
    "Limits",
    "merge_cfg",
    "PipelineError",
    "ConfigurationError",
    "SourceUnavailableError",
    "FilteringEngine",
    "FilterBuilder",
    "TextSearchFilter",
    "CategoryFilter",
    "DateRangeFilter",
    "DomainFilter",
    "CustomFieldFilter",
    "CompositeFilter",
    "apply_filters",
    "SortingEngine",
    "SortBuilder",
    "SortCriterion",
    "SORT_PRESETS",
    "default_compare",
    "sort_preset",
    "sort_records",
    "GroupingEngine",
    "GroupBuilder",
    "GroupSpec",
    "GROUPING_PRESETS",
    "GROUPING_STRATEGIES",
    "calculate_sub_counts",
    "group_records",
    "grouping_preset",
    "TabViews",
]
