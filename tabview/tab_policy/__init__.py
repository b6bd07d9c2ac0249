"""Shared tab semantics used by data sources and the query pipeline."""

from .dates import calendar_fields, epoch_ms, month_year, now_ms, to_datetime, week_number, year_quarter
from .categories import (
    CATEGORY_DISPLAY_INDEX,
    CATEGORY_DISPLAY_ORDER,
    CATEGORY_NAMES,
    Category,
    category_name,
    coerce_category,
)
from .domains import UNKNOWN_DOMAIN, extract_domain, root_domain, strip_www

__all__ = [
    "Category",
    "CATEGORY_NAMES",
    "CATEGORY_DISPLAY_ORDER",
    "CATEGORY_DISPLAY_INDEX",
    "category_name",
    "coerce_category",
    "UNKNOWN_DOMAIN",
    "extract_domain",
    "root_domain",
    "strip_www",
    "to_datetime",
    "week_number",
    "month_year",
    "year_quarter",
    "calendar_fields",
    "epoch_ms",
    "now_ms",
]
