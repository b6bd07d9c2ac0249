"""Record grouping with nested sub-counters.

Every grouping field maps to a kind, and every kind to one GroupingStrategy
that knows how to key, label and order groups of that kind. Adding a
grouping kind means adding one entry to GROUPING_STRATEGIES.
"""

from __future__ import annotations

import calendar
import logging
import math
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from tabview.tab_policy import (
    CATEGORY_DISPLAY_INDEX,
    UNKNOWN_DOMAIN,
    category_name,
    coerce_category,
    strip_www,
    to_datetime,
)

from .config import merge_cfg
from .errors import ConfigurationError
from .fields import extract_field_value

logger = logging.getLogger(__name__)

ORDER_CATEGORY = "category"
ORDER_ALPHA = "alpha"
ORDER_NEWEST_FIRST = "newest_first"


@dataclass(frozen=True)
class GroupSpec:
    group_by: Tuple[str, ...] = ()
    count_by: Tuple[str, ...] = ()
    include_ungrouped: bool = True

    def __post_init__(self):
        object.__setattr__(self, "group_by", _as_fields(self.group_by))
        object.__setattr__(self, "count_by", _as_fields(self.count_by))
        object.__setattr__(self, "include_ungrouped", bool(self.include_ungrouped))


def _as_fields(fields) -> Tuple[str, ...]:
    if fields is None:
        return ()
    if isinstance(fields, str):
        return (fields,)
    return tuple(fields)


# ------------------------------ Strategies ------------------------------ #

def _category_key(value, cfg: Dict) -> Optional[str]:
    category = coerce_category(value)
    return str(category) if category is not None else str(value)


def _category_label(value, cfg: Dict) -> str:
    return category_name(value)


def _category_order(value):
    return coerce_category(value)


def _date_label(value, cfg: Dict) -> str:
    dt = to_datetime(value)
    if dt is None:
        return "Unknown Date"
    return f"{dt.month}/{dt.day}/{dt.year}"


def _date_order(value):
    dt = to_datetime(value)
    return dt.date() if dt is not None else None


def _week_number(value) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number):
        return None
    return int(number)


def _week_label(value, cfg: Dict) -> Optional[str]:
    week = _week_number(value)
    return f"Week {week}" if week is not None else None


def _month_label(value, cfg: Dict) -> str:
    text = str(value)
    year, _, month = text.partition("-")
    try:
        return f"{calendar.month_name[int(month)]} {int(year)}"
    except (ValueError, IndexError):
        return text


def _quarter_label(value, cfg: Dict) -> str:
    text = str(value)
    year, sep, quarter = text.partition("-Q")
    if not sep:
        return text
    return f"{year} Q{quarter}"


_MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")
_QUARTER_RE = re.compile(r"^\d{4}-Q[1-4]$")


def _month_order(value) -> Optional[str]:
    text = str(value).strip()
    return text if _MONTH_RE.match(text) else None


def _quarter_order(value) -> Optional[str]:
    text = str(value).strip()
    return text if _QUARTER_RE.match(text) else None


def _domain_label(value, cfg: Dict) -> str:
    domain = str(value or "").strip()
    if not domain or domain == UNKNOWN_DOMAIN:
        return cfg["unknownDomainLabel"]
    return strip_www(domain)


def _value_label(value, cfg: Dict) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@dataclass(frozen=True)
class GroupingStrategy:
    label_fn: Callable[[object, Dict], Optional[str]]
    order: str = ORDER_ALPHA
    key_fn: Optional[Callable[[object, Dict], Optional[str]]] = None
    order_value_fn: Optional[Callable[[object], object]] = None

    def key(self, value, cfg: Dict) -> Optional[str]:
        return (self.key_fn or self.label_fn)(value, cfg)

    def label(self, value, cfg: Dict) -> Optional[str]:
        return self.label_fn(value, cfg)


GROUPING_STRATEGIES: Dict[str, GroupingStrategy] = {
    "category": GroupingStrategy(_category_label, ORDER_CATEGORY, _category_key, _category_order),
    "date": GroupingStrategy(_date_label, ORDER_NEWEST_FIRST, order_value_fn=_date_order),
    "week": GroupingStrategy(_week_label, ORDER_NEWEST_FIRST, order_value_fn=_week_number),
    "month": GroupingStrategy(_month_label, ORDER_NEWEST_FIRST, order_value_fn=_month_order),
    "quarter": GroupingStrategy(_quarter_label, ORDER_NEWEST_FIRST, order_value_fn=_quarter_order),
    "domain": GroupingStrategy(_domain_label, ORDER_ALPHA),
    "window": GroupingStrategy(_value_label, ORDER_ALPHA),
    "value": GroupingStrategy(_value_label, ORDER_ALPHA),
}

FIELD_KINDS: Dict[str, str] = {
    "category": "category",
    "savedDate": "date",
    "lastAccessed": "date",
    "lastAccessedDate": "date",
    "lastCloseTime": "date",
    "lastSeen": "date",
    "weekNumber": "week",
    "lastAccessedWeekNumber": "week",
    "monthYear": "month",
    "lastAccessedMonthYear": "month",
    "yearQuarter": "quarter",
    "lastAccessedYearQuarter": "quarter",
    "domain": "domain",
    "windowId": "window",
}


def strategy_for(field: str, schema: Dict | None = None) -> GroupingStrategy:
    kind = FIELD_KINDS.get(field)
    if kind is None and ((schema or {}).get(field) or {}).get("type") == "date":
        kind = "date"
    return GROUPING_STRATEGIES[kind or "value"]


def _safe_call(fn: Callable, value, field: str, *args):
    try:
        return fn(value, *args)
    except Exception:
        logger.exception("Group formatter failed for field '%s' (value %r); using raw value", field, value)
        return str(value)


# ------------------------------ Grouping ------------------------------ #

class _Group:
    __slots__ = ("key", "label", "order_value", "records")

    def __init__(self, key: str, label: str, order_value):
        self.key = key
        self.label = label
        self.order_value = order_value
        self.records: List[dict] = []


def group_records(
    records: Sequence[dict],
    spec: GroupSpec,
    schema: Dict | None = None,
    cfg: Dict | None = None,
) -> Dict:
    """Partition `records` into ordered groups.

    Group counts always describe the full group; limiting happens later.
    """
    cfg = cfg or merge_cfg()
    result = {
        "groups": {},
        "groupCounts": {},
        "subCounts": {},
        "groupLabels": {},
        "totalCount": 0,
        "ungroupedCount": 0,
    }
    if not isinstance(records, (list, tuple)) or not records:
        return result

    records = list(records)
    result["totalCount"] = len(records)

    if not spec.group_by:
        all_key = cfg["allGroupKey"]
        _emit(result, all_key, all_key, records, spec, schema, cfg)
        return result

    strategies = [(field, strategy_for(field, schema)) for field in spec.group_by]
    delimiter = cfg["groupKeyDelimiter"]
    groups: Dict[str, _Group] = {}
    ungrouped: List[dict] = []

    for record in records:
        key_parts: List[str] = []
        label_parts: List[str] = []
        order_value = None
        for index, (field, strategy) in enumerate(strategies):
            value = extract_field_value(record, field)
            if value is None:
                continue
            key = _safe_call(strategy.key, value, field, cfg)
            if key is None:
                continue
            key_parts.append(key)
            label_parts.append(_safe_call(strategy.label, value, field, cfg) or key)
            if index == 0 and strategy.order_value_fn is not None:
                order_value = _order_value(strategy, value, field)

        if not key_parts:
            ungrouped.append(record)
            continue

        group_key = delimiter.join(key_parts)
        group = groups.get(group_key)
        if group is None:
            group = groups[group_key] = _Group(group_key, delimiter.join(label_parts), order_value)
        group.records.append(record)

    ungrouped_key = cfg["ungroupedKey"]
    result["ungroupedCount"] = len(ungrouped)
    if ungrouped and spec.include_ungrouped:
        clash = groups.pop(ungrouped_key, None)
        if clash is not None:
            # A real group named like the sentinel absorbs the value-less records.
            members = {id(record) for record in clash.records + ungrouped}
            ungrouped = [record for record in records if id(record) in members]

    ordered = _order_groups(list(groups.values()), strategies)
    for group in ordered:
        _emit(result, group.key, group.label, group.records, spec, schema, cfg)

    if ungrouped and spec.include_ungrouped:
        _emit(result, ungrouped_key, ungrouped_key, ungrouped, spec, schema, cfg)
    return result


def _order_value(strategy: GroupingStrategy, value, field: str):
    try:
        return strategy.order_value_fn(value)
    except Exception:
        logger.exception("Group ordering value failed for field '%s' (value %r)", field, value)
        return None


def _order_groups(groups: List[_Group], strategies: List[Tuple[str, GroupingStrategy]]) -> List[_Group]:
    """Apply the single-field ordering policy; composite keys keep first-seen order."""
    if len(strategies) != 1:
        return groups

    order = strategies[0][1].order
    if order == ORDER_CATEGORY:
        known = [g for g in groups if g.order_value in CATEGORY_DISPLAY_INDEX]
        unknown = [g for g in groups if g.order_value not in CATEGORY_DISPLAY_INDEX]
        known.sort(key=lambda g: CATEGORY_DISPLAY_INDEX[g.order_value])
        return known + unknown
    if order == ORDER_NEWEST_FIRST:
        dated = [g for g in groups if g.order_value is not None]
        undated = [g for g in groups if g.order_value is None]
        dated.sort(key=lambda g: g.order_value, reverse=True)
        return dated + undated
    return sorted(groups, key=lambda g: g.key.casefold())


def _emit(result: Dict, key: str, label: str, records: List[dict], spec: GroupSpec, schema, cfg: Dict) -> None:
    result["groups"][key] = records
    result["groupCounts"][key] = len(records)
    result["subCounts"][key] = calculate_sub_counts(records, spec.count_by, schema, cfg)
    result["groupLabels"][key] = label


def calculate_sub_counts(
    records: Sequence[dict],
    count_by: Sequence[str],
    schema: Dict | None = None,
    cfg: Dict | None = None,
) -> Dict:
    cfg = cfg or merge_cfg()
    sub_counts: Dict = {}
    for field in count_by:
        strategy = strategy_for(field, schema)
        counts: Dict[str, int] = {}
        for record in records:
            value = extract_field_value(record, field)
            label = None if value is None else _safe_call(strategy.label, value, field, cfg)
            label = label or cfg["unknownCountLabel"]
            counts[label] = counts.get(label, 0) + 1
        sub_counts[field] = counts
    sub_counts["total"] = len(records)
    return sub_counts


class GroupingEngine:
    def __init__(self, spec: GroupSpec | None = None, cfg: Dict | None = None):
        self._spec = spec or GroupSpec()
        self.cfg = merge_cfg(cfg)

    @property
    def spec(self) -> GroupSpec:
        return self._spec

    @property
    def group_by(self) -> Tuple[str, ...]:
        return self._spec.group_by

    @property
    def count_by(self) -> Tuple[str, ...]:
        return self._spec.count_by

    def set_spec(self, spec: GroupSpec) -> None:
        self._spec = spec

    def set_group_by(self, fields) -> None:
        self._spec = GroupSpec(fields, self._spec.count_by, self._spec.include_ungrouped)

    def set_count_by(self, fields) -> None:
        self._spec = GroupSpec(self._spec.group_by, fields, self._spec.include_ungrouped)

    def set_include_ungrouped(self, include: bool) -> None:
        self._spec = GroupSpec(self._spec.group_by, self._spec.count_by, include)

    def use_preset(self, name: str) -> None:
        self._spec = grouping_preset(name)

    def group_data(self, records: Sequence[dict], schema: Dict | None = None) -> Dict:
        return group_records(records, self._spec, schema, self.cfg)


GROUPING_PRESETS: Dict[str, GroupSpec] = {
    "category": GroupSpec(("category",), ("domain",)),
    "domain": GroupSpec(("domain",), ("category",)),
    "saved_date": GroupSpec(("savedDate",), ("category", "domain")),
    "month_year": GroupSpec(("monthYear",), ("category", "domain")),
    "week": GroupSpec(("weekNumber",), ("category", "domain")),
    "year_quarter": GroupSpec(("yearQuarter",), ("category", "domain")),
    "window": GroupSpec(("windowId",), ("category", "domain")),
    "last_accessed_date": GroupSpec(("lastAccessed",), ("category", "domain")),
    "last_accessed_week": GroupSpec(("lastAccessedWeekNumber",), ("category", "domain")),
    "last_accessed_month": GroupSpec(("lastAccessedMonthYear",), ("category", "domain")),
    "category_and_domain": GroupSpec(("category", "domain"), ("lastAccessed",)),
    "domain_and_category": GroupSpec(("domain", "category"), ("lastAccessed",)),
    "none": GroupSpec((), ("category", "domain")),
}


def grouping_preset(name: str) -> GroupSpec:
    try:
        return GROUPING_PRESETS[name]
    except KeyError:
        raise ConfigurationError(f"Unknown grouping preset '{name}'") from None


class GroupBuilder:
    """Fluent construction of a GroupingEngine."""

    def __init__(self, cfg: Dict | None = None):
        self.engine = GroupingEngine(cfg=cfg)

    def by(self, *fields: str) -> "GroupBuilder":
        self.engine.set_group_by(fields)
        return self

    def count_by(self, *fields: str) -> "GroupBuilder":
        self.engine.set_count_by(fields)
        return self

    def by_category(self) -> "GroupBuilder":
        return self.by("category")

    def by_domain(self) -> "GroupBuilder":
        return self.by("domain")

    def by_date(self, field: str) -> "GroupBuilder":
        return self.by(field)

    def by_month(self) -> "GroupBuilder":
        return self.by("monthYear")

    def by_week(self) -> "GroupBuilder":
        return self.by("weekNumber")

    def by_quarter(self) -> "GroupBuilder":
        return self.by("yearQuarter")

    def include_ungrouped(self, include: bool = True) -> "GroupBuilder":
        self.engine.set_include_ungrouped(include)
        return self

    def build(self) -> GroupingEngine:
        return self.engine
