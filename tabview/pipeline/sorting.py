"""Multi-key record sorting.

An ordered list of criteria composes into one comparator: the first criterion
with a non-zero result decides, ties fall through to the next one. Python's
sort is stable, so equal records keep their input order and sorting twice
gives the same result as sorting once.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from functools import cmp_to_key
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from tabview.tab_policy import to_datetime

from .errors import ConfigurationError
from .fields import extract_field_value

CompareFn = Callable[[object, object, Optional[Dict]], int]
DIRECTIONS = {"asc", "desc"}


def _sign(a, b) -> int:
    return (a > b) - (a < b)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _to_number(value) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


def compare_numbers(a, b) -> int:
    num_a = _to_number(a)
    num_b = _to_number(b)
    if math.isnan(num_a) and math.isnan(num_b):
        return 0
    if math.isnan(num_a):
        return -1
    if math.isnan(num_b):
        return 1
    return _sign(num_a, num_b)


def compare_strings(a, b) -> int:
    return _sign(str(a).casefold(), str(b).casefold())


def compare_booleans(a, b) -> int:
    return int(bool(a)) - int(bool(b))


def compare_dates(a, b) -> int:
    date_a = to_datetime(a)
    date_b = to_datetime(b)
    if date_a is None and date_b is None:
        return 0
    if date_a is None:
        return -1
    if date_b is None:
        return 1
    return _sign(date_a, date_b)


def is_date_like(value) -> bool:
    if isinstance(value, datetime):
        return True
    if not (_is_number(value) or isinstance(value, str)):
        return False
    return to_datetime(value) is not None


def compare_general(a, b) -> int:
    if isinstance(a, bool) and isinstance(b, bool):
        return compare_booleans(a, b)
    if _is_number(a) and _is_number(b):
        return compare_numbers(a, b)
    if isinstance(a, datetime) and isinstance(b, datetime):
        return compare_dates(a, b)
    if is_date_like(a) and is_date_like(b):
        return compare_dates(a, b)
    return compare_strings(a, b)


_TYPED_COMPARATORS = {
    "number": compare_numbers,
    "string": compare_strings,
    "boolean": compare_booleans,
    "date": compare_dates,
}


def default_compare(a, b, field_config: Dict | None = None) -> int:
    """Compare two field values; None sorts first.

    A declared schema type wins over auto-detection.
    """
    if a is None and b is None:
        return 0
    if a is None:
        return -1
    if b is None:
        return 1

    field_type = (field_config or {}).get("type")
    compare = _TYPED_COMPARATORS.get(field_type, compare_general)
    return compare(a, b)


@dataclass(frozen=True)
class SortCriterion:
    field: str
    direction: str = "asc"
    compare_fn: CompareFn | None = None
    value_fn: Callable[[dict], object] | None = None

    def __post_init__(self):
        direction = str(self.direction or "asc").strip().lower()
        if direction not in DIRECTIONS:
            raise ConfigurationError(f"Unsupported sort direction '{self.direction}' for field '{self.field}'")
        object.__setattr__(self, "direction", direction)

    @property
    def label(self) -> str:
        return f"{self.field}:{self.direction}"

    def value(self, record: dict):
        if self.value_fn is not None:
            return self.value_fn(record)
        return extract_field_value(record, self.field)

    def compare(self, a: dict, b: dict, schema: Dict) -> int:
        compare = self.compare_fn or default_compare
        result = compare(self.value(a), self.value(b), schema.get(self.field))
        return -result if self.direction == "desc" else result


def sort_records(
    records: Sequence[dict],
    criteria: Sequence[SortCriterion],
    schema: Dict | None = None,
) -> List[dict]:
    """Return a new list sorted by `criteria`; the input is left untouched."""
    if not isinstance(records, (list, tuple)):
        return []
    if not records or not criteria:
        return list(records)
    schema = schema or {}

    def compare(a: dict, b: dict) -> int:
        for criterion in criteria:
            result = criterion.compare(a, b, schema)
            if result != 0:
                return result
        return 0

    return sorted(records, key=cmp_to_key(compare))


class SortingEngine:
    def __init__(self, criteria: Sequence[SortCriterion] = ()):
        self._criteria: List[SortCriterion] = list(criteria)

    @property
    def criteria(self) -> Tuple[SortCriterion, ...]:
        return tuple(self._criteria)

    def add_sort(
        self,
        field: str,
        direction: str = "asc",
        compare_fn: CompareFn | None = None,
        value_fn: Callable[[dict], object] | None = None,
    ) -> None:
        self._criteria.append(SortCriterion(field, direction, compare_fn, value_fn))

    def clear_sort(self) -> None:
        self._criteria = []

    def use_preset(self, name: str, direction: str | None = None) -> None:
        """Replace the current criteria with a named preset."""
        self._criteria = list(sort_preset(name, direction))

    def sort_data(self, records: Sequence[dict], schema: Dict | None = None) -> List[dict]:
        return sort_records(records, self.criteria, schema)


def tab_priority(record: dict) -> int:
    """Rank a tab: pinned > active > audible > everything else."""
    if record.get("pinned"):
        return 4
    if record.get("active"):
        return 3
    if record.get("audible"):
        return 2
    return 1


def _single(field: str, default_direction: str):
    def preset(direction: str | None = None) -> Tuple[SortCriterion, ...]:
        return (SortCriterion(field, direction or default_direction),)

    return preset


SORT_PRESETS: Dict[str, Callable[..., Tuple[SortCriterion, ...]]] = {
    "title": _single("title", "asc"),
    "domain": _single("domain", "asc"),
    "last_accessed": _single("lastAccessed", "desc"),
    "saved_date": _single("savedDate", "desc"),
    "category_then_title": lambda direction=None: (
        SortCriterion("category", "asc"),
        SortCriterion("title", "asc"),
    ),
    "domain_then_title": lambda direction=None: (
        SortCriterion("domain", "asc"),
        SortCriterion("title", "asc"),
    ),
    "recency": lambda direction=None: (
        SortCriterion("lastAccessed", "desc"),
        SortCriterion("savedDate", "desc"),
    ),
    "window_then_index": lambda direction=None: (
        SortCriterion("windowId", "asc"),
        SortCriterion("index", "asc"),
    ),
    "priority": lambda direction=None: (
        SortCriterion("priority", "desc", compare_fn=lambda a, b, _cfg: compare_numbers(a, b), value_fn=tab_priority),
        SortCriterion("title", "asc"),
    ),
}


def sort_preset(name: str, direction: str | None = None) -> Tuple[SortCriterion, ...]:
    try:
        factory = SORT_PRESETS[name]
    except KeyError:
        raise ConfigurationError(f"Unknown sort preset '{name}'") from None
    return factory(direction)


class SortBuilder:
    """Fluent construction of a SortingEngine."""

    def __init__(self):
        self.engine = SortingEngine()

    def by(self, field: str, direction: str = "asc", compare_fn: CompareFn | None = None) -> "SortBuilder":
        self.engine.add_sort(field, direction, compare_fn)
        return self

    def by_title(self, direction: str = "asc") -> "SortBuilder":
        return self.by("title", direction)

    def by_domain(self, direction: str = "asc") -> "SortBuilder":
        return self.by("domain", direction)

    def by_category(self, direction: str = "asc") -> "SortBuilder":
        return self.by("category", direction)

    def by_date(self, field: str, direction: str = "desc") -> "SortBuilder":
        return self.by(field, direction, lambda a, b, _cfg: compare_dates(a, b))

    def clear(self) -> "SortBuilder":
        self.engine.clear_sort()
        return self

    def build(self) -> SortingEngine:
        return self.engine
