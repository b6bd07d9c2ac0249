"""Source-agnostic record filtering.

Filters are `(record, schema) -> bool` predicates registered by name. The
active set is applied in registration order and behaves as a logical AND.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Dict, Iterable, List, Sequence, Tuple

from tabview.tab_policy import extract_domain, to_datetime

from .fields import extract_field_value

logger = logging.getLogger(__name__)

Predicate = Callable[[dict, Dict], bool]


def _match_all(record: dict, schema: Dict | None = None) -> bool:
    return True


class FilteringEngine:
    def __init__(self):
        self._filters: Dict[str, Predicate] = {}

    def add_filter(self, name: str, predicate: Predicate) -> None:
        self._filters[name] = predicate

    def remove_filter(self, name: str) -> None:
        self._filters.pop(name, None)

    def clear_filters(self) -> None:
        self._filters.clear()

    @property
    def active_filter_count(self) -> int:
        return len(self._filters)

    @property
    def active_filter_names(self) -> List[str]:
        return list(self._filters)

    def snapshot(self) -> Tuple[Tuple[str, Predicate], ...]:
        return tuple(self._filters.items())

    def apply_filters(self, records: Sequence[dict], schema: Dict | None = None) -> List[dict]:
        return apply_filters(records, self.snapshot(), schema)


def apply_filters(
    records: Sequence[dict],
    filters: Iterable[Tuple[str, Predicate]],
    schema: Dict | None = None,
) -> List[dict]:
    """Reduce `records` through every named predicate.

    A predicate that raises is skipped for this run and the error is logged;
    the surviving records keep their input order.
    """
    if not isinstance(records, (list, tuple)) or not records:
        return []
    schema = schema or {}

    filtered = list(records)
    for name, predicate in filters:
        try:
            filtered = [record for record in filtered if predicate(record, schema)]
        except Exception:
            logger.exception("Error applying filter '%s'; skipping it for this run", name)
    return filtered


def _as_list(values) -> list:
    if values is None:
        return []
    if isinstance(values, (list, tuple, set, frozenset)):
        return list(values)
    return [values]


def searchable_fields(schema: Dict | None) -> List[str]:
    return [field for field, config in (schema or {}).items() if (config or {}).get("searchable")]


class TextSearchFilter:
    """Multi-word text search across searchable fields.

    Every whitespace-separated token of the query must appear somewhere in the
    space-joined field values. An empty query matches everything.
    """

    def __init__(
        self,
        query: str = "",
        search_fields: Sequence[str] | None = None,
        exact_match: bool = False,
        case_sensitive: bool = False,
    ):
        self.case_sensitive = case_sensitive
        query = str(query or "").strip()
        self.query = query if case_sensitive else query.lower()
        self.search_fields = list(search_fields or [])
        self.exact_match = exact_match

    def create_filter(self) -> Predicate:
        if not self.query:
            return _match_all

        tokens = [token for token in re.split(r"\s+", self.query) if token]

        def predicate(record: dict, schema: Dict | None = None) -> bool:
            fields = self.search_fields or searchable_fields(schema)
            text = " ".join(self._field_text(record, field) for field in fields)
            if not self.case_sensitive:
                text = text.lower()
            if self.exact_match:
                return text == self.query
            return all(token in text for token in tokens)

        return predicate

    @staticmethod
    def _field_text(record: dict, field: str) -> str:
        value = extract_field_value(record, field)
        if value is None:
            return ""
        return str(value)


class CategoryFilter:
    def __init__(self, categories=None):
        self.categories = _as_list(categories)

    def create_filter(self) -> Predicate:
        if not self.categories:
            return _match_all
        allowed = set(self.categories)

        def predicate(record: dict, schema: Dict | None = None) -> bool:
            return record.get("category") in allowed

        return predicate


class DateRangeFilter:
    """Keep records whose `date_field` falls within [start, end].

    Records with a missing or unparseable date never match once a bound is set.
    """

    def __init__(self, date_field: str, start=None, end=None, inclusive: bool = True):
        self.date_field = date_field
        self.start = to_datetime(start) if start is not None else None
        self.end = to_datetime(end) if end is not None else None
        self.inclusive = inclusive

    def create_filter(self) -> Predicate:
        if self.start is None and self.end is None:
            return _match_all

        def predicate(record: dict, schema: Dict | None = None) -> bool:
            value = to_datetime(extract_field_value(record, self.date_field))
            if value is None:
                return False
            if self.start is not None:
                if value < self.start or (not self.inclusive and value == self.start):
                    return False
            if self.end is not None:
                if value > self.end or (not self.inclusive and value == self.end):
                    return False
            return True

        return predicate


class DomainFilter:
    """Substring domain match in either direction; `exclude` inverts it."""

    def __init__(self, domains=None, exclude: bool = False):
        self.domains = [str(d).strip().lower() for d in _as_list(domains) if str(d).strip()]
        self.exclude = exclude

    def create_filter(self) -> Predicate:
        if not self.domains:
            return _match_all

        def predicate(record: dict, schema: Dict | None = None) -> bool:
            domain = str(record.get("domain") or extract_domain(record.get("url") or "")).lower()
            matches = any(d in domain or domain in d for d in self.domains)
            return not matches if self.exclude else matches

        return predicate


class CustomFieldFilter:
    def __init__(self, field: str, value, compare_fn: Callable[[object, object], bool] | None = None):
        self.field = field
        self.value = value
        self.compare_fn = compare_fn or (lambda item_value, wanted: item_value == wanted)

    def create_filter(self) -> Predicate:
        def predicate(record: dict, schema: Dict | None = None) -> bool:
            return bool(self.compare_fn(extract_field_value(record, self.field), self.value))

        return predicate


class CompositeFilter:
    """Combine predicates or filter objects with AND / OR."""

    OPERATORS = {"AND", "OR"}

    def __init__(self, filters: Sequence | None = None, operator: str = "AND"):
        self.filters = list(filters or [])
        self.operator = str(operator or "AND").upper()
        if self.operator not in self.OPERATORS:
            raise ValueError(f"Unsupported composite operator '{operator}'")

    def create_filter(self) -> Predicate:
        if not self.filters:
            return _match_all
        predicates = [f.create_filter() if hasattr(f, "create_filter") else f for f in self.filters]
        combine = any if self.operator == "OR" else all

        def predicate(record: dict, schema: Dict | None = None) -> bool:
            return combine(p(record, schema) for p in predicates)

        return predicate


class FilterBuilder:
    """Fluent construction of a composite filter."""

    def __init__(self):
        self.filters: list = []

    def search(self, query: str, **options) -> "FilterBuilder":
        self.filters.append(TextSearchFilter(query, **options))
        return self

    def categories(self, categories) -> "FilterBuilder":
        self.filters.append(CategoryFilter(categories))
        return self

    def date_range(self, field: str, start=None, end=None, inclusive: bool = True) -> "FilterBuilder":
        self.filters.append(DateRangeFilter(field, start, end, inclusive=inclusive))
        return self

    def domains(self, domains, exclude: bool = False) -> "FilterBuilder":
        self.filters.append(DomainFilter(domains, exclude))
        return self

    def custom_field(self, field: str, value, compare_fn=None) -> "FilterBuilder":
        self.filters.append(CustomFieldFilter(field, value, compare_fn))
        return self

    def clear(self) -> "FilterBuilder":
        self.filters = []
        return self

    def build(self, operator: str = "AND") -> CompositeFilter:
        return CompositeFilter(self.filters, operator)
