"""Data source contract shared by every record provider."""

from __future__ import annotations

import abc
from datetime import datetime, timezone
from typing import Dict, List

from tabview.tab_policy import calendar_fields, extract_domain, month_year, to_datetime, week_number, year_quarter


class DataSource(abc.ABC):
    """A provider of normalized tab records.

    Implementations must derive `domain` from `url` and the calendar bucket
    fields for every timestamp they expose; grouping relies on both.
    """

    @abc.abstractmethod
    async def get_data(self) -> List[dict]:
        """Return normalized records; an empty list when there are none."""

    @abc.abstractmethod
    def get_schema(self) -> Dict[str, dict]:
        ...

    @abc.abstractmethod
    def get_source_id(self) -> str:
        ...

    async def is_available(self) -> bool:
        return True

    def get_metadata(self) -> Dict:
        return {
            "sourceId": self.get_source_id(),
            "schema": self.get_schema(),
            "lastUpdated": datetime.now(timezone.utc).isoformat(),
        }

    # Normalization helpers

    @staticmethod
    def extract_domain(url: str) -> str:
        return extract_domain(url)

    @staticmethod
    def week_number(value) -> int | None:
        dt = to_datetime(value)
        return week_number(dt) if dt is not None else None

    @staticmethod
    def month_year(value) -> str | None:
        dt = to_datetime(value)
        return month_year(dt) if dt is not None else None

    @staticmethod
    def year_quarter(value) -> str | None:
        dt = to_datetime(value)
        return year_quarter(dt) if dt is not None else None

    @staticmethod
    def calendar_fields(prefix: str, value) -> Dict[str, object]:
        return calendar_fields(prefix, value)
