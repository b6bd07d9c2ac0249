"""A data source over a static list of records."""

from __future__ import annotations

from typing import Dict, List, Mapping, Sequence

from .base import DataSource

DEFAULT_TIMESTAMP_FIELDS = {"lastAccessed": "lastAccessed"}


class InMemoryDataSource(DataSource):
    """Serves copies of `records`, normalized the same way the browser sources are.

    `timestamp_fields` maps a timestamp field to the prefix of the calendar
    fields derived from it; `{"savedDate": ""}` yields `weekNumber`,
    `monthYear` and `yearQuarter`. A record without the timestamp field is
    left without the derived fields.
    """

    def __init__(
        self,
        source_id: str,
        records: Sequence[dict] | None = None,
        schema: Dict[str, dict] | None = None,
        timestamp_fields: Mapping[str, str] | None = None,
    ):
        self.source_id = source_id
        self.records = list(records or [])
        self.schema = dict(schema or {})
        self.timestamp_fields = dict(DEFAULT_TIMESTAMP_FIELDS if timestamp_fields is None else timestamp_fields)

    def get_source_id(self) -> str:
        return self.source_id

    def get_schema(self) -> Dict[str, dict]:
        return self.schema

    async def get_data(self) -> List[dict]:
        return [self._normalize(record) for record in self.records]

    def _normalize(self, record: dict) -> dict:
        out = dict(record)
        if not out.get("domain") and out.get("url"):
            out["domain"] = self.extract_domain(out["url"])
        for field, prefix in self.timestamp_fields.items():
            if field in record:
                for key, value in self.calendar_fields(prefix, record[field]).items():
                    out.setdefault(key, value)
        return out
