"""Calendar bucket derivation shared by every data source.

Timestamps from the browser are epoch milliseconds. Everything here works in
UTC so bucket fields do not depend on the machine that computed them.
"""

from __future__ import annotations

import math
from datetime import date, datetime, timezone
from typing import Dict


def to_datetime(value) -> datetime | None:
    """Parse a timestamp-ish value into an aware UTC datetime, or None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        return _from_epoch_ms(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return _from_epoch_ms(float(text))
        except ValueError:
            pass
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        return to_datetime(parsed)
    return None


def _from_epoch_ms(value: float) -> datetime | None:
    if math.isnan(value) or math.isinf(value):
        return None
    try:
        return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def week_number(dt: datetime) -> int:
    """Week of year; weeks start on Sunday and week 1 contains Jan 1."""
    jan1 = date(dt.year, 1, 1)
    jan1_weekday = (jan1.weekday() + 1) % 7  # Sunday == 0
    day_index = (dt.date() - jan1).days
    return math.ceil((day_index + jan1_weekday + 1) / 7)


def month_year(dt: datetime) -> str:
    return f"{dt.year:04d}-{dt.month:02d}"


def year_quarter(dt: datetime) -> str:
    return f"{dt.year:04d}-Q{math.ceil(dt.month / 3)}"


def calendar_fields(prefix: str, value) -> Dict[str, object]:
    """Derive `<prefix>WeekNumber`, `<prefix>MonthYear` and `<prefix>YearQuarter`.

    An empty prefix yields the bare `weekNumber` / `monthYear` / `yearQuarter`
    names used for the saved date.
    """
    dt = to_datetime(value)
    names = ("WeekNumber", "MonthYear", "YearQuarter")
    if prefix:
        keys = [prefix + name for name in names]
    else:
        keys = [name[0].lower() + name[1:] for name in names]

    if dt is None:
        return {key: None for key in keys}
    return dict(zip(keys, (week_number(dt), month_year(dt), year_quarter(dt))))


def epoch_ms(dt: datetime) -> int:
    return int(round(dt.timestamp() * 1000))


def now_ms() -> int:
    return epoch_ms(datetime.now(timezone.utc))
