"""Resolution of named reporting periods into concrete time windows."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Optional, Union

from dateutil.relativedelta import relativedelta

from models.records import TimeWindow
from services.timestamps import normalize_timestamp, parse_iso_timestamp, utcnow

PERIODS = ("day", "week", "month", "custom")

BoundInput = Union[str, date, datetime, None]


class InvalidFilter(ValueError):
    """Raised when filter criteria cannot be turned into a query."""


def _parse_bound(value: BoundInput, name: str) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, (date, datetime)):
        return normalize_timestamp(value)
    if isinstance(value, str):
        if not value.strip():
            return None
        try:
            return parse_iso_timestamp(value)
        except ValueError as exc:
            raise InvalidFilter(f"Invalid {name} date: {value!r}.") from exc
    raise InvalidFilter(f"Unsupported {name} date: {value!r}.")


def resolve_window(
    period: str,
    explicit_start: BoundInput = None,
    explicit_end: BoundInput = None,
    now: Optional[datetime] = None,
) -> TimeWindow:
    """Turn ``day|week|month|custom`` into a ``TimeWindow``.

    A custom end date covers the whole calendar day, so one day is added to
    it. Without an explicit end, a custom window ends at ``now``.
    """
    current = normalize_timestamp(now) if now is not None else utcnow()

    if period == "day":
        return TimeWindow(start=current - timedelta(days=1), end=current, resolved_at=current)
    if period == "week":
        return TimeWindow(start=current - timedelta(weeks=1), end=current, resolved_at=current)
    if period == "month":
        return TimeWindow(start=current - relativedelta(months=1), end=current, resolved_at=current)
    if period == "custom":
        start = _parse_bound(explicit_start, "start")
        if start is None:
            raise InvalidFilter("A custom period requires a start date.")
        end = _parse_bound(explicit_end, "end")
        end = end + timedelta(days=1) if end is not None else current
        return TimeWindow(start=start, end=end, resolved_at=current)

    raise InvalidFilter(
        f"Unknown period {period!r}; expected one of {', '.join(PERIODS)}."
    )
