"""Timestamp normalization for readings and alerts.

Documents arrive with timestamps in several encodings: native ``datetime``
objects, ``{"seconds": ..., "nanoseconds": ...}`` wrappers written by the
document store, epoch milliseconds, or ISO-8601 strings. Every comparison in
the pipeline happens on the value returned by :func:`normalize_timestamp`,
which is always a timezone-aware UTC ``datetime``.
"""

from __future__ import annotations

import logging
import math
from datetime import date, datetime, timedelta, timezone
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)

UNKNOWN_DATE_LABEL = "Date inconnue"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_iso_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 string into an aware UTC datetime.

    Raises ``ValueError`` for empty or malformed input.
    """
    candidate = value.strip()
    if not candidate:
        raise ValueError("Timestamp is empty.")

    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError as exc:
        raise ValueError("Invalid timestamp format") from exc

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)

    return parsed.astimezone(timezone.utc)


def _seconds_wrapper(value: Any) -> Optional[datetime]:
    if isinstance(value, Mapping):
        seconds = value.get("seconds", value.get("_seconds"))
        nanos = value.get("nanoseconds", value.get("_nanoseconds", 0)) or 0
    elif hasattr(value, "seconds"):
        seconds = getattr(value, "seconds")
        nanos = getattr(value, "nanoseconds", 0) or 0
    else:
        return None
    if seconds is None:
        return None
    return datetime.fromtimestamp(float(seconds), tz=timezone.utc) + timedelta(
        microseconds=float(nanos) / 1000
    )


def _resolve(value: Any) -> datetime:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, bool):
        raise TypeError("Booleans are not timestamps.")
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            raise ValueError("Timestamp is not finite.")
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    if isinstance(value, str):
        return parse_iso_timestamp(value)
    wrapped = _seconds_wrapper(value)
    if wrapped is not None:
        return wrapped
    raise TypeError(f"Unsupported timestamp encoding: {type(value).__name__}")


def normalize_timestamp(value: Any, now: Optional[datetime] = None) -> datetime:
    """Return ``value`` as an aware UTC datetime.

    Missing or unresolvable timestamps resolve to ``now`` instead of raising,
    so one bad document never aborts a batch.
    """
    try:
        return _resolve(value)
    except (TypeError, ValueError, OverflowError, OSError) as exc:
        fallback = now if now is not None else utcnow()
        logger.debug("Substituting current time for unreadable timestamp %r: %s", value, exc)
        return fallback


def to_seconds_wrapper(instant: datetime) -> dict[str, int]:
    """Encode an instant the way the document store writes timestamps."""
    instant = normalize_timestamp(instant)
    whole = math.floor(instant.timestamp())
    return {"seconds": whole, "nanoseconds": instant.microsecond * 1000}


def describe_age(value: Any, now: Optional[datetime] = None) -> str:
    """French relative label for alert lists, e.g. ``"Il y a 3 heures"``."""
    try:
        instant = _resolve(value)
    except (TypeError, ValueError, OverflowError, OSError):
        return UNKNOWN_DATE_LABEL

    reference = now if now is not None else utcnow()
    minutes = math.floor((reference - instant).total_seconds() / 60)

    if minutes < 1:
        return "À l'instant"
    if minutes < 60:
        return f"Il y a {minutes} minute{'s' if minutes > 1 else ''}"
    if minutes < 1440:
        hours = minutes // 60
        return f"Il y a {hours} heure{'s' if hours > 1 else ''}"
    days = minutes // 1440
    return f"Il y a {days} jour{'s' if days > 1 else ''}"
