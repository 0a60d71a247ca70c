"""Normalization, filtering and ordering of raw sensor readings."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Iterable, List, Optional, Set

from models.records import FilterCriteria, SensorReading
from services.timestamps import normalize_timestamp, utcnow


def normalize_reading(reading: SensorReading, now: datetime) -> SensorReading:
    """Return a copy of ``reading`` whose timestamp is an aware UTC datetime."""
    return replace(reading, timestamp=normalize_timestamp(reading.timestamp, now=now))


def sort_readings(readings: Iterable[SensorReading], descending: bool = False) -> List[SensorReading]:
    """Order normalized readings chronologically, or most recent first."""
    return sorted(readings, key=lambda reading: reading.timestamp, reverse=descending)


def filter_readings(
    raw: Iterable[SensorReading],
    criteria: FilterCriteria,
    now: Optional[datetime] = None,
    descending: bool = False,
) -> List[SensorReading]:
    """Normalize ``raw`` and keep readings matching every criterion.

    Filters apply in order: sensor type, window (``start < t <= end``),
    location. Unreadable timestamps count as ``now`` rather than excluding
    the reading; without an explicit ``now`` that is the instant the window
    was resolved at.
    """
    if now is not None:
        current = now
    elif criteria.window.resolved_at is not None:
        current = criteria.window.resolved_at
    else:
        current = utcnow()
    selected: List[SensorReading] = []

    for reading in raw:
        if criteria.sensor_type is not None and reading.sensor_type != criteria.sensor_type:
            continue
        normalized = normalize_reading(reading, current)
        if not criteria.window.contains(normalized.timestamp):
            continue
        if criteria.location is not None and normalized.location != criteria.location:
            continue
        selected.append(normalized)

    return sort_readings(selected, descending=descending)


def collect_locations(raw: Iterable[SensorReading]) -> Set[str]:
    """All distinct location labels, ignoring any filter."""
    return {reading.location for reading in raw if reading.location}
