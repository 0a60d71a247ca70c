"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional

DEMO_OWNER_ID = "demo-user-id"


class SensorType(str, Enum):
    """Closed set of sensor kinds reported by field devices."""

    humidity = "humidity"
    temperature = "temperature"
    water = "water"


class Severity(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


SENSOR_TYPES = tuple(member.value for member in SensorType)

DEFAULT_UNITS: Dict[str, str] = {
    SensorType.humidity.value: "%",
    SensorType.temperature.value: "°C",
    SensorType.water.value: "%",
}

# Values shown on the dashboard when a type has no reading in range.
DEFAULT_FALLBACKS: Dict[str, float] = {
    SensorType.humidity.value: 68.0,
    SensorType.temperature.value: 24.0,
    SensorType.water.value: 85.0,
}


@dataclass(slots=True)
class SensorReading:
    """A single sensor measurement.

    ``timestamp`` carries whatever encoding the store returned until the
    reading goes through ``services.timestamps.normalize_timestamp``.
    """

    sensor_type: str
    value: float
    unit: str
    location: str
    timestamp: Any
    owner_id: str = ""
    id: Optional[str] = None

    @classmethod
    def from_document(cls, document: Mapping[str, Any], doc_id: Optional[str] = None) -> "SensorReading":
        return cls(
            id=doc_id if doc_id is not None else document.get("id"),
            sensor_type=str(document.get("type", "")),
            value=float(document.get("value")),
            unit=str(document.get("unit", "")),
            location=str(document.get("location", "")),
            timestamp=document.get("timestamp"),
            owner_id=str(document.get("userId", "")),
        )


@dataclass(frozen=True, slots=True)
class AlertThreshold:
    """Acceptable ``[min, max]`` band for one sensor type."""

    min: float
    max: float

    def __post_init__(self) -> None:
        if self.min > self.max:
            raise ValueError(f"Threshold min {self.min} is greater than max {self.max}.")

    def contains(self, value: float) -> bool:
        return self.min <= value <= self.max


DEFAULT_THRESHOLDS: Dict[str, AlertThreshold] = {
    SensorType.temperature.value: AlertThreshold(min=15.0, max=30.0),
    SensorType.humidity.value: AlertThreshold(min=40.0, max=80.0),
    SensorType.water.value: AlertThreshold(min=30.0, max=90.0),
}


@dataclass(slots=True)
class AlertEvent:
    """An out-of-band condition raised for an owner."""

    sensor_type: str
    severity: str
    message: str
    location: str
    timestamp: Any
    owner_id: str
    is_read: bool = False
    id: Optional[str] = None

    @classmethod
    def from_document(cls, document: Mapping[str, Any], doc_id: Optional[str] = None) -> "AlertEvent":
        return cls(
            id=doc_id if doc_id is not None else document.get("id"),
            sensor_type=str(document.get("type", "")),
            severity=str(document.get("severity") or Severity.medium.value),
            message=str(document.get("message", "")),
            location=str(document.get("location", "")),
            timestamp=document.get("timestamp"),
            owner_id=str(document.get("userId", "")),
            is_read=bool(document.get("isRead", False)),
        )


@dataclass(frozen=True, slots=True)
class TrendSummary:
    """Latest value of a sensor type and its change since the previous reading."""

    value: Optional[float]
    trend: float = 0.0


@dataclass(frozen=True, slots=True)
class TimeWindow:
    """Instant range; a timestamp belongs to it when ``start < t <= end``.

    ``resolved_at`` is the instant the window was computed from. Filtering
    uses it as the fallback time for unreadable timestamps.
    """

    start: datetime
    end: datetime
    resolved_at: Optional[datetime] = field(default=None, compare=False)

    def contains(self, instant: datetime) -> bool:
        return self.start < instant <= self.end


@dataclass(frozen=True, slots=True)
class FilterCriteria:
    window: TimeWindow
    sensor_type: Optional[str] = None
    location: Optional[str] = None
