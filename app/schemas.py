"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from models.records import (
    AlertEvent,
    AlertThreshold,
    SensorReading,
    SensorType,
    Severity,
    TimeWindow,
    TrendSummary,
)
from services.monitor import ImportStatus
from services.timestamps import describe_age


class WindowModel(BaseModel):
    """Resolved time window; readings satisfy ``start < timestamp <= end``."""

    start: datetime
    end: datetime

    @classmethod
    def from_window(cls, window: TimeWindow) -> "WindowModel":
        return cls(start=window.start, end=window.end)


class ReadingModel(BaseModel):
    id: Optional[str] = None
    sensor_type: str
    value: float
    unit: str
    location: str
    timestamp: datetime

    @classmethod
    def from_reading(cls, reading: SensorReading) -> "ReadingModel":
        return cls(
            id=reading.id,
            sensor_type=reading.sensor_type,
            value=reading.value,
            unit=reading.unit,
            location=reading.location,
            timestamp=reading.timestamp,
        )


class ReadingCreate(BaseModel):
    """Payload for ingesting a single reading."""

    sensor_type: SensorType
    value: float
    location: str = Field(..., min_length=1)
    unit: Optional[str] = None
    timestamp: Optional[datetime] = Field(
        default=None, description="Measurement instant; defaults to the time of ingestion."
    )


class ReadingListResponse(BaseModel):
    window: WindowModel
    readings: List[ReadingModel] = Field(default_factory=list)
    locations: List[str] = Field(default_factory=list)


class TrendModel(BaseModel):
    value: Optional[float] = None
    trend: float = 0.0

    @classmethod
    def from_summary(cls, summary: TrendSummary) -> "TrendModel":
        return cls(value=summary.value, trend=summary.trend)


class SummaryResponse(BaseModel):
    """Latest value and trend per sensor type for the dashboard widgets."""

    window: WindowModel
    summaries: Dict[str, TrendModel]
    locations: List[str] = Field(default_factory=list)
    unread_alerts: int = Field(..., ge=0)


class AlertModel(BaseModel):
    id: Optional[str] = None
    sensor_type: str
    severity: str
    message: str
    location: str
    timestamp: datetime
    is_read: bool = False
    age: Optional[str] = Field(default=None, description="Relative age label, e.g. 'Il y a 2 heures'.")

    @classmethod
    def from_alert(cls, alert: AlertEvent, now: Optional[datetime] = None) -> "AlertModel":
        return cls(
            id=alert.id,
            sensor_type=alert.sensor_type,
            severity=alert.severity,
            message=alert.message,
            location=alert.location,
            timestamp=alert.timestamp,
            is_read=alert.is_read,
            age=describe_age(alert.timestamp, now=now),
        )


class AlertCreate(BaseModel):
    """Manually injected alert."""

    sensor_type: SensorType
    message: str = Field(..., min_length=1)
    severity: Severity = Severity.medium
    location: str = Field(..., min_length=1)


class AlertListResponse(BaseModel):
    alerts: List[AlertModel] = Field(default_factory=list)
    unread_count: int = Field(..., ge=0)


class IngestResponse(BaseModel):
    reading: ReadingModel
    alerts: List[AlertModel] = Field(default_factory=list)


class ThresholdModel(BaseModel):
    min: float
    max: float

    @model_validator(mode="after")
    def _check_bounds(self) -> "ThresholdModel":
        if self.min > self.max:
            raise ValueError("min must be less than or equal to max")
        return self

    def to_threshold(self) -> AlertThreshold:
        return AlertThreshold(min=self.min, max=self.max)


class ThresholdsResponse(BaseModel):
    thresholds: Dict[str, ThresholdModel]

    @classmethod
    def from_thresholds(cls, thresholds: Dict[str, AlertThreshold]) -> "ThresholdsResponse":
        return cls(
            thresholds={
                sensor_type: ThresholdModel(min=band.min, max=band.max)
                for sensor_type, band in thresholds.items()
            }
        )


class ThresholdsUpdate(BaseModel):
    thresholds: Dict[SensorType, ThresholdModel]


class ImportRowErrorModel(BaseModel):
    """Details about a row that failed validation or parsing."""

    row_number: int = Field(..., ge=1)
    reason: str


class ImportResponse(BaseModel):
    status: ImportStatus
    imported_count: int = Field(..., ge=0)
    errors: List[ImportRowErrorModel] = Field(default_factory=list)
    alerts: List[AlertModel] = Field(default_factory=list)
