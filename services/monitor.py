"""Orchestration of readings, summaries, exports, alerts and thresholds."""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from functools import lru_cache
from typing import Dict, List, Mapping, Optional, Tuple

from datastore.repositories import (
    AlertRepository,
    ReadingRepository,
    ThresholdRepository,
    build_default_repositories,
)
from models.records import (
    DEFAULT_FALLBACKS,
    DEFAULT_THRESHOLDS,
    DEFAULT_UNITS,
    SENSOR_TYPES,
    AlertEvent,
    AlertThreshold,
    FilterCriteria,
    SensorReading,
    TimeWindow,
    TrendSummary,
)
from services.aggregator import Aggregator
from services.alerts import AlertService
from services.exporter import EXPORT_FORMATS, export_filename, readings_to_csv, readings_to_json
from services.readings import collect_locations, filter_readings, normalize_reading
from services.timestamps import normalize_timestamp, parse_iso_timestamp, utcnow
from services.window import InvalidFilter, resolve_window

logger = logging.getLogger(__name__)


class ImportStatus(str, Enum):
    processed = "processed"
    partial = "partial"
    failed = "failed"


@dataclass
class ImportRowError:
    row_number: int
    reason: str


@dataclass
class ImportResult:
    status: ImportStatus
    imported_count: int = 0
    errors: List[ImportRowError] = field(default_factory=list)
    alerts: List[AlertEvent] = field(default_factory=list)


@dataclass
class ReadingQuery:
    window: TimeWindow
    readings: List[SensorReading]
    locations: List[str]


@dataclass
class DashboardSnapshot:
    window: TimeWindow
    summaries: Dict[str, TrendSummary]
    readings: List[SensorReading]
    locations: List[str]
    unread_alerts: int


class MonitoringService:
    """Coordinates the document repositories with the pure aggregation pipeline."""

    def __init__(
        self,
        readings: ReadingRepository,
        alerts: AlertRepository,
        thresholds: ThresholdRepository,
        aggregator: Aggregator,
        fallbacks: Optional[Mapping[str, float]] = None,
    ) -> None:
        self.readings = readings
        self.thresholds = thresholds
        self.aggregator = aggregator
        self.alert_service = AlertService(alerts)
        self.fallbacks = dict(DEFAULT_FALLBACKS if fallbacks is None else fallbacks)

    def query_readings(
        self,
        owner_id: str,
        period: str = "day",
        start: Optional[str] = None,
        end: Optional[str] = None,
        sensor_type: Optional[str] = None,
        location: Optional[str] = None,
        descending: bool = False,
        now: Optional[datetime] = None,
    ) -> ReadingQuery:
        current = now if now is not None else utcnow()
        window = resolve_window(period, start, end, now=current)
        snapshot = self.readings.list_for_owner(owner_id, sensor_type=sensor_type)
        criteria = FilterCriteria(window=window, sensor_type=sensor_type, location=location)
        selected = filter_readings(snapshot, criteria, now=current, descending=descending)
        logger.info(
            "Readings filtered",
            extra={
                "owner_id": owner_id,
                "period": period,
                "sensor_type": sensor_type,
                "location": location,
                "reading_count": len(selected),
            },
        )
        return ReadingQuery(
            window=window,
            readings=selected,
            locations=sorted(collect_locations(snapshot)),
        )

    def locations(self, owner_id: str) -> List[str]:
        return sorted(collect_locations(self.readings.list_for_owner(owner_id)))

    def dashboard(
        self,
        owner_id: str,
        period: str = "day",
        start: Optional[str] = None,
        end: Optional[str] = None,
        sensor_type: Optional[str] = None,
        location: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> DashboardSnapshot:
        result = self.query_readings(
            owner_id,
            period=period,
            start=start,
            end=end,
            sensor_type=sensor_type,
            location=location,
            now=now,
        )
        summaries = self.aggregator.summarize(result.readings, SENSOR_TYPES, self.fallbacks)
        return DashboardSnapshot(
            window=result.window,
            summaries=summaries,
            readings=result.readings,
            locations=result.locations,
            unread_alerts=self.alert_service.unread_count(owner_id),
        )

    def export(
        self,
        owner_id: str,
        fmt: str = "csv",
        period: str = "day",
        start: Optional[str] = None,
        end: Optional[str] = None,
        sensor_type: Optional[str] = None,
        location: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Tuple[str, str, str]:
        """Return ``(filename, media_type, body)`` for the filtered readings."""
        if fmt not in EXPORT_FORMATS:
            raise InvalidFilter(
                f"Unknown export format {fmt!r}; expected one of {', '.join(EXPORT_FORMATS)}."
            )
        current = now if now is not None else utcnow()
        result = self.query_readings(
            owner_id,
            period=period,
            start=start,
            end=end,
            sensor_type=sensor_type,
            location=location,
            now=current,
        )
        body = readings_to_csv(result.readings) if fmt == "csv" else readings_to_json(result.readings)
        return export_filename(fmt, current), EXPORT_FORMATS[fmt], body

    def ingest_reading(
        self,
        owner_id: str,
        sensor_type: str,
        value: float,
        location: str,
        unit: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> Tuple[SensorReading, List[AlertEvent]]:
        """Store one reading and raise alerts for any threshold it crosses."""
        reading = SensorReading(
            sensor_type=sensor_type,
            value=value,
            unit=unit or DEFAULT_UNITS.get(sensor_type, ""),
            location=location,
            timestamp=normalize_timestamp(timestamp) if timestamp is not None else utcnow(),
            owner_id=owner_id,
        )
        stored = self.readings.add(reading)
        alerts = self._evaluate(owner_id, {stored.sensor_type: stored})
        return stored, alerts

    def import_csv(self, owner_id: str, contents: bytes | str) -> ImportResult:
        """Bulk-load readings from ``type,value,unit,location,timestamp`` rows."""
        if isinstance(contents, bytes):
            contents = contents.decode("utf-8-sig")
        if not contents.strip():
            raise ValueError("Uploaded file is empty.")

        reader = csv.DictReader(io.StringIO(contents))
        if not reader.fieldnames:
            raise ValueError("CSV file is missing a header row.")

        normalized = {name.lower().strip(): name for name in reader.fieldnames}
        required = {"type", "value", "location", "timestamp"}
        missing = sorted(required - normalized.keys())
        if missing:
            return ImportResult(
                status=ImportStatus.failed,
                errors=[
                    ImportRowError(
                        row_number=1,
                        reason=f"CSV missing required columns: {', '.join(missing)}",
                    )
                ],
            )

        errors: List[ImportRowError] = []
        readings: List[SensorReading] = []
        for row_number, row in enumerate(reader, start=2):
            type_raw = (row.get(normalized["type"]) or "").strip()
            value_raw = (row.get(normalized["value"]) or "").strip()
            location_raw = (row.get(normalized["location"]) or "").strip()
            timestamp_raw = (row.get(normalized["timestamp"]) or "").strip()
            unit_raw = (row.get(normalized["unit"]) or "").strip() if "unit" in normalized else ""

            if not type_raw:
                errors.append(ImportRowError(row_number=row_number, reason="missing type"))
                continue
            if type_raw not in SENSOR_TYPES:
                errors.append(ImportRowError(row_number=row_number, reason="unknown sensor type"))
                continue
            if not value_raw:
                errors.append(ImportRowError(row_number=row_number, reason="missing value"))
                continue
            try:
                value = float(value_raw)
            except ValueError:
                errors.append(ImportRowError(row_number=row_number, reason="invalid numeric value"))
                continue
            if not location_raw:
                errors.append(ImportRowError(row_number=row_number, reason="missing location"))
                continue
            if not timestamp_raw:
                errors.append(ImportRowError(row_number=row_number, reason="missing timestamp"))
                continue
            try:
                timestamp = parse_iso_timestamp(timestamp_raw)
            except ValueError:
                errors.append(ImportRowError(row_number=row_number, reason="invalid timestamp"))
                continue

            readings.append(
                self.readings.add(
                    SensorReading(
                        sensor_type=type_raw,
                        value=value,
                        unit=unit_raw or DEFAULT_UNITS[type_raw],
                        location=location_raw,
                        timestamp=timestamp,
                        owner_id=owner_id,
                    )
                )
            )

        for error in errors:
            logger.warning(
                "Skipped import row",
                extra={"owner_id": owner_id, "row_number": error.row_number, "reason": error.reason},
            )

        if not readings and errors:
            status = ImportStatus.failed
        elif errors:
            status = ImportStatus.partial
        else:
            status = ImportStatus.processed

        alerts = self._evaluate(owner_id, self.aggregator.latest_per_type(readings))
        logger.info(
            "Readings imported",
            extra={
                "owner_id": owner_id,
                "status": status.value,
                "row_count": len(readings),
                "error_count": len(errors),
                "alert_count": len(alerts),
            },
        )
        return ImportResult(
            status=status,
            imported_count=len(readings),
            errors=errors,
            alerts=alerts,
        )

    def get_thresholds(self, owner_id: str) -> Dict[str, AlertThreshold]:
        configured = self.thresholds.get(owner_id)
        return {**DEFAULT_THRESHOLDS, **configured}

    def set_thresholds(self, owner_id: str, thresholds: Mapping[str, AlertThreshold]) -> Dict[str, AlertThreshold]:
        unknown = sorted(set(thresholds) - set(SENSOR_TYPES))
        if unknown:
            raise ValueError(f"Unknown sensor types: {', '.join(unknown)}")
        merged = {**self.get_thresholds(owner_id), **thresholds}
        self.thresholds.put(owner_id, merged)
        return merged

    def _evaluate(self, owner_id: str, candidates: Mapping[str, SensorReading]) -> List[AlertEvent]:
        """Check thresholds for candidates that are still their type's newest stored reading.

        A backdated reading behind a newer one of the same type raises nothing.
        """
        if not candidates:
            return []
        current = utcnow()
        stored_latest = self.aggregator.latest_per_type(
            normalize_reading(reading, current)
            for reading in self.readings.list_for_owner(owner_id)
            if reading.sensor_type in candidates
        )

        latest: Dict[str, SensorReading] = {}
        for sensor_type, reading in candidates.items():
            normalized = normalize_reading(reading, current)
            newest = stored_latest.get(sensor_type)
            if newest is not None and newest.timestamp > normalized.timestamp:
                logger.debug(
                    "Backdated reading not evaluated",
                    extra={"owner_id": owner_id, "sensor_type": sensor_type},
                )
                continue
            latest[sensor_type] = normalized

        events = self.aggregator.evaluate_thresholds(
            latest, self.get_thresholds(owner_id), now=current
        )
        return self.alert_service.save_all(events)


@lru_cache
def build_default_monitor() -> MonitoringService:
    """Factory that wires the monitoring service with the default tables."""
    readings, alerts, thresholds = build_default_repositories()
    return MonitoringService(
        readings=readings,
        alerts=alerts,
        thresholds=thresholds,
        aggregator=Aggregator(),
    )
