"""Typed access to the document tables, scoped to one owner per call."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, List, Optional

from datastore.documents import DocumentTable, build_default_table
from models.records import AlertEvent, AlertThreshold, SensorReading
from services.timestamps import to_seconds_wrapper
from settings import get_settings

logger = logging.getLogger(__name__)


def _encode_timestamp(value):
    if isinstance(value, datetime):
        return to_seconds_wrapper(value)
    return value


class ReadingRepository:

    def __init__(self, table: DocumentTable) -> None:
        self.table = table

    def list_for_owner(self, owner_id: str, sensor_type: Optional[str] = None) -> List[SensorReading]:
        """Fetch an owner's readings, optionally pre-filtered by type at the source.

        Documents whose value is missing or not numeric are skipped with a
        warning so the rest of the batch still loads.
        """
        conditions = {"userId": owner_id}
        if sensor_type is not None:
            conditions["type"] = sensor_type

        readings: List[SensorReading] = []
        for doc_id, document in self.table.query(**conditions):
            try:
                readings.append(SensorReading.from_document(document, doc_id=doc_id))
            except (TypeError, ValueError) as exc:
                logger.warning(
                    "Skipped malformed reading",
                    extra={"owner_id": owner_id, "document_id": doc_id, "reason": str(exc)},
                )
        return readings

    def add(self, reading: SensorReading) -> SensorReading:
        doc_id = self.table.add_item(
            {
                "type": reading.sensor_type,
                "value": reading.value,
                "unit": reading.unit,
                "location": reading.location,
                "timestamp": _encode_timestamp(reading.timestamp),
                "userId": reading.owner_id,
            }
        )
        return SensorReading(
            id=doc_id,
            sensor_type=reading.sensor_type,
            value=reading.value,
            unit=reading.unit,
            location=reading.location,
            timestamp=reading.timestamp,
            owner_id=reading.owner_id,
        )


class AlertRepository:

    def __init__(self, table: DocumentTable) -> None:
        self.table = table

    def list_for_owner(self, owner_id: str) -> List[AlertEvent]:
        return [
            AlertEvent.from_document(document, doc_id=doc_id)
            for doc_id, document in self.table.query(userId=owner_id)
        ]

    def get(self, alert_id: str) -> Optional[AlertEvent]:
        document = self.table.get_item(alert_id)
        if document is None:
            return None
        return AlertEvent.from_document(document, doc_id=alert_id)

    def add(self, alert: AlertEvent) -> str:
        return self.table.add_item(
            {
                "type": alert.sensor_type,
                "severity": alert.severity,
                "message": alert.message,
                "location": alert.location,
                "timestamp": _encode_timestamp(alert.timestamp),
                "isRead": alert.is_read,
                "userId": alert.owner_id,
            }
        )

    def mark_read(self, alert_id: str) -> AlertEvent:
        document = self.table.update_item(alert_id, {"isRead": True})
        return AlertEvent.from_document(document, doc_id=alert_id)


class ThresholdRepository:
    """Per-owner threshold settings, one document per owner."""

    def __init__(self, table: DocumentTable) -> None:
        self.table = table

    def get(self, owner_id: str) -> Dict[str, AlertThreshold]:
        document = self.table.get_item(owner_id) or {}
        return {
            sensor_type: AlertThreshold(min=float(band["min"]), max=float(band["max"]))
            for sensor_type, band in document.items()
            if isinstance(band, dict) and "min" in band and "max" in band
        }

    def put(self, owner_id: str, thresholds: Dict[str, AlertThreshold]) -> None:
        self.table.put_item(
            owner_id,
            {
                sensor_type: {"min": band.min, "max": band.max}
                for sensor_type, band in thresholds.items()
            },
        )


def build_default_repositories() -> tuple[ReadingRepository, AlertRepository, ThresholdRepository]:
    settings = get_settings()
    return (
        ReadingRepository(build_default_table(settings.readings_table)),
        AlertRepository(build_default_table(settings.alerts_table)),
        ThresholdRepository(build_default_table(settings.thresholds_table)),
    )
