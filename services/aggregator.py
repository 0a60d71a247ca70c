"""Trend summaries and threshold evaluation for sensor readings."""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional

from models.records import (
    AlertEvent,
    AlertThreshold,
    SensorReading,
    Severity,
    TrendSummary,
)
from services.readings import sort_readings
from services.timestamps import utcnow

logger = logging.getLogger(__name__)

SENSOR_LABELS: Dict[str, str] = {
    "humidity": "Humidité",
    "temperature": "Température",
    "water": "Niveau d'eau",
}


def round_trend(delta: float) -> float:
    """Round to one decimal, halves going up (``0.25 -> 0.3``, ``-0.25 -> -0.2``)."""
    return math.floor(delta * 10 + 0.5) / 10


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


class Aggregator:
    """Pure aggregation component that can be unit tested in isolation."""

    def summarize(
        self,
        filtered: Iterable[SensorReading],
        sensor_types: Iterable[str],
        fallbacks: Optional[Mapping[str, float]] = None,
    ) -> Dict[str, TrendSummary]:
        fallbacks = fallbacks or {}
        newest_first = sort_readings(filtered, descending=True)
        summaries: Dict[str, TrendSummary] = {}

        for sensor_type in sensor_types:
            of_type = [r for r in newest_first if r.sensor_type == sensor_type]
            if not of_type:
                summaries[sensor_type] = TrendSummary(value=fallbacks.get(sensor_type), trend=0.0)
            elif len(of_type) == 1:
                summaries[sensor_type] = TrendSummary(value=of_type[0].value, trend=0.0)
            else:
                latest, previous = of_type[0], of_type[1]
                summaries[sensor_type] = TrendSummary(
                    value=latest.value,
                    trend=round_trend(latest.value - previous.value),
                )

        return summaries

    def latest_per_type(self, filtered: Iterable[SensorReading]) -> Dict[str, SensorReading]:
        latest: Dict[str, SensorReading] = {}
        for reading in sort_readings(filtered, descending=True):
            latest.setdefault(reading.sensor_type, reading)
        return latest

    def evaluate_thresholds(
        self,
        latest_per_type: Mapping[str, SensorReading],
        thresholds: Mapping[str, AlertThreshold],
        now: Optional[datetime] = None,
    ) -> List[AlertEvent]:
        """Emit a high-severity alert for every latest value outside its band."""
        events: List[AlertEvent] = []

        for sensor_type, reading in latest_per_type.items():
            threshold = thresholds.get(sensor_type)
            if threshold is None or threshold.contains(reading.value):
                continue

            label = SENSOR_LABELS.get(sensor_type, sensor_type)
            value = _format_number(reading.value)
            if reading.value < threshold.min:
                message = f"{label} sous le seuil minimal ({value} < {_format_number(threshold.min)})"
            else:
                message = f"{label} au-dessus du seuil maximal ({value} > {_format_number(threshold.max)})"

            events.append(
                AlertEvent(
                    sensor_type=sensor_type,
                    severity=Severity.high.value,
                    message=message,
                    location=reading.location,
                    timestamp=reading.timestamp if reading.timestamp is not None else (now or utcnow()),
                    owner_id=reading.owner_id,
                )
            )
            logger.info(
                "Threshold exceeded",
                extra={
                    "owner_id": reading.owner_id,
                    "sensor_type": sensor_type,
                    "location": reading.location,
                },
            )

        return events
