"""CSV and JSON renderings of filtered readings."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Iterable, List

from models.records import SensorReading
from services.timestamps import normalize_timestamp

CSV_HEADER = "Type,Valeur,Unité,Emplacement,Date"

EXPORT_FORMATS = {
    "csv": "text/csv; charset=utf-8",
    "json": "application/json",
}


def format_value(value: float) -> str:
    """Render numbers the way the dashboard shows them (``85`` not ``85.0``)."""
    number = float(value)
    return str(int(number)) if number.is_integer() else repr(number)


def readings_to_csv(readings: Iterable[SensorReading]) -> str:
    # Fields are joined as-is; a comma inside a location shifts the columns.
    lines = [CSV_HEADER]
    for reading in readings:
        timestamp = normalize_timestamp(reading.timestamp)
        lines.append(
            ",".join(
                [
                    reading.sensor_type,
                    format_value(reading.value),
                    reading.unit,
                    reading.location,
                    timestamp.strftime("%d/%m/%Y %H:%M:%S"),
                ]
            )
        )
    return "\n".join(lines) + "\n"


def readings_to_json(readings: Iterable[SensorReading]) -> str:
    records: List[dict] = []
    for reading in readings:
        timestamp = normalize_timestamp(reading.timestamp)
        records.append(
            {
                "id": reading.id,
                "type": reading.sensor_type,
                "value": reading.value,
                "unit": reading.unit,
                "location": reading.location,
                "date": timestamp.strftime("%d/%m/%Y"),
                "time": timestamp.strftime("%H:%M:%S"),
            }
        )
    return json.dumps(records, indent=2, ensure_ascii=False)


def export_filename(fmt: str, now: datetime) -> str:
    return f"agrilink_data_{now.strftime('%Y%m%d')}.{fmt}"
