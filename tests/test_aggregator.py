"""Unit tests for the aggregation logic."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from models.records import DEFAULT_THRESHOLDS, SENSOR_TYPES, AlertThreshold, SensorReading, TrendSummary
from services.aggregator import Aggregator, round_trend

T0 = datetime(2025, 1, 1, 8, 0, tzinfo=timezone.utc)


def _reading(sensor_type: str, value: float, minutes: int, location: str = "Zone Nord") -> SensorReading:
    """Helper to build deterministic sensor readings."""

    return SensorReading(
        sensor_type=sensor_type,
        value=value,
        unit="°C",
        location=location,
        timestamp=T0 + timedelta(minutes=minutes),
        owner_id="owner-1",
    )


def test_summarize_empty_readings_uses_fallbacks() -> None:
    aggregator = Aggregator()

    summaries = aggregator.summarize([], SENSOR_TYPES, {"humidity": 68.0, "temperature": 24.0})

    assert summaries["humidity"] == TrendSummary(value=68.0, trend=0.0)
    assert summaries["temperature"] == TrendSummary(value=24.0, trend=0.0)
    assert summaries["water"] == TrendSummary(value=None, trend=0.0)


def test_summarize_single_reading_has_no_trend() -> None:
    aggregator = Aggregator()

    summaries = aggregator.summarize([_reading("water", 85.0, 0)], ["water"], {"water": 10.0})

    assert summaries["water"] == TrendSummary(value=85.0, trend=0.0)


def test_summarize_uses_two_most_recent_readings() -> None:
    aggregator = Aggregator()
    readings = [
        _reading("temperature", 18.0, 0),
        _reading("temperature", 20.04, 10),
        _reading("temperature", 23.37, 20),
        _reading("humidity", 50.0, 30),
    ]

    summaries = aggregator.summarize(readings, ["temperature"], {})

    assert summaries["temperature"].value == 23.37
    assert summaries["temperature"].trend == 3.3


def test_summarize_orders_input_by_timestamp() -> None:
    aggregator = Aggregator()
    readings = [_reading("temperature", 23.0, 10), _reading("temperature", 20.0, 0)]

    summaries = aggregator.summarize(readings, ["temperature"], {})

    assert summaries["temperature"] == TrendSummary(value=23.0, trend=3.0)


@pytest.mark.parametrize(
    ("delta", "expected"),
    [(3.33, 3.3), (0.25, 0.3), (-0.25, -0.2), (-1.5, -1.5), (0.04, 0.0)],
)
def test_round_trend_rounds_half_up(delta: float, expected: float) -> None:
    assert round_trend(delta) == expected


def test_latest_per_type() -> None:
    aggregator = Aggregator()
    readings = [
        _reading("water", 40.0, 5),
        _reading("water", 45.0, 15),
        _reading("humidity", 55.0, 1),
    ]

    latest = aggregator.latest_per_type(readings)

    assert latest["water"].value == 45.0
    assert latest["humidity"].value == 55.0
    assert "temperature" not in latest


def test_evaluate_thresholds_flags_only_strict_excursions() -> None:
    aggregator = Aggregator()
    latest = {
        "temperature": _reading("temperature", 31.5, 0, location="Serre 2"),
        "humidity": _reading("humidity", 80.0, 0),
        "water": _reading("water", 29.9, 0, location="Zone Sud"),
    }

    events = aggregator.evaluate_thresholds(latest, DEFAULT_THRESHOLDS)

    by_type = {event.sensor_type: event for event in events}
    assert set(by_type) == {"temperature", "water"}
    assert all(event.severity == "high" for event in events)
    assert all(event.is_read is False for event in events)
    assert by_type["temperature"].location == "Serre 2"
    assert by_type["temperature"].owner_id == "owner-1"
    assert "au-dessus" in by_type["temperature"].message
    assert "31.5 > 30" in by_type["temperature"].message
    assert "sous le seuil" in by_type["water"].message
    assert by_type["water"].timestamp == T0


def test_evaluate_thresholds_skips_types_without_threshold() -> None:
    aggregator = Aggregator()
    latest = {"humidity": _reading("humidity", 5.0, 0)}

    events = aggregator.evaluate_thresholds(latest, {"water": AlertThreshold(min=0, max=1)})

    assert events == []


def test_threshold_rejects_inverted_bounds() -> None:
    with pytest.raises(ValueError):
        AlertThreshold(min=10, max=5)
