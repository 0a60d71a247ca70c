from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from datastore.documents import DocumentTable
from datastore.repositories import AlertRepository
from services.alerts import AlertService
from services.window import InvalidFilter

NOW = datetime(2025, 4, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture()
def service() -> AlertService:
    return AlertService(AlertRepository(DocumentTable(name="alerts")))


def test_test_alerts_are_listed_most_recent_first(service: AlertService) -> None:
    created = service.create_test_alerts("owner-1", now=NOW)

    alerts = service.list_alerts("owner-1", now=NOW)

    assert len(created) == 3
    assert all(alert.id for alert in created)
    assert [a.sensor_type for a in alerts] == ["temperature", "humidity", "water"]
    assert alerts[0].timestamp == NOW
    assert alerts[2].timestamp == NOW - timedelta(hours=2)
    assert service.unread_count("owner-1") == 3


def test_views_filter_unread_and_high(service: AlertService) -> None:
    created = service.create_test_alerts("owner-1", now=NOW)
    service.mark_read("owner-1", created[0].id)  # type: ignore[arg-type]

    unread = service.list_alerts("owner-1", view="unread", now=NOW)
    high = service.list_alerts("owner-1", view="high", now=NOW)

    assert [a.sensor_type for a in unread] == ["humidity", "water"]
    assert [a.sensor_type for a in high] == ["temperature", "water"]


def test_unknown_view_is_invalid(service: AlertService) -> None:
    with pytest.raises(InvalidFilter):
        service.list_alerts("owner-1", view="archived")


def test_mark_read_is_idempotent(service: AlertService) -> None:
    alert = service.create_alert("owner-1", "water", "Niveau d'eau critique", "high", "Zone Sud")

    first = service.mark_read("owner-1", alert.id)  # type: ignore[arg-type]
    second = service.mark_read("owner-1", alert.id)  # type: ignore[arg-type]

    assert first.is_read is True
    assert second.is_read is True
    assert service.unread_count("owner-1") == 0


def test_mark_read_unknown_or_foreign_alert(service: AlertService) -> None:
    alert = service.create_alert("owner-1", "water", "Niveau d'eau critique", "high", "Zone Sud")

    with pytest.raises(KeyError):
        service.mark_read("owner-1", "missing")
    with pytest.raises(KeyError):
        service.mark_read("owner-2", alert.id)  # type: ignore[arg-type]

    assert service.unread_count("owner-1") == 1


def test_alerts_are_scoped_to_owner(service: AlertService) -> None:
    service.create_test_alerts("owner-1", now=NOW)

    assert service.list_alerts("owner-2", now=NOW) == []
    assert service.unread_count("owner-2") == 0


def test_alert_without_timestamp_is_listed_as_now(service: AlertService) -> None:
    service.repository.table.add_item(
        {"type": "humidity", "message": "Niveau d'humidité bas", "location": "Zone Est", "userId": "owner-1"}
    )

    [alert] = service.list_alerts("owner-1", now=NOW)

    assert alert.timestamp == NOW
    assert alert.severity == "medium"
    assert alert.is_read is False
