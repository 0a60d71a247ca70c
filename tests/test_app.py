import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterator

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from datastore.documents import DocumentTable
from datastore.repositories import AlertRepository, ReadingRepository, ThresholdRepository
from services.aggregator import Aggregator
from services.monitor import MonitoringService, build_default_monitor
from settings import get_settings

OWNER = {"X-Owner-Id": "farmer-1"}


@pytest.fixture
def api_client(tmp_path, monkeypatch) -> Iterator[TestClient]:
    monitors: Dict[str, MonitoringService] = {}

    def build_test_monitor() -> MonitoringService:
        monitor = monitors.get("default")
        if monitor is None:
            monitor = MonitoringService(
                readings=ReadingRepository(DocumentTable("sensor_data", tmp_path / "sensor_data.json")),
                alerts=AlertRepository(DocumentTable("alerts", tmp_path / "alerts.json")),
                thresholds=ThresholdRepository(DocumentTable("alert_thresholds")),
                aggregator=Aggregator(),
            )
            monitors["default"] = monitor
        return monitor

    build_test_monitor.cache_clear = monitors.clear  # type: ignore[attr-defined]

    monkeypatch.setattr("app.main.build_default_monitor", build_test_monitor)
    monkeypatch.setattr("app.api.build_default_monitor", build_test_monitor)

    app = create_app()
    with TestClient(app) as client:
        yield client

    monitors.clear()


def _iso(minutes_ago: int) -> str:
    return (datetime.now(timezone.utc) - timedelta(minutes=minutes_ago)).isoformat()


def _post_reading(client: TestClient, sensor_type: str, value: float, minutes_ago: int, **extra) -> dict:
    payload = {
        "sensor_type": sensor_type,
        "value": value,
        "location": extra.pop("location", "Zone Nord"),
        "timestamp": _iso(minutes_ago),
    }
    response = client.post("/readings", json=payload, headers=extra.pop("headers", OWNER))
    assert response.status_code == 201
    return response.json()


def test_lifespan_clears_monitor_cache(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("AGRILINK_DATA_DIR", str(tmp_path))
    get_settings.cache_clear()
    build_default_monitor.cache_clear()
    try:
        app = create_app()
        with TestClient(app):
            monitor_during = build_default_monitor()

        monitor_after = build_default_monitor()
        assert monitor_after is not monitor_during
    finally:
        build_default_monitor.cache_clear()
        get_settings.cache_clear()


def test_health(api_client: TestClient) -> None:
    assert api_client.get("/health").json() == {"status": "ok"}
    assert api_client.get("/").status_code == 200


def test_ingest_then_summarize(api_client: TestClient) -> None:
    _post_reading(api_client, "temperature", 20.04, 20)
    _post_reading(api_client, "temperature", 23.37, 10)

    response = api_client.get("/summary", params={"period": "day"}, headers=OWNER)

    assert response.status_code == 200
    body = response.json()
    assert body["summaries"]["temperature"] == {"value": 23.37, "trend": 3.3}
    assert body["summaries"]["humidity"] == {"value": 68.0, "trend": 0.0}
    assert body["unread_alerts"] == 0
    assert body["locations"] == ["Zone Nord"]


def test_ingest_out_of_range_creates_alert(api_client: TestClient) -> None:
    created = _post_reading(api_client, "water", 12.0, 5, location="Zone Sud")

    assert len(created["alerts"]) == 1
    assert created["alerts"][0]["severity"] == "high"
    assert created["reading"]["unit"] == "%"

    alerts = api_client.get("/alerts", params={"view": "unread"}, headers=OWNER).json()
    assert alerts["unread_count"] == 1
    assert alerts["alerts"][0]["location"] == "Zone Sud"


def test_reading_validation(api_client: TestClient) -> None:
    response = api_client.post(
        "/readings",
        json={"sensor_type": "wind", "value": 3, "location": "Zone Nord"},
        headers=OWNER,
    )

    assert response.status_code == 422


def test_readings_filters_and_order(api_client: TestClient) -> None:
    _post_reading(api_client, "humidity", 50.0, 30, location="Zone Est")
    _post_reading(api_client, "humidity", 52.0, 20, location="Zone Nord")
    _post_reading(api_client, "water", 60.0, 10, location="Zone Nord")

    filtered = api_client.get(
        "/readings", params={"sensor_type": "humidity", "order": "desc"}, headers=OWNER
    ).json()
    by_location = api_client.get("/readings", params={"location": "Zone Nord"}, headers=OWNER).json()

    assert [r["value"] for r in filtered["readings"]] == [52.0, 50.0]
    assert [r["value"] for r in by_location["readings"]] == [52.0, 60.0]
    assert api_client.get("/readings/locations", headers=OWNER).json() == ["Zone Est", "Zone Nord"]


def test_custom_period_without_start_is_bad_request(api_client: TestClient) -> None:
    response = api_client.get("/readings", params={"period": "custom"}, headers=OWNER)

    assert response.status_code == 400
    assert "start" in response.json()["detail"]


def test_unknown_period_is_rejected(api_client: TestClient) -> None:
    response = api_client.get("/summary", params={"period": "year"}, headers=OWNER)

    assert response.status_code == 422


def test_export_csv_download(api_client: TestClient) -> None:
    _post_reading(api_client, "water", 85.0, 5, location="Zone Sud")

    response = api_client.get("/export", params={"format": "csv"}, headers=OWNER)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "attachment; filename=\"agrilink_data_" in response.headers["content-disposition"]
    lines = response.text.splitlines()
    assert lines[0] == "Type,Valeur,Unité,Emplacement,Date"
    assert lines[1].startswith("water,85,%,Zone Sud,")


def test_export_unknown_format(api_client: TestClient) -> None:
    response = api_client.get("/export", params={"format": "xml"}, headers=OWNER)

    assert response.status_code == 400


def test_alert_lifecycle(api_client: TestClient) -> None:
    seeded = api_client.post("/alerts/test", headers=OWNER)
    assert seeded.status_code == 201
    assert len(seeded.json()) == 3

    listing = api_client.get("/alerts", headers=OWNER).json()
    assert listing["unread_count"] == 3
    assert [a["sensor_type"] for a in listing["alerts"]] == ["temperature", "humidity", "water"]
    assert listing["alerts"][1]["age"] == "Il y a 1 heure"

    alert_id = listing["alerts"][0]["id"]
    first = api_client.put(f"/alerts/{alert_id}/read", headers=OWNER)
    second = api_client.put(f"/alerts/{alert_id}/read", headers=OWNER)

    assert first.status_code == 200
    assert second.status_code == 200
    assert second.json()["is_read"] is True
    high = api_client.get("/alerts", params={"view": "high"}, headers=OWNER).json()
    assert high["unread_count"] == 2
    assert len(high["alerts"]) == 2


def test_mark_missing_alert_returns_not_found(api_client: TestClient) -> None:
    missing_id = str(uuid.uuid4())

    response = api_client.put(f"/alerts/{missing_id}/read", headers=OWNER)

    assert response.status_code == 404
    assert missing_id in response.json()["detail"]


def test_manual_alert_and_bad_view(api_client: TestClient) -> None:
    response = api_client.post(
        "/alerts",
        json={"sensor_type": "humidity", "message": "Niveau d'humidité bas", "location": "Zone Est"},
        headers=OWNER,
    )

    assert response.status_code == 201
    assert response.json()["severity"] == "medium"
    assert api_client.get("/alerts", params={"view": "old"}, headers=OWNER).status_code == 400


def test_thresholds_round_trip(api_client: TestClient) -> None:
    defaults = api_client.get("/thresholds", headers=OWNER).json()
    assert defaults["thresholds"]["temperature"] == {"min": 15.0, "max": 30.0}

    updated = api_client.put(
        "/thresholds",
        json={"thresholds": {"temperature": {"min": 10, "max": 20}}},
        headers=OWNER,
    )
    assert updated.status_code == 200
    assert updated.json()["thresholds"]["temperature"] == {"min": 10.0, "max": 20.0}

    created = _post_reading(api_client, "temperature", 22.0, 1)
    assert len(created["alerts"]) == 1


def test_inverted_threshold_is_rejected(api_client: TestClient) -> None:
    response = api_client.put(
        "/thresholds",
        json={"thresholds": {"water": {"min": 90, "max": 10}}},
        headers=OWNER,
    )

    assert response.status_code == 422


def test_import_endpoint(api_client: TestClient) -> None:
    stamp = _iso(15)
    csv_content = f"type,value,unit,location,timestamp\nhumidity,61,%,Zone Ouest,{stamp}\nwind,1,,Zone Ouest,{stamp}\n"

    response = api_client.post(
        "/readings/import",
        files={"file": ("readings.csv", csv_content, "text/csv")},
        headers=OWNER,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "partial"
    assert body["imported_count"] == 1
    assert body["errors"] == [{"row_number": 3, "reason": "unknown sensor type"}]


def test_import_empty_file_returns_bad_request(api_client: TestClient) -> None:
    response = api_client.post(
        "/readings/import",
        files={"file": ("empty.csv", b"", "text/csv")},
        headers=OWNER,
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Uploaded file is empty."


def test_owners_are_isolated(api_client: TestClient) -> None:
    _post_reading(api_client, "water", 50.0, 5)

    other = api_client.get("/readings", headers={"X-Owner-Id": "farmer-2"}).json()

    assert other["readings"] == []


def test_missing_owner_uses_demo_account_when_enabled(api_client: TestClient) -> None:
    _post_reading(api_client, "water", 50.0, 5, headers={})

    demo = api_client.get("/readings", headers={"X-Owner-Id": "demo-user-id"}).json()

    assert len(demo["readings"]) == 1


def test_missing_owner_rejected_when_demo_disabled(api_client: TestClient, monkeypatch) -> None:
    monkeypatch.setenv("AGRILINK_ALLOW_DEMO_OWNER", "false")
    get_settings.cache_clear()
    try:
        response = api_client.get("/readings")
    finally:
        get_settings.cache_clear()

    assert response.status_code == 401
