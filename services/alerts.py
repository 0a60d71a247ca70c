"""Alert listing, creation and the one-way read transition."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from datastore.repositories import AlertRepository
from models.records import AlertEvent, Severity
from services.timestamps import normalize_timestamp, utcnow
from services.window import InvalidFilter

logger = logging.getLogger(__name__)

ALERT_VIEWS = ("all", "unread", "high")


class AlertService:

    def __init__(self, repository: AlertRepository) -> None:
        self.repository = repository

    def list_alerts(
        self,
        owner_id: str,
        view: str = "all",
        now: Optional[datetime] = None,
    ) -> List[AlertEvent]:
        """Return the owner's alerts, most recent first."""
        if view not in ALERT_VIEWS:
            raise InvalidFilter(
                f"Unknown alert view {view!r}; expected one of {', '.join(ALERT_VIEWS)}."
            )

        current = now if now is not None else utcnow()
        alerts = [
            replace(alert, timestamp=normalize_timestamp(alert.timestamp, now=current))
            for alert in self.repository.list_for_owner(owner_id)
        ]
        if view == "unread":
            alerts = [alert for alert in alerts if not alert.is_read]
        elif view == "high":
            alerts = [alert for alert in alerts if alert.severity == Severity.high.value]

        alerts.sort(key=lambda alert: alert.timestamp, reverse=True)
        return alerts

    def unread_count(self, owner_id: str) -> int:
        # Documents written without an isRead field count as unread.
        return sum(1 for alert in self.repository.list_for_owner(owner_id) if not alert.is_read)

    def create_alert(
        self,
        owner_id: str,
        sensor_type: str,
        message: str,
        severity: str,
        location: str,
        timestamp: Optional[datetime] = None,
    ) -> AlertEvent:
        alert = AlertEvent(
            sensor_type=sensor_type,
            severity=severity,
            message=message,
            location=location,
            timestamp=timestamp if timestamp is not None else utcnow(),
            owner_id=owner_id,
        )
        return self.save(alert)

    def save(self, alert: AlertEvent) -> AlertEvent:
        alert_id = self.repository.add(alert)
        logger.info(
            "Alert created",
            extra={
                "owner_id": alert.owner_id,
                "alert_id": alert_id,
                "sensor_type": alert.sensor_type,
                "location": alert.location,
            },
        )
        return replace(alert, id=alert_id)

    def save_all(self, alerts: Iterable[AlertEvent]) -> List[AlertEvent]:
        return [self.save(alert) for alert in alerts]

    def mark_read(self, owner_id: str, alert_id: str) -> AlertEvent:
        """Mark an alert read. Repeating the call on a read alert is a no-op."""
        alert = self.repository.get(alert_id)
        if alert is None or alert.owner_id != owner_id:
            raise KeyError(f"Alert {alert_id!r} not found.")
        if alert.is_read:
            return alert

        updated = self.repository.mark_read(alert_id)
        logger.info("Alert marked read", extra={"owner_id": owner_id, "alert_id": alert_id})
        return updated

    def create_test_alerts(self, owner_id: str, now: Optional[datetime] = None) -> List[AlertEvent]:
        """Seed the demo alerts shown on a fresh dashboard."""
        current = now if now is not None else utcnow()
        samples = [
            AlertEvent(
                sensor_type="temperature",
                severity=Severity.high.value,
                message="Température élevée détectée",
                location="Zone Nord",
                timestamp=current,
                owner_id=owner_id,
            ),
            AlertEvent(
                sensor_type="humidity",
                severity=Severity.medium.value,
                message="Niveau d'humidité bas",
                location="Zone Est",
                timestamp=current - timedelta(hours=1),
                owner_id=owner_id,
            ),
            AlertEvent(
                sensor_type="water",
                severity=Severity.high.value,
                message="Niveau d'eau critique",
                location="Zone Sud",
                timestamp=current - timedelta(hours=2),
                owner_id=owner_id,
            ),
        ]
        return self.save_all(samples)
