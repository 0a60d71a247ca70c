from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer

_SEVERITY_COLORS = {
    "high": typer.colors.RED,
    "medium": typer.colors.YELLOW,
    "low": typer.colors.BLUE,
}


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _format_trend(trend: float) -> str:
    if trend > 0:
        return f"+{trend}"
    return str(trend)


def render_window(window: Dict[str, Any]) -> None:
    echo_key_values([("from", window.get("start")), ("to", window.get("end"))])


def render_summary(payload: Dict[str, Any]) -> None:
    echo_heading("Sensor Summary")
    render_window(payload.get("window") or {})
    typer.echo(f"unread_alerts: {payload.get('unread_alerts', 0)}")
    typer.echo()
    summaries = payload.get("summaries") or {}
    if not summaries:
        typer.echo("No sensor data available.")
        return
    for sensor_type, summary in summaries.items():
        value = summary.get("value")
        shown = "n/a" if value is None else value
        typer.echo(f"  - {sensor_type}: {shown} (trend {_format_trend(summary.get('trend', 0))})")


def render_readings(payload: Dict[str, Any]) -> None:
    echo_heading("Readings")
    render_window(payload.get("window") or {})
    readings: List[Dict[str, Any]] = payload.get("readings") or []
    typer.echo(f"count: {len(readings)}")
    for reading in readings:
        typer.echo(
            f"  - {reading.get('timestamp')} {reading.get('sensor_type')} "
            f"{reading.get('value')}{reading.get('unit', '')} @ {reading.get('location')}"
        )
    locations = payload.get("locations") or []
    if locations:
        typer.echo()
        typer.echo(f"locations: {', '.join(locations)}")


def render_alert(alert: Dict[str, Any]) -> None:
    severity = alert.get("severity", "medium")
    marker = " " if alert.get("is_read") else "*"
    typer.secho(
        f" {marker} [{severity}] {alert.get('message')} ({alert.get('location')}, {alert.get('age')})",
        fg=_SEVERITY_COLORS.get(severity),
    )
    typer.echo(f"      id={alert.get('id')}")


def render_alerts(payload: Dict[str, Any]) -> None:
    echo_heading("Alerts")
    typer.echo(f"unread: {payload.get('unread_count', 0)}")
    alerts = payload.get("alerts") or []
    if not alerts:
        typer.echo("No alerts.")
        return
    for alert in alerts:
        render_alert(alert)


def render_import(payload: Dict[str, Any]) -> None:
    echo_heading("Import Result")
    echo_key_values(
        [
            ("status", payload.get("status")),
            ("imported_count", payload.get("imported_count")),
        ]
    )

    errors = payload.get("errors") or []
    typer.echo()
    echo_heading("Errors")
    if errors:
        for error in errors:
            typer.echo(f"  - row {error.get('row_number')}: {error.get('reason')}")
    else:
        typer.echo("No errors recorded.")

    alerts = payload.get("alerts") or []
    if alerts:
        typer.echo()
        echo_heading("Alerts raised")
        for alert in alerts:
            render_alert(alert)


def render_thresholds(payload: Dict[str, Any]) -> None:
    echo_heading("Alert Thresholds")
    for sensor_type, band in (payload.get("thresholds") or {}).items():
        typer.echo(f"  - {sensor_type}: {band.get('min')} .. {band.get('max')}")
