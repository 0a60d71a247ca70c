"""HTTP route definitions for the service."""

from __future__ import annotations

from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, File, Header, HTTPException, Query, UploadFile, status
from fastapi.responses import Response

from app.schemas import (
    AlertCreate,
    AlertListResponse,
    AlertModel,
    ImportResponse,
    ImportRowErrorModel,
    IngestResponse,
    ReadingCreate,
    ReadingListResponse,
    ReadingModel,
    SummaryResponse,
    ThresholdsResponse,
    ThresholdsUpdate,
    TrendModel,
    WindowModel,
)
from models.records import SensorType
from services.monitor import MonitoringService, build_default_monitor
from services.window import InvalidFilter
from settings import get_settings

router = APIRouter()

PeriodParam = Literal["day", "week", "month", "custom"]


def get_monitor() -> MonitoringService:
    return build_default_monitor()


def get_owner_id(x_owner_id: Optional[str] = Header(default=None)) -> str:
    """Resolve the caller's owner id, falling back to the demo owner only when enabled."""
    if x_owner_id and x_owner_id.strip():
        return x_owner_id.strip()
    settings = get_settings()
    if settings.allow_demo_owner:
        return settings.default_owner_id
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Missing X-Owner-Id header.",
    )


def _bad_request(exc: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def _optional_type(sensor_type: Optional[SensorType]) -> Optional[str]:
    return sensor_type.value if sensor_type is not None else None


@router.get(
    "/readings",
    response_model=ReadingListResponse,
    summary="List readings within a period, optionally filtered by type and location.",
)
async def list_readings(
    period: PeriodParam = Query("day"),
    start: Optional[str] = Query(None, description="Custom period start date (YYYY-MM-DD)."),
    end: Optional[str] = Query(None, description="Custom period end date, inclusive."),
    sensor_type: Optional[SensorType] = Query(None),
    location: Optional[str] = Query(None),
    order: Literal["asc", "desc"] = Query("asc"),
    owner_id: str = Depends(get_owner_id),
    monitor: MonitoringService = Depends(get_monitor),
) -> ReadingListResponse:
    try:
        result = monitor.query_readings(
            owner_id,
            period=period,
            start=start,
            end=end,
            sensor_type=_optional_type(sensor_type),
            location=location,
            descending=order == "desc",
        )
    except InvalidFilter as exc:
        raise _bad_request(exc) from exc
    return ReadingListResponse(
        window=WindowModel.from_window(result.window),
        readings=[ReadingModel.from_reading(reading) for reading in result.readings],
        locations=result.locations,
    )


@router.get(
    "/readings/locations",
    response_model=List[str],
    summary="Distinct location labels across all of the owner's readings.",
)
async def list_locations(
    owner_id: str = Depends(get_owner_id),
    monitor: MonitoringService = Depends(get_monitor),
) -> List[str]:
    return monitor.locations(owner_id)


@router.post(
    "/readings",
    status_code=status.HTTP_201_CREATED,
    response_model=IngestResponse,
    summary="Store a reading and evaluate alert thresholds for it.",
)
async def create_reading(
    payload: ReadingCreate,
    owner_id: str = Depends(get_owner_id),
    monitor: MonitoringService = Depends(get_monitor),
) -> IngestResponse:
    reading, alerts = monitor.ingest_reading(
        owner_id,
        sensor_type=payload.sensor_type.value,
        value=payload.value,
        location=payload.location,
        unit=payload.unit,
        timestamp=payload.timestamp,
    )
    return IngestResponse(
        reading=ReadingModel.from_reading(reading),
        alerts=[AlertModel.from_alert(alert) for alert in alerts],
    )


@router.post(
    "/readings/import",
    response_model=ImportResponse,
    summary="Bulk import readings from a CSV file.",
)
async def import_readings(
    file: UploadFile = File(..., description="CSV with type,value,unit,location,timestamp columns."),
    owner_id: str = Depends(get_owner_id),
    monitor: MonitoringService = Depends(get_monitor),
) -> ImportResponse:
    try:
        contents = await file.read()
        result = monitor.import_csv(owner_id, contents)
    except (ValueError, UnicodeDecodeError) as exc:
        raise _bad_request(exc) from exc
    finally:
        await file.close()
    return ImportResponse(
        status=result.status,
        imported_count=result.imported_count,
        errors=[
            ImportRowErrorModel(row_number=error.row_number, reason=error.reason)
            for error in result.errors
        ],
        alerts=[AlertModel.from_alert(alert) for alert in result.alerts],
    )


@router.get(
    "/summary",
    response_model=SummaryResponse,
    summary="Latest value and trend for every sensor type.",
)
async def get_summary(
    period: PeriodParam = Query("day"),
    start: Optional[str] = Query(None),
    end: Optional[str] = Query(None),
    sensor_type: Optional[SensorType] = Query(None),
    location: Optional[str] = Query(None),
    owner_id: str = Depends(get_owner_id),
    monitor: MonitoringService = Depends(get_monitor),
) -> SummaryResponse:
    try:
        snapshot = monitor.dashboard(
            owner_id,
            period=period,
            start=start,
            end=end,
            sensor_type=_optional_type(sensor_type),
            location=location,
        )
    except InvalidFilter as exc:
        raise _bad_request(exc) from exc
    return SummaryResponse(
        window=WindowModel.from_window(snapshot.window),
        summaries={
            sensor_type: TrendModel.from_summary(summary)
            for sensor_type, summary in snapshot.summaries.items()
        },
        locations=snapshot.locations,
        unread_alerts=snapshot.unread_alerts,
    )


@router.get(
    "/export",
    summary="Download filtered readings as CSV or JSON.",
    response_class=Response,
)
async def export_readings(
    fmt: str = Query("csv", alias="format", description="csv or json"),
    period: PeriodParam = Query("day"),
    start: Optional[str] = Query(None),
    end: Optional[str] = Query(None),
    sensor_type: Optional[SensorType] = Query(None),
    location: Optional[str] = Query(None),
    owner_id: str = Depends(get_owner_id),
    monitor: MonitoringService = Depends(get_monitor),
) -> Response:
    try:
        filename, media_type, body = monitor.export(
            owner_id,
            fmt=fmt,
            period=period,
            start=start,
            end=end,
            sensor_type=_optional_type(sensor_type),
            location=location,
        )
    except InvalidFilter as exc:
        raise _bad_request(exc) from exc
    return Response(
        content=body,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get(
    "/alerts",
    response_model=AlertListResponse,
    summary="List alerts, most recent first.",
)
async def list_alerts(
    view: str = Query("all", description="all, unread or high"),
    owner_id: str = Depends(get_owner_id),
    monitor: MonitoringService = Depends(get_monitor),
) -> AlertListResponse:
    try:
        alerts = monitor.alert_service.list_alerts(owner_id, view=view)
    except InvalidFilter as exc:
        raise _bad_request(exc) from exc
    return AlertListResponse(
        alerts=[AlertModel.from_alert(alert) for alert in alerts],
        unread_count=monitor.alert_service.unread_count(owner_id),
    )


@router.post(
    "/alerts",
    status_code=status.HTTP_201_CREATED,
    response_model=AlertModel,
    summary="Create an alert manually.",
)
async def create_alert(
    payload: AlertCreate,
    owner_id: str = Depends(get_owner_id),
    monitor: MonitoringService = Depends(get_monitor),
) -> AlertModel:
    alert = monitor.alert_service.create_alert(
        owner_id,
        sensor_type=payload.sensor_type.value,
        message=payload.message,
        severity=payload.severity.value,
        location=payload.location,
    )
    return AlertModel.from_alert(alert)


@router.post(
    "/alerts/test",
    status_code=status.HTTP_201_CREATED,
    response_model=List[AlertModel],
    summary="Seed the demo alerts.",
)
async def create_test_alerts(
    owner_id: str = Depends(get_owner_id),
    monitor: MonitoringService = Depends(get_monitor),
) -> List[AlertModel]:
    alerts = monitor.alert_service.create_test_alerts(owner_id)
    return [AlertModel.from_alert(alert) for alert in alerts]


@router.put(
    "/alerts/{alert_id}/read",
    response_model=AlertModel,
    summary="Mark an alert as read; repeating the call is harmless.",
)
async def mark_alert_read(
    alert_id: str,
    owner_id: str = Depends(get_owner_id),
    monitor: MonitoringService = Depends(get_monitor),
) -> AlertModel:
    try:
        alert = monitor.alert_service.mark_read(owner_id, alert_id)
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Alert {alert_id!r} not found.",
        ) from exc
    return AlertModel.from_alert(alert)


@router.get(
    "/thresholds",
    response_model=ThresholdsResponse,
    summary="Alert thresholds for the owner, defaults included.",
)
async def get_thresholds(
    owner_id: str = Depends(get_owner_id),
    monitor: MonitoringService = Depends(get_monitor),
) -> ThresholdsResponse:
    return ThresholdsResponse.from_thresholds(monitor.get_thresholds(owner_id))


@router.put(
    "/thresholds",
    response_model=ThresholdsResponse,
    summary="Update alert thresholds for some or all sensor types.",
)
async def update_thresholds(
    payload: ThresholdsUpdate,
    owner_id: str = Depends(get_owner_id),
    monitor: MonitoringService = Depends(get_monitor),
) -> ThresholdsResponse:
    try:
        updated = monitor.set_thresholds(
            owner_id,
            {
                sensor_type.value: band.to_threshold()
                for sensor_type, band in payload.thresholds.items()
            },
        )
    except ValueError as exc:
        raise _bad_request(exc) from exc
    return ThresholdsResponse.from_thresholds(updated)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
