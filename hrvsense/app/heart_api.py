"""Heart-facing API router: status, HRV metrics, samples, companion monitoring."""

from typing import NoReturn, TypeVar, assert_never

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, Field

from hrvsense.app.monitor import (
    PERMISSION_MESSAGE,
    START_FAILED_MESSAGE,
    UNAVAILABLE_MESSAGE,
    HealthMonitor,
    MonitorSnapshot,
)
from hrvsense.biometrics import (
    Error,
    HRVMetricsDTO,
    HeartRateSampleDTO,
    NotAvailable,
    OperationResult,
    PermissionDenied,
    Success,
)
from hrvsense.health import INSUFFICIENT_DATA

T = TypeVar("T")

router = APIRouter(tags=["heart"])


class DisplayRequest(BaseModel):
    bpm: int = Field(..., gt=0, description="Heart rate to show on the companion device.")


class PollingRequest(BaseModel):
    interval_minutes: float | None = Field(None, gt=0, description="Cadence of trailing-window reads.")


def get_monitor(request: Request) -> HealthMonitor:
    return request.app.state.monitor


def _raise_for(result: PermissionDenied | NotAvailable | Error) -> NoReturn:
    if isinstance(result, PermissionDenied):
        raise HTTPException(status_code=403, detail=PERMISSION_MESSAGE)
    if isinstance(result, NotAvailable):
        raise HTTPException(status_code=503, detail=UNAVAILABLE_MESSAGE)
    if isinstance(result, Error):
        status = 422 if result.message == INSUFFICIENT_DATA else 502
        raise HTTPException(status_code=status, detail=result.message)
    assert_never(result)


def _unwrap(result: OperationResult[T]) -> T:
    if isinstance(result, Success):
        return result.value
    _raise_for(result)


@router.get("/status")
async def status(monitor: HealthMonitor = Depends(get_monitor)) -> MonitorSnapshot:
    return monitor.snapshot()


@router.post("/refresh")
async def refresh(monitor: HealthMonitor = Depends(get_monitor)) -> MonitorSnapshot:
    """Re-run availability/permission/companion checks and reload the default window."""

    return await monitor.refresh_all()


@router.get("/hrv")
async def hrv_metrics(
    hours: float = Query(24.0, gt=0, description="Trailing window in hours."),
    monitor: HealthMonitor = Depends(get_monitor),
) -> HRVMetricsDTO:
    metrics = _unwrap(await monitor.compute_metrics(hours))
    return metrics.to_dto()


@router.get("/samples")
async def samples(
    hours: float = Query(24.0, gt=0, description="Trailing window in hours."),
    monitor: HealthMonitor = Depends(get_monitor),
) -> list[HeartRateSampleDTO]:
    loaded = _unwrap(await monitor.load_samples(hours))
    return [sample.to_dto() for sample in loaded]


@router.post("/monitoring/start")
async def start_monitoring(monitor: HealthMonitor = Depends(get_monitor)) -> MonitorSnapshot:
    if not await monitor.start_monitoring():
        raise HTTPException(status_code=409, detail=START_FAILED_MESSAGE)
    return monitor.snapshot()


@router.post("/monitoring/stop")
async def stop_monitoring(monitor: HealthMonitor = Depends(get_monitor)) -> MonitorSnapshot:
    await monitor.stop_monitoring()
    return monitor.snapshot()


@router.post("/polling/start")
async def start_polling(body: PollingRequest, monitor: HealthMonitor = Depends(get_monitor)):
    monitor.start_polling(body.interval_minutes)
    return {"status": "ok", "polling": monitor.is_polling}


@router.post("/polling/stop")
async def stop_polling(monitor: HealthMonitor = Depends(get_monitor)):
    await monitor.stop_polling()
    return {"status": "ok", "polling": monitor.is_polling}


@router.delete("/error")
async def clear_error(monitor: HealthMonitor = Depends(get_monitor)) -> MonitorSnapshot:
    monitor.clear_error()
    return monitor.snapshot()


@router.post("/companion/display")
async def display_on_companion(body: DisplayRequest, monitor: HealthMonitor = Depends(get_monitor)):
    sent = await monitor.push_heart_rate_to_companion(body.bpm)
    return {"status": "ok" if sent else "failed"}


__all__ = ["get_monitor", "router"]
