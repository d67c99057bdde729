"""
Gated access to the health store: availability and permission checks, ranged
heart-rate reads, and HRV derivation.

Every public coroutine returns an OperationResult (or a bool for the checks);
collaborator exceptions are translated where they are caught and never
re-raised to callers.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Awaitable, Callable

from hrvsense.biometrics import (
    Error,
    HRVMetrics,
    HeartRateSample,
    NotAvailable,
    OperationResult,
    PermissionDenied,
    Success,
    compute_metrics,
    rr_intervals_from_samples,
)
from hrvsense.health.store import (
    READ_HEART_RATE,
    READ_HRV_RMSSD,
    HealthStore,
    HeartRateRecord,
    HrvRmssdRecord,
    RecordType,
    TimeRange,
)

logger = logging.getLogger(__name__)

REQUIRED_PERMISSIONS = frozenset({READ_HEART_RATE, READ_HRV_RMSSD})
INSUFFICIENT_DATA = "Insufficient heart rate data for HRV calculation"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class HealthStoreGateway:
    """Reads heart-rate history and turns it into HRV metrics.

    Availability and permission state is re-queried on every call; grants can
    change between calls, so nothing is cached.
    """

    def __init__(
        self,
        store: HealthStore,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._store = store
        self._clock = clock
        self._sleep = sleep

    async def is_available(self) -> bool:
        try:
            return bool(await self._store.check_availability())
        except Exception:
            logger.warning("Health store availability check failed", exc_info=True)
            return False

    async def has_all_permissions(self) -> bool:
        try:
            granted = await self._store.granted_permissions()
        except Exception:
            logger.warning("Permission query failed; treating as not granted", exc_info=True)
            return False
        return REQUIRED_PERMISSIONS.issubset(granted)

    async def _gate(self) -> OperationResult[None]:
        if not await self.is_available():
            return NotAvailable()
        if not await self.has_all_permissions():
            return PermissionDenied()
        return Success(None)

    async def read_heart_rate_data(
        self,
        start: datetime,
        end: datetime | None = None,
    ) -> OperationResult[list[HeartRateSample]]:
        gate = await self._gate()
        if not isinstance(gate, Success):
            return gate

        time_range = TimeRange(start, end or self._clock())
        try:
            records = await self._store.read_records(RecordType.HEART_RATE, time_range)
            samples = [
                HeartRateSample(bpm=sample.bpm, timestamp=sample.time, source=record.origin)
                for record in records
                if isinstance(record, HeartRateRecord)
                for sample in record.samples
            ]
        except Exception as exc:
            logger.warning("Heart rate read failed for %s..%s", time_range.start, time_range.end, exc_info=True)
            return Error("Failed to read heart rate data", exc)

        samples.sort(key=lambda sample: sample.timestamp)
        return Success(samples)

    async def read_hrv_data(
        self,
        start: datetime,
        end: datetime | None = None,
    ) -> OperationResult[list[float]]:
        """Read RMSSD figures the store already computed natively."""
        gate = await self._gate()
        if not isinstance(gate, Success):
            return gate

        time_range = TimeRange(start, end or self._clock())
        try:
            records = await self._store.read_records(RecordType.HRV_RMSSD, time_range)
        except Exception as exc:
            logger.warning("HRV read failed for %s..%s", time_range.start, time_range.end, exc_info=True)
            return Error("Failed to read HRV data", exc)

        rmssd_records = sorted(
            (record for record in records if isinstance(record, HrvRmssdRecord)),
            key=lambda record: record.time,
        )
        return Success([float(record.rmssd_millis) for record in rmssd_records])

    async def calculate_hrv_metrics(
        self,
        start: datetime,
        end: datetime | None = None,
    ) -> OperationResult[HRVMetrics]:
        result = await self.read_heart_rate_data(start, end)
        if not isinstance(result, Success):
            return result

        samples = result.value
        if len(samples) < 2:
            return Error(INSUFFICIENT_DATA)

        # 60000 / bpm per sample; an approximation, not measured beat timing.
        rr = [interval.interval_millis for interval in rr_intervals_from_samples(samples)]
        return Success(compute_metrics(rr, self._clock()))

    async def get_recent_hrv_metrics(self, hours_back: float = 24) -> OperationResult[HRVMetrics]:
        end = self._clock()
        return await self.calculate_hrv_metrics(end - timedelta(hours=hours_back), end)

    async def stream_heart_rate_data(
        self,
        interval_minutes: float = 5,
    ) -> AsyncGenerator[OperationResult[list[HeartRateSample]], None]:
        """Re-read the trailing window every `interval_minutes`, forever.

        Stop it with `aclose()` or by cancelling the consuming task.
        """
        if interval_minutes <= 0:
            raise ValueError("interval_minutes must be positive")
        window = timedelta(minutes=interval_minutes)
        while True:
            end = self._clock()
            yield await self.read_heart_rate_data(end - window, end)
            await self._sleep(window.total_seconds())


__all__ = ["INSUFFICIENT_DATA", "REQUIRED_PERMISSIONS", "HealthStoreGateway", "utc_now"]
