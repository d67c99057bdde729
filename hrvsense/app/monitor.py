"""
Health monitor: observes the gateway and companion channel and republishes
their state for display.

The monitor is the only writer of its StateFlows; readers subscribe or read
`.value`. Failures land in `error` until cleared or replaced by the next
successful operation.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional, assert_never

from pydantic import BaseModel, Field

from hrvsense.biometrics import (
    Error,
    HRVMetrics,
    HRVMetricsDTO,
    HeartRateSample,
    HeartRateSampleDTO,
    NotAvailable,
    OperationResult,
    PermissionDenied,
    Success,
)
from hrvsense.companion import CompanionChannel
from hrvsense.health import HealthStoreGateway
from hrvsense.health.gateway import utc_now
from hrvsense.streams import StateFlow, Subscription

logger = logging.getLogger(__name__)

PERMISSION_MESSAGE = "Permission denied. Grant heart rate and HRV read access to the health store."
UNAVAILABLE_MESSAGE = "Health store is not available on this device."
START_FAILED_MESSAGE = "Failed to start monitoring. Is the companion device connected?"


class MonitorSnapshot(BaseModel):
    store_available: bool
    permissions_granted: bool
    companion_connected: bool
    metrics: HRVMetricsDTO | None = None
    samples: list[HeartRateSampleDTO] = Field(default_factory=list)
    current_bpm: int | None = None
    monitoring: bool = False
    error: str | None = None


class HealthMonitor:
    def __init__(
        self,
        gateway: HealthStoreGateway,
        channel: CompanionChannel,
        hours_back: float = 24.0,
        poll_interval_minutes: float = 5.0,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._gateway = gateway
        self._channel = channel
        self._hours_back = hours_back
        self._poll_interval_minutes = poll_interval_minutes
        self._clock = clock

        self.store_available: StateFlow[bool] = StateFlow(False)
        self.permissions_granted: StateFlow[bool] = StateFlow(False)
        self.companion_connected: StateFlow[bool] = StateFlow(False)
        self.metrics: StateFlow[Optional[HRVMetrics]] = StateFlow(None)
        self.samples: StateFlow[list[HeartRateSample]] = StateFlow([])
        self.current_bpm: StateFlow[Optional[int]] = StateFlow(None)
        self.monitoring: StateFlow[bool] = StateFlow(False)
        self.error: StateFlow[Optional[str]] = StateFlow(None)

        self._live: Subscription[OperationResult[HeartRateSample]] | None = None
        self._live_task: asyncio.Task[None] | None = None
        self._poll_task: asyncio.Task[None] | None = None
        # Newest store sample seen by a read; live pushes never move it.
        self._store_high_water: datetime | None = None

    # -- checks ---------------------------------------------------------------

    async def check_store_availability(self) -> bool:
        available = await self._gateway.is_available()
        self.store_available.set(available)
        return available

    async def check_permissions(self) -> bool:
        granted = await self._gateway.has_all_permissions()
        self.permissions_granted.set(granted)
        return granted

    async def check_companion(self) -> bool:
        connected = await self._channel.is_connected()
        self.companion_connected.set(connected)
        return connected

    async def refresh_all(self) -> MonitorSnapshot:
        await self.check_store_availability()
        await self.check_permissions()
        await self.check_companion()
        await self.load_samples()
        await self.compute_metrics()
        return self.snapshot()

    # -- store reads ----------------------------------------------------------

    def _publish_failure(self, result: PermissionDenied | NotAvailable | Error) -> None:
        if isinstance(result, PermissionDenied):
            self.error.set(PERMISSION_MESSAGE)
            self.permissions_granted.set(False)
        elif isinstance(result, NotAvailable):
            self.error.set(UNAVAILABLE_MESSAGE)
            self.store_available.set(False)
        elif isinstance(result, Error):
            self.error.set(result.message)
        else:
            assert_never(result)

    async def compute_metrics(self, hours_back: float | None = None) -> OperationResult[HRVMetrics]:
        result = await self._gateway.get_recent_hrv_metrics(self._hours_back if hours_back is None else hours_back)
        if isinstance(result, Success):
            self.metrics.set(result.value)
            self.error.set(None)
        else:
            self._publish_failure(result)
        return result

    async def load_samples(self, hours_back: float | None = None) -> OperationResult[list[HeartRateSample]]:
        end = self._clock()
        start = end - timedelta(hours=self._hours_back if hours_back is None else hours_back)
        result = await self._gateway.read_heart_rate_data(start, end)
        if isinstance(result, Success):
            self.samples.set(result.value)
            self.error.set(None)
            if result.value:
                self._store_high_water = result.value[-1].timestamp
                self.current_bpm.set(result.value[-1].bpm)
        else:
            self._publish_failure(result)
        return result

    # -- periodic polling -----------------------------------------------------

    @property
    def is_polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    def start_polling(self, interval_minutes: float | None = None) -> None:
        if self.is_polling:
            return
        interval = self._poll_interval_minutes if interval_minutes is None else interval_minutes
        if interval <= 0:
            raise ValueError("interval_minutes must be positive")
        self._poll_task = asyncio.create_task(self._poll(interval), name="health-store-poll")

    async def _poll(self, interval_minutes: float) -> None:
        stream = self._gateway.stream_heart_rate_data(interval_minutes)
        try:
            async for result in stream:
                if isinstance(result, Success):
                    self._append_samples(result.value)
                else:
                    self._publish_failure(result)
        finally:
            await stream.aclose()

    async def stop_polling(self) -> None:
        task, self._poll_task = self._poll_task, None
        await _cancel(task)

    def _append_samples(self, window: list[HeartRateSample]) -> None:
        mark = self._store_high_water
        fresh = [sample for sample in window if mark is None or sample.timestamp > mark]
        if fresh:
            self._store_high_water = fresh[-1].timestamp
            self.current_bpm.set(self._merge_samples(fresh)[-1].bpm)

    def _merge_samples(self, new: list[HeartRateSample]) -> list[HeartRateSample]:
        merged = sorted([*self.samples.value, *new], key=lambda sample: sample.timestamp)
        self.samples.set(merged)
        return merged

    # -- companion monitoring -------------------------------------------------

    async def start_monitoring(self) -> bool:
        if self._live_task is not None and not self._live_task.done():
            return True

        # Listen before asking the device to start so no early push is missed.
        live = self._channel.listen_for_heart_rate_data()
        if not await self._channel.start_monitoring():
            live.close()
            self.error.set(START_FAILED_MESSAGE)
            return False

        self._live = live
        self.monitoring.set(True)
        self.error.set(None)
        self._live_task = asyncio.create_task(self._collect(live), name="companion-heart-rate")
        return True

    async def _collect(self, live: Subscription[OperationResult[HeartRateSample]]) -> None:
        try:
            async with live:
                async for result in live:
                    if isinstance(result, Success):
                        self._merge_samples([result.value])
                        self.current_bpm.set(result.value.bpm)
                    elif isinstance(result, Error):
                        self.error.set(result.message)
                    elif isinstance(result, (PermissionDenied, NotAvailable)):
                        logger.debug("Ignoring gating result on live stream: %s", result)
                    else:
                        assert_never(result)
        finally:
            self.monitoring.set(False)

    async def stop_monitoring(self) -> bool:
        stopped = await self._channel.stop_monitoring()
        live, self._live = self._live, None
        if live is not None:
            live.close()
        task, self._live_task = self._live_task, None
        await _cancel(task)
        self.monitoring.set(False)
        return stopped

    async def push_heart_rate_to_companion(self, bpm: int) -> bool:
        return await self._channel.send_heart_rate_to_wear(bpm)

    # -- misc -----------------------------------------------------------------

    def clear_error(self) -> None:
        self.error.set(None)

    def snapshot(self) -> MonitorSnapshot:
        metrics = self.metrics.value
        return MonitorSnapshot(
            store_available=self.store_available.value,
            permissions_granted=self.permissions_granted.value,
            companion_connected=self.companion_connected.value,
            metrics=metrics.to_dto() if metrics else None,
            samples=[sample.to_dto() for sample in self.samples.value],
            current_bpm=self.current_bpm.value,
            monitoring=self.monitoring.value,
            error=self.error.value,
        )

    async def aclose(self) -> None:
        if self._live is not None:
            self._live.close()
            self._live = None
        task, self._live_task = self._live_task, None
        await _cancel(task)
        await self.stop_polling()


async def _cancel(task: asyncio.Task[None] | None) -> None:
    if task is None:
        return
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task


__all__ = [
    "HealthMonitor",
    "MonitorSnapshot",
    "PERMISSION_MESSAGE",
    "START_FAILED_MESSAGE",
    "UNAVAILABLE_MESSAGE",
]
