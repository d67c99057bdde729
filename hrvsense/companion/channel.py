"""
Companion-device channel: node discovery, start/stop control messages, the
live heart-rate push stream, and the outbound display push.

Control operations report a bool; the live stream yields OperationResult
items. Transport failures never escape.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from datetime import datetime, timezone
from typing import Any, Callable, Mapping

from hrvsense.biometrics import Error, HeartRateSample, OperationResult, Success
from hrvsense.companion.transport import CHANGED, CompanionTransport, DataEvent
from hrvsense.streams import Subscription

logger = logging.getLogger(__name__)

CAPABILITY_HEART_RATE = "heart_rate_monitoring"
PATH_HEART_RATE = "/heart_rate"
PATH_START_MONITORING = "/start_monitoring"
PATH_STOP_MONITORING = "/stop_monitoring"
KEY_BPM = "bpm"
KEY_TIMESTAMP = "timestamp"
COMPANION_SOURCE = "companion device"

_PARSE_ERRORS = (KeyError, TypeError, ValueError, OverflowError, OSError)


def _require_int(data: Mapping[str, Any], key: str) -> int:
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{key} must be an integer, got {type(value).__name__}")
    return value


def parse_heart_rate_payload(data: Mapping[str, Any]) -> HeartRateSample:
    bpm = _require_int(data, KEY_BPM)
    epoch_ms = _require_int(data, KEY_TIMESTAMP)
    timestamp = datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc)
    return HeartRateSample(bpm=bpm, timestamp=timestamp, source=COMPANION_SOURCE)


def _epoch_millis(instant: datetime) -> int:
    return int(instant.timestamp() * 1000)


class CompanionChannel:
    def __init__(
        self,
        transport: CompanionTransport,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._transport = transport
        self._clock = clock

    async def find_heart_rate_nodes(self) -> set[str]:
        try:
            return set(await self._transport.find_nodes(CAPABILITY_HEART_RATE))
        except Exception:
            logger.warning("Companion node discovery failed", exc_info=True)
            return set()

    async def is_connected(self) -> bool:
        return bool(await self.find_heart_rate_nodes())

    async def _broadcast(self, path: str) -> bool:
        nodes = await self.find_heart_rate_nodes()
        if not nodes:
            logger.info("No reachable companion node for %s", path)
            return False
        try:
            results = await asyncio.gather(
                *(self._transport.send_message(node_id, path, b"") for node_id in sorted(nodes)),
                return_exceptions=True,
            )
        except Exception:
            logger.warning("Sending %s failed", path, exc_info=True)
            return False

        failures = [result for result in results if isinstance(result, BaseException)]
        for failure in failures:
            logger.warning("Sending %s failed: %s", path, failure)
        return not failures

    async def start_monitoring(self) -> bool:
        return await self._broadcast(PATH_START_MONITORING)

    async def stop_monitoring(self) -> bool:
        return await self._broadcast(PATH_STOP_MONITORING)

    def listen_for_heart_rate_data(self) -> Subscription[OperationResult[HeartRateSample]]:
        """Subscribe to samples pushed by the device.

        The listener is registered immediately and removed exactly once when
        the subscription closes, or when it is dropped without being closed.
        Must be called from a running event loop.
        """
        transport = self._transport
        # The transport keeps `on_data` alive; it must not keep the subscription alive.
        live: weakref.ReferenceType[Subscription[OperationResult[HeartRateSample]]]

        def on_data(events: list[DataEvent]) -> None:
            current = live()
            if current is None:
                return
            for event in events:
                if event.kind == CHANGED and event.path == PATH_HEART_RATE:
                    current.push(self._to_result(event.data))

        registered = False

        def release() -> None:
            if not registered:
                return
            try:
                transport.remove_data_listener(on_data)
            except Exception:
                logger.warning("Removing companion data listener failed", exc_info=True)

        subscription: Subscription[OperationResult[HeartRateSample]] = Subscription(on_close=release)
        live = weakref.ref(subscription)
        try:
            transport.add_data_listener(on_data)
            registered = True
        except Exception as exc:
            logger.warning("Registering companion data listener failed", exc_info=True)
            subscription.push(Error("Failed to listen for heart rate data", exc))
            subscription.complete()
        return subscription

    @staticmethod
    def _to_result(data: Mapping[str, Any]) -> OperationResult[HeartRateSample]:
        try:
            return Success(parse_heart_rate_payload(data))
        except _PARSE_ERRORS as exc:
            logger.warning("Malformed heart rate payload: %r", data)
            return Error("Failed to parse heart rate data", exc)

    async def send_heart_rate_to_wear(self, bpm: int) -> bool:
        if bpm <= 0:
            logger.warning("Refusing to push non-positive bpm %s", bpm)
            return False
        payload = {KEY_BPM: int(bpm), KEY_TIMESTAMP: _epoch_millis(self._clock())}
        try:
            await self._transport.put_data(PATH_HEART_RATE, payload)
        except Exception:
            logger.warning("Pushing heart rate to companion failed", exc_info=True)
            return False
        return True


__all__ = [
    "CAPABILITY_HEART_RATE",
    "COMPANION_SOURCE",
    "CompanionChannel",
    "KEY_BPM",
    "KEY_TIMESTAMP",
    "PATH_HEART_RATE",
    "PATH_START_MONITORING",
    "PATH_STOP_MONITORING",
    "parse_heart_rate_payload",
]
