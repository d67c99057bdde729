"""Health-record store abstraction with a default in-memory implementation.

The gateway only talks to the `HealthStore` protocol so a platform-backed store
can be swapped in via configuration without touching callers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterable, Protocol, Union, runtime_checkable

READ_HEART_RATE = "read:heart_rate"
READ_HRV_RMSSD = "read:hrv_rmssd"


class RecordType(Enum):
    HEART_RATE = "heart_rate"
    HRV_RMSSD = "hrv_rmssd"


@dataclass(frozen=True)
class TimeRange:
    start: datetime
    end: datetime

    def __contains__(self, instant: datetime) -> bool:
        return self.start <= instant < self.end


@dataclass(frozen=True)
class RecordSample:
    bpm: int
    time: datetime


@dataclass
class HeartRateRecord:
    origin: str
    samples: list[RecordSample] = field(default_factory=list)


@dataclass
class HrvRmssdRecord:
    origin: str
    time: datetime
    rmssd_millis: float


StoreRecord = Union[HeartRateRecord, HrvRmssdRecord]


@runtime_checkable
class HealthStore(Protocol):
    """Minimal contract the gateway needs from the platform health store."""

    async def check_availability(self) -> bool: ...

    async def granted_permissions(self) -> set[str]: ...

    async def read_records(self, record_type: RecordType, time_range: TimeRange) -> list[StoreRecord]: ...


class InMemoryHealthStore:
    """Process-local store used for development and tests.

    Records come back in insertion order, not time order.
    """

    def __init__(self, available: bool = True, granted: Iterable[str] = ()) -> None:
        self.available = available
        self._granted: set[str] = set(granted)
        self._heart_rate: list[HeartRateRecord] = []
        self._hrv: list[HrvRmssdRecord] = []

    def grant(self, *permissions: str) -> None:
        self._granted.update(permissions)

    def revoke(self, *permissions: str) -> None:
        self._granted.difference_update(permissions)

    def insert(self, record: StoreRecord) -> None:
        """Store a record. Every time on it must carry a UTC offset."""
        if isinstance(record, HeartRateRecord):
            times = [sample.time for sample in record.samples]
            target: list = self._heart_rate
        elif isinstance(record, HrvRmssdRecord):
            times = [record.time]
            target = self._hrv
        else:
            raise TypeError(f"Unsupported record: {type(record).__name__}")
        # Naive times cannot be compared with query windows.
        if any(time.utcoffset() is None for time in times):
            raise ValueError(f"Naive timestamp in {type(record).__name__} from {record.origin}")
        target.append(record)

    async def check_availability(self) -> bool:
        return self.available

    async def granted_permissions(self) -> set[str]:
        return set(self._granted)

    async def read_records(self, record_type: RecordType, time_range: TimeRange) -> list[StoreRecord]:
        if record_type is RecordType.HEART_RATE:
            matched: list[StoreRecord] = []
            for record in self._heart_rate:
                samples = [s for s in record.samples if s.time in time_range]
                if samples:
                    matched.append(HeartRateRecord(origin=record.origin, samples=samples))
            return matched
        if record_type is RecordType.HRV_RMSSD:
            return [record for record in self._hrv if record.time in time_range]
        raise ValueError(f"Unsupported record type: {record_type}")


_store: HealthStore | None = None


def _default_store_name() -> str:
    return os.getenv("HRVSENSE_HEALTH_STORE", "memory").lower()


def get_health_store(name: str | None = None) -> HealthStore:
    global _store
    if _store is not None:
        return _store

    store_name = (name or _default_store_name()).lower()
    if store_name == "memory":
        _store = InMemoryHealthStore()
        return _store

    raise ValueError(f"Unsupported health store: {store_name}")


__all__ = [
    "HealthStore",
    "HeartRateRecord",
    "HrvRmssdRecord",
    "InMemoryHealthStore",
    "READ_HEART_RATE",
    "READ_HRV_RMSSD",
    "RecordSample",
    "RecordType",
    "StoreRecord",
    "TimeRange",
    "get_health_store",
]
