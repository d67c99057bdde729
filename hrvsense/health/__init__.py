"""Health store access: collaborator contract and the gated gateway."""

from .gateway import INSUFFICIENT_DATA, REQUIRED_PERMISSIONS, HealthStoreGateway
from .store import (
    READ_HEART_RATE,
    READ_HRV_RMSSD,
    HealthStore,
    HeartRateRecord,
    HrvRmssdRecord,
    InMemoryHealthStore,
    RecordSample,
    RecordType,
    TimeRange,
    get_health_store,
)

__all__ = [
    "HealthStore",
    "HealthStoreGateway",
    "HeartRateRecord",
    "HrvRmssdRecord",
    "INSUFFICIENT_DATA",
    "InMemoryHealthStore",
    "READ_HEART_RATE",
    "READ_HRV_RMSSD",
    "REQUIRED_PERMISSIONS",
    "RecordSample",
    "RecordType",
    "TimeRange",
    "get_health_store",
]
