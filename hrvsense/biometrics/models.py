"""
Biometric value types and the operation result variant.

Everything here is transient: created per read or per pushed sample and held
only in memory.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Generic, TypeVar, Union

from pydantic import BaseModel, Field

T = TypeVar("T")

MILLIS_PER_MINUTE = 60000.0


class HeartRateSampleDTO(BaseModel):
    bpm: int = Field(..., gt=0, description="Heart rate in BPM")
    timestamp: datetime
    source: str


class HRVMetricsDTO(BaseModel):
    rmssd: float = Field(..., ge=0.0, description="RMSSD in ms")
    sdnn: float = Field(..., ge=0.0, description="SDNN (population) in ms")
    pnn50: float = Field(..., ge=0.0, le=100.0, description="Percent of successive diffs > 50 ms")
    timestamp: datetime
    sample_count: int = Field(..., ge=0)
    is_valid: bool = Field(..., description="False when fewer than two RR intervals back the figures.")


@dataclass(frozen=True)
class HeartRateSample:
    bpm: int
    timestamp: datetime
    source: str = "unknown"

    def __post_init__(self) -> None:
        # bool is an int subclass; a True/False bpm is a malformed payload.
        if isinstance(self.bpm, bool) or not isinstance(self.bpm, int):
            raise ValueError(f"bpm must be an integer, got {self.bpm!r}")
        if self.bpm <= 0:
            raise ValueError(f"bpm must be positive, got {self.bpm}")

    def to_dto(self) -> HeartRateSampleDTO:
        return HeartRateSampleDTO(bpm=self.bpm, timestamp=self.timestamp, source=self.source)


@dataclass(frozen=True)
class RRInterval:
    """
    Approximate inter-beat interval derived from an instantaneous rate.

    60000 / bpm is not true beat-to-beat timing; it only tracks the real
    RR series when samples are already close to one per beat.
    """

    interval_millis: float
    timestamp: datetime

    @classmethod
    def from_sample(cls, sample: HeartRateSample) -> "RRInterval":
        return cls(interval_millis=MILLIS_PER_MINUTE / float(sample.bpm), timestamp=sample.timestamp)


@dataclass(frozen=True)
class HRVMetrics:
    rmssd: float
    sdnn: float
    pnn50: float
    timestamp: datetime
    sample_count: int

    def is_valid(self) -> bool:
        return self.sample_count >= 2

    def to_dto(self) -> HRVMetricsDTO:
        return HRVMetricsDTO(
            rmssd=self.rmssd,
            sdnn=self.sdnn,
            pnn50=self.pnn50,
            timestamp=self.timestamp,
            sample_count=self.sample_count,
            is_valid=self.is_valid(),
        )


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T


@dataclass(frozen=True)
class PermissionDenied:
    pass


@dataclass(frozen=True)
class NotAvailable:
    pass


@dataclass(frozen=True)
class Error:
    message: str
    cause: BaseException | None = None


OperationResult = Union[Success[T], PermissionDenied, NotAvailable, Error]


__all__ = [
    "Error",
    "HRVMetrics",
    "HRVMetricsDTO",
    "HeartRateSample",
    "HeartRateSampleDTO",
    "MILLIS_PER_MINUTE",
    "NotAvailable",
    "OperationResult",
    "PermissionDenied",
    "RRInterval",
    "Success",
]
