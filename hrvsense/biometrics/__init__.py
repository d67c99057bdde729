"""Biometric value types and HRV estimators."""

from .estimators import compute_metrics, pnn50, rmssd, rr_intervals_from_samples, sdnn
from .models import (
    Error,
    HRVMetrics,
    HRVMetricsDTO,
    HeartRateSample,
    HeartRateSampleDTO,
    NotAvailable,
    OperationResult,
    PermissionDenied,
    RRInterval,
    Success,
)

__all__ = [
    "Error",
    "HRVMetrics",
    "HRVMetricsDTO",
    "HeartRateSample",
    "HeartRateSampleDTO",
    "NotAvailable",
    "OperationResult",
    "PermissionDenied",
    "RRInterval",
    "Success",
    "compute_metrics",
    "pnn50",
    "rmssd",
    "rr_intervals_from_samples",
    "sdnn",
]
