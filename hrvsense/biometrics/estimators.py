"""
Time-domain HRV estimators over an ordered RR series (milliseconds).

Inputs are expected to be finite and positive; RR values are only ever built
from validated positive BPM samples. Order matters: RMSSD and PNN50 work on
successive differences, not on a sorted copy.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Iterable, Sequence

from .models import HeartRateSample, HRVMetrics, RRInterval

PNN50_THRESHOLD_MS = 50.0


def _successive_differences(rr: Sequence[float]) -> list[float]:
    return [b - a for a, b in zip(rr, rr[1:])]


def rmssd(rr: Sequence[float]) -> float:
    """Root mean square of successive differences; 0.0 below two intervals."""
    if len(rr) < 2:
        return 0.0
    diffs = _successive_differences(rr)
    return math.sqrt(sum(d * d for d in diffs) / len(diffs))


def sdnn(rr: Sequence[float]) -> float:
    """Population standard deviation of the intervals; 0.0 when empty."""
    if not rr:
        return 0.0
    mean = sum(rr) / len(rr)
    return math.sqrt(sum((x - mean) ** 2 for x in rr) / len(rr))


def pnn50(rr: Sequence[float]) -> float:
    """Percentage of successive differences strictly above 50 ms."""
    if len(rr) < 2:
        return 0.0
    diffs = _successive_differences(rr)
    count = sum(1 for d in diffs if abs(d) > PNN50_THRESHOLD_MS)
    return 100.0 * count / len(diffs)


def rr_intervals_from_samples(samples: Iterable[HeartRateSample]) -> list[RRInterval]:
    return [RRInterval.from_sample(sample) for sample in samples]


def compute_metrics(rr: Sequence[float], timestamp: datetime) -> HRVMetrics:
    rr = list(rr)
    return HRVMetrics(
        rmssd=rmssd(rr),
        sdnn=sdnn(rr),
        pnn50=pnn50(rr),
        timestamp=timestamp,
        sample_count=len(rr),
    )


__all__ = [
    "PNN50_THRESHOLD_MS",
    "compute_metrics",
    "pnn50",
    "rmssd",
    "rr_intervals_from_samples",
    "sdnn",
]
