"""
HRV estimator tests.
Run with: python3 -m pytest tests/
"""

import math

import pytest

from hrvsense.biometrics import HeartRateSample, compute_metrics, pnn50, rmssd, rr_intervals_from_samples, sdnn
from tests.conftest import NOW


class TestRmssd:
    def test_empty_and_single_are_zero(self):
        assert rmssd([]) == 0.0
        assert rmssd([812.0]) == 0.0

    def test_two_intervals(self):
        assert rmssd([800.0, 850.0]) == pytest.approx(50.0)

    def test_multiple_intervals(self):
        assert rmssd([800.0, 810.0, 805.0, 815.0]) == pytest.approx(math.sqrt(75.0))

    def test_uses_given_order_not_sorted(self):
        assert rmssd([800.0, 900.0, 800.0]) == pytest.approx(100.0)
        assert rmssd([800.0, 800.0, 900.0]) == pytest.approx(math.sqrt(5000.0))


class TestSdnn:
    def test_empty_is_zero(self):
        assert sdnn([]) == 0.0

    def test_single_and_identical_are_zero(self):
        assert sdnn([800.0]) == 0.0
        assert sdnn([800.0, 800.0, 800.0]) == 0.0

    def test_population_form(self):
        assert sdnn([800.0, 810.0, 790.0, 820.0]) == pytest.approx(math.sqrt(125.0))

    def test_not_sample_form(self):
        # Sample (n-1) variant would be sqrt(500 / 3).
        assert sdnn([800.0, 810.0, 790.0, 820.0]) != pytest.approx(math.sqrt(500.0 / 3))


class TestPnn50:
    def test_empty_and_single_are_zero(self):
        assert pnn50([]) == 0.0
        assert pnn50([800.0]) == 0.0

    def test_small_differences(self):
        assert pnn50([800.0, 810.0, 820.0, 830.0]) == 0.0

    def test_large_differences(self):
        assert pnn50([800.0, 900.0, 1000.0, 1100.0]) == pytest.approx(100.0)

    def test_exactly_fifty_excluded(self):
        assert pnn50([800.0, 850.0, 900.0]) == 0.0

    def test_just_above_fifty_included(self):
        assert pnn50([800.0, 851.0, 902.0]) == pytest.approx(100.0)

    def test_absolute_difference(self):
        assert pnn50([900.0, 800.0, 750.0, 850.0]) == pytest.approx(200.0 / 3)


class TestDerivation:
    def test_rr_from_bpm(self):
        samples = [
            HeartRateSample(bpm=60, timestamp=NOW, source="store"),
            HeartRateSample(bpm=75, timestamp=NOW, source="store"),
        ]
        rr = rr_intervals_from_samples(samples)
        assert [interval.interval_millis for interval in rr] == pytest.approx([1000.0, 800.0])
        assert all(interval.timestamp == NOW for interval in rr)

    def test_compute_metrics_bundles_estimators(self):
        rr = [800.0, 810.0, 790.0, 820.0]
        metrics = compute_metrics(rr, NOW)
        assert metrics.rmssd == pytest.approx(rmssd(rr))
        assert metrics.sdnn == pytest.approx(math.sqrt(125.0))
        assert metrics.pnn50 == 0.0
        assert metrics.sample_count == 4
        assert metrics.timestamp == NOW
        assert metrics.is_valid()

    def test_compute_metrics_single_interval_is_not_valid(self):
        metrics = compute_metrics([800.0], NOW)
        assert metrics.sample_count == 1
        assert not metrics.is_valid()
