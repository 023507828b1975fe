"""Pytest configuration and shared fixtures."""

from datetime import datetime, timedelta

import pytest

from vmss_autoscale.data import MetricSample, MetricSeries

START = datetime(2024, 1, 1, 0, 0, 0)  # a Monday


def build_series(values, start=START, step=timedelta(hours=1), memory=None):
    samples = [
        MetricSample(
            timestamp=start + i * step,
            cpu_percent=float(v),
            memory_percent=memory,
        )
        for i, v in enumerate(values)
    ]
    return MetricSeries(samples)


def business_day_values(n_days=1, high=70.0, low=35.0):
    """Hourly CPU with a plateau from 08:00 to 18:59."""
    return [high if 8 <= h % 24 <= 18 else low for h in range(24 * n_days)]


@pytest.fixture
def series_factory():
    """Build a MetricSeries from CPU values."""
    return build_series


@pytest.fixture
def cyclical_series():
    """24 hourly samples, 70% during business hours and 35% otherwise."""
    return build_series(business_day_values())


@pytest.fixture
def three_day_cyclical_series():
    """Three identical business days, hourly."""
    return build_series(business_day_values(n_days=3))


@pytest.fixture
def steady_series():
    """50 samples at 5-minute intervals, all at 40%."""
    return build_series([40.0] * 50, step=timedelta(minutes=5))


@pytest.fixture
def bursty_series():
    """Low background load with two short spikes."""
    values = [10.0] * 48
    values[20] = 90.0
    values[21] = 90.0
    return build_series(values, step=timedelta(minutes=5))


@pytest.fixture
def growing_series():
    """Load rising 0.6 points per sample."""
    return build_series([40.0 + 0.6 * i for i in range(48)], step=timedelta(minutes=5))


@pytest.fixture
def declining_series():
    """Load falling 0.6 points per sample."""
    return build_series([68.2 - 0.6 * i for i in range(48)], step=timedelta(minutes=5))


@pytest.fixture
def unpredictable_series():
    """Load alternating between 20% and 60%."""
    return build_series([20.0 if i % 2 == 0 else 60.0 for i in range(48)], step=timedelta(minutes=5))


@pytest.fixture
def resource_uri():
    """Resource ID of a test scale set."""
    return (
        "/subscriptions/00000000-0000-0000-0000-000000000000/resourceGroups/rg-web"
        "/providers/Microsoft.Compute/virtualMachineScaleSets/web-vmss"
    )


@pytest.fixture
def business_day():
    """Build hourly CPU values with a business-hours plateau."""
    return business_day_values
