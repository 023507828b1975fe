"""Load telemetry data layer."""

from vmss_autoscale.data.series import (
    METRIC_CPU,
    METRIC_MEMORY,
    METRIC_REQUESTS,
    MetricSample,
    MetricSeries,
    as_utc,
    load_metrics_csv,
)

__all__ = [
    "METRIC_CPU",
    "METRIC_MEMORY",
    "METRIC_REQUESTS",
    "MetricSample",
    "MetricSeries",
    "as_utc",
    "load_metrics_csv",
]
