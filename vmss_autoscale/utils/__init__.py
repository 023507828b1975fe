"""Utility functions for series statistics."""

from vmss_autoscale.utils.stats import (
    percentile,
    coefficient_of_variation,
    linear_trend,
    detrend,
    successive_difference_variance,
    bucket_variances,
)

__all__ = [
    "percentile",
    "coefficient_of_variation",
    "linear_trend",
    "detrend",
    "successive_difference_variance",
    "bucket_variances",
]
