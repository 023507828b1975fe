"""Statistics helpers for load series analysis."""

import numpy as np
import pandas as pd
from sklearn.metrics import r2_score


def percentile(values: np.ndarray, q: float) -> float:
    """Calculate a percentile with linear interpolation.

    Args:
        values: Observed values
        q: Percentile in [0, 100]

    Returns:
        Interpolated percentile value
    """
    return float(np.percentile(np.asarray(values, dtype=float), q))


def coefficient_of_variation(values: np.ndarray) -> float:
    """Calculate population standard deviation divided by the mean.

    Args:
        values: Observed values

    Returns:
        Coefficient of variation, 0 when the mean is 0
    """
    values = np.asarray(values, dtype=float)
    mean = float(np.mean(values))
    if mean == 0:
        return 0.0
    return float(np.std(values) / mean)


def linear_trend(values: np.ndarray) -> tuple[float, float]:
    """Fit a least-squares line over the sample index.

    Args:
        values: Observed values in time order

    Returns:
        Tuple of (slope per sample, R squared)
    """
    values = np.asarray(values, dtype=float)
    if len(values) < 3:
        return 0.0, 0.0

    x = np.arange(len(values), dtype=float)
    slope, intercept = np.polyfit(x, values, 1)
    fitted = slope * x + intercept
    return float(slope), float(r2_score(values, fitted))


def detrend(values: np.ndarray) -> np.ndarray:
    """Remove the least-squares line from a series."""
    values = np.asarray(values, dtype=float)
    if len(values) < 2:
        return values - np.mean(values)
    x = np.arange(len(values), dtype=float)
    slope, intercept = np.polyfit(x, values, 1)
    return values - (slope * x + intercept)


def successive_difference_variance(values: np.ndarray) -> float:
    """Estimate noise variance from consecutive differences.

    Half the mean squared successive difference (von Neumann). Level shifts
    and slow cycles contribute little, so this approximates short-term noise.

    Args:
        values: Observed values in time order

    Returns:
        Noise variance estimate, 0 for fewer than two values
    """
    values = np.asarray(values, dtype=float)
    if len(values) < 2:
        return 0.0
    return float(np.mean(np.diff(values) ** 2) / 2)


def bucket_variances(values: np.ndarray, buckets: np.ndarray) -> tuple[float, float, pd.Series]:
    """Split variance into between-bucket and pooled within-bucket parts.

    Args:
        values: Observed values
        buckets: Bucket key for each value

    Returns:
        Tuple of (between-bucket variance, within-bucket variance,
        per-bucket statistics with ``mean`` and ``count`` columns)
    """
    df = pd.DataFrame({"value": np.asarray(values, dtype=float), "bucket": buckets})
    stats = df.groupby("bucket")["value"].agg(["mean", "count"])

    between = float(np.var(stats["mean"].to_numpy()))

    # Singleton buckets carry no spread information
    pooled = df["bucket"].map(stats["count"]) >= 2
    if not pooled.any():
        return between, 0.0, stats
    deviations = df.loc[pooled, "value"] - df.loc[pooled, "bucket"].map(stats["mean"])
    within = float(np.mean(deviations.to_numpy() ** 2))

    return between, within, stats
