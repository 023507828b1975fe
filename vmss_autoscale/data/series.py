"""Validated, time-ordered load telemetry."""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from numbers import Integral, Real
from pathlib import Path
from typing import Iterator, Sequence

import numpy as np
import pandas as pd

from vmss_autoscale.exceptions import InvalidInputError

# Metric names understood by autoscale rules
METRIC_CPU = "Percentage CPU"
METRIC_MEMORY = "Memory Percentage"
METRIC_REQUESTS = "Request Count"

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

SERIES_COLUMNS = ["timestamp", "cpu_percent", "memory_percent", "request_count"]


def as_utc(ts: datetime) -> datetime:
    """Convert an aware timestamp to UTC; naive timestamps are taken as UTC."""
    if ts.tzinfo is None:
        return ts
    return ts.astimezone(timezone.utc)


def _require_percent(name: str, value, optional: bool = False) -> float | None:
    """Validate a percentage field without coercing it."""
    if value is None and optional:
        return None
    if isinstance(value, bool) or not isinstance(value, Real):
        raise InvalidInputError(f"{name} must be a number, got {type(value).__name__}")
    value = float(value)
    if not math.isfinite(value):
        raise InvalidInputError(f"{name} must be finite")
    if not 0 <= value <= 100:
        raise InvalidInputError(f"{name} must be between 0 and 100, got {value}")
    return value


@dataclass(frozen=True)
class MetricSample:
    """One load observation for the scale set.

    Attributes:
        timestamp: Observation time
        cpu_percent: Average CPU across the scale set (0-100)
        memory_percent: Average memory use (0-100), if collected
        request_count: Requests served in the sampling interval, if collected
    """

    timestamp: datetime
    cpu_percent: float
    memory_percent: float | None = None
    request_count: int | None = None

    def __post_init__(self):
        if not isinstance(self.timestamp, datetime):
            raise InvalidInputError(
                f"timestamp must be a datetime, got {type(self.timestamp).__name__}"
            )
        object.__setattr__(self, "cpu_percent", _require_percent("cpu_percent", self.cpu_percent))
        object.__setattr__(
            self,
            "memory_percent",
            _require_percent("memory_percent", self.memory_percent, optional=True),
        )
        if self.request_count is not None:
            if isinstance(self.request_count, bool) or not isinstance(self.request_count, Integral):
                raise InvalidInputError("request_count must be an integer")
            if self.request_count < 0:
                raise InvalidInputError("request_count must be non-negative")
            object.__setattr__(self, "request_count", int(self.request_count))

    def metric_value(self, metric_name: str) -> float | None:
        """Get the value a rule on ``metric_name`` evaluates.

        Returns None when the sample did not collect that metric.
        """
        if metric_name == METRIC_CPU:
            return self.cpu_percent
        if metric_name == METRIC_MEMORY:
            return self.memory_percent
        if metric_name == METRIC_REQUESTS:
            return None if self.request_count is None else float(self.request_count)
        raise InvalidInputError(f"Unknown metric: {metric_name}")

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp.isoformat(),
            "cpu_percent": self.cpu_percent,
            "memory_percent": self.memory_percent,
            "request_count": self.request_count,
        }


class MetricSeries:
    """Immutable sequence of samples with strictly increasing timestamps.

    The series may be empty; operations that need data check the length
    themselves.

    Example:
        series = MetricSeries([
            MetricSample(datetime(2024, 1, 1, 0), 35.0),
            MetricSample(datetime(2024, 1, 1, 1), 40.0),
        ])
    """

    def __init__(self, samples: Sequence[MetricSample] = ()):
        samples = tuple(samples)
        for sample in samples:
            if not isinstance(sample, MetricSample):
                raise InvalidInputError(
                    f"MetricSeries holds MetricSample objects, got {type(sample).__name__}"
                )
        for i in range(len(samples) - 1):
            try:
                out_of_order = samples[i].timestamp >= samples[i + 1].timestamp
            except TypeError as e:
                raise InvalidInputError(
                    "Samples mix timezone-aware and naive timestamps"
                ) from e
            if out_of_order:
                raise InvalidInputError(
                    f"Samples must be strictly increasing in time: sample {i} at "
                    f"{samples[i].timestamp} is not before sample {i + 1} at "
                    f"{samples[i + 1].timestamp}"
                )
        self._samples = samples

    @classmethod
    def coerce(cls, data) -> "MetricSeries":
        """Build a series from a MetricSeries, a list of samples or a DataFrame."""
        if isinstance(data, MetricSeries):
            return data
        if isinstance(data, pd.DataFrame):
            return cls.from_dataframe(data)
        return cls(data)

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[MetricSample]:
        return iter(self._samples)

    def __getitem__(self, index):
        return self._samples[index]

    def __eq__(self, other) -> bool:
        if not isinstance(other, MetricSeries):
            return NotImplemented
        return self._samples == other._samples

    def __hash__(self) -> int:
        return hash(self._samples)

    def __repr__(self) -> str:
        if not self._samples:
            return "MetricSeries(empty)"
        return f"MetricSeries({len(self)} samples, {self.start} -> {self.end})"

    @property
    def samples(self) -> tuple[MetricSample, ...]:
        return self._samples

    @property
    def timestamps(self) -> list[datetime]:
        return [s.timestamp for s in self._samples]

    @property
    def start(self) -> datetime | None:
        return self._samples[0].timestamp if self._samples else None

    @property
    def end(self) -> datetime | None:
        return self._samples[-1].timestamp if self._samples else None

    @property
    def duration(self) -> timedelta:
        """Time between the first and last sample."""
        if len(self._samples) < 2:
            return timedelta(0)
        return self.end - self.start

    def cpu_values(self) -> np.ndarray:
        """Get CPU percentages as a float array."""
        return np.array([s.cpu_percent for s in self._samples], dtype=float)

    def sampling_interval(self) -> timedelta:
        """Median spacing between consecutive samples.

        Returns:
            Median step, or zero for series shorter than two samples
        """
        if len(self._samples) < 2:
            return timedelta(0)
        steps = np.array(
            [(b.timestamp - a.timestamp).total_seconds() for a, b in zip(self._samples, self._samples[1:])]
        )
        return timedelta(seconds=float(np.median(steps)))

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame) -> "MetricSeries":
        """Create a series from a DataFrame.

        Args:
            df: DataFrame with ``timestamp`` and ``cpu_percent`` columns and
                optional ``memory_percent`` and ``request_count`` columns

        Returns:
            MetricSeries in the DataFrame's row order
        """
        missing = {"timestamp", "cpu_percent"} - set(df.columns)
        if missing:
            raise InvalidInputError(f"Missing required columns: {sorted(missing)}")

        timestamps = pd.to_datetime(df["timestamp"])
        requests_col = None
        if "request_count" in df.columns:
            try:
                requests_col = pd.to_numeric(df["request_count"]).astype("Int64")
            except (TypeError, ValueError) as e:
                raise InvalidInputError(f"request_count must hold integers: {e}") from e
        samples = []
        for i, ts in enumerate(timestamps):
            memory = df["memory_percent"].iloc[i] if "memory_percent" in df.columns else None
            requests = requests_col.iloc[i] if requests_col is not None else None
            samples.append(
                MetricSample(
                    timestamp=ts.to_pydatetime(),
                    cpu_percent=df["cpu_percent"].iloc[i],
                    memory_percent=None if pd.isna(memory) else memory,
                    request_count=None if pd.isna(requests) else requests,
                )
            )
        return cls(samples)

    def to_dataframe(self) -> pd.DataFrame:
        """Convert the series to a DataFrame with one row per sample."""
        return pd.DataFrame(
            [
                {
                    "timestamp": s.timestamp,
                    "cpu_percent": s.cpu_percent,
                    "memory_percent": s.memory_percent,
                    "request_count": s.request_count,
                }
                for s in self._samples
            ],
            columns=SERIES_COLUMNS,
        )


def load_metrics_csv(path: str | Path) -> MetricSeries:
    """Load a metric series from a CSV export.

    Args:
        path: CSV file with ``timestamp`` and ``cpu_percent`` columns

    Returns:
        MetricSeries with the file's samples
    """
    path = Path(path)
    if not path.exists():
        raise InvalidInputError(f"Metrics file not found: {path}")

    df = pd.read_csv(path, parse_dates=["timestamp"])
    return MetricSeries.from_dataframe(df)
