"""Load pattern analysis for scale set telemetry."""

import logging
import math
from datetime import timedelta

import numpy as np

from vmss_autoscale.analysis.pattern import (
    LoadCharacteristics,
    LoadPattern,
    PatternType,
    PeriodicityAnalysis,
    ScalingRecommendations,
    TrendAnalysis,
)
from vmss_autoscale.data.series import WEEKDAYS, MetricSeries, as_utc
from vmss_autoscale.exceptions import InvalidInputError
from vmss_autoscale.utils.stats import (
    bucket_variances,
    coefficient_of_variation,
    detrend,
    linear_trend,
    percentile,
    successive_difference_variance,
)

logger = logging.getLogger(__name__)


class LoadPatternAnalyzer:
    """Classify a workload's temporal behavior and size its capacity.

    Classification runs in priority order, first match wins:
    bursty, cyclical, growing/declining, steady, unpredictable.

    Example:
        >>> analyzer = LoadPatternAnalyzer()
        >>> pattern = analyzer.analyze(series, target_utilization=70)
        >>> pattern.pattern_type
        <PatternType.CYCLICAL: 'cyclical'>
    """

    DEFAULT_TARGET_UTILIZATION = 70.0

    # Bursty: sharp peak reached by only a small share of samples
    BURST_PEAK_RATIO = 2.5
    BURST_NEAR_PEAK_BAND = 0.2
    BURST_MAX_NEAR_PEAK_FRACTION = 0.15

    # Cyclical: between-bucket variance against within-bucket noise
    CYCLE_VARIANCE_RATIO = 3.0
    CYCLE_MIN_BUCKET_COVERAGE = 0.5
    CYCLE_MIN_VARIANCE = 1e-6
    CYCLE_CLOSURE_NOISE_MULTIPLE = 2.0

    # Growing / declining: percent per sample
    TREND_MIN_SLOPE = 0.5
    TREND_MIN_R_SQUARED = 0.6

    STEADY_MAX_VOLATILITY = 0.15

    # Scaling hints
    AGGRESSIVE_MIN_VOLATILITY = 0.5
    PREDICTIVE_MAX_VOLATILITY = 0.4

    BASELINE_PERCENTILE = 10
    PEAK_HEADROOM = 1.2
    PEAK_HOUR_FACTOR = 1.2
    PEAK_DAY_FACTOR = 1.15

    def analyze(
        self,
        series,
        target_utilization: float = DEFAULT_TARGET_UTILIZATION,
    ) -> LoadPattern:
        """Analyze a metric series.

        Args:
            series: MetricSeries, list of MetricSample or DataFrame
            target_utilization: Desired CPU percent per instance (0-100]

        Returns:
            LoadPattern classification with capacity recommendations

        Raises:
            InvalidInputError: If the series is empty or out of order, or the
                target utilization is out of range
        """
        series = MetricSeries.coerce(series)
        if len(series) == 0:
            raise InvalidInputError("No metrics provided for load pattern analysis")
        if isinstance(target_utilization, bool) or not isinstance(target_utilization, (int, float)):
            raise InvalidInputError("target_utilization must be a number")
        if not 0 < target_utilization <= 100:
            raise InvalidInputError("target_utilization must be in (0, 100]")

        cpu = series.cpu_values()
        characteristics = self._characteristics(cpu)
        slope, r_squared = linear_trend(cpu)
        trend = TrendAnalysis(slope=slope, r_squared=r_squared)
        periodicity = self._detect_periodicity(series, cpu, trend)

        pattern_type = self._classify(cpu, characteristics, periodicity, trend)
        recommendations = self._recommend_capacity(pattern_type, characteristics, float(target_utilization))

        pattern = LoadPattern(
            pattern_type=pattern_type,
            characteristics=characteristics,
            scaling_recommendations=recommendations,
            periodicity=periodicity,
            trend=trend,
            confidence=self._confidence(pattern_type, characteristics, trend),
            sample_count=len(series),
        )
        logger.debug(
            "Analyzed %d samples: pattern=%s, instances=%d-%d",
            len(series),
            pattern_type.value,
            recommendations.recommended_min_instances,
            recommendations.recommended_max_instances,
        )
        return pattern

    def _characteristics(self, cpu: np.ndarray) -> LoadCharacteristics:
        return LoadCharacteristics(
            average_load=float(np.mean(cpu)),
            peak_load=float(np.max(cpu)),
            baseline_load=percentile(cpu, self.BASELINE_PERCENTILE),
            volatility=coefficient_of_variation(cpu),
        )

    def _classify(
        self,
        cpu: np.ndarray,
        characteristics: LoadCharacteristics,
        periodicity: PeriodicityAnalysis | None,
        trend: TrendAnalysis,
    ) -> PatternType:
        if self._is_bursty(cpu, characteristics):
            return PatternType.BURSTY
        if periodicity is not None:
            return PatternType.CYCLICAL
        if self._is_trending(trend):
            return PatternType.GROWING if trend.slope > 0 else PatternType.DECLINING
        if characteristics.volatility < self.STEADY_MAX_VOLATILITY:
            return PatternType.STEADY
        return PatternType.UNPREDICTABLE

    def _is_bursty(self, cpu: np.ndarray, characteristics: LoadCharacteristics) -> bool:
        peak = characteristics.peak_load
        if peak < self.BURST_PEAK_RATIO * characteristics.average_load:
            return False
        near_peak = np.sum(cpu >= peak * (1 - self.BURST_NEAR_PEAK_BAND)) / len(cpu)
        return bool(near_peak < self.BURST_MAX_NEAR_PEAK_FRACTION)

    def _is_trending(self, trend: TrendAnalysis) -> bool:
        return abs(trend.slope) > self.TREND_MIN_SLOPE and trend.r_squared >= self.TREND_MIN_R_SQUARED

    def _detect_periodicity(
        self,
        series: MetricSeries,
        cpu: np.ndarray,
        trend: TrendAnalysis,
    ) -> PeriodicityAnalysis | None:
        """Look for a repeating daily, then weekly, load window.

        Samples are bucketed by hour of period. When no bucket holds more
        than one sample the within-bucket noise is estimated from successive
        differences of the detrended series instead. A single observed
        period only counts when the series is not trending and its profile
        closes, i.e. the first and last samples sit at the same level
        within that noise.
        """
        if len(series) < 2:
            return None

        timestamps = [as_utc(ts) for ts in series.timestamps]
        covered = series.duration + series.sampling_interval()
        hours = np.array([ts.hour for ts in timestamps])
        days = np.array([ts.weekday() for ts in timestamps])

        candidates = [
            ("daily", timedelta(days=1), hours, 24, 1),
            ("weekly", timedelta(weeks=1), days * 24 + hours, 168, 2),
        ]
        for name, period, buckets, n_buckets, min_periods in candidates:
            periods_observed = covered // period
            if periods_observed < min_periods:
                continue

            between, within, stats = bucket_variances(cpu, buckets)
            if len(stats) < n_buckets * self.CYCLE_MIN_BUCKET_COVERAGE:
                continue
            if stats["count"].max() < 2:
                if self._is_trending(trend):
                    continue
                residual = detrend(cpu)
                between, _, _ = bucket_variances(residual, buckets)
                within = successive_difference_variance(residual)
                if abs(cpu[-1] - cpu[0]) > self.CYCLE_CLOSURE_NOISE_MULTIPLE * math.sqrt(within):
                    continue

            if between <= self.CYCLE_MIN_VARIANCE or between < self.CYCLE_VARIANCE_RATIO * within:
                continue

            return PeriodicityAnalysis(
                period=name,
                periods_observed=int(periods_observed),
                peak_hours=self._peak_hours(cpu, hours),
                peak_days=self._peak_days(cpu, days) if covered >= timedelta(weeks=1) else (),
                strength=between / within if within > 0 else None,
            )
        return None

    def _peak_hours(self, cpu: np.ndarray, hours: np.ndarray) -> tuple[int, ...]:
        _, _, stats = bucket_variances(cpu, hours)
        means = stats["mean"]
        cutoff = means.mean() * self.PEAK_HOUR_FACTOR
        return tuple(int(h) for h in means.index[means > cutoff])

    def _peak_days(self, cpu: np.ndarray, days: np.ndarray) -> tuple[str, ...]:
        _, _, stats = bucket_variances(cpu, days)
        means = stats["mean"]
        cutoff = means.mean() * self.PEAK_DAY_FACTOR
        return tuple(WEEKDAYS[int(d)] for d in means.index[means > cutoff])

    def _recommend_capacity(
        self,
        pattern_type: PatternType,
        characteristics: LoadCharacteristics,
        target_utilization: float,
    ) -> ScalingRecommendations:
        min_instances = max(1, _ceil(characteristics.baseline_load / target_utilization))
        max_instances = max(
            min_instances,
            _ceil(characteristics.peak_load / target_utilization * self.PEAK_HEADROOM),
        )
        default_instances = min(
            max_instances,
            max(min_instances, _ceil(characteristics.average_load / target_utilization)),
        )
        return ScalingRecommendations(
            recommended_min_instances=min_instances,
            recommended_max_instances=max_instances,
            recommended_default_instances=default_instances,
            aggressive_scaling=(
                pattern_type == PatternType.BURSTY
                or characteristics.volatility > self.AGGRESSIVE_MIN_VOLATILITY
            ),
            predictive_scaling=(
                pattern_type in (PatternType.CYCLICAL, PatternType.GROWING)
                and characteristics.volatility < self.PREDICTIVE_MAX_VOLATILITY
            ),
        )

    def _confidence(
        self,
        pattern_type: PatternType,
        characteristics: LoadCharacteristics,
        trend: TrendAnalysis,
    ) -> int:
        volatility = characteristics.volatility
        if pattern_type == PatternType.STEADY:
            return 90 if volatility < 0.2 else 70
        if pattern_type == PatternType.CYCLICAL:
            return 85 if volatility < 0.6 else 60
        if pattern_type == PatternType.BURSTY:
            return 80 if volatility > 1.0 else 60
        if pattern_type in (PatternType.GROWING, PatternType.DECLINING):
            return int(round(50 + 40 * trend.r_squared))
        return 50


def _ceil(value: float) -> int:
    # Round first so float noise such as 2.0000000000000004 does not add an instance
    return int(math.ceil(round(value, 9)))
