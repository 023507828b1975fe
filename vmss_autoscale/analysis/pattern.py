"""Load pattern classification results."""

from dataclasses import dataclass
from enum import Enum

from vmss_autoscale.exceptions import InvalidConfigurationError, InvalidInputError


class PatternType(str, Enum):
    """Temporal behavior of a workload."""

    STEADY = "steady"
    CYCLICAL = "cyclical"
    BURSTY = "bursty"
    GROWING = "growing"
    DECLINING = "declining"
    UNPREDICTABLE = "unpredictable"


@dataclass(frozen=True)
class LoadCharacteristics:
    """Summary statistics of CPU load (percent)."""

    average_load: float
    peak_load: float
    baseline_load: float
    volatility: float

    def to_dict(self) -> dict:
        return {
            "average_load": self.average_load,
            "peak_load": self.peak_load,
            "baseline_load": self.baseline_load,
            "volatility": self.volatility,
        }


@dataclass(frozen=True)
class ScalingRecommendations:
    """Recommended instance count bounds.

    Attributes:
        recommended_min_instances: Lower capacity bound (>= 1)
        recommended_max_instances: Upper capacity bound (>= min)
        recommended_default_instances: Starting capacity, if known
        aggressive_scaling: Load swings hard enough to warrant fast, large
            scale-out steps
        predictive_scaling: Load is regular enough to pre-provision ahead
            of demand
    """

    recommended_min_instances: int
    recommended_max_instances: int
    recommended_default_instances: int | None = None
    aggressive_scaling: bool = False
    predictive_scaling: bool = False

    def __post_init__(self):
        for name in ("recommended_min_instances", "recommended_max_instances"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidInputError(f"{name} must be an integer")
        if self.recommended_min_instances < 1:
            raise InvalidConfigurationError("recommended_min_instances must be at least 1")
        if self.recommended_max_instances < self.recommended_min_instances:
            raise InvalidConfigurationError(
                "recommended_max_instances must be >= recommended_min_instances"
            )
        default = self.recommended_default_instances
        if default is not None and not (
            self.recommended_min_instances <= default <= self.recommended_max_instances
        ):
            raise InvalidConfigurationError(
                "recommended_default_instances must lie within the recommended bounds"
            )
        for name in ("aggressive_scaling", "predictive_scaling"):
            if not isinstance(getattr(self, name), bool):
                raise InvalidInputError(f"{name} must be a boolean")

    @property
    def has_scaling_range(self) -> bool:
        return self.recommended_max_instances > self.recommended_min_instances

    def to_dict(self) -> dict:
        return {
            "recommended_min_instances": self.recommended_min_instances,
            "recommended_max_instances": self.recommended_max_instances,
            "recommended_default_instances": self.recommended_default_instances,
            "aggressive_scaling": self.aggressive_scaling,
            "predictive_scaling": self.predictive_scaling,
        }


@dataclass(frozen=True)
class PeriodicityAnalysis:
    """Detected repeating load window.

    Attributes:
        period: "daily" or "weekly"
        periods_observed: Complete periods covered by the series
        peak_hours: Hours of day (0-23) with above-average load
        peak_days: Weekday names with above-average load
        strength: Between-bucket to within-bucket variance ratio, None
            when no within-bucket noise was observed
    """

    period: str
    periods_observed: int
    peak_hours: tuple[int, ...] = ()
    peak_days: tuple[str, ...] = ()
    strength: float | None = None

    def to_dict(self) -> dict:
        return {
            "period": self.period,
            "periods_observed": self.periods_observed,
            "peak_hours": list(self.peak_hours),
            "peak_days": list(self.peak_days),
            "strength": self.strength,
        }


@dataclass(frozen=True)
class TrendAnalysis:
    """Linear trend of CPU load over the sample index."""

    slope: float
    r_squared: float

    def to_dict(self) -> dict:
        return {"slope": self.slope, "r_squared": self.r_squared}


@dataclass(frozen=True)
class LoadPattern:
    """Immutable result of a load pattern analysis."""

    pattern_type: PatternType
    characteristics: LoadCharacteristics
    scaling_recommendations: ScalingRecommendations
    periodicity: PeriodicityAnalysis | None = None
    trend: TrendAnalysis | None = None
    confidence: int = 50
    sample_count: int = 0

    @property
    def periods_observed(self) -> int:
        return self.periodicity.periods_observed if self.periodicity else 0

    def to_dict(self) -> dict:
        return {
            "pattern_type": self.pattern_type.value,
            "characteristics": self.characteristics.to_dict(),
            "scaling_recommendations": self.scaling_recommendations.to_dict(),
            "periodicity": self.periodicity.to_dict() if self.periodicity else None,
            "trend": self.trend.to_dict() if self.trend else None,
            "confidence": self.confidence,
            "sample_count": self.sample_count,
        }
