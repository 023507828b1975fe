"""Advice on enabling predictive (pre-provisioning) autoscale."""

from dataclasses import dataclass
from enum import Enum

from vmss_autoscale.analysis.pattern import LoadPattern, PatternType
from vmss_autoscale.exceptions import UnsupportedPatternError
from vmss_autoscale.scaling.models import AutoscaleConfiguration


class Confidence(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class RecommendedAction(str, Enum):
    ENABLE = "enable"
    OPTIMIZE = "optimize"
    DISABLE = "disable"


# Lead time (minutes) by pattern; cyclical matches the builder's default
LEAD_TIME_MINUTES = {
    PatternType.CYCLICAL: 15,
    PatternType.GROWING: 10,
    PatternType.BURSTY: 5,
}
DEFAULT_LEAD_TIME_MINUTES = 10

BENEFITS = {
    RecommendedAction.ENABLE: (
        "Faster response to load increases",
        "Capacity ready before recurring peaks",
        "Fewer reactive scale-out events",
    ),
    RecommendedAction.OPTIMIZE: (
        "Fine-tuned pre-provisioning window",
        "Better cost efficiency",
    ),
    RecommendedAction.DISABLE: (
        "Simpler configuration",
        "No capacity held for forecasts that may not materialize",
    ),
}

RISKS = {
    RecommendedAction.ENABLE: (
        "Over-provisioning when the forecast is wrong",
        "Higher cost if the pattern shifts",
    ),
    RecommendedAction.OPTIMIZE: (
        "Current schedule may no longer match the observed load",
    ),
    RecommendedAction.DISABLE: (
        "Slower response to load changes",
        "Reactive scaling lags behind sudden spikes",
    ),
}


@dataclass(frozen=True)
class PredictiveScalingRecommendation:
    """Whether and how to enable predictive scaling.

    Attributes:
        should_enable_predictive: Pattern is predictable enough to pre-provision
        lead_time_minutes: How far ahead capacity should be added
        confidence: Confidence in the recommendation
        rationale: Human-readable reasoning
        recommended_action: enable, optimize or disable
        benefits: Expected upsides of the recommended action
        risks: Expected downsides of the recommended action
    """

    should_enable_predictive: bool
    lead_time_minutes: int
    confidence: Confidence
    rationale: str
    recommended_action: RecommendedAction
    benefits: tuple[str, ...] = ()
    risks: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "should_enable_predictive": self.should_enable_predictive,
            "lead_time_minutes": self.lead_time_minutes,
            "confidence": self.confidence.value,
            "rationale": self.rationale,
            "recommended_action": self.recommended_action.value,
            "benefits": list(self.benefits),
            "risks": list(self.risks),
        }


class PredictiveScalingAdvisor:
    """Recommend predictive scaling for predictable load patterns."""

    MAX_VOLATILITY = 0.4
    HIGH_CONFIDENCE_PERIODS = 3
    MEDIUM_CONFIDENCE_PERIODS = 2

    def recommend(
        self,
        pattern: LoadPattern,
        existing: AutoscaleConfiguration | None = None,
    ) -> PredictiveScalingRecommendation:
        """Recommend whether to enable predictive scaling.

        Args:
            pattern: Load pattern analysis result
            existing: Current configuration, if any (not modified)

        Returns:
            PredictiveScalingRecommendation

        Raises:
            UnsupportedPatternError: If the pattern type is not recognized
        """
        pattern_type = _pattern_type(pattern)
        volatility = pattern.characteristics.volatility
        predictable = pattern_type in (PatternType.CYCLICAL, PatternType.GROWING)
        should_enable = predictable and volatility < self.MAX_VOLATILITY

        confidence = self._confidence(pattern_type, pattern.periods_observed)

        if should_enable:
            action = RecommendedAction.ENABLE
        elif existing is not None and _pre_provisions(existing):
            action = RecommendedAction.OPTIMIZE
        else:
            action = RecommendedAction.DISABLE

        return PredictiveScalingRecommendation(
            should_enable_predictive=should_enable,
            lead_time_minutes=LEAD_TIME_MINUTES.get(pattern_type, DEFAULT_LEAD_TIME_MINUTES),
            confidence=confidence,
            rationale=self._rationale(pattern_type, volatility, predictable, action),
            recommended_action=action,
            benefits=BENEFITS[action],
            risks=RISKS[action],
        )

    def _confidence(self, pattern_type: PatternType, periods_observed: int) -> Confidence:
        if pattern_type == PatternType.CYCLICAL:
            if periods_observed >= self.HIGH_CONFIDENCE_PERIODS:
                return Confidence.HIGH
            if periods_observed == self.MEDIUM_CONFIDENCE_PERIODS:
                return Confidence.MEDIUM
            return Confidence.LOW
        if pattern_type == PatternType.GROWING:
            return Confidence.MEDIUM
        return Confidence.LOW

    def _rationale(
        self,
        pattern_type: PatternType,
        volatility: float,
        predictable: bool,
        action: RecommendedAction,
    ) -> str:
        if action == RecommendedAction.ENABLE:
            return (
                f"{pattern_type.value.capitalize()} load with volatility {volatility:.2f} "
                f"is predictable enough to pre-provision capacity"
            )
        if predictable:
            reason = (
                f"{pattern_type.value.capitalize()} load is too volatile ({volatility:.2f} >= "
                f"{self.MAX_VOLATILITY}) to pre-provision safely"
            )
        else:
            reason = f"{pattern_type.value.capitalize()} load has no repeating or trending shape to forecast"
        if action == RecommendedAction.OPTIMIZE:
            return f"{reason}; review the existing scheduled capacity"
        return reason


def _pattern_type(pattern: LoadPattern) -> PatternType:
    try:
        return PatternType(pattern.pattern_type)
    except ValueError as e:
        raise UnsupportedPatternError(f"No predictive strategy for pattern type {pattern.pattern_type!r}") from e


def _pre_provisions(config: AutoscaleConfiguration) -> bool:
    if config.predictive_policy is not None and config.predictive_policy.scale_mode == "Enabled":
        return True
    return any(profile.recurrence is not None for profile in config.profiles)
