"""Threshold rule synthesis from a load pattern."""

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import timedelta

from vmss_autoscale.analysis.pattern import LoadPattern
from vmss_autoscale.data.series import METRIC_CPU
from vmss_autoscale.scaling.config import BiasTuning, ScalingBias, get_tuning, parse_bias
from vmss_autoscale.scaling.models import (
    AutoscaleRule,
    ComparisonOperator,
    ScaleAction,
    ScaleDirection,
)

logger = logging.getLogger(__name__)

SCALE_OUT_RULE_NAME = "Scale out on high CPU"
SCALE_IN_RULE_NAME = "Scale in on low CPU"

# Scale-in never triggers above this fraction of the scale-out threshold
MAX_SCALE_IN_TO_OUT_RATIO = 0.5


@dataclass(frozen=True)
class RuleSet(Sequence):
    """Synthesized rules plus any annotations about them."""

    rules: tuple[AutoscaleRule, ...] = ()
    warnings: tuple[str, ...] = ()

    def __getitem__(self, index):
        return self.rules[index]

    def __len__(self) -> int:
        return len(self.rules)

    @property
    def is_noop(self) -> bool:
        return not self.rules

    @property
    def scale_out(self) -> AutoscaleRule | None:
        return next((r for r in self.rules if r.direction == ScaleDirection.INCREASE), None)

    @property
    def scale_in(self) -> AutoscaleRule | None:
        return next((r for r in self.rules if r.direction == ScaleDirection.DECREASE), None)


class RuleSynthesizer:
    """Derive one scale-out and one scale-in CPU rule from a load pattern.

    Scale-in is always slower than scale-out (longer window, longer
    cooldown, threshold well below scale-out) to prevent flapping.
    """

    def synthesize(
        self,
        pattern: LoadPattern,
        bias: ScalingBias | str = ScalingBias.BALANCED,
    ) -> RuleSet:
        """Synthesize rules for a pattern.

        Args:
            pattern: Load pattern analysis result
            bias: Cost/performance trade-off

        Returns:
            RuleSet with a scale-out and a scale-in rule, or an empty RuleSet
            with a warning when the recommended range has no room to scale
        """
        tuning = get_tuning(bias)
        recommendations = pattern.scaling_recommendations

        if not recommendations.has_scaling_range:
            message = (
                f"No room to scale: recommended min and max instances are both "
                f"{recommendations.recommended_min_instances}; no scale rules generated"
            )
            logger.warning(message)
            return RuleSet(rules=(), warnings=(message,))

        scale_out_threshold = self.scale_out_threshold(pattern, tuning)
        scale_in_threshold = self.scale_in_threshold(pattern, tuning, scale_out_threshold)

        scale_out = AutoscaleRule(
            name=SCALE_OUT_RULE_NAME,
            metric_name=METRIC_CPU,
            operator=ComparisonOperator.GREATER_THAN,
            threshold=scale_out_threshold,
            time_window=timedelta(minutes=tuning.scale_out_window_minutes),
            cooldown=timedelta(minutes=tuning.scale_out_cooldown_minutes),
            scale_action=ScaleAction(ScaleDirection.INCREASE, tuning.scale_out_delta),
        )
        scale_in = AutoscaleRule(
            name=SCALE_IN_RULE_NAME,
            metric_name=METRIC_CPU,
            operator=ComparisonOperator.LESS_THAN,
            threshold=scale_in_threshold,
            time_window=timedelta(minutes=tuning.scale_in_window_minutes),
            cooldown=timedelta(minutes=tuning.scale_in_cooldown_minutes),
            scale_action=ScaleAction(ScaleDirection.DECREASE, tuning.scale_in_delta),
        )

        logger.debug(
            "Synthesized %s rules: scale out > %.1f%%, scale in < %.1f%%",
            parse_bias(bias).value,
            scale_out_threshold,
            scale_in_threshold,
        )
        return RuleSet(rules=(scale_out, scale_in))

    @staticmethod
    def scale_out_threshold(pattern: LoadPattern, tuning: BiasTuning) -> float:
        return round(pattern.characteristics.peak_load * tuning.scale_out_factor, 2)

    @staticmethod
    def scale_in_threshold(
        pattern: LoadPattern,
        tuning: BiasTuning,
        scale_out_threshold: float,
    ) -> float:
        """Threshold below the midpoint between baseline and average load."""
        characteristics = pattern.characteristics
        midpoint = characteristics.baseline_load + 0.5 * (
            characteristics.average_load - characteristics.baseline_load
        )
        threshold = min(
            midpoint * tuning.scale_in_factor,
            scale_out_threshold * MAX_SCALE_IN_TO_OUT_RATIO,
        )
        # Floor so rounding never lifts the threshold to the midpoint
        return math.floor(max(threshold, 0.0) * 100) / 100
