"""Autoscale rule synthesis, configuration building and simulation."""

from vmss_autoscale.scaling.config import (
    ScalingBias,
    BiasTuning,
    BuildOptions,
    PERFORMANCE_TUNING,
    BALANCED_TUNING,
    COST_TUNING,
    get_tuning,
)
from vmss_autoscale.scaling.models import (
    ComparisonOperator,
    ScaleDirection,
    ScaleAction,
    AutoscaleRule,
    Capacity,
    RecurrenceWindow,
    AutoscaleProfile,
    NotificationTarget,
    PredictiveAutoscalePolicy,
    AutoscaleConfiguration,
)
from vmss_autoscale.scaling.rules import RuleSet, RuleSynthesizer
from vmss_autoscale.scaling.builder import AutoscaleConfigBuilder
from vmss_autoscale.scaling.advisor import (
    Confidence,
    RecommendedAction,
    PredictiveScalingRecommendation,
    PredictiveScalingAdvisor,
)
from vmss_autoscale.scaling.simulator import (
    ScaleEvent,
    SimulationSummary,
    ScalingSimulation,
    ScalingSimulator,
)

__all__ = [
    "ScalingBias",
    "BiasTuning",
    "BuildOptions",
    "PERFORMANCE_TUNING",
    "BALANCED_TUNING",
    "COST_TUNING",
    "get_tuning",
    "ComparisonOperator",
    "ScaleDirection",
    "ScaleAction",
    "AutoscaleRule",
    "Capacity",
    "RecurrenceWindow",
    "AutoscaleProfile",
    "NotificationTarget",
    "PredictiveAutoscalePolicy",
    "AutoscaleConfiguration",
    "RuleSet",
    "RuleSynthesizer",
    "AutoscaleConfigBuilder",
    "Confidence",
    "RecommendedAction",
    "PredictiveScalingRecommendation",
    "PredictiveScalingAdvisor",
    "ScaleEvent",
    "SimulationSummary",
    "ScalingSimulation",
    "ScalingSimulator",
]
