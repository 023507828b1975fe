"""Load pattern analysis."""

from vmss_autoscale.analysis.pattern import (
    PatternType,
    LoadCharacteristics,
    ScalingRecommendations,
    PeriodicityAnalysis,
    TrendAnalysis,
    LoadPattern,
)
from vmss_autoscale.analysis.analyzer import LoadPatternAnalyzer

__all__ = [
    "PatternType",
    "LoadCharacteristics",
    "ScalingRecommendations",
    "PeriodicityAnalysis",
    "TrendAnalysis",
    "LoadPattern",
    "LoadPatternAnalyzer",
]
