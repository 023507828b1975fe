"""Compose autoscale configurations from load patterns."""

import logging
import math
from datetime import timedelta

from vmss_autoscale.analysis.pattern import LoadPattern, PatternType
from vmss_autoscale.data.series import WEEKDAYS
from vmss_autoscale.exceptions import InvalidInputError
from vmss_autoscale.scaling.config import BuildOptions, ScalingBias
from vmss_autoscale.scaling.models import (
    AutoscaleConfiguration,
    AutoscaleProfile,
    Capacity,
    NotificationTarget,
    PredictiveAutoscalePolicy,
    RecurrenceWindow,
)
from vmss_autoscale.scaling.rules import RuleSynthesizer

logger = logging.getLogger(__name__)

DEFAULT_PROFILE_NAME = "Default"
PEAK_PROFILE_NAME = "Peak Hours"
OFF_PEAK_PROFILE_NAME = "Off-Peak Days"

# Share of the recommended maximum kept on off-peak days
OFF_PEAK_CAPACITY_FACTOR = 0.7

# Business-hours fallback when a cyclical pattern carries no peak hours
FALLBACK_PEAK_HOURS = (9, 10, 11, 12, 13, 14, 15, 16)


class AutoscaleConfigBuilder:
    """Build a full autoscale configuration for one scale set.

    The primary profile uses the pattern's recommended capacity and the
    synthesized rules. With predictive scaling on a cyclical pattern, a
    scheduled profile holds the maximum capacity through the detected peak
    window, starting ``lead_time_minutes`` early. When the cycle is weekly,
    a second scheduled profile covers the remaining days with reduced
    capacity and cost-optimized rules.
    """

    def __init__(self, rule_synthesizer: RuleSynthesizer | None = None):
        self.rule_synthesizer = rule_synthesizer or RuleSynthesizer()

    def build(
        self,
        target_resource_uri: str,
        pattern: LoadPattern,
        options: BuildOptions | dict | None = None,
    ) -> AutoscaleConfiguration:
        """Build a configuration.

        Args:
            target_resource_uri: Resource ID of the scale set
            pattern: Load pattern analysis result
            options: BuildOptions or a dict of its fields

        Returns:
            AutoscaleConfiguration ready for a template emitter

        Raises:
            InvalidInputError: If the URI is empty or options are invalid
        """
        if not isinstance(target_resource_uri, str) or not target_resource_uri.strip():
            raise InvalidInputError("target_resource_uri must not be empty")
        options = self._coerce_options(options)

        profiles = [self._default_profile(pattern, options)]
        if options.predictive and pattern.pattern_type == PatternType.CYCLICAL:
            profiles.append(self._peak_profile(pattern, options.lead_time_minutes))
            off_peak = self._off_peak_profile(pattern)
            if off_peak is not None:
                profiles.append(off_peak)

        notifications = tuple(NotificationTarget(email) for email in options.notification_emails)

        predictive_policy = None
        if options.predictive:
            predictive_policy = PredictiveAutoscalePolicy(
                scale_mode="Enabled",
                look_ahead=timedelta(minutes=options.lead_time_minutes),
            )

        config = AutoscaleConfiguration(
            name=f"autoscale-{resource_name(target_resource_uri)}",
            target_resource_uri=target_resource_uri,
            profiles=tuple(profiles),
            notifications=notifications,
            enabled=True,
            predictive_policy=predictive_policy,
        )
        logger.info(
            "Built autoscale configuration %s: %d profile(s), bias=%s, predictive=%s",
            config.name,
            len(config.profiles),
            options.bias.value,
            options.predictive,
        )
        return config

    @staticmethod
    def _coerce_options(options: BuildOptions | dict | None) -> BuildOptions:
        if options is None:
            return BuildOptions()
        if isinstance(options, BuildOptions):
            return options
        if isinstance(options, dict):
            return BuildOptions.from_dict(options)
        raise InvalidInputError(f"options must be BuildOptions or dict, got {type(options).__name__}")

    def _default_profile(self, pattern: LoadPattern, options: BuildOptions) -> AutoscaleProfile:
        recommendations = pattern.scaling_recommendations
        default = recommendations.recommended_default_instances
        if default is None:
            default = recommendations.recommended_min_instances

        rule_set = self.rule_synthesizer.synthesize(pattern, options.bias)
        return AutoscaleProfile(
            name=DEFAULT_PROFILE_NAME,
            capacity=Capacity(
                minimum=recommendations.recommended_min_instances,
                maximum=recommendations.recommended_max_instances,
                default=default,
            ),
            rules=rule_set.rules,
            warnings=rule_set.warnings,
        )

    def _peak_profile(self, pattern: LoadPattern, lead_time_minutes: int) -> AutoscaleProfile:
        max_instances = pattern.scaling_recommendations.recommended_max_instances
        periodicity = pattern.periodicity

        peak_hours = periodicity.peak_hours if periodicity and periodicity.peak_hours else FALLBACK_PEAK_HOURS
        if periodicity and periodicity.period == "weekly" and periodicity.peak_days:
            days = tuple(periodicity.peak_days)
        else:
            days = WEEKDAYS

        return AutoscaleProfile(
            name=PEAK_PROFILE_NAME,
            capacity=Capacity(minimum=max_instances, maximum=max_instances, default=max_instances),
            rules=(),
            recurrence=peak_window(peak_hours, days, lead_time_minutes),
        )

    def _off_peak_profile(self, pattern: LoadPattern) -> AutoscaleProfile | None:
        periodicity = pattern.periodicity
        if periodicity is None or periodicity.period != "weekly" or not periodicity.peak_days:
            return None
        days = tuple(d for d in WEEKDAYS if d not in periodicity.peak_days)
        if not days:
            return None

        recommendations = pattern.scaling_recommendations
        minimum = max(1, recommendations.recommended_min_instances - 1)
        maximum = max(
            minimum,
            math.ceil(recommendations.recommended_max_instances * OFF_PEAK_CAPACITY_FACTOR),
        )
        rules = ()
        if maximum > minimum:
            rules = self.rule_synthesizer.synthesize(pattern, ScalingBias.COST_OPTIMIZED).rules

        return AutoscaleProfile(
            name=OFF_PEAK_PROFILE_NAME,
            capacity=Capacity(minimum=minimum, maximum=maximum, default=minimum),
            rules=rules,
            recurrence=RecurrenceWindow(days=days, start_hour=0, start_minute=0, end_hour=23, end_minute=59),
        )


def resource_name(resource_uri: str) -> str:
    """Last segment of a resource ID, e.g. the scale set name."""
    parts = [p for p in resource_uri.strip().split("/") if p]
    return parts[-1] if parts else "vmss"


def covering_hours(hours) -> tuple[int, int]:
    """Smallest circular block of hours containing every given hour.

    Args:
        hours: Hours of day (0-23)

    Returns:
        Tuple of (first hour, hour after the last), both modulo 24
    """
    ordered = sorted(set(int(h) % 24 for h in hours))
    if len(ordered) == 24:
        return 0, 0

    # The block starts right after the largest gap between peak hours
    best_gap, start = -1, ordered[0]
    for i, hour in enumerate(ordered):
        following = ordered[(i + 1) % len(ordered)]
        gap = (following - hour - 1) % 24
        if gap > best_gap:
            best_gap, start = gap, following
    length = 24 - best_gap
    return start, (start + length) % 24


def peak_window(hours, days, lead_time_minutes: int) -> RecurrenceWindow:
    """Recurrence window over the peak hours, opened ``lead_time_minutes`` early."""
    first_hour, end_hour = covering_hours(hours)
    start_offset = first_hour * 60 - lead_time_minutes
    days = tuple(days)

    if start_offset < 0:
        start_offset += 24 * 60
        # Opening before midnight moves the window to the previous weekday
        days = tuple(WEEKDAYS[(WEEKDAYS.index(d) - 1) % 7] for d in days)

    start_hour, start_minute = divmod(start_offset, 60)
    end_minute = 0
    if (start_hour, start_minute) == (end_hour, end_minute):
        # Whole-day peak: leave a minute so the window is not empty
        end_hour, end_minute = divmod((start_offset - 1) % (24 * 60), 60)

    return RecurrenceWindow(
        days=tuple(d for d in WEEKDAYS if d in days),
        start_hour=start_hour,
        start_minute=start_minute,
        end_hour=end_hour,
        end_minute=end_minute,
    )
