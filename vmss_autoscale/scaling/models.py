"""Autoscale configuration value objects.

The shapes mirror the ``Microsoft.Insights/autoscalesettings`` resource so a
downstream template emitter can serialize them without extra lookups.
"""

import operator
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from numbers import Real

from vmss_autoscale.data.series import (
    METRIC_CPU,
    METRIC_MEMORY,
    METRIC_REQUESTS,
    WEEKDAYS,
    as_utc,
)
from vmss_autoscale.exceptions import InvalidConfigurationError, InvalidInputError

KNOWN_METRICS = {METRIC_CPU, METRIC_MEMORY, METRIC_REQUESTS}

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def iso_duration(value: timedelta) -> str:
    """Format a duration as ISO 8601, e.g. ``PT5M`` or ``PT1H30M``."""
    total = int(value.total_seconds())
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    parts = "".join(
        f"{amount}{unit}" for amount, unit in ((hours, "H"), (minutes, "M"), (seconds, "S")) if amount
    )
    return f"PT{parts or '0M'}"


class ComparisonOperator(str, Enum):
    """Metric trigger comparison."""

    GREATER_THAN = "GreaterThan"
    GREATER_THAN_OR_EQUAL = "GreaterThanOrEqual"
    LESS_THAN = "LessThan"
    LESS_THAN_OR_EQUAL = "LessThanOrEqual"
    EQUALS = "Equals"
    NOT_EQUALS = "NotEquals"

    def compare(self, value: float, threshold: float) -> bool:
        return _OPERATORS[self](value, threshold)


_OPERATORS = {
    ComparisonOperator.GREATER_THAN: operator.gt,
    ComparisonOperator.GREATER_THAN_OR_EQUAL: operator.ge,
    ComparisonOperator.LESS_THAN: operator.lt,
    ComparisonOperator.LESS_THAN_OR_EQUAL: operator.le,
    ComparisonOperator.EQUALS: operator.eq,
    ComparisonOperator.NOT_EQUALS: operator.ne,
}


class ScaleDirection(str, Enum):
    """Direction of a scale action."""

    INCREASE = "Increase"
    DECREASE = "Decrease"


@dataclass(frozen=True)
class ScaleAction:
    """Change applied when a rule fires."""

    direction: ScaleDirection
    instance_delta: int = 1

    def __post_init__(self):
        try:
            object.__setattr__(self, "direction", ScaleDirection(self.direction))
        except ValueError as e:
            raise InvalidInputError(f"Unknown scale direction: {self.direction!r}") from e
        if isinstance(self.instance_delta, bool) or not isinstance(self.instance_delta, int):
            raise InvalidInputError("instance_delta must be an integer")
        if self.instance_delta < 1:
            raise InvalidInputError("instance_delta must be at least 1")

    @property
    def signed_delta(self) -> int:
        if self.direction == ScaleDirection.INCREASE:
            return self.instance_delta
        return -self.instance_delta


@dataclass(frozen=True)
class AutoscaleRule:
    """Threshold rule on one metric.

    Attributes:
        name: Rule name, also used for cooldown tracking
        metric_name: Metric the rule evaluates (e.g. "Percentage CPU")
        operator: Comparison between metric value and threshold
        threshold: Trigger threshold (non-negative)
        time_window: Period over which the condition must hold
        cooldown: Minimum time between two firings of this rule
        scale_action: Direction and instance delta
        time_grain: Metric sampling granularity
        statistic: Aggregation within a time grain
    """

    name: str
    metric_name: str
    operator: ComparisonOperator
    threshold: float
    time_window: timedelta
    cooldown: timedelta
    scale_action: ScaleAction
    time_grain: timedelta = timedelta(minutes=1)
    statistic: str = "Average"

    def __post_init__(self):
        if not self.name:
            raise InvalidInputError("Rule name must not be empty")
        if self.metric_name not in KNOWN_METRICS:
            raise InvalidInputError(f"Unknown metric: {self.metric_name}")
        if isinstance(self.threshold, bool) or not isinstance(self.threshold, Real):
            raise InvalidInputError("threshold must be a number")
        if self.threshold < 0:
            raise InvalidInputError(f"threshold must be non-negative, got {self.threshold}")
        for name in ("time_window", "cooldown", "time_grain"):
            if not isinstance(getattr(self, name), timedelta):
                raise InvalidInputError(f"{name} must be a timedelta")
        if self.time_window <= timedelta(0):
            raise InvalidInputError("time_window must be positive")
        if self.cooldown < timedelta(0):
            raise InvalidInputError("cooldown must be non-negative")
        try:
            object.__setattr__(self, "operator", ComparisonOperator(self.operator))
        except ValueError as e:
            raise InvalidInputError(f"Unknown operator: {self.operator!r}") from e
        object.__setattr__(self, "threshold", float(self.threshold))

    @property
    def direction(self) -> ScaleDirection:
        return self.scale_action.direction

    def is_met(self, value: float | None) -> bool:
        """Check the rule condition for one metric value.

        A missing value never satisfies the condition.
        """
        if value is None:
            return False
        return self.operator.compare(value, self.threshold)

    def to_dict(self, metric_resource_uri: str | None = None) -> dict:
        trigger = {
            "metricName": self.metric_name,
            "timeGrain": iso_duration(self.time_grain),
            "statistic": self.statistic,
            "timeWindow": iso_duration(self.time_window),
            "timeAggregation": self.statistic,
            "operator": self.operator.value,
            "threshold": self.threshold,
        }
        if metric_resource_uri:
            trigger["metricResourceUri"] = metric_resource_uri
        return {
            "name": self.name,
            "metricTrigger": trigger,
            "scaleAction": {
                "direction": self.direction.value,
                "type": "ChangeCount",
                "value": str(self.scale_action.instance_delta),
                "cooldown": iso_duration(self.cooldown),
            },
        }


@dataclass(frozen=True)
class Capacity:
    """Instance count bounds of a profile."""

    minimum: int
    maximum: int
    default: int

    def __post_init__(self):
        for name in ("minimum", "maximum", "default"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidInputError(f"capacity {name} must be an integer")
        if self.minimum < 0:
            raise InvalidConfigurationError("capacity minimum must be non-negative")
        if not self.minimum <= self.default <= self.maximum:
            raise InvalidConfigurationError(
                f"capacity must satisfy minimum <= default <= maximum, got "
                f"{self.minimum} <= {self.default} <= {self.maximum}"
            )

    def clamp(self, instances: int) -> int:
        return max(self.minimum, min(instances, self.maximum))

    def contains(self, instances: int) -> bool:
        return self.minimum <= instances <= self.maximum

    def to_dict(self) -> dict:
        return {"minimum": self.minimum, "maximum": self.maximum, "default": self.default}


@dataclass(frozen=True)
class RecurrenceWindow:
    """Weekly recurring time window in which a profile is active.

    The window opens at ``start_hour:start_minute`` on each listed day and
    closes at ``end_hour:end_minute``; a window whose end is earlier than its
    start runs past midnight into the next day.
    """

    days: tuple[str, ...]
    start_hour: int
    start_minute: int
    end_hour: int
    end_minute: int
    time_zone: str = "UTC"

    def __post_init__(self):
        object.__setattr__(self, "days", tuple(self.days))
        if not self.days:
            raise InvalidInputError("Recurrence needs at least one day")
        unknown = [d for d in self.days if d not in WEEKDAYS]
        if unknown:
            raise InvalidInputError(f"Unknown recurrence days: {unknown}")
        for name in ("start_hour", "start_minute", "end_hour", "end_minute"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidInputError(f"{name} must be an integer")
        for name in ("start_hour", "end_hour"):
            if not 0 <= getattr(self, name) <= 23:
                raise InvalidInputError(f"{name} must be between 0 and 23")
        for name in ("start_minute", "end_minute"):
            if not 0 <= getattr(self, name) <= 59:
                raise InvalidInputError(f"{name} must be between 0 and 59")
        if self.start_offset == self.end_offset:
            raise InvalidInputError("Recurrence window must not be empty")

    @property
    def start_offset(self) -> int:
        """Window start in minutes after midnight."""
        return self.start_hour * 60 + self.start_minute

    @property
    def end_offset(self) -> int:
        """Window end in minutes after midnight."""
        return self.end_hour * 60 + self.end_minute

    def contains(self, timestamp: datetime) -> bool:
        ts = as_utc(timestamp)
        minute_of_day = ts.hour * 60 + ts.minute
        day = WEEKDAYS[ts.weekday()]

        if self.start_offset < self.end_offset:
            return day in self.days and self.start_offset <= minute_of_day < self.end_offset

        if minute_of_day >= self.start_offset:
            return day in self.days
        if minute_of_day < self.end_offset:
            return WEEKDAYS[(ts.weekday() - 1) % 7] in self.days
        return False

    def to_dict(self) -> dict:
        return {
            "frequency": "Week",
            "schedule": {
                "timeZone": self.time_zone,
                "days": list(self.days),
                "hours": [self.start_hour],
                "minutes": [self.start_minute],
            },
            "window": {
                "start": f"{self.start_hour:02d}:{self.start_minute:02d}",
                "end": f"{self.end_hour:02d}:{self.end_minute:02d}",
            },
        }


@dataclass(frozen=True)
class AutoscaleProfile:
    """Named bundle of capacity bounds and rules.

    Attributes:
        name: Profile name
        capacity: Instance bounds while the profile is active
        rules: Scale rules evaluated while the profile is active
        recurrence: Time window for scheduled profiles, None for the default
        warnings: Annotations attached during synthesis
    """

    name: str
    capacity: Capacity
    rules: tuple[AutoscaleRule, ...] = ()
    recurrence: RecurrenceWindow | None = None
    warnings: tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "rules", tuple(self.rules))
        object.__setattr__(self, "warnings", tuple(self.warnings))
        if not self.name:
            raise InvalidInputError("Profile name must not be empty")
        if self.rules and self.capacity.minimum == self.capacity.maximum:
            raise InvalidConfigurationError(
                f"Profile '{self.name}' has scale rules but no room to scale "
                f"(minimum == maximum == {self.capacity.minimum})"
            )

    def is_active(self, timestamp: datetime) -> bool:
        return self.recurrence is None or self.recurrence.contains(timestamp)

    def to_dict(self, target_resource_uri: str | None = None) -> dict:
        result = {
            "name": self.name,
            "capacity": self.capacity.to_dict(),
            "rules": [rule.to_dict(target_resource_uri) for rule in self.rules],
        }
        if self.recurrence is not None:
            result["recurrence"] = self.recurrence.to_dict()
        return result


@dataclass(frozen=True)
class NotificationTarget:
    """Email recipient for scale notifications."""

    email: str
    operation: str = "Scale"

    def __post_init__(self):
        if not isinstance(self.email, str) or not _EMAIL_PATTERN.match(self.email):
            raise InvalidInputError(f"Invalid notification email: {self.email!r}")


@dataclass(frozen=True)
class PredictiveAutoscalePolicy:
    """Platform predictive autoscale setting."""

    scale_mode: str = "Enabled"
    look_ahead: timedelta = timedelta(minutes=15)

    def to_dict(self) -> dict:
        return {
            "scaleMode": self.scale_mode,
            "scaleLookAheadTime": iso_duration(self.look_ahead),
        }


@dataclass(frozen=True)
class AutoscaleConfiguration:
    """Complete autoscale setting for one scale set."""

    name: str
    target_resource_uri: str
    profiles: tuple[AutoscaleProfile, ...]
    notifications: tuple[NotificationTarget, ...] = ()
    enabled: bool = True
    predictive_policy: PredictiveAutoscalePolicy | None = None

    def __post_init__(self):
        object.__setattr__(self, "profiles", tuple(self.profiles))
        object.__setattr__(self, "notifications", tuple(self.notifications))
        if not isinstance(self.target_resource_uri, str) or not self.target_resource_uri.strip():
            raise InvalidInputError("target_resource_uri must not be empty")
        if not self.profiles:
            raise InvalidConfigurationError("Autoscale configuration needs at least one profile")

    @property
    def default_profile(self) -> AutoscaleProfile:
        """First profile without a recurrence, else the first profile."""
        for profile in self.profiles:
            if profile.recurrence is None:
                return profile
        return self.profiles[0]

    def active_profile(self, timestamp: datetime) -> AutoscaleProfile:
        """Profile in force at ``timestamp``.

        Scheduled profiles win inside their window; otherwise the default
        profile applies.
        """
        for profile in self.profiles:
            if profile.recurrence is not None and profile.recurrence.contains(timestamp):
                return profile
        return self.default_profile

    def to_dict(self) -> dict:
        result = {
            "name": self.name,
            "enabled": self.enabled,
            "targetResourceUri": self.target_resource_uri,
            "profiles": [p.to_dict(self.target_resource_uri) for p in self.profiles],
            "notifications": [],
        }
        if self.notifications:
            result["notifications"] = [
                {
                    "operation": "Scale",
                    "email": {
                        "sendToSubscriptionAdministrator": False,
                        "sendToSubscriptionCoAdministrators": False,
                        "customEmails": [n.email for n in self.notifications],
                    },
                }
            ]
        if self.predictive_policy is not None:
            result["predictiveAutoscalePolicy"] = self.predictive_policy.to_dict()
        return result
