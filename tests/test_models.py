"""Unit tests for autoscale configuration value objects and build options."""

from datetime import datetime, timedelta

import pytest

from vmss_autoscale.data import METRIC_CPU, METRIC_MEMORY
from vmss_autoscale.exceptions import InvalidConfigurationError, InvalidInputError
from vmss_autoscale.scaling import (
    AutoscaleConfiguration,
    AutoscaleProfile,
    AutoscaleRule,
    BuildOptions,
    Capacity,
    ComparisonOperator,
    NotificationTarget,
    RecurrenceWindow,
    ScaleAction,
    ScaleDirection,
    ScalingBias,
)
from vmss_autoscale.scaling.models import iso_duration


def make_rule(**overrides):
    values = dict(
        name="Scale out",
        metric_name=METRIC_CPU,
        operator=ComparisonOperator.GREATER_THAN,
        threshold=75.0,
        time_window=timedelta(minutes=5),
        cooldown=timedelta(minutes=5),
        scale_action=ScaleAction(ScaleDirection.INCREASE, 1),
    )
    values.update(overrides)
    return AutoscaleRule(**values)


class TestIsoDuration:
    """Tests for ISO 8601 duration formatting."""

    @pytest.mark.parametrize("value,expected", [
        (timedelta(minutes=5), "PT5M"),
        (timedelta(hours=1, minutes=30), "PT1H30M"),
        (timedelta(hours=2), "PT2H"),
        (timedelta(seconds=30), "PT30S"),
        (timedelta(0), "PT0M"),
    ])
    def test_format(self, value, expected):
        """Test duration strings."""
        assert iso_duration(value) == expected


class TestAutoscaleRule:
    """Tests for AutoscaleRule validation and evaluation."""

    def test_is_met(self):
        """Test threshold comparison."""
        rule = make_rule()

        assert rule.is_met(80.0)
        assert not rule.is_met(75.0)
        assert not rule.is_met(None)

    def test_operator_by_value(self):
        """Test operators may be given by their wire value."""
        rule = make_rule(operator="LessThanOrEqual", threshold=20)

        assert rule.operator == ComparisonOperator.LESS_THAN_OR_EQUAL
        assert rule.is_met(20.0)
        assert isinstance(rule.threshold, float)

    def test_negative_threshold(self):
        """Test negative thresholds are rejected, not clamped."""
        with pytest.raises(InvalidInputError, match="threshold must be non-negative"):
            make_rule(threshold=-1.0)

    def test_non_numeric_threshold(self):
        """Test string thresholds are rejected."""
        with pytest.raises(InvalidInputError, match="threshold must be a number"):
            make_rule(threshold="75")

    def test_unknown_metric(self):
        """Test unknown metric names are rejected."""
        with pytest.raises(InvalidInputError, match="Unknown metric"):
            make_rule(metric_name="Disk Queue Length")

    def test_unknown_operator(self):
        """Test unknown operators are rejected."""
        with pytest.raises(InvalidInputError, match="Unknown operator"):
            make_rule(operator="Between")

    def test_zero_window(self):
        """Test the time window must be positive."""
        with pytest.raises(InvalidInputError, match="time_window must be positive"):
            make_rule(time_window=timedelta(0))

    @pytest.mark.parametrize("field", ["time_window", "cooldown", "time_grain"])
    def test_durations_must_be_timedeltas(self, field):
        """Test plain numbers are rejected for durations."""
        with pytest.raises(InvalidInputError, match=f"{field} must be a timedelta"):
            make_rule(**{field: 5})

    def test_scale_action_validation(self):
        """Test scale action direction and delta."""
        with pytest.raises(InvalidInputError, match="instance_delta must be at least 1"):
            ScaleAction(ScaleDirection.INCREASE, 0)
        with pytest.raises(InvalidInputError, match="Unknown scale direction"):
            ScaleAction("Sideways", 1)

        assert ScaleAction("Decrease", 2).signed_delta == -2


class TestCapacity:
    """Tests for Capacity bounds."""

    def test_clamp(self):
        """Test clamping into bounds."""
        capacity = Capacity(minimum=2, maximum=5, default=3)

        assert capacity.clamp(1) == 2
        assert capacity.clamp(4) == 4
        assert capacity.clamp(9) == 5
        assert capacity.contains(5)
        assert not capacity.contains(6)

    def test_default_outside_bounds(self):
        """Test default must lie within minimum and maximum."""
        with pytest.raises(InvalidConfigurationError, match="minimum <= default <= maximum"):
            Capacity(minimum=2, maximum=5, default=6)

    def test_max_below_min(self):
        """Test inverted bounds are rejected."""
        with pytest.raises(InvalidConfigurationError):
            Capacity(minimum=5, maximum=2, default=3)

    def test_non_integer(self):
        """Test fractional instance counts are rejected."""
        with pytest.raises(InvalidInputError, match="must be an integer"):
            Capacity(minimum=1, maximum=2.5, default=1)


class TestRecurrenceWindow:
    """Tests for RecurrenceWindow."""

    def test_contains_same_day(self):
        """Test a daytime window on weekdays only."""
        window = RecurrenceWindow(("Monday",), 8, 0, 18, 0)

        assert window.contains(datetime(2024, 1, 1, 8, 0))  # Monday
        assert window.contains(datetime(2024, 1, 1, 17, 59))
        assert not window.contains(datetime(2024, 1, 1, 18, 0))
        assert not window.contains(datetime(2024, 1, 2, 9, 0))  # Tuesday

    def test_contains_past_midnight(self):
        """Test a window that runs into the next day."""
        window = RecurrenceWindow(("Sunday",), 23, 30, 2, 0)

        assert window.contains(datetime(2024, 1, 7, 23, 45))  # Sunday
        assert window.contains(datetime(2024, 1, 8, 1, 0))  # Monday morning
        assert not window.contains(datetime(2024, 1, 8, 23, 45))
        assert not window.contains(datetime(2024, 1, 8, 3, 0))

    def test_empty_window(self):
        """Test start equal to end is rejected."""
        with pytest.raises(InvalidInputError, match="must not be empty"):
            RecurrenceWindow(("Monday",), 8, 0, 8, 0)

    def test_unknown_day(self):
        """Test day names are validated."""
        with pytest.raises(InvalidInputError, match="Unknown recurrence days"):
            RecurrenceWindow(("Funday",), 8, 0, 9, 0)

    def test_non_integer_fields(self):
        """Test hours and minutes must be integers."""
        with pytest.raises(InvalidInputError, match="start_hour must be an integer"):
            RecurrenceWindow(("Monday",), 8.5, 0, 9, 0)
        with pytest.raises(InvalidInputError, match="end_minute must be an integer"):
            RecurrenceWindow(("Monday",), 8, 0, 9, "30")

    def test_to_dict(self):
        """Test the recurrence shape."""
        data = RecurrenceWindow(("Monday", "Friday"), 7, 45, 19, 0).to_dict()

        assert data["frequency"] == "Week"
        assert data["schedule"] == {
            "timeZone": "UTC",
            "days": ["Monday", "Friday"],
            "hours": [7],
            "minutes": [45],
        }
        assert data["window"] == {"start": "07:45", "end": "19:00"}


class TestAutoscaleProfile:
    """Tests for AutoscaleProfile and AutoscaleConfiguration."""

    def test_rules_need_room_to_scale(self):
        """Test scale rules on a zero-width profile are rejected."""
        with pytest.raises(InvalidConfigurationError, match="no room to scale"):
            AutoscaleProfile("Default", Capacity(2, 2, 2), rules=(make_rule(),))

    def test_fixed_profile_without_rules(self):
        """Test a fixed profile without rules is valid."""
        profile = AutoscaleProfile("Fixed", Capacity(2, 2, 2))

        assert profile.rules == ()
        assert profile.is_active(datetime(2024, 1, 1))

    def test_configuration_requires_profiles(self):
        """Test a configuration needs at least one profile."""
        with pytest.raises(InvalidConfigurationError, match="at least one profile"):
            AutoscaleConfiguration("autoscale-x", "/subscriptions/x", profiles=())

    def test_configuration_requires_uri(self):
        """Test a configuration needs a target resource."""
        with pytest.raises(InvalidInputError, match="target_resource_uri"):
            AutoscaleConfiguration("autoscale-x", " ", profiles=(AutoscaleProfile("Default", Capacity(1, 1, 1)),))

    def test_active_profile(self):
        """Test scheduled profiles win inside their window."""
        default = AutoscaleProfile("Default", Capacity(1, 3, 1), rules=(make_rule(),))
        peak = AutoscaleProfile(
            "Peak",
            Capacity(3, 3, 3),
            recurrence=RecurrenceWindow(("Monday",), 8, 0, 10, 0),
        )
        config = AutoscaleConfiguration("autoscale-x", "/subscriptions/x", profiles=(peak, default))

        assert config.default_profile is default
        assert config.active_profile(datetime(2024, 1, 1, 9)) is peak
        assert config.active_profile(datetime(2024, 1, 1, 11)) is default

    def test_notification_email(self):
        """Test notification emails are validated."""
        assert NotificationTarget("ops@example.com").email == "ops@example.com"
        with pytest.raises(InvalidInputError, match="Invalid notification email"):
            NotificationTarget("not-an-email")

    def test_rule_metric_variants(self):
        """Test rules on memory are accepted."""
        assert make_rule(metric_name=METRIC_MEMORY).metric_name == "Memory Percentage"


class TestBuildOptions:
    """Tests for BuildOptions."""

    def test_defaults(self):
        """Test default options."""
        options = BuildOptions()

        assert options.predictive is False
        assert options.bias == ScalingBias.BALANCED
        assert options.notification_emails == ()
        assert options.lead_time_minutes == 15

    def test_from_dict(self):
        """Test options from a plain dictionary."""
        options = BuildOptions.from_dict({
            "predictive": True,
            "bias": "performance_optimized",
            "notification_emails": ["ops@example.com"],
        })

        assert options.bias == ScalingBias.PERFORMANCE_OPTIMIZED
        assert options.notification_emails == ("ops@example.com",)
        assert options.to_dict()["bias"] == "performance_optimized"

    def test_unknown_key(self):
        """Test unknown option keys are rejected."""
        with pytest.raises(InvalidInputError, match="Unknown BuildOptions keys"):
            BuildOptions.from_dict({"predictive": True, "costOptimized": True})

    def test_predictive_must_be_bool(self):
        """Test truthy values are not coerced."""
        with pytest.raises(InvalidInputError, match="predictive must be a boolean"):
            BuildOptions(predictive="yes")

    def test_emails_must_be_list(self):
        """Test a bare string is not split into characters."""
        with pytest.raises(InvalidInputError, match="notification_emails"):
            BuildOptions(notification_emails="ops@example.com")

    def test_lead_time_bounds(self):
        """Test lead time must fit within a day."""
        with pytest.raises(InvalidInputError, match="lead_time_minutes"):
            BuildOptions(lead_time_minutes=-5)
        with pytest.raises(InvalidInputError, match="lead_time_minutes"):
            BuildOptions(lead_time_minutes=1440)
