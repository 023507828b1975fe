"""Unit tests for autoscale configuration building."""

from datetime import datetime, timedelta

import pytest

from vmss_autoscale.analysis import LoadPatternAnalyzer
from vmss_autoscale.data.series import WEEKDAYS
from vmss_autoscale.exceptions import InvalidInputError
from vmss_autoscale.scaling import AutoscaleConfigBuilder, BuildOptions, ScalingBias
from vmss_autoscale.scaling.builder import OFF_PEAK_PROFILE_NAME, covering_hours, peak_window, resource_name


@pytest.fixture
def builder():
    """Create configuration builder."""
    return AutoscaleConfigBuilder()


@pytest.fixture
def cyclical_pattern(cyclical_series):
    """Pattern of the business-hours day."""
    return LoadPatternAnalyzer().analyze(cyclical_series)


@pytest.fixture
def predictive_options():
    """Predictive build with one notification recipient."""
    return {
        "predictive": True,
        "bias": ScalingBias.BALANCED,
        "notification_emails": ["ops@example.com"],
    }


class TestBuild:
    """Tests for AutoscaleConfigBuilder.build."""

    def test_predictive_cyclical(self, builder, resource_uri, cyclical_pattern, predictive_options):
        """Test a predictive build on a cyclical pattern adds a peak profile and notifications."""
        config = builder.build(resource_uri, cyclical_pattern, predictive_options)

        assert len(config.profiles) >= 2
        assert [n.email for n in config.notifications] == ["ops@example.com"]
        assert config.predictive_policy is not None
        assert config.predictive_policy.look_ahead == timedelta(minutes=15)

    def test_default_profile(self, builder, resource_uri, cyclical_pattern):
        """Test the primary profile takes the recommended capacity and rules."""
        config = builder.build(resource_uri, cyclical_pattern)

        assert len(config.profiles) == 1
        profile = config.profiles[0]
        assert profile.name == "Default"
        assert profile.recurrence is None
        assert profile.capacity.minimum == 1
        assert profile.capacity.maximum == 2
        assert profile.capacity.default == 1
        assert len(profile.rules) == 2
        assert config.notifications == ()
        assert config.predictive_policy is None

    def test_peak_profile(self, builder, resource_uri, cyclical_pattern, predictive_options):
        """Test the peak profile pre-provisions max capacity ahead of the window."""
        config = builder.build(resource_uri, cyclical_pattern, predictive_options)

        peak = config.profiles[1]
        assert peak.name == "Peak Hours"
        assert peak.rules == ()
        assert peak.capacity.minimum == peak.capacity.maximum == peak.capacity.default == 2
        assert peak.recurrence.days == WEEKDAYS
        assert (peak.recurrence.start_hour, peak.recurrence.start_minute) == (7, 45)
        assert (peak.recurrence.end_hour, peak.recurrence.end_minute) == (19, 0)

    def test_profile_selection_by_time(self, builder, resource_uri, cyclical_pattern, predictive_options):
        """Test the primary profile applies outside the peak window."""
        config = builder.build(resource_uri, cyclical_pattern, predictive_options)

        assert config.active_profile(datetime(2024, 1, 3, 7, 50)).name == "Peak Hours"
        assert config.active_profile(datetime(2024, 1, 3, 12, 0)).name == "Peak Hours"
        assert config.active_profile(datetime(2024, 1, 3, 19, 0)).name == "Default"
        assert config.active_profile(datetime(2024, 1, 3, 3, 0)).name == "Default"

    def test_custom_lead_time(self, builder, resource_uri, cyclical_pattern):
        """Test lead time moves the window start."""
        config = builder.build(resource_uri, cyclical_pattern, BuildOptions(predictive=True, lead_time_minutes=0))

        peak = config.profiles[1]
        assert (peak.recurrence.start_hour, peak.recurrence.start_minute) == (8, 0)
        assert config.predictive_policy.to_dict() == {"scaleMode": "Enabled", "scaleLookAheadTime": "PT0M"}

    def test_predictive_non_cyclical(self, builder, resource_uri, growing_series):
        """Test non-cyclical patterns get no scheduled profile."""
        pattern = LoadPatternAnalyzer().analyze(growing_series)

        config = builder.build(resource_uri, pattern, {"predictive": True})

        assert len(config.profiles) == 1
        assert config.predictive_policy is not None

    def test_zero_width_pattern(self, builder, resource_uri, steady_series):
        """Test a flat pattern builds a rule-less profile carrying the warning."""
        pattern = LoadPatternAnalyzer().analyze(steady_series)

        config = builder.build(resource_uri, pattern)

        profile = config.profiles[0]
        assert profile.rules == ()
        assert profile.capacity.minimum == profile.capacity.maximum == 1
        assert len(profile.warnings) == 1

    def test_bias_changes_rules(self, builder, resource_uri, cyclical_pattern):
        """Test the bias reaches rule synthesis."""
        balanced = builder.build(resource_uri, cyclical_pattern)
        performance = builder.build(resource_uri, cyclical_pattern, {"bias": "performance_optimized"})

        assert performance.profiles[0].rules[0].threshold < balanced.profiles[0].rules[0].threshold

    def test_name_from_uri(self, builder, resource_uri, cyclical_pattern):
        """Test the configuration is named after the scale set."""
        config = builder.build(resource_uri, cyclical_pattern)

        assert config.name == "autoscale-web-vmss"
        assert config.target_resource_uri == resource_uri

    @pytest.mark.parametrize("uri", ["", "   ", None])
    def test_empty_uri(self, builder, cyclical_pattern, uri):
        """Test an empty resource URI is rejected."""
        with pytest.raises(InvalidInputError, match="target_resource_uri"):
            builder.build(uri, cyclical_pattern)

    def test_unknown_option(self, builder, resource_uri, cyclical_pattern):
        """Test unknown option keys are rejected."""
        with pytest.raises(InvalidInputError, match="Unknown BuildOptions keys"):
            builder.build(resource_uri, cyclical_pattern, {"costOptimized": True})

    def test_invalid_email(self, builder, resource_uri, cyclical_pattern):
        """Test malformed notification emails propagate as errors."""
        with pytest.raises(InvalidInputError, match="Invalid notification email"):
            builder.build(resource_uri, cyclical_pattern, {"notification_emails": ["ops"]})

    def test_to_dict(self, builder, resource_uri, cyclical_pattern, predictive_options):
        """Test the emitter-ready configuration shape."""
        data = builder.build(resource_uri, cyclical_pattern, predictive_options).to_dict()

        assert data["targetResourceUri"] == resource_uri
        assert data["enabled"] is True
        assert data["profiles"][0]["capacity"] == {"minimum": 1, "maximum": 2, "default": 1}
        assert len(data["profiles"][0]["rules"]) == 2
        assert data["profiles"][0]["rules"][0]["metricTrigger"]["metricResourceUri"] == resource_uri
        assert "recurrence" in data["profiles"][1]
        assert data["notifications"][0]["email"]["customEmails"] == ["ops@example.com"]
        assert data["predictiveAutoscalePolicy"]["scaleLookAheadTime"] == "PT15M"


@pytest.fixture
def weekly_pattern(series_factory, business_day):
    """Two weeks of business-hours weekdays and quiet weekends."""
    week = business_day(n_days=5) + [20.0] * 48
    return LoadPatternAnalyzer().analyze(series_factory(week * 2))


class TestWeeklyPattern:
    """Tests for predictive builds on a weekly cycle."""

    def test_weekly_detected(self, weekly_pattern):
        """Test the two-week series is a weekly cycle peaking on weekdays."""
        assert weekly_pattern.periodicity.period == "weekly"
        assert weekly_pattern.periodicity.peak_days == WEEKDAYS[:5]

    def test_off_peak_profile(self, builder, resource_uri, weekly_pattern):
        """Test quiet days get a reduced, cost-optimized profile."""
        config = builder.build(resource_uri, weekly_pattern, {"predictive": True})

        assert [p.name for p in config.profiles] == ["Default", "Peak Hours", "Off-Peak Days"]
        peak, off_peak = config.profiles[1], config.profiles[2]
        assert peak.recurrence.days == WEEKDAYS[:5]

        assert off_peak.recurrence.days == ("Saturday", "Sunday")
        assert (off_peak.recurrence.start_hour, off_peak.recurrence.start_minute) == (0, 0)
        assert (off_peak.capacity.minimum, off_peak.capacity.maximum, off_peak.capacity.default) == (1, 2, 1)

        cost_rules = builder.rule_synthesizer.synthesize(weekly_pattern, ScalingBias.COST_OPTIMIZED).rules
        assert off_peak.rules == cost_rules

    def test_off_peak_selected_on_weekend(self, builder, resource_uri, weekly_pattern):
        """Test the off-peak profile is active on Saturday and not on Monday."""
        config = builder.build(resource_uri, weekly_pattern, {"predictive": True})

        assert config.active_profile(datetime(2024, 1, 6, 12)).name == "Off-Peak Days"
        assert config.active_profile(datetime(2024, 1, 8, 12)).name == "Peak Hours"
        assert config.active_profile(datetime(2024, 1, 8, 3)).name == "Default"

    def test_no_off_peak_without_predictive(self, builder, resource_uri, weekly_pattern):
        """Test a non-predictive build keeps a single profile."""
        config = builder.build(resource_uri, weekly_pattern)

        assert len(config.profiles) == 1

    def test_no_off_peak_for_daily_cycle(self, builder, resource_uri, cyclical_pattern):
        """Test daily cycles get no off-peak profile."""
        config = builder.build(resource_uri, cyclical_pattern, {"predictive": True})

        assert OFF_PEAK_PROFILE_NAME not in [p.name for p in config.profiles]


class TestPeakWindow:
    """Tests for peak window helpers."""

    def test_covering_hours(self):
        """Test the smallest block covering the hours."""
        assert covering_hours(range(8, 19)) == (8, 19)
        assert covering_hours([9, 14]) == (9, 15)

    def test_covering_hours_across_midnight(self):
        """Test peaks that wrap past midnight."""
        assert covering_hours([22, 23, 0, 1]) == (22, 2)

    def test_window_before_midnight_moves_days(self):
        """Test opening before midnight schedules on the previous day."""
        window = peak_window([0, 1, 2], ("Monday", "Tuesday"), 30)

        assert (window.start_hour, window.start_minute) == (23, 30)
        assert (window.end_hour, window.end_minute) == (3, 0)
        assert window.days == ("Monday", "Sunday")
        assert window.contains(datetime(2024, 1, 7, 23, 45))  # Sunday night
        assert window.contains(datetime(2024, 1, 9, 2, 30))  # Tuesday early morning

    def test_whole_day(self):
        """Test a peak covering every hour still yields a valid window."""
        window = peak_window(range(24), WEEKDAYS, 0)

        assert (window.start_hour, window.start_minute) == (0, 0)
        assert (window.end_hour, window.end_minute) == (23, 59)

    def test_resource_name(self):
        """Test the last URI segment is used."""
        assert resource_name("/subscriptions/x/virtualMachineScaleSets/api/") == "api"
