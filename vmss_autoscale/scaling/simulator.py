"""Replay telemetry through an autoscale configuration and account for cost."""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from numbers import Real

import pandas as pd

from vmss_autoscale.data.series import MetricSeries
from vmss_autoscale.exceptions import InvalidInputError
from vmss_autoscale.scaling.models import (
    AutoscaleConfiguration,
    AutoscaleProfile,
    AutoscaleRule,
    ScaleDirection,
)

logger = logging.getLogger(__name__)

EVENT_COLUMNS = ["timestamp", "rule_name", "direction", "from_instances", "to_instances", "metric_value"]


@dataclass(frozen=True)
class ScaleEvent:
    """One effective change of the instance count."""

    timestamp: datetime
    rule_name: str
    direction: ScaleDirection
    from_instances: int
    to_instances: int
    metric_value: float | None = None

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp.isoformat(),
            "rule_name": self.rule_name,
            "direction": self.direction.value,
            "from_instances": self.from_instances,
            "to_instances": self.to_instances,
            "metric_value": self.metric_value,
        }


@dataclass(frozen=True)
class SimulationSummary:
    """Aggregates of a simulation run."""

    # Events
    total_scale_events: int
    scale_out_events: int
    scale_in_events: int

    # Cost
    total_cost: float
    instance_hours: float

    # Capacity
    min_instances_observed: int
    max_instances_observed: int
    average_instances: float

    # Time range
    start: datetime
    end: datetime

    # Scores, 0-100; not set for fixed-capacity runs
    performance_score: float | None = None
    efficiency_score: float | None = None

    @property
    def duration_hours(self) -> float:
        return (self.end - self.start).total_seconds() / 3600

    def to_dict(self) -> dict:
        return {
            "total_scale_events": self.total_scale_events,
            "scale_out_events": self.scale_out_events,
            "scale_in_events": self.scale_in_events,
            "total_cost": self.total_cost,
            "instance_hours": self.instance_hours,
            "min_instances_observed": self.min_instances_observed,
            "max_instances_observed": self.max_instances_observed,
            "average_instances": self.average_instances,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "performance_score": self.performance_score,
            "efficiency_score": self.efficiency_score,
        }

    def __str__(self) -> str:
        text = (
            f"Simulation Results:\n"
            f"  Period: {self.start.isoformat()} to {self.end.isoformat()} ({self.duration_hours:.1f}h)\n"
            f"  Total Cost: ${self.total_cost:.2f}\n"
            f"  Instance Hours: {self.instance_hours:.2f}\n"
            f"  Instances: avg {self.average_instances:.2f}, "
            f"min {self.min_instances_observed}, max {self.max_instances_observed}\n"
            f"  Scale Events: {self.total_scale_events} "
            f"(out: {self.scale_out_events}, in: {self.scale_in_events})"
        )
        if self.performance_score is not None:
            text += (
                f"\n  Performance Score: {self.performance_score:.1f}\n"
                f"  Efficiency Score: {self.efficiency_score:.1f}"
            )
        return text


@dataclass(frozen=True)
class ScalingSimulation:
    """Result of replaying a series through a configuration."""

    events: tuple[ScaleEvent, ...]
    summary: SimulationSummary
    instances_over_time: tuple[int, ...] = field(default=())

    def events_frame(self) -> pd.DataFrame:
        """Scale events as a DataFrame, one row per event."""
        rows = [
            {
                "timestamp": e.timestamp,
                "rule_name": e.rule_name,
                "direction": e.direction.value,
                "from_instances": e.from_instances,
                "to_instances": e.to_instances,
                "metric_value": e.metric_value,
            }
            for e in self.events
        ]
        return pd.DataFrame(rows, columns=EVENT_COLUMNS)

    def to_dict(self) -> dict:
        return {
            "events": [e.to_dict() for e in self.events],
            "summary": self.summary.to_dict(),
            "instances_over_time": list(self.instances_over_time),
        }

    def __str__(self) -> str:
        return str(self.summary)


class ScalingSimulator:
    """Simulate autoscale behavior over historical telemetry.

    A single instance count is carried through the series. At each sample
    the cost of the capacity held since the previous sample is charged,
    the active profile is selected and its rules are evaluated. A rule fires
    when its condition held for every sample in its time window and its
    cooldown has elapsed.

    Two scores summarize a run. The performance score is the share of
    samples at which no scale-out rule of the active profile was triggered,
    i.e. capacity kept up with load. The efficiency score compares the
    capacity floor of the first profile with the average count held.
    """

    def simulate(
        self,
        series,
        config: AutoscaleConfiguration,
        hourly_rate_per_instance: float,
        initial_instances: int | None = None,
    ) -> ScalingSimulation:
        """Run a simulation.

        Args:
            series: MetricSeries, list of MetricSample or DataFrame
            config: Autoscale configuration to replay
            hourly_rate_per_instance: Cost of one instance for one hour
            initial_instances: Starting count (defaults to the first
                profile's default capacity)

        Returns:
            ScalingSimulation with events and summary

        Raises:
            InvalidInputError: If the series has fewer than 2 samples, the
                configuration has no profiles, the rate is negative or the
                initial count is outside the first profile's bounds
        """
        series = MetricSeries.coerce(series)
        if len(series) < 2:
            raise InvalidInputError("Simulation needs at least 2 samples")
        if not config.profiles:
            raise InvalidInputError("Configuration has no profiles to simulate")
        rate = _require_rate(hourly_rate_per_instance)

        first_capacity = config.profiles[0].capacity
        if initial_instances is None:
            current = first_capacity.default
        else:
            if isinstance(initial_instances, bool) or not isinstance(initial_instances, int):
                raise InvalidInputError("initial_instances must be an integer")
            if not first_capacity.contains(initial_instances):
                raise InvalidInputError(
                    f"initial_instances {initial_instances} outside capacity "
                    f"[{first_capacity.minimum}, {first_capacity.maximum}]"
                )
            current = initial_instances

        all_rules = {rule for profile in config.profiles for rule in profile.rules}
        last_violation: dict[AutoscaleRule, datetime] = {}
        last_fired: dict[str, datetime] = {}

        events: list[ScaleEvent] = []
        instances_over_time: list[int] = []
        total_cost = 0.0
        instance_hours = 0.0
        start = series.start
        previous_ts = None
        pressured_samples = 0

        for sample in series:
            now = sample.timestamp

            # Charge the capacity held since the previous sample
            if previous_ts is not None:
                elapsed_hours = (now - previous_ts).total_seconds() / 3600
                instance_hours += current * elapsed_hours
                total_cost += current * elapsed_hours * rate
            previous_ts = now

            for rule in all_rules:
                if not rule.is_met(sample.metric_value(rule.metric_name)):
                    last_violation[rule] = now

            profile = config.active_profile(now)
            clamped = profile.capacity.clamp(current)
            if clamped != current:
                events.append(self._record(now, profile.name, current, clamped, None))
                current = clamped

            if self._under_pressure(profile, sample):
                pressured_samples += 1

            fired = self._select_rule(profile, now, start, last_violation, last_fired)
            if fired is not None:
                target = profile.capacity.clamp(current + fired.scale_action.signed_delta)
                if target != current:
                    value = sample.metric_value(fired.metric_name)
                    events.append(self._record(now, fired.name, current, target, value))
                    last_fired[fired.name] = now
                    current = target

            instances_over_time.append(current)

        total_hours = series.duration.total_seconds() / 3600
        average_instances = instance_hours / total_hours if total_hours > 0 else float(current)
        floor = max(1, first_capacity.minimum)
        summary = SimulationSummary(
            total_scale_events=len(events),
            scale_out_events=sum(1 for e in events if e.direction == ScaleDirection.INCREASE),
            scale_in_events=sum(1 for e in events if e.direction == ScaleDirection.DECREASE),
            total_cost=total_cost,
            instance_hours=instance_hours,
            min_instances_observed=min(instances_over_time),
            max_instances_observed=max(instances_over_time),
            average_instances=average_instances,
            start=series.start,
            end=series.end,
            performance_score=100.0 * (1 - pressured_samples / len(series)),
            efficiency_score=100.0 * min(1.0, floor / average_instances) if average_instances > 0 else 100.0,
        )
        logger.debug("Simulated %s over %d samples: %d events", config.name, len(series), len(events))
        return ScalingSimulation(
            events=tuple(events),
            summary=summary,
            instances_over_time=tuple(instances_over_time),
        )

    @staticmethod
    def _under_pressure(profile: AutoscaleProfile, sample) -> bool:
        return any(
            rule.is_met(sample.metric_value(rule.metric_name))
            for rule in profile.rules
            if rule.direction == ScaleDirection.INCREASE
        )

    @staticmethod
    def _select_rule(
        profile: AutoscaleProfile,
        now: datetime,
        start: datetime,
        last_violation: dict[AutoscaleRule, datetime],
        last_fired: dict[str, datetime],
    ) -> AutoscaleRule | None:
        """Pick the rule to apply at ``now``: scale-out first, largest delta."""
        ready = []
        for rule in profile.rules:
            window_start = now - rule.time_window
            # The series must cover the whole window
            if start > window_start:
                continue
            violated = last_violation.get(rule)
            if violated is not None and violated > window_start:
                continue
            fired_at = last_fired.get(rule.name)
            if fired_at is not None and now - fired_at < rule.cooldown:
                continue
            ready.append(rule)

        for direction in (ScaleDirection.INCREASE, ScaleDirection.DECREASE):
            candidates = [r for r in ready if r.direction == direction]
            if candidates:
                return max(candidates, key=lambda r: r.scale_action.instance_delta)
        return None

    @staticmethod
    def _record(
        timestamp: datetime,
        rule_name: str,
        from_instances: int,
        to_instances: int,
        metric_value: float | None,
    ) -> ScaleEvent:
        direction = ScaleDirection.INCREASE if to_instances > from_instances else ScaleDirection.DECREASE
        logger.debug(
            "%s: %s %d -> %d (%s)",
            timestamp.isoformat(),
            direction.value,
            from_instances,
            to_instances,
            rule_name,
        )
        return ScaleEvent(
            timestamp=timestamp,
            rule_name=rule_name,
            direction=direction,
            from_instances=from_instances,
            to_instances=to_instances,
            metric_value=metric_value,
        )

    def simulate_fixed(
        self,
        series,
        instances: int,
        hourly_rate_per_instance: float,
    ) -> ScalingSimulation:
        """Simulate a fixed instance count (no scaling).

        Args:
            series: MetricSeries, list of MetricSample or DataFrame
            instances: Fixed number of instances
            hourly_rate_per_instance: Cost of one instance for one hour

        Returns:
            ScalingSimulation with no events
        """
        series = MetricSeries.coerce(series)
        if len(series) < 2:
            raise InvalidInputError("Simulation needs at least 2 samples")
        if isinstance(instances, bool) or not isinstance(instances, int) or instances < 0:
            raise InvalidInputError("instances must be a non-negative integer")
        rate = _require_rate(hourly_rate_per_instance)

        total_hours = series.duration.total_seconds() / 3600
        summary = SimulationSummary(
            total_scale_events=0,
            scale_out_events=0,
            scale_in_events=0,
            total_cost=instances * total_hours * rate,
            instance_hours=instances * total_hours,
            min_instances_observed=instances,
            max_instances_observed=instances,
            average_instances=float(instances),
            start=series.start,
            end=series.end,
        )
        return ScalingSimulation(
            events=(),
            summary=summary,
            instances_over_time=(instances,) * len(series),
        )

    def compare_configurations(
        self,
        series,
        strategies: dict[str, AutoscaleConfiguration | int],
        hourly_rate_per_instance: float,
    ) -> pd.DataFrame:
        """Compare several configurations and fixed counts on one series.

        Args:
            series: MetricSeries, list of MetricSample or DataFrame
            strategies: Dict of strategy name -> configuration or fixed count
            hourly_rate_per_instance: Cost of one instance for one hour

        Returns:
            DataFrame indexed by strategy name
        """
        series = MetricSeries.coerce(series)
        results = []

        for name, strategy in strategies.items():
            if isinstance(strategy, int) and not isinstance(strategy, bool):
                simulation = self.simulate_fixed(series, strategy, hourly_rate_per_instance)
            elif isinstance(strategy, AutoscaleConfiguration):
                simulation = self.simulate(series, strategy, hourly_rate_per_instance)
            else:
                raise InvalidInputError(
                    f"Strategy {name!r} must be an AutoscaleConfiguration or an instance count"
                )

            summary = simulation.summary
            results.append({
                "strategy": name,
                "total_cost": summary.total_cost,
                "instance_hours": summary.instance_hours,
                "average_instances": summary.average_instances,
                "min_instances": summary.min_instances_observed,
                "max_instances": summary.max_instances_observed,
                "scale_events": summary.total_scale_events,
            })

        return pd.DataFrame(results).set_index("strategy")

    def calculate_savings(
        self,
        autoscaled: ScalingSimulation,
        fixed: ScalingSimulation,
    ) -> dict:
        """Calculate savings of an autoscaled run against a fixed-capacity run.

        Args:
            autoscaled: Simulation of an autoscale configuration
            fixed: Simulation of a fixed instance count

        Returns:
            Dictionary with savings metrics
        """
        fixed_cost = fixed.summary.total_cost
        autoscale_cost = autoscaled.summary.total_cost
        cost_savings = fixed_cost - autoscale_cost
        cost_savings_pct = cost_savings / fixed_cost * 100 if fixed_cost > 0 else 0.0

        return {
            "cost_savings": cost_savings,
            "cost_savings_pct": cost_savings_pct,
            "fixed_cost": fixed_cost,
            "autoscale_cost": autoscale_cost,
            "instance_hours_saved": fixed.summary.instance_hours - autoscaled.summary.instance_hours,
            "average_instances_saved": (
                fixed.summary.average_instances - autoscaled.summary.average_instances
            ),
        }


def _require_rate(rate) -> float:
    if isinstance(rate, bool) or not isinstance(rate, Real):
        raise InvalidInputError("hourly_rate_per_instance must be a number")
    rate = float(rate)
    if not math.isfinite(rate) or rate < 0:
        raise InvalidInputError(f"hourly_rate_per_instance must be non-negative, got {rate}")
    return rate
