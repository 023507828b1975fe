"""Analyze a metrics export and simulate autoscale configurations.

This script:
1. Loads a metrics CSV (timestamp, cpu_percent, ...)
2. Classifies the load pattern
3. Builds a configuration for each scaling bias
4. Simulates every configuration and fixed capacity baselines
5. Prints the predictive scaling recommendation

Usage:
    python scripts/run_simulation.py metrics.csv [hourly_rate]
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import logging

import pandas as pd

from vmss_autoscale.analysis import LoadPatternAnalyzer
from vmss_autoscale.data import load_metrics_csv
from vmss_autoscale.exceptions import AutoscaleError
from vmss_autoscale.scaling import (
    AutoscaleConfigBuilder,
    BuildOptions,
    PredictiveScalingAdvisor,
    ScalingBias,
    ScalingSimulator,
)

DEFAULT_HOURLY_RATE = 0.096
RESOURCE_URI = (
    "/subscriptions/00000000-0000-0000-0000-000000000000/resourceGroups/rg"
    "/providers/Microsoft.Compute/virtualMachineScaleSets/vmss"
)


def run(metrics_path: Path, hourly_rate: float):
    """Run analysis, configuration and simulation for one export."""
    print("=" * 60)
    print("AUTOSCALE SIMULATION")
    print("=" * 60)

    # Step 1: Load metrics
    print("\n[1/4] Loading metrics...")
    series = load_metrics_csv(metrics_path)
    print(f"  {len(series):,} samples, {series.start} -> {series.end}")

    # Step 2: Analyze
    print("\n[2/4] Analyzing load pattern...")
    pattern = LoadPatternAnalyzer().analyze(series)
    recs = pattern.scaling_recommendations
    print(f"  Pattern: {pattern.pattern_type.value} (confidence {pattern.confidence})")
    print(
        f"  Load: avg {pattern.characteristics.average_load:.1f}%, "
        f"peak {pattern.characteristics.peak_load:.1f}%, "
        f"volatility {pattern.characteristics.volatility:.2f}"
    )
    print(f"  Instances: {recs.recommended_min_instances}-{recs.recommended_max_instances}")
    print(f"  Hints: aggressive={recs.aggressive_scaling}, predictive={recs.predictive_scaling}")

    # Step 3: Build and simulate one configuration per bias
    print("\n[3/4] Simulating configurations...")
    builder = AutoscaleConfigBuilder()
    simulator = ScalingSimulator()

    strategies = {}
    for bias in ScalingBias:
        config = builder.build(RESOURCE_URI, pattern, BuildOptions(bias=bias))
        strategies[bias.value] = config
        for profile in config.profiles:
            for warning in profile.warnings:
                print(f"  WARNING ({bias.value}): {warning}")
    strategies["fixed_min"] = recs.recommended_min_instances
    strategies["fixed_max"] = recs.recommended_max_instances

    comparison = simulator.compare_configurations(series, strategies, hourly_rate)
    with pd.option_context("display.width", 120, "display.max_columns", None):
        print(comparison.round(2).to_string())

    balanced = simulator.simulate(series, strategies[ScalingBias.BALANCED.value], hourly_rate)
    fixed_max = simulator.simulate_fixed(series, recs.recommended_max_instances, hourly_rate)
    savings = simulator.calculate_savings(balanced, fixed_max)
    print(f"\n  Balanced vs fixed max: ${savings['cost_savings']:.2f} saved ({savings['cost_savings_pct']:.1f}%)")
    print(
        f"  Balanced scores: performance {balanced.summary.performance_score:.1f}, "
        f"efficiency {balanced.summary.efficiency_score:.1f}"
    )

    # Step 4: Predictive advice
    print("\n[4/4] Predictive scaling...")
    recommendation = PredictiveScalingAdvisor().recommend(pattern)
    print(f"  Action: {recommendation.recommended_action.value} ({recommendation.confidence.value} confidence)")
    print(f"  Lead time: {recommendation.lead_time_minutes} min")
    print(f"  {recommendation.rationale}")

    print("\n" + "=" * 60)
    print("SIMULATION COMPLETE!")
    print("=" * 60)


def main(argv: list[str] | None = None) -> int:
    """Parse arguments and run; returns the process exit code."""
    argv = sys.argv[1:] if argv is None else argv
    if not argv or len(argv) > 2:
        print(__doc__)
        return 1

    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    try:
        hourly_rate = float(argv[1]) if len(argv) > 1 else DEFAULT_HOURLY_RATE
        run(Path(argv[0]), hourly_rate)
    except (AutoscaleError, ValueError) as e:
        print(f"ERROR: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
