"""Autoscale decision engine for virtual machine scale sets.

Analyzes historical load telemetry, derives autoscale configurations and
replays metric streams against them to forecast scaling events and cost.
"""

from vmss_autoscale.exceptions import (
    AutoscaleError,
    InvalidInputError,
    InvalidConfigurationError,
    UnsupportedPatternError,
)

__version__ = "1.0.0"

__all__ = [
    "AutoscaleError",
    "InvalidInputError",
    "InvalidConfigurationError",
    "UnsupportedPatternError",
    "__version__",
]
