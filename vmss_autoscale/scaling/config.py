"""Configuration for autoscale rule synthesis and configuration building."""

from dataclasses import dataclass, fields
from enum import Enum

from vmss_autoscale.exceptions import InvalidInputError


class ScalingBias(str, Enum):
    """Trade-off between responsiveness and cost."""

    COST_OPTIMIZED = "cost_optimized"
    BALANCED = "balanced"
    PERFORMANCE_OPTIMIZED = "performance_optimized"


@dataclass(frozen=True)
class BiasTuning:
    """Rule tuning for one scaling bias.

    Attributes:
        scale_out_factor: Scale-out threshold as a fraction of peak load
        scale_out_window_minutes: Window the scale-out condition must hold
        scale_out_cooldown_minutes: Wait after a scale-out before the next one
        scale_out_delta: Instances added per scale-out

        scale_in_factor: Scale-in threshold as a fraction of the
            baseline/average midpoint (below 1)
        scale_in_window_minutes: Window the scale-in condition must hold
        scale_in_cooldown_minutes: Wait after a scale-in before the next one
        scale_in_delta: Instances removed per scale-in
    """

    # Scale out
    scale_out_factor: float = 0.725
    scale_out_window_minutes: int = 10
    scale_out_cooldown_minutes: int = 10
    scale_out_delta: int = 1

    # Scale in (always slower than scale out)
    scale_in_factor: float = 0.8
    scale_in_window_minutes: int = 15
    scale_in_cooldown_minutes: int = 20
    scale_in_delta: int = 1

    def __post_init__(self):
        """Validate tuning after initialization."""
        self._validate()

    def _validate(self):
        """Validate tuning parameters."""
        if not 0 < self.scale_out_factor <= 1:
            raise InvalidInputError("scale_out_factor must be between 0 and 1")
        if not 0 < self.scale_in_factor < 1:
            raise InvalidInputError("scale_in_factor must be between 0 and 1 (exclusive)")
        if self.scale_out_window_minutes < 1 or self.scale_in_window_minutes < 1:
            raise InvalidInputError("window minutes must be at least 1")
        if self.scale_out_cooldown_minutes < 0:
            raise InvalidInputError("scale_out_cooldown_minutes must be non-negative")
        if self.scale_in_cooldown_minutes < self.scale_out_cooldown_minutes:
            raise InvalidInputError("scale_in_cooldown_minutes must be >= scale_out_cooldown_minutes")
        if self.scale_in_window_minutes < self.scale_out_window_minutes:
            raise InvalidInputError("scale_in_window_minutes must be >= scale_out_window_minutes")
        if self.scale_out_delta < 1:
            raise InvalidInputError("scale_out_delta must be at least 1")
        if self.scale_in_delta < 1:
            raise InvalidInputError("scale_in_delta must be at least 1")

    def to_dict(self) -> dict:
        """Convert tuning to dictionary.

        Returns:
            Tuning as dictionary
        """
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, tuning_dict: dict) -> "BiasTuning":
        """Create tuning from dictionary.

        Args:
            tuning_dict: Tuning dictionary

        Returns:
            BiasTuning instance
        """
        return cls(**_checked_keys(cls, tuning_dict))


# Predefined tunings
PERFORMANCE_TUNING = BiasTuning(
    scale_out_factor=0.6,
    scale_out_window_minutes=5,
    scale_out_cooldown_minutes=5,
    scale_out_delta=2,
    scale_in_factor=0.7,
    scale_in_window_minutes=10,
    scale_in_cooldown_minutes=15,
)

COST_TUNING = BiasTuning(
    scale_out_factor=0.85,
    scale_out_window_minutes=15,
    scale_out_cooldown_minutes=15,
    scale_out_delta=1,
    scale_in_factor=0.9,
    scale_in_window_minutes=20,
    scale_in_cooldown_minutes=30,
)

BALANCED_TUNING = BiasTuning()

TUNINGS: dict[ScalingBias, BiasTuning] = {
    ScalingBias.PERFORMANCE_OPTIMIZED: PERFORMANCE_TUNING,
    ScalingBias.BALANCED: BALANCED_TUNING,
    ScalingBias.COST_OPTIMIZED: COST_TUNING,
}


def get_tuning(bias: ScalingBias | str) -> BiasTuning:
    """Get the rule tuning for a bias."""
    return TUNINGS[parse_bias(bias)]


def parse_bias(bias: ScalingBias | str) -> ScalingBias:
    try:
        return ScalingBias(bias)
    except ValueError as e:
        valid = ", ".join(b.value for b in ScalingBias)
        raise InvalidInputError(f"Unknown scaling bias {bias!r}; expected one of: {valid}") from e


@dataclass(frozen=True)
class BuildOptions:
    """Options for building an autoscale configuration.

    Attributes:
        predictive: Add a scheduled profile ahead of cyclical peaks
        bias: Rule tuning bias
        notification_emails: Recipients of scale notifications
        lead_time_minutes: How early the scheduled profile pre-provisions
    """

    predictive: bool = False
    bias: ScalingBias = ScalingBias.BALANCED
    notification_emails: tuple[str, ...] = ()
    lead_time_minutes: int = 15

    def __post_init__(self):
        if not isinstance(self.predictive, bool):
            raise InvalidInputError("predictive must be a boolean")
        object.__setattr__(self, "bias", parse_bias(self.bias))
        if isinstance(self.notification_emails, str):
            raise InvalidInputError("notification_emails must be a list of strings")
        object.__setattr__(self, "notification_emails", tuple(self.notification_emails))
        if isinstance(self.lead_time_minutes, bool) or not isinstance(self.lead_time_minutes, int):
            raise InvalidInputError("lead_time_minutes must be an integer")
        if not 0 <= self.lead_time_minutes < 24 * 60:
            raise InvalidInputError("lead_time_minutes must be between 0 and 1439")

    def to_dict(self) -> dict:
        return {
            "predictive": self.predictive,
            "bias": self.bias.value,
            "notification_emails": list(self.notification_emails),
            "lead_time_minutes": self.lead_time_minutes,
        }

    @classmethod
    def from_dict(cls, options: dict) -> "BuildOptions":
        """Create options from a dictionary, rejecting unknown keys."""
        return cls(**_checked_keys(cls, options))


def _checked_keys(cls, values: dict) -> dict:
    known = {f.name for f in fields(cls)}
    unknown = set(values) - known
    if unknown:
        raise InvalidInputError(
            f"Unknown {cls.__name__} keys: {sorted(unknown)}; expected: {sorted(known)}"
        )
    return dict(values)
