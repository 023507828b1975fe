"""Error types raised by the autoscale engine."""


class AutoscaleError(ValueError):
    """Base class for all autoscale engine errors."""


class InvalidInputError(AutoscaleError):
    """Raised for malformed input: bad series, bad numbers, bad options."""


class InvalidConfigurationError(AutoscaleError):
    """Raised when capacity bounds or rules are inconsistent."""


class UnsupportedPatternError(AutoscaleError):
    """Raised when a pattern type has no defined strategy."""
