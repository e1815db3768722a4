"""
Exception types raised by the pathway calling framework.
"""


class PathwayCallingError(ValueError):
    """Base class for input and configuration errors."""


class InvalidInput(PathwayCallingError):
    """Expression data is not a numeric matrix or is malformed."""


class InvalidSignature(PathwayCallingError):
    """Gene signature is missing columns or has invalid polarities."""


class InvalidThreshold(PathwayCallingError):
    """Thresholds are non-numeric, inverted or out of range."""


class MissingScore(PathwayCallingError):
    """A sample lacks an up-regulated or down-regulated score."""


class SchemaError(PathwayCallingError):
    """Evaluation tables lack a required column."""
