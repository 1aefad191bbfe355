"""ShardScore exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each scoring stage raises a specific error type so partition failures
surface to the cluster runtime with an actionable message.
"""

from __future__ import annotations


class ScoringError(Exception):
    """Base exception for all ShardScore failures."""


class ScoringConfigError(ScoringError):
    """Raised for invalid runtime configuration."""


class ScoringDependencyError(ScoringError):
    """Raised when a required runtime dependency is missing."""


class ArchitectureError(ScoringError):
    """Raised when an architecture descriptor cannot be parsed or built."""


class ParameterShapeMismatch(ScoringError):
    """Raised when broadcast parameters disagree with the architecture.

    Attributes:
        expected: Parameter count declared by the architecture.
        actual: Length of the broadcast parameter vector.
    """

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Network has {expected} parameters but the broadcast parameter vector "
            f"has length {actual}. Broadcast parameters built from the same "
            "architecture descriptor the workers receive."
        )


class BatchShapeError(ScoringError):
    """Raised for malformed or inconsistent example shapes in a partition."""


class IncompleteReductionError(ScoringError):
    """Raised when partition outputs are missing at reduction time."""
