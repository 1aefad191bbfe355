"""Runtime configuration model for ShardScore.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os

from core.constants import (
    DEFAULT_DEVICE,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MINIBATCH_SIZE,
    DEVICE_ENV_VAR,
    LOG_LEVEL_ENV_VAR,
    MINIBATCH_SIZE_ENV_VAR,
    SUPPORTED_DEVICES,
    SUPPORTED_LOG_LEVELS,
)
from core.errors import ScoringConfigError


@dataclass(frozen=True)
class ScoringConfig:
    """Validated runtime configuration.

    Attributes:
        minibatch_size: Number of examples scored together on a worker.
        device: Requested torch device name, or auto for detection.
        log_level: Minimum structured log level.
    """

    minibatch_size: int
    device: str
    log_level: str

    @classmethod
    def from_env(cls) -> "ScoringConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            ScoringConfigError: If environment values are invalid.
        """
        minibatch_size = _parse_minibatch_size(
            os.getenv(MINIBATCH_SIZE_ENV_VAR, str(DEFAULT_MINIBATCH_SIZE))
        )
        device = _parse_choice(
            os.getenv(DEVICE_ENV_VAR, DEFAULT_DEVICE).lower(),
            DEVICE_ENV_VAR,
            SUPPORTED_DEVICES,
        )
        log_level = _parse_choice(
            os.getenv(LOG_LEVEL_ENV_VAR, DEFAULT_LOG_LEVEL).upper(),
            LOG_LEVEL_ENV_VAR,
            SUPPORTED_LOG_LEVELS,
        )
        return cls(minibatch_size=minibatch_size, device=device, log_level=log_level)


def validate_minibatch_size(minibatch_size: int) -> int:
    """Return the minibatch size when it is a positive integer.

    Raises:
        ScoringConfigError: If the value is not a positive integer.
    """
    if isinstance(minibatch_size, bool) or not isinstance(minibatch_size, int):
        raise ScoringConfigError(
            f"Invalid minibatch_size {minibatch_size!r}: expected a positive integer."
        )
    if minibatch_size < 1:
        raise ScoringConfigError(
            f"Invalid minibatch_size {minibatch_size}: expected value >= 1."
        )
    return minibatch_size


def _parse_minibatch_size(raw_value: str) -> int:
    """Parse the minibatch size environment value.

    Args:
        raw_value: Raw string from environment.

    Returns:
        Parsed positive integer.

    Raises:
        ScoringConfigError: If value is not a positive integer.
    """
    try:
        parsed_value = int(raw_value)
    except ValueError as error:
        raise ScoringConfigError(
            f"Invalid {MINIBATCH_SIZE_ENV_VAR} value: "
            f"expected integer, got '{raw_value}'. "
            f"Set {MINIBATCH_SIZE_ENV_VAR} to a positive number."
        ) from error
    return validate_minibatch_size(parsed_value)


def _parse_choice(raw_value: str, env_var: str, choices: tuple[str, ...]) -> str:
    if raw_value in choices:
        return raw_value
    raise ScoringConfigError(
        f"Invalid {env_var} value '{raw_value}': expected one of {', '.join(choices)}."
    )
