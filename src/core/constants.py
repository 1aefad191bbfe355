"""Core constants used across ShardScore modules.

This module centralizes non-domain-specific constants.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

ARCHITECTURE_FORMAT_VERSION = 1
DEFAULT_MINIBATCH_SIZE = 32
DEFAULT_ARCHITECTURE_SEED = 0
DEFAULT_DEVICE = "cpu"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_DROPOUT_PROBABILITY = 0.5
SUPPORTED_DEVICES = ("auto", "cpu", "cuda", "mps")
SUPPORTED_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
SUPPORTED_LAYER_TYPES = ("linear", "relu", "tanh", "sigmoid", "gelu", "dropout")
SUPPORTED_LOSS_FUNCTIONS = ("mse", "l1", "cross_entropy", "binary_cross_entropy")
MINIBATCH_SIZE_ENV_VAR = "SHARDSCORE_MINIBATCH_SIZE"
DEVICE_ENV_VAR = "SHARDSCORE_DEVICE"
LOG_LEVEL_ENV_VAR = "SHARDSCORE_LOG_LEVEL"
