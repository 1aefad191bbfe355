"""Public SDK surface for ShardScore.

This module provides a stable import path for scoring job authors.
It re-exports the partition scorer, reduction helpers, and typed models.
"""

from __future__ import annotations

from core.config import ScoringConfig
from core.errors import (
    ArchitectureError,
    BatchShapeError,
    IncompleteReductionError,
    ParameterShapeMismatch,
    ScoringError,
)
from core.types import LabeledExample, PartialResult
from scoring.aggregation import average_score, reduce_partial_results, reduce_partition_outputs
from scoring.broadcast import BroadcastHandle, LocalBroadcast
from scoring.model_instantiation import instantiate_model
from scoring.partition_scorer import PartitionScorer, score_partition
from scoring.spark_job import reduce_rdd_partials, score_rdd

__all__ = [
    "ArchitectureError",
    "BatchShapeError",
    "BroadcastHandle",
    "IncompleteReductionError",
    "LabeledExample",
    "LocalBroadcast",
    "ParameterShapeMismatch",
    "PartialResult",
    "PartitionScorer",
    "ScoringConfig",
    "ScoringError",
    "average_score",
    "instantiate_model",
    "reduce_partial_results",
    "reduce_partition_outputs",
    "reduce_rdd_partials",
    "score_partition",
    "score_rdd",
]
