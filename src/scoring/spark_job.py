"""Spark-style job wiring for distributed scoring.

This module broadcasts the parameter vector through the RDD's context,
maps every partition through a ``PartitionScorer``, and folds the
partial results into a dataset-wide average. Only the duck-typed RDD
surface (``context.broadcast``, ``mapPartitions``, ``fold``) is used,
so pyspark is not imported here.
"""

from __future__ import annotations

from typing import Any

from core.constants import DEFAULT_DEVICE
from core.logging_config import get_logger
from core.types import PartialResult
from scoring.aggregation import average_score
from scoring.partition_scorer import PartitionScorer
from scoring.torch_runtime import import_torch

_LOGGER = get_logger(__name__)


def reduce_rdd_partials(
    rdd: Any,
    architecture_json: str,
    parameters: Any,
    minibatch_size: int,
    device: str = DEFAULT_DEVICE,
) -> PartialResult:
    """Score every partition of ``rdd`` and combine the partial results.

    Args:
        rdd: RDD of ``LabeledExample`` elements.
        architecture_json: Architecture descriptor shared with all workers.
        parameters: Flat parameter vector (torch tensor or numpy array).
        minibatch_size: Examples per scored batch on the workers.
        device: Device name used by the workers.

    Returns:
        Combined partial result across all partitions.
    """
    torch_module = import_torch()
    host_parameters = torch_module.as_tensor(parameters).detach().reshape(-1).cpu()
    broadcast_params = rdd.context.broadcast(host_parameters)
    try:
        scorer = PartitionScorer(architecture_json, broadcast_params, minibatch_size, device)
        total = rdd.mapPartitions(scorer).fold(PartialResult.zero(), PartialResult.combine)
    finally:
        broadcast_params.unpersist()
    _LOGGER.info(
        "rdd_scoring_completed",
        example_count=total.example_count,
        weighted_score_sum=total.weighted_score_sum,
    )
    return total


def score_rdd(
    rdd: Any,
    architecture_json: str,
    parameters: Any,
    minibatch_size: int,
    device: str = DEFAULT_DEVICE,
) -> float:
    """Return the example-weighted average score over all of ``rdd``.

    NaN is returned when the RDD holds no examples.
    """
    total = reduce_rdd_partials(rdd, architecture_json, parameters, minibatch_size, device)
    return average_score(total)
