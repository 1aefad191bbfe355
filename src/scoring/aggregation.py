"""Reduction of partial results into a dataset-wide average score.

``PartialResult.combine`` is commutative and associative with
``PartialResult.zero()`` as identity, so partial results may be reduced
in any order or tree shape. Sentinel results from empty partitions add
nothing to either sum.
"""

from __future__ import annotations

import functools
import math
from typing import Iterable, Sequence

from core.errors import IncompleteReductionError
from core.logging_config import get_logger
from core.types import PartialResult

_LOGGER = get_logger(__name__)


def reduce_partial_results(results: Iterable[PartialResult]) -> PartialResult:
    """Fold any number of partial results into one total."""
    return functools.reduce(PartialResult.combine, results, PartialResult.zero())


def average_score(total: PartialResult) -> float:
    """Return the example-weighted average score.

    Returns:
        ``weighted_score_sum / example_count``, or NaN when no example was
        scored. Callers decide how to report an empty dataset.
    """
    if total.example_count == 0:
        return math.nan
    return total.weighted_score_sum / total.example_count


def reduce_partition_outputs(
    partition_outputs: Sequence[Iterable[PartialResult] | None],
    expected_partitions: int | None = None,
) -> PartialResult:
    """Combine the outputs of every partition of a job.

    Args:
        partition_outputs: One result sequence per partition; ``None`` marks
            a partition that never reported (abandoned or cancelled task).
        expected_partitions: Number of partitions the job launched.

    Returns:
        Combined partial result over all partitions.

    Raises:
        IncompleteReductionError: If any partition output is missing.
    """
    reported = [outputs for outputs in partition_outputs if outputs is not None]
    expected_count = len(partition_outputs) if expected_partitions is None else expected_partitions
    if len(reported) != expected_count:
        _LOGGER.error(
            "partition_outputs_missing",
            expected_partitions=expected_count,
            reported_partitions=len(reported),
        )
        raise IncompleteReductionError(
            f"Only {len(reported)} of {expected_count} partitions reported results. "
            "A cancelled or truncated job has no valid global score; rerun the job."
        )
    return reduce_partial_results(
        result for outputs in reported for result in outputs
    )
