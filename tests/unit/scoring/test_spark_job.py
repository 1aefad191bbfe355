"""Unit tests for Spark-style job wiring."""

from __future__ import annotations

import math
from typing import Any, Callable

import pytest
import torch

from core.errors import ParameterShapeMismatch
from core.types import LabeledExample
from scoring.aggregation import average_score, reduce_partial_results
from scoring.broadcast import LocalBroadcast
from scoring.partition_scorer import PartitionScorer
from scoring.spark_job import reduce_rdd_partials, score_rdd
from tests.scoring_fixtures import (
    HUNDRED_PARAMETER_ARCHITECTURE,
    random_parameters,
    regression_examples,
)


class _FakeBroadcast:
    def __init__(self, value: Any) -> None:
        self.value = value
        self.unpersisted = False

    def unpersist(self) -> None:
        self.unpersisted = True


class _FakeContext:
    def __init__(self) -> None:
        self.broadcasts: list[_FakeBroadcast] = []

    def broadcast(self, value: Any) -> _FakeBroadcast:
        handle = _FakeBroadcast(value)
        self.broadcasts.append(handle)
        return handle


class _FakeRdd:
    def __init__(self, partitions: list[list[Any]], context: _FakeContext | None = None) -> None:
        self._partitions = partitions
        self.context = context or _FakeContext()

    def mapPartitions(self, function: Callable[[Any], Any]) -> "_FakeRdd":
        return _FakeRdd(
            [list(function(iter(partition))) for partition in self._partitions],
            self.context,
        )

    def fold(self, zero: Any, operator: Callable[[Any, Any], Any]) -> Any:
        total = zero
        for partition in self._partitions:
            partition_total = zero
            for item in partition:
                partition_total = operator(partition_total, item)
            total = operator(total, partition_total)
        return total


def test_reduce_rdd_partials_scores_every_partition() -> None:
    """All partitions, including empty ones, should fold into one total."""
    parameters = random_parameters(100)
    examples = regression_examples(30)
    rdd = _FakeRdd([examples[:12], [], examples[12:]])

    total = reduce_rdd_partials(rdd, HUNDRED_PARAMETER_ARCHITECTURE, parameters, 5)

    scorer = PartitionScorer(HUNDRED_PARAMETER_ARCHITECTURE, LocalBroadcast(parameters), 5)
    expected = reduce_partial_results(scorer.score_partition(examples))
    assert total.example_count == 30 and total.weighted_score_sum == pytest.approx(
        expected.weighted_score_sum, rel=1e-5
    )


def test_reduce_rdd_partials_unpersists_broadcast() -> None:
    """The parameter broadcast should be released after the job."""
    rdd = _FakeRdd([regression_examples(3)])

    reduce_rdd_partials(rdd, HUNDRED_PARAMETER_ARCHITECTURE, random_parameters(100), 2)

    broadcast = rdd.context.broadcasts[0]
    assert broadcast.unpersisted and isinstance(broadcast.value, torch.Tensor)


def test_reduce_rdd_partials_unpersists_broadcast_on_failure() -> None:
    """Partition failures should still release the broadcast."""
    rdd = _FakeRdd([regression_examples(3)])

    with pytest.raises(ParameterShapeMismatch):
        reduce_rdd_partials(rdd, HUNDRED_PARAMETER_ARCHITECTURE, random_parameters(99), 2)

    assert rdd.context.broadcasts[0].unpersisted


def test_score_rdd_returns_weighted_average() -> None:
    """Average score should match the reduced partial results."""
    parameters = random_parameters(100, seed=8)
    examples = regression_examples(9)
    rdd = _FakeRdd([examples[:4], examples[4:]])

    score = score_rdd(rdd, HUNDRED_PARAMETER_ARCHITECTURE, parameters, 3)

    scorer = PartitionScorer(HUNDRED_PARAMETER_ARCHITECTURE, LocalBroadcast(parameters), 3)
    expected = average_score(reduce_partial_results(scorer.score_partition(examples)))
    assert score == pytest.approx(expected, rel=1e-5)


def test_score_rdd_is_nan_for_empty_dataset() -> None:
    """A dataset without examples has no defined average."""
    empty_partitions: list[list[LabeledExample]] = [[], []]
    rdd = _FakeRdd(empty_partitions)

    score = score_rdd(rdd, HUNDRED_PARAMETER_ARCHITECTURE, random_parameters(100), 3)

    assert math.isnan(score) and rdd.context.broadcasts[0].unpersisted
