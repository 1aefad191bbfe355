"""Per-partition scoring driver.

A ``PartitionScorer`` is configured once on the driver with the shared
architecture descriptor, the broadcast parameter handle, and the
minibatch size, then shipped to every worker. Each call consumes one
partition's example stream and returns one ``PartialResult`` per scored
batch, or the ``(0, 0.0)`` sentinel for an empty partition.
"""

from __future__ import annotations

import itertools
import time
from typing import Any, Iterable, Iterator

from core.config import ScoringConfig, validate_minibatch_size
from core.constants import DEFAULT_DEVICE
from core.logging_config import configure_logging, get_logger
from core.types import LabeledExample, PartialResult
from scoring.batching import iter_minibatches
from scoring.broadcast import read_broadcast_value
from scoring.execution_barrier import commit
from scoring.model_instantiation import instantiate_model
from scoring.torch_runtime import import_torch, resolve_execution_device

_LOGGER = get_logger(__name__)
_EXHAUSTED = object()


class PartitionScorer:
    """Score one partition of labeled examples against broadcast parameters.

    Instances hold plain settings and the broadcast handle, so they
    pickle cleanly for shipment to executors.
    """

    def __init__(
        self,
        architecture_json: str,
        broadcast_params: Any,
        minibatch_size: int,
        device: str = DEFAULT_DEVICE,
    ) -> None:
        self._architecture_json = architecture_json
        self._broadcast_params = broadcast_params
        self._minibatch_size = validate_minibatch_size(minibatch_size)
        self._device_name = device

    @classmethod
    def from_config(
        cls,
        architecture_json: str,
        broadcast_params: Any,
        config: ScoringConfig,
    ) -> "PartitionScorer":
        """Build a scorer from runtime config and apply its log level."""
        configure_logging(config.log_level)
        return cls(architecture_json, broadcast_params, config.minibatch_size, config.device)

    def __call__(self, examples: Iterable[LabeledExample]) -> Iterator[PartialResult]:
        return iter(self.score_partition(examples))

    def score_partition(self, examples: Iterable[LabeledExample]) -> list[PartialResult]:
        """Score every batch of one partition.

        Args:
            examples: Partition stream, consumed once.

        Returns:
            One partial result per batch in stream order, or the
            ``(0, 0.0)`` sentinel when the partition holds no examples.

        Raises:
            ArchitectureError: If the descriptor is invalid.
            ParameterShapeMismatch: If broadcast parameters do not fit the architecture.
            BatchShapeError: If examples are malformed or inconsistent.
        """
        example_iterator = iter(examples)
        first_example = next(example_iterator, _EXHAUSTED)
        if first_example is _EXHAUSTED:
            _LOGGER.info("partition_empty")
            return [PartialResult.zero()]
        started_at = time.monotonic()
        torch_module = import_torch()
        device = resolve_execution_device(torch_module, self._device_name)
        batches = iter_minibatches(
            torch_module,
            itertools.chain([first_example], example_iterator),
            self._minibatch_size,
        )
        model = instantiate_model(
            torch_module,
            self._architecture_json,
            read_broadcast_value(self._broadcast_params),
            device,
        )
        _LOGGER.info(
            "partition_scoring_started",
            minibatch_size=self._minibatch_size,
            parameter_count=model.parameter_count(),
            device=str(device),
        )
        pending_scores: list[tuple[int, Any]] = []
        for batch in batches:
            pending_scores.append((batch.example_count, model.score(batch, training=False)))
        commit(torch_module, device)
        results = [
            PartialResult.from_batch_score(example_count, float(score.item()))
            for example_count, score in pending_scores
        ]
        _LOGGER.info(
            "partition_scoring_completed",
            batch_count=len(results),
            example_count=sum(result.example_count for result in results),
            elapsed_seconds=round(time.monotonic() - started_at, 3),
        )
        if not results:
            return [PartialResult.zero()]
        return results


def score_partition(
    architecture_json: str,
    broadcast_params: Any,
    minibatch_size: int,
    examples: Iterable[LabeledExample],
) -> list[PartialResult]:
    """Score one partition with a freshly configured scorer."""
    scorer = PartitionScorer(architecture_json, broadcast_params, minibatch_size)
    return scorer.score_partition(examples)
