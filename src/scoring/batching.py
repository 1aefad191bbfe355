"""Mini-batching of partition example streams.

This module regroups the raw elements of a partition stream into batches
of exactly ``minibatch_size`` examples, except for a final remainder
batch. Elements larger than the remaining room are split and smaller
elements are merged, so at most one batch worth of examples is held in
memory at any time.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Mapping

from core.config import validate_minibatch_size
from core.errors import BatchShapeError
from core.types import LabeledExample


@dataclass(frozen=True)
class LabeledBatch:
    """Batch of examples scored together.

    Attributes:
        features: Input tensors keyed by input name, batch dimension first.
        labels: Label tensors keyed by output name, batch dimension first.
    """

    features: Mapping[str, Any]
    labels: Mapping[str, Any]

    @property
    def example_count(self) -> int:
        """Number of examples, read from the leading dimension of the first input."""
        if not self.features:
            raise BatchShapeError("Invalid batch: no feature tensors found.")
        first_features = next(iter(self.features.values()))
        return int(first_features.shape[0])


@dataclass(frozen=True)
class _StreamSchema:
    feature_names: tuple[str, ...]
    label_names: tuple[str, ...]


def iter_minibatches(
    torch_module: Any,
    examples: Iterable[LabeledExample],
    minibatch_size: int,
) -> Iterator[LabeledBatch]:
    """Lazily regroup a stream of examples into fixed-size batches.

    Args:
        torch_module: Imported torch module used to merge tensors.
        examples: Partition stream; consumed exactly once.
        minibatch_size: Target number of examples per batch.

    Returns:
        Non-restartable iterator of batches in stream order.

    Raises:
        ScoringConfigError: If minibatch_size is not a positive integer.
    """
    validate_minibatch_size(minibatch_size)
    return _generate_minibatches(torch_module, iter(examples), minibatch_size)


def _generate_minibatches(
    torch_module: Any,
    examples: Iterator[LabeledExample],
    minibatch_size: int,
) -> Iterator[LabeledBatch]:
    schema: _StreamSchema | None = None
    pending: list[LabeledExample] = []
    pending_count = 0
    for element in examples:
        if schema is None:
            schema = _read_schema(element)
        element_count = _element_example_count(element, schema)
        offset = 0
        while offset < element_count:
            take = min(minibatch_size - pending_count, element_count - offset)
            if take == element_count:
                pending.append(element)
            else:
                pending.append(_slice_element(element, offset, offset + take))
            pending_count += take
            offset += take
            if pending_count == minibatch_size:
                yield _merge_pending(torch_module, pending, schema)
                pending = []
                pending_count = 0
    if pending and schema is not None:
        yield _merge_pending(torch_module, pending, schema)


def _read_schema(element: LabeledExample) -> _StreamSchema:
    if not element.features:
        raise BatchShapeError(
            "Invalid example: no feature tensors found. "
            "Each example needs at least one named model input."
        )
    return _StreamSchema(
        feature_names=tuple(element.features),
        label_names=tuple(element.labels),
    )


def _element_example_count(element: LabeledExample, schema: _StreamSchema) -> int:
    """Validate an element against the stream schema and return its example count."""
    if set(element.features) != set(schema.feature_names) or set(element.labels) != set(
        schema.label_names
    ):
        raise BatchShapeError(
            "Inconsistent example schema in partition: expected features "
            f"{list(schema.feature_names)} and labels {list(schema.label_names)}, got "
            f"features {sorted(element.features)} and labels {sorted(element.labels)}."
        )
    counts: dict[str, int] = {}
    for kind, tensors in (("feature", element.features), ("label", element.labels)):
        for name, tensor in tensors.items():
            counts[f"{kind} '{name}'"] = _leading_dimension(tensor, kind, name)
    distinct_counts = set(counts.values())
    if len(distinct_counts) != 1:
        raise BatchShapeError(
            f"Inconsistent example counts within one stream element: {counts}. "
            "Feature and label tensors must share the leading example dimension."
        )
    return distinct_counts.pop()


def _leading_dimension(tensor: Any, kind: str, name: str) -> int:
    shape = getattr(tensor, "shape", None)
    if shape is None or len(shape) == 0:
        raise BatchShapeError(
            f"Invalid {kind} tensor '{name}': expected a leading example dimension, "
            f"got shape {tuple(shape) if shape is not None else None}."
        )
    return int(shape[0])


def _slice_element(element: LabeledExample, start: int, stop: int) -> LabeledExample:
    return LabeledExample(
        features={name: tensor[start:stop] for name, tensor in element.features.items()},
        labels={name: tensor[start:stop] for name, tensor in element.labels.items()},
    )


def _merge_pending(
    torch_module: Any,
    pending: list[LabeledExample],
    schema: _StreamSchema,
) -> LabeledBatch:
    """Concatenate buffered pieces into one batch in schema key order."""
    return LabeledBatch(
        features={
            name: _concat(torch_module, [piece.features[name] for piece in pending], name)
            for name in schema.feature_names
        },
        labels={
            name: _concat(torch_module, [piece.labels[name] for piece in pending], name)
            for name in schema.label_names
        },
    )


def _concat(torch_module: Any, pieces: list[Any], name: str) -> Any:
    tensors = [torch_module.as_tensor(piece) for piece in pieces]
    if len(tensors) == 1:
        return tensors[0]
    try:
        return torch_module.cat(tensors, dim=0)
    except RuntimeError as error:
        raise BatchShapeError(
            f"Failed to merge tensors for '{name}': {error}. "
            "All examples must share the same trailing shape."
        ) from error
