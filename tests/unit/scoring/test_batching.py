"""Unit tests for partition mini-batching."""

from __future__ import annotations

import numpy as np
import pytest
import torch

from core.errors import BatchShapeError, ScoringConfigError
from core.types import LabeledExample
from scoring.batching import iter_minibatches


def _examples_with_rows(row_counts: list[int]) -> list[LabeledExample]:
    start = 0
    elements: list[LabeledExample] = []
    for row_count in row_counts:
        rows = torch.arange(start, start + row_count, dtype=torch.float32).reshape(-1, 1)
        elements.append(LabeledExample(features={"x": rows}, labels={"y": rows * 2}))
        start += row_count
    return elements


def test_iter_minibatches_yields_full_batches_and_remainder() -> None:
    """250 single examples at minibatch 100 should batch as 100, 100, 50."""
    batches = list(iter_minibatches(torch, _examples_with_rows([1] * 250), 100))

    assert [batch.example_count for batch in batches] == [100, 100, 50]


def test_iter_minibatches_empty_stream_yields_no_batches() -> None:
    """Empty input should produce zero batches."""
    assert list(iter_minibatches(torch, [], 8)) == []


def test_iter_minibatches_preserves_order_across_split_and_merge() -> None:
    """Oversized elements are split and small ones merged in stream order."""
    batches = list(iter_minibatches(torch, _examples_with_rows([3, 7, 1, 2]), 4))
    flattened = torch.cat([batch.features["x"] for batch in batches]).reshape(-1).tolist()

    assert [batch.example_count for batch in batches] == [4, 4, 4, 1] and flattened == [
        float(value) for value in range(13)
    ]


def test_iter_minibatches_keeps_labels_aligned_with_features() -> None:
    """Labels should travel with their features through splitting."""
    batches = list(iter_minibatches(torch, _examples_with_rows([5, 5]), 3))

    assert all(torch.equal(batch.labels["y"], batch.features["x"] * 2) for batch in batches)


def test_iter_minibatches_is_lazy() -> None:
    """Batches should be produced without draining the whole stream."""
    consumed: list[int] = []

    def _stream():
        for index, element in enumerate(_examples_with_rows([1] * 10)):
            consumed.append(index)
            yield element

    batches = iter_minibatches(torch, _stream(), 2)
    next(batches)

    assert len(consumed) == 2


def test_iter_minibatches_accepts_numpy_arrays() -> None:
    """Numpy stream elements should become torch batches."""
    element = LabeledExample(
        features={"x": np.ones((3, 2), dtype=np.float32)},
        labels={"y": np.zeros((3, 1), dtype=np.float32)},
    )

    batches = list(iter_minibatches(torch, [element, element], 4))

    assert [batch.example_count for batch in batches] == [4, 2] and isinstance(
        batches[0].features["x"], torch.Tensor
    )


def test_iter_minibatches_rejects_non_positive_size() -> None:
    """Minibatch size must be positive."""
    with pytest.raises(ScoringConfigError):
        iter_minibatches(torch, _examples_with_rows([1]), 0)


def test_iter_minibatches_rejects_mismatched_leading_dimensions() -> None:
    """Features and labels must agree on the example count."""
    element = LabeledExample(
        features={"x": torch.zeros(3, 2)},
        labels={"y": torch.zeros(2, 1)},
    )

    with pytest.raises(BatchShapeError):
        list(iter_minibatches(torch, [element], 4))


def test_iter_minibatches_rejects_schema_change_within_stream() -> None:
    """All elements of a stream should share feature and label names."""
    first = LabeledExample(features={"x": torch.zeros(1, 2)}, labels={"y": torch.zeros(1, 1)})
    second = LabeledExample(features={"z": torch.zeros(1, 2)}, labels={"y": torch.zeros(1, 1)})

    with pytest.raises(BatchShapeError):
        list(iter_minibatches(torch, [first, second], 4))


def test_iter_minibatches_rejects_scalar_tensors() -> None:
    """Tensors without a leading example dimension are malformed."""
    element = LabeledExample(features={"x": torch.tensor(1.0)}, labels={"y": torch.tensor(0.0)})

    with pytest.raises(BatchShapeError):
        list(iter_minibatches(torch, [element], 4))


def test_iter_minibatches_rejects_inconsistent_trailing_shapes() -> None:
    """Merging examples with different feature widths should fail clearly."""
    first = LabeledExample(features={"x": torch.zeros(1, 2)}, labels={"y": torch.zeros(1, 1)})
    second = LabeledExample(features={"x": torch.zeros(1, 3)}, labels={"y": torch.zeros(1, 1)})

    with pytest.raises(BatchShapeError):
        list(iter_minibatches(torch, [first, second], 4))
