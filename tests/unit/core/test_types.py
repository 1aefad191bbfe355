"""Unit tests for shared typed models."""

from __future__ import annotations

import math

import pytest

from core.errors import ScoringError
from core.types import PartialResult


def test_partial_result_from_batch_score_weights_by_count() -> None:
    """Weighted sum should be the batch score times its example count."""
    result = PartialResult.from_batch_score(example_count=4, score=0.25)

    assert result == PartialResult(4, 1.0)


def test_partial_result_addition_matches_combine() -> None:
    """The + operator should be the combine operator."""
    left = PartialResult(2, 1.0)
    right = PartialResult(3, 2.5)

    assert left + right == left.combine(right) == PartialResult(5, 3.5)


def test_partial_result_zero_is_identity() -> None:
    """Combining with zero should leave a result unchanged."""
    result = PartialResult(7, 3.5)

    assert result + PartialResult.zero() == PartialResult.zero() + result == result


def test_partial_result_from_mapping_reads_serialized_payload() -> None:
    """Serialized results should parse back to the same values."""
    payload = PartialResult(10, 4.5).to_dict()

    assert PartialResult.from_mapping(payload) == PartialResult(10, 4.5)


@pytest.mark.parametrize(
    "payload",
    [
        {"example_count": -1, "weighted_score_sum": 0.0},
        {"example_count": 0, "weighted_score_sum": 1.0},
        {"example_count": 2},
        {"example_count": "2", "weighted_score_sum": 1.0},
        {"example_count": 2, "weighted_score_sum": "1.0"},
    ],
)
def test_partial_result_from_mapping_rejects_invalid_payloads(
    payload: dict[str, object],
) -> None:
    """Invalid counts, sums, and sentinel violations should be rejected."""
    with pytest.raises(ScoringError):
        PartialResult.from_mapping(payload)


def test_partial_result_from_mapping_keeps_non_finite_sums() -> None:
    """A diverged batch score should parse instead of failing the reduction."""
    result = PartialResult.from_mapping({"example_count": 5, "weighted_score_sum": float("nan")})

    assert result.example_count == 5 and math.isnan(result.weighted_score_sum)


@pytest.mark.parametrize(
    ("example_count", "weighted_score_sum"),
    [(-1, 0.0), (0, 3.0), (True, 1.0), (2.0, 1.0)],
)
def test_partial_result_constructor_enforces_invariants(
    example_count: object,
    weighted_score_sum: float,
) -> None:
    """Directly built results should obey the same rules as parsed ones."""
    with pytest.raises(ScoringError):
        PartialResult(example_count, weighted_score_sum)
