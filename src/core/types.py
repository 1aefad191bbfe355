"""Shared typed models.

This module defines immutable data models used by the batching,
instantiation, scoring, and reduction layers to keep interfaces explicit.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from core.errors import ScoringError


@dataclass(frozen=True)
class PartialResult:
    """Partial score emitted for one scored batch or empty partition.

    Attributes:
        example_count: Number of examples that contributed to the score.
        weighted_score_sum: Sum of batch score multiplied by batch example count.
            Non-finite values are kept so a diverged batch surfaces in the average.
    """

    example_count: int
    weighted_score_sum: float

    def __post_init__(self) -> None:
        if (
            isinstance(self.example_count, bool)
            or not isinstance(self.example_count, int)
            or self.example_count < 0
        ):
            raise ScoringError(
                f"Invalid example_count {self.example_count!r}: expected non-negative integer."
            )
        if self.example_count == 0 and self.weighted_score_sum != 0:
            raise ScoringError(
                "Invalid partial result: zero example_count with weighted_score_sum "
                f"{self.weighted_score_sum}."
            )

    @classmethod
    def zero(cls) -> "PartialResult":
        """Return the identity element, also used as the empty-partition sentinel."""
        return cls(example_count=0, weighted_score_sum=0.0)

    @classmethod
    def from_batch_score(cls, example_count: int, score: float) -> "PartialResult":
        """Weight a mean batch score by the number of examples in the batch."""
        return cls(example_count=example_count, weighted_score_sum=score * example_count)

    def combine(self, other: "PartialResult") -> "PartialResult":
        """Combine two partial results; commutative and associative."""
        return PartialResult(
            example_count=self.example_count + other.example_count,
            weighted_score_sum=self.weighted_score_sum + other.weighted_score_sum,
        )

    def __add__(self, other: object) -> "PartialResult":
        if not isinstance(other, PartialResult):
            return NotImplemented
        return self.combine(other)

    def to_dict(self) -> dict[str, object]:
        """Serialize to a JSON-compatible mapping."""
        return {
            "example_count": self.example_count,
            "weighted_score_sum": self.weighted_score_sum,
        }

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object]) -> "PartialResult":
        """Parse a partial result from a JSON mapping.

        Accepts the ``NaN`` and ``Infinity`` tokens written by ``json.dumps``.

        Raises:
            ScoringError: If fields are missing or violate result invariants.
        """
        raw_sum = payload.get("weighted_score_sum")
        if isinstance(raw_sum, bool) or not isinstance(raw_sum, (int, float)):
            raise ScoringError(
                f"Invalid weighted_score_sum {raw_sum!r}: expected a number."
            )
        raw_count: Any = payload.get("example_count")
        return cls(example_count=raw_count, weighted_score_sum=float(raw_sum))


@dataclass(frozen=True)
class LabeledExample:
    """One element of a partition stream.

    Every tensor carries a leading example dimension, so one element
    may hold a single example or a pre-batched group of examples.

    Attributes:
        features: Model input tensors keyed by input name.
        labels: Label tensors keyed by output name.
    """

    features: Mapping[str, Any]
    labels: Mapping[str, Any]


@dataclass(frozen=True)
class InputSpec:
    """Named model input and its flat feature width."""

    name: str
    size: int


@dataclass(frozen=True)
class LayerSpec:
    """One layer of the shared trunk.

    Attributes:
        layer_type: Layer kind, for example linear or relu.
        out_features: Output width for linear layers.
        bias: Whether linear layers carry a bias term.
        dropout: Dropout probability for dropout layers.
    """

    layer_type: str
    out_features: int | None = None
    bias: bool = True
    dropout: float = 0.0


@dataclass(frozen=True)
class OutputSpec:
    """Named model output head with its width and loss function."""

    name: str
    size: int
    loss: str


@dataclass(frozen=True)
class ArchitectureSpec:
    """Parsed, immutable network topology.

    Attributes:
        seed: Seed used when allocating initial parameter buffers.
        inputs: Ordered model inputs, concatenated along the feature axis.
        layers: Shared trunk layers applied to the concatenated inputs.
        outputs: Output heads, each scored against the matching labels.
        l1: L1 regularization coefficient added to the score.
        l2: L2 regularization coefficient added to the score.
    """

    seed: int
    inputs: tuple[InputSpec, ...]
    layers: tuple[LayerSpec, ...]
    outputs: tuple[OutputSpec, ...]
    l1: float = 0.0
    l2: float = 0.0

    @property
    def input_width(self) -> int:
        """Width of the concatenated input features."""
        return sum(input_spec.size for input_spec in self.inputs)
