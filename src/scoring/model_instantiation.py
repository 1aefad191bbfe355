"""Worker-local model reconstruction from a broadcast parameter vector.

This module rebuilds a scorable model from the shared architecture
descriptor, validates the parameter count, and loads a private copy of
the parameter vector so the broadcast value is never aliased.
"""

from __future__ import annotations

from typing import Any

from core.errors import BatchShapeError, ParameterShapeMismatch
from core.logging_config import get_logger
from core.types import ArchitectureSpec, OutputSpec
from scoring.architecture import build_network, count_parameters, parse_architecture
from scoring.batching import LabeledBatch

_LOGGER = get_logger(__name__)


class ModelInstance:
    """Scorable network owned by exactly one partition-scoring call."""

    def __init__(
        self,
        torch_module: Any,
        spec: ArchitectureSpec,
        network: Any,
        device: Any,
    ) -> None:
        self._torch = torch_module
        self._spec = spec
        self._network = network
        self._device = device

    def parameter_count(self) -> int:
        """Return the total number of parameter values in the network."""
        return count_parameters(self._network)

    def parameters_vector(self) -> Any:
        """Return a flat copy of the current network parameters."""
        flat_parameters = self._torch.nn.utils.parameters_to_vector(self._network.parameters())
        return flat_parameters.detach().clone()

    def score(self, batch: LabeledBatch, training: bool = False) -> Any:
        """Compute the mean score of one batch without updating parameters.

        The result stays a 0-dim tensor on the scoring device so queued
        device work is not forced per batch.

        Args:
            batch: Batch to score.
            training: Run layers in training mode (dropout active).

        Returns:
            0-dim tensor holding summed output losses plus regularization.

        Raises:
            BatchShapeError: If batch tensors do not match the architecture.
        """
        self._network.train(mode=training)
        with self._torch.no_grad():
            example_count = batch.example_count
            inputs = self._assemble_inputs(batch, example_count)
            outputs = self._network(inputs)
            total_score = self._regularization_score()
            for output_spec in self._spec.outputs:
                total_score = total_score + self._output_score(
                    output_spec,
                    outputs[output_spec.name],
                    batch,
                    example_count,
                )
        return total_score

    def _assemble_inputs(self, batch: LabeledBatch, example_count: int) -> Any:
        """Concatenate declared inputs along the feature axis in declared order."""
        pieces: list[Any] = []
        for input_spec in self._spec.inputs:
            if input_spec.name not in batch.features:
                raise BatchShapeError(
                    f"Batch is missing model input '{input_spec.name}'. "
                    f"Available inputs: {sorted(batch.features)}."
                )
            tensor = self._to_device_rows(
                batch.features[input_spec.name],
                example_count,
                input_spec.name,
            )
            if int(tensor.shape[1]) != input_spec.size:
                raise BatchShapeError(
                    f"Invalid width for input '{input_spec.name}': expected {input_spec.size}, "
                    f"got {int(tensor.shape[1])}."
                )
            pieces.append(tensor)
        if len(pieces) == 1:
            return pieces[0]
        return self._torch.cat(pieces, dim=1)

    def _output_score(
        self,
        output_spec: OutputSpec,
        logits: Any,
        batch: LabeledBatch,
        example_count: int,
    ) -> Any:
        functional = self._torch.nn.functional
        if output_spec.name not in batch.labels:
            raise BatchShapeError(
                f"Batch is missing labels for output '{output_spec.name}'. "
                f"Available labels: {sorted(batch.labels)}."
            )
        raw_labels = self._torch.as_tensor(batch.labels[output_spec.name], device=self._device)
        if output_spec.loss == "cross_entropy" and not self._torch.is_floating_point(raw_labels):
            class_indexes = raw_labels.reshape(-1).long()
            if int(class_indexes.shape[0]) != example_count:
                raise BatchShapeError(
                    f"Invalid class labels for output '{output_spec.name}': expected "
                    f"{example_count} indexes, got {int(class_indexes.shape[0])}."
                )
            return functional.cross_entropy(logits, class_indexes)
        targets = self._to_device_rows(raw_labels, example_count, output_spec.name)
        if int(targets.shape[1]) != output_spec.size:
            raise BatchShapeError(
                f"Invalid label width for output '{output_spec.name}': expected "
                f"{output_spec.size}, got {int(targets.shape[1])}."
            )
        if output_spec.loss == "cross_entropy":
            return functional.cross_entropy(logits, targets)
        if output_spec.loss == "binary_cross_entropy":
            return functional.binary_cross_entropy_with_logits(logits, targets)
        if output_spec.loss == "l1":
            return functional.l1_loss(logits, targets)
        return functional.mse_loss(logits, targets)

    def _regularization_score(self) -> Any:
        score = self._torch.zeros((), device=self._device)
        if self._spec.l1 == 0 and self._spec.l2 == 0:
            return score
        for parameter in self._network.parameters():
            if parameter.dim() < 2:
                continue
            if self._spec.l1 > 0:
                score = score + self._spec.l1 * parameter.abs().sum()
            if self._spec.l2 > 0:
                score = score + 0.5 * self._spec.l2 * parameter.pow(2).sum()
        return score

    def _to_device_rows(self, tensor: Any, example_count: int, name: str) -> Any:
        """Move a tensor to the scoring device as a 2-D float matrix."""
        converted = self._torch.as_tensor(tensor).to(device=self._device, dtype=self._torch.float32)
        if converted.dim() == 0 or int(converted.shape[0]) != example_count:
            raise BatchShapeError(
                f"Inconsistent example count for '{name}': expected {example_count}, "
                f"got shape {tuple(converted.shape)}."
            )
        return converted.reshape(example_count, -1)


def instantiate_model(
    torch_module: Any,
    architecture_json: str,
    parameter_vector: Any,
    device: Any,
) -> ModelInstance:
    """Rebuild a model from the descriptor and load a private parameter copy.

    Args:
        torch_module: Imported torch module.
        architecture_json: Shared architecture descriptor.
        parameter_vector: Shared flat parameter array; never modified.
        device: Device that will hold the model.

    Returns:
        Worker-local model instance in evaluation mode.

    Raises:
        ArchitectureError: If the descriptor is invalid.
        ParameterShapeMismatch: If the vector length differs from the parameter count.
    """
    spec = parse_architecture(architecture_json)
    network = build_network(torch_module, spec).to(device)
    expected_count = count_parameters(network)
    shared_vector = torch_module.as_tensor(parameter_vector)
    actual_count = int(shared_vector.numel())
    if actual_count != expected_count:
        _LOGGER.error(
            "parameter_shape_mismatch",
            expected=expected_count,
            actual=actual_count,
        )
        raise ParameterShapeMismatch(expected=expected_count, actual=actual_count)
    private_vector = shared_vector.detach().reshape(-1).to(
        device=device,
        dtype=torch_module.float32,
        copy=True,
    )
    torch_module.nn.utils.vector_to_parameters(private_vector, network.parameters())
    network.requires_grad_(False)
    network.eval()
    _LOGGER.debug(
        "model_instantiated",
        parameter_count=expected_count,
        inputs=[input_spec.name for input_spec in spec.inputs],
        outputs=[output_spec.name for output_spec in spec.outputs],
        device=str(device),
    )
    return ModelInstance(torch_module, spec, network, device)
