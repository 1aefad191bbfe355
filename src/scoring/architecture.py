"""Architecture descriptor parsing and network construction.

This module turns the JSON architecture descriptor shared by every worker
into an immutable ``ArchitectureSpec`` and builds a torch module from it.
Parsing is a pure function of the descriptor text, so repeated calls
across partitions always yield the same topology.
"""

from __future__ import annotations

import functools
import json
from typing import Any, Mapping, cast

from core.constants import (
    ARCHITECTURE_FORMAT_VERSION,
    DEFAULT_ARCHITECTURE_SEED,
    DEFAULT_DROPOUT_PROBABILITY,
    SUPPORTED_LAYER_TYPES,
    SUPPORTED_LOSS_FUNCTIONS,
)
from core.errors import ArchitectureError
from core.types import ArchitectureSpec, InputSpec, LayerSpec, OutputSpec

_ROOT_KEYS = ("format_version", "seed", "inputs", "layers", "outputs", "l1", "l2")


@functools.lru_cache(maxsize=32)
def parse_architecture(architecture_json: str) -> ArchitectureSpec:
    """Parse an architecture descriptor into a validated spec.

    Args:
        architecture_json: JSON descriptor text.

    Returns:
        Immutable architecture spec.

    Raises:
        ArchitectureError: If the descriptor is not valid JSON or violates the format.
    """
    payload = _read_json_payload(architecture_json)
    _validate_root_keys(payload)
    format_version = payload.get("format_version", ARCHITECTURE_FORMAT_VERSION)
    if format_version != ARCHITECTURE_FORMAT_VERSION:
        raise ArchitectureError(
            f"Unsupported architecture format_version {format_version!r}: "
            f"expected {ARCHITECTURE_FORMAT_VERSION}."
        )
    inputs = tuple(
        _parse_input(item, index)
        for index, item in enumerate(_read_list(payload, "inputs"))
    )
    layers = tuple(
        _parse_layer(item, index)
        for index, item in enumerate(_read_list(payload, "layers", required=False))
    )
    outputs = tuple(
        _parse_output(item, index)
        for index, item in enumerate(_read_list(payload, "outputs"))
    )
    _validate_unique_names([spec.name for spec in inputs], "input")
    _validate_unique_names([spec.name for spec in outputs], "output")
    return ArchitectureSpec(
        seed=_read_int(payload, "seed", DEFAULT_ARCHITECTURE_SEED, "architecture", minimum=0),
        inputs=inputs,
        layers=layers,
        outputs=outputs,
        l1=_read_float(payload, "l1", 0.0, "architecture"),
        l2=_read_float(payload, "l2", 0.0, "architecture"),
    )


def build_network(torch_module: Any, spec: ArchitectureSpec) -> Any:
    """Build a torch module with freshly allocated parameters.

    Initial values come from a forked RNG seeded with ``spec.seed`` so the
    caller's global RNG state is left untouched.

    Args:
        torch_module: Imported torch module.
        spec: Parsed architecture spec.

    Returns:
        torch.nn.Module whose forward maps named inputs to named outputs.
    """
    network_class = _build_network_class(torch_module, spec)
    with torch_module.random.fork_rng(devices=[]):
        torch_module.manual_seed(spec.seed)
        return network_class()


def count_parameters(network: Any) -> int:
    """Return the total number of trainable parameter values."""
    return sum(int(parameter.numel()) for parameter in network.parameters())


def _build_network_class(torch_module: Any, spec: ArchitectureSpec) -> type:
    """Create the network class bound to runtime torch and spec."""
    torch_nn = torch_module.nn
    module_base = cast(type, torch_nn.Module)

    class ScoringNetwork(module_base):  # type: ignore[misc,valid-type]
        """Concatenated inputs, shared trunk, one linear head per output."""

        def __init__(self) -> None:
            super().__init__()
            trunk_layers, trunk_width = _build_trunk(torch_module, spec)
            self.trunk = torch_nn.Sequential(*trunk_layers)
            self.heads = torch_nn.ModuleDict(
                {
                    output_spec.name: torch_nn.Linear(trunk_width, output_spec.size)
                    for output_spec in spec.outputs
                }
            )

        def forward(self, inputs: Any) -> dict[str, Any]:
            hidden_states = self.trunk(inputs)
            return {name: head(hidden_states) for name, head in self.heads.items()}

    return ScoringNetwork


def _build_trunk(torch_module: Any, spec: ArchitectureSpec) -> tuple[list[Any], int]:
    torch_nn = torch_module.nn
    layers: list[Any] = []
    current_width = spec.input_width
    for layer_spec in spec.layers:
        if layer_spec.layer_type == "linear":
            out_features = cast(int, layer_spec.out_features)
            layers.append(torch_nn.Linear(current_width, out_features, bias=layer_spec.bias))
            current_width = out_features
        elif layer_spec.layer_type == "relu":
            layers.append(torch_nn.ReLU())
        elif layer_spec.layer_type == "tanh":
            layers.append(torch_nn.Tanh())
        elif layer_spec.layer_type == "sigmoid":
            layers.append(torch_nn.Sigmoid())
        elif layer_spec.layer_type == "gelu":
            layers.append(torch_nn.GELU())
        else:
            layers.append(torch_nn.Dropout(layer_spec.dropout))
    return layers, current_width


def _read_json_payload(architecture_json: str) -> Mapping[str, object]:
    try:
        payload = json.loads(architecture_json)
    except json.JSONDecodeError as error:
        raise ArchitectureError(
            f"Failed to parse architecture JSON: {error.msg} at line {error.lineno}. "
            "Serialize the architecture descriptor as a JSON object."
        ) from error
    if not isinstance(payload, dict):
        raise ArchitectureError("Invalid architecture JSON: expected JSON object.")
    return payload


def _validate_root_keys(payload: Mapping[str, object]) -> None:
    unknown_keys = sorted(set(payload) - set(_ROOT_KEYS))
    if unknown_keys:
        raise ArchitectureError(
            f"Unsupported architecture fields {unknown_keys}: "
            f"expected only {', '.join(_ROOT_KEYS)}."
        )


def _parse_input(item: object, index: int) -> InputSpec:
    context = f"inputs[{index}]"
    mapping = _expect_mapping(item, context)
    return InputSpec(
        name=_read_name(mapping, context),
        size=_read_int(mapping, "size", None, context, minimum=1),
    )


def _parse_layer(item: object, index: int) -> LayerSpec:
    context = f"layers[{index}]"
    mapping = _expect_mapping(item, context)
    layer_type = mapping.get("type")
    if layer_type not in SUPPORTED_LAYER_TYPES:
        raise ArchitectureError(
            f"Invalid {context}.type {layer_type!r}: expected one of "
            f"{', '.join(SUPPORTED_LAYER_TYPES)}."
        )
    if layer_type == "linear":
        bias = mapping.get("bias", True)
        if not isinstance(bias, bool):
            raise ArchitectureError(f"Invalid {context}.bias {bias!r}: expected boolean.")
        return LayerSpec(
            layer_type="linear",
            out_features=_read_int(mapping, "out_features", None, context, minimum=1),
            bias=bias,
        )
    if layer_type == "dropout":
        probability = _read_float(mapping, "p", DEFAULT_DROPOUT_PROBABILITY, context)
        if not 0 <= probability < 1:
            raise ArchitectureError(
                f"Invalid {context}.p {probability}: expected value in [0, 1)."
            )
        return LayerSpec(layer_type="dropout", dropout=probability)
    return LayerSpec(layer_type=str(layer_type))


def _parse_output(item: object, index: int) -> OutputSpec:
    context = f"outputs[{index}]"
    mapping = _expect_mapping(item, context)
    loss = mapping.get("loss")
    if loss not in SUPPORTED_LOSS_FUNCTIONS:
        raise ArchitectureError(
            f"Invalid {context}.loss {loss!r}: expected one of "
            f"{', '.join(SUPPORTED_LOSS_FUNCTIONS)}."
        )
    return OutputSpec(
        name=_read_name(mapping, context),
        size=_read_int(mapping, "size", None, context, minimum=1),
        loss=str(loss),
    )


def _expect_mapping(value: object, context: str) -> Mapping[str, object]:
    if isinstance(value, dict):
        return value
    raise ArchitectureError(
        f"Invalid {context}: expected JSON object, got {type(value).__name__}."
    )


def _read_list(
    payload: Mapping[str, object],
    field_name: str,
    required: bool = True,
) -> list[object]:
    raw_value = payload.get(field_name)
    if raw_value is None and not required:
        return []
    if not isinstance(raw_value, list) or (required and not raw_value):
        raise ArchitectureError(
            f"Invalid architecture field '{field_name}': expected a non-empty list."
        )
    return raw_value


def _read_name(mapping: Mapping[str, object], context: str) -> str:
    name = mapping.get("name")
    if not isinstance(name, str) or not name or "." in name:
        raise ArchitectureError(
            f"Invalid {context}.name {name!r}: expected a non-empty string without dots."
        )
    return name


def _read_int(
    mapping: Mapping[str, object],
    field_name: str,
    default_value: int | None,
    context: str,
    minimum: int,
) -> int:
    raw_value = mapping.get(field_name, default_value)
    if isinstance(raw_value, bool) or not isinstance(raw_value, int):
        raise ArchitectureError(
            f"Invalid {context}.{field_name}: expected integer, "
            f"got {type(raw_value).__name__}."
        )
    if raw_value < minimum:
        raise ArchitectureError(
            f"Invalid {context}.{field_name} {raw_value}: expected value >= {minimum}."
        )
    return raw_value


def _read_float(
    mapping: Mapping[str, object],
    field_name: str,
    default_value: float,
    context: str,
) -> float:
    raw_value = mapping.get(field_name, default_value)
    if isinstance(raw_value, bool) or not isinstance(raw_value, (float, int)):
        raise ArchitectureError(
            f"Invalid {context}.{field_name}: expected number, "
            f"got {type(raw_value).__name__}."
        )
    if float(raw_value) < 0:
        raise ArchitectureError(
            f"Invalid {context}.{field_name} {raw_value}: expected value >= 0."
        )
    return float(raw_value)


def _validate_unique_names(names: list[str], kind: str) -> None:
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise ArchitectureError(f"Duplicate {kind} names in architecture: {duplicates}.")
