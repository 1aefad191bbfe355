"""CLI command describing an architecture descriptor."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any

from core.errors import ArchitectureError
from scoring.architecture import build_network, count_parameters, parse_architecture
from scoring.torch_runtime import import_torch


def add_architecture_info_command(subparsers: Any) -> None:
    """Register architecture-info subcommand."""
    parser = subparsers.add_parser(
        "architecture-info",
        help="Print parameter count and topology of an architecture descriptor",
    )
    parser.add_argument("architecture_file", help="Path to the JSON architecture descriptor")


def run_architecture_info_command(args: argparse.Namespace) -> int:
    """Print descriptor summary as key=value rows.

    The parameter count is the broadcast vector length workers expect.
    """
    architecture_path = Path(args.architecture_file).expanduser().resolve()
    if not architecture_path.exists():
        raise ArchitectureError(
            f"Architecture file not found at {architecture_path}. "
            "Provide a valid architecture descriptor path."
        )
    spec = parse_architecture(architecture_path.read_text(encoding="utf-8"))
    network = build_network(import_torch(), spec)
    print(f"parameter_count={count_parameters(network)}")
    print("inputs=" + ",".join(f"{item.name}:{item.size}" for item in spec.inputs))
    print("layers=" + (",".join(layer.layer_type for layer in spec.layers) or "-"))
    print(
        "outputs=" + ",".join(f"{item.name}:{item.size}:{item.loss}" for item in spec.outputs)
    )
    print(f"seed={spec.seed}")
    return 0
