"""Torch import and device selection helpers.

This module centralizes the lazy torch import and device resolution so
workers that never score a batch do not pay the torch import cost.
"""

from __future__ import annotations

from typing import Any

from core.errors import ScoringConfigError, ScoringDependencyError


def import_torch() -> Any:
    """Import torch with a clear dependency error.

    Raises:
        ScoringDependencyError: If torch is not installed.
    """
    try:
        import torch
    except ImportError as error:
        raise ScoringDependencyError(
            "Partition scoring requires torch, but it is not installed. "
            "Install torch on every worker before launching the scoring job."
        ) from error
    return torch


def resolve_execution_device(torch_module: Any, device_name: str) -> Any:
    """Resolve a configured device name into a torch device.

    Args:
        torch_module: Imported torch module.
        device_name: One of auto, cpu, cuda, or mps.

    Returns:
        torch.device instance.

    Raises:
        ScoringConfigError: If the requested accelerator is unavailable.
    """
    if device_name == "auto":
        if is_cuda_available(torch_module):
            return torch_module.device("cuda")
        if is_mps_available(torch_module):
            return torch_module.device("mps")
        return torch_module.device("cpu")
    if device_name == "cuda" and not is_cuda_available(torch_module):
        raise ScoringConfigError(
            "Device 'cuda' was requested but CUDA is not available on this worker. "
            "Use device 'auto' or 'cpu'."
        )
    if device_name == "mps" and not is_mps_available(torch_module):
        raise ScoringConfigError(
            "Device 'mps' was requested but MPS is not available on this worker. "
            "Use device 'auto' or 'cpu'."
        )
    return torch_module.device(device_name)


def is_cuda_available(torch_module: Any) -> bool:
    """Return True when torch reports a usable CUDA device."""
    cuda_module = getattr(torch_module, "cuda", None)
    return cuda_module is not None and bool(cuda_module.is_available())


def is_mps_available(torch_module: Any) -> bool:
    """Return True when torch reports MPS backend support and availability."""
    backends = getattr(torch_module, "backends", None)
    if backends is None:
        return False
    mps_backend = getattr(backends, "mps", None)
    if mps_backend is None:
        return False
    probe = getattr(mps_backend, "is_available", None)
    if not callable(probe):
        return False
    return bool(probe())
