"""Completion barrier for deferred device computation.

CUDA and MPS kernels are queued asynchronously, so a scored loss tensor
may not hold its final value when the Python call returns. ``commit``
blocks until every kernel queued by this worker has finished.
"""

from __future__ import annotations

from typing import Any

from core.logging_config import get_logger

_LOGGER = get_logger(__name__)


def commit(torch_module: Any, device: Any) -> None:
    """Block until all queued numeric work on ``device`` has completed.

    Args:
        torch_module: Imported torch module.
        device: Device the partition was scored on.
    """
    device_type = getattr(device, "type", str(device))
    if device_type == "cuda":
        torch_module.cuda.synchronize(device)
    elif device_type == "mps":
        torch_module.mps.synchronize()
    _LOGGER.debug("execution_barrier_committed", device=str(device))
