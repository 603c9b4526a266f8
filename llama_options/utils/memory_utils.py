"""Device and host memory checks around model loads and generation."""

import gc
import logging
from dataclasses import dataclass

import psutil
import torch

GIB = 1024**3


@dataclass(frozen=True)
class MemorySnapshot:
    """Point-in-time view of device (CUDA) and host memory, in GB."""
    device_allocated_gb: float
    device_reserved_gb: float
    device_total_gb: float
    host_used_percent: float
    host_available_gb: float

    @property
    def device_used_percent(self) -> float:
        if self.device_total_gb <= 0:
            return 0.0
        return self.device_allocated_gb / self.device_total_gb * 100

    def describe(self) -> str:
        return (
            f"GPU: {self.device_allocated_gb:.2f}GB ({self.device_used_percent:.1f}%), "
            f"Cached: {self.device_reserved_gb:.2f}GB, "
            f"System: {self.host_used_percent:.1f}% used, {self.host_available_gb:.2f}GB free"
        )


def take_snapshot() -> MemorySnapshot:
    """Read current memory figures; device values are 0.0 without CUDA."""
    host = psutil.virtual_memory()
    if torch.cuda.is_available():
        allocated = torch.cuda.memory_allocated() / GIB
        reserved = torch.cuda.memory_reserved() / GIB
        total = torch.cuda.get_device_properties(0).total_memory / GIB
    else:
        allocated = reserved = total = 0.0

    return MemorySnapshot(
        device_allocated_gb=allocated,
        device_reserved_gb=reserved,
        device_total_gb=total,
        host_used_percent=host.percent,
        host_available_gb=host.available / GIB,
    )


class MemoryMonitor:
    """Memory guard used by TransformersRuntime.

    Logs usage at load/generation stages, enforces a device memory limit
    after loading, and decides whether weights can be page-locked for mlock.
    """

    def __init__(self, device_limit_gb: float = 8.0):
        self.device_limit_gb = device_limit_gb

    def log_memory_usage(self, stage: str, logger: logging.Logger) -> MemorySnapshot:
        snapshot = take_snapshot()
        logger.info("[%s] %s", stage, snapshot.describe())
        return snapshot

    def enforce_device_limit(self, operation: str) -> None:
        """
        Raises:
            RuntimeError: If allocated device memory is above the limit
        """
        allocated = take_snapshot().device_allocated_gb
        if allocated > self.device_limit_gb:
            raise RuntimeError(
                f"GPU memory limit exceeded during {operation}: "
                f"{allocated:.2f}GB > {self.device_limit_gb:.2f}GB"
            )

    def can_lock_memory(self, size_gb: float) -> bool:
        """Whether ``size_gb`` fits in free host memory and so can be pinned."""
        return size_gb <= take_snapshot().host_available_gb

    def release(self) -> None:
        """Return cached CUDA blocks and collect dropped model objects."""
        if torch.cuda.is_available():
            torch.cuda.empty_cache()
            torch.cuda.ipc_collect()
            torch.cuda.synchronize()
        gc.collect()


def model_memory_gb(model) -> float:
    """Size of a model's parameters and buffers in GB."""
    total = sum(p.numel() * p.element_size() for p in model.parameters())
    total += sum(b.numel() * b.element_size() for b in model.buffers())
    return total / GIB
