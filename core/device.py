# Isomorph: Matrix-Isomorphism Tensor Substrate (C) 2026 Eunkyum Kim
# Licensed under the Apache License, Version 2.0 | "Unbending" Paradigm

"""Device resolution and backend tuning for the accelerated backend.

Centralises device resolution, availability probing, host synchronisation
and the TF32 switch into a single :class:`DeviceConfig` dataclass.
"""

from __future__ import annotations

from dataclasses import dataclass

import torch


def resolve_device(device: str = "auto") -> str:
    """Resolve ``'auto'`` to the best available accelerator.

    Priority: cuda > mps > cpu.
    """
    if device != "auto":
        return device
    if torch.cuda.is_available():
        return "cuda"
    if hasattr(torch.backends, "mps") and torch.backends.mps.is_available():
        return "mps"
    return "cpu"


def is_device_available(device: str) -> bool:
    """Whether torch can allocate on *device*."""
    device = resolve_device(device)
    try:
        torch.empty(1, device=device)
    except (RuntimeError, AssertionError):
        # torch raises AssertionError when it was built without CUDA
        return False
    return True


def synchronize(device: str) -> None:
    """Block the host until queued kernels on *device* have finished."""
    if device.startswith("cuda"):
        torch.cuda.synchronize(device)
    elif device.startswith("mps") and hasattr(torch, "mps"):
        torch.mps.synchronize()


@dataclass
class DeviceConfig:
    """Bag of device / backend settings.

    Attributes:
        device: Resolved device string (``cuda``, ``mps``, ``cpu``).
        allow_tf32: Permit TF32 matmuls on Ampere+ GPUs. Off by default,
            TF32 rounds inputs to 10 mantissa bits and breaks parity with
            the reference backend.
    """

    device: str = "auto"
    allow_tf32: bool = False

    def __post_init__(self) -> None:
        self.device = resolve_device(self.device)

    @property
    def is_cuda(self) -> bool:
        return self.device.startswith("cuda")

    def apply_backend_settings(self) -> None:
        """Apply the TF32 switch (and future backend knobs)."""
        if self.is_cuda:
            torch.backends.cuda.matmul.allow_tf32 = self.allow_tf32
        if torch.backends.cudnn.is_available():
            torch.backends.cudnn.allow_tf32 = self.allow_tf32
