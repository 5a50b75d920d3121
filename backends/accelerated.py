# Isomorph: Matrix-Isomorphism Tensor Substrate (C) 2026 Eunkyum Kim
# Licensed under the Apache License, Version 2.0 | "Unbending" Paradigm

"""Device (torch) backend for large or batched workloads.

Holds single-precision data only. Every host-facing result goes through
:meth:`AcceleratedBackend._to_host`, which synchronises the device, so the
contract stays blocking even though kernels are queued asynchronously.
"""

import numpy as np
import torch

from core.device import DeviceConfig, is_device_available, resolve_device, synchronize
from core.errors import BackendUnavailable, SingularMatrix
from core.scalar import ScalarType
from backends.base import TensorBackend
from log import get_logger

logger = get_logger(__name__)


class AcceleratedBackend(TensorBackend):
    """torch implementation of the contract.

    Attributes:
        device (str): Resolved torch device string.
    """

    name = "accelerated"
    supported_scalar_types = frozenset({ScalarType.F32, ScalarType.COMPLEX32})

    def __init__(self, device: str = "auto", allow_tf32: bool = False):
        """Binds the backend to a device.

        Args:
            device (str): ``auto`` (cuda > mps > cpu) or an explicit torch device.
            allow_tf32 (bool): Forwarded to :class:`DeviceConfig`.

        Raises:
            BackendUnavailable: If torch cannot allocate on the device.
        """
        self.device_config = DeviceConfig(device=device, allow_tf32=allow_tf32)
        self.device = self.device_config.device
        if not is_device_available(self.device):
            raise BackendUnavailable(f"torch cannot allocate on device {self.device!r}")
        self.device_config.apply_backend_settings()
        logger.info("Accelerated backend ready on %s (torch %s)", self.device, torch.__version__)

    @staticmethod
    def is_available(device: str = "auto") -> bool:
        return is_device_available(resolve_device(device))

    @property
    def key(self) -> str:
        return f"{self.name}:{self.device}"

    def _from_host(self, arr, scalar_type):
        arr = np.ascontiguousarray(arr, dtype=scalar_type.numpy_dtype)
        return torch.tensor(arr, dtype=scalar_type.torch_dtype, device=self.device)

    def _to_host(self, x):
        synchronize(self.device)
        return x.detach().resolve_conj().cpu().numpy().copy()

    def _full(self, shape, value, scalar_type):
        return torch.full(shape, value, dtype=scalar_type.torch_dtype, device=self.device)

    def _eye(self, n, batch_shape, scalar_type):
        eye = torch.eye(n, dtype=scalar_type.torch_dtype, device=self.device)
        return eye.expand(*batch_shape, n, n).clone()

    def _add(self, x, y):
        return torch.add(x, y)

    def _sub(self, x, y):
        return torch.sub(x, y)

    def _mul(self, x, y):
        return torch.mul(x, y)

    def _div(self, x, y):
        return torch.div(x, y)

    def _neg(self, x):
        return torch.neg(x)

    def _sqrt(self, x):
        return torch.sqrt(x)

    def _conj(self, x):
        return torch.conj_physical(x)

    def _real(self, x):
        return torch.real(x).clone()

    def _nan_to_num(self, x, value):
        return torch.where(torch.isfinite(x), x, torch.full_like(x, value))

    def _abs_max(self, x):
        return float(x.abs().max().item())

    def _matmul(self, x, y):
        return torch.matmul(x, y)

    def _cond(self, x):
        cond = torch.linalg.cond(x)
        return cond.detach().cpu().numpy()

    def _inverse(self, x):
        inv, info = torch.linalg.inv_ex(x)
        if bool((info != 0).any()):
            raise SingularMatrix("torch.linalg.inv_ex reported a singular matrix")
        return inv

    def _eigh(self, x):
        values, vectors = torch.linalg.eigh(x)
        return values, vectors

    def _slice(self, x, axis, start, stop):
        return x.narrow(axis, start, stop - start).clone()

    def _reshape(self, x, shape):
        return x.reshape(shape)

    def _permute(self, x, axes):
        return x.permute(*axes)

    def _concat(self, xs, axis):
        return torch.cat(xs, dim=axis)

    def _sum(self, x, axis, keepdims):
        if axis is None:
            axis = tuple(range(x.ndim))
        if len(axis) == 0:
            return x.clone()
        return torch.sum(x, dim=axis, keepdim=keepdims)

    def _cast(self, x, scalar_type):
        return x.to(scalar_type.torch_dtype)
