# Isomorph: Matrix-Isomorphism Tensor Substrate (C) 2026 Eunkyum Kim
# Licensed under the Apache License, Version 2.0 | "Unbending" Paradigm

"""Host (numpy) backend; the correctness oracle and fallback target."""

import numpy as np

from core.errors import SingularMatrix
from core.scalar import ScalarType
from backends.base import TensorBackend
from log import get_logger

logger = get_logger(__name__)


class ReferenceBackend(TensorBackend):
    """numpy implementation of the contract over host memory.

    Supports every scalar type. Floating-point warnings are silenced so that
    division and square roots follow plain IEEE semantics, as on the
    accelerated backend.
    """

    name = "reference"
    supported_scalar_types = frozenset(ScalarType)

    def __init__(self):
        logger.info("Reference backend ready (numpy %s)", np.__version__)

    def _from_host(self, arr, scalar_type):
        return np.array(arr, dtype=scalar_type.numpy_dtype, copy=True)

    def _to_host(self, x):
        return np.array(x, copy=True)

    def _freeze(self, x):
        x = np.asarray(x)
        x.flags.writeable = False
        return x

    def _full(self, shape, value, scalar_type):
        return np.full(shape, value, dtype=scalar_type.numpy_dtype)

    def _eye(self, n, batch_shape, scalar_type):
        eye = np.eye(n, dtype=scalar_type.numpy_dtype)
        return np.broadcast_to(eye, batch_shape + (n, n)).copy()

    def _add(self, x, y):
        return self._keep_dtype(x, np.add(x, y))

    def _sub(self, x, y):
        return self._keep_dtype(x, np.subtract(x, y))

    def _mul(self, x, y):
        with np.errstate(over="ignore", invalid="ignore"):
            return self._keep_dtype(x, np.multiply(x, y))

    def _div(self, x, y):
        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            return self._keep_dtype(x, np.true_divide(x, y))

    @staticmethod
    def _keep_dtype(x, out):
        # Python scalars must not promote f32 operands to f64
        if out.dtype != x.dtype:
            out = out.astype(x.dtype)
        return out

    def _neg(self, x):
        return np.negative(x)

    def _sqrt(self, x):
        with np.errstate(invalid="ignore"):
            return np.sqrt(x)

    def _conj(self, x):
        return np.conj(x)

    def _real(self, x):
        return np.real(x).copy()

    def _nan_to_num(self, x, value):
        return np.where(np.isfinite(x), x, np.asarray(value, dtype=x.dtype))

    def _abs_max(self, x):
        return float(np.max(np.abs(x)))

    def _matmul(self, x, y):
        return np.matmul(x, y)

    def _cond(self, x):
        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            return np.linalg.cond(x)

    def _inverse(self, x):
        try:
            return np.linalg.inv(x)
        except np.linalg.LinAlgError as exc:
            raise SingularMatrix(str(exc)) from exc

    def _eigh(self, x):
        return np.linalg.eigh(x)

    def _slice(self, x, axis, start, stop):
        index = [slice(None)] * x.ndim
        index[axis] = slice(start, stop)
        return x[tuple(index)].copy()

    def _reshape(self, x, shape):
        return np.reshape(x, shape)

    def _permute(self, x, axes):
        return np.transpose(x, axes)

    def _concat(self, xs, axis):
        return np.concatenate(xs, axis=axis)

    def _sum(self, x, axis, keepdims):
        return np.asarray(np.sum(x, axis=axis, keepdims=keepdims))

    def _cast(self, x, scalar_type):
        return x.astype(scalar_type.numpy_dtype)
