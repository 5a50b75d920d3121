# Isomorph: Matrix-Isomorphism Tensor Substrate (C) 2026 Eunkyum Kim
# Licensed under the Apache License, Version 2.0 | "Unbending" Paradigm

"""Closed set of scalar types a tensor or field may hold.

Each :class:`ScalarType` carries capability tags so containers can reject
nonsensical instantiations (integers, booleans, objects) when they are
built rather than somewhere inside a kernel.
"""

from __future__ import annotations

import enum

import numpy as np
import torch

from core.errors import UnsupportedScalarType


class Capability(enum.Flag):
    """Algebraic capabilities of a scalar type."""

    RING = enum.auto()
    FIELD = enum.auto()
    REAL = enum.auto()
    COMPLEX = enum.auto()


_NUMPY = {
    "f32": np.float32,
    "f64": np.float64,
    "complex32": np.complex64,
    "complex64": np.complex128,
}

_TORCH = {
    "f32": torch.float32,
    "f64": torch.float64,
    "complex32": torch.complex64,
    "complex64": torch.complex128,
}


class ScalarType(enum.Enum):
    """Scalar element type of a tensor.

    ``COMPLEX32`` is a complex number with 32-bit float parts and
    ``COMPLEX64`` one with 64-bit float parts.
    """

    F32 = "f32"
    F64 = "f64"
    COMPLEX32 = "complex32"
    COMPLEX64 = "complex64"

    @property
    def capabilities(self) -> Capability:
        base = Capability.RING | Capability.FIELD
        if self.is_complex:
            return base | Capability.COMPLEX
        return base | Capability.REAL

    @property
    def is_complex(self) -> bool:
        return self in (ScalarType.COMPLEX32, ScalarType.COMPLEX64)

    @property
    def numpy_dtype(self) -> np.dtype:
        return np.dtype(_NUMPY[self.value])

    @property
    def torch_dtype(self) -> torch.dtype:
        return _TORCH[self.value]

    @property
    def bits(self) -> int:
        """Width of one real component."""
        return 32 if self in (ScalarType.F32, ScalarType.COMPLEX32) else 64

    @property
    def itemsize(self) -> int:
        return self.numpy_dtype.itemsize

    @property
    def eps(self) -> float:
        return float(np.finfo(self.numpy_dtype).eps)

    def real(self) -> "ScalarType":
        """Real counterpart (identity for real types)."""
        return ScalarType.F32 if self.bits == 32 else ScalarType.F64

    def complex(self) -> "ScalarType":
        """Complex counterpart (identity for complex types)."""
        return ScalarType.COMPLEX32 if self.bits == 32 else ScalarType.COMPLEX64

    def has(self, capability: Capability) -> bool:
        return capability in self.capabilities

    @classmethod
    def parse(cls, value) -> "ScalarType":
        """Resolve a member, config string, numpy dtype or torch dtype.

        Raises:
            UnsupportedScalarType: for anything outside the closed set.
        """
        if isinstance(value, ScalarType):
            return value
        if value is None:
            raise UnsupportedScalarType("Scalar type must not be None")
        if isinstance(value, str):
            try:
                return cls(value.lower())
            except ValueError:
                pass
            try:
                value = np.dtype(value)
            except TypeError:
                raise UnsupportedScalarType(f"Unknown scalar type: {value!r}") from None
        if isinstance(value, torch.dtype):
            for member in cls:
                if member.torch_dtype == value:
                    return member
            raise UnsupportedScalarType(f"Unsupported torch dtype: {value}")
        try:
            dtype = np.dtype(value)
        except TypeError:
            raise UnsupportedScalarType(f"Unsupported scalar type: {value!r}") from None
        for member in cls:
            if member.numpy_dtype == dtype:
                return member
        raise UnsupportedScalarType(
            f"Scalar type {dtype} does not satisfy the field axioms "
            f"(supported: {', '.join(m.value for m in cls)})"
        )
