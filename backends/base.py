# Isomorph: Matrix-Isomorphism Tensor Substrate (C) 2026 Eunkyum Kim
# Licensed under the Apache License, Version 2.0 | "Unbending" Paradigm

"""Tensor backend contract.

:class:`TensorBackend` is a template: every public operation validates shapes,
scalar types and ownership, then calls a ``_hook`` that a concrete backend
implements against its native array type. Operations never mutate their
arguments and always return a new :class:`Tensor`.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from numbers import Number
from typing import Iterable, Sequence, Tuple

import numpy as np

from core.errors import (
    BackendMismatch,
    NotSymmetric,
    ScalarTypeMismatch,
    ShapeMismatch,
    SingularMatrix,
    UnsupportedScalarType,
)
from core.scalar import ScalarType
from core.validation import (
    broadcast_shapes,
    check_axis,
    check_matmul,
    check_same_scalar_type,
    check_slice,
    check_square,
)
from log import get_logger

logger = get_logger(__name__)


class Tensor:
    """Opaque handle to a dense array owned by one backend.

    Attributes:
        backend (TensorBackend): Backend that created the tensor.
        scalar_type (ScalarType): Element type, fixed for the tensor's life.

    The native array is private to the backend and never handed to host code;
    use :meth:`to_numpy` for a writable host copy.
    """

    __slots__ = ("backend", "_native", "scalar_type")

    def __init__(self, backend: "TensorBackend", native, scalar_type: ScalarType):
        self.backend = backend
        self._native = native
        self.scalar_type = scalar_type

    @property
    def shape(self) -> Tuple[int, ...]:
        return tuple(int(s) for s in self._native.shape)

    @property
    def ndim(self) -> int:
        return len(self._native.shape)

    @property
    def numel(self) -> int:
        return math.prod(self.shape)

    def to_numpy(self) -> np.ndarray:
        return self.backend.download(self)

    def __repr__(self):
        return (
            f"Tensor(shape={self.shape}, scalar_type={self.scalar_type.value}, "
            f"backend={self.backend.key})"
        )

    def __add__(self, other):
        if isinstance(other, (Tensor, Number)):
            return self.backend.add(self, other)
        return NotImplemented

    def __radd__(self, other):
        if isinstance(other, Number):
            return self.backend.add(self, other)
        return NotImplemented

    def __sub__(self, other):
        if isinstance(other, (Tensor, Number)):
            return self.backend.sub(self, other)
        return NotImplemented

    def __rsub__(self, other):
        if isinstance(other, Number):
            return self.backend.add(self.backend.neg(self), other)
        return NotImplemented

    def __mul__(self, other):
        if isinstance(other, (Tensor, Number)):
            return self.backend.mul(self, other)
        return NotImplemented

    def __rmul__(self, other):
        if isinstance(other, Number):
            return self.backend.mul(self, other)
        return NotImplemented

    def __truediv__(self, other):
        if isinstance(other, (Tensor, Number)):
            return self.backend.div(self, other)
        return NotImplemented

    def __rtruediv__(self, other):
        if isinstance(other, Number):
            numerator = self.backend.full(self.shape, other, self.scalar_type)
            return self.backend.div(numerator, self)
        return NotImplemented

    def __matmul__(self, other):
        if isinstance(other, Tensor):
            return self.backend.matmul(self, other)
        return NotImplemented

    def __neg__(self):
        return self.backend.neg(self)


def _normalize_shape(shape) -> Tuple[int, ...]:
    if isinstance(shape, (int, np.integer)):
        shape = (shape,)
    shape = tuple(int(s) for s in shape)
    if any(s < 0 for s in shape):
        raise ShapeMismatch(f"negative extent in shape {shape}")
    return shape


class TensorBackend(ABC):
    """Contract every backend fulfils.

    Subclasses set :attr:`name` and :attr:`supported_scalar_types` and
    implement the ``_hooks``. All validation lives here.
    """

    name: str = "abstract"
    supported_scalar_types: frozenset = frozenset()

    @property
    def key(self) -> str:
        """Cache key; two backends with equal keys share native arrays."""
        return self.name

    def supports(self, scalar_type) -> bool:
        try:
            scalar_type = ScalarType.parse(scalar_type)
        except UnsupportedScalarType:
            return False
        return scalar_type in self.supported_scalar_types

    def __repr__(self):
        return f"{type(self).__name__}(key={self.key!r})"

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _check_supported(self, scalar_type) -> ScalarType:
        scalar_type = ScalarType.parse(scalar_type)
        if scalar_type not in self.supported_scalar_types:
            raise UnsupportedScalarType(
                f"{self.name} backend does not support {scalar_type.value} "
                f"(supported: {', '.join(sorted(s.value for s in self.supported_scalar_types))})"
            )
        return scalar_type

    def _own(self, *tensors: Tensor) -> None:
        for t in tensors:
            if not isinstance(t, Tensor):
                raise TypeError(f"expected Tensor, got {type(t).__name__}")
            if t.backend.key != self.key:
                raise BackendMismatch(
                    f"tensor lives on {t.backend.key}, operation runs on {self.key}"
                )
        check_same_scalar_type(*tensors)

    def _wrap(self, native, scalar_type: ScalarType) -> Tensor:
        return Tensor(self, self._freeze(native), scalar_type)

    def _rewrap(self, tensor: Tensor) -> Tensor:
        # new handle over the same immutable storage
        return Tensor(self, tensor._native, tensor.scalar_type)

    # ------------------------------------------------------------------
    # Creation and transfer
    # ------------------------------------------------------------------

    def create(self, shape, data, scalar_type) -> Tensor:
        """Builds a tensor from flat or nested host data.

        Raises:
            ShapeMismatch: If the element count or nested shape disagrees.
            UnsupportedScalarType: If the backend cannot hold ``scalar_type``.
        """
        scalar_type = self._check_supported(scalar_type)
        shape = _normalize_shape(shape)
        arr = np.asarray(data)
        if arr.dtype.kind not in "biufc":
            raise UnsupportedScalarType(f"cannot build a tensor from {arr.dtype} data")
        if arr.dtype.kind == "c" and not scalar_type.is_complex:
            raise ScalarTypeMismatch(
                f"complex data cannot be stored as {scalar_type.value}"
            )
        if arr.shape != shape:
            if arr.ndim <= 1 and arr.size == math.prod(shape):
                arr = arr.reshape(shape)
            else:
                raise ShapeMismatch(
                    f"data of shape {arr.shape} ({arr.size} elements) does not fill shape {shape}"
                )
        return self._wrap(self._from_host(arr, scalar_type), scalar_type)

    def upload(self, host_array, scalar_type=None) -> Tensor:
        """Copies a host array onto the backend.

        Args:
            host_array: numpy array or nested sequence.
            scalar_type (optional): Defaults to the array's own dtype.
        """
        arr = np.asarray(host_array)
        if scalar_type is None:
            scalar_type = ScalarType.parse(arr.dtype)
        return self.create(arr.shape, arr, scalar_type)

    def download(self, tensor: Tensor) -> np.ndarray:
        """Copies a tensor back to host memory."""
        self._own(tensor)
        return self._to_host(tensor._native)

    def zeros(self, shape, scalar_type) -> Tensor:
        return self.full(shape, 0, scalar_type)

    def ones(self, shape, scalar_type) -> Tensor:
        return self.full(shape, 1, scalar_type)

    def full(self, shape, value, scalar_type) -> Tensor:
        scalar_type = self._check_supported(scalar_type)
        if isinstance(value, complex) and not scalar_type.is_complex:
            raise ScalarTypeMismatch(f"complex fill value for {scalar_type.value} tensor")
        return self._wrap(self._full(_normalize_shape(shape), value, scalar_type), scalar_type)

    def eye(self, n: int, scalar_type, batch_shape: Sequence[int] = ()) -> Tensor:
        """Identity matrices of shape ``[*batch_shape, n, n]``."""
        scalar_type = self._check_supported(scalar_type)
        return self._wrap(self._eye(int(n), _normalize_shape(batch_shape), scalar_type), scalar_type)

    # ------------------------------------------------------------------
    # Elementwise arithmetic
    # ------------------------------------------------------------------

    def _binary(self, op: str, a: Tensor, b) -> Tensor:
        hook = getattr(self, f"_{op}")
        if isinstance(b, Tensor):
            self._own(a, b)
            broadcast_shapes(a.shape, b.shape, op)
            return self._wrap(hook(a._native, b._native), a.scalar_type)
        if isinstance(b, Number):
            self._own(a)
            if isinstance(b, complex) and not a.scalar_type.is_complex:
                raise ScalarTypeMismatch(f"{op}: complex scalar with {a.scalar_type.value} tensor")
            return self._wrap(hook(a._native, b), a.scalar_type)
        raise TypeError(f"{op}: unsupported operand {type(b).__name__}")

    def add(self, a: Tensor, b) -> Tensor:
        return self._binary("add", a, b)

    def sub(self, a: Tensor, b) -> Tensor:
        return self._binary("sub", a, b)

    def mul(self, a: Tensor, b) -> Tensor:
        """Elementwise (Hadamard) product with broadcasting."""
        return self._binary("mul", a, b)

    def div(self, a: Tensor, b) -> Tensor:
        """IEEE division: ``x/0 -> +-inf``, ``0/0 -> nan``."""
        return self._binary("div", a, b)

    def scale(self, tensor: Tensor, factor) -> Tensor:
        if not isinstance(factor, Number):
            raise TypeError(f"scale factor must be a number, got {type(factor).__name__}")
        return self.mul(tensor, factor)

    def neg(self, tensor: Tensor) -> Tensor:
        self._own(tensor)
        return self._wrap(self._neg(tensor._native), tensor.scalar_type)

    def sqrt(self, tensor: Tensor) -> Tensor:
        self._own(tensor)
        return self._wrap(self._sqrt(tensor._native), tensor.scalar_type)

    def conj(self, tensor: Tensor) -> Tensor:
        self._own(tensor)
        if not tensor.scalar_type.is_complex:
            return self._rewrap(tensor)
        return self._wrap(self._conj(tensor._native), tensor.scalar_type)

    def real(self, tensor: Tensor) -> Tensor:
        """Real part, typed with the real counterpart scalar type."""
        self._own(tensor)
        if not tensor.scalar_type.is_complex:
            return self._rewrap(tensor)
        real_type = self._check_supported(tensor.scalar_type.real())
        return self._wrap(self._real(tensor._native), real_type)

    def nan_to_num(self, tensor: Tensor, value: float = 0.0) -> Tensor:
        """Replaces every non-finite entry with ``value``."""
        self._own(tensor)
        return self._wrap(self._nan_to_num(tensor._native, value), tensor.scalar_type)

    def abs_max(self, tensor: Tensor) -> float:
        """Largest absolute entry as a host float (0 for empty tensors)."""
        self._own(tensor)
        if tensor.numel == 0:
            return 0.0
        return self._abs_max(tensor._native)

    # ------------------------------------------------------------------
    # Linear algebra
    # ------------------------------------------------------------------

    def matmul(self, a: Tensor, b: Tensor) -> Tensor:
        """Batched matrix product, broadcasting leading axes."""
        self._own(a, b)
        check_matmul(a.shape, b.shape)
        return self._wrap(self._matmul(a._native, b._native), a.scalar_type)

    def transpose(self, tensor: Tensor) -> Tensor:
        """Swaps the last two axes."""
        if tensor.ndim < 2:
            raise ShapeMismatch(f"transpose needs ndim >= 2, got shape {tensor.shape}")
        axes = list(range(tensor.ndim))
        axes[-1], axes[-2] = axes[-2], axes[-1]
        return self.permute(tensor, axes)

    def inverse(self, matrix: Tensor) -> Tensor:
        """Batched inverse.

        Raises:
            ShapeMismatch: For non-square input.
            SingularMatrix: If any matrix has condition number above
                ``1/eps`` or the native solver reports singularity.
        """
        self._own(matrix)
        check_square(matrix.shape, "inverse")
        limit = 1.0 / matrix.scalar_type.eps
        cond = np.asarray(self._cond(matrix._native))
        bad = ~np.isfinite(cond) | (cond > limit)
        if np.any(bad):
            raise SingularMatrix(
                f"matrix is singular to working precision "
                f"(condition number {float(np.max(np.where(np.isfinite(cond), cond, np.inf))):.3e} > {limit:.3e})"
            )
        return self._wrap(self._inverse(matrix._native), matrix.scalar_type)

    def eig(self, matrix: Tensor) -> Tuple[Tensor, Tensor]:
        """Eigen-decomposition of symmetric / Hermitian matrices.

        Returns:
            Tuple[Tensor, Tensor]: Real eigenvalues ``[..., N]`` in ascending
            order and eigenvectors ``[..., N, N]`` as matching columns.

        Raises:
            NotSymmetric: If ``A`` differs from its conjugate transpose by
                more than ``sqrt(eps) * max(1, max|A|)``.
        """
        self._own(matrix)
        check_square(matrix.shape, "eig")
        scale = max(1.0, self.abs_max(matrix))
        tol = math.sqrt(matrix.scalar_type.eps) * scale
        asym = self.abs_max(self.sub(matrix, self.conj(self.transpose(matrix))))
        if asym > tol:
            raise NotSymmetric(
                f"eig requires a symmetric/Hermitian matrix (asymmetry {asym:.3e} > {tol:.3e})"
            )
        values, vectors = self._eigh(matrix._native)
        return (
            self._wrap(values, matrix.scalar_type.real()),
            self._wrap(vectors, matrix.scalar_type),
        )

    def pow(self, matrix: Tensor, k: int) -> Tensor:
        """Integer matrix power by binary exponentiation.

        ``k = 0`` yields the identity; negative ``k`` inverts first.
        """
        if isinstance(k, bool) or not isinstance(k, (int, np.integer)):
            raise TypeError(f"matrix power must be an integer, got {type(k).__name__}")
        self._own(matrix)
        check_square(matrix.shape, "pow")
        k = int(k)
        if k < 0:
            matrix = self.inverse(matrix)
            k = -k
        result = None
        base = matrix
        while k:
            if k & 1:
                result = base if result is None else self.matmul(result, base)
            k >>= 1
            if k:
                base = self.matmul(base, base)
        if result is None:
            return self.eye(matrix.shape[-1], matrix.scalar_type, matrix.shape[:-2])
        return self._rewrap(result) if result is matrix else result

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    def slice(self, tensor: Tensor, axis: int, start: int, stop: int) -> Tensor:
        """Half-open range ``[start, stop)`` along one axis."""
        self._own(tensor)
        axis = check_slice(tensor.shape, axis, start, stop)
        return self._wrap(self._slice(tensor._native, axis, start, stop), tensor.scalar_type)

    def reshape(self, tensor: Tensor, shape) -> Tensor:
        """Reshape; a single ``-1`` extent is inferred."""
        self._own(tensor)
        shape = tuple(int(s) for s in ((shape,) if isinstance(shape, int) else shape))
        if shape.count(-1) == 1:
            known = math.prod(s for s in shape if s != -1)
            if known == 0 or tensor.numel % known:
                raise ShapeMismatch(f"cannot reshape {tensor.shape} into {shape}")
            shape = tuple(tensor.numel // known if s == -1 else s for s in shape)
        shape = _normalize_shape(shape)
        if math.prod(shape) != tensor.numel:
            raise ShapeMismatch(f"cannot reshape {tensor.shape} into {shape}")
        return self._wrap(self._reshape(tensor._native, shape), tensor.scalar_type)

    def permute(self, tensor: Tensor, axes: Sequence[int]) -> Tensor:
        self._own(tensor)
        axes = tuple(check_axis(a, tensor.ndim) for a in axes)
        if sorted(axes) != list(range(tensor.ndim)):
            raise ShapeMismatch(f"permutation {axes} invalid for ndim {tensor.ndim}")
        return self._wrap(self._permute(tensor._native, axes), tensor.scalar_type)

    def concat(self, tensors: Iterable[Tensor], axis: int = 0) -> Tensor:
        tensors = list(tensors)
        if not tensors:
            raise ShapeMismatch("concat needs at least one tensor")
        self._own(*tensors)
        ref = tensors[0].shape
        axis = check_axis(axis, len(ref))
        for t in tensors[1:]:
            if len(t.shape) != len(ref) or any(
                x != y for i, (x, y) in enumerate(zip(t.shape, ref)) if i != axis
            ):
                raise ShapeMismatch(f"concat along axis {axis}: {t.shape} vs {ref}")
        return self._wrap(self._concat([t._native for t in tensors], axis), tensors[0].scalar_type)

    def sum(self, tensor: Tensor, axis=None, keepdims: bool = False) -> Tensor:
        self._own(tensor)
        if axis is not None:
            axes = (axis,) if isinstance(axis, int) else tuple(axis)
            axis = tuple(check_axis(a, tensor.ndim) for a in axes)
        return self._wrap(self._sum(tensor._native, axis, keepdims), tensor.scalar_type)

    def mean(self, tensor: Tensor, axis=None, keepdims: bool = False) -> Tensor:
        total = self.sum(tensor, axis, keepdims)
        if axis is None:
            count = tensor.numel
        else:
            axes = (axis,) if isinstance(axis, int) else tuple(axis)
            count = math.prod(tensor.shape[check_axis(a, tensor.ndim)] for a in axes)
        return self.scale(total, 1.0 / count) if count else total

    # ------------------------------------------------------------------
    # Precision and placement
    # ------------------------------------------------------------------

    def cast(self, tensor: Tensor, scalar_type) -> Tensor:
        """The only way to change a tensor's precision.

        Complex to real casts are refused; use :meth:`real` instead.
        """
        self._own(tensor)
        target = self._check_supported(scalar_type)
        source = tensor.scalar_type
        if target == source:
            return self._rewrap(tensor)
        if source.is_complex and not target.is_complex:
            raise ScalarTypeMismatch(
                f"cast {source.value} -> {target.value} drops the imaginary part; use real()"
            )
        if target.bits < source.bits:
            logger.info("Narrowing %s tensor %s to %s on %s", source.value, tensor.shape, target.value, self.key)
        return self._wrap(self._cast(tensor._native, target), target)

    def transfer(self, tensor: Tensor, target: "TensorBackend") -> Tensor:
        """Moves a tensor to another backend (download then upload)."""
        if target.key == self.key:
            self._own(tensor)
            return self._rewrap(tensor)
        target._check_supported(tensor.scalar_type)
        logger.debug("Transferring %s tensor %s: %s -> %s", tensor.scalar_type.value, tensor.shape, self.key, target.key)
        return target.upload(self.download(tensor), tensor.scalar_type)

    @staticmethod
    def allclose(a: Tensor, b: Tensor, rtol: float = 1e-5, atol: float = 1e-8) -> bool:
        """Host-side comparison of two tensors on any backends."""
        x = a.backend.download(a)
        y = b.backend.download(b)
        if x.shape != y.shape:
            return False
        return bool(np.allclose(x, y, rtol=rtol, atol=atol))

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    def _freeze(self, x):
        """Marks freshly produced native storage read-only where the array type allows it."""
        return x

    @abstractmethod
    def _from_host(self, arr: np.ndarray, scalar_type: ScalarType): ...

    @abstractmethod
    def _to_host(self, x) -> np.ndarray: ...

    @abstractmethod
    def _full(self, shape, value, scalar_type: ScalarType): ...

    @abstractmethod
    def _eye(self, n, batch_shape, scalar_type: ScalarType): ...

    @abstractmethod
    def _add(self, x, y): ...

    @abstractmethod
    def _sub(self, x, y): ...

    @abstractmethod
    def _mul(self, x, y): ...

    @abstractmethod
    def _div(self, x, y): ...

    @abstractmethod
    def _neg(self, x): ...

    @abstractmethod
    def _sqrt(self, x): ...

    @abstractmethod
    def _conj(self, x): ...

    @abstractmethod
    def _real(self, x): ...

    @abstractmethod
    def _nan_to_num(self, x, value): ...

    @abstractmethod
    def _abs_max(self, x) -> float: ...

    @abstractmethod
    def _matmul(self, x, y): ...

    @abstractmethod
    def _cond(self, x) -> np.ndarray: ...

    @abstractmethod
    def _inverse(self, x): ...

    @abstractmethod
    def _eigh(self, x): ...

    @abstractmethod
    def _slice(self, x, axis, start, stop): ...

    @abstractmethod
    def _reshape(self, x, shape): ...

    @abstractmethod
    def _permute(self, x, axes): ...

    @abstractmethod
    def _concat(self, xs, axis): ...

    @abstractmethod
    def _sum(self, x, axis, keepdims): ...

    @abstractmethod
    def _cast(self, x, scalar_type: ScalarType): ...
