# Isomorph: Matrix-Isomorphism Tensor Substrate (C) 2026 Eunkyum Kim
# Licensed under the Apache License, Version 2.0 | "Unbending" Paradigm

"""Multivector fields stored in their matrix representation.

A :class:`CausalMultiField` keeps ``[batch, *grid, D, D]`` matrices on a
backend, so the pointwise geometric product of two fields is a single
batched matmul. Spatial derivatives are central differences built from
contract ``slice``/``concat``/``sub``/``scale``.
"""

from __future__ import annotations

import enum
import math
from numbers import Number
from typing import List, Sequence, Tuple

import numpy as np

from core.errors import IndexOutOfBounds, MetricError, ScalarTypeMismatch, ShapeMismatch
from core.metric import Metric
from core.multivector import CausalMultiVector, cayley_table
from core.scalar import ScalarType
from backends.base import Tensor, TensorBackend
from isomorphism.bridge import from_matrix, multivector_to_matrix, to_matrix
from isomorphism.gamma import GammaTable
from log import get_logger

logger = get_logger(__name__)


class Boundary(enum.Enum):
    """Treatment of the outermost cells in a central difference.

    ``CLAMP`` replicates the edge cell, ``WRAP`` is periodic and ``ZERO``
    sets the derivative at boundary cells to zero.
    """

    CLAMP = "clamp"
    WRAP = "wrap"
    ZERO = "zero"


def central_difference(tensor: Tensor, axis: int, spacing: float,
                       boundary: Boundary = Boundary.CLAMP) -> Tensor:
    """``(f[i+1] - f[i-1]) / (2 * spacing)`` along one tensor axis.

    Args:
        tensor (Tensor): Sampled values.
        axis (int): Tensor axis to differentiate along.
        spacing (float): Grid step.
        boundary (Boundary): Edge policy.

    Returns:
        Tensor: Same shape as ``tensor``.
    """
    backend = tensor.backend
    boundary = Boundary(boundary)
    n = tensor.shape[axis]
    if n < 2:
        return backend.zeros(tensor.shape, tensor.scalar_type)

    def cut(start, stop):
        return backend.slice(tensor, axis, start, stop)

    if boundary is Boundary.ZERO:
        edge_shape = list(tensor.shape)
        edge_shape[axis] = 1
        edge = backend.zeros(edge_shape, tensor.scalar_type)
        interior = backend.scale(backend.sub(cut(2, n), cut(0, n - 2)), 1.0 / (2.0 * spacing))
        return backend.concat([edge, interior, edge], axis=axis)

    if boundary is Boundary.WRAP:
        forward = backend.concat([cut(1, n), cut(0, 1)], axis=axis)
        backward = backend.concat([cut(n - 1, n), cut(0, n - 1)], axis=axis)
    else:
        forward = backend.concat([cut(1, n), cut(n - 1, n)], axis=axis)
        backward = backend.concat([cut(0, 1), cut(0, n - 1)], axis=axis)
    return backend.scale(backend.sub(forward, backward), 1.0 / (2.0 * spacing))


def _check_spacing(dx, grid_rank: int) -> Tuple[float, ...]:
    if isinstance(dx, Number):
        dx = (dx,) * grid_rank
    dx = tuple(float(d) for d in dx)
    if len(dx) != grid_rank:
        raise ShapeMismatch(f"expected {grid_rank} grid spacings, got {len(dx)}")
    if any(d <= 0 or not math.isfinite(d) for d in dx):
        raise ValueError(f"grid spacings must be positive and finite, got {dx}")
    return dx


class CausalMultiField:
    """Batch of multivector fields on a regular grid.

    Attributes:
        data (Tensor): Matrix images, ``[batch, *grid, D, D]``.
        metric (Metric): Algebra signature.
        dx (Tuple[float, ...]): Spacing per grid axis.
        gammas (GammaTable): Cache the images were built with.
        scalar_type (ScalarType): Coefficient type; ``data`` holds its
            complex counterpart.
    """

    def __init__(self, data: Tensor, metric: Metric, dx, gammas: GammaTable, scalar_type=None):
        dim = metric.matrix_dim
        if data.ndim < 3 or data.shape[-2:] != (dim, dim):
            raise ShapeMismatch(
                f"field data must be [batch, *grid, {dim}, {dim}] for {metric}, got {data.shape}"
            )
        scalar_type = data.scalar_type.real() if scalar_type is None else ScalarType.parse(scalar_type)
        if data.scalar_type != scalar_type.complex():
            raise ScalarTypeMismatch(
                f"{scalar_type.value} field needs {scalar_type.complex().value} matrices, "
                f"got {data.scalar_type.value}"
            )
        self.data = data
        self.metric = metric
        self.dx = _check_spacing(dx, data.ndim - 3)
        self.gammas = gammas
        self.scalar_type = scalar_type

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @classmethod
    def from_coefficients(cls, coeffs, metric: Metric, dx, backend: TensorBackend,
                          gammas: GammaTable, scalar_type=None) -> "CausalMultiField":
        """Builds a field from ``[batch, *grid, 2^n]`` coefficients.

        ``coeffs`` may be a host array or a tensor already on ``backend``.
        """
        if isinstance(coeffs, Tensor):
            tensor = coeffs.backend.transfer(coeffs, backend)
            if scalar_type is not None:
                tensor = backend.cast(tensor, scalar_type)
        else:
            tensor = backend.upload(coeffs, scalar_type)
        if tensor.ndim < 2:
            raise ShapeMismatch(f"coefficients must be [batch, *grid, 2^n], got {tensor.shape}")
        data = to_matrix(tensor, metric, gammas)
        return cls(data, metric, dx, gammas, tensor.scalar_type)

    @classmethod
    def from_multivectors(cls, mvs: Sequence[CausalMultiVector], grid_shape, dx,
                          backend: TensorBackend, gammas: GammaTable) -> "CausalMultiField":
        """Stacks host multivectors (row-major over ``[batch, *grid]``)."""
        mvs = list(mvs)
        if not mvs:
            raise ShapeMismatch("from_multivectors needs at least one multivector")
        metric = mvs[0].metric
        scalar_type = mvs[0].scalar_type
        for mv in mvs:
            if mv.metric != metric:
                raise MetricError(f"Metric mismatch: {mv.metric} vs {metric}")
            if mv.scalar_type != scalar_type:
                raise ScalarTypeMismatch(f"{mv.scalar_type.value} vs {scalar_type.value}")
        grid_shape = tuple(int(g) for g in grid_shape)
        cells = math.prod(grid_shape)
        if cells == 0 or len(mvs) % cells:
            raise ShapeMismatch(f"{len(mvs)} multivectors do not tile grid {grid_shape}")
        coeffs = np.stack([mv.data for mv in mvs]).reshape(
            (len(mvs) // cells,) + grid_shape + (metric.num_blades,)
        )
        return cls.from_coefficients(coeffs, metric, dx, backend, gammas, scalar_type)

    @classmethod
    def zeros(cls, batch: int, grid_shape, metric: Metric, dx, backend: TensorBackend,
              gammas: GammaTable, scalar_type=ScalarType.F64) -> "CausalMultiField":
        scalar_type = ScalarType.parse(scalar_type)
        dim = metric.matrix_dim
        shape = (batch,) + tuple(grid_shape) + (dim, dim)
        return cls(backend.zeros(shape, scalar_type.complex()), metric, dx, gammas, scalar_type)

    @classmethod
    def ones(cls, batch: int, grid_shape, metric: Metric, dx, backend: TensorBackend,
             gammas: GammaTable, scalar_type=ScalarType.F64) -> "CausalMultiField":
        """The scalar 1 everywhere (identity matrices)."""
        scalar_type = ScalarType.parse(scalar_type)
        data = backend.eye(metric.matrix_dim, scalar_type.complex(), (batch,) + tuple(grid_shape))
        return cls(data, metric, dx, gammas, scalar_type)

    # ------------------------------------------------------------------
    # Shape
    # ------------------------------------------------------------------

    @property
    def backend(self) -> TensorBackend:
        return self.data.backend

    @property
    def shape(self) -> Tuple[int, ...]:
        return self.data.shape

    @property
    def batch_size(self) -> int:
        return self.data.shape[0]

    @property
    def grid_shape(self) -> Tuple[int, ...]:
        return self.data.shape[1:-2]

    def __repr__(self):
        return (
            f"CausalMultiField(metric={self.metric}, batch={self.batch_size}, "
            f"grid={self.grid_shape}, scalar_type={self.scalar_type.value}, backend={self.backend.key})"
        )

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    def coefficients(self) -> Tensor:
        """Coefficients ``[batch, *grid, 2^n]`` on the field's backend."""
        return from_matrix(self.data, self.metric, self.gammas, self.scalar_type)

    def to_coefficients(self) -> np.ndarray:
        return self.coefficients().to_numpy()

    def to_multivectors(self) -> List[CausalMultiVector]:
        flat = self.to_coefficients().reshape(-1, self.metric.num_blades)
        return [CausalMultiVector(row, self.metric, self.scalar_type) for row in flat]

    def to_backend(self, backend: TensorBackend) -> "CausalMultiField":
        """Explicit transfer; the target must hold the matrix scalar type."""
        data = self.backend.transfer(self.data, backend)
        return CausalMultiField(data, self.metric, self.dx, self.gammas, self.scalar_type)

    # ------------------------------------------------------------------
    # Algebra
    # ------------------------------------------------------------------

    def _check_compatible(self, other: "CausalMultiField") -> None:
        if self.metric != other.metric:
            raise MetricError(f"Metric mismatch: {self.metric} vs {other.metric}")
        if self.shape != other.shape:
            raise ShapeMismatch(f"field shapes differ: {self.shape} vs {other.shape}")
        if self.dx != other.dx:
            raise ShapeMismatch(f"grid spacings differ: {self.dx} vs {other.dx}")
        if self.scalar_type != other.scalar_type:
            raise ScalarTypeMismatch(f"{self.scalar_type.value} vs {other.scalar_type.value}")

    def _new(self, data: Tensor) -> "CausalMultiField":
        return CausalMultiField(data, self.metric, self.dx, self.gammas, self.scalar_type)

    def geometric_product(self, rhs: "CausalMultiField") -> "CausalMultiField":
        """Pointwise geometric product as one batched matmul."""
        self._check_compatible(rhs)
        return self._new(self.backend.matmul(self.data, rhs.data))

    def add(self, other: "CausalMultiField") -> "CausalMultiField":
        self._check_compatible(other)
        return self._new(self.backend.add(self.data, other.data))

    def sub(self, other: "CausalMultiField") -> "CausalMultiField":
        self._check_compatible(other)
        return self._new(self.backend.sub(self.data, other.data))

    def scale(self, factor) -> "CausalMultiField":
        if isinstance(factor, complex) and not self.scalar_type.is_complex:
            raise ScalarTypeMismatch(f"complex factor for a {self.scalar_type.value} field")
        return self._new(self.backend.scale(self.data, factor))

    def __add__(self, other):
        if isinstance(other, CausalMultiField):
            return self.add(other)
        return NotImplemented

    def __sub__(self, other):
        if isinstance(other, CausalMultiField):
            return self.sub(other)
        return NotImplemented

    def __mul__(self, other):
        if isinstance(other, CausalMultiField):
            return self.geometric_product(other)
        if isinstance(other, Number):
            return self.scale(other)
        return NotImplemented

    def __rmul__(self, other):
        if isinstance(other, Number):
            return self.scale(other)
        return NotImplemented

    def __neg__(self):
        return self._new(self.backend.neg(self.data))

    def _grade_mask(self, k: int) -> Tensor:
        grades = cayley_table(self.metric).grades
        return self.backend.upload((grades == k).astype(self.scalar_type.numpy_dtype), self.scalar_type)

    def _project(self, data: Tensor, k: int) -> Tensor:
        coeffs = from_matrix(data, self.metric, self.gammas, self.scalar_type)
        return to_matrix(self.backend.mul(coeffs, self._grade_mask(k)), self.metric, self.gammas)

    def _grade_parts(self) -> List[Tensor]:
        """Matrix images of grades ``0..n`` from one coefficient extraction."""
        coeffs = self.coefficients()
        return [
            to_matrix(self.backend.mul(coeffs, self._grade_mask(k)), self.metric, self.gammas)
            for k in range(self.metric.dimension + 1)
        ]

    def _graded_product(self, rhs: "CausalMultiField", target) -> "CausalMultiField":
        """``sum_{r,s} <A_r B_s>_{target(r, s)}``; pairs mapped to ``None`` are dropped.

        Products landing on the same grade are summed before projecting, so
        each output grade costs one extraction.
        """
        self._check_compatible(rhs)
        backend = self.backend
        n = self.metric.dimension
        sums = {}
        lhs_parts = self._grade_parts()
        rhs_parts = rhs._grade_parts()
        for r, a in enumerate(lhs_parts):
            for s, b in enumerate(rhs_parts):
                k = target(r, s)
                if k is None or not 0 <= k <= n:
                    continue
                term = backend.matmul(a, b)
                sums[k] = term if k not in sums else backend.add(sums[k], term)
        acc = backend.zeros(self.shape, self.data.scalar_type)
        for k in sorted(sums):
            acc = backend.add(acc, self._project(sums[k], k))
        return self._new(acc)

    def grade_project(self, k: int) -> "CausalMultiField":
        """Keeps grade ``k`` (coefficients masked, then re-projected)."""
        return self._new(self._project(self.data, k))

    def scalar_part(self) -> "CausalMultiField":
        return self.grade_project(0)

    def vector_part(self) -> "CausalMultiField":
        return self.grade_project(1)

    def bivector_part(self) -> "CausalMultiField":
        return self.grade_project(2)

    def trivector_part(self) -> "CausalMultiField":
        return self.grade_project(3)

    def pseudoscalar_part(self) -> "CausalMultiField":
        return self.grade_project(self.metric.dimension)

    def outer_product(self, rhs: "CausalMultiField") -> "CausalMultiField":
        """Pointwise wedge ``A ^ B``: grade ``r + s`` of each ``A_r B_s``."""
        return self._graded_product(rhs, lambda r, s: r + s)

    def inner_product(self, rhs: "CausalMultiField") -> "CausalMultiField":
        """Pointwise left contraction: grade ``s - r`` of each ``A_r B_s``, ``r <= s``."""
        return self._graded_product(rhs, lambda r, s: s - r if r <= s else None)

    def commutator_lie(self, rhs: "CausalMultiField") -> "CausalMultiField":
        """``AB - BA``."""
        self._check_compatible(rhs)
        backend = self.backend
        ab = backend.matmul(self.data, rhs.data)
        ba = backend.matmul(rhs.data, self.data)
        return self._new(backend.sub(ab, ba))

    def commutator_geometric(self, rhs: "CausalMultiField") -> "CausalMultiField":
        """``(AB - BA) / 2``."""
        return self.commutator_lie(rhs).scale(0.5)

    def hodge_dual(self) -> "CausalMultiField":
        """``F I^{-1}`` with ``I`` the unit pseudoscalar, as :meth:`CausalMultiVector.dual`."""
        pseudo = CausalMultiVector.pseudoscalar(self.metric, self.scalar_type).inverse()
        inverse = multivector_to_matrix(pseudo, self.backend, self.gammas)
        return self._new(self.backend.matmul(self.data, inverse))

    def cross(self, rhs: "CausalMultiField") -> "CausalMultiField":
        """Dual of the wedge; the usual cross product for vectors of ``Cl(3, 0)``."""
        return self.outer_product(rhs).hodge_dual()

    # ------------------------------------------------------------------
    # Calculus
    # ------------------------------------------------------------------

    def partial_derivative(self, axis: int, boundary: Boundary = Boundary.CLAMP) -> Tensor:
        """Central difference of the matrix images along grid axis ``axis``.

        Raises:
            IndexOutOfBounds: If ``axis`` is not a grid axis.
        """
        rank = len(self.grid_shape)
        if not 0 <= axis < rank:
            raise IndexOutOfBounds(f"grid axis {axis} out of range for grid rank {rank}")
        return central_difference(self.data, axis + 1, self.dx[axis], boundary)

    def gradient(self, boundary: Boundary = Boundary.CLAMP) -> "CausalMultiField":
        """Vector derivative ``sum_i Gamma_i d_i F`` over ``min(n, grid rank)`` axes."""
        backend = self.backend
        gens = self.gammas.generators(self.metric, backend, self.scalar_type)
        dim = self.metric.matrix_dim
        acc = None
        for i in range(min(self.metric.dimension, len(self.grid_shape))):
            gamma = backend.reshape(backend.slice(gens, 0, i, i + 1), (dim, dim))
            term = backend.matmul(gamma, self.partial_derivative(i, boundary))
            acc = term if acc is None else backend.add(acc, term)
        if acc is None:
            return self._new(backend.zeros(self.shape, self.data.scalar_type))
        return self._new(acc)

    def curl(self, boundary: Boundary = Boundary.CLAMP) -> "CausalMultiField":
        """Bivector part of the gradient."""
        return self.gradient(boundary).grade_project(2)

    def divergence(self, boundary: Boundary = Boundary.CLAMP) -> "CausalMultiField":
        """Scalar part of the gradient."""
        return self.gradient(boundary).grade_project(0)
