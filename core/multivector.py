# Isomorph: Matrix-Isomorphism Tensor Substrate (C) 2026 Eunkyum Kim
# Licensed under the Apache License, Version 2.0 | "Unbending" Paradigm

"""Host-resident multivector with value semantics.

Provides :class:`CausalMultiVector`, a coefficient vector of length ``2^n``
over a :class:`~core.metric.Metric`, with the geometric product computed from
a cached Cayley table. Blade ``I`` is the bitmask of its generators, so
``e1`` is index 1, ``e2`` index 2 and ``e12`` index 3.
"""

from __future__ import annotations

from functools import lru_cache
from numbers import Number
from typing import NamedTuple

import numpy as np

from core.errors import DivisionByZero, MetricError, ScalarTypeMismatch, ShapeMismatch, UnsupportedScalarType
from core.metric import Metric
from core.scalar import ScalarType


class CayleyTable(NamedTuple):
    """Precomputed product structure of one algebra.

    ``indices[i, k] = i ^ k`` is the right-operand blade that lands on ``k``
    when multiplied by ``i``; ``signs[i, k]`` is the matching sign.
    """

    indices: np.ndarray
    signs: np.ndarray
    grades: np.ndarray
    rev_signs: np.ndarray
    outer_mask: np.ndarray
    inner_mask: np.ndarray


def _popcount(x: np.ndarray, n: int) -> np.ndarray:
    count = np.zeros_like(x)
    for i in range(n):
        count += (x >> i) & 1
    return count


@lru_cache(maxsize=16)
def cayley_table(metric: Metric) -> CayleyTable:
    """Build (once per metric) the sign and index tables of the product.

    Args:
        metric (Metric): Algebra signature.

    Returns:
        CayleyTable: Gathered product tables, each ``[Dim, Dim]``.
    """
    n = metric.dimension
    dim = metric.num_blades
    idx = np.arange(dim, dtype=np.int64)
    A = idx[:, None]
    B = idx[None, :]

    # 1. Commutation sign: each generator of A passes every lower generator of B
    swap_counts = np.zeros((dim, dim), dtype=np.int64)
    for i in range(n):
        a_i = (A >> i) & 1
        swap_counts += a_i * _popcount(B & ((1 << i) - 1), n)
    commutator_sign = np.where(swap_counts % 2 == 0, 1.0, -1.0)

    # 2. Metric sign: shared generators contract to e_i^2
    intersection = A & B
    metric_sign = np.ones((dim, dim))
    for i, s in enumerate(metric.signs):
        if s != 1:
            shared = ((intersection >> i) & 1).astype(bool)
            metric_sign = np.where(shared, metric_sign * s, metric_sign)

    signs = commutator_sign * metric_sign

    # Gather form: row i, column k holds the sign of e_i * e_(i^k)
    indices = A ^ B
    gathered = np.take_along_axis(signs, indices, axis=1)

    grades = _popcount(idx, n)
    rev_signs = np.where((grades * (grades - 1) // 2) % 2 == 0, 1.0, -1.0)

    partner = indices
    outer_mask = (A & partner) == 0
    inner_mask = (A & partner) == A

    return CayleyTable(indices, gathered, grades, rev_signs, outer_mask, inner_mask)


def _as_coefficients(data, scalar_type):
    arr = np.asarray(data)
    if scalar_type is None:
        if arr.dtype.kind in "fc":
            scalar_type = ScalarType.parse(arr.dtype)
        elif arr.dtype.kind in "iu":
            scalar_type = ScalarType.F64
        else:
            raise UnsupportedScalarType(f"Multivector coefficients cannot be {arr.dtype}")
    scalar_type = ScalarType.parse(scalar_type)
    if arr.dtype.kind not in "fciu":
        raise UnsupportedScalarType(f"Multivector coefficients cannot be {arr.dtype}")
    if arr.dtype.kind == "c" and not scalar_type.is_complex:
        raise UnsupportedScalarType(
            f"Complex coefficients need a complex scalar type, got {scalar_type.value}"
        )
    out = np.array(arr, dtype=scalar_type.numpy_dtype, copy=True)
    out.flags.writeable = False
    return out, scalar_type


class CausalMultiVector:
    """Immutable multivector ``sum_I c_I e_I`` over a metric.

    Attributes:
        metric (Metric): Algebra signature.
        scalar_type (ScalarType): Coefficient type.
    """

    __slots__ = ("_data", "metric", "scalar_type")

    def __init__(self, data, metric: Metric, scalar_type=None):
        """Wraps a coefficient vector.

        Args:
            data: Sequence or array of ``2^n`` coefficients.
            metric (Metric): Algebra signature.
            scalar_type (optional): Overrides the inferred coefficient type.

        Raises:
            ShapeMismatch: If ``len(data) != 2^n``.
            UnsupportedScalarType: For non-numeric coefficients.
        """
        arr, scalar_type = _as_coefficients(data, scalar_type)
        if arr.shape != (metric.num_blades,):
            raise ShapeMismatch(
                f"{metric} expects {metric.num_blades} coefficients, got shape {arr.shape}"
            )
        self._data = arr
        self.metric = metric
        self.scalar_type = scalar_type

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def zeros(cls, metric: Metric, scalar_type=ScalarType.F64) -> "CausalMultiVector":
        return cls(np.zeros(metric.num_blades), metric, scalar_type)

    @classmethod
    def scalar(cls, value, metric: Metric, scalar_type=ScalarType.F64) -> "CausalMultiVector":
        data = np.zeros(metric.num_blades, dtype=ScalarType.parse(scalar_type).numpy_dtype)
        data[0] = value
        return cls(data, metric, scalar_type)

    @classmethod
    def basis_vector(cls, i: int, metric: Metric, scalar_type=ScalarType.F64) -> "CausalMultiVector":
        """The generator ``e_i`` (0-indexed)."""
        if not 0 <= i < metric.dimension:
            raise MetricError(f"generator {i} outside dimension {metric.dimension}")
        data = np.zeros(metric.num_blades)
        data[1 << i] = 1.0
        return cls(data, metric, scalar_type)

    @classmethod
    def blade(cls, index: int, metric: Metric, scalar_type=ScalarType.F64) -> "CausalMultiVector":
        """Unit basis blade by bitmask index."""
        if not 0 <= index < metric.num_blades:
            raise MetricError(f"blade {index} outside algebra of {metric.num_blades} blades")
        data = np.zeros(metric.num_blades)
        data[index] = 1.0
        return cls(data, metric, scalar_type)

    @classmethod
    def pseudoscalar(cls, metric: Metric, scalar_type=ScalarType.F64) -> "CausalMultiVector":
        return cls.blade(metric.num_blades - 1, metric, scalar_type)

    @classmethod
    def from_vector(cls, vector, metric: Metric, scalar_type=ScalarType.F64) -> "CausalMultiVector":
        """Injects a vector into the grade-1 subspace."""
        vector = np.asarray(vector)
        if vector.shape != (metric.dimension,):
            raise ShapeMismatch(
                f"vector of length {metric.dimension} expected, got shape {vector.shape}"
            )
        data = np.zeros(metric.num_blades, dtype=ScalarType.parse(scalar_type).numpy_dtype)
        for i in range(metric.dimension):
            data[1 << i] = vector[i]
        return cls(data, metric, scalar_type)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def data(self) -> np.ndarray:
        """Read-only coefficient array."""
        return self._data

    def __len__(self) -> int:
        return self._data.shape[0]

    def __getitem__(self, blade: int):
        return self._data[blade]

    def __repr__(self):
        return f"CausalMultiVector(metric={self.metric}, scalar_type={self.scalar_type.value}, data={self._data.tolist()})"

    def scalar_part(self):
        return self._data[0]

    def allclose(self, other: "CausalMultiVector", atol: float = 1e-8, rtol: float = 1e-5) -> bool:
        self._check_compatible(other)
        return bool(np.allclose(self._data, other._data, atol=atol, rtol=rtol))

    # ------------------------------------------------------------------
    # Arithmetic
    # ------------------------------------------------------------------

    def _check_compatible(self, other: "CausalMultiVector") -> None:
        if self.metric != other.metric:
            raise MetricError(f"Metric mismatch: {self.metric} vs {other.metric}")
        if self.scalar_type != other.scalar_type:
            raise ScalarTypeMismatch(
                f"Scalar type mismatch: {self.scalar_type.value} vs {other.scalar_type.value}"
            )

    def _new(self, data) -> "CausalMultiVector":
        return CausalMultiVector(data, self.metric, self.scalar_type)

    def __add__(self, other):
        if isinstance(other, CausalMultiVector):
            self._check_compatible(other)
            return self._new(self._data + other._data)
        if isinstance(other, Number):
            # Numbers add to the scalar part
            data = self._data.copy()
            data[0] += other
            return self._new(data)
        return NotImplemented

    __radd__ = __add__

    def __sub__(self, other):
        if isinstance(other, CausalMultiVector):
            self._check_compatible(other)
            return self._new(self._data - other._data)
        if isinstance(other, Number):
            return self + (-other)
        return NotImplemented

    def __neg__(self):
        return self._new(-self._data)

    def __mul__(self, other):
        """Geometric product, or scaling by a number."""
        if isinstance(other, CausalMultiVector):
            return self.geometric_product(other)
        if isinstance(other, Number):
            return self.scale(other)
        return NotImplemented

    def __rmul__(self, other):
        if isinstance(other, Number):
            return self.scale(other)
        return NotImplemented

    def __truediv__(self, other):
        if isinstance(other, Number):
            if other == 0:
                raise DivisionByZero("Cannot divide a multivector by zero")
            return self.scale(1.0 / other)
        if isinstance(other, CausalMultiVector):
            return self.geometric_product(other.inverse())
        return NotImplemented

    def __invert__(self):
        """Reversion (~A)."""
        return self.reversion()

    def __xor__(self, other):
        """Outer product (A ^ B)."""
        return self.outer_product(other)

    def __or__(self, other):
        """Left contraction (A | B)."""
        return self.inner_product(other)

    def scale(self, factor) -> "CausalMultiVector":
        return self._new(self._data * factor)

    def _product(self, other: "CausalMultiVector", mask=None) -> "CausalMultiVector":
        self._check_compatible(other)
        table = cayley_table(self.metric)
        # result[k] = sum_i a[i] * b[i ^ k] * sign[i, k]
        terms = self._data[:, None] * other._data[table.indices] * table.signs
        if mask is not None:
            terms = np.where(mask, terms, 0)
        return self._new(terms.sum(axis=0))

    def geometric_product(self, other: "CausalMultiVector") -> "CausalMultiVector":
        """Computes AB."""
        return self._product(other)

    def outer_product(self, other: "CausalMultiVector") -> "CausalMultiVector":
        """Computes A ^ B (only disjoint blade pairs survive)."""
        return self._product(other, cayley_table(self.metric).outer_mask)

    def inner_product(self, other: "CausalMultiVector") -> "CausalMultiVector":
        """Computes the left contraction A _| B."""
        return self._product(other, cayley_table(self.metric).inner_mask)

    def commutator(self, other: "CausalMultiVector") -> "CausalMultiVector":
        """Lie commutator [A, B] = AB - BA."""
        return self.geometric_product(other) - other.geometric_product(self)

    def reversion(self) -> "CausalMultiVector":
        return self._new(self._data * cayley_table(self.metric).rev_signs)

    def grade_projection(self, k: int) -> "CausalMultiVector":
        """Isolates grade ``k``."""
        grades = cayley_table(self.metric).grades
        return self._new(np.where(grades == k, self._data, 0))

    def squared_magnitude(self):
        """<A ~A>_0."""
        return self.geometric_product(self.reversion()).scalar_part()

    def magnitude(self) -> float:
        return float(np.sqrt(abs(self.squared_magnitude())))

    def inverse(self) -> "CausalMultiVector":
        """A^{-1} = ~A / <A ~A>_0, valid for versors.

        Raises:
            DivisionByZero: If the squared magnitude vanishes.
        """
        sq = self.squared_magnitude()
        if sq == 0:
            raise DivisionByZero(f"Multivector with zero magnitude has no inverse: {self!r}")
        return self.reversion().scale(1.0 / sq)

    def dual(self) -> "CausalMultiVector":
        """A* = A I^{-1}."""
        pseudo = CausalMultiVector.pseudoscalar(self.metric, self.scalar_type)
        return self.geometric_product(pseudo.inverse())

    def normalize(self) -> "CausalMultiVector":
        """Scales to unit magnitude; near-null elements are returned unchanged."""
        sq = abs(self.squared_magnitude())
        if sq <= self.scalar_type.eps:
            return self
        return self.scale(1.0 / np.sqrt(sq))
