# Isomorph: Matrix-Isomorphism Tensor Substrate (C) 2026 Eunkyum Kim
# Licensed under the Apache License, Version 2.0 | "Unbending" Paradigm

"""Metric signatures for Clifford algebras and manifold charts.

A :class:`Metric` is identified solely by the squares of its generators
``e_i^2 in {+1, -1, 0}``; the ``kind`` label is descriptive and does not
take part in equality or hashing, so ``Metric.euclidean(3)`` and
``Metric.generic(3, 0, 0)`` key the same cache entry.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Tuple

from core.errors import MetricError

# Generators are indexed by bit position in a blade index, and a blade index
# must stay a sane Python int for the Cayley tables.
MAX_DIMENSION = 64


@dataclass(frozen=True)
class Metric:
    """Signature descriptor of ``Cl(p, q, r)`` with an explicit generator order.

    Attributes:
        signs (Tuple[int, ...]): ``e_i^2`` for each generator, in order.
        kind (str): Human-readable family name (not compared).
    """

    signs: Tuple[int, ...]
    kind: str = field(default="custom", compare=False)

    def __post_init__(self):
        signs = tuple(int(s) for s in self.signs)
        if len(signs) == 0:
            raise MetricError("dimension cannot be zero")
        if len(signs) > MAX_DIMENSION:
            raise MetricError(f"dimension {len(signs)} exceeds {MAX_DIMENSION}")
        for s in signs:
            if s not in (1, -1, 0):
                raise MetricError(f"sign must be +1, -1 or 0, got {s}")
        object.__setattr__(self, "signs", signs)

    # ------------------------------------------------------------------
    # Named families
    # ------------------------------------------------------------------

    @classmethod
    def euclidean(cls, n: int) -> "Metric":
        """All generators square to +1."""
        return cls((1,) * n, "euclidean")

    @classmethod
    def non_euclidean(cls, n: int) -> "Metric":
        """All generators square to -1."""
        return cls((-1,) * n, "non_euclidean")

    @classmethod
    def minkowski(cls, n: int) -> "Metric":
        """Mostly-minus spacetime: ``e0^2 = +1``, spatial generators ``-1``."""
        if n < 1:
            raise MetricError("dimension cannot be zero")
        return cls((1,) + (-1,) * (n - 1), "minkowski")

    @classmethod
    def lorentzian(cls, n: int) -> "Metric":
        """Mostly-plus spacetime: ``e0^2 = -1``, spatial generators ``+1``."""
        if n < 1:
            raise MetricError("dimension cannot be zero")
        return cls((-1,) + (1,) * (n - 1), "lorentzian")

    @classmethod
    def pga(cls, n: int) -> "Metric":
        """Projective GA: degenerate ``e0``, Euclidean rest."""
        if n < 1:
            raise MetricError("dimension cannot be zero")
        return cls((0,) + (1,) * (n - 1), "pga")

    @classmethod
    def generic(cls, p: int, q: int = 0, r: int = 0) -> "Metric":
        """First ``p`` positive, next ``q`` negative, last ``r`` null."""
        if min(p, q, r) < 0:
            raise MetricError(f"signature counts must be non-negative, got ({p}, {q}, {r})")
        return cls((1,) * p + (-1,) * q + (0,) * r, "generic")

    @classmethod
    def from_signature(cls, p: int, q: int = 0, r: int = 0) -> "Metric":
        """Pick the most specific named family for ``(p, q, r)``."""
        n = p + q + r
        if q == 0 and r == 0:
            return cls.euclidean(n)
        if p == 0 and r == 0:
            return cls.non_euclidean(n)
        if p == 1 and r == 0:
            return cls.minkowski(n)
        if q == 1 and r == 0:
            return cls.lorentzian(n)
        if q == 0 and r == 1:
            return cls.pga(n)
        return cls.generic(p, q, r)

    @classmethod
    def from_signs(cls, signs: Iterable[int]) -> "Metric":
        return cls(tuple(signs), "custom")

    # ------------------------------------------------------------------
    # Derived sizes
    # ------------------------------------------------------------------

    @property
    def dimension(self) -> int:
        return len(self.signs)

    @property
    def num_blades(self) -> int:
        return 1 << self.dimension

    @property
    def matrix_dim(self) -> int:
        """Side of the matrix representation, ``2^ceil(n/2)``."""
        return 1 << ((self.dimension + 1) // 2)

    @property
    def is_degenerate(self) -> bool:
        return 0 in self.signs

    def sign_of_sq(self, i: int) -> int:
        """Square of generator ``e_i`` (+1, -1 or 0)."""
        if not 0 <= i < self.dimension:
            raise MetricError(f"generator {i} outside dimension {self.dimension}")
        return self.signs[i]

    def signature(self) -> Tuple[int, int, int]:
        """Counts ``(p, q, r)`` of positive, negative and null generators."""
        return (self.signs.count(1), self.signs.count(-1), self.signs.count(0))

    def to_signs(self) -> list:
        return list(self.signs)

    # ------------------------------------------------------------------
    # Combinators
    # ------------------------------------------------------------------

    def flip_time_space(self) -> "Metric":
        """Swap the East/West coast convention; null generators stay null."""
        return Metric(tuple(-s for s in self.signs), "custom")

    def tensor_product(self, other: "Metric") -> "Metric":
        """Metric of the graded tensor product (generators concatenated)."""
        if self.kind == other.kind and self.kind in ("euclidean", "non_euclidean"):
            return Metric(self.signs + other.signs, self.kind)
        return Metric.generic(*_add(self.signature(), other.signature()))

    def to_generic(self) -> "Metric":
        return Metric.generic(*self.signature())

    def is_compatible(self, other: "Metric") -> bool:
        """Same dimension and same ``(p, q, r)`` counts."""
        return self.dimension == other.dimension and self.signature() == other.signature()

    def __str__(self) -> str:
        p, q, r = self.signature()
        return f"{self.kind.capitalize()}Cl({p},{q},{r})"


def _add(a, b):
    return tuple(x + y for x, y in zip(a, b))
