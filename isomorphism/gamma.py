# Isomorph: Matrix-Isomorphism Tensor Substrate (C) 2026 Eunkyum Kim
# Licensed under the Apache License, Version 2.0 | "Unbending" Paradigm

"""Gamma matrices of ``Cl(p, q)`` and their session-owned cache.

Generators are built by the Jordan-Wigner construction on ``m = ceil(n/2)``
two-level factors. Generator ``i`` sits at level ``i // 2`` as ``sigma_x``
(even ``i``) or ``sigma_y`` (odd ``i``), with ``sigma_z`` on every lower level
and the identity above it. All raw generators square to ``+I`` and pairwise
anticommute; a generator with ``e_i^2 = -1`` is multiplied by ``1j``.

Blade matrices ``Gamma_I`` (bitmask ``I``, ascending product) are Kronecker
products of per-level 2x2 factors, so no dense ``D x D`` products are formed.
"""

from __future__ import annotations

import itertools
import threading
from functools import reduce
from typing import Iterator, Tuple

import numpy as np

from core.errors import MetricError, ResourceExhausted
from core.metric import Metric
from core.scalar import ScalarType
from backends.base import Tensor, TensorBackend
from log import get_logger

logger = get_logger(__name__)

_I2 = np.eye(2, dtype=np.complex128)
_SX = np.array([[0, 1], [1, 0]], dtype=np.complex128)
_SY = np.array([[0, -1j], [1j, 0]], dtype=np.complex128)
_SZ = np.array([[1, 0], [0, -1]], dtype=np.complex128)


def _check_representable(metric: Metric) -> None:
    if metric.is_degenerate:
        raise MetricError(
            f"{metric} has null generators; the matrix representation needs e_i^2 = +-1"
        )


def _generator_factor(i: int, level: int) -> np.ndarray:
    k = i // 2
    if level < k:
        return _SZ
    if level == k:
        return _SX if i % 2 == 0 else _SY
    return _I2


def _phase(sign: int) -> complex:
    return 1j if sign == -1 else 1.0


def generator_matrices(metric: Metric) -> np.ndarray:
    """Host generators ``[n, D, D]`` (complex128)."""
    _check_representable(metric)
    m = (metric.dimension + 1) // 2
    out = []
    for i, s in enumerate(metric.signs):
        factors = [_generator_factor(i, level) for level in range(m)]
        out.append(_phase(s) * reduce(np.kron, factors))
    return np.stack(out)


def blade_matrices(metric: Metric, start: int = 0, stop: int | None = None) -> np.ndarray:
    """Host blade matrices ``Gamma_I`` for ``I`` in ``[start, stop)``.

    Returns:
        np.ndarray: ``[stop - start, D, D]`` complex128.
    """
    _check_representable(metric)
    n = metric.dimension
    m = (n + 1) // 2
    stop = metric.num_blades if stop is None else stop
    out = np.empty((stop - start, metric.matrix_dim, metric.matrix_dim), dtype=np.complex128)
    for row, blade in enumerate(range(start, stop)):
        levels = [_I2] * m
        phase = 1.0 + 0j
        for i in range(n):
            if blade >> i & 1:
                phase *= _phase(metric.signs[i])
                levels = [acc @ _generator_factor(i, level) for level, acc in enumerate(levels)]
        out[row] = phase * reduce(np.kron, levels)
    return out


def blade_square_signs(metric: Metric) -> np.ndarray:
    """``s_I`` with ``Gamma_I^2 = s_I * I``: ``(-1)^(k(k-1)/2) * prod(e_i^2)``."""
    idx = np.arange(metric.num_blades)
    grades = np.zeros_like(idx)
    eta = np.ones(metric.num_blades)
    for i, s in enumerate(metric.signs):
        bit = (idx >> i) & 1
        grades += bit
        eta = np.where(bit == 1, eta * s, eta)
    reorder = np.where((grades * (grades - 1) // 2) % 2 == 0, 1.0, -1.0)
    return reorder * eta


def projector_matrices(metric: Metric, start: int = 0, stop: int | None = None) -> np.ndarray:
    """Coefficient extractors for ``[start, stop)`` as ``[D*D, stop - start]``.

    Column ``I`` is ``vec((Gamma_I^-1)^T) / D``, so that
    ``vec(M) @ projector`` gives ``tr(Gamma_I^-1 M) / D``.
    """
    stop = metric.num_blades if stop is None else stop
    blades = blade_matrices(metric, start, stop)
    signs = blade_square_signs(metric)[start:stop]
    dim = metric.matrix_dim
    inverse = blades / signs[:, None, None]
    flat = np.swapaxes(inverse, -1, -2).reshape(stop - start, dim * dim)
    return np.ascontiguousarray(flat.T) / dim


class GammaEntry:
    """Lazily built gamma data for one ``(metric, backend, scalar type)``.

    Attributes:
        metric (Metric): Algebra signature.
        backend (TensorBackend): Backend the tensors live on.
        scalar_type (ScalarType): Coefficient type; matrices use its complex
            counterpart.
    """

    def __init__(self, metric: Metric, backend: TensorBackend, scalar_type: ScalarType,
                 block_size: int, memory_limit_bytes: int, incremental: bool,
                 lock: threading.RLock):
        self.metric = metric
        self.backend = backend
        self.scalar_type = scalar_type
        self.matrix_type = scalar_type.complex()
        self.block_size = block_size
        self.memory_limit_bytes = memory_limit_bytes
        self.incremental = incremental
        self._lock = lock
        self._generators = None
        self._basis = None
        self._projector = None
        self._blocks = {}
        self.last_used = 0

    @property
    def dimension(self) -> int:
        return self.metric.dimension

    @property
    def matrix_dim(self) -> int:
        return self.metric.matrix_dim

    @property
    def num_blades(self) -> int:
        return self.metric.num_blades

    @property
    def nbytes(self) -> int:
        """Size of the full basis table on the backend."""
        return self.num_blades * self.matrix_dim ** 2 * self.matrix_type.itemsize

    def generators(self) -> Tensor:
        """Generator matrices ``[n, D, D]``."""
        if self._generators is None:
            with self._lock:
                if self._generators is None:
                    self._generators = self.backend.upload(generator_matrices(self.metric), self.matrix_type)
        return self._generators

    def _check_budget(self) -> None:
        if self.nbytes > self.memory_limit_bytes:
            raise ResourceExhausted(
                f"full gamma table for {self.metric} needs {self.nbytes} bytes "
                f"(limit {self.memory_limit_bytes}); use blocks()"
            )

    def basis(self) -> Tensor:
        """Full blade table ``[2^n, D, D]``.

        Raises:
            ResourceExhausted: If it would exceed the memory limit.
        """
        if self._basis is None:
            self._check_budget()
            with self._lock:
                if self._basis is None:
                    logger.debug("Building %d blade matrices for %s on %s", self.num_blades, self.metric, self.backend.key)
                    self._basis = self.backend.upload(blade_matrices(self.metric), self.matrix_type)
        return self._basis

    def projector(self) -> Tensor:
        """Full extractor ``[D*D, 2^n]`` (see :func:`projector_matrices`)."""
        if self._projector is None:
            self._check_budget()
            with self._lock:
                if self._projector is None:
                    self._projector = self.backend.upload(projector_matrices(self.metric), self.matrix_type)
        return self._projector

    def _block(self, start: int) -> Tuple[Tensor, Tensor]:
        block = self._blocks.get(start)
        if block is None:
            with self._lock:
                block = self._blocks.get(start)
                if block is None:
                    stop = min(start + self.block_size, self.num_blades)
                    logger.debug("Building gamma block [%d, %d) for %s", start, stop, self.metric)
                    dim = self.matrix_dim
                    basis = blade_matrices(self.metric, start, stop).reshape(stop - start, dim * dim)
                    block = (
                        self.backend.upload(basis, self.matrix_type),
                        self.backend.upload(projector_matrices(self.metric, start, stop), self.matrix_type),
                    )
                    self._blocks[start] = block
        return block

    def blocks(self) -> Iterator[Tuple[int, int, Tensor, Tensor]]:
        """Yields ``(start, stop, basis_block, projector_block)``.

        ``basis_block`` is ``[stop-start, D*D]`` and ``projector_block``
        ``[D*D, stop-start]``. Incremental entries build each block on first
        request; small entries yield the whole table as one block.
        """
        if not self.incremental:
            dim = self.matrix_dim
            yield 0, self.num_blades, self.backend.reshape(self.basis(), (self.num_blades, dim * dim)), self.projector()
            return
        for start in range(0, self.num_blades, self.block_size):
            stop = min(start + self.block_size, self.num_blades)
            basis, projector = self._block(start)
            yield start, stop, basis, projector

    def __repr__(self):
        return (
            f"GammaEntry(metric={self.metric}, backend={self.backend.key}, "
            f"scalar_type={self.scalar_type.value}, incremental={self.incremental})"
        )


class GammaTable:
    """Cache of :class:`GammaEntry` objects owned by one session.

    Lookups of existing entries take no lock. The first construction of an
    entry happens under the table lock with a double check. Only entries at
    or above ``incremental_dimension`` count against ``max_large_entries``
    and are evicted least-recently-used. Recency is an access stamp written
    without the lock, so the eviction order is approximate under contention.
    """

    def __init__(self, max_dimension: int = 12, incremental_dimension: int = 10,
                 block_size: int = 256, max_large_entries: int = 2,
                 memory_limit_bytes: int = 1 << 30):
        if block_size < 1:
            raise ValueError(f"block_size must be positive, got {block_size}")
        if max_large_entries < 1:
            raise ValueError(f"max_large_entries must be positive, got {max_large_entries}")
        self.max_dimension = max_dimension
        self.incremental_dimension = incremental_dimension
        self.block_size = block_size
        self.max_large_entries = max_large_entries
        self.memory_limit_bytes = memory_limit_bytes
        self._entries = {}
        self._lock = threading.RLock()
        self._clock = itertools.count(1)
        # Counters are advisory; increments outside the lock may race
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @staticmethod
    def _key(metric: Metric, backend: TensorBackend, scalar_type: ScalarType):
        return (metric, backend.key, scalar_type)

    def entry(self, metric: Metric, backend: TensorBackend, scalar_type=ScalarType.F64) -> GammaEntry:
        """Returns (building on first use) the entry for a key.

        Raises:
            ResourceExhausted: If ``metric.dimension > max_dimension``.
            MetricError: For degenerate metrics.
            UnsupportedScalarType: If ``backend`` cannot hold the complex
                counterpart of ``scalar_type``.
        """
        scalar_type = ScalarType.parse(scalar_type)
        key = self._key(metric, backend, scalar_type)
        entry = self._entries.get(key)
        if entry is not None:
            self._hits += 1
            entry.last_used = next(self._clock)
            return entry

        if metric.dimension > self.max_dimension:
            raise ResourceExhausted(
                f"{metric} has dimension {metric.dimension} > max_dimension {self.max_dimension}"
            )
        _check_representable(metric)
        backend._check_supported(scalar_type.complex())

        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                self._hits += 1
                entry.last_used = next(self._clock)
                return entry
            self._misses += 1
            incremental = metric.dimension >= self.incremental_dimension
            entry = GammaEntry(
                metric, backend, scalar_type,
                block_size=self.block_size,
                memory_limit_bytes=self.memory_limit_bytes,
                incremental=incremental,
                lock=self._lock,
            )
            entry.last_used = next(self._clock)
            self._entries[key] = entry
            logger.debug("Gamma entry created: %s", entry)
            if incremental:
                self._evict_large(keep=key)
        return entry

    def _evict_large(self, keep) -> None:
        large = {k: e for k, e in self._entries.items() if e.incremental}
        while len(large) > self.max_large_entries:
            victim = min((k for k in large if k != keep), key=lambda k: large[k].last_used)
            del large[victim]
            evicted = self._entries.pop(victim)
            self._evictions += 1
            logger.debug("Evicted gamma entry %s", evicted)

    def generators(self, metric: Metric, backend: TensorBackend, scalar_type=ScalarType.F64) -> Tensor:
        return self.entry(metric, backend, scalar_type).generators()

    def basis(self, metric: Metric, backend: TensorBackend, scalar_type=ScalarType.F64) -> Tensor:
        return self.entry(metric, backend, scalar_type).basis()

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key) -> bool:
        """Accepts ``(metric, backend, scalar_type)`` tuples."""
        metric, backend, scalar_type = key
        return self._key(metric, backend, ScalarType.parse(scalar_type)) in self._entries

    def stats(self) -> dict:
        return {
            "entries": len(self._entries),
            "large_entries": sum(1 for e in list(self._entries.values()) if e.incremental),
            "hits": self._hits,
            "misses": self._misses,
            "evictions": self._evictions,
        }
