# Isomorph: Matrix-Isomorphism Tensor Substrate (C) 2026 Eunkyum Kim
# Licensed under the Apache License, Version 2.0 | "Unbending" Paradigm

"""Sampled metric tensor field and its Levi-Civita connection."""

from __future__ import annotations

from typing import Sequence

import numpy as np

from core.errors import NotSymmetric, ShapeMismatch
from core.metric import Metric
from core.scalar import ScalarType
from backends.base import Tensor, TensorBackend
from fields.multifield import Boundary, _check_spacing, central_difference
from log import get_logger

logger = get_logger(__name__)


class ManifoldView:
    """Metric tensor ``g_mn`` sampled on a regular grid.

    Attributes:
        metric_field (Tensor): ``[*grid, d, d]`` symmetric matrices.
        dx (Tuple[float, ...]): Spacing per grid axis.
    """

    def __init__(self, metric_field: Tensor, dx):
        shape = metric_field.shape
        if len(shape) < 2 or shape[-1] != shape[-2]:
            raise ShapeMismatch(f"metric field must be [*grid, d, d], got {shape}")
        self.metric_field = metric_field
        self.dx = _check_spacing(dx, len(shape) - 2)

    @classmethod
    def from_metric_field(cls, g, dx, backend: TensorBackend, scalar_type=None) -> "ManifoldView":
        """Uploads a host ``[*grid, d, d]`` array of symmetric matrices.

        Raises:
            NotSymmetric: If any sample is not symmetric.
        """
        g = np.asarray(g)
        if g.ndim < 2 or g.shape[-1] != g.shape[-2]:
            raise ShapeMismatch(f"metric field must be [*grid, d, d], got {g.shape}")
        scale = max(1.0, float(np.max(np.abs(g)))) if g.size else 1.0
        if g.size and np.max(np.abs(g - np.swapaxes(g, -1, -2))) > 1e-12 * scale:
            raise NotSymmetric("metric tensor samples must be symmetric")
        return cls(backend.upload(g, scalar_type), dx)

    @classmethod
    def from_metric(cls, metric: Metric, grid_shape: Sequence[int], dx, backend: TensorBackend,
                    scalar_type=ScalarType.F64) -> "ManifoldView":
        """Constant ``diag(e_i^2)`` on every grid cell."""
        grid_shape = tuple(int(s) for s in grid_shape)
        diag = np.diag(np.asarray(metric.signs, dtype=np.float64))
        g = np.broadcast_to(diag, grid_shape + diag.shape).copy()
        return cls.from_metric_field(g, dx, backend, scalar_type)

    @property
    def backend(self) -> TensorBackend:
        return self.metric_field.backend

    @property
    def dimension(self) -> int:
        return self.metric_field.shape[-1]

    @property
    def grid_shape(self):
        return self.metric_field.shape[:-2]

    def __repr__(self):
        return f"ManifoldView(dimension={self.dimension}, grid={self.grid_shape}, backend={self.backend.key})"

    def inverse_metric(self) -> Tensor:
        """``g^mn`` at every cell (batched contract inverse)."""
        return self.backend.inverse(self.metric_field)

    def metric_derivatives(self, boundary: Boundary = Boundary.CLAMP) -> Tensor:
        """``dg[..., a, m, n] = d_a g_mn`` with shape ``[*grid, d, d, d]``.

        Coordinates beyond the grid rank have no sampled direction and
        contribute zero.
        """
        backend = self.backend
        g = self.metric_field
        grid = self.grid_shape
        d = self.dimension
        rank = len(grid)
        slab_shape = grid + (1, d, d)
        slabs = []
        for a in range(d):
            if a < rank:
                deriv = central_difference(g, a, self.dx[a], boundary)
                slabs.append(backend.reshape(deriv, slab_shape))
            else:
                slabs.append(backend.zeros(slab_shape, g.scalar_type))
        return backend.concat(slabs, axis=rank)

    def compute_christoffel(self, boundary: Boundary = Boundary.CLAMP) -> Tensor:
        """Christoffel symbols of the second kind.

        ``Gamma^l_mn = 1/2 g^ls (d_m g_sn + d_n g_sm - d_s g_mn)``

        Returns:
            Tensor: ``[*grid, d, d, d]`` indexed ``[..., l, m, n]``.
        """
        backend = self.backend
        grid = self.grid_shape
        d = self.dimension
        rank = len(grid)
        lead = tuple(range(rank))

        dg = self.metric_derivatives(boundary)
        # term[s, m, n] = dg[m, s, n] + dg[n, s, m] - dg[s, m, n]
        t1 = backend.permute(dg, lead + (rank + 1, rank, rank + 2))
        t2 = backend.permute(dg, lead + (rank + 1, rank + 2, rank))
        term = backend.sub(backend.add(t1, t2), dg)

        term = backend.reshape(term, grid + (d, d * d))
        gamma = backend.matmul(self.inverse_metric(), term)
        gamma = backend.scale(gamma, 0.5)
        logger.debug("Christoffel symbols computed on grid %s (d=%d)", grid, d)
        return backend.reshape(gamma, grid + (d, d, d))

    def max_abs_christoffel(self, boundary: Boundary = Boundary.CLAMP) -> float:
        return self.backend.abs_max(self.compute_christoffel(boundary))
