# Isomorph: Matrix-Isomorphism Tensor Substrate (C) 2026 Eunkyum Kim
# Licensed under the Apache License, Version 2.0 | "Unbending" Paradigm

import numpy as np

from fields.manifold import ManifoldView
from tasks.base import BaseTask, resolve_metric


def polar_metric(grid, spacing: float, r0: float = 1.0) -> np.ndarray:
    """``diag(1, r^2)`` on an ``(r, theta)`` grid starting at radius ``r0``."""
    nr, ntheta = grid
    r = r0 + spacing * np.arange(nr)
    g = np.zeros((nr, ntheta, 2, 2))
    g[..., 0, 0] = 1.0
    g[..., 1, 1] = (r ** 2)[:, None]
    return g


class CurvatureTask(BaseTask):
    """Largest Christoffel symbol of a flat or polar chart."""

    def setup(self):
        self.chart = self.param("chart", "polar")
        self.spacing = float(self.param("spacing", 0.1))
        grid = tuple(int(g) for g in self.param("grid", [16, 16]))
        if self.chart == "polar":
            if len(grid) != 2:
                raise ValueError(f"polar chart needs a 2-D grid, got {grid}")
            self.backend = self.session.backend_for(2, int(np.prod(grid)))
            self.view = ManifoldView.from_metric_field(
                polar_metric(grid, self.spacing), self.spacing, self.backend, self.config.scalar_type
            )
        elif self.chart == "flat":
            metric = resolve_metric(self.param("metric", "minkowski"), self.param("dimension", 4))
            self.backend = self.session.backend_for(metric.dimension, int(np.prod(grid)))
            self.view = ManifoldView.from_metric(metric, grid, self.spacing, self.backend, self.config.scalar_type)
        else:
            raise ValueError(f"Unknown chart: {self.chart}. Available: ['flat', 'polar']")

    def execute(self):
        return {
            "chart": self.chart,
            "grid": self.view.grid_shape,
            "backend": self.backend.key,
            "max_abs_christoffel": self.view.max_abs_christoffel(),
        }
