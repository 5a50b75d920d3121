# Isomorph: Matrix-Isomorphism Tensor Substrate (C) 2026 Eunkyum Kim
# Licensed under the Apache License, Version 2.0 | "Unbending" Paradigm

from fields.topology import TopologyView
from tasks.base import BaseTask


def complete_graph(n: int) -> dict:
    return {u: {v: 1.0 for v in range(n) if v != u} for u in range(n)}


def cycle_graph(n: int, weight: float = 1.0) -> dict:
    return {u: {(u - 1) % n: weight, (u + 1) % n: weight} for u in range(n)}


GRAPHS = {"complete": complete_graph, "cycle": cycle_graph}


def build_graph(kind: str, n: int) -> dict:
    if kind not in GRAPHS:
        raise ValueError(f"Unknown graph: {kind}. Available: {list(GRAPHS.keys())}")
    return GRAPHS[kind](int(n))


class SpectralTask(BaseTask):
    """Spectral gap of the normalized Laplacian of a generated graph."""

    def setup(self):
        self.graph = build_graph(self.param("graph", "complete"), self.param("nodes", 5))
        n = len(self.graph)
        self.backend = self.session.backend_for(n, 1)
        self.view = TopologyView.from_graph(self.graph, self.backend, self.config.scalar_type)

    def execute(self):
        spectrum = self.view.spectrum().to_numpy()
        return {
            "nodes": self.view.num_nodes,
            "backend": self.backend.key,
            "spectrum": [round(float(x), 10) for x in spectrum],
            "spectral_gap": self.view.spectral_gap(),
        }
