# Isomorph: Matrix-Isomorphism Tensor Substrate (C) 2026 Eunkyum Kim
# Licensed under the Apache License, Version 2.0 | "Unbending" Paradigm

import numpy as np

from fields.topology import TopologyView
from tasks.base import BaseTask
from tasks.spectral import GRAPHS


class DiffusionTask(BaseTask):
    """Mass transport on a doubly-stochastic graph.

    Edge weights are ``1 / degree`` so the adjacency is column-stochastic
    and the total mass is invariant under diffusion.
    """

    def setup(self):
        kind = self.param("graph", "cycle")
        n = int(self.param("nodes", 5))
        if kind not in GRAPHS:
            raise ValueError(f"Unknown graph: {kind}. Available: {list(GRAPHS.keys())}")
        graph = GRAPHS[kind](n)
        # Regular graphs only: every node shares the same degree
        degree = len(graph[0])
        self.graph = {u: {v: 1.0 / degree for v in nbrs} for u, nbrs in graph.items()}
        self.steps = int(self.param("steps", 10))
        self.backend = self.session.backend_for(n, 1)
        self.view = TopologyView.from_graph(self.graph, self.backend, self.config.scalar_type)

    def execute(self):
        state = np.zeros(self.view.num_nodes)
        state[0] = 1.0
        final = self.view.diffuse(state, self.steps).to_numpy()
        mass = float(np.real(final.sum()))
        return {
            "steps": self.steps,
            "initial_mass": 1.0,
            "final_mass": mass,
            "mass_drift": abs(mass - 1.0),
            "max_density": float(np.max(np.abs(final))),
        }
