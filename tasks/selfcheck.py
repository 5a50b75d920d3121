# Isomorph: Matrix-Isomorphism Tensor Substrate (C) 2026 Eunkyum Kim
# Licensed under the Apache License, Version 2.0 | "Unbending" Paradigm

import numpy as np

from core.multivector import CausalMultiVector
from isomorphism.bridge import from_matrix, to_matrix
from tasks.base import BaseTask, resolve_metric
from log import get_logger

logger = get_logger(__name__)


class SelfCheckTask(BaseTask):
    """Numerical audit of the matrix isomorphism.

    Reports the worst homomorphism, roundtrip and Clifford-relation errors
    for random multivectors of the configured metric.
    """

    def setup(self):
        self.metric = resolve_metric(self.param("metric", "minkowski"), self.param("dimension", 4))
        self.samples = int(self.param("samples", 8))
        self.rng = np.random.default_rng(self.param("seed", 42))
        self.scalar_type = self.config.scalar_type
        self.backend = self.session.backend_for(self.metric.matrix_dim, self.samples, self.scalar_type)

    def _random_multivectors(self):
        data = self.rng.standard_normal((self.samples, self.metric.num_blades))
        return [CausalMultiVector(row, self.metric, self.scalar_type) for row in data]

    def execute(self):
        backend = self.backend
        gammas = self.session.gammas
        metric = self.metric

        a = self._random_multivectors()
        b = self._random_multivectors()
        ab = [x * y for x, y in zip(a, b)]

        def upload(mvs):
            return backend.upload(np.stack([mv.data for mv in mvs]), self.scalar_type)

        ma, mb, mab = (to_matrix(upload(mvs), metric, gammas) for mvs in (a, b, ab))
        homomorphism = backend.abs_max(backend.sub(backend.matmul(ma, mb), mab))
        roundtrip = backend.abs_max(backend.sub(from_matrix(ma, metric, gammas, self.scalar_type), upload(a)))

        gens = gammas.generators(metric, backend, self.scalar_type).to_numpy()
        eye = np.eye(metric.matrix_dim)
        clifford = 0.0
        for i in range(metric.dimension):
            for j in range(metric.dimension):
                target = 2.0 * metric.signs[i] * eye if i == j else 0.0 * eye
                err = np.max(np.abs(gens[i] @ gens[j] + gens[j] @ gens[i] - target))
                clifford = max(clifford, float(err))

        return {
            "metric": str(metric),
            "backend": backend.key,
            "homomorphism_error": float(homomorphism),
            "roundtrip_error": float(roundtrip),
            "clifford_error": clifford,
        }
