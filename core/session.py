# Isomorph: Matrix-Isomorphism Tensor Substrate (C) 2026 Eunkyum Kim
# Licensed under the Apache License, Version 2.0 | "Unbending" Paradigm

"""Runtime session: owns the backends, the dispatcher and the gamma cache."""

from __future__ import annotations

import threading
from typing import Optional

from core.config import RuntimeConfig
from core.errors import BackendUnavailable
from core.scalar import ScalarType
from backends.accelerated import AcceleratedBackend
from backends.base import TensorBackend
from backends.dispatch import DispatchPolicy, Dispatcher
from backends.reference import ReferenceBackend
from isomorphism.gamma import GammaTable
from log import get_logger

logger = get_logger(__name__)


class Session:
    """Explicit owner of all shared runtime state.

    Attributes:
        config (RuntimeConfig): Resolved configuration.
        reference (ReferenceBackend): Host backend.
        gammas (GammaTable): Gamma-matrix cache shared by fields and bridge calls.
        policy (DispatchPolicy): Size thresholds.
    """

    def __init__(self, config: Optional[RuntimeConfig] = None):
        self.config = config or RuntimeConfig()
        self.reference = ReferenceBackend()
        self.policy = DispatchPolicy(
            dimension_threshold=self.config.dispatch.dimension_threshold,
            batch_threshold=self.config.dispatch.batch_threshold,
        )
        gamma = self.config.gamma
        self.gammas = GammaTable(
            max_dimension=gamma.max_dimension,
            incremental_dimension=gamma.incremental_dimension,
            block_size=gamma.block_size,
            max_large_entries=gamma.max_large_entries,
            memory_limit_bytes=gamma.memory_limit_bytes,
        )
        self._accelerated = None
        self._probed = False
        self._lock = threading.Lock()

    @property
    def accelerated(self) -> Optional[AcceleratedBackend]:
        """The device backend, probed on first use (``None`` if unavailable).

        Raises:
            BackendUnavailable: If the config demands ``accelerated`` and the
                device cannot be used.
        """
        if not self._probed:
            with self._lock:
                if not self._probed:
                    self._accelerated = self._probe_accelerated()
                    self._probed = True
        return self._accelerated

    def _probe_accelerated(self) -> Optional[AcceleratedBackend]:
        if self.config.backend == "reference":
            return None
        try:
            return AcceleratedBackend(self.config.device, allow_tf32=self.config.allow_tf32)
        except BackendUnavailable as exc:
            if self.config.backend == "accelerated":
                raise
            logger.info("Accelerated backend unavailable (%s); dispatch will use reference only", exc)
            return None

    @property
    def dispatcher(self) -> Dispatcher:
        return Dispatcher(self.reference, self.accelerated, self.policy)

    def backend_for(self, problem_size: int = 0, batch_size: int = 1, scalar_type=None) -> TensorBackend:
        """Backend for one logical operation.

        With ``backend: auto`` the dispatch policy decides; otherwise the
        configured backend is returned and must hold ``scalar_type``.
        """
        scalar_type = self.config.scalar_type if scalar_type is None else ScalarType.parse(scalar_type)
        if self.config.backend == "auto":
            return self.dispatcher.select(problem_size, batch_size, scalar_type)
        return self.dispatcher.explicit(self.config.backend, scalar_type)

    def __repr__(self):
        return f"Session(backend={self.config.backend!r}, scalar_type={self.config.scalar_type.value})"
