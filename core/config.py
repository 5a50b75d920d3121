# Isomorph: Matrix-Isomorphism Tensor Substrate (C) 2026 Eunkyum Kim
# Licensed under the Apache License, Version 2.0 | "Unbending" Paradigm

"""Typed runtime configuration resolved once from the Hydra config.

The ``DictConfig`` is read in exactly one place, :meth:`RuntimeConfig.from_cfg`;
everything downstream receives these frozen dataclasses as constructor
arguments.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from omegaconf import DictConfig, OmegaConf

from core.scalar import ScalarType

BACKEND_CHOICES = ("reference", "accelerated", "auto")


@dataclass(frozen=True)
class DispatchConfig:
    """Thresholds of the dispatch policy."""

    dimension_threshold: int = 32
    batch_threshold: int = 256


@dataclass(frozen=True)
class GammaConfig:
    """Limits of the session's gamma-matrix cache.

    Attributes:
        max_dimension: Largest algebra dimension the cache will build.
        incremental_dimension: Dimension from which entries are built in
            blocks and evicted least-recently-used.
        block_size: Blades per incremental block.
        max_large_entries: Incremental entries kept at once.
        memory_limit_mb: Ceiling for one full blade table.
    """

    max_dimension: int = 12
    incremental_dimension: int = 10
    block_size: int = 256
    max_large_entries: int = 2
    memory_limit_mb: int = 1024

    @property
    def memory_limit_bytes(self) -> int:
        return int(self.memory_limit_mb) * 1024 * 1024


@dataclass(frozen=True)
class RuntimeConfig:
    """Everything a :class:`~core.session.Session` needs.

    Attributes:
        name: Task to run.
        backend: ``reference``, ``accelerated`` or ``auto`` (dispatch).
        scalar_type: Default coefficient type.
        device: Accelerated-backend device (``auto`` = cuda > mps > cpu).
        allow_tf32: TF32 matmuls on CUDA.
        dispatch: Dispatch thresholds.
        gamma: Gamma cache limits.
        task: Free-form task parameters.
    """

    name: str = "selfcheck"
    backend: str = "auto"
    scalar_type: ScalarType = ScalarType.F64
    device: str = "auto"
    allow_tf32: bool = False
    dispatch: DispatchConfig = field(default_factory=DispatchConfig)
    gamma: GammaConfig = field(default_factory=GammaConfig)
    task: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.backend not in BACKEND_CHOICES:
            raise ValueError(f"Unknown backend: {self.backend}. Available: {list(BACKEND_CHOICES)}")
        object.__setattr__(self, "scalar_type", ScalarType.parse(self.scalar_type))

    @classmethod
    def from_cfg(cls, cfg: Optional[DictConfig]) -> "RuntimeConfig":
        """Resolves a Hydra/OmegaConf config; missing keys take defaults."""
        if cfg is None:
            return cls()
        if not isinstance(cfg, DictConfig):
            cfg = OmegaConf.create(cfg)
        dispatch = cfg.get("dispatch", None) or {}
        gamma = cfg.get("gamma", None) or {}
        task = cfg.get("task", None)
        task = OmegaConf.to_container(task, resolve=True) if isinstance(task, DictConfig) else dict(task or {})
        return cls(
            name=cfg.get("name", "selfcheck"),
            backend=cfg.get("backend", "auto"),
            scalar_type=cfg.get("scalar_type", "f64"),
            device=cfg.get("device", "auto"),
            allow_tf32=bool(cfg.get("allow_tf32", False)),
            dispatch=DispatchConfig(
                dimension_threshold=int(dispatch.get("dimension_threshold", 32)),
                batch_threshold=int(dispatch.get("batch_threshold", 256)),
            ),
            gamma=GammaConfig(
                max_dimension=int(gamma.get("max_dimension", 12)),
                incremental_dimension=int(gamma.get("incremental_dimension", 10)),
                block_size=int(gamma.get("block_size", 256)),
                max_large_entries=int(gamma.get("max_large_entries", 2)),
                memory_limit_mb=int(gamma.get("memory_limit_mb", 1024)),
            ),
            task=task,
        )
