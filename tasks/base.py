# Isomorph: Matrix-Isomorphism Tensor Substrate (C) 2026 Eunkyum Kim
# Licensed under the Apache License, Version 2.0 | "Unbending" Paradigm

from abc import ABC, abstractmethod
from typing import Any, Dict

from omegaconf import DictConfig

from core.config import RuntimeConfig
from core.metric import Metric
from core.session import Session
from log import get_logger

logger = get_logger(__name__)

METRIC_FAMILIES = {
    "euclidean": Metric.euclidean,
    "non_euclidean": Metric.non_euclidean,
    "minkowski": Metric.minkowski,
    "lorentzian": Metric.lorentzian,
    "pga": Metric.pga,
}


def resolve_metric(name: str, dimension: int) -> Metric:
    """Builds a named metric family of the given dimension."""
    if name not in METRIC_FAMILIES:
        raise ValueError(f"Unknown metric: {name}. Available: {list(METRIC_FAMILIES.keys())}")
    return METRIC_FAMILIES[name](int(dimension))


class BaseTask(ABC):
    """Abstract base class for CLI tasks.

    Lifecycle: setup -> execute -> report.

    Attributes:
        cfg (DictConfig): Hydra configuration.
        config (RuntimeConfig): Typed view of ``cfg``.
        session (Session): Backends and gamma cache for this run.
        params (dict): The ``task`` section of the config.
    """

    def __init__(self, cfg: DictConfig):
        """Sets up the task.

        Args:
            cfg (DictConfig): Hydra config.
        """
        self.cfg = cfg
        self.config = RuntimeConfig.from_cfg(cfg)
        self.session = Session(self.config)
        self.params = dict(self.config.task)
        self.setup()

    def param(self, key: str, default=None):
        return self.params.get(key, default)

    @abstractmethod
    def setup(self):
        """Build inputs (metrics, graphs, grids)."""
        pass

    @abstractmethod
    def execute(self) -> Dict[str, Any]:
        """Run the computation and return named results."""
        pass

    def report(self, results: Dict[str, Any]) -> None:
        """Log every result on its own line."""
        for key, value in results.items():
            if isinstance(value, float):
                logger.info("%s: %.6e", key, value)
            else:
                logger.info("%s: %s", key, value)

    def run(self) -> Dict[str, Any]:
        """Execute the task end to end."""
        logger.info("Starting Task: %s (%r)", self.config.name, self.session)
        results = self.execute()
        self.report(results)
        logger.info("Task Complete.")
        return results
