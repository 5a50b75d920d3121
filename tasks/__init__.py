"""CLI tasks for the Isomorph substrate.

Each task inherits from :class:`BaseTask` and implements the lifecycle:
setup, execute, report.
"""

from .base import BaseTask
from .selfcheck import SelfCheckTask
from .spectral import SpectralTask
from .diffusion import DiffusionTask
from .curvature import CurvatureTask

__all__ = [
    "BaseTask",
    "SelfCheckTask",
    "SpectralTask",
    "DiffusionTask",
    "CurvatureTask",
]
