# Isomorph: Matrix-Isomorphism Tensor Substrate
# Copyright (C) 2026 Eunkyum Kim <nemonanconcode@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
#
# This project is fully open-source, including for commercial use.
# We believe Geometric Algebra is the future of AI, and we want 
# the industry to build upon this "unbending" paradigm.

"""Isomorph CLI Entry Point. Pick a task, any task.

Dispatches substrate checks and view computations.
"""

import hydra
from omegaconf import DictConfig
from tasks.selfcheck import SelfCheckTask
from tasks.spectral import SpectralTask
from tasks.diffusion import DiffusionTask
from tasks.curvature import CurvatureTask

TASK_MAP = {
    'selfcheck': SelfCheckTask,
    'spectral': SpectralTask,
    'diffusion': DiffusionTask,
    'curvature': CurvatureTask,
}

@hydra.main(version_base=None, config_path="conf", config_name="config")
def main(cfg: DictConfig):
    """The Boss. Delegates the work.

    Args:
        cfg (DictConfig): The plan.
    """
    task_name = cfg.name

    if task_name not in TASK_MAP:
        raise ValueError(f"Unknown task: {task_name}. Available: {list(TASK_MAP.keys())}")

    TaskClass = TASK_MAP[task_name]
    task = TaskClass(cfg)
    task.run()

if __name__ == "__main__":
    main()
