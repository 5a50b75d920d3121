# Isomorph: Matrix-Isomorphism Tensor Substrate (C) 2026 Eunkyum Kim
# Licensed under the Apache License, Version 2.0 | "Unbending" Paradigm

"""Tensor backends: the contract, its numpy and torch implementations, and dispatch."""

from .base import Tensor, TensorBackend
from .reference import ReferenceBackend
from .accelerated import AcceleratedBackend
from .dispatch import DEFAULT_POLICY, DispatchPolicy, Dispatcher, should_accelerate

__all__ = [
    "Tensor",
    "TensorBackend",
    "ReferenceBackend",
    "AcceleratedBackend",
    "DispatchPolicy",
    "Dispatcher",
    "DEFAULT_POLICY",
    "should_accelerate",
]
