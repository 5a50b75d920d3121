# Isomorph: Matrix-Isomorphism Tensor Substrate (C) 2026 Eunkyum Kim
# Licensed under the Apache License, Version 2.0 | "Unbending" Paradigm

"""Core primitives shared by every layer.

Provides scalar types, metric signatures, the host multivector, typed
errors, device resolution and validation helpers. The runtime
:class:`~core.session.Session` lives in :mod:`core.session` because it
depends on the backends.
"""

from .errors import (
    IsomorphError,
    ShapeMismatch,
    SingularMatrix,
    NotSymmetric,
    UnsupportedScalarType,
    ScalarTypeMismatch,
    ResourceExhausted,
    IndexOutOfBounds,
    DivisionByZero,
    MetricError,
    BackendUnavailable,
    BackendMismatch,
    DisconnectedGraph,
    StaleView,
)
from .scalar import Capability, ScalarType
from .metric import Metric
from .multivector import CausalMultiVector, cayley_table
from .device import DeviceConfig, resolve_device

__all__ = [
    # errors
    "IsomorphError",
    "ShapeMismatch",
    "SingularMatrix",
    "NotSymmetric",
    "UnsupportedScalarType",
    "ScalarTypeMismatch",
    "ResourceExhausted",
    "IndexOutOfBounds",
    "DivisionByZero",
    "MetricError",
    "BackendUnavailable",
    "BackendMismatch",
    "DisconnectedGraph",
    "StaleView",
    # scalars / metric
    "Capability",
    "ScalarType",
    "Metric",
    # algebra
    "CausalMultiVector",
    "cayley_table",
    # device
    "DeviceConfig",
    "resolve_device",
]
