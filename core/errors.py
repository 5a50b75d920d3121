# Isomorph: Matrix-Isomorphism Tensor Substrate (C) 2026 Eunkyum Kim
# Licensed under the Apache License, Version 2.0 | "Unbending" Paradigm

"""Typed failures raised by backends, the isomorphism bridge and views.

Every error derives from :class:`IsomorphError` and, where a builtin
exception already names the same failure, from that builtin too, so callers
can catch either ``ShapeMismatch`` or plain ``ValueError``.
"""


class IsomorphError(Exception):
    """Base class for all Isomorph failures."""


class ShapeMismatch(IsomorphError, ValueError):
    """Tensor shapes are incompatible for the requested operation."""


class SingularMatrix(IsomorphError, ArithmeticError):
    """Matrix is not invertible within the backend's numerical tolerance."""


class NotSymmetric(IsomorphError, ValueError):
    """``eig`` was called on a matrix that is not symmetric / Hermitian."""


class UnsupportedScalarType(IsomorphError, TypeError):
    """A backend or container was asked for a scalar type it cannot hold."""


class ScalarTypeMismatch(UnsupportedScalarType):
    """Two operands of one operation carry different scalar types."""


class ResourceExhausted(IsomorphError, MemoryError):
    """A cached structure would exceed the configured dimension or memory ceiling."""


class IndexOutOfBounds(IsomorphError, IndexError):
    """Slice or index outside the tensor's extent."""


class DivisionByZero(IsomorphError, ZeroDivisionError):
    """Inverse of an element with zero magnitude."""


class MetricError(IsomorphError, ValueError):
    """Invalid metric signature, or a metric the operation cannot represent."""


class BackendUnavailable(IsomorphError, RuntimeError):
    """The explicitly requested backend cannot run on this machine."""


class DisconnectedGraph(IsomorphError, ArithmeticError):
    """Zero eigenvalue of the Laplacian has multiplicity > 1."""


class StaleView(IsomorphError, RuntimeError):
    """The view's source was structurally edited after projection."""


class BackendMismatch(IsomorphError, ValueError):
    """Operands live on different backends; move them with ``transfer`` first."""
