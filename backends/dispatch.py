# Isomorph: Matrix-Isomorphism Tensor Substrate (C) 2026 Eunkyum Kim
# Licensed under the Apache License, Version 2.0 | "Unbending" Paradigm

"""Backend selection by problem size.

:class:`DispatchPolicy` is a pure size rule; :class:`Dispatcher` applies it
and falls back to the reference backend whenever the accelerated backend is
missing or cannot hold the requested scalar type.
"""

from dataclasses import dataclass
from typing import Optional

from core.errors import BackendUnavailable, UnsupportedScalarType
from core.scalar import ScalarType
from backends.base import TensorBackend
from log import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class DispatchPolicy:
    """Thresholds above which work goes to the accelerated backend.

    Attributes:
        dimension_threshold (int): Matrix side at which acceleration pays off.
        batch_threshold (int): Batch size at which acceleration pays off.
    """

    dimension_threshold: int = 32
    batch_threshold: int = 256

    def __post_init__(self):
        if self.dimension_threshold < 0 or self.batch_threshold < 0:
            raise ValueError(
                f"thresholds must be non-negative, got "
                f"({self.dimension_threshold}, {self.batch_threshold})"
            )

    def should_accelerate(self, problem_size: int, batch_size: int = 1) -> bool:
        """Deterministic, monotone in both arguments."""
        if problem_size < 0 or batch_size < 0:
            raise ValueError(f"sizes must be non-negative, got ({problem_size}, {batch_size})")
        return problem_size >= self.dimension_threshold or batch_size >= self.batch_threshold


DEFAULT_POLICY = DispatchPolicy()


def should_accelerate(problem_size: int, batch_size: int = 1) -> bool:
    """:meth:`DispatchPolicy.should_accelerate` under the default thresholds."""
    return DEFAULT_POLICY.should_accelerate(problem_size, batch_size)


class Dispatcher:
    """Routes one logical operation to a backend.

    Attributes:
        reference (TensorBackend): Always-available fallback.
        accelerated (TensorBackend | None): Device backend, if any.
        policy (DispatchPolicy): Size rule.
    """

    def __init__(self, reference: TensorBackend, accelerated: Optional[TensorBackend] = None,
                 policy: DispatchPolicy = DEFAULT_POLICY):
        self.reference = reference
        self.accelerated = accelerated
        self.policy = policy

    def select(self, problem_size: int, batch_size: int = 1, scalar_type=ScalarType.F64) -> TensorBackend:
        """Picks the backend for one operation.

        The policy is evaluated once; overrides to the reference backend
        are logged rather than raised.
        """
        scalar_type = ScalarType.parse(scalar_type)
        if not self.policy.should_accelerate(problem_size, batch_size):
            return self.reference
        if self.accelerated is None:
            logger.debug(
                "Policy chose acceleration for size=%d batch=%d but no accelerated backend; using reference",
                problem_size, batch_size,
            )
            return self.reference
        if not self.accelerated.supports(scalar_type):
            logger.debug(
                "%s does not hold %s; size=%d batch=%d stays on reference",
                self.accelerated.key, scalar_type.value, problem_size, batch_size,
            )
            return self.reference
        return self.accelerated

    def explicit(self, name: str, scalar_type=None) -> TensorBackend:
        """Returns a backend by name, bypassing the policy.

        Raises:
            BackendUnavailable: If ``accelerated`` is requested without one.
            UnsupportedScalarType: If the named backend cannot hold ``scalar_type``.
        """
        if name == "reference":
            backend = self.reference
        elif name == "accelerated":
            if self.accelerated is None:
                raise BackendUnavailable("no accelerated backend is configured on this machine")
            backend = self.accelerated
        else:
            raise ValueError(f"Unknown backend: {name}. Available: ['reference', 'accelerated']")
        if scalar_type is not None and not backend.supports(scalar_type):
            raise UnsupportedScalarType(
                f"{backend.key} cannot hold {ScalarType.parse(scalar_type).value}"
            )
        return backend
