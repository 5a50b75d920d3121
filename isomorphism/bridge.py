# Isomorph: Matrix-Isomorphism Tensor Substrate (C) 2026 Eunkyum Kim
# Licensed under the Apache License, Version 2.0 | "Unbending" Paradigm

"""Coefficient <-> matrix projections of the Clifford algebra.

``to_matrix`` is a ring homomorphism: the geometric product of two
multivectors becomes one batched matmul of their images. ``from_matrix``
recovers coefficients by the trace projection ``c_I = tr(Gamma_I^-1 M) / D``.
"""

from core.errors import ScalarTypeMismatch, ShapeMismatch
from core.metric import Metric
from core.multivector import CausalMultiVector
from core.scalar import ScalarType
from core.validation import check_multivector_shape
from backends.base import Tensor, TensorBackend
from isomorphism.gamma import GammaTable


def get_gammas(metric: Metric, backend: TensorBackend, scalar_type, gammas: GammaTable) -> Tensor:
    """Full blade table ``[2^n, D, D]`` in the complex counterpart of ``scalar_type``."""
    return gammas.basis(metric, backend, ScalarType.parse(scalar_type))


def generators(metric: Metric, backend: TensorBackend, scalar_type, gammas: GammaTable) -> Tensor:
    """Generator matrices ``[n, D, D]``."""
    return gammas.generators(metric, backend, ScalarType.parse(scalar_type))


def to_matrix(coefficients: Tensor, metric: Metric, gammas: GammaTable) -> Tensor:
    """Projects ``[..., 2^n]`` coefficients to ``[..., D, D]`` matrices.

    Args:
        coefficients (Tensor): Blade coefficients, bitmask order.
        metric (Metric): Non-degenerate signature.
        gammas (GammaTable): Session cache.

    Returns:
        Tensor: Complex matrices on the coefficients' backend.
    """
    check_multivector_shape(coefficients.shape, metric.num_blades, "coefficients")
    backend = coefficients.backend
    scalar_type = coefficients.scalar_type
    entry = gammas.entry(metric, backend, scalar_type)
    dim = metric.matrix_dim
    lead = coefficients.shape[:-1]

    flat = backend.reshape(backend.cast(coefficients, scalar_type.complex()), (-1, metric.num_blades))
    acc = None
    for start, stop, basis_block, _ in entry.blocks():
        part = backend.matmul(backend.slice(flat, 1, start, stop), basis_block)
        acc = part if acc is None else backend.add(acc, part)
    return backend.reshape(acc, lead + (dim, dim))


def from_matrix(matrix: Tensor, metric: Metric, gammas: GammaTable, scalar_type=None) -> Tensor:
    """Recovers ``[..., 2^n]`` coefficients from ``[..., D, D]`` matrices.

    Args:
        matrix (Tensor): Matrix images.
        metric (Metric): Signature the matrices represent.
        gammas (GammaTable): Session cache.
        scalar_type (optional): Coefficient type. Defaults to the real
            counterpart of the matrix type; a real type keeps the real part.

    Raises:
        ShapeMismatch: If the trailing axes are not ``D x D``.
        ScalarTypeMismatch: If ``scalar_type`` has another precision than the matrix.
    """
    dim = metric.matrix_dim
    if matrix.ndim < 2 or matrix.shape[-2:] != (dim, dim):
        raise ShapeMismatch(f"{metric} is represented by {dim}x{dim} matrices, got shape {matrix.shape}")
    backend = matrix.backend
    target = matrix.scalar_type.real() if scalar_type is None else ScalarType.parse(scalar_type)
    if target.bits != matrix.scalar_type.bits:
        raise ScalarTypeMismatch(
            f"{matrix.scalar_type.value} matrix cannot yield {target.value} coefficients; cast first"
        )
    entry = gammas.entry(metric, backend, target)
    lead = matrix.shape[:-2]

    flat = backend.reshape(backend.cast(matrix, target.complex()), (-1, dim * dim))
    parts = [backend.matmul(flat, projector) for _, _, _, projector in entry.blocks()]
    coeffs = parts[0] if len(parts) == 1 else backend.concat(parts, axis=-1)
    coeffs = backend.reshape(coeffs, lead + (metric.num_blades,))
    if not target.is_complex:
        coeffs = backend.real(coeffs)
    return coeffs


def multivector_to_matrix(mv: CausalMultiVector, backend: TensorBackend, gammas: GammaTable) -> Tensor:
    """Uploads one host multivector and returns its ``[D, D]`` image."""
    coefficients = backend.upload(mv.data, mv.scalar_type)
    return to_matrix(coefficients, mv.metric, gammas)


def matrix_to_multivector(matrix: Tensor, metric: Metric, gammas: GammaTable,
                          scalar_type=None) -> CausalMultiVector:
    """Inverse of :func:`multivector_to_matrix` for a single ``[D, D]`` matrix."""
    if matrix.ndim != 2:
        raise ShapeMismatch(f"expected one [D, D] matrix, got shape {matrix.shape}")
    coeffs = from_matrix(matrix, metric, gammas, scalar_type)
    return CausalMultiVector(coeffs.to_numpy(), metric, coeffs.scalar_type)
