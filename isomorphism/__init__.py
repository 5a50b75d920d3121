# Isomorph: Matrix-Isomorphism Tensor Substrate (C) 2026 Eunkyum Kim
# Licensed under the Apache License, Version 2.0 | "Unbending" Paradigm

"""Matrix isomorphism between Clifford coefficients and gamma-matrix images."""

from .gamma import GammaEntry, GammaTable, blade_matrices, generator_matrices
from .bridge import (
    from_matrix,
    generators,
    get_gammas,
    matrix_to_multivector,
    multivector_to_matrix,
    to_matrix,
)

__all__ = [
    "GammaEntry",
    "GammaTable",
    "blade_matrices",
    "generator_matrices",
    "to_matrix",
    "from_matrix",
    "get_gammas",
    "generators",
    "multivector_to_matrix",
    "matrix_to_multivector",
]
