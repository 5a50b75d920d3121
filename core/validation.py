# Isomorph: Matrix-Isomorphism Tensor Substrate (C) 2026 Eunkyum Kim
# Licensed under the Apache License, Version 2.0 | "Unbending" Paradigm

"""Input validation shared by the backends and the field layer.

Unlike debug assertions these checks are part of the public contract: they
raise typed :mod:`core.errors` exceptions and stay active under ``python -O``.
"""

from typing import Sequence, Tuple

from core.errors import IndexOutOfBounds, ScalarTypeMismatch, ShapeMismatch


def broadcast_shapes(a: Sequence[int], b: Sequence[int], op: str = "op") -> Tuple[int, ...]:
    """Numpy broadcasting of two shapes.

    Raises:
        ShapeMismatch: If the shapes do not broadcast.
    """
    a, b = tuple(a), tuple(b)
    ndim = max(len(a), len(b))
    a = (1,) * (ndim - len(a)) + a
    b = (1,) * (ndim - len(b)) + b
    out = []
    for x, y in zip(a, b):
        if x != y and x != 1 and y != 1:
            raise ShapeMismatch(f"{op}: shapes {a} and {b} do not broadcast")
        out.append(max(x, y))
    return tuple(out)


def check_matmul(a_shape, b_shape) -> Tuple[int, ...]:
    """Validate a batched matmul and return the result shape."""
    if len(a_shape) < 2 or len(b_shape) < 2:
        raise ShapeMismatch(
            f"matmul: operands need ndim >= 2, got {tuple(a_shape)} and {tuple(b_shape)}"
        )
    if a_shape[-1] != b_shape[-2]:
        raise ShapeMismatch(
            f"matmul: inner dimensions differ, {tuple(a_shape)} @ {tuple(b_shape)}"
        )
    batch = broadcast_shapes(a_shape[:-2], b_shape[:-2], "matmul")
    return batch + (a_shape[-2], b_shape[-1])


def check_square(shape, name: str = "matrix") -> None:
    """Check that the trailing two axes form square matrices."""
    if len(shape) < 2 or shape[-1] != shape[-2]:
        raise ShapeMismatch(f"{name}: expected [..., N, N], got shape {tuple(shape)}")


def check_axis(axis: int, ndim: int) -> int:
    """Normalize a possibly negative axis."""
    if not -ndim <= axis < ndim:
        raise IndexOutOfBounds(f"axis {axis} out of range for ndim {ndim}")
    return axis % ndim


def check_slice(shape, axis: int, start: int, stop: int) -> int:
    """Validate a half-open range along one axis; returns the normalized axis."""
    axis = check_axis(axis, len(shape))
    size = shape[axis]
    if start < 0 or stop > size or start > stop:
        raise IndexOutOfBounds(
            f"slice [{start}, {stop}) invalid for axis {axis} of size {size}"
        )
    return axis


def check_same_scalar_type(*tensors) -> None:
    """All operands of one operation must share a scalar type."""
    types = {t.scalar_type for t in tensors}
    if len(types) > 1:
        raise ScalarTypeMismatch(
            "operands carry different scalar types: "
            + ", ".join(sorted(t.value for t in types))
        )


def check_multivector_shape(shape, num_blades: int, name: str = "x") -> None:
    """Check ``[..., 2^n]`` layout of a coefficient array."""
    if len(shape) < 1:
        raise ShapeMismatch(f"{name}: expected ndim >= 1, got shape {tuple(shape)}")
    if shape[-1] != num_blades:
        raise ShapeMismatch(
            f"{name}: last dim should be {num_blades} (algebra dim), "
            f"got {shape[-1]} (shape {tuple(shape)})"
        )
