import logging

import numpy as np
import pytest

from core.errors import (
    BackendMismatch,
    IndexOutOfBounds,
    NotSymmetric,
    ScalarTypeMismatch,
    ShapeMismatch,
    SingularMatrix,
    UnsupportedScalarType,
)
from core.scalar import ScalarType


def spd(n, seed=0):
    """Well-conditioned symmetric matrix with eigenvalues 1..n."""
    rng = np.random.default_rng(seed)
    q, _ = np.linalg.qr(rng.standard_normal((n, n)))
    return q @ np.diag(np.arange(1.0, n + 1.0)) @ q.T


class TestCreate:
    def test_flat_and_nested(self, backend_and_type):
        backend, st = backend_and_type
        flat = backend.create((2, 3), [1, 2, 3, 4, 5, 6], st)
        nested = backend.create((2, 3), [[1, 2, 3], [4, 5, 6]], st)
        assert flat.shape == (2, 3)
        assert flat.scalar_type is st
        np.testing.assert_array_equal(flat.to_numpy(), nested.to_numpy())

    def test_wrong_length(self, backend_and_type):
        backend, st = backend_and_type
        with pytest.raises(ShapeMismatch):
            backend.create((2, 3), [1, 2, 3], st)

    def test_wrong_nested_shape(self, backend_and_type):
        backend, st = backend_and_type
        with pytest.raises(ShapeMismatch):
            backend.create((3, 2), [[1, 2, 3], [4, 5, 6]], st)

    def test_download_is_a_copy(self, backend_and_type):
        backend, st = backend_and_type
        t = backend.create((2,), [1.0, 2.0], st)
        host = t.to_numpy()
        host[0] = 99.0
        assert t.to_numpy()[0] == 1.0

    def test_storage_not_exposed(self, backend_and_type):
        backend, st = backend_and_type
        t = backend.create((2,), [1.0, 2.0], st)
        assert not hasattr(t, "native")

    def test_upload_infers_type(self, reference):
        t = reference.upload(np.zeros((2, 2), dtype=np.complex64))
        assert t.scalar_type is ScalarType.COMPLEX32

    def test_upload_integer_rejected(self, reference):
        with pytest.raises(UnsupportedScalarType):
            reference.upload(np.zeros(3, dtype=np.int64))

    def test_complex_data_for_real_type(self, reference):
        with pytest.raises(ScalarTypeMismatch):
            reference.create((1,), [1 + 2j], ScalarType.F64)

    def test_accelerated_rejects_f64(self, accelerated):
        with pytest.raises(UnsupportedScalarType):
            accelerated.upload(np.zeros(4))
        assert accelerated.supports("f32")
        assert not accelerated.supports(ScalarType.COMPLEX64)


class TestElementwise:
    def test_broadcast_add(self, backend_and_type):
        backend, st = backend_and_type
        a = backend.create((2, 3), np.arange(6.0), st)
        b = backend.create((3,), [10.0, 20.0, 30.0], st)
        np.testing.assert_allclose((a + b).to_numpy(), [[10, 21, 32], [13, 24, 35]])

    def test_not_broadcastable(self, backend_and_type):
        backend, st = backend_and_type
        a = backend.zeros((2, 3), st)
        b = backend.zeros((2,), st)
        with pytest.raises(ShapeMismatch):
            backend.add(a, b)

    def test_scalar_operands(self, backend_and_type):
        backend, st = backend_and_type
        a = backend.create((2,), [1.0, 2.0], st)
        out = 1.0 - (a * 2) / 4
        assert out.scalar_type is st
        np.testing.assert_allclose(out.to_numpy(), [0.5, 0.0])

    def test_ieee_division(self, backend_and_type):
        backend, st = backend_and_type
        num = backend.create((3,), [1.0, -1.0, 0.0], st)
        den = backend.zeros((3,), st)
        out = (num / den).to_numpy()
        assert out[0] == np.inf
        assert out[1] == -np.inf
        assert np.isnan(out[2])

    def test_nan_to_num(self, backend_and_type):
        backend, st = backend_and_type
        t = backend.create((3,), [np.inf, np.nan, 2.0], st)
        np.testing.assert_array_equal(backend.nan_to_num(t, 0.0).to_numpy(), [0.0, 0.0, 2.0])

    def test_scalar_type_mismatch(self, reference):
        a = reference.zeros((2,), ScalarType.F32)
        b = reference.zeros((2,), ScalarType.F64)
        with pytest.raises(ScalarTypeMismatch):
            a + b

    def test_backend_mismatch(self, reference, accelerated):
        a = reference.zeros((2,), ScalarType.F32)
        b = accelerated.zeros((2,), ScalarType.F32)
        with pytest.raises(BackendMismatch):
            reference.add(a, b)

    def test_abs_max_and_reductions(self, backend_and_type):
        backend, st = backend_and_type
        t = backend.create((2, 2), [1.0, -4.0, 2.0, 3.0], st)
        assert backend.abs_max(t) == 4.0
        np.testing.assert_allclose(backend.sum(t, axis=0).to_numpy(), [3.0, -1.0])
        np.testing.assert_allclose(backend.mean(t).to_numpy(), 0.5)
        assert backend.sum(t, axis=1, keepdims=True).shape == (2, 1)


class TestStructure:
    def test_slice(self, backend_and_type):
        backend, st = backend_and_type
        t = backend.create((2, 4), np.arange(8.0), st)
        np.testing.assert_array_equal(backend.slice(t, 1, 1, 3).to_numpy(), [[1, 2], [5, 6]])
        assert backend.slice(t, 0, 1, 1).shape == (0, 4)

    @pytest.mark.parametrize("axis, start, stop", [(2, 0, 1), (1, -1, 2), (1, 0, 5), (1, 3, 2)])
    def test_slice_out_of_bounds(self, backend_and_type, axis, start, stop):
        backend, st = backend_and_type
        t = backend.zeros((2, 4), st)
        with pytest.raises(IndexOutOfBounds):
            backend.slice(t, axis, start, stop)

    def test_reshape_permute_concat(self, backend_and_type):
        backend, st = backend_and_type
        t = backend.create((2, 3), np.arange(6.0), st)
        assert backend.reshape(t, (3, -1)).shape == (3, 2)
        with pytest.raises(ShapeMismatch):
            backend.reshape(t, (4, 2))
        np.testing.assert_array_equal(backend.transpose(t).to_numpy(), np.arange(6.0).reshape(2, 3).T)
        assert backend.concat([t, t], axis=1).shape == (2, 6)
        with pytest.raises(ShapeMismatch):
            backend.concat([t, backend.zeros((3, 3), st)], axis=1)

    def test_reference_storage_is_read_only(self, reference):
        t = reference.create((2, 2), [1, 2, 3, 4], ScalarType.F64)
        r = reference.reshape(t, (4,))
        p = reference.permute(t, (1, 0))
        for tensor in (t, r, p):
            with pytest.raises(ValueError):
                tensor._native[0] = 99.0
        np.testing.assert_array_equal(r.to_numpy(), [1.0, 2.0, 3.0, 4.0])
        host = r.to_numpy()
        host[0] = 99.0
        np.testing.assert_array_equal(t.to_numpy(), [[1.0, 2.0], [3.0, 4.0]])


class TestLinearAlgebra:
    def test_matmul_batched(self, backend_and_type):
        backend, st = backend_and_type
        a = backend.upload(np.ones((4, 2, 3)), st)
        b = backend.upload(np.ones((3, 5)), st)
        out = a @ b
        assert out.shape == (4, 2, 5)
        np.testing.assert_allclose(out.to_numpy(), 3.0)

    @pytest.mark.parametrize("a_shape, b_shape", [((2, 3), (2, 3)), ((3,), (3, 3)), ((2, 3, 3), (4, 3, 3))])
    def test_matmul_shape_mismatch(self, backend_and_type, a_shape, b_shape):
        backend, st = backend_and_type
        with pytest.raises(ShapeMismatch):
            backend.matmul(backend.zeros(a_shape, st), backend.zeros(b_shape, st))

    def test_inverse(self, backend_and_type):
        backend, st = backend_and_type
        a = backend.upload(spd(4), st)
        eye = (a @ backend.inverse(a)).to_numpy()
        np.testing.assert_allclose(eye, np.eye(4), atol=1e-5)

    def test_inverse_singular(self, backend_and_type):
        backend, st = backend_and_type
        a = backend.create((2, 2), [1.0, 2.0, 2.0, 4.0], st)
        with pytest.raises(SingularMatrix):
            backend.inverse(a)

    def test_inverse_non_square(self, backend_and_type):
        backend, st = backend_and_type
        with pytest.raises(ShapeMismatch):
            backend.inverse(backend.zeros((2, 3), st))

    def test_eig_sorted_and_reconstructs(self, backend_and_type):
        backend, st = backend_and_type
        host = spd(5, seed=3)
        values, vectors = backend.eig(backend.upload(host, st))
        w, v = values.to_numpy(), vectors.to_numpy()
        assert np.all(np.diff(w) > 0)
        np.testing.assert_allclose(w, np.arange(1.0, 6.0), atol=1e-4)
        np.testing.assert_allclose(v @ np.diag(w) @ v.T, host, atol=1e-4)

    def test_eig_hermitian(self, reference):
        h = np.array([[2.0, 1j], [-1j, 2.0]])
        values, _ = reference.eig(reference.upload(h, ScalarType.COMPLEX64))
        assert values.scalar_type is ScalarType.F64
        np.testing.assert_allclose(values.to_numpy(), [1.0, 3.0])

    def test_eig_not_symmetric(self, backend_and_type):
        backend, st = backend_and_type
        with pytest.raises(NotSymmetric):
            backend.eig(backend.create((2, 2), [1.0, 2.0, 0.0, 1.0], st))

    def test_pow(self, backend_and_type):
        backend, st = backend_and_type
        host = np.array([[1.0, 1.0], [0.0, 1.0]])
        a = backend.upload(host, st)
        np.testing.assert_allclose(backend.pow(a, 0).to_numpy(), np.eye(2))
        np.testing.assert_allclose(backend.pow(a, 5).to_numpy(), [[1.0, 5.0], [0.0, 1.0]])
        np.testing.assert_allclose(backend.pow(a, -2).to_numpy(), [[1.0, -2.0], [0.0, 1.0]], atol=1e-6)

    def test_pow_batched_identity(self, reference):
        a = reference.upload(np.ones((3, 2, 2)), ScalarType.F64)
        assert reference.pow(a, 0).shape == (3, 2, 2)

    def test_pow_non_square(self, backend_and_type):
        backend, st = backend_and_type
        with pytest.raises(ShapeMismatch):
            backend.pow(backend.zeros((2, 3), st), 2)


class TestPrecision:
    def test_narrowing_cast_is_logged(self, reference, caplog):
        caplog.set_level(logging.INFO, logger="isomorph")
        t = reference.upload(np.ones(3), ScalarType.F64)
        out = reference.cast(t, ScalarType.F32)
        assert out.scalar_type is ScalarType.F32
        assert any("Narrowing" in r.getMessage() for r in caplog.records)

    def test_complex_to_real_cast_refused(self, reference):
        t = reference.upload(np.ones(2, dtype=np.complex128))
        with pytest.raises(ScalarTypeMismatch):
            reference.cast(t, ScalarType.F64)
        assert reference.real(t).scalar_type is ScalarType.F64

    def test_transfer(self, reference, accelerated):
        t = reference.upload(np.arange(4.0, dtype=np.float32))
        moved = reference.transfer(t, accelerated)
        assert moved.backend is accelerated
        np.testing.assert_array_equal(moved.to_numpy(), np.arange(4.0))

    def test_transfer_unsupported(self, reference, accelerated):
        t = reference.upload(np.arange(4.0))
        with pytest.raises(UnsupportedScalarType):
            reference.transfer(t, accelerated)

    def test_no_op_paths_return_new_tensors(self, backend_and_type):
        backend, st = backend_and_type
        t = backend.create((2, 2), [1.0, 2.0, 3.0, 4.0], st)
        outputs = [
            backend.conj(t),
            backend.real(t),
            backend.cast(t, st),
            backend.transfer(t, backend),
            backend.pow(t, 1),
        ]
        for out in outputs:
            assert out is not t
            assert out.scalar_type is st
            np.testing.assert_array_equal(out.to_numpy(), t.to_numpy())


class TestParity:
    """Accelerated results agree with the reference oracle."""

    TOL = dict(rtol=1e-5, atol=1e-5)

    def test_matmul(self, reference, accelerated):
        rng = np.random.default_rng(7)
        a = 0.5 * rng.standard_normal((3, 8, 8))
        b = 0.5 * rng.standard_normal((8, 8))
        ref = reference.upload(a) @ reference.upload(b)
        acc = accelerated.upload(a, ScalarType.F32) @ accelerated.upload(b, ScalarType.F32)
        np.testing.assert_allclose(acc.to_numpy(), ref.to_numpy(), **self.TOL)

    def test_inverse(self, reference, accelerated):
        host = spd(6, seed=11) / 6.0
        ref = reference.inverse(reference.upload(host))
        acc = accelerated.inverse(accelerated.upload(host, ScalarType.F32))
        np.testing.assert_allclose(acc.to_numpy(), ref.to_numpy(), **self.TOL)

    def test_eig(self, reference, accelerated):
        host = spd(6, seed=5) / 6.0
        ref_w, ref_v = reference.eig(reference.upload(host))
        acc_w, acc_v = accelerated.eig(accelerated.upload(host, ScalarType.F32))
        np.testing.assert_allclose(acc_w.to_numpy(), ref_w.to_numpy(), **self.TOL)
        # Eigenvectors agree up to sign
        overlap = np.abs(np.sum(acc_v.to_numpy() * ref_v.to_numpy(), axis=0))
        np.testing.assert_allclose(overlap, 1.0, atol=1e-4)
