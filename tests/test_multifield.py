import numpy as np
import pytest

from core.errors import IndexOutOfBounds, MetricError, ScalarTypeMismatch, ShapeMismatch
from core.metric import Metric
from core.multivector import CausalMultiVector
from core.scalar import ScalarType
from fields.multifield import Boundary, CausalMultiField, central_difference

E2 = Metric.euclidean(2)


def scalar_line(values, metric, backend, gammas, dx):
    coeffs = np.zeros((1, len(values), metric.num_blades))
    coeffs[0, :, 0] = values
    return CausalMultiField.from_coefficients(coeffs, metric, dx, backend, gammas)


def plane(shape, dx):
    axes = [np.arange(n) * d for n, d in zip(shape, dx)]
    return np.meshgrid(*axes, indexing="ij")


class TestCentralDifference:
    @pytest.mark.parametrize(
        "boundary, edges",
        [(Boundary.CLAMP, (1.5, 1.5)), (Boundary.ZERO, (0.0, 0.0)), (Boundary.WRAP, (-4.5, -4.5))],
    )
    def test_linear_profile(self, reference, gammas, boundary, edges):
        x = np.arange(5) * 0.5
        field = scalar_line(3.0 * x, E2, reference, gammas, 0.5)
        deriv = field.partial_derivative(0, boundary).to_numpy()
        assert deriv.shape == (1, 5, 2, 2)
        scalar = deriv[0, :, 0, 0].real
        np.testing.assert_allclose(scalar[1:-1], 3.0, atol=1e-12)
        np.testing.assert_allclose((scalar[0], scalar[-1]), edges, atol=1e-12)

    def test_boundary_accepts_string(self, reference):
        t = reference.upload(np.array([0.0, 1.0, 4.0]))
        out = central_difference(t, 0, 1.0, "zero").to_numpy()
        np.testing.assert_allclose(out, [0.0, 2.0, 0.0])

    def test_single_cell_axis(self, reference):
        t = reference.upload(np.array([[7.0, 8.0]]))
        out = central_difference(t, 0, 1.0).to_numpy()
        np.testing.assert_allclose(out, np.zeros((1, 2)))

    def test_bad_axis(self, reference, gammas):
        field = scalar_line(np.arange(4.0), E2, reference, gammas, 1.0)
        with pytest.raises(IndexOutOfBounds):
            field.partial_derivative(1)


class TestVectorCalculus:
    def test_gradient_of_linear_scalar(self, reference, gammas):
        dx = (0.1, 0.2)
        x, y = plane((5, 6), dx)
        coeffs = np.zeros((1, 5, 6, 4))
        coeffs[0, ..., 0] = 2.0 * x + 5.0 * y
        field = CausalMultiField.from_coefficients(coeffs, E2, dx, reference, gammas)
        grad = field.gradient().to_coefficients()
        interior = grad[0, 1:-1, 1:-1]
        np.testing.assert_allclose(interior[..., 1], 2.0, atol=1e-10)
        np.testing.assert_allclose(interior[..., 2], 5.0, atol=1e-10)
        np.testing.assert_allclose(interior[..., [0, 3]], 0.0, atol=1e-10)

    def test_divergence(self, reference, gammas):
        dx = (0.25, 0.25)
        x, y = plane((6, 6), dx)
        coeffs = np.zeros((1, 6, 6, 4))
        coeffs[0, ..., 1] = x
        coeffs[0, ..., 2] = y
        field = CausalMultiField.from_coefficients(coeffs, E2, dx, reference, gammas)
        div = field.divergence().to_coefficients()[0, 1:-1, 1:-1]
        np.testing.assert_allclose(div[..., 0], 2.0, atol=1e-10)
        np.testing.assert_allclose(div[..., 1:], 0.0, atol=1e-10)

    def test_curl_of_rotation(self, reference, gammas):
        dx = (0.5, 0.5)
        x, y = plane((5, 5), dx)
        coeffs = np.zeros((2, 5, 5, 4))
        coeffs[:, ..., 1] = -y
        coeffs[:, ..., 2] = x
        field = CausalMultiField.from_coefficients(coeffs, E2, dx, reference, gammas)
        curl = field.curl().to_coefficients()[:, 1:-1, 1:-1]
        np.testing.assert_allclose(curl[..., 3], 2.0, atol=1e-10)
        np.testing.assert_allclose(curl[..., :3], 0.0, atol=1e-10)

    def test_gradient_without_grid_axes_in_algebra(self, reference, gammas):
        # One generator on a 2-D grid: only the first axis is differentiated
        metric = Metric.euclidean(1)
        coeffs = np.zeros((1, 3, 3, 2))
        coeffs[0, ..., 0] = np.arange(9.0).reshape(3, 3)
        field = CausalMultiField.from_coefficients(coeffs, metric, 1.0, reference, gammas)
        grad = field.gradient().to_coefficients()
        np.testing.assert_allclose(grad[0, 1, :, 1], 3.0, atol=1e-12)


class TestAlgebra:
    def test_pointwise_product_matches_host(self, backend_and_type, gammas):
        backend, st = backend_and_type
        metric = Metric.minkowski(4)
        rng = np.random.default_rng(7)
        a = 0.25 * rng.uniform(-1, 1, size=(2, 3, 16))
        b = 0.25 * rng.uniform(-1, 1, size=(2, 3, 16))
        fa = CausalMultiField.from_coefficients(a, metric, 0.1, backend, gammas, st)
        fb = CausalMultiField.from_coefficients(b, metric, 0.1, backend, gammas, st)
        product = (fa * fb).to_coefficients()
        expected = np.stack([
            (CausalMultiVector(x, metric) * CausalMultiVector(y, metric)).data
            for x, y in zip(a.reshape(-1, 16), b.reshape(-1, 16))
        ]).reshape(2, 3, 16)
        tol = 1e-12 if st is ScalarType.F64 else 1e-5
        assert np.max(np.abs(product - expected)) < tol

    def test_linear_ops(self, reference, gammas):
        rng = np.random.default_rng(8)
        a = rng.normal(size=(1, 4, 4))
        b = rng.normal(size=(1, 4, 4))
        fa = CausalMultiField.from_coefficients(a, E2, 1.0, reference, gammas)
        fb = CausalMultiField.from_coefficients(b, E2, 1.0, reference, gammas)
        np.testing.assert_allclose((fa + fb).to_coefficients(), a + b, atol=1e-12)
        np.testing.assert_allclose((fa - fb).to_coefficients(), a - b, atol=1e-12)
        np.testing.assert_allclose((2.0 * fa).to_coefficients(), 2.0 * a, atol=1e-12)
        np.testing.assert_allclose((-fa).to_coefficients(), -a, atol=1e-12)
        with pytest.raises(ScalarTypeMismatch):
            fa.scale(1j)

    def test_grade_project(self, reference, gammas):
        coeffs = np.array([[[1.0, 2.0, 3.0, 4.0]]])
        field = CausalMultiField.from_coefficients(coeffs, E2, 1.0, reference, gammas)
        np.testing.assert_allclose(field.grade_project(1).to_coefficients(), [[[0, 2, 3, 0]]], atol=1e-12)
        np.testing.assert_allclose(field.grade_project(2).to_coefficients(), [[[0, 0, 0, 4]]], atol=1e-12)

    def test_factories(self, reference, gammas):
        ones = CausalMultiField.ones(2, (3,), E2, 0.5, reference, gammas)
        assert ones.shape == (2, 3, 2, 2)
        assert ones.batch_size == 2
        assert ones.grid_shape == (3,)
        expected = np.zeros((2, 3, 4))
        expected[..., 0] = 1.0
        np.testing.assert_allclose(ones.to_coefficients(), expected, atol=1e-14)
        zeros = CausalMultiField.zeros(1, (2, 2), E2, 0.5, reference, gammas)
        assert np.all(zeros.to_coefficients() == 0)

    def test_multivector_roundtrip(self, reference, gammas):
        mvs = [CausalMultiVector(np.arange(4.0) + k, E2) for k in range(4)]
        field = CausalMultiField.from_multivectors(mvs, (2,), 1.0, reference, gammas)
        assert field.shape == (2, 2, 2, 2)
        back = field.to_multivectors()
        assert len(back) == 4
        for got, want in zip(back, mvs):
            assert got.allclose(want, atol=1e-12)
        with pytest.raises(ShapeMismatch):
            CausalMultiField.from_multivectors(mvs[:3], (2,), 1.0, reference, gammas)

    def test_to_backend(self, reference, accelerated, gammas):
        coeffs = np.ones((1, 2, 4))
        field = CausalMultiField.from_coefficients(coeffs, E2, 1.0, reference, gammas, ScalarType.F32)
        moved = field.to_backend(accelerated)
        assert moved.backend is accelerated
        np.testing.assert_allclose(moved.to_coefficients(), coeffs, atol=1e-6)


class TestProducts:
    E3 = Metric.euclidean(3)

    def blade_field(self, values, backend, gammas, blade=1):
        coeffs = np.zeros((1, len(values), 8))
        coeffs[0, :, blade] = values
        return CausalMultiField.from_coefficients(coeffs, self.E3, 1.0, backend, gammas)

    @pytest.mark.parametrize("name", ["outer_product", "inner_product", "commutator_lie"])
    def test_matches_host_per_cell(self, backend_and_type, gammas, name):
        backend, st = backend_and_type
        metric = Metric.minkowski(4)
        rng = np.random.default_rng(11)
        a = 0.25 * rng.uniform(-1, 1, size=(1, 3, 16))
        b = 0.25 * rng.uniform(-1, 1, size=(1, 3, 16))
        fa = CausalMultiField.from_coefficients(a, metric, 0.1, backend, gammas, st)
        fb = CausalMultiField.from_coefficients(b, metric, 0.1, backend, gammas, st)
        got = getattr(fa, name)(fb).to_coefficients()
        host = "commutator" if name == "commutator_lie" else name
        expected = np.stack([
            getattr(CausalMultiVector(x, metric), host)(CausalMultiVector(y, metric)).data
            for x, y in zip(a.reshape(-1, 16), b.reshape(-1, 16))
        ]).reshape(1, 3, 16)
        tol = 1e-12 if st is ScalarType.F64 else 1e-5
        assert np.max(np.abs(got - expected)) < tol

    def test_outer_product_antisymmetric(self, reference, gammas):
        a = self.blade_field(np.arange(1.0, 5.0), reference, gammas, blade=1)
        b = self.blade_field(np.arange(2.0, 6.0), reference, gammas, blade=2)
        ab = a.outer_product(b).to_coefficients()
        ba = b.outer_product(a).to_coefficients()
        np.testing.assert_allclose(ab, -ba, atol=1e-12)
        np.testing.assert_allclose(ab[0, :, 3], np.arange(1.0, 5.0) * np.arange(2.0, 6.0), atol=1e-12)

    def test_inner_product_of_ones_is_scalar(self, reference, gammas):
        ones = CausalMultiField.ones(1, (2, 2), self.E3, 1.0, reference, gammas)
        coeffs = ones.inner_product(ones).to_coefficients()
        np.testing.assert_allclose(coeffs[..., 0], 1.0, atol=1e-12)
        np.testing.assert_allclose(coeffs[..., 1:], 0.0, atol=1e-12)
        zeros = CausalMultiField.zeros(1, (2, 2), self.E3, 1.0, reference, gammas)
        assert np.all(np.abs(ones.inner_product(zeros).to_coefficients()) < 1e-12)

    def test_commutators(self, reference, gammas):
        a = self.blade_field(np.arange(1.0, 5.0), reference, gammas, blade=1)
        b = self.blade_field(np.arange(2.0, 6.0), reference, gammas, blade=2)
        lie = a.commutator_lie(b).to_coefficients()
        np.testing.assert_allclose(lie, -b.commutator_lie(a).to_coefficients(), atol=1e-12)
        np.testing.assert_allclose(a.commutator_geometric(b).to_coefficients(), lie / 2.0, atol=1e-12)
        np.testing.assert_allclose(a.commutator_lie(a).to_coefficients(), 0.0, atol=1e-12)

    def test_cross_of_vectors(self, reference, gammas):
        rng = np.random.default_rng(12)
        u = rng.normal(size=(4, 3))
        v = rng.normal(size=(4, 3))
        vector_blades = [1, 2, 4]
        cu = np.zeros((1, 4, 8))
        cv = np.zeros((1, 4, 8))
        cu[0][:, vector_blades] = u
        cv[0][:, vector_blades] = v
        fu = CausalMultiField.from_coefficients(cu, self.E3, 1.0, reference, gammas)
        fv = CausalMultiField.from_coefficients(cv, self.E3, 1.0, reference, gammas)
        got = fu.cross(fv).to_coefficients()[0]
        np.testing.assert_allclose(got[:, vector_blades], np.cross(u, v), atol=1e-12)
        np.testing.assert_allclose(got[:, [0, 3, 5, 6, 7]], 0.0, atol=1e-12)

    def test_hodge_dual(self, reference, gammas):
        scalars = np.arange(1.0, 5.0)
        field = self.blade_field(scalars, reference, gammas, blade=0)
        dual = field.hodge_dual().to_coefficients()[0]
        # I^{-1} = -e123 in Cl(3, 0)
        np.testing.assert_allclose(dual[:, 7], -scalars, atol=1e-12)
        np.testing.assert_allclose(dual[:, :7], 0.0, atol=1e-12)
        vectors = self.blade_field(scalars, reference, gammas, blade=2)
        twice = vectors.hodge_dual().hodge_dual().to_coefficients()
        np.testing.assert_allclose(twice, -vectors.to_coefficients(), atol=1e-12)

    def test_grade_parts(self, reference, gammas):
        coeffs = np.zeros((1, 4, 8))
        coeffs[0, :, 0] = np.arange(4.0)
        coeffs[0, :, 1] = 2.0
        coeffs[0, :, 3] = np.arange(1.0, 5.0)
        coeffs[0, :, 5] = 4.0
        coeffs[0, :, 7] = 5.0
        field = CausalMultiField.from_coefficients(coeffs, self.E3, (0.5,), reference, gammas)
        parts = {
            0: field.scalar_part(),
            1: field.vector_part(),
            2: field.bivector_part(),
            3: field.trivector_part(),
        }
        grades = np.array([0, 1, 1, 2, 1, 2, 2, 3])
        for k, part in parts.items():
            assert part.dx == (0.5,)
            assert part.metric == self.E3
            np.testing.assert_allclose(part.to_coefficients(), np.where(grades == k, coeffs, 0.0), atol=1e-12)
        np.testing.assert_allclose(
            field.pseudoscalar_part().to_coefficients(), parts[3].to_coefficients(), atol=1e-12
        )

    def test_metric_mismatch(self, reference, gammas):
        a = CausalMultiField.ones(1, (2,), self.E3, 1.0, reference, gammas)
        b = CausalMultiField.ones(1, (2,), Metric.generic(2, 1), 1.0, reference, gammas)
        for name in ("inner_product", "outer_product", "commutator_lie", "cross"):
            with pytest.raises(MetricError):
                getattr(a, name)(b)


class TestValidation:
    def test_metric_mismatch(self, reference, gammas):
        a = CausalMultiField.zeros(1, (3,), E2, 1.0, reference, gammas)
        b = CausalMultiField.zeros(1, (3,), Metric.non_euclidean(2), 1.0, reference, gammas)
        with pytest.raises(MetricError):
            a * b

    def test_shape_and_spacing_mismatch(self, reference, gammas):
        a = CausalMultiField.zeros(1, (3,), E2, 1.0, reference, gammas)
        with pytest.raises(ShapeMismatch):
            a + CausalMultiField.zeros(1, (4,), E2, 1.0, reference, gammas)
        with pytest.raises(ShapeMismatch):
            a + CausalMultiField.zeros(1, (3,), E2, 0.5, reference, gammas)

    def test_scalar_type_mismatch(self, reference, gammas):
        a = CausalMultiField.zeros(1, (3,), E2, 1.0, reference, gammas)
        b = CausalMultiField.zeros(1, (3,), E2, 1.0, reference, gammas, ScalarType.F32)
        with pytest.raises(ScalarTypeMismatch):
            a - b

    def test_bad_spacing(self, reference, gammas):
        with pytest.raises(ShapeMismatch):
            CausalMultiField.zeros(1, (3, 3), E2, (1.0,), reference, gammas)
        with pytest.raises(ValueError):
            CausalMultiField.zeros(1, (3,), E2, -1.0, reference, gammas)

    def test_bad_data_shape(self, reference, gammas):
        with pytest.raises(ShapeMismatch):
            CausalMultiField(reference.zeros((2, 3, 3), ScalarType.COMPLEX64), E2, (), gammas)
