"""
Tests for the differential form algebra.
"""

import pytest

from differential_forms import FormAlgebra
from polynomial_ring import PolynomialRing


def _algebra(names="x,y,z,t"):
    R = PolynomialRing(names)
    return R, FormAlgebra(R)


class TestBasis:
    """Basis enumeration per degree"""

    def test_sizes(self):
        """Basis sizes are binomial coefficients"""
        _, A = _algebra()
        assert [len(A.basis(q)) for q in range(5)] == [1, 4, 6, 4, 1]

    def test_degree_zero_is_one(self):
        """The 0-form basis is the constant 1"""
        R, A = _algebra()
        (one,) = A.basis(0)
        assert one.degree == 0
        assert one.coefficients() == {(): R.one}

    def test_out_of_range(self):
        """Degrees outside [0, n] have an empty basis"""
        _, A = _algebra()
        assert A.basis(5) == []
        assert A.basis(-1) == []

    def test_lexicographic_order(self):
        """Basis indices come in lexicographic order"""
        _, A = _algebra()
        assert A.basis_indices(2) == [(0, 1), (0, 2), (0, 3), (1, 2), (1, 3), (2, 3)]
        assert [str(w) for w in A.basis(2)][:2] == ["dx^dy", "dx^dz"]


class TestProducts:
    """Wedge product signs and derivatives"""

    def test_anticommutation(self):
        """dy^dx = -dx^dy and dx^dx = 0"""
        _, A = _algebra()
        dx, dy, _, _ = A.basis(1)
        assert (dy ^ dx) == -(dx ^ dy)
        assert (dx ^ dx).is_zero()

    def test_sign_of_merge(self):
        """Sorting indices contributes the permutation sign"""
        R, A = _algebra()
        dx, dy, dz, _ = A.basis(1)
        w = dz ^ (dx ^ dy)
        assert w.coefficients() == {(0, 1, 2): R.one}
        w = dy ^ (dx ^ dz)
        assert w.coefficients() == {(0, 1, 2): -R.one}

    def test_graded_commutativity(self):
        """Odd and even forms commute"""
        _, A = _algebra()
        x, y, z, t = A.ring.gens
        a = A.universal_derivative(x * y + z)
        b = A.universal_derivative(t) ^ A.universal_derivative(x * z)
        assert (a ^ b) == (b ^ a)
        assert (a ^ a).is_zero()

    def test_universal_derivative(self):
        """df collects the partial derivatives"""
        R, A = _algebra()
        x, y, _, _ = R.gens
        df = A.universal_derivative(x * y)
        assert df.degree == 1
        assert df.coefficients() == {(0,): y, (1,): x}
        assert A.universal_derivative(5).is_zero()

    def test_product_form_coefficients(self):
        """Coefficients of d(xy)^d(zt) against the 2-form basis"""
        R, A = _algebra()
        x, y, z, t = R.gens
        w = A.universal_derivative(x * y) ^ A.universal_derivative(z * t)
        assert A.coefficient_vector(w, A.basis(2)) == [0, y * t, y * z, x * t, x * z, 0]

    def test_d_squared_is_zero(self):
        """d(d(w)) = 0"""
        _, A = _algebra()
        f = A.ring.element("x**2*y + z*t**3")
        assert A.d(A.universal_derivative(f)).is_zero()
        w = A.form(1, {(0,): "y*z", (3,): "x**2"})
        assert A.d(A.d(w)).is_zero()

    def test_leibniz_rule(self):
        """d(fg) = g df + f dg"""
        R, A = _algebra()
        f = R.element("x*y + t")
        g = R.element("z**2 - x")
        assert A.universal_derivative(f * g) == (A.universal_derivative(g) * f
                                                 + A.universal_derivative(f) * g)

    def test_d_of_scalar(self):
        """d of a 0-form is its universal derivative"""
        _, A = _algebra()
        assert A.d(A.scalar("x*y")) == A.universal_derivative("x*y")


class TestLinearStructure:
    """Coefficients, equality and scale-and-add"""

    def test_combine(self):
        """Scale-and-add over a basis"""
        R, A = _algebra()
        x, y, _, _ = R.gens
        V = A.basis(1)
        w = A.combine(V, [x, 0, y, 1])
        assert A.coefficient_vector(w, V) == [x, 0, y, 1]
        assert str(w) == "x*dx + y*dz + dt"

    def test_combine_empty_list(self):
        """An empty combination is the zero form of the given degree"""
        _, A = _algebra()
        w = A.combine([], [], degree=2)
        assert w.is_zero()
        assert w.degree == 2

    def test_combine_errors(self):
        """Mismatched lengths and mixed degrees are rejected"""
        _, A = _algebra()
        with pytest.raises(ValueError, match="coefficients"):
            A.combine(A.basis(1), [1])
        with pytest.raises(ValueError, match="different degrees"):
            A.combine(A.basis(1)[:1] + A.basis(2)[:1], [1, 1])

    def test_add_different_degrees(self):
        """Only zero forms add across degrees"""
        _, A = _algebra()
        with pytest.raises(ValueError, match="degree"):
            A.basis(1)[0] + A.basis(2)[0]
        assert (A.zero(3) + A.basis(1)[0]) == A.basis(1)[0]

    def test_different_algebras(self):
        """Forms of different algebras do not mix"""
        _, A = _algebra()
        _, B = _algebra("u,v")
        with pytest.raises(ValueError, match="different form algebras"):
            A.basis(1)[0] + B.basis(1)[0]
        with pytest.raises(ValueError):
            A.wedge(A.basis(1)[0], B.basis(1)[0])

    def test_equal(self):
        """Equality compares coefficients"""
        R, A = _algebra()
        x = R.gens[0]
        dx = A.basis(1)[0]
        assert A.equal(dx * x, A.form(1, {(0,): "x"}))
        assert not A.equal(dx, dx * x)
        assert A.equal(A.zero(1), A.zero(2))

    def test_coefficient_vector_outside_basis(self):
        """Missing basis elements raise ValueError"""
        _, A = _algebra()
        with pytest.raises(ValueError, match="not in the given basis"):
            A.coefficient_vector(A.basis(1)[3], A.basis(1)[:2])

    def test_form_validation(self):
        """Indices must be increasing and match the degree"""
        _, A = _algebra()
        with pytest.raises(ValueError, match="increasing"):
            A.form(2, {(1, 0): 1})
        with pytest.raises(ValueError, match="degree"):
            A.form(1, {(0, 1): 1})

    def test_rendering(self):
        """String form of zero, signs and compound coefficients"""
        _, A = _algebra()
        assert str(A.zero(2)) == "0"
        assert str(A.universal_derivative("x")) == "dx"
        assert str(-A.basis(2)[0]) == "-dx^dy"
        assert str(A.form(1, {(1,): "x + 1"})) == "(x + 1)*dy"
