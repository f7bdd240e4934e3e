"""
Tests for the module Groebner / syzygy / resolution engine.
"""

import numpy as np
import pytest
import sympy as sp

from module_groebner import Module, Resolution, SyzygyEngine
from polynomial_ring import PolynomialRing


def _apply(module, relation):
    """Image of a relation vector under the generator matrix."""
    ring = module.ring
    image = [ring.zero] * module.rank
    for coeff, gen in zip(relation, module.generators):
        for i, p in enumerate(gen):
            image[i] = image[i] + coeff * p
    return image


class TestModule:
    """Module container"""

    def test_shape_and_matrix(self):
        """Rows are coordinates, columns are generators"""
        R = PolynomialRing("x,y")
        x, y = R.gens
        M = Module(R, 2, [(x, y), (y, 0)])
        assert M.nrows == 2
        assert M.ncols == 2
        assert M.to_matrix() == sp.Matrix([[sp.Symbol("x"), sp.Symbol("y")],
                                           [sp.Symbol("y"), 0]])

    def test_wrong_generator_length(self):
        """Generators must have rank entries"""
        R = PolynomialRing("x,y")
        with pytest.raises(ValueError, match="expected 2"):
            Module(R, 2, [("x",)])

    def test_degree_with_shifts(self):
        """Degree adds the row shift"""
        R = PolynomialRing("x,y")
        x, y = R.gens
        M = Module(R, 2, [], shifts=[0, 2])
        assert M.degree((x ** 2, y)) == 3
        assert M.degree((R.zero, R.zero)) == -1

    def test_homogeneity(self):
        """Homogeneity depends on the shifts"""
        R = PolynomialRing("x,y")
        x, y = R.gens
        assert Module(R, 2, [(x, y)]).is_homogeneous()
        assert not Module(R, 2, [(x, y ** 2)]).is_homogeneous()
        assert Module(R, 2, [(x, y ** 2)], shifts=[1, 0]).is_homogeneous()
        assert not Module(R, 1, [(x + 1,)]).is_homogeneous()

    def test_empty_module(self):
        """A module without generators is zero"""
        R = PolynomialRing("x")
        M = Module(R, 3, [])
        assert M.is_zero()
        assert M.to_matrix().shape == (3, 0)


class TestSyzygy:
    """Kernels of generator matrices"""

    def test_two_variables(self):
        """Syzygy of (x, y) is the Koszul relation"""
        R = PolynomialRing("x,y")
        x, y = R.gens
        engine = SyzygyEngine(R)
        M = Module(R, 1, [(x,), (y,)])
        S = engine.syzygy(M)
        assert S.rank == 2
        assert S.ncols == 1
        assert S.generators[0] in [(-y, x), (y, -x)]

    def test_relations_are_in_kernel(self):
        """Every relation maps to zero"""
        R = PolynomialRing("x,y,z")
        x, y, z = R.gens
        engine = SyzygyEngine(R)
        M = Module(R, 2, [(x, y), (y, z), (z, x), (x + y, y + z)])
        S = engine.syzygy(M)
        assert S.ncols > 0
        for rel in S.generators:
            assert all(not p for p in _apply(M, rel))
        # the obvious relation g0 + g1 - g3 = 0
        assert engine.contains(S, (1, 1, 0, -1))

    def test_zero_generator_gives_unit_relation(self):
        """A zero generator is its own relation"""
        R = PolynomialRing("x,y")
        x, _ = R.gens
        engine = SyzygyEngine(R)
        S = engine.syzygy(Module(R, 1, [(x,), (0,)]))
        assert engine.contains(S, (0, 1))

    def test_no_generators(self):
        """No generators, no relations"""
        R = PolynomialRing("x,y")
        S = SyzygyEngine(R).syzygy(Module(R, 2, []))
        assert S.rank == 0
        assert S.ncols == 0

    def test_rank_zero_module(self):
        """Kernel of a map to R^0 is everything"""
        # kernel of R^2 -> R^0 is everything
        R = PolynomialRing("x,y")
        engine = SyzygyEngine(R)
        S = engine.syzygy(Module(R, 0, [(), ()]))
        assert S.rank == 2
        assert engine.contains(S, (1, 0))
        assert engine.contains(S, (0, 1))

    def test_shifts_are_generator_degrees(self):
        """Syzygy shifts are the generator degrees"""
        R = PolynomialRing("x,y")
        x, y = R.gens
        S = SyzygyEngine(R).syzygy(Module(R, 1, [(x ** 2,), (y,)]))
        assert S.shifts == (2, 1)
        assert S.is_homogeneous()


class TestMembershipAndReduction:
    """Groebner bases, normal forms and membership"""

    def test_contains(self):
        """Submodule membership"""
        R = PolynomialRing("x,y")
        x, y = R.gens
        engine = SyzygyEngine(R)
        M = Module(R, 2, [(x, y), (y, x)])
        assert engine.contains(M, (x + y, x + y))
        assert engine.contains(M, (x * x - y * y, 0))
        assert not engine.contains(M, (x, 0))
        assert engine.contains(M, (0, 0))

    def test_contains_wrong_length(self):
        """Vectors must match the rank"""
        R = PolynomialRing("x,y")
        engine = SyzygyEngine(R)
        with pytest.raises(ValueError, match="entries"):
            engine.contains(Module(R, 2, []), (1,))

    def test_reduce(self):
        """Normal form against a Groebner basis"""
        R = PolynomialRing("x,y")
        x, y = R.gens
        engine = SyzygyEngine(R)
        G = engine.groebner_basis(Module(R, 1, [(x,)]))
        assert engine.reduce((x * y,), G) == (R.zero,)
        assert engine.reduce((x * y + y,), G) == (y,)

    def test_groebner_basis_of_ideal(self):
        """Rank-1 bases agree with sympy.groebner"""
        R = PolynomialRing("x,y")
        x, y = R.gens
        engine = SyzygyEngine(R)
        G = engine.groebner_basis(Module(R, 1, [(x * x - y,), (x * y - 1,)]))
        expected = sp.groebner([e.as_expr() for e in (x * x - y, x * y - 1)],
                               *R.symbols, order="grevlex")
        assert {g[0].as_expr() for g in G.generators} == set(expected.exprs)

    def test_max_pairs(self):
        """The S-pair budget is enforced"""
        R = PolynomialRing("x,y")
        x, y = R.gens
        engine = SyzygyEngine(R, max_pairs=0)
        with pytest.raises(RuntimeError, match="max_pairs"):
            engine.groebner_basis(Module(R, 1, [(x,), (y,)]))


class TestMinimalGenerators:
    """Minimal generating sets and cleanup"""

    def test_graded(self):
        """Redundant generators are dropped by degree"""
        R = PolynomialRing("x,y")
        x, y = R.gens
        engine = SyzygyEngine(R)
        M = Module(R, 1, [(x,), (x * y,), (y,), (x + y,)])
        assert engine.minimal_generators(M).generators == ((x,), (y,))

    def test_inhomogeneous(self):
        """A unit generator makes the others redundant"""
        R = PolynomialRing("x,y")
        x, _ = R.gens
        engine = SyzygyEngine(R)
        M = Module(R, 1, [(x + 1,), (x,), (R.one,)])
        assert engine.minimal_generators(M).ncols == 1

    def test_inhomogeneous_prune(self):
        """Inhomogeneous pruning keeps the module"""
        # x + 1 and x generate the unit ideal, so y is dropped
        R = PolynomialRing("x,y")
        x, y = R.gens
        engine = SyzygyEngine(R)
        M = Module(R, 1, [(x + 1,), (x,), (y,)])
        result = engine.minimal_generators(M)
        assert result.ncols <= 2
        assert engine.contains(result, (R.one,))

    def test_cleanup(self):
        """Zero generators and rows go, duplicates on request"""
        R = PolynomialRing("x,y,z")
        x, y, z = R.gens
        engine = SyzygyEngine(R)
        M = Module(R, 3, [(x, 0, 0), (0, 0, 0), (y, 0, z), (x, 0, 0)])
        once = engine.cleanup(M)
        assert once.rank == 2
        assert once.generators == ((x, 0), (y, z), (x, 0))
        assert engine.cleanup(once) == once
        assert engine.cleanup(M, duplicates=True).ncols == 2

    def test_cleanup_keeps_rows_when_asked(self):
        """zero_rows=False keeps the rank"""
        R = PolynomialRing("x")
        x = R.gens[0]
        engine = SyzygyEngine(R)
        M = Module(R, 2, [(x, 0), (0, 0)])
        kept = engine.cleanup(M, zero_rows=False)
        assert kept.rank == 2
        assert kept.ncols == 1


class TestResolution:
    """Minimal free resolutions"""

    def test_koszul_three_variables(self):
        """Betti numbers of the Koszul complex"""
        R = PolynomialRing("x,y,z")
        x, y, z = R.gens
        engine = SyzygyEngine(R)
        res = engine.minimal_free_resolution(Module(R, 1, [(x,), (y,), (z,)]))
        assert isinstance(res, Resolution)
        assert engine.resolution_length(res) == 3
        assert np.array_equal(res.betti_numbers(), np.array([1, 3, 3, 1]))

    def test_complete_intersection(self):
        """Betti numbers of a complete intersection"""
        R = PolynomialRing("x,y,z,t")
        engine = SyzygyEngine(R)
        I = R.ideal("x*y", "z*t")
        res = engine.minimal_free_resolution(Module(R, 1, [(f,) for f in I]))
        assert list(res.betti_numbers()) == [1, 2, 1]

    def test_non_minimal_input(self):
        """Resolution starts from minimal generators"""
        R = PolynomialRing("x,y")
        x, y = R.gens
        engine = SyzygyEngine(R)
        res = engine.minimal_free_resolution(Module(R, 1, [(x,), (x * y,), (y,)]))
        assert list(res.betti_numbers()) == [1, 2, 1]

    def test_zero_module(self):
        """Zero module has a resolution of length 0"""
        R = PolynomialRing("x,y")
        engine = SyzygyEngine(R)
        res = engine.minimal_free_resolution(Module(R, 2, [(0, 0)]))
        assert res.length == 0
        assert list(res.betti_numbers()) == [2]


class TestEngineValidation:
    """Argument checking and statistics"""

    def test_type_errors(self):
        """Non-module and non-ring arguments raise TypeError"""
        R = PolynomialRing("x,y")
        engine = SyzygyEngine(R)
        with pytest.raises(TypeError):
            engine.syzygy("not a module")
        with pytest.raises(TypeError):
            SyzygyEngine("not a ring")

    def test_ring_mismatch(self):
        """Modules over another ring are rejected"""
        R = PolynomialRing("x,y")
        S = PolynomialRing("u,v")
        with pytest.raises(ValueError, match="belongs to"):
            SyzygyEngine(R).syzygy(Module(S, 1, [("u",)]))

    def test_timing_statistics(self, capsys):
        """Timing is collected, reported and reset"""
        R = PolynomialRing("x,y")
        x, y = R.gens
        engine = SyzygyEngine(R)
        engine.syzygy(Module(R, 1, [(x,), (y,)]))
        stats = engine.get_timing_statistics()
        assert stats['syzygy']['call_count'] == 1
        assert stats['syzygy']['total_time'] >= 0.0
        engine.print_performance_report()
        assert "SYZYGY ENGINE PERFORMANCE REPORT" in capsys.readouterr().out
        engine.reset_timing_statistics()
        assert engine.get_timing_statistics()['syzygy']['call_count'] == 0

    def test_show_progress(self, capsys):
        """Progress lines are printed on request"""
        R = PolynomialRing("x,y")
        x, y = R.gens
        SyzygyEngine(R, show_progress=True).syzygy(Module(R, 1, [(x,), (y,)]))
        assert "[syzygy]" in capsys.readouterr().out
