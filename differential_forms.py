"""
Differential Forms Module

Exterior algebra of polynomial differential forms over a PolynomialRing.

A q-form is stored as a mapping from increasing index tuples (i1 < ... < iq)
to nonzero ring elements, the tuple standing for dx_i1 ^ ... ^ dx_iq. The
empty tuple is the basis element 1 of degree 0.

Usage Example:
--------------
    from polynomial_ring import PolynomialRing
    from differential_forms import FormAlgebra

    R = PolynomialRing("x,y,z,t")
    A = FormAlgebra(R)
    x, y, z, t = R.gens

    w = A.universal_derivative(x*y) ^ A.universal_derivative(z*t)
    print(w)                   # t*y*dx^dz + y*z*dx^dt + t*x*dy^dz + x*z*dy^dt
    A.coefficient_vector(w, A.basis(2))
"""

from itertools import combinations
from typing import Dict, List, Sequence, Tuple

import sympy as sp
from sympy.polys.rings import PolyElement

from polynomial_ring import PolynomialRing


Index = Tuple[int, ...]


def _merge_sign(a: Index, b: Index) -> int:
    """Sign of the permutation sorting the concatenation a + b."""
    inversions = sum(1 for i in a for j in b if i > j)
    return -1 if inversions % 2 else 1


class DifferentialForm:
    """
    Homogeneous differential form of a fixed degree.

    Forms are immutable; arithmetic returns new forms. Use the owning
    FormAlgebra to create them.
    """

    __slots__ = ("algebra", "degree", "_coeffs")

    def __init__(self, algebra: "FormAlgebra", degree: int, coeffs: Dict[Index, PolyElement]):
        self.algebra = algebra
        self.degree = degree
        self._coeffs = {idx: c for idx, c in coeffs.items() if c}

    def coefficients(self) -> Dict[Index, PolyElement]:
        return dict(self._coeffs)

    def is_zero(self) -> bool:
        return not self._coeffs

    def _check_compatible(self, other: "DifferentialForm") -> None:
        if not isinstance(other, DifferentialForm):
            raise TypeError(f"Expected a DifferentialForm, got {type(other).__name__}")
        if other.algebra != self.algebra:
            raise ValueError("Forms belong to different form algebras")

    def __add__(self, other):
        if not isinstance(other, DifferentialForm):
            return NotImplemented
        self._check_compatible(other)
        if self.degree != other.degree:
            if self.is_zero():
                return other
            if other.is_zero():
                return self
            raise ValueError(
                f"Cannot add forms of degree {self.degree} and {other.degree}"
            )
        coeffs = dict(self._coeffs)
        for idx, c in other._coeffs.items():
            coeffs[idx] = coeffs[idx] + c if idx in coeffs else c
        return DifferentialForm(self.algebra, self.degree, coeffs)

    def __neg__(self):
        return DifferentialForm(self.algebra, self.degree,
                                {idx: -c for idx, c in self._coeffs.items()})

    def __sub__(self, other):
        if not isinstance(other, DifferentialForm):
            return NotImplemented
        return self + (-other)

    def __mul__(self, scalar):
        """Multiply by a polynomial (or anything the ring can convert)."""
        if isinstance(scalar, DifferentialForm):
            return NotImplemented
        p = self.algebra.ring.element(scalar)
        return DifferentialForm(self.algebra, self.degree,
                                {idx: c * p for idx, c in self._coeffs.items()})

    __rmul__ = __mul__

    def __xor__(self, other):
        """Wedge product ``a ^ b``."""
        if not isinstance(other, DifferentialForm):
            return NotImplemented
        return self.algebra.wedge(self, other)

    def __eq__(self, other):
        if not isinstance(other, DifferentialForm):
            return NotImplemented
        if other.algebra != self.algebra:
            return False
        if self.is_zero() and other.is_zero():
            return True
        return self.degree == other.degree and self._coeffs == other._coeffs

    def __hash__(self):
        if not self._coeffs:
            return hash(0)
        return hash((self.degree, tuple(sorted((idx, tuple(sorted(c.items())))
                                               for idx, c in self._coeffs.items()))))

    def as_expr(self) -> sp.Expr:
        """SymPy expression with dx_i rendered as non-commutative symbols."""
        total = sp.Integer(0)
        for idx, c in sorted(self._coeffs.items()):
            wedge = sp.Integer(1)
            for i in idx:
                wedge = wedge * self.algebra.differential_symbols[i]
            total += c.as_expr() * wedge
        return total

    def __str__(self):
        if not self._coeffs:
            return "0"
        names = self.algebra.ring.symbols
        terms = []
        for idx, c in sorted(self._coeffs.items()):
            wedge = "^".join(f"d{names[i]}" for i in idx)
            coeff = str(c.as_expr())
            if not wedge:
                terms.append(coeff)
            elif coeff == "1":
                terms.append(wedge)
            elif coeff == "-1":
                terms.append(f"-{wedge}")
            elif len(c) > 1:
                terms.append(f"({coeff})*{wedge}")
            else:
                terms.append(f"{coeff}*{wedge}")
        return " + ".join(terms).replace("+ -", "- ")

    def __repr__(self):
        return f"DifferentialForm(degree={self.degree}, {self})"


class FormAlgebra:
    """
    Graded exterior algebra Omega^* over a polynomial ring.

    Attributes:
    -----------
    ring : PolynomialRing
        Coefficient ring; its variables x_i give the differentials dx_i
    differential_symbols : Tuple[sp.Symbol, ...]
        Non-commutative symbols dx_i used by ``DifferentialForm.as_expr``
    """

    def __init__(self, ring: PolynomialRing):
        if not isinstance(ring, PolynomialRing):
            raise TypeError(f"ring must be a PolynomialRing, got {type(ring).__name__}")
        self.ring = ring
        self.n = ring.nvars()
        self.differential_symbols = tuple(
            sp.Symbol(f"d{s}", commutative=False) for s in ring.symbols
        )

    def __eq__(self, other):
        if not isinstance(other, FormAlgebra):
            return NotImplemented
        return self.ring == other.ring

    def __hash__(self):
        return hash(self.ring)

    def __repr__(self):
        return f"FormAlgebra({self.ring})"

    def form(self, degree: int, coeffs: Dict[Index, object]) -> DifferentialForm:
        """Build a form from {index tuple: coefficient}; tuples must be increasing."""
        clean = {}
        for idx, c in coeffs.items():
            idx = tuple(idx)
            if len(idx) != degree:
                raise ValueError(f"Index {idx} does not match degree {degree}")
            if any(i < 0 or i >= self.n for i in idx) or list(idx) != sorted(set(idx)):
                raise ValueError(f"Index {idx} is not an increasing tuple of variable indices")
            clean[idx] = self.ring.element(c)
        return DifferentialForm(self, degree, clean)

    def zero(self, degree: int = 0) -> DifferentialForm:
        return DifferentialForm(self, degree, {})

    def scalar(self, p) -> DifferentialForm:
        """The 0-form p."""
        return DifferentialForm(self, 0, {(): self.ring.element(p)})

    def basis(self, degree: int) -> List[DifferentialForm]:
        """
        Basis of the free module of degree-q forms, in lexicographic order
        of index tuples. ``[1]`` for q = 0, empty for q < 0 or q > n.
        """
        return [DifferentialForm(self, degree, {idx: self.ring.one})
                for idx in self.basis_indices(degree)]

    def basis_indices(self, degree: int) -> List[Index]:
        if degree < 0 or degree > self.n:
            return []
        return list(combinations(range(self.n), degree))

    def universal_derivative(self, f) -> DifferentialForm:
        """df = sum_i (df/dx_i) dx_i."""
        p = self.ring.element(f)
        return DifferentialForm(self, 1, {(i,): p.diff(x) for i, x in enumerate(self.ring.gens)})

    def d(self, form: DifferentialForm) -> DifferentialForm:
        """Exterior derivative d: Omega^q -> Omega^(q+1)."""
        self._check(form)
        result = self.zero(form.degree + 1)
        for idx, c in form.coefficients().items():
            dc = self.universal_derivative(c)
            result = result + self.wedge(dc, DifferentialForm(self, form.degree, {idx: self.ring.one}))
        return result

    def wedge(self, a: DifferentialForm, b: DifferentialForm) -> DifferentialForm:
        """Exterior product a ^ b."""
        self._check(a)
        self._check(b)
        coeffs: Dict[Index, PolyElement] = {}
        for ia, ca in a.coefficients().items():
            for ib, cb in b.coefficients().items():
                if set(ia) & set(ib):
                    continue
                idx = tuple(sorted(ia + ib))
                term = ca * cb if _merge_sign(ia, ib) > 0 else -(ca * cb)
                coeffs[idx] = coeffs[idx] + term if idx in coeffs else term
        return DifferentialForm(self, a.degree + b.degree, coeffs)

    def coefficients(self, form: DifferentialForm) -> Dict[Index, PolyElement]:
        self._check(form)
        return form.coefficients()

    def coefficient_vector(self, form: DifferentialForm,
                           basis: Sequence[DifferentialForm]) -> List[PolyElement]:
        """
        Coordinates of a form against a list of basis forms.

        Raises:
            ValueError: if the form has a component outside the given basis
        """
        self._check(form)
        positions = {}
        for pos, e in enumerate(basis):
            (idx,) = e.coefficients().keys()
            positions[idx] = pos
        vector = [self.ring.zero] * len(basis)
        for idx, c in form.coefficients().items():
            if idx not in positions:
                raise ValueError(f"Form component {idx} is not in the given basis")
            vector[positions[idx]] = c
        return vector

    def equal(self, a: DifferentialForm, b: DifferentialForm) -> bool:
        self._check(a)
        self._check(b)
        return a == b

    def combine(self, forms: Sequence[DifferentialForm], coeffs: Sequence,
                degree: int = None) -> DifferentialForm:
        """
        Scale-and-add: sum_j coeffs[j] * forms[j].

        ``degree`` fixes the degree of the result when ``forms`` is empty.
        """
        if len(forms) != len(coeffs):
            raise ValueError(
                f"Got {len(forms)} forms but {len(coeffs)} coefficients"
            )
        degrees = {f.degree for f in forms}
        if len(degrees) > 1:
            raise ValueError(f"Cannot combine forms of different degrees {sorted(degrees)}")
        if degree is None:
            degree = degrees.pop() if degrees else 0
        elif degrees and degrees != {degree}:
            raise ValueError(f"Forms have degree {degrees.pop()}, expected {degree}")
        result = self.zero(degree)
        for form, c in zip(forms, coeffs):
            self._check(form)
            result = result + form * c
        return result

    def _check(self, form: DifferentialForm) -> None:
        if not isinstance(form, DifferentialForm):
            raise TypeError(f"Expected a DifferentialForm, got {type(form).__name__}")
        if form.algebra != self:
            raise ValueError("Form belongs to a different form algebra")
