"""
Polynomial Ring Module

Ring service for the multi-logarithmic computations: a polynomial ring over
the rationals with a fixed monomial order, ideals bound to that ring, and the
ideal-level operations the assemblers need (standard bases, Krull dimension,
Jacobian matrices and their minors).

Polynomials are SymPy ``PolyElement`` objects of a ``PolyRing``; expressions
and strings are converted on the way in.

Usage Example:
--------------
    from polynomial_ring import PolynomialRing

    R = PolynomialRing("x,y,z,t")
    IX = R.ideal("x*y", "z*t")

    R.dim(IX)          # 2
    R.codim(IX)        # 2
    J = R.jacobian(IX)
    R.minors(J, 2)     # 6 maximal minors, row-choice major
"""

from itertools import combinations
from math import comb
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import sympy as sp
from sympy.polys.domains import QQ
from sympy.polys.polyerrors import CoercionFailed
from sympy.polys.rings import PolyElement, PolyRing


SUPPORTED_ORDERS = ("lex", "grlex", "grevlex")


class PolynomialRing:
    """
    Commutative polynomial ring QQ[x_1, ..., x_n] with a global monomial order.

    The ring is read-only shared context: every ideal, module, matrix and
    differential form of a computation refers back to one instance.

    Attributes:
    -----------
    symbols : Tuple[sp.Symbol, ...]
        The ring variables in order
    order : str
        Name of the monomial order ('lex', 'grlex' or 'grevlex')
    poly_ring : PolyRing
        The underlying SymPy sparse polynomial ring
    """

    def __init__(self, symbols: Union[str, Sequence[sp.Symbol]], order: str = "grevlex"):
        if order not in SUPPORTED_ORDERS:
            raise ValueError(
                f"Unsupported monomial order '{order}'. "
                f"Expected one of {', '.join(SUPPORTED_ORDERS)}."
            )
        if isinstance(symbols, str):
            symbols = sp.symbols(symbols.replace(";", ","), seq=True)
        symbols = tuple(symbols)
        if not symbols:
            raise ValueError("A polynomial ring needs at least one variable")
        if not all(isinstance(s, sp.Symbol) for s in symbols):
            raise TypeError("Ring variables must be SymPy symbols or a string of names")
        if len(set(symbols)) != len(symbols):
            raise ValueError(f"Ring variables must be distinct, got {symbols}")

        self.symbols = symbols
        self.order = order
        self.poly_ring = PolyRing(symbols, QQ, order)
        self.gens = self.poly_ring.gens
        self.zero = self.poly_ring.zero
        self.one = self.poly_ring.one
        self._locals = {str(s): s for s in symbols}

    def __repr__(self):
        names = ", ".join(str(s) for s in self.symbols)
        return f"PolynomialRing(QQ[{names}], order={self.order})"

    def __eq__(self, other):
        if not isinstance(other, PolynomialRing):
            return NotImplemented
        return self.poly_ring == other.poly_ring

    def __hash__(self):
        return hash(self.poly_ring)

    def nvars(self) -> int:
        """Number of ring variables."""
        return len(self.symbols)

    @staticmethod
    def binomial(n: int, k: int) -> int:
        """Binomial coefficient, zero outside 0 <= k <= n."""
        if k < 0 or n < 0 or k > n:
            return 0
        return comb(n, k)

    # ------------------------------------------------------------------
    # Elements and ideals
    # ------------------------------------------------------------------
    def element(self, value) -> PolyElement:
        """
        Convert a value into an element of this ring.

        Args:
            value: ring element, SymPy expression, integer/rational or string

        Returns:
            PolyElement of ``self.poly_ring``

        Raises:
            ValueError: if the value is not a polynomial in the ring variables
        """
        if isinstance(value, PolyElement):
            if value.ring == self.poly_ring:
                return value
            raise ValueError(
                f"Polynomial {value} belongs to {value.ring}, not to {self.poly_ring}"
            )
        try:
            if isinstance(value, str):
                expr = sp.sympify(value, locals=self._locals)
            else:
                expr = sp.sympify(value)
            return self.poly_ring.from_expr(expr)
        except (sp.SympifyError, CoercionFailed, ValueError, TypeError) as e:
            raise ValueError(
                f"Cannot interpret {value!r} as a polynomial in "
                f"{', '.join(str(s) for s in self.symbols)}: {e}"
            ) from e

    def ideal(self, *generators) -> "Ideal":
        """Build an ideal from generators (a single iterable is also accepted)."""
        if len(generators) == 1 and isinstance(generators[0], (list, tuple)):
            generators = tuple(generators[0])
        return Ideal(self, generators)

    @staticmethod
    def total_degree(p: PolyElement) -> int:
        """Total degree of a polynomial; -1 for the zero polynomial."""
        if not p:
            return -1
        return max(sum(m) for m in p.itermonoms())

    @staticmethod
    def is_homogeneous(p: PolyElement) -> bool:
        """True if every term of p has the same total degree (zero counts)."""
        return len({sum(m) for m in p.itermonoms()}) <= 1

    # ------------------------------------------------------------------
    # Standard bases and dimension
    # ------------------------------------------------------------------
    def _groebner(self, generators: Iterable[PolyElement]) -> List[PolyElement]:
        gens = [g for g in generators if g]
        if not gens:
            return []
        gb = sp.groebner([g.as_expr() for g in gens], *self.symbols,
                         order=self.order, domain=QQ)
        return [self.poly_ring.from_expr(e) for e in gb.exprs]

    def std(self, ideal: "Ideal") -> "Ideal":
        """Reduced Groebner basis of the ideal, returned as a new Ideal."""
        self._check_ideal(ideal)
        return Ideal(self, self._groebner(ideal))

    def dim(self, ideal: "Ideal") -> int:
        """
        Krull dimension of R/I.

        A set S of variables is independent modulo I when no leading monomial
        of a Groebner basis of I is a monomial in S alone; the dimension is
        the size of a largest such set. The Groebner basis is computed here,
        so any generating set may be passed.

        Returns:
            int: dimension in 0..n, or -1 for the unit ideal
        """
        self._check_ideal(ideal)
        n = self.nvars()
        gb = self._groebner(ideal)
        if not gb:
            return n
        leads = [g.LM for g in gb]
        if any(sum(m) == 0 for m in leads):
            return -1

        for size in range(n, -1, -1):
            for subset in combinations(range(n), size):
                outside = [i for i in range(n) if i not in subset]
                if all(any(m[i] for i in outside) for m in leads):
                    return size
        return 0

    def codim(self, ideal: "Ideal") -> int:
        """Codimension n - dim(I)."""
        return self.nvars() - self.dim(ideal)

    # ------------------------------------------------------------------
    # Jacobians and minors
    # ------------------------------------------------------------------
    def jacobian(self, ideal: "Ideal") -> List[List[PolyElement]]:
        """Jacobian matrix: one row per generator, one column per variable."""
        self._check_ideal(ideal)
        return [[g.diff(x) for x in self.gens] for g in ideal]

    def determinant(self, matrix: Sequence[Sequence[PolyElement]]) -> PolyElement:
        """Determinant via SymPy's Berkowitz algorithm (division-free)."""
        size = len(matrix)
        if size == 0:
            return self.one
        M = sp.Matrix(size, size, lambda i, j: self.element(matrix[i][j]).as_expr())
        return self.element(sp.expand(M.det(method='berkowitz')))

    def minors(
        self,
        matrix: Sequence[Sequence[PolyElement]],
        order: int,
        ncols: Optional[int] = None,
    ) -> List[PolyElement]:
        """
        All order x order minors of a matrix.

        Minors are listed row-choice major: for the i-th choice of rows (in
        lexicographic order) come the minors of every column choice, also in
        lexicographic order. With u rows and n columns the list therefore
        consists of C(u, order) consecutive blocks of C(n, order) minors.

        Args:
            matrix: list of rows
            order: size of the square submatrices
            ncols: number of columns, needed when the matrix has no rows
                   (defaults to the number of ring variables)

        Returns:
            List[PolyElement]
        """
        if order < 0:
            raise ValueError(f"Minor order must be non-negative (got {order})")
        nrows = len(matrix)
        if ncols is None:
            ncols = len(matrix[0]) if nrows else self.nvars()
        result = []
        for rows in combinations(range(nrows), order):
            for cols in combinations(range(ncols), order):
                sub = [[matrix[r][c] for c in cols] for r in rows]
                result.append(self.determinant(sub))
        return result

    def _check_ideal(self, ideal: "Ideal") -> None:
        if not isinstance(ideal, Ideal):
            raise TypeError(f"Expected an Ideal, got {type(ideal).__name__}")
        if ideal.ring != self:
            raise ValueError(f"Ideal belongs to {ideal.ring}, not to {self}")


class Ideal:
    """
    Ordered, finite generator sequence of an ideal in a PolynomialRing.

    Two ideals with different generator sequences may be mathematically equal;
    equality here compares the ring and the generator sequence only.
    """

    def __init__(self, ring: PolynomialRing, generators: Iterable = ()):
        if not isinstance(ring, PolynomialRing):
            raise TypeError(f"ring must be a PolynomialRing, got {type(ring).__name__}")
        self.ring = ring
        self.generators: Tuple[PolyElement, ...] = tuple(ring.element(g) for g in generators)

    @property
    def ncols(self) -> int:
        return len(self.generators)

    def __len__(self):
        return len(self.generators)

    def __iter__(self):
        return iter(self.generators)

    def __getitem__(self, index):
        return self.generators[index]

    def __eq__(self, other):
        if not isinstance(other, Ideal):
            return NotImplemented
        return self.ring == other.ring and self.generators == other.generators

    def __hash__(self):
        return hash((self.ring, tuple(tuple(sorted(g.items())) for g in self.generators)))

    def as_exprs(self) -> List[sp.Expr]:
        return [g.as_expr() for g in self.generators]

    def __repr__(self):
        gens = ", ".join(str(e) for e in self.as_exprs())
        return f"Ideal({gens})"
