"""
Module Groebner Engine

Matrix/ideal service over a PolynomialRing: finitely generated submodules of
free modules, their Groebner bases, syzygies, minimal generating sets and
minimal free resolutions.

A module is presented by a generator matrix: columns are generators, rows are
coordinates of the ambient free module R^rank. Internally every vector is a
sparse dict {position: PolyElement} holding only nonzero entries.

Two module orders are used:
- term-over-position (TOP): compare monomials first, then prefer the smaller
  position; used for membership and minimal generators
- two-block elimination: every term in positions < elim is larger than every
  term in positions >= elim, TOP inside each block; used to compute syzygies
  from the augmented vectors (g_j, e_j)

Usage Example:
--------------
    from polynomial_ring import PolynomialRing
    from module_groebner import Module, SyzygyEngine

    R = PolynomialRing("x,y")
    x, y = R.gens
    engine = SyzygyEngine(R)

    M = Module(R, 1, [(x,), (y,)])
    engine.syzygy(M).to_matrix()                  # Matrix([[-y], [x]]) up to sign
    engine.minimal_free_resolution(M).length      # 2
"""

import time
from collections import defaultdict
from heapq import heappop, heappush
from itertools import count
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import sympy as sp
from sympy.polys.monomials import monomial_div, monomial_divides, monomial_lcm
from sympy.polys.rings import PolyElement

from polynomial_ring import PolynomialRing


Vector = Dict[int, PolyElement]


class Module:
    """
    Finitely generated submodule of the free module R^rank.

    Parameters
    ----------
    ring : PolynomialRing
        Ambient polynomial ring
    rank : int
        Rank of the ambient free module (number of rows)
    generators : sequence of sequences
        Generators as columns, each of length ``rank``
    shifts : sequence of int, optional
        Degrees of the basis vectors of R^rank (all zero by default). A vector
        v has degree max(deg v_i + shifts[i]) over its nonzero entries.
    """

    def __init__(self, ring: PolynomialRing, rank: int, generators: Sequence = (),
                 shifts: Optional[Sequence[int]] = None):
        if not isinstance(ring, PolynomialRing):
            raise TypeError(f"ring must be a PolynomialRing, got {type(ring).__name__}")
        if rank < 0:
            raise ValueError(f"rank must be non-negative (got {rank})")
        self.ring = ring
        self.rank = int(rank)

        gens = []
        for j, gen in enumerate(generators):
            gen = tuple(ring.element(c) for c in gen)
            if len(gen) != self.rank:
                raise ValueError(
                    f"Generator {j} has {len(gen)} entries, expected {self.rank}"
                )
            gens.append(gen)
        self.generators: Tuple[Tuple[PolyElement, ...], ...] = tuple(gens)

        if shifts is None:
            shifts = (0,) * self.rank
        shifts = tuple(int(d) for d in shifts)
        if len(shifts) != self.rank:
            raise ValueError(f"Expected {self.rank} shifts, got {len(shifts)}")
        self.shifts = shifts

    @property
    def nrows(self) -> int:
        return self.rank

    @property
    def ncols(self) -> int:
        return len(self.generators)

    def column(self, j: int) -> Tuple[PolyElement, ...]:
        return self.generators[j]

    def degree(self, vector: Sequence[PolyElement]) -> int:
        """Degree of a vector with respect to the shifts; -1 for zero."""
        degrees = [PolynomialRing.total_degree(p) + self.shifts[i]
                   for i, p in enumerate(vector) if p]
        return max(degrees) if degrees else -1

    def is_zero(self) -> bool:
        return all(not p for gen in self.generators for p in gen)

    def is_homogeneous(self) -> bool:
        """True if every generator is homogeneous for the shifted grading."""
        for gen in self.generators:
            degrees = set()
            for i, p in enumerate(gen):
                if not p:
                    continue
                if not PolynomialRing.is_homogeneous(p):
                    return False
                degrees.add(PolynomialRing.total_degree(p) + self.shifts[i])
            if len(degrees) > 1:
                return False
        return True

    def to_matrix(self) -> sp.Matrix:
        """Generator matrix as a SymPy Matrix (rows = coordinates)."""
        if not self.generators:
            return sp.zeros(self.rank, 0)
        return sp.Matrix(self.rank, self.ncols,
                         lambda i, j: self.generators[j][i].as_expr())

    def __eq__(self, other):
        if not isinstance(other, Module):
            return NotImplemented
        return (self.ring == other.ring and self.rank == other.rank
                and self.generators == other.generators)

    def __repr__(self):
        return f"Module(rank={self.rank}, generators={self.ncols})"


class Resolution:
    """
    Minimal free resolution of a cokernel R^r / M.

    ``maps[0]`` is a minimal generating set of M, ``maps[i]`` a minimal
    generating set of the syzygies of ``maps[i-1]``. The length of the
    resolution is the number of maps.
    """

    def __init__(self, maps: Sequence[Module], rank: int):
        self.maps = list(maps)
        self.rank = rank

    @property
    def length(self) -> int:
        return len(self.maps)

    def betti_numbers(self) -> np.ndarray:
        """Ranks of the free modules F_0, F_1, ..., F_length."""
        return np.array([self.rank] + [m.ncols for m in self.maps], dtype=int)

    def __repr__(self):
        ranks = " <- ".join(f"R^{b}" for b in self.betti_numbers())
        return f"Resolution({ranks})"


class _Element:
    """Monic Groebner basis element with its cached leading term."""

    def __init__(self, vec: Vector, pos: int, lm: Tuple[int, ...]):
        self.vec = vec
        self.pos = pos
        self.lm = lm


class SyzygyEngine:
    """
    Groebner-basis, syzygy and resolution engine for submodules of R^r.

    Buchberger's algorithm with the normal selection strategy (pairs of
    smallest shifted lcm degree first) and the chain criterion. Zero
    reductions are not stored.

    Parameters
    ----------
    ring : PolynomialRing
        The ambient ring
    show_progress : bool
        If True, print one line per syzygy / resolution step
    max_pairs : int, optional
        Upper bound on S-pairs processed by a single Groebner basis
        computation; exceeding it raises RuntimeError
    """

    def __init__(self, ring: PolynomialRing, show_progress: bool = False,
                 max_pairs: Optional[int] = None):
        if not isinstance(ring, PolynomialRing):
            raise TypeError(f"ring must be a PolynomialRing, got {type(ring).__name__}")
        self.ring = ring
        self.show_progress = show_progress
        self.max_pairs = max_pairs
        self._order = ring.poly_ring.order
        self._domain = ring.poly_ring.domain

        self._timing_stats = {
            'groebner_basis': 0.0,
            'syzygy': 0.0,
            'minimal_generators': 0.0,
            'minimal_free_resolution': 0.0,
        }
        self._timing_counts = {key: 0 for key in self._timing_stats.keys()}
        self._pairs_processed = 0

    # ------------------------------------------------------------------
    # Sparse vector arithmetic
    # ------------------------------------------------------------------
    def _to_vector(self, gen: Sequence[PolyElement], offset: int = 0) -> Vector:
        return {i + offset: p for i, p in enumerate(gen) if p}

    def _term_key(self, pos: int, monom: Tuple[int, ...], elim: Optional[int]):
        if elim is None:
            return (self._order(monom), -pos)
        return (pos < elim, self._order(monom), -pos)

    def _lead(self, vec: Vector, elim: Optional[int]):
        best = None
        best_key = None
        for pos, p in vec.items():
            monom = p.LM
            key = self._term_key(pos, monom, elim)
            if best_key is None or key > best_key:
                best_key = key
                best = (pos, monom, p.LC)
        return best

    @staticmethod
    def _mul_term(vec: Vector, monom, coeff) -> Vector:
        return {pos: p.mul_term((monom, coeff)) for pos, p in vec.items()}

    @staticmethod
    def _sub_scaled(a: Vector, b: Vector, monom, coeff) -> Vector:
        """Return a - coeff * monom * b."""
        result = dict(a)
        for pos, p in b.items():
            term = p.mul_term((monom, coeff))
            current = result.get(pos)
            diff = -term if current is None else current - term
            if diff:
                result[pos] = diff
            else:
                result.pop(pos, None)
        return result

    def _make_element(self, vec: Vector, elim: Optional[int]) -> _Element:
        pos, monom, lc = self._lead(vec, elim)
        if lc != self._domain.one:
            inverse = self._domain.quo(self._domain.one, lc)
            vec = {i: p.mul_ground(inverse) for i, p in vec.items()}
        return _Element(vec, pos, monom)

    @staticmethod
    def _find_reducer(candidates: Sequence[_Element], monom) -> Optional[_Element]:
        for g in candidates:
            if monomial_divides(g.lm, monom):
                return g
        return None

    def _top_reduce(self, vec: Vector, by_pos: Dict[int, List[_Element]],
                    elim: Optional[int]) -> Vector:
        while vec:
            pos, monom, coeff = self._lead(vec, elim)
            g = self._find_reducer(by_pos.get(pos, ()), monom)
            if g is None:
                return vec
            vec = self._sub_scaled(vec, g.vec, monomial_div(monom, g.lm), coeff)
        return vec

    def _full_reduce(self, vec: Vector, by_pos: Dict[int, List[_Element]],
                     elim: Optional[int]) -> Vector:
        remainder: Vector = {}
        pr = self.ring.poly_ring
        while vec:
            pos, monom, coeff = self._lead(vec, elim)
            g = self._find_reducer(by_pos.get(pos, ()), monom)
            if g is not None:
                vec = self._sub_scaled(vec, g.vec, monomial_div(monom, g.lm), coeff)
                continue
            term = pr.from_dict({monom: coeff})
            rest = vec[pos] - term
            if rest:
                vec[pos] = rest
            else:
                del vec[pos]
            remainder[pos] = remainder.get(pos, pr.zero) + term
        return remainder

    @staticmethod
    def _index(basis: Sequence[_Element]) -> Dict[int, List[_Element]]:
        by_pos = defaultdict(list)
        for g in basis:
            by_pos[g.pos].append(g)
        return by_pos

    # ------------------------------------------------------------------
    # Buchberger
    # ------------------------------------------------------------------
    def _buchberger(self, basis: List[_Element], elim: Optional[int],
                    weights: Sequence[int], start: int = 0) -> List[_Element]:
        """
        Complete ``basis`` to a Groebner basis.

        The elements before ``start`` must already form a Groebner basis; only
        pairs involving later elements are considered.
        """
        basis = list(basis)
        by_pos = self._index(basis)
        heap = []
        pending = set()
        ticket = count()
        processed = 0

        def add_pairs(j):
            gj = basis[j]
            for i in range(j):
                gi = basis[i]
                if gi.pos != gj.pos:
                    continue
                lcm = monomial_lcm(gi.lm, gj.lm)
                heappush(heap, (sum(lcm) + weights[gj.pos], next(ticket), i, j, lcm))
                pending.add((i, j))

        for j in range(max(start, 1), len(basis)):
            add_pairs(j)

        while heap:
            _, _, i, j, lcm = heappop(heap)
            pending.discard((i, j))
            if self._chain_criterion(basis, i, j, lcm, pending):
                continue
            processed += 1
            if self.max_pairs is not None and processed > self.max_pairs:
                raise RuntimeError(
                    f"Groebner basis computation exceeded max_pairs={self.max_pairs} "
                    f"S-pairs ({len(basis)} basis elements so far)"
                )
            gi, gj = basis[i], basis[j]
            spoly = self._sub_scaled(
                self._mul_term(gi.vec, monomial_div(lcm, gi.lm), self._domain.one),
                gj.vec, monomial_div(lcm, gj.lm), self._domain.one,
            )
            rem = self._top_reduce(spoly, by_pos, elim)
            if rem:
                g = self._make_element(rem, elim)
                basis.append(g)
                by_pos[g.pos].append(g)
                add_pairs(len(basis) - 1)

        self._pairs_processed += processed
        return basis

    @staticmethod
    def _chain_criterion(basis, i, j, lcm, pending) -> bool:
        pos = basis[i].pos
        for k, gk in enumerate(basis):
            if k == i or k == j or gk.pos != pos:
                continue
            if not monomial_divides(gk.lm, lcm):
                continue
            if (min(i, k), max(i, k)) in pending or (min(j, k), max(j, k)) in pending:
                continue
            return True
        return False

    def _interreduce(self, basis: List[_Element], elim: Optional[int]) -> List[_Element]:
        ordered = sorted(basis, key=lambda g: self._term_key(g.pos, g.lm, elim))
        minimal: List[_Element] = []
        for g in ordered:
            if not any(h.pos == g.pos and monomial_divides(h.lm, g.lm) for h in minimal):
                minimal.append(g)
        reduced = []
        for g in minimal:
            others = self._index([h for h in minimal if h is not g])
            lead_term = {g.pos: self.ring.poly_ring.from_dict({g.lm: self._domain.one})}
            tail = self._sub_scaled(g.vec, lead_term, self.ring.poly_ring.zero_monom,
                                    self._domain.one)
            tail = self._full_reduce(tail, others, elim)
            reduced.append(_Element(self._sub_scaled(tail, lead_term,
                                                     self.ring.poly_ring.zero_monom,
                                                     -self._domain.one),
                                    g.pos, g.lm))
        return reduced

    def _weights(self, module: Module) -> List[int]:
        return list(module.shifts)

    def _elements(self, vectors: Sequence[Vector], elim: Optional[int]) -> List[_Element]:
        return [self._make_element(v, elim) for v in vectors if v]

    def _record(self, key: str, start: float) -> None:
        self._timing_stats[key] += time.perf_counter() - start
        self._timing_counts[key] += 1

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------
    def groebner_basis(self, module: Module) -> Module:
        """Reduced Groebner basis (TOP order) of a module, as a Module."""
        self._check_module(module)
        start = time.perf_counter()
        vectors = [self._to_vector(g) for g in module.generators]
        basis = self._buchberger(self._elements(vectors, None), None, self._weights(module))
        basis = self._interreduce(basis, None)
        result = Module(self.ring, module.rank,
                        [self._from_vector(g.vec, module.rank) for g in basis],
                        shifts=module.shifts)
        self._record('groebner_basis', start)
        return result

    def reduce(self, vector: Sequence[PolyElement], basis: Module) -> Tuple[PolyElement, ...]:
        """Normal form of a vector with respect to a Groebner basis (TOP order)."""
        self._check_module(basis)
        vec = self._coerce_vector(vector, basis.rank)
        elements = self._elements([self._to_vector(g) for g in basis.generators], None)
        remainder = self._full_reduce(vec, self._index(elements), None)
        return self._from_vector(remainder, basis.rank)

    def contains(self, module: Module, vector: Sequence[PolyElement]) -> bool:
        """Submodule membership test."""
        self._check_module(module)
        vec = self._coerce_vector(vector, module.rank)
        if not vec:
            return True
        vectors = [self._to_vector(g) for g in module.generators]
        basis = self._buchberger(self._elements(vectors, None), None, self._weights(module))
        return not self._top_reduce(vec, self._index(basis), None)

    def syzygy(self, module: Module) -> Module:
        """
        Syzygy module (kernel) of the map R^ncols -> R^rank given by the
        generator matrix.

        Each generator g_j is augmented to (g_j, e_j) in R^(rank + ncols).
        A Groebner basis for the order eliminating the first ``rank``
        positions contains a generating set of the vectors (0, a); the a's
        generate the syzygies. The result lives in R^ncols with shifts equal
        to the generator degrees, so graded input gives graded syzygies.
        """
        self._check_module(module)
        start = time.perf_counter()
        rank, ncols = module.rank, module.ncols
        degrees = [max(module.degree(g), 0) for g in module.generators]
        if ncols == 0:
            self._record('syzygy', start)
            return Module(self.ring, 0, [])

        one = self.ring.one
        vectors = []
        for j, gen in enumerate(module.generators):
            vec = self._to_vector(gen)
            vec[rank + j] = one
            vectors.append(vec)

        weights = list(module.shifts) + degrees
        basis = self._buchberger(self._elements(vectors, rank), rank, weights)
        basis = self._interreduce(basis, rank)

        relations = []
        for g in basis:
            if g.pos < rank:
                continue
            relations.append(self._from_vector({i - rank: p for i, p in g.vec.items()}, ncols))
        result = Module(self.ring, ncols, [], shifts=degrees)
        relations.sort(key=result.degree)
        result = Module(self.ring, ncols, relations, shifts=degrees)
        self._record('syzygy', start)

        if self.show_progress:
            print(f"  [syzygy] {rank} rows x {ncols} columns -> "
                  f"{result.ncols} relations ({time.perf_counter() - start:.3f}s)")
        return result

    def minimal_generators(self, module: Module) -> Module:
        """
        Minimal generating set, chosen from the given generators.

        Generators are visited by increasing degree and kept only when they
        are not in the submodule generated by those already kept. For a
        graded module this yields a minimal generating set. Inhomogeneous
        modules get an extra pass removing any generator that appears with a
        nonzero constant coefficient in a syzygy of the kept ones.
        """
        self._check_module(module)
        start = time.perf_counter()
        weights = self._weights(module)
        candidates = [(module.degree(g), j) for j, g in enumerate(module.generators) if any(g)]
        candidates.sort()

        kept: List[int] = []
        basis: List[_Element] = []
        for _, j in candidates:
            vec = self._to_vector(module.generators[j])
            if basis and not self._top_reduce(dict(vec), self._index(basis), None):
                continue
            kept.append(j)
            old = len(basis)
            basis.append(self._make_element(vec, None))
            basis = self._buchberger(basis, None, weights, start=old)

        result = Module(self.ring, module.rank,
                        [module.generators[j] for j in sorted(kept)],
                        shifts=module.shifts)
        if not module.is_homogeneous():
            result = self._prune(result)
        self._record('minimal_generators', start)
        return result

    def _prune(self, module: Module) -> Module:
        while module.ncols > 1:
            relations = self.syzygy(module)
            unit = None
            for rel in relations.generators:
                for j, p in enumerate(rel):
                    if p and p.is_ground:
                        unit = j
                        break
                if unit is not None:
                    break
            if unit is None:
                return module
            gens = [g for j, g in enumerate(module.generators) if j != unit]
            module = Module(self.ring, module.rank, gens, shifts=module.shifts)
        return module

    def cleanup(self, module: Module, zero_generators: bool = True,
                zero_rows: bool = True, duplicates: bool = False) -> Module:
        """
        Drop zero generators, zero rows and (optionally) repeated generators.

        Applying cleanup twice gives the same module as applying it once.
        """
        self._check_module(module)
        gens = list(module.generators)
        if zero_generators:
            gens = [g for g in gens if any(g)]
        if duplicates:
            unique = []
            for g in gens:
                if g not in unique:
                    unique.append(g)
            gens = unique
        rank, shifts = module.rank, list(module.shifts)
        if zero_rows:
            rows = [i for i in range(module.rank) if any(g[i] for g in gens)]
            gens = [tuple(g[i] for i in rows) for g in gens]
            shifts = [shifts[i] for i in rows]
            rank = len(rows)
        return Module(self.ring, rank, gens, shifts=shifts)

    def minimal_free_resolution(self, module: Module) -> Resolution:
        """
        Minimal free resolution of the cokernel R^rank / module.

        Raises:
            RuntimeError: if more than nvars + 1 steps are needed, which can
            only happen through an engine fault (Hilbert's syzygy theorem)
        """
        self._check_module(module)
        start = time.perf_counter()
        maps = []
        current = self.minimal_generators(module)
        while current.ncols:
            if len(maps) > self.ring.nvars():
                raise RuntimeError(
                    f"Resolution did not terminate after {len(maps)} steps "
                    f"in {self.ring.nvars()} variables"
                )
            maps.append(current)
            if self.show_progress:
                print(f"  [resolution] F_{len(maps)} = R^{current.ncols}")
            current = self.minimal_generators(self.syzygy(current))
        self._record('minimal_free_resolution', start)
        return Resolution(maps, module.rank)

    @staticmethod
    def resolution_length(resolution: Resolution) -> int:
        return resolution.length

    # ------------------------------------------------------------------
    # Helpers and statistics
    # ------------------------------------------------------------------
    def _coerce_vector(self, vector: Sequence, rank: int) -> Vector:
        if len(vector) != rank:
            raise ValueError(f"Vector has {len(vector)} entries, module rank is {rank}")
        return self._to_vector(tuple(self.ring.element(p) for p in vector))

    def _from_vector(self, vec: Vector, rank: int) -> Tuple[PolyElement, ...]:
        zero = self.ring.zero
        return tuple(vec.get(i, zero) for i in range(rank))

    def _check_module(self, module: Module) -> None:
        if not isinstance(module, Module):
            raise TypeError(f"Expected a Module, got {type(module).__name__}")
        if module.ring != self.ring:
            raise ValueError(f"Module belongs to {module.ring}, not to {self.ring}")

    def get_timing_statistics(self) -> Dict[str, Dict[str, float]]:
        """
        Get timing statistics for the engine operations.

        Returns:
            Dictionary with timing statistics for each operation:
            - total_time: Total time spent (seconds)
            - call_count: Number of calls
            - avg_time: Average time per call (seconds)
        """
        stats = {}
        for key in self._timing_stats.keys():
            total_time = self._timing_stats[key]
            calls = self._timing_counts[key]
            stats[key] = {
                'total_time': total_time,
                'call_count': calls,
                'avg_time': total_time / calls if calls > 0 else 0.0,
            }
        return stats

    def reset_timing_statistics(self):
        """Reset all timing statistics to zero."""
        for key in self._timing_stats.keys():
            self._timing_stats[key] = 0.0
            self._timing_counts[key] = 0
        self._pairs_processed = 0

    def print_performance_report(self):
        """Print timing statistics and the number of S-pairs processed."""
        print("\n" + "=" * 60)
        print("SYZYGY ENGINE PERFORMANCE REPORT")
        print("=" * 60)
        print(f"  S-pairs processed: {self._pairs_processed}")
        print("\nTiming Statistics:")
        print("-" * 60)
        print(f"{'Operation':<30} {'Calls':<10} {'Total (s)':<12} {'Avg (s)':<12}")
        print("-" * 60)
        for op, stats in self.get_timing_statistics().items():
            if stats['call_count'] > 0:
                print(f"{op:<30} {stats['call_count']:<10} {stats['total_time']:<12.4f} {stats['avg_time']:<12.6f}")
        print("=" * 60 + "\n")
