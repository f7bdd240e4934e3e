"""
Multi-logarithmic Forms and Vector Fields Calculator

Computes modules of multi-logarithmic differential q-forms and of
multi-logarithmic vector fields along a reduced equidimensional variety
X = V(IX), and tests whether X is a free singularity.

Every computation follows the same pattern:
1. assemble a presentation matrix whose primary column block holds the
   unknown coefficients (of a q-form against the basis of Omega^q, or of a
   multi-vector field against the b = C(n, k) order-k minors), while the
   auxiliary column blocks absorb multiples of ideal generators
2. compute the syzygy module of the matrix
3. keep only the primary coordinates of every syzygy

Three strategies for forms:
- omegalog_c:  X is itself a complete intersection IC = (f_1..f_k)
- omegalog_xc: X lies in a caller-supplied complete intersection IC
- omegalog:    dispatcher; builds IC by random linear combination when X is
               not a complete intersection and none is supplied

Mathematical preconditions (IX radical and equidimensional, IC a reduced
complete intersection containing X) are the caller's responsibility and are
not checked.

Usage Example:
--------------
    from polynomial_ring import PolynomialRing
    from multilog_computer import MultilogComputer, OmegalogConfig

    R = PolynomialRing("x,y,z,t")
    computer = MultilogComputer(R, seed=0)
    IX = R.ideal("x*y", "z*t")

    M = computer.omegalog(2, IX)                       # Module
    forms = computer.omegalog(2, IX, OmegalogConfig(output_forms=True))
    computer.is_free_singularity(IX, 2)                # True
"""

import time
from dataclasses import dataclass
from itertools import combinations
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from block_matrix import (
    PRIMARY,
    BlockMatrixBuilder,
    PresentationMatrix,
    project_onto_primary_block,
)
from differential_forms import DifferentialForm, FormAlgebra
from module_groebner import Module, Resolution, SyzygyEngine
from polynomial_ring import Ideal, PolynomialRing


COEFFICIENT_RANGE = (-20, 20)


@dataclass(frozen=True)
class OmegalogConfig:
    """
    Options of the omegalog dispatcher.

    Attributes:
        complement_ideal: complete intersection IC containing the variety,
            or None to use IX itself / a randomly built one
        output_forms: return a list of DifferentialForm instead of a Module
    """
    complement_ideal: Optional[Ideal] = None
    output_forms: bool = False

    def __post_init__(self):
        if self.complement_ideal is not None and not isinstance(self.complement_ideal, Ideal):
            raise TypeError(
                f"complement_ideal must be an Ideal or None, "
                f"got {type(self.complement_ideal).__name__}"
            )
        if not isinstance(self.output_forms, bool):
            raise TypeError(
                f"output_forms must be a bool, got {type(self.output_forms).__name__}"
            )


OmegalogResult = Union[Module, List[DifferentialForm]]


class MultilogComputer:
    """
    Multi-logarithmic forms, vector fields and freeness over a fixed ring.

    Parameters
    ----------
    ring : PolynomialRing
        The ambient ring; every ideal passed in must belong to it
    engine : SyzygyEngine, optional
        Syzygy/resolution engine (a new one over ``ring`` by default)
    seed : int, optional
        Seed of the random generator used by eqdim_ci
    verify_ci : bool
        Check the codimension of randomly built complete intersections and
        resample when it falls short
    max_ci_attempts : int
        Number of draws eqdim_ci makes before giving up
    show_progress : bool
        Print presentation sizes and timings
    """

    def __init__(
        self,
        ring: PolynomialRing,
        engine: Optional[SyzygyEngine] = None,
        seed: Optional[int] = None,
        verify_ci: bool = True,
        max_ci_attempts: int = 10,
        show_progress: bool = False,
    ):
        if not isinstance(ring, PolynomialRing):
            raise TypeError(f"ring must be a PolynomialRing, got {type(ring).__name__}")
        if engine is None:
            engine = SyzygyEngine(ring, show_progress=show_progress)
        elif engine.ring != ring:
            raise ValueError(f"Engine works over {engine.ring}, not over {ring}")
        if max_ci_attempts < 1:
            raise ValueError(f"max_ci_attempts must be at least 1 (got {max_ci_attempts})")

        self.ring = ring
        self.engine = engine
        self.algebra = FormAlgebra(ring)
        self.rng = np.random.default_rng(seed)
        self.verify_ci = verify_ci
        self.max_ci_attempts = max_ci_attempts
        self.show_progress = show_progress

        self._timing_stats = {
            'omegalog_c': 0.0,
            'omegalog_xc': 0.0,
            'eqdim_ci': 0.0,
            'derlog': 0.0,
            'is_free_singularity': 0.0,
        }
        self._timing_counts = {key: 0 for key in self._timing_stats.keys()}
        self._resolution_cache: Dict[Tuple[Ideal, int], Tuple[Module, Resolution]] = {}

    # ------------------------------------------------------------------
    # Dispatcher
    # ------------------------------------------------------------------
    def omegalog(self, q: int, IX: Ideal, config: Optional[OmegalogConfig] = None
                 ) -> Union[OmegalogResult, Tuple[Ideal, OmegalogResult]]:
        """
        Multi-logarithmic q-forms along V(IX), choosing a strategy.

        - a complement ideal in ``config``: omegalog_xc(q, IX, IC)
        - IX has exactly codim(IX) generators: omegalog_c(q, IX)
        - otherwise IC = eqdim_ci(IX) and the pair (IC, omegalog_xc(q, IX, IC))
          is returned

        Returns:
            Module, list of DifferentialForm, or (Ideal, either of them)
        """
        if config is None:
            config = OmegalogConfig()
        elif not isinstance(config, OmegalogConfig):
            raise TypeError(f"config must be an OmegalogConfig, got {type(config).__name__}")
        self._check_ideal(IX, "IX")
        self._check_degree(q)

        if config.complement_ideal is not None:
            return self.omegalog_xc(q, IX, config.complement_ideal, config.output_forms)
        if len(IX) == self.ring.codim(IX):
            return self.omegalog_c(q, IX, config.output_forms)

        IC = self.eqdim_ci(IX)
        if self.show_progress:
            print(f"  [omegalog] built complete intersection {IC}")
        return IC, self.omegalog_xc(q, IX, IC, config.output_forms)

    # ------------------------------------------------------------------
    # Forms: complete intersection
    # ------------------------------------------------------------------
    def omegalog_c_matrix(self, q: int, IC: Ideal) -> PresentationMatrix:
        """
        Presentation for omegalog_c: k*t rows, s + k*k*t columns.

        Row block ("wedge", i) holds the coefficients of df_i ^ V[a] against
        the basis W of (q+1)-forms in primary column a. Column block
        ("wedge_relations", i) lets row a of that block absorb any multiple
        of f_b through its column a*k + b.
        """
        self._check_ideal(IC, "IC")
        self._check_degree(q)
        k = len(IC)
        V = self.algebra.basis(q)
        W_index = self._basis_positions(q + 1)
        s, t = len(V), len(W_index)
        degrees = [max(PolynomialRing.total_degree(f), 0) for f in IC]
        top = max(degrees, default=0)

        builder = BlockMatrixBuilder(s)
        for i in range(k):
            builder.add_row_block(("wedge", i), t, shift=top - degrees[i] + 1)
        for i in range(k):
            builder.add_column_block(("wedge_relations", i), t * k)

        for i, f in enumerate(IC):
            self._fill_wedge_block(builder, ("wedge", i), self.algebra.universal_derivative(f),
                                   V, W_index)
            self._fill_relations(builder, ("wedge", i), ("wedge_relations", i), t, IC)
        return builder.build()

    def omegalog_c(self, q: int, IC: Ideal, output_forms: bool = False) -> OmegalogResult:
        """
        Multi-logarithmic q-forms along a reduced complete intersection.

        A polynomial q-form w is recorded when df_i ^ w lies in IC * Omega^(q+1)
        for every generator f_i of IC.

        Args:
            q: form degree (q >= 0)
            IC: complete intersection (f_1, ..., f_k)
            output_forms: return DifferentialForm objects built from a minimal
                generating set instead of the module

        Returns:
            Module in R^s (s = C(n, q)) after cleanup, or a list of forms

        At q = n there are no (q+1)-forms, so no condition applies and the
        result is the whole rank-1 module; it is empty only for q > n.
        """
        start = time.perf_counter()
        matrix = self.omegalog_c_matrix(q, IC)
        result = self._solve(matrix, q, output_forms, "omegalog_c")
        self._record('omegalog_c', start)
        return result

    # ------------------------------------------------------------------
    # Forms: variety inside a complete intersection
    # ------------------------------------------------------------------
    def omegalog_xc_matrix(self, q: int, IX: Ideal, IC: Ideal) -> PresentationMatrix:
        """
        Presentation for omegalog_xc: m*t + m*s rows, s + k*m*t + k*m*s columns.

        Row blocks ("wedge", i) encode df_i ^ w in IC * Omega^(q+1) for the
        generators f_i of IX; row blocks ("multiple", i) encode f_i * w in
        IC * Omega^q, with f_i on the diagonal of the primary block and the
        generators g_b of IC in column block ("multiple_relations", i).
        """
        self._check_ideal(IX, "IX")
        self._check_ideal(IC, "IC")
        self._check_degree(q)
        m = len(IX)
        k = len(IC)
        V = self.algebra.basis(q)
        W_index = self._basis_positions(q + 1)
        s, t = len(V), len(W_index)
        degrees = [max(PolynomialRing.total_degree(f), 0) for f in IX]
        top = max(degrees, default=0)

        builder = BlockMatrixBuilder(s)
        for i in range(m):
            builder.add_row_block(("wedge", i), t, shift=top - degrees[i] + 1)
        for i in range(m):
            builder.add_row_block(("multiple", i), s, shift=top - degrees[i])
        for i in range(m):
            builder.add_column_block(("wedge_relations", i), t * k)
        for i in range(m):
            builder.add_column_block(("multiple_relations", i), s * k)

        for i, f in enumerate(IX):
            self._fill_wedge_block(builder, ("wedge", i), self.algebra.universal_derivative(f),
                                   V, W_index)
            self._fill_relations(builder, ("wedge", i), ("wedge_relations", i), t, IC)
            for a in range(s):
                builder.set(("multiple", i), a, PRIMARY, a, f)
            self._fill_relations(builder, ("multiple", i), ("multiple_relations", i), s, IC)
        return builder.build()

    def omegalog_xc(self, q: int, IX: Ideal, IC: Ideal,
                    output_forms: bool = False) -> OmegalogResult:
        """
        Multi-logarithmic q-forms along V(IX) with respect to the complete
        intersection IC containing it.

        A polynomial q-form w is recorded when, for every generator f_i of IX,
        both f_i * w and df_i ^ w lie in IC * Omega.
        """
        start = time.perf_counter()
        matrix = self.omegalog_xc_matrix(q, IX, IC)
        result = self._solve(matrix, q, output_forms, "omegalog_xc")
        self._record('omegalog_xc', start)
        return result

    # ------------------------------------------------------------------
    # Complete intersection builder
    # ------------------------------------------------------------------
    def eqdim_ci(self, IX: Ideal, k: Optional[int] = None) -> Ideal:
        """
        Complete intersection contained in IX with k generators.

        Each generator is a random integer combination (coefficients in
        [-20, 20]) of the generators of IX, so V(IX) lies in V(C) for every
        draw. k defaults to codim(IX).

        With ``verify_ci`` the draw is repeated until codim(C) reaches
        min(k, codim(IX)).

        Raises:
            ValueError: if k is negative
            RuntimeError: if no draw of ``max_ci_attempts`` has the expected
                codimension
        """
        self._check_ideal(IX, "IX")
        start = time.perf_counter()
        codim_x = self.ring.codim(IX)
        if k is None:
            k = codim_x
        if k < 0:
            raise ValueError(f"Codimension k must be non-negative (got {k})")
        m = len(IX)
        target = min(k, codim_x)
        low, high = COEFFICIENT_RANGE

        for attempt in range(1, self.max_ci_attempts + 1):
            coeffs = self.rng.integers(low, high + 1, size=(k, m))
            if m:
                for row in range(k):
                    while not coeffs[row].any():
                        coeffs[row] = self.rng.integers(low, high + 1, size=m)
            C = self.ring.ideal([
                sum((int(c) * g for c, g in zip(coeffs[row], IX)), self.ring.zero)
                for row in range(k)
            ])
            if not self.verify_ci or self.ring.codim(C) >= target:
                if self.show_progress:
                    print(f"  [eqdim_ci] codimension {target} reached after {attempt} draw(s)")
                self._record('eqdim_ci', start)
                return C

        self._record('eqdim_ci', start)
        raise RuntimeError(
            f"No complete intersection of codimension {target} found in "
            f"{self.max_ci_attempts} random draws from {IX}"
        )

    # ------------------------------------------------------------------
    # Vector fields and freeness
    # ------------------------------------------------------------------
    def derlog_matrix(self, IX: Ideal, k: Optional[int] = None) -> PresentationMatrix:
        """
        Presentation for derlog: c rows, b + c*u columns.

        Row i belongs to the i-th choice of k rows of the Jacobian; its primary
        entries are the b = C(n, k) minors of that choice, and column block
        "membership" lets it absorb multiples of the u generators of IX.
        """
        self._check_ideal(IX, "IX")
        if k is None:
            k = self.ring.codim(IX)
        if k < 0:
            raise ValueError(f"Codimension k must be non-negative (got {k})")
        n, u = self.ring.nvars(), len(IX)
        b, c = self.ring.binomial(n, k), self.ring.binomial(u, k)
        minors = self.ring.minors(self.ring.jacobian(IX), k, ncols=n)

        # Jacobian row r has degree deg(f_r) - 1
        row_degrees = [max(PolynomialRing.total_degree(f), 1) - 1 for f in IX]
        choice_degrees = [sum(row_degrees[r] for r in rows)
                          for rows in combinations(range(u), k)]
        top = max(choice_degrees, default=0)

        builder = BlockMatrixBuilder(b)
        builder.add_row_block("minors", c, shift=[top - d for d in choice_degrees])
        builder.add_column_block("membership", c * u)
        for i in range(c):
            for j in range(b):
                builder.set("minors", i, PRIMARY, j, minors[i * b + j])
            for j, f in enumerate(IX):
                builder.set("minors", i, "membership", i * u + j, f)
        return builder.build()

    def derlog(self, IX: Ideal, k: Optional[int] = None) -> Module:
        """
        Module of multi-logarithmic vector fields of codimension k along V(IX).

        Returns:
            Module in R^b, b = C(n, k), after cleanup
        """
        start = time.perf_counter()
        matrix = self.derlog_matrix(IX, k)
        if self.show_progress:
            print(f"  [derlog] presentation {matrix.nrows} x {matrix.ncols}")
        kernel = self.engine.syzygy(matrix.to_module(self.ring))
        result = self.engine.cleanup(project_onto_primary_block(kernel, matrix.primary_size))
        self._record('derlog', start)
        return result

    def derlog_resolution(self, IX: Ideal, k: Optional[int] = None
                          ) -> Tuple[Module, Resolution]:
        """
        The vector field module of derlog(IX, k) with its minimal free
        resolution. Results are cached per (IX, k).
        """
        self._check_ideal(IX, "IX")
        if k is None:
            k = self.ring.codim(IX)
        key = (IX, k)
        if key not in self._resolution_cache:
            DD = self.derlog(IX, k)
            self._resolution_cache[key] = (DD, self.engine.minimal_free_resolution(DD))
        return self._resolution_cache[key]

    def projective_dimension(self, module: Module) -> int:
        """Length of a minimal free resolution of R^rank / module."""
        resolution = self.engine.minimal_free_resolution(module)
        return self.engine.resolution_length(resolution)

    def is_free_singularity(self, IX: Ideal, k: int) -> bool:
        """
        True when the cokernel of the multi-logarithmic vector field module
        has a minimal free resolution of length exactly k.

        Shares the cached resolution of derlog_resolution.
        """
        start = time.perf_counter()
        _, resolution = self.derlog_resolution(IX, k)
        length = self.engine.resolution_length(resolution)
        if self.show_progress:
            print(f"  [is_free_singularity] resolution length {length}, codimension {k}")
        self._record('is_free_singularity', start)
        return length == k

    # ------------------------------------------------------------------
    # Forms <-> modules
    # ------------------------------------------------------------------
    def forms_from_module(self, module: Module, q: int) -> List[DifferentialForm]:
        """One q-form per generator, combining the basis of Omega^q."""
        V = self.algebra.basis(q)
        if module.rank != len(V):
            raise ValueError(
                f"Module of rank {module.rank} does not match the {len(V)} basis {q}-forms"
            )
        return [self.algebra.combine(V, gen, degree=q) for gen in module.generators]

    def module_from_forms(self, forms: Sequence[DifferentialForm], q: int) -> Module:
        """Coefficient vectors of q-forms against the basis of Omega^q."""
        V = self.algebra.basis(q)
        return Module(self.ring, len(V),
                      [self.algebra.coefficient_vector(w, V) for w in forms])

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _solve(self, matrix: PresentationMatrix, q: int, output_forms: bool, label: str):
        if self.show_progress:
            print(f"  [{label}] q={q}, presentation {matrix.nrows} x {matrix.ncols} "
                  f"({matrix.nonzero_count()} nonzero entries)")
        kernel = self.engine.syzygy(matrix.to_module(self.ring))
        om = project_onto_primary_block(kernel, matrix.primary_size)
        if not output_forms:
            return self.engine.cleanup(om)
        return self.forms_from_module(self.engine.minimal_generators(om), q)

    def _basis_positions(self, degree: int) -> Dict[Tuple[int, ...], int]:
        return {idx: pos for pos, idx in enumerate(self.algebra.basis_indices(degree))}

    @staticmethod
    def _fill_wedge_block(builder, block, df, V, W_index) -> None:
        for a, v in enumerate(V):
            for idx, coeff in (df ^ v).coefficients().items():
                builder.set(block, W_index[idx], PRIMARY, a, coeff)

    @staticmethod
    def _fill_relations(builder, row_block, col_block, size, IC) -> None:
        k = len(IC)
        for a in range(size):
            for b, g in enumerate(IC):
                builder.set(row_block, a, col_block, a * k + b, g)

    def _check_ideal(self, ideal: Ideal, name: str) -> None:
        if not isinstance(ideal, Ideal):
            raise TypeError(f"{name} must be an Ideal, got {type(ideal).__name__}")
        if ideal.ring != self.ring:
            raise ValueError(f"{name} belongs to {ideal.ring}, not to {self.ring}")

    @staticmethod
    def _check_degree(q: int) -> None:
        if q < 0:
            raise ValueError(f"Form degree q must be non-negative (got {q})")

    def _record(self, key: str, start: float) -> None:
        self._timing_stats[key] += time.perf_counter() - start
        self._timing_counts[key] += 1

    def get_timing_statistics(self) -> Dict[str, Dict[str, float]]:
        """
        Get timing statistics for the multi-logarithmic computations.

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
        """Reset all timing statistics to zero, including the engine's."""
        for key in self._timing_stats.keys():
            self._timing_stats[key] = 0.0
            self._timing_counts[key] = 0
        self.engine.reset_timing_statistics()

    def print_performance_report(self):
        """Print timing statistics of this computer and of its engine."""
        print("\n" + "=" * 60)
        print("MULTILOG COMPUTER PERFORMANCE REPORT")
        print("=" * 60)
        print(f"  Ring: {self.ring}")
        print("\nTiming Statistics:")
        print("-" * 60)
        print(f"{'Operation':<30} {'Calls':<10} {'Total (s)':<12} {'Avg (s)':<12}")
        print("-" * 60)
        for op, stats in self.get_timing_statistics().items():
            if stats['call_count'] > 0:
                print(f"{op:<30} {stats['call_count']:<10} {stats['total_time']:<12.4f} {stats['avg_time']:<12.6f}")
        print("=" * 60)
        self.engine.print_performance_report()


# ----------------------------------------------------------------------
# One-shot functions: the ring is taken from the ideal
# ----------------------------------------------------------------------
def _computer_for(ideal: Ideal, **kwargs) -> MultilogComputer:
    if not isinstance(ideal, Ideal):
        raise TypeError(f"Expected an Ideal, got {type(ideal).__name__}")
    return MultilogComputer(ideal.ring, **kwargs)


def omegalog(q: int, IX: Ideal, config: Optional[OmegalogConfig] = None, **kwargs):
    """Dispatcher; see MultilogComputer.omegalog."""
    return _computer_for(IX, **kwargs).omegalog(q, IX, config)


def omegalog_c(q: int, IC: Ideal, output_forms: bool = False, **kwargs) -> OmegalogResult:
    return _computer_for(IC, **kwargs).omegalog_c(q, IC, output_forms)


def omegalog_xc(q: int, IX: Ideal, IC: Ideal, output_forms: bool = False,
                **kwargs) -> OmegalogResult:
    return _computer_for(IX, **kwargs).omegalog_xc(q, IX, IC, output_forms)


def eqdim_ci(IX: Ideal, k: Optional[int] = None, **kwargs) -> Ideal:
    return _computer_for(IX, **kwargs).eqdim_ci(IX, k)


def derlog(IX: Ideal, k: Optional[int] = None, **kwargs) -> Module:
    return _computer_for(IX, **kwargs).derlog(IX, k)


def is_free_singularity(IX: Ideal, k: int, **kwargs) -> bool:
    return _computer_for(IX, **kwargs).is_free_singularity(IX, k)
