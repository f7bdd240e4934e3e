"""
Batch runner for multi-logarithmic computations.

Computes the module of multi-logarithmic q-forms (and optionally vector
fields and the freeness test) for an ideal given on the command line, and
writes the results to files.

Usage example (local):
  python multilog_runner.py \
    --vars "x,y,z,t" \
    --ideal "x*y;z*t" \
    --degree 2 \
    --derlog --free \
    --out-prefix results/run1 \
    --latex

Outputs:
- <prefix>.omega.txt:    generators of the q-form module (or the forms)
- <prefix>.derlog.txt:   generators of the vector field module (--derlog/--free)
- <prefix>.meta.json:    metadata (sizes, codimension, freeness, Betti numbers, timing)
- <prefix>.omega.tex:    LaTeX (optional with --latex)

Dependencies: sympy, numpy
"""

from __future__ import annotations

import argparse
import json
import os
import time
from typing import Any, Dict, Optional, Sequence

import sympy as sp

from module_groebner import Module
from multilog_computer import MultilogComputer, OmegalogConfig
from polynomial_ring import Ideal, PolynomialRing


def _parse_ideal(ring: PolynomialRing, s: str) -> Ideal:
    """Parse ideal generators from semicolon-separated format.

    Args:
        ring: ring the generators live in
        s: String like "x*y;z*t"

    Returns:
        Ideal of ``ring``.

    Raises:
        ValueError: If a generator is empty or not a polynomial in the ring variables.
    """
    parts = [part.strip() for part in s.split(';')]
    if not any(parts):
        raise ValueError("No generators found in input")
    if not all(parts):
        raise ValueError(f"Empty generator in '{s}'")
    return ring.ideal(parts)


def _module_text(module: Module) -> str:
    lines = [f"# rank {module.rank}, {module.ncols} generators"]
    for gen in module.generators:
        lines.append("[" + ", ".join(str(p.as_expr()) for p in gen) + "]")
    return "\n".join(lines) + "\n"


def _result_text(result) -> str:
    if isinstance(result, Module):
        return _module_text(result)
    return "\n".join(str(w) for w in result) + "\n"


def _result_latex(result) -> str:
    if isinstance(result, Module):
        return sp.latex(result.to_matrix())
    return ",\\quad ".join(sp.latex(w.as_expr()) for w in result)


def _result_size(result) -> Dict[str, Any]:
    if isinstance(result, Module):
        return {"kind": "module", "rank": result.rank, "generators": result.ncols}
    return {"kind": "forms", "generators": len(result)}


def run(args: argparse.Namespace) -> Dict[str, Any]:
    """Run the computations selected by the parsed arguments; return the metadata."""
    ring = PolynomialRing(args.vars, order=args.order)
    IX = _parse_ideal(ring, args.ideal)
    IC = _parse_ideal(ring, args.ci) if args.ci else None

    computer = MultilogComputer(ring, seed=args.seed, show_progress=args.verbose)
    codim = args.codim if args.codim is not None else ring.codim(IX)

    meta: Dict[str, Any] = {
        "vars": [str(s) for s in ring.symbols],
        "order": ring.order,
        "ideal": [str(e) for e in IX.as_exprs()],
        "codim": codim,
        "degree": args.degree,
    }

    out_dir = os.path.dirname(args.out_prefix)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)

    start = time.perf_counter()
    config = OmegalogConfig(complement_ideal=IC, output_forms=args.forms)
    result = computer.omegalog(args.degree, IX, config)
    if isinstance(result, tuple):
        IC, result = result
    if IC is not None:
        meta["complete_intersection"] = [str(e) for e in IC.as_exprs()]
    meta["omega"] = _result_size(result)
    meta["omega"]["seconds"] = time.perf_counter() - start

    with open(f"{args.out_prefix}.omega.txt", "w", encoding="utf-8") as f:
        f.write(_result_text(result))
    if args.latex:
        with open(f"{args.out_prefix}.omega.tex", "w", encoding="utf-8") as f:
            f.write(_result_latex(result))

    if args.derlog or args.free:
        start = time.perf_counter()
        DD, resolution = computer.derlog_resolution(IX, codim)
        length = computer.engine.resolution_length(resolution)
        meta["derlog"] = _result_size(DD)
        meta["derlog"]["betti_numbers"] = [int(b) for b in resolution.betti_numbers()]
        meta["derlog"]["resolution_length"] = length
        meta["derlog"]["seconds"] = time.perf_counter() - start
        if args.free:
            meta["free"] = computer.is_free_singularity(IX, codim)
        with open(f"{args.out_prefix}.derlog.txt", "w", encoding="utf-8") as f:
            f.write(_module_text(DD))

    meta["timing"] = computer.get_timing_statistics()
    with open(f"{args.out_prefix}.meta.json", "w", encoding="utf-8") as f:
        json.dump(meta, f, indent=2)

    if args.verbose:
        computer.print_performance_report()
    return meta


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Compute multi-logarithmic forms and vector fields.")
    ap.add_argument("--vars", required=True, help='e.g. "x,y,z,t"')
    ap.add_argument("--ideal", required=True, help='generators of IX, e.g. "x*y;z*t"')
    ap.add_argument("--ci", default=None, help="generators of a complete intersection containing V(IX)")
    ap.add_argument("--degree", type=int, default=1, help="form degree q (default 1)")
    ap.add_argument("--order", default="grevlex", help="monomial order: lex, grlex or grevlex")
    ap.add_argument("--codim", type=int, default=None, help="codimension k for --derlog/--free (default codim(IX))")
    ap.add_argument("--seed", type=int, default=None, help="seed for the random complete intersection")
    ap.add_argument("--forms", action="store_true", help="output differential forms instead of a module")
    ap.add_argument("--derlog", action="store_true", help="also compute multi-logarithmic vector fields")
    ap.add_argument("--free", action="store_true", help="also test whether V(IX) is a free singularity")
    ap.add_argument("--out-prefix", default="multilog_out")
    ap.add_argument("--latex", action="store_true", help="also write LaTeX (omega.tex)")
    ap.add_argument("--verbose", action="store_true", help="print progress and a performance report")
    return ap


def main(argv: Optional[Sequence[str]] = None) -> None:
    ap = build_parser()
    args = ap.parse_args(argv)

    if args.degree < 0:
        ap.error(f"--degree must be non-negative (got {args.degree})")
    try:
        ring = PolynomialRing(args.vars, order=args.order)
    except (ValueError, TypeError) as e:
        ap.error(f"Error parsing --vars/--order: {e}")
    for option in ("ideal", "ci"):
        value = getattr(args, option)
        if value is None:
            continue
        try:
            _parse_ideal(ring, value)
        except ValueError as e:
            ap.error(f"Error parsing --{option}: {e}. Expected format: 'x*y;z*t'")

    run(args)


if __name__ == "__main__":
    main()
