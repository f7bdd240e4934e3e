"""
Block Matrix Builder

Typed assembly of presentation matrices. Row and column blocks are declared
by name and size; entries are addressed as (block, local row, block, local
column) and the builder works out the global offsets.

The column block named ``"primary"`` is always declared first, so the
unknowns of interest occupy columns 0 .. primary_size - 1 of every
presentation matrix. ``project_onto_primary_block`` relies on this.

Usage Example:
--------------
    builder = BlockMatrixBuilder(primary_size=2)
    builder.add_row_block("wedge", 3)
    builder.add_column_block("relations", 6)
    builder.set("wedge", 0, "primary", 1, x*y)
    builder.set("wedge", 0, "relations", 0, z)
    A = builder.build()              # 3 x 8 PresentationMatrix
"""

from collections import OrderedDict
from typing import Dict, Hashable, List, Sequence, Tuple, Union

import sympy as sp
from sympy.polys.rings import PolyElement

from module_groebner import Module
from polynomial_ring import PolynomialRing


PRIMARY = "primary"


class PresentationMatrix:
    """
    Sparse matrix over the ring, produced by BlockMatrixBuilder.

    Attributes:
    -----------
    nrows, ncols : int
        Global dimensions, fixed before any entry is set
    primary_size : int
        Width of the primary column block (the first columns)
    row_offsets, column_offsets : Dict[Hashable, Tuple[int, int]]
        Block name -> (offset, size)
    row_shifts : Tuple[int, ...]
        Degree shift of every row, so that columns of a graded presentation
        are homogeneous
    """

    def __init__(self, nrows: int, ncols: int, primary_size: int,
                 entries: Dict[Tuple[int, int], PolyElement],
                 row_offsets: Dict[Hashable, Tuple[int, int]],
                 column_offsets: Dict[Hashable, Tuple[int, int]],
                 row_shifts: Tuple[int, ...] = None):
        self.nrows = nrows
        self.ncols = ncols
        self.primary_size = primary_size
        self.entries = dict(entries)
        self.row_offsets = dict(row_offsets)
        self.column_offsets = dict(column_offsets)
        self.row_shifts = tuple(row_shifts) if row_shifts is not None else (0,) * nrows

    def __getitem__(self, key):
        i, j = key
        if not (0 <= i < self.nrows and 0 <= j < self.ncols):
            raise IndexError(f"Entry ({i}, {j}) outside a {self.nrows} x {self.ncols} matrix")
        return self.entries.get((i, j))

    def column(self, j: int, zero=None) -> List:
        """Column j as a list of length nrows; missing entries are ``zero``."""
        if not 0 <= j < self.ncols:
            raise IndexError(f"Column {j} outside 0..{self.ncols - 1}")
        return [self.entries.get((i, j), zero) for i in range(self.nrows)]

    def nonzero_count(self) -> int:
        return len(self.entries)

    def to_module(self, ring: PolynomialRing) -> Module:
        """The module generated by the columns (rank = nrows)."""
        return Module(ring, self.nrows,
                      [self.column(j, ring.zero) for j in range(self.ncols)],
                      shifts=self.row_shifts)

    def to_matrix(self) -> sp.Matrix:
        return sp.Matrix(self.nrows, self.ncols,
                         lambda i, j: self.entries[(i, j)].as_expr()
                         if (i, j) in self.entries else sp.Integer(0))

    def __repr__(self):
        return (f"PresentationMatrix({self.nrows} x {self.ncols}, "
                f"primary={self.primary_size}, nonzero={len(self.entries)})")


class BlockMatrixBuilder:
    """
    Declare named blocks, fill entries by local coordinates, then build().

    Parameters
    ----------
    primary_size : int
        Number of columns of the primary block (may be zero)
    """

    def __init__(self, primary_size: int):
        if primary_size < 0:
            raise ValueError(f"primary_size must be non-negative (got {primary_size})")
        self._rows: "OrderedDict[Hashable, Tuple[int, int]]" = OrderedDict()
        self._cols: "OrderedDict[Hashable, Tuple[int, int]]" = OrderedDict()
        self._nrows = 0
        self._ncols = 0
        self._entries: Dict[Tuple[int, int], PolyElement] = {}
        self._row_shifts: List[int] = []
        self.primary_size = primary_size
        self.add_column_block(PRIMARY, primary_size)

    @property
    def nrows(self) -> int:
        return self._nrows

    @property
    def ncols(self) -> int:
        return self._ncols

    @staticmethod
    def _declare(blocks, name, size, total, kind):
        if size < 0:
            raise ValueError(f"{kind} block {name!r} has negative size {size}")
        if name in blocks:
            raise ValueError(f"{kind} block {name!r} is already declared")
        blocks[name] = (total, size)
        return total + size

    def add_row_block(self, name: Hashable, size: int,
                      shift: Union[int, Sequence[int]] = 0) -> "BlockMatrixBuilder":
        """
        Declare a row block.

        ``shift`` is the degree shift of its rows: one int for the whole
        block or one value per row.
        """
        shifts = [shift] * size if isinstance(shift, int) else list(shift)
        if len(shifts) != size:
            raise ValueError(f"Row block {name!r} of size {size} got {len(shifts)} shifts")
        self._nrows = self._declare(self._rows, name, size, self._nrows, "Row")
        self._row_shifts.extend(shifts)
        return self

    def add_column_block(self, name: Hashable, size: int) -> "BlockMatrixBuilder":
        self._ncols = self._declare(self._cols, name, size, self._ncols, "Column")
        return self

    @staticmethod
    def _locate(blocks, name, local, kind) -> int:
        try:
            offset, size = blocks[name]
        except KeyError:
            raise KeyError(f"Unknown {kind} block {name!r}") from None
        if not 0 <= local < size:
            raise IndexError(
                f"{kind} index {local} outside block {name!r} of size {size}"
            )
        return offset + local

    def row_index(self, block: Hashable, row: int) -> int:
        return self._locate(self._rows, block, row, "row")

    def column_index(self, block: Hashable, col: int) -> int:
        return self._locate(self._cols, block, col, "column")

    def set(self, row_block: Hashable, row: int, col_block: Hashable, col: int,
            value: PolyElement) -> None:
        """Set one entry. Zero values clear the entry."""
        key = (self.row_index(row_block, row), self.column_index(col_block, col))
        if value:
            self._entries[key] = value
        else:
            self._entries.pop(key, None)

    def build(self) -> PresentationMatrix:
        return PresentationMatrix(self._nrows, self._ncols, self.primary_size,
                                  self._entries, self._rows, self._cols,
                                  tuple(self._row_shifts))


def project_onto_primary_block(kernel: Module, primary_size: int) -> Module:
    """
    Restrict every kernel generator to its first ``primary_size`` coordinates.

    The kernel of a presentation matrix lives in R^ncols; its first
    ``primary_size`` coordinates are the primary unknowns. The result is the
    module of primary parts, with the matching shifts.
    """
    if primary_size < 0 or primary_size > kernel.rank:
        raise ValueError(
            f"primary_size {primary_size} outside 0..{kernel.rank}"
        )
    return Module(kernel.ring, primary_size,
                  [gen[:primary_size] for gen in kernel.generators],
                  shifts=kernel.shifts[:primary_size])
