# -*- coding: utf-8 -*-
"""
Cell indexing and storage for meshes mixing Cartesian and cut cells.

Key Features:
- `CellKind` and `CellIndex`: a tagged cell index telling which block a
  cell lives in and its position within that block.
- `CellArray`: one flat buffer holding a Cartesian block followed by a cut
  block, with views onto each block. Linear indices into the flat buffer are
  what node maps and redistribution operators refer to.

Classes:
    CellKind: Enumeration of the cell kinds.
    CellIndex: Tagged index of a single cell.
    CellArray: Two-block array with a shared flat buffer.
"""
from enum import Enum
from typing import Iterable, NamedTuple, Tuple

import numpy as np


class CellKind(Enum):
    """Kinds of cells in a cut-cell mesh."""

    CARTESIAN = "cartesian"
    CUT = "cut"


class CellIndex(NamedTuple):
    """Index of a cell within the block of its kind."""

    kind: CellKind
    index: int


class CellArray:
    """
    Stores Cartesian and cut-cell values in a single flat buffer.

    Each block keeps its own shape, and the Cartesian block comes first. Blocks
    are stored column-major, so column e of a 2D block holds the values of
    cell e. The `cartesian` and `cut` properties return views; writing
    through them updates `data`.

    Attributes:
        data (np.ndarray): The flat buffer.
    """

    def __init__(self, cartesian, cut):
        cartesian = np.asarray(cartesian)
        cut = np.asarray(cut)
        dtype = np.result_type(cartesian, cut)
        self._shapes = {CellKind.CARTESIAN: cartesian.shape, CellKind.CUT: cut.shape}
        self._split = cartesian.size
        self.data = np.concatenate(
            [cartesian.ravel(order="F"), cut.ravel(order="F")]
        ).astype(dtype, copy=False)

    @classmethod
    def from_flat(cls, data: np.ndarray, like: "CellArray") -> "CellArray":
        """Wraps a flat buffer using the block layout of ``like``."""
        data = np.asarray(data)
        if data.size != like.data.size:
            raise ValueError(
                f"Buffer of size {data.size} does not match layout of size {like.data.size}."
            )
        split = like._split
        return cls(
            data[:split].reshape(like.cartesian.shape, order="F"),
            data[split:].reshape(like.cut.shape, order="F"),
        )

    # --- Block access ---

    @property
    def cartesian(self) -> np.ndarray:
        return self.data[: self._split].reshape(self._shapes[CellKind.CARTESIAN], order="F")

    @property
    def cut(self) -> np.ndarray:
        return self.data[self._split :].reshape(self._shapes[CellKind.CUT], order="F")

    def __getitem__(self, kind: CellKind) -> np.ndarray:
        if kind is CellKind.CARTESIAN:
            return self.cartesian
        if kind is CellKind.CUT:
            return self.cut
        raise KeyError(kind)

    def offset(self, kind: CellKind) -> int:
        """Position of the first value of a block in the flat buffer."""
        return 0 if kind is CellKind.CARTESIAN else self._split

    def columns(self, cell: CellIndex) -> np.ndarray:
        """Values of a single cell, i.e. one column of a 2D block."""
        block = self[cell.kind]
        if block.ndim != 2:
            raise ValueError("Column access requires a 2D block.")
        return block[:, cell.index]

    def concat_columns(self, cells: Iterable[CellIndex]) -> np.ndarray:
        """Concatenates the values of several cells."""
        return np.concatenate([self.columns(cell) for cell in cells])

    # --- Array protocol ---

    @property
    def shapes(self) -> Tuple[tuple, tuple]:
        return self._shapes[CellKind.CARTESIAN], self._shapes[CellKind.CUT]

    @property
    def size(self) -> int:
        return self.data.size

    @property
    def dtype(self):
        return self.data.dtype

    def __len__(self) -> int:
        return self.data.size

    def __array__(self, dtype=None, copy=None):
        if dtype is None:
            return self.data
        return self.data.astype(dtype)

    def copy(self) -> "CellArray":
        return CellArray(self.cartesian.copy(), self.cut.copy())

    def __repr__(self) -> str:
        cart_shape, cut_shape = self.shapes
        return f"CellArray(cartesian={cart_shape}, cut={cut_shape}, dtype={self.dtype})"
