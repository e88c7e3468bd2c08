from __future__ import annotations

from typing import Dict, Iterable, Optional, Tuple

import numpy as np

Shape3 = Tuple[int, int, int]


class GroupBlock:
    """
    Dense 3D labelling grid with multi-class membership per voxel.

    Every cell is in one of three states:
      - absent: never assigned any label,
      - present with an empty membership set,
      - present with one or more group ids.

    Storage is flat (C-order over ``(x, y, z)``):
      - ``present``: bool vector of length ``rows*columns*height``,
      - ``members``: bool matrix ``(cells, group_size)``; row ``i`` column ``g``
        is True iff group ``g`` belongs to cell ``i``.

    Reading a membership row back as ids always yields a sorted, deduplicated
    tuple. Both arrays are frozen: a block is an immutable snapshot and every
    filter pass builds a new one.
    """

    def __init__(self, shape: Shape3, group_size: int, present: np.ndarray, members: np.ndarray) -> None:
        shape = tuple(int(v) for v in shape)
        if len(shape) != 3 or any(v < 1 for v in shape):
            raise ValueError(f"Grid shape must be three positive extents, got {shape}")
        group_size = int(group_size)
        if group_size < 1:
            raise ValueError(f"group_size must be >= 1, got {group_size}")

        n_cells = int(np.prod(shape))
        present = np.asarray(present, dtype=bool).reshape(-1)
        members = np.asarray(members, dtype=bool)
        if members.shape == shape + (group_size,):
            members = members.reshape(n_cells, group_size)
        if present.shape != (n_cells,):
            raise ValueError(f"present has {present.shape[0]} cells, grid {shape} needs {n_cells}")
        if members.shape != (n_cells, group_size):
            raise ValueError(f"members must have shape {(n_cells, group_size)}, got {members.shape}")
        if np.any(members[~present]):
            raise ValueError("Absent cells cannot carry group memberships.")

        present.setflags(write=False)
        members.setflags(write=False)
        self._shape: Shape3 = shape  # type: ignore[assignment]
        self._group_size = group_size
        self._present = present
        self._members = members

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------
    @classmethod
    def absent(cls, shape: Shape3, group_size: int) -> "GroupBlock":
        """All-absent block."""
        n_cells = int(np.prod(shape))
        return cls(shape, group_size,
                   np.zeros(n_cells, dtype=bool),
                   np.zeros((n_cells, int(group_size)), dtype=bool))

    @classmethod
    def from_cells(cls, shape: Shape3, group_size: int,
                   cells: Dict[Tuple[int, int, int], Iterable[int]]) -> "GroupBlock":
        """Build a block from ``{position: group ids}``; unlisted cells are absent."""
        n_cells = int(np.prod(shape))
        present = np.zeros(n_cells, dtype=bool)
        members = np.zeros((n_cells, int(group_size)), dtype=bool)
        for pos, ids in cells.items():
            i = _linear_index(pos, shape)
            present[i] = True
            for g in ids:
                g = int(g)
                if not 0 <= g < group_size:
                    raise ValueError(f"Group id {g} at {tuple(pos)} is outside [0, {group_size})")
                members[i, g] = True
        return cls(shape, group_size, present, members)

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------
    @property
    def shape(self) -> Shape3:
        return self._shape

    @property
    def rows(self) -> int:
        return self._shape[0]

    @property
    def columns(self) -> int:
        return self._shape[1]

    @property
    def height(self) -> int:
        return self._shape[2]

    @property
    def group_size(self) -> int:
        return self._group_size

    @property
    def n_cells(self) -> int:
        return self._present.shape[0]

    def index(self, position) -> int:
        return _linear_index(position, self._shape)

    # ------------------------------------------------------------------
    # Cell access
    # ------------------------------------------------------------------
    @property
    def present(self) -> np.ndarray:
        return self._present

    @property
    def members(self) -> np.ndarray:
        return self._members

    @property
    def nonempty(self) -> np.ndarray:
        """Cells that are present and carry at least one group id."""
        return self._members.any(axis=1)

    def present_volume(self) -> np.ndarray:
        return self._present.reshape(self._shape)

    def members_volume(self) -> np.ndarray:
        """Membership as ``(rows, columns, height, group_size)`` view."""
        return self._members.reshape(self._shape + (self._group_size,))

    def is_present(self, position) -> bool:
        return bool(self._present[self.index(position)])

    def membership(self, position) -> Optional[Tuple[int, ...]]:
        """Sorted group ids of a cell, or None when the cell is absent."""
        i = self.index(position)
        if not self._present[i]:
            return None
        return tuple(int(g) for g in np.flatnonzero(self._members[i]))

    def lowest_groups(self) -> np.ndarray:
        """Flat int array: smallest group id per cell, -1 for absent or empty cells."""
        labels = np.argmax(self._members, axis=1).astype(int)
        labels[~self.nonempty] = -1
        return labels

    # ------------------------------------------------------------------
    # Comparison
    # ------------------------------------------------------------------
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GroupBlock):
            return NotImplemented
        return (
            self._shape == other._shape
            and self._group_size == other._group_size
            and np.array_equal(self._present, other._present)
            and np.array_equal(self._members, other._members)
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (f"GroupBlock(shape={self._shape}, group_size={self._group_size}, "
                f"present={int(self._present.sum())}, nonempty={int(self.nonempty.sum())})")


def _linear_index(position, shape: Shape3) -> int:
    pos = tuple(int(v) for v in position)
    if len(pos) != 3:
        raise ValueError(f"Expected an (x, y, z) position, got {position!r}")
    for p, extent in zip(pos, shape):
        if not 0 <= p < extent:
            raise ValueError(f"Position {pos} lies outside grid {tuple(shape)}")
    return int(np.ravel_multi_index(pos, shape))
