from __future__ import annotations

from typing import Set, Tuple

import numpy as np
from scipy import ndimage

Position3 = Tuple[int, int, int]
Position2 = Tuple[int, int]

_NEIGH6_ALL = [(-1, 0, 0), (1, 0, 0), (0, -1, 0), (0, 1, 0), (0, 0, -1), (0, 0, 1)]
_NEIGH8_ALL = [(-1, 0), (1, 0), (0, -1), (0, 1), (-1, -1), (1, 1), (-1, 1), (1, -1)]


def _in_bounds(pos, extent) -> bool:
    return all(0 <= p < e for p, e in zip(pos, extent))


def neighbors_3d(position: Position3, rows: int, columns: int, height: int) -> Set[Position3]:
    """Face-adjacent (6-connected) neighbours of a voxel, clipped to the grid.

    A corner voxel has only 3 neighbours; coordinates never wrap.
    """
    x, y, z = (int(v) for v in position)
    extent = (rows, columns, height)
    out = set()
    for dx, dy, dz in _NEIGH6_ALL:
        nb = (x + dx, y + dy, z + dz)
        if _in_bounds(nb, extent):
            out.add(nb)
    return out


def neighbors_2d(position: Position2, rows: int, columns: int) -> Set[Position2]:
    """8-connected neighbours of a pixel inside one depth slice."""
    x, y = (int(v) for v in position[:2])
    out = set()
    for dx, dy in _NEIGH8_ALL:
        nb = (x + dx, y + dy)
        if _in_bounds(nb, (rows, columns)):
            out.add(nb)
    return out


def footprint_3d() -> np.ndarray:
    """3x3x3 boolean footprint of the 6-neighbourhood (centre excluded)."""
    fp = ndimage.generate_binary_structure(3, 1)
    fp[1, 1, 1] = False
    return fp


def footprint_2d() -> np.ndarray:
    """3x3 boolean footprint of the 8-neighbourhood (centre excluded)."""
    fp = ndimage.generate_binary_structure(2, 2)
    fp[1, 1] = False
    return fp
