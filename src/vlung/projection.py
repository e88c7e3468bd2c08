"""Conversions between per-group position lists and :class:`GroupBlock` grids."""
from __future__ import annotations

from typing import List, NamedTuple, Sequence

import numpy as np

from .block import GroupBlock


class Point(NamedTuple):
    x: int
    y: int
    z: int


def _as_positions(points, shape, group: int) -> np.ndarray:
    arr = np.asarray(points, dtype=np.int64)
    if arr.size == 0:
        return np.zeros((0, 3), dtype=np.int64)
    if arr.ndim != 2 or arr.shape[1] != 3:
        raise ValueError(f"Group {group}: positions must be (x, y, z) triples, got array of shape {arr.shape}")
    bad = np.any((arr < 0) | (arr >= np.asarray(shape)), axis=1)
    if np.any(bad):
        first = tuple(int(v) for v in arr[np.argmax(bad)])
        raise ValueError(
            f"Group {group}: {int(bad.sum())} position(s) outside grid {tuple(shape)}, e.g. {first}"
        )
    return arr


def gen_blocks(rows: int, columns: int, height: int, point_lists: Sequence[Sequence]) -> GroupBlock:
    """
    Build the initial labelling grid.

    Every position of ``point_lists[n]`` becomes a present cell with membership
    ``{n}``. If two groups list the same position, the higher group index wins.
    """
    shape = (int(rows), int(columns), int(height))
    group_size = len(point_lists)
    n_cells = rows * columns * height
    present = np.zeros(n_cells, dtype=bool)
    members = np.zeros((n_cells, max(group_size, 1)), dtype=bool)

    for n, points in enumerate(point_lists):
        arr = _as_positions(points, shape, n)
        if arr.shape[0] == 0:
            continue
        idx = np.ravel_multi_index(arr.T, shape)
        present[idx] = True
        members[idx, :] = False
        members[idx, n] = True

    return GroupBlock(shape, max(group_size, 1), present, members)


def _collect(block: GroupBlock, group_size: int, cell_mask: np.ndarray) -> List[List[Point]]:
    group_size = int(group_size)
    labels = block.lowest_groups()
    labels = np.where(cell_mask, labels, -1)
    if labels.size and labels.max() >= group_size:
        raise ValueError(f"Block carries group {int(labels.max())}, but group_size is {group_size}")

    out: List[List[Point]] = [[] for _ in range(group_size)]
    idx = np.flatnonzero(labels >= 0)
    coords = np.stack(np.unravel_index(idx, block.shape), axis=1) if idx.size else np.zeros((0, 3), dtype=int)
    for (x, y, z), g in zip(coords.tolist(), labels[idx].tolist()):
        out[g].append(Point(x, y, z))
    return out


def blocks_to_points(block: GroupBlock, group_size: int) -> List[List[Point]]:
    """
    Per-group position lists of a block.

    A cell with several memberships goes to its lowest group id; absent and
    empty cells are dropped.
    """
    return _collect(block, group_size, np.ones(block.n_cells, dtype=bool))


def slice_points(block: GroupBlock, group_size: int, depth: int) -> List[List[Point]]:
    """Same as :func:`blocks_to_points`, restricted to one depth ``z``."""
    if not 0 <= int(depth) < block.height:
        raise ValueError(f"Depth {depth} outside [0, {block.height})")
    zz = np.zeros(block.shape, dtype=bool)
    zz[:, :, int(depth)] = True
    return _collect(block, group_size, zz.reshape(-1))
