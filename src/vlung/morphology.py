"""
Morphological passes over voxel labellings.

3D passes work on a :class:`~vlung.block.GroupBlock`, where each voxel carries a
*set* of group ids rather than a binary flag:

  - dilation: a voxel receives the union of its 6 neighbours' memberships;
    every output voxel is present, even if all neighbours were absent.
  - erosion: a present voxel keeps group ``g`` iff ``g`` belongs to every
    neighbour whose membership is non-empty. Absent and empty neighbours do not
    take part, so a voxel with no non-empty neighbour keeps *every* group
    (vacuous truth). Absent voxels stay absent.

Each pass reads its input block as a frozen snapshot and returns a new block.

The 2D helpers are the older single-slice preview filter: boolean presence on
one depth, 8-connectivity, same boundary policy.
"""
from __future__ import annotations

import logging
from typing import Iterable, List, Tuple

import numpy as np
from scipy import ndimage

from .block import GroupBlock
from .neighborhood import footprint_2d, footprint_3d

logger = logging.getLogger(__name__)


# =============================================================================
# 3D membership-set passes
# =============================================================================

def dilation(block: GroupBlock) -> GroupBlock:
    """One dilation pass over all groups."""
    fp = footprint_3d()
    vol = block.members_volume()
    out = np.zeros_like(vol)
    for g in range(block.group_size):
        out[..., g] = ndimage.binary_dilation(vol[..., g], structure=fp, border_value=0)
    present = np.ones(block.n_cells, dtype=bool)
    return GroupBlock(block.shape, block.group_size, present, out)


def erosion(block: GroupBlock) -> GroupBlock:
    """One erosion pass over all groups (vacuously full where nothing constrains a voxel)."""
    fp = footprint_3d()
    vol = block.members_volume()
    nonempty = block.nonempty.reshape(block.shape)
    present = block.present_volume()
    out = np.zeros_like(vol)
    for g in range(block.group_size):
        # voxels next to at least one non-empty neighbour that lacks g
        blocked = ndimage.binary_dilation(nonempty & ~vol[..., g], structure=fp, border_value=0)
        out[..., g] = present & ~blocked
    return GroupBlock(block.shape, block.group_size, block.present.copy(), out)


def _check_repeat(n: int) -> int:
    n = int(n)
    if n < 0:
        raise ValueError(f"Pass count must be >= 0, got {n}")
    return n


def opening(block: GroupBlock, n: int = 1) -> GroupBlock:
    """Erode ``n`` times, then dilate ``n`` times. Removes small noise regions."""
    n = _check_repeat(n)
    out = block
    for k in range(n):
        out = erosion(out)
        logger.debug("opening: erosion %d/%d done", k + 1, n)
    for k in range(n):
        out = dilation(out)
        logger.debug("opening: dilation %d/%d done", k + 1, n)
    return out


def closing(block: GroupBlock, n: int = 1) -> GroupBlock:
    """Dilate ``n`` times, then erode ``n`` times. Fills small holes."""
    n = _check_repeat(n)
    out = block
    for k in range(n):
        out = dilation(out)
        logger.debug("closing: dilation %d/%d done", k + 1, n)
    for k in range(n):
        out = erosion(out)
        logger.debug("closing: erosion %d/%d done", k + 1, n)
    return out


# =============================================================================
# Legacy single-slice passes (boolean presence, 8-connectivity)
# =============================================================================

def _slice_mask(rows: int, columns: int, points: Iterable) -> np.ndarray:
    mask = np.zeros((rows, columns), dtype=bool)
    for p in points:
        x, y = int(p[0]), int(p[1])
        if not (0 <= x < rows and 0 <= y < columns):
            raise ValueError(f"Point {tuple(p)} lies outside slice ({rows}, {columns})")
        mask[x, y] = True
    return mask


def _mask_points(mask: np.ndarray, z: int) -> List[Tuple[int, int, int]]:
    return [(int(x), int(y), int(z)) for x, y in np.argwhere(mask)]


def dilation_2d(rows: int, columns: int, z: int, points: Iterable) -> List[Tuple[int, int, int]]:
    """Pixels with at least one 8-neighbour in ``points`` (depth ``z``)."""
    mask = _slice_mask(rows, columns, points)
    out = ndimage.binary_dilation(mask, structure=footprint_2d(), border_value=0)
    return _mask_points(out, z)


def erosion_2d(rows: int, columns: int, z: int, points: Iterable) -> List[Tuple[int, int, int]]:
    """Pixels whose in-bounds 8-neighbours are all in ``points`` (depth ``z``)."""
    mask = _slice_mask(rows, columns, points)
    out = ndimage.binary_erosion(mask, structure=footprint_2d(), border_value=1)
    return _mask_points(out, z)


def opening_2d(rows: int, columns: int, z: int, points: Iterable, n: int = 1) -> List[Tuple[int, int, int]]:
    n = _check_repeat(n)
    out = list(points)
    for _ in range(n):
        out = erosion_2d(rows, columns, z, out)
    for _ in range(n):
        out = dilation_2d(rows, columns, z, out)
    return out


def closing_2d(rows: int, columns: int, z: int, points: Iterable, n: int = 1) -> List[Tuple[int, int, int]]:
    n = _check_repeat(n)
    out = list(points)
    for _ in range(n):
        out = dilation_2d(rows, columns, z, out)
    for _ in range(n):
        out = erosion_2d(rows, columns, z, out)
    return out
