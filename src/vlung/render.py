"""Colour-coded slice images of per-group point lists (for visual inspection)."""
from __future__ import annotations

import logging
import os
from typing import Dict, Sequence

import numpy as np
import matplotlib.pyplot as plt

logger = logging.getLogger(__name__)

# one colour per group index; anything past the palette is drawn red
PALETTE = (
    (0, 255, 0),
    (0, 0, 255),
    (0, 255, 255),
    (255, 0, 255),
    (255, 255, 0),
)
OVERFLOW_COLOR = (255, 0, 0)


def group_color(index: int):
    return PALETTE[index] if 0 <= index < len(PALETTE) else OVERFLOW_COLOR


def points_to_image(rows: int, columns: int, point_lists: Sequence[Sequence]) -> np.ndarray:
    """
    RGB image (``columns`` tall, ``rows`` wide) with each group's points painted.

    Later groups paint over earlier ones; pixels without a point stay black.
    """
    img = np.zeros((columns, rows, 3), dtype=np.uint8)
    for i, points in enumerate(point_lists):
        pts = np.asarray(points, dtype=np.int64)
        if pts.size == 0:
            continue
        img[pts[:, 1], pts[:, 0]] = group_color(i)
    return img


def save_image(path: str, img: np.ndarray) -> str:
    plt.imsave(path, img)
    return path


def write_slice_images(
    out_dir: str,
    depth: int,
    rows: int,
    columns: int,
    raw_lists: Sequence[Sequence],
    filtered_lists: Sequence[Sequence],
) -> Dict[str, str]:
    """
    Write the combined and per-group images of one depth slice, before
    (``{depth}_raw*.png``) and after (``{depth}*.png``) filtering.
    """
    os.makedirs(out_dir, exist_ok=True)
    paths: Dict[str, str] = {}
    for tag, lists in (("_raw", raw_lists), ("", filtered_lists)):
        logger.info("[START] slice images%s (depth=%d)", tag, depth)
        p = os.path.join(out_dir, f"{depth}{tag}.png")
        paths[f"{depth}{tag}"] = save_image(p, points_to_image(rows, columns, lists))
        for i, pts in enumerate(lists):
            # single-group images keep the palette of group 0
            p = os.path.join(out_dir, f"{depth}{tag}_{i}.png")
            paths[f"{depth}{tag}_{i}"] = save_image(p, points_to_image(rows, columns, [pts]))
        logger.info("[END] slice images%s (depth=%d)", tag, depth)
    return paths
