"""End-to-end run: intensity clustering -> GroupBlock -> opening -> closing -> point lists."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .block import GroupBlock
from .kmeans import DEFAULT_INIT_CENTERS, solve_intensity
from .morphology import closing, opening
from .projection import Point, blocks_to_points, gen_blocks, slice_points
from .render import write_slice_images
from .samples import apply_range, grid_extent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineParams:
    """Run parameters (defaults reproduce the standard lung configuration)."""
    init_centers: Tuple[int, ...] = DEFAULT_INIT_CENTERS
    noise_removal: int = 1
    stop_rule: str = "centers"
    start_range: Optional[Tuple[int, int, int]] = None
    end_range: Optional[Tuple[int, int, int]] = None


@dataclass
class PipelineResult:
    shape: Tuple[int, int, int]
    raw_block: GroupBlock
    clean_block: GroupBlock
    raw_points: List[List[Point]]
    clean_points: List[List[Point]]
    images: Dict[str, str] = field(default_factory=dict)

    @property
    def group_size(self) -> int:
        return len(self.raw_points)

    def summary(self) -> pd.DataFrame:
        return summary_table(self.raw_points, self.clean_points)


def labels_to_points(samples: pd.DataFrame, labels: np.ndarray, group_size: int) -> List[List[Point]]:
    """Split sample positions by cluster label."""
    pos = samples[["x", "y", "z"]].to_numpy(dtype=np.int64)
    labels = np.asarray(labels)
    return [[Point(*p) for p in pos[labels == g].tolist()] for g in range(group_size)]


def summary_table(raw_points: Sequence[Sequence], clean_points: Sequence[Sequence]) -> pd.DataFrame:
    return pd.DataFrame({
        "group": np.arange(len(raw_points), dtype=int),
        "n_raw": [len(p) for p in raw_points],
        "n_clean": [len(p) for p in clean_points],
    })


def export_points_csv(point_lists: Sequence[Sequence], path: str) -> str:
    """Write ``x,y,z,group`` rows for the meshing stage."""
    rows = [(int(p[0]), int(p[1]), int(p[2]), g) for g, pts in enumerate(point_lists) for p in pts]
    pd.DataFrame(rows, columns=["x", "y", "z", "group"]).to_csv(path, index=False)
    return path


def run_pipeline(
    samples: pd.DataFrame,
    *,
    shape: Optional[Tuple[int, int, int]] = None,
    params: PipelineParams = PipelineParams(),
    out_dir: Optional[str] = None,
    depth_img: Optional[int] = None,
) -> PipelineResult:
    """
    Classify voxel samples and clean the labelling.

    ``samples`` needs columns x, y, z, intensity. ``shape`` defaults to the
    smallest grid holding every sample. Slice images are written only when
    both ``out_dir`` and ``depth_img`` are given.
    """
    if shape is None:
        shape = grid_extent(samples)
    rows, columns, height = (int(v) for v in shape)
    if depth_img is not None and not 0 <= depth_img < height:
        raise ValueError(f"depth_img={depth_img} outside [0, {height})")

    data = apply_range(samples, params.start_range, params.end_range)

    logger.info("[START] solve (%d samples, %d centers)", len(data), len(params.init_centers))
    labels = solve_intensity(data["intensity"].to_numpy(), params.init_centers, params.stop_rule)
    group_size = len(params.init_centers)
    raw_points = labels_to_points(data, labels, group_size)
    logger.info("[END] solve")

    logger.info("[START] filter (n=%d)", params.noise_removal)
    raw_block = gen_blocks(rows, columns, height, raw_points)
    block = opening(raw_block, params.noise_removal)
    block = closing(block, params.noise_removal)
    clean_points = blocks_to_points(block, group_size)
    logger.info("[END] filter")

    result = PipelineResult((rows, columns, height), raw_block, block, raw_points, clean_points)

    if out_dir is not None and depth_img is not None:
        result.images = write_slice_images(
            out_dir, depth_img, rows, columns,
            slice_points(raw_block, group_size, depth_img),
            slice_points(block, group_size, depth_img),
        )

    for row in result.summary().itertuples(index=False):
        logger.info("group %d: %d -> %d voxels", row.group, row.n_raw, row.n_clean)
    return result
