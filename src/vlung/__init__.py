"""vlung: CT voxel tissue clustering with multi-label 3D morphological cleanup.

Public API:
- solve / solve_with / solve_intensity: iterative clustering (k-means style)
- GroupBlock: 3D labelling grid with per-voxel membership sets
- gen_blocks / blocks_to_points: position lists <-> GroupBlock
- dilation / erosion / opening / closing: 3D membership-set morphology
- run_pipeline: cluster -> open -> close -> per-group position lists
"""

from .block import GroupBlock
from .kmeans import (
    DEFAULT_INIT_CENTERS,
    Centroid,
    IntensityStrategy,
    Sample,
    solve,
    solve_intensity,
    solve_with,
)
from .morphology import closing, dilation, erosion, opening
from .neighborhood import neighbors_2d, neighbors_3d
from .pipeline import PipelineParams, run_pipeline
from .projection import Point, blocks_to_points, gen_blocks

__all__ = [
    "GroupBlock",
    "DEFAULT_INIT_CENTERS", "Centroid", "IntensityStrategy", "Sample",
    "solve", "solve_intensity", "solve_with",
    "closing", "dilation", "erosion", "opening",
    "neighbors_2d", "neighbors_3d",
    "PipelineParams", "run_pipeline",
    "Point", "blocks_to_points", "gen_blocks",
]
