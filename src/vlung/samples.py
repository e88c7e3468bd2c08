"""
Sample ingestion: the boundary with the image-decoding side.

Samples are carried as a pandas DataFrame with integer columns
``x, y, z, intensity`` (one row per voxel).
"""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .kmeans import Sample

logger = logging.getLogger(__name__)

SAMPLE_COLUMNS = ("x", "y", "z", "intensity")
# intensity written over voxels outside the analysed box (air)
OUT_OF_RANGE_INTENSITY = -1000


def samples_from_volume(volume: np.ndarray) -> pd.DataFrame:
    """Flatten a ``(rows, columns, height)`` intensity volume into sample rows."""
    vol = np.asarray(volume)
    if vol.ndim != 3:
        raise ValueError(f"Expected a 3D intensity volume, got shape {vol.shape}")
    xi, yi, zi = np.indices(vol.shape)
    return pd.DataFrame({
        "x": xi.reshape(-1),
        "y": yi.reshape(-1),
        "z": zi.reshape(-1),
        "intensity": vol.reshape(-1).astype(np.int64),
    })


def load_samples_csv(path) -> pd.DataFrame:
    """Read samples from a CSV with columns x, y, z, intensity."""
    df = pd.read_csv(path)
    missing = set(SAMPLE_COLUMNS).difference(df.columns)
    if missing:
        raise ValueError(f"Missing required columns: {sorted(missing)}")
    df = df[list(SAMPLE_COLUMNS)].astype(np.int64)
    if (df[["x", "y", "z"]] < 0).any().any():
        raise ValueError("Sample positions must be non-negative.")
    logger.info("Loaded %d samples from %s", len(df), path)
    return df


def grid_extent(samples: pd.DataFrame) -> Tuple[int, int, int]:
    """Smallest ``(rows, columns, height)`` grid holding every sample."""
    if samples.empty:
        raise ValueError("Cannot derive a grid extent from zero samples.")
    return tuple(int(samples[c].max()) + 1 for c in ("x", "y", "z"))  # type: ignore[return-value]


def apply_range(
    samples: pd.DataFrame,
    start_range: Optional[Sequence[int]] = None,
    end_range: Optional[Sequence[int]] = None,
) -> pd.DataFrame:
    """
    Blank out voxels outside an inclusive analysis box.

    Voxels before ``start_range`` or after ``end_range`` on any axis get
    ``OUT_OF_RANGE_INTENSITY``; either bound may be omitted.
    """
    out = samples.copy()
    pos = out[["x", "y", "z"]].to_numpy()
    outside = np.zeros(len(out), dtype=bool)
    for bound, before in ((start_range, True), (end_range, False)):
        if bound is None:
            continue
        b = np.asarray(bound, dtype=np.int64)
        if b.shape != (3,):
            raise ValueError(f"Range bound must have three coordinates, got {list(bound)}")
        outside |= np.any(pos < b, axis=1) if before else np.any(pos > b, axis=1)
    out.loc[outside, "intensity"] = OUT_OF_RANGE_INTENSITY
    if outside.any():
        logger.info("Blanked %d samples outside the analysis range", int(outside.sum()))
    return out


def to_samples(samples: pd.DataFrame) -> List[Sample]:
    """Row-wise :class:`Sample` objects for the generic solver."""
    return [
        Sample((int(r.x), int(r.y), int(r.z)), int(r.intensity))
        for r in samples.itertuples(index=False)
    ]
