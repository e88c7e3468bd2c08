"""
Iterative partitioning (k-means style) with pluggable policies.

The generic :func:`solve` loop only knows three callables:

  - ``distance(centroid, sample)``: non-negative comparable value,
  - ``center_of(group)``: new centroid of a group, or None for an empty group,
  - ``converged(previous, candidate)``: stop criterion on two partitions.

There is no iteration cap. A ``distance``/``converged`` pair that never reports
convergence loops forever; bounding the work is up to the caller.

:class:`IntensityStrategy` is the CT instantiation (absolute intensity
difference, truncated integer mean, "recomputed centres unchanged" stop rule).
:func:`solve_intensity` runs the same rules vectorized over a numpy array.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol, Sequence, Tuple, TypeVar

import numpy as np

logger = logging.getLogger(__name__)

S = TypeVar("S")
C = TypeVar("C")

# chest cavity / background, lung tissue, fat, vessel, bone (Hounsfield-like units)
DEFAULT_INIT_CENTERS: Tuple[int, ...] = (-990, -750, -53, 34, 300)


@dataclass(frozen=True)
class Sample:
    position: Tuple[int, int, int]
    intensity: int


@dataclass(frozen=True)
class Centroid:
    intensity: int
    position: Optional[Tuple[int, int, int]] = None


class ClusterStrategy(Protocol):
    def distance(self, centroid, sample) -> float: ...

    def center_of(self, group: Sequence) -> Optional[object]: ...

    def converged(self, previous: Sequence[Sequence], candidate: Sequence[Sequence]) -> bool: ...


def solve(
    distance: Callable[[C, S], float],
    center_of: Callable[[Sequence[S]], Optional[C]],
    converged: Callable[[Sequence[Sequence[S]], Sequence[Sequence[S]]], bool],
    initial_centroids: Sequence[C],
    samples: Sequence[S],
) -> List[List[S]]:
    """
    Partition ``samples`` into ``len(initial_centroids)`` groups.

    Each round assigns every sample to its nearest centroid (ties go to the
    lowest index), asks ``converged(previous, candidate)`` and either returns
    the candidate partition or recomputes the centroids from it. The first
    round compares against a partition with no groups at all, so a per-group
    ``converged`` (zip over groups) holds vacuously and round one is final.
    A group that ends up empty keeps its previous centroid.
    """
    centroids = list(initial_centroids)
    n = len(centroids)
    previous: List[List[S]] = []
    it = 0
    while True:
        it += 1
        candidate: List[List[S]] = [[] for _ in range(n)]
        for sample in samples:
            best = min(range(n), key=lambda i: distance(centroids[i], sample))
            candidate[best].append(sample)

        if converged(previous, candidate):
            logger.debug("solve: converged after %d assignment round(s)", it)
            return candidate

        new_centroids = []
        for i, group in enumerate(candidate):
            c = center_of(group)
            new_centroids.append(centroids[i] if c is None else c)
        centroids = new_centroids
        logger.debug("solve: round %d, group sizes %s", it, [len(g) for g in candidate])
        previous = candidate


def solve_with(strategy: ClusterStrategy, initial_centroids: Sequence, samples: Sequence) -> List[List]:
    return solve(strategy.distance, strategy.center_of, strategy.converged, initial_centroids, samples)


# =============================================================================
# CT intensity instantiation
# =============================================================================

def _trunc_mean(total: int, count: int) -> int:
    q = abs(total) // count
    return q if total >= 0 else -q


class IntensityStrategy:
    """Clustering on scalar voxel intensity only; positions are ignored."""

    def distance(self, centroid: Centroid, sample: Sample) -> int:
        return abs(int(centroid.intensity) - int(sample.intensity))

    def center_of(self, group: Sequence[Sample]) -> Optional[Centroid]:
        if not group:
            return None
        return Centroid(_trunc_mean(sum(int(s.intensity) for s in group), len(group)))

    def converged(self, previous: Sequence[Sequence[Sample]], candidate: Sequence[Sequence[Sample]]) -> bool:
        # weaker than partition equality: only the recomputed centres are compared
        return all(self.center_of(a) == self.center_of(b) for a, b in zip(previous, candidate))


def partitions_equal(previous: Sequence[Sequence], candidate: Sequence[Sequence]) -> bool:
    """Classical stop rule: same members in every group (order ignored)."""
    if len(previous) != len(candidate):
        return False
    return all(sorted(map(repr, a)) == sorted(map(repr, b)) for a, b in zip(previous, candidate))


def _group_centers(intensities: np.ndarray, labels: np.ndarray, k: int) -> Tuple[np.ndarray, np.ndarray]:
    counts = np.bincount(labels, minlength=k)
    totals = np.bincount(labels, weights=intensities, minlength=k).astype(np.int64)
    safe = np.maximum(counts, 1)
    centers = np.sign(totals) * (np.abs(totals) // safe)
    return centers, counts > 0


def _nearest(values: np.ndarray, centers: np.ndarray) -> np.ndarray:
    labels = np.zeros(values.shape[0], dtype=np.int64)
    best = np.abs(values - centers[0])
    for i in range(1, centers.shape[0]):
        d = np.abs(values - centers[i])
        closer = d < best  # strict: ties keep the lower index
        labels[closer] = i
        best = np.where(closer, d, best)
    return labels


def solve_intensity(
    intensities: np.ndarray,
    init_centers: Sequence[int] = DEFAULT_INIT_CENTERS,
    stop_rule: str = "centers",
) -> np.ndarray:
    """
    Vectorized intensity clustering; returns one group label per intensity.

    ``stop_rule="centers"`` matches ``solve_with(IntensityStrategy(), ...)``:
    round one compares against an empty partition and is always final.
    ``stop_rule="partition"`` matches ``solve(..., partitions_equal, ...)``:
    stop once two consecutive rounds give the same labels.
    """
    if stop_rule not in ("centers", "partition"):
        raise ValueError(f"stop_rule must be 'centers' or 'partition', got {stop_rule!r}")
    values = np.asarray(intensities, dtype=np.int64).reshape(-1)
    centers = np.asarray(init_centers, dtype=np.int64).reshape(-1)
    k = centers.shape[0]
    if k == 0:
        raise ValueError("At least one initial center is required.")

    prev_labels: Optional[np.ndarray] = None
    prev_centers: Optional[np.ndarray] = None
    prev_defined: Optional[np.ndarray] = None
    it = 0
    while True:
        it += 1
        labels = _nearest(values, centers)
        cand_centers, cand_defined = _group_centers(values.astype(float), labels, k)

        if stop_rule == "partition":
            done = prev_labels is not None and np.array_equal(prev_labels, labels)
        elif prev_centers is None:
            done = True  # no previous groups to compare
        else:
            same = (prev_defined == cand_defined) & (~cand_defined | (prev_centers == cand_centers))
            done = bool(np.all(same))
        if done:
            logger.debug("solve_intensity: converged after %d assignment round(s)", it)
            return labels

        centers = np.where(cand_defined, cand_centers, centers)
        prev_labels, prev_centers, prev_defined = labels, cand_centers, cand_defined
        logger.debug("solve_intensity: round %d, centers %s", it, centers.tolist())
