import numpy as np
import pandas as pd
import pytest

from vlung.kmeans import (
    DEFAULT_INIT_CENTERS,
    Centroid,
    IntensityStrategy,
    Sample,
    partitions_equal,
    solve,
    solve_intensity,
    solve_with,
)
from vlung.samples import to_samples


def _samples(values):
    return [Sample((i, 0, 0), int(v)) for i, v in enumerate(values)]


def _as_index_sets(partition):
    return [sorted(s.position[0] for s in group) for group in partition]


def _labels_from_partition(partition, n):
    labels = np.full(n, -1)
    for g, group in enumerate(partition):
        for s in group:
            labels[s.position[0]] = g
    return labels


def test_single_centroid_takes_everything_in_one_round():
    st = IntensityStrategy()
    rounds = []

    def converged(previous, candidate):
        rounds.append(len(previous))
        return st.converged(previous, candidate)

    data = _samples([-500, 10, 300])
    out = solve(st.distance, st.center_of, converged, [Centroid(0)], data)
    assert len(out) == 1
    assert sorted(out[0], key=lambda s: s.position) == data
    # one assignment round, compared against a partition with no groups
    assert rounds == [0]


def test_ties_go_to_lowest_centroid():
    out = solve_with(IntensityStrategy(), [Centroid(0), Centroid(10)], _samples([5]))
    assert _as_index_sets(out) == [[0], []]


def test_empty_group_keeps_centroid():
    out = solve(IntensityStrategy().distance, IntensityStrategy().center_of, partitions_equal,
                [Centroid(0), Centroid(1000)], _samples([1, 2, 3]))
    assert _as_index_sets(out) == [[0, 1, 2], []]


def test_center_truncates_toward_zero():
    st = IntensityStrategy()
    assert st.center_of(_samples([-3, -4])) == Centroid(-3)
    assert st.center_of(_samples([3, 4])) == Centroid(3)
    assert st.center_of([]) is None


def test_two_clusters_separate():
    data = _samples([-1000, -990, -980, 290, 300, 310])
    out = solve_with(IntensityStrategy(), [Centroid(-500), Centroid(0)], data)
    assert _as_index_sets(out) == [[0, 1, 2], [3, 4, 5]]


def test_partition_rule_keeps_iterating():
    st = IntensityStrategy()
    data = _samples([40, 45, 60, 100])
    init = [Centroid(0), Centroid(100)]

    first_round = solve_with(st, init, data)
    assert _as_index_sets(first_round) == [[0, 1], [2, 3]]

    out = solve(st.distance, st.center_of, partitions_equal, init, data)
    assert _as_index_sets(out) == [[0, 1, 2], [3]]


def test_empty_sample_set():
    out = solve_with(IntensityStrategy(), [Centroid(0), Centroid(1)], [])
    assert out == [[], []]


@pytest.mark.parametrize("stop_rule", ["centers", "partition"])
def test_vectorized_matches_generic(stop_rule):
    rng = np.random.default_rng(3)
    n = 400
    df = pd.DataFrame({
        "x": np.arange(n), "y": 0, "z": 0,
        "intensity": rng.integers(-1100, 500, size=n),
    })
    labels = solve_intensity(df["intensity"].to_numpy(), DEFAULT_INIT_CENTERS, stop_rule)

    st = IntensityStrategy()
    converged = st.converged if stop_rule == "centers" else partitions_equal
    generic = solve(st.distance, st.center_of, converged,
                    [Centroid(c) for c in DEFAULT_INIT_CENTERS], to_samples(df))
    assert np.array_equal(labels, _labels_from_partition(generic, n))


def test_vectorized_partition_rule_example():
    assert solve_intensity(np.array([40, 45, 60, 100]), [0, 100], "partition").tolist() == [0, 0, 0, 1]
    assert solve_intensity(np.array([40, 45, 60, 100]), [0, 100]).tolist() == [0, 0, 1, 1]


def test_vectorized_tie_break():
    assert solve_intensity(np.array([5]), [0, 10]).tolist() == [0]


def test_unknown_stop_rule_rejected():
    with pytest.raises(ValueError):
        solve_intensity(np.array([1]), [0], "labels")
