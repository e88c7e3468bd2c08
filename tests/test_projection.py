import pytest

from vlung.block import GroupBlock
from vlung.projection import blocks_to_points, gen_blocks, slice_points


def test_round_trip():
    lists = [
        [(0, 0, 0), (3, 3, 4)],
        [(1, 2, 3)],
        [],
        [(2, 0, 1), (2, 1, 1), (0, 3, 0)],
    ]
    out = blocks_to_points(gen_blocks(4, 4, 5, lists), len(lists))
    assert [set(map(tuple, g)) for g in out] == [set(g) for g in lists]


def test_gen_blocks_marks_single_membership():
    b = gen_blocks(2, 2, 2, [[(0, 0, 0)], [(1, 1, 1)]])
    assert b.membership((0, 0, 0)) == (0,)
    assert b.membership((1, 1, 1)) == (1,)
    assert b.membership((0, 1, 0)) is None


def test_last_writer_wins():
    b = gen_blocks(2, 2, 2, [[(0, 0, 0)], [(0, 0, 0)]])
    assert b.membership((0, 0, 0)) == (1,)


def test_out_of_range_position_raises():
    with pytest.raises(ValueError):
        gen_blocks(2, 2, 2, [[(0, 0, 2)]])
    with pytest.raises(ValueError):
        gen_blocks(2, 2, 2, [[], [(-1, 0, 0)]])


def test_lowest_group_wins_and_empty_cells_dropped():
    b = GroupBlock.from_cells((2, 1, 1), 3, {(0, 0, 0): [2, 1], (1, 0, 0): []})
    assert blocks_to_points(b, 3) == [[], [(0, 0, 0)], []]


def test_group_size_too_small_raises():
    b = GroupBlock.from_cells((1, 1, 1), 3, {(0, 0, 0): [2]})
    with pytest.raises(ValueError):
        blocks_to_points(b, 2)


def test_slice_points():
    b = gen_blocks(2, 2, 3, [[(0, 0, 0), (1, 1, 2)], [(0, 1, 2)]])
    assert slice_points(b, 2, 2) == [[(1, 1, 2)], [(0, 1, 2)]]
    with pytest.raises(ValueError):
        slice_points(b, 2, 3)
