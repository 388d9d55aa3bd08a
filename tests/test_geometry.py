import random

import pytest

from models import Point
from utils import (
    clamp,
    random_point,
    permutation,
    index_to_point,
    cell_key,
    parse_cell,
    is_valid_name,
    normalize_name,
)


@pytest.mark.parametrize(
    "value, expected",
    [(-1, 0), (0, 0), (31, 31), (63, 63), (64, 63), (1000, 63)],
)
def test_clamp(value, expected):
    assert clamp(value, 0, 63) == expected


def test_random_point_stays_on_grid():
    rng = random.Random(7)
    points = [random_point(5, 3, rng) for _ in range(500)]
    assert all(0 <= p.x < 5 and 0 <= p.y < 3 for p in points)
    # 500 draws over 15 cells should hit every one of them
    assert len(set(points)) == 15


def test_permutation_contains_every_index_once():
    perm = permutation(4096, random.Random(1))
    assert len(perm) == 4096
    assert sorted(perm) == list(range(4096))


def test_permutation_order_depends_on_rng():
    assert permutation(50, random.Random(1)) != permutation(50, random.Random(2))


def test_permutation_of_zero_is_empty():
    assert permutation(0) == []


def test_index_to_point_is_row_major():
    assert index_to_point(0, 64) == Point(0, 0)
    assert index_to_point(63, 64) == Point(63, 0)
    assert index_to_point(64, 64) == Point(0, 1)
    assert index_to_point(4095, 64) == Point(63, 63)


def test_cell_key_round_trips():
    assert cell_key(Point(12, 7)) == "12,7"
    assert parse_cell("12,7") == Point(12, 7)


@pytest.mark.parametrize("bad", ["", "1", "1,", ",1", "a,b", "-1,2", "1,2,3", " 1,2"])
def test_parse_cell_rejects_malformed_keys(bad):
    with pytest.raises(ValueError):
        parse_cell(bad)


@pytest.mark.parametrize(
    "name, ok",
    [("", False), ("a", True), ("x" * 32, True), ("x" * 33, False), ("  ", True), (None, False)],
)
def test_is_valid_name(name, ok):
    assert is_valid_name(name) is ok


def test_normalize_name_strips_whitespace():
    assert normalize_name("  Alice \n") == "Alice"
    assert normalize_name(42) == ""
