"""Grid geometry and randomization helpers.

Pure functions with no shared state. Randomized helpers accept an optional
`random.Random` so callers (and tests) can supply a seeded generator; the
module-level generator is used otherwise.
"""
from __future__ import annotations

import random
from typing import Optional

import regex as re

from models.domain_models import Point


# Cell keys are the "x,y" strings used by the store record layout.
CELL_KEY_RE = re.compile(r"^(\d+),(\d+)$")


def clamp(value: int, low: int, high: int) -> int:
	"""Return `low` if `value < low`, `high` if `value > high`, else `value`."""
	if value < low:
		return low
	if value > high:
		return high
	return value


def random_point(width: int, height: int, rng: Optional[random.Random] = None) -> Point:
	"""Return a uniformly random cell in `[0, width) x [0, height)`."""
	rng = rng or random
	return Point(rng.randrange(width), rng.randrange(height))


def permutation(n: int, rng: Optional[random.Random] = None) -> list[int]:
	"""Return `0..n-1` in uniformly random order, each index exactly once."""
	indices = list(range(n))
	# Random.shuffle is an in-place Fisher-Yates shuffle.
	(rng or random).shuffle(indices)
	return indices


def index_to_point(index: int, width: int) -> Point:
	"""Map a row-major cell index to its grid coordinates."""
	return Point(index % width, index // width)


def cell_key(point: Point) -> str:
	return f"{point[0]},{point[1]}"


def parse_cell(key: str) -> Point:
	"""Parse an "x,y" cell key.

	Raises ValueError for anything that is not two non-negative integers.
	"""
	match = CELL_KEY_RE.match(key or "")
	if match is None:
		raise ValueError(f"Malformed cell key: {key!r}")
	return Point(int(match.group(1)), int(match.group(2)))
