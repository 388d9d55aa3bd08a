"""Domain-level typed models used by services and stores.

Prefer `TypedDict` for lightweight structural typing of the JSON-like
results the engine hands to the session layer. Grid coordinates are a
`NamedTuple` so they hash and compare like the plain `(x, y)` tuples the
stores key coins by.
"""
from __future__ import annotations

from enum import Enum
from typing import NamedTuple, TypedDict


class Point(NamedTuple):
	x: int
	y: int


class Direction(str, Enum):
	"""Wire codes for the four movement directions."""
	UP = "U"
	RIGHT = "R"
	DOWN = "D"
	LEFT = "L"

	@property
	def delta(self) -> tuple[int, int]:
		return _DELTAS[self]


_DELTAS = {
	Direction.UP: (0, -1),
	Direction.RIGHT: (1, 0),
	Direction.DOWN: (0, 1),
	Direction.LEFT: (-1, 0),
}


class CoinFieldState(NamedTuple):
	count: int
	generation: int


class MoveCommit(NamedTuple):
	"""What a store reports back from one atomic move commit."""
	collected: int
	coins_left: int
	generation: int


class MoveResult(TypedDict):
	name: str
	origin: Point
	position: Point
	collected: int
	refilled: bool


class Snapshot(TypedDict):
	positions: dict[str, Point]
	scores: list[tuple[str, int]]
	coins: dict[Point, int]


__all__ = [
	"Point",
	"Direction",
	"CoinFieldState",
	"MoveCommit",
	"MoveResult",
	"Snapshot",
]
