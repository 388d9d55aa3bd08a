"""Services package: the game rules that run on top of the world store.

Import submodules to make them available as `services.game_engine`.
"""

from .game_engine import (
	GameEngine,
	coin_value_for_rank,
	parse_direction,
	WIDTH,
	HEIGHT,
	NUM_COINS,
	COIN_TIERS,
)

__all__ = [
	"GameEngine",
	"coin_value_for_rank",
	"parse_direction",
	"WIDTH",
	"HEIGHT",
	"NUM_COINS",
	"COIN_TIERS",
]
