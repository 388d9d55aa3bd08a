# game_engine.py
import asyncio
import logging
import random
from typing import Optional, Sequence

from models.domain_models import Direction, MoveResult, Point, Snapshot
from stores import (
    WorldStore,
    StoreError,
    NameTaken,
    PositionConflict,
    UnexpectedResult,
    InvalidName,
    InvalidDirection,
)
from utils.geometry import clamp, random_point, permutation, index_to_point
from utils.validation import is_valid_name, MAX_PLAYER_NAME_LENGTH

logger = logging.getLogger(__name__)

WIDTH = 64
HEIGHT = 64
NUM_COINS = 100
# (value, count) by rank: the first 50 coins drawn are worth 1, the next 25 worth 2, ...
COIN_TIERS = ((1, 50), (2, 25), (5, 20), (10, 5))

MOVE_ATTEMPTS = 5
REFILL_ATTEMPTS = 3
REFILL_RETRY_DELAY_S = 0.05


def coin_value_for_rank(rank: int, tiers: Sequence[tuple[int, int]] = COIN_TIERS) -> int:
    """Value of the coin drawn `rank`-th (0-based) in a placement."""
    upper = 0
    for value, count in tiers:
        upper += count
        if rank < upper:
            return value
    raise ValueError(f"rank {rank} is beyond the configured coin tiers")


def parse_direction(direction) -> Direction:
    try:
        return Direction(direction)
    except ValueError:
        raise InvalidDirection(f"Unrecognized direction: {direction!r}") from None


class GameEngine:
    """Rules of the shared coin field.

    The engine keeps no world state of its own between calls; everything
    lives in the WorldStore, so any number of engines (in any number of
    processes) can share one store.
    """

    def __init__(
        self,
        store: WorldStore,
        *,
        width: int = WIDTH,
        height: int = HEIGHT,
        num_coins: int = NUM_COINS,
        coin_tiers: Sequence[tuple[int, int]] = COIN_TIERS,
        max_name_length: int = MAX_PLAYER_NAME_LENGTH,
        rng: Optional[random.Random] = None,
    ):
        if sum(count for _, count in coin_tiers) != num_coins:
            raise ValueError("coin tier counts must add up to num_coins")
        if num_coins > width * height:
            raise ValueError("more coins than grid cells")
        self.store = store
        self.width = width
        self.height = height
        self.num_coins = num_coins
        self.coin_tiers = tuple(coin_tiers)
        self.max_name_length = max_name_length
        self.rng = rng or random.Random()

    # -------------------------------------------------
    # Admission
    # -------------------------------------------------

    async def add_player(self, name: str) -> Point:
        """Admit a new player at a random cell with a zero score.

        Raises:
            InvalidName: if `name` is empty or too long.
            NameTaken: if the name was ever claimed before.
            StoreUnavailable: if the store call fails.
        """
        if not is_valid_name(name, self.max_name_length):
            raise InvalidName(f"Names must be 1 to {self.max_name_length} characters")

        start = random_point(self.width, self.height, self.rng)
        if not await self.store.admit_player(name, start):
            raise NameTaken(f"Name {name!r} is already taken")

        logger.info(f"Admitted player {name!r} at {start}")
        return start

    # -------------------------------------------------
    # Coin field lifecycle
    # -------------------------------------------------

    def draw_coin_field(self) -> dict[Point, int]:
        """Pick `num_coins` distinct cells and value them by draw rank."""
        cells = permutation(self.width * self.height, self.rng)[: self.num_coins]
        return {
            index_to_point(index, self.width): coin_value_for_rank(rank, self.coin_tiers)
            for rank, index in enumerate(cells)
        }

    async def place_coins(self) -> dict[Point, int]:
        """Replace the whole coin field, whatever is on it now."""
        coins = self.draw_coin_field()
        await self.store.reset_coins(coins)
        logger.info(f"Placed {len(coins)} coins")
        return coins

    async def ensure_coins(self) -> bool:
        """Refill the field if it is empty. True if this call did the refill."""
        state = await self.store.coin_field_state()
        if state.count > 0:
            return False
        return await self._refill(state.generation)

    async def _refill(self, generation: int) -> bool:
        # Only the first caller for a given generation wins; everyone else
        # sees the bumped generation (or a non-empty field) and backs off.
        refilled = await self.store.reset_coins(self.draw_coin_field(), expected_generation=generation)
        if refilled:
            logger.info(f"Coin field depleted at generation {generation}; placed {self.num_coins} new coins")
        return refilled

    async def _refill_after_depletion(self, generation: int) -> bool:
        for attempt in range(1, REFILL_ATTEMPTS + 1):
            try:
                return await self._refill(generation)
            except StoreError as exc:
                logger.error(
                    f"Coin refill attempt {attempt}/{REFILL_ATTEMPTS} failed: {exc.__class__.__name__}: {exc}",
                    exc_info=True,
                )
                if attempt < REFILL_ATTEMPTS:
                    await asyncio.sleep(REFILL_RETRY_DELAY_S * attempt)
        # The periodic ensure_coins job picks it up from here.
        return False

    # -------------------------------------------------
    # Movement
    # -------------------------------------------------

    async def move(self, direction, name: str) -> MoveResult:
        """Move a player one cell, collecting any coin on the destination.

        Raises:
            InvalidDirection: if `direction` is not U, R, D or L.
            UnknownPlayer: if `name` has no position.
            UnexpectedResult: if concurrent moves of the same player keep
                winning the race for MOVE_ATTEMPTS tries.
            StoreUnavailable: if a store call fails (nothing is half-applied).
        """
        dx, dy = parse_direction(direction).delta

        for _ in range(MOVE_ATTEMPTS):
            origin = await self.store.get_position(name)
            destination = Point(
                clamp(origin.x + dx, 0, self.width - 1),
                clamp(origin.y + dy, 0, self.height - 1),
            )
            try:
                commit = await self.store.commit_move(name, origin, destination)
            except PositionConflict:
                logger.debug(f"Position of {name!r} changed under us, retrying move")
                continue
            break
        else:
            raise UnexpectedResult(f"Move for {name!r} lost {MOVE_ATTEMPTS} races in a row")

        if commit.collected:
            logger.debug(f"{name!r} collected {commit.collected} at {destination}")

        refilled = False
        if commit.coins_left == 0:
            refilled = await self._refill_after_depletion(commit.generation)

        return {
            "name": name,
            "origin": origin,
            "position": destination,
            "collected": commit.collected,
            "refilled": refilled,
        }

    # -------------------------------------------------
    # Snapshot
    # -------------------------------------------------

    async def state(self) -> Snapshot:
        """Positions, ranked scores and coins for broadcast.

        Three independent reads; slight staleness between them is fine for
        rendering.
        """
        positions = await self.store.all_player_positions()
        scores = await self.store.ranked_scores()
        coins = await self.store.all_coins()
        return {
            "positions": positions,
            "scores": scores,
            "coins": coins,
        }
