import asyncio
import itertools
import logging
from typing import Mapping, Optional

from models.domain_models import Point, CoinFieldState, MoveCommit
from .exceptions import UnknownPlayer, PositionConflict
from .world_store import WorldStore

logger = logging.getLogger(__name__)


class MemoryWorldStore(WorldStore):
    """In-process WorldStore.

    One asyncio.Lock guards every mutation, so each method is a single
    indivisible step for other coroutines in the same event loop. Each call
    yields to the loop once before taking the lock, the way an
    out-of-process store suspends the caller on I/O.
    """

    def __init__(self):
        self._lock = asyncio.Lock()
        self._used_names: set[str] = set()
        self._positions: dict[str, Point] = {}
        self._scores: dict[str, int] = {}
        self._arrival: dict[str, int] = {}
        self._seq = itertools.count()
        self._coins: dict[Point, int] = {}
        self._generation = 0

    async def init(self) -> None:
        logger.info("[STORE] MemoryWorldStore ready")

    async def close(self) -> None:
        return None

    # -------------------------------------------------
    # Name registry / positions / scores
    # -------------------------------------------------

    async def claim_name(self, name: str) -> bool:
        await asyncio.sleep(0)
        async with self._lock:
            if name in self._used_names:
                return False
            self._used_names.add(name)
            return True

    async def set_position(self, name: str, point: Point) -> None:
        await asyncio.sleep(0)
        async with self._lock:
            self._positions[name] = Point(*point)

    async def get_position(self, name: str) -> Point:
        await asyncio.sleep(0)
        async with self._lock:
            try:
                return self._positions[name]
            except KeyError:
                raise UnknownPlayer(f"Player {name} has no position") from None

    async def all_player_positions(self) -> dict[str, Point]:
        await asyncio.sleep(0)
        async with self._lock:
            return dict(self._positions)

    async def init_score(self, name: str, value: int = 0) -> None:
        await asyncio.sleep(0)
        async with self._lock:
            self._init_score_locked(name, value)

    def _init_score_locked(self, name: str, value: int) -> None:
        self._scores[name] = value
        if name not in self._arrival:
            self._arrival[name] = next(self._seq)

    async def increment_score(self, name: str, delta: int) -> int:
        await asyncio.sleep(0)
        async with self._lock:
            if name not in self._scores:
                raise UnknownPlayer(f"Player {name} has no score")
            self._scores[name] += delta
            return self._scores[name]

    async def ranked_scores(self) -> list[tuple[str, int]]:
        await asyncio.sleep(0)
        async with self._lock:
            return self.rank(
                (name, score, self._arrival[name]) for name, score in self._scores.items()
            )

    # -------------------------------------------------
    # Coin field
    # -------------------------------------------------

    async def coin_at(self, point: Point) -> Optional[int]:
        await asyncio.sleep(0)
        async with self._lock:
            return self._coins.get(Point(*point))

    async def set_coin(self, point: Point, value: int) -> bool:
        await asyncio.sleep(0)
        async with self._lock:
            point = Point(*point)
            if point in self._coins:
                return False
            self._coins[point] = value
            return True

    async def remove_coin(self, point: Point) -> bool:
        await asyncio.sleep(0)
        async with self._lock:
            return self._coins.pop(Point(*point), None) is not None

    async def clear_all_coins(self) -> None:
        await asyncio.sleep(0)
        async with self._lock:
            self._coins.clear()

    async def coin_count(self) -> int:
        await asyncio.sleep(0)
        async with self._lock:
            return len(self._coins)

    async def all_coins(self) -> dict[Point, int]:
        await asyncio.sleep(0)
        async with self._lock:
            return dict(self._coins)

    # -------------------------------------------------
    # Atomic batches
    # -------------------------------------------------

    async def admit_player(self, name: str, point: Point) -> bool:
        await asyncio.sleep(0)
        async with self._lock:
            if name in self._used_names:
                return False
            self._used_names.add(name)
            self._positions[name] = Point(*point)
            self._init_score_locked(name, 0)
            return True

    async def commit_move(self, name: str, origin: Point, destination: Point) -> MoveCommit:
        await asyncio.sleep(0)
        async with self._lock:
            current = self._positions.get(name)
            if current is None:
                raise UnknownPlayer(f"Player {name} has no position")
            if current != tuple(origin):
                raise PositionConflict(f"Player {name} is at {current}, not {tuple(origin)}")
            if name not in self._scores:
                raise UnknownPlayer(f"Player {name} has no score")
            destination = Point(*destination)
            collected = self._coins.pop(destination, 0)
            if collected:
                self._scores[name] += collected
            self._positions[name] = destination
            return MoveCommit(collected, len(self._coins), self._generation)

    async def coin_field_state(self) -> CoinFieldState:
        await asyncio.sleep(0)
        async with self._lock:
            return CoinFieldState(len(self._coins), self._generation)

    async def reset_coins(
        self,
        coins: Mapping[Point, int],
        *,
        expected_generation: Optional[int] = None,
    ) -> bool:
        await asyncio.sleep(0)
        async with self._lock:
            if expected_generation is not None:
                if expected_generation != self._generation or self._coins:
                    return False
            self._coins.clear()
            for point, value in coins.items():
                self._coins.setdefault(Point(*point), value)
            self._generation += 1
            return True
