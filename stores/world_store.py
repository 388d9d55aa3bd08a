from typing import Iterable, Mapping, Optional
from abc import ABC, abstractmethod

from models.domain_models import Point, CoinFieldState, MoveCommit
from .exceptions import (
    StoreUnavailable,
    UnknownPlayer,
    PositionConflict,
)


# =========================
# WorldStore Interface
# =========================

class WorldStore(ABC):
    """
    The WorldStore is the sole authority over world state.

    Invariants:
    - A name is claimed at most once, ever
    - Claim, position and score of a player are created together
    - A move's coin removal, score credit and position write commit together
    - The coin field is reset at most once per generation
    - All concurrency control lives here

    Every method may raise StoreUnavailable when the backend fails; no
    batch is left half-applied when it does.
    """

    # -------------------------------------------------
    # Lifecycle
    # -------------------------------------------------

    @abstractmethod
    async def init(self) -> None:
        """Open connections / create schema. Call this after construction."""

    @abstractmethod
    async def close(self) -> None:
        """Release connections."""


    # -------------------------------------------------
    # Name registry
    # -------------------------------------------------

    @abstractmethod
    async def claim_name(self, name: str) -> bool:
        """Add `name` to the registry; True if it was not there before."""


    # -------------------------------------------------
    # Positions
    # -------------------------------------------------

    @abstractmethod
    async def set_position(self, name: str, point: Point) -> None:
        """Overwrite a player's position record."""

    @abstractmethod
    async def get_position(self, name: str) -> Point:
        """Return a player's position.

        Raises:
            UnknownPlayer: If there is no position record for `name`.
        """

    @abstractmethod
    async def all_player_positions(self) -> dict[str, Point]:
        """Return name -> position for every player with a position record."""


    # -------------------------------------------------
    # Score board
    # -------------------------------------------------

    @abstractmethod
    async def init_score(self, name: str, value: int = 0) -> None:
        """Create (or reset) a score-board entry, recording its arrival order once."""

    @abstractmethod
    async def increment_score(self, name: str, delta: int) -> int:
        """Add `delta` to a score and return the new score."""

    @abstractmethod
    async def ranked_scores(self) -> list[tuple[str, int]]:
        """
        Return (name, score) pairs, highest score first.
        Ties keep arrival order.
        """


    # -------------------------------------------------
    # Coin field
    # -------------------------------------------------

    @abstractmethod
    async def coin_at(self, point: Point) -> Optional[int]:
        """Return the coin value at `point`, or None."""

    @abstractmethod
    async def set_coin(self, point: Point, value: int) -> bool:
        """Place a coin unless the cell is occupied. True if placed."""

    @abstractmethod
    async def remove_coin(self, point: Point) -> bool:
        """Remove the coin at `point`. True if there was one."""

    @abstractmethod
    async def clear_all_coins(self) -> None:
        """Remove every coin (does not bump the generation)."""

    @abstractmethod
    async def coin_count(self) -> int:
        """Return the number of coins on the field."""

    @abstractmethod
    async def all_coins(self) -> dict[Point, int]:
        """Return position -> value for every coin."""


    # -------------------------------------------------
    # Atomic batches
    # -------------------------------------------------

    @abstractmethod
    async def admit_player(self, name: str, point: Point) -> bool:
        """Atomically claim `name`, set its position and a zero score.

        Returns False (and writes nothing) if the name was already claimed.
        """

    @abstractmethod
    async def commit_move(self, name: str, origin: Point, destination: Point) -> MoveCommit:
        """Atomically move a player from `origin` to `destination`.

        Any coin at `destination` is removed and credited to the player in
        the same step.

        Raises:
            UnknownPlayer: If `name` has no position record.
            PositionConflict: If the stored position is no longer `origin`.
        """

    @abstractmethod
    async def coin_field_state(self) -> CoinFieldState:
        """Return the coin count and field generation, read together."""

    @abstractmethod
    async def reset_coins(
        self,
        coins: Mapping[Point, int],
        *,
        expected_generation: Optional[int] = None,
    ) -> bool:
        """Atomically replace the coin field and bump its generation.

        With `expected_generation` the reset only applies while the field is
        empty and still at that generation, so concurrent refill attempts
        for one depletion succeed exactly once. Returns True if applied.
        """


    # -------------------------------------------------
    # Helpers shared by implementations
    # -------------------------------------------------

    @staticmethod
    def rank(entries: Iterable[tuple[str, int, int]]) -> list[tuple[str, int]]:
        """Order (name, score, arrival) triples by score desc, then arrival."""
        ordered = sorted(entries, key=lambda e: (-e[1], e[2]))
        return [(name, score) for name, score, _ in ordered]
