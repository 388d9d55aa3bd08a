import asyncio
import logging
import sqlite3
from contextlib import asynccontextmanager
from typing import Mapping, Optional

import aiosqlite

from db import connect, init_db
from models.domain_models import Point, CoinFieldState, MoveCommit
from utils.geometry import cell_key, parse_cell
from .exceptions import (
    StoreUnavailable,
    UnexpectedResult,
    UnknownPlayer,
    PositionConflict,
)
from .world_store import WorldStore

logger = logging.getLogger(__name__)


class SqliteWorldStore(WorldStore):
    """WorldStore backed by one SQLite file.

    Atomic batches are single BEGIN IMMEDIATE transactions, which also
    serializes writers from other processes sharing the file. Within this
    process the connection is shared, so an asyncio.Lock keeps coroutines
    from interleaving statements inside each other's transactions.
    """

    def __init__(self, db_path: str, *, timeout_s: float = 5.0):
        self.db_path = db_path
        self.timeout_s = timeout_s
        self.db: aiosqlite.Connection = None
        self._lock = asyncio.Lock()
        logger.info(f"[STORE] SqliteWorldStore initialized with db_path: {db_path}")

    async def init(self):
        """Create the schema if needed and open the connection."""
        try:
            await init_db(self.db_path)
            self.db = await connect(self.db_path, {"journal_mode": "DELETE"}, timeout=self.timeout_s)
        except sqlite3.OperationalError as exc:
            raise StoreUnavailable(f"Could not open {self.db_path}") from exc
        logger.info(f"[STORE] Database connection established to {self.db_path}")

    async def close(self):
        """Close database connection."""
        if self.db:
            await self.db.close()
            self.db = None

    @asynccontextmanager
    async def _read(self):
        async with self._lock:
            try:
                yield self.db
            except sqlite3.OperationalError as exc:
                logger.error(f"[STORE] SQLite read failed: {exc}", exc_info=True)
                raise StoreUnavailable(str(exc)) from exc

    async def _rollback(self):
        # Shielded so a cancelled caller still leaves the shared connection
        # outside any transaction. A no-op when nothing is open.
        await asyncio.shield(self.db.rollback())

    @asynccontextmanager
    async def _transaction(self):
        async with self._lock:
            try:
                await self.db.execute("BEGIN IMMEDIATE")
            except sqlite3.OperationalError as exc:
                logger.error(f"[STORE] Could not begin transaction: {exc}", exc_info=True)
                raise StoreUnavailable(str(exc)) from exc
            except BaseException:
                # Cancelled while BEGIN was queued; it may still run.
                await self._rollback()
                raise
            try:
                yield self.db
                await self.db.commit()
            except sqlite3.OperationalError as exc:
                await self._rollback()
                logger.error(f"[STORE] SQLite transaction failed: {exc}", exc_info=True)
                raise StoreUnavailable(str(exc)) from exc
            except sqlite3.IntegrityError as exc:
                await self._rollback()
                raise UnexpectedResult("Unexpected integrity error in world store") from exc
            except BaseException:
                await self._rollback()
                raise

    # -------------------------------------------------
    # Name registry
    # -------------------------------------------------

    async def claim_name(self, name: str) -> bool:
        async with self._transaction() as db:
            cur = await db.execute("INSERT OR IGNORE INTO used_names (name) VALUES (?)", (name,))
            return cur.rowcount == 1

    # -------------------------------------------------
    # Positions
    # -------------------------------------------------

    async def set_position(self, name: str, point: Point) -> None:
        async with self._transaction() as db:
            await db.execute(
                """
                INSERT INTO players (name, position) VALUES (?, ?)
                ON CONFLICT(name) DO UPDATE SET position = excluded.position
                """,
                (name, cell_key(point)),
            )

    async def get_position(self, name: str) -> Point:
        async with self._read() as db:
            cur = await db.execute("SELECT position FROM players WHERE name = ?", (name,))
            row = await cur.fetchone()
        if row is None:
            raise UnknownPlayer(f"Player {name} has no position")
        return parse_cell(row["position"])

    async def all_player_positions(self) -> dict[str, Point]:
        async with self._read() as db:
            cur = await db.execute("SELECT name, position FROM players ORDER BY name")
            rows = await cur.fetchall()
        return {r["name"]: parse_cell(r["position"]) for r in rows}

    # -------------------------------------------------
    # Score board
    # -------------------------------------------------

    async def init_score(self, name: str, value: int = 0) -> None:
        async with self._transaction() as db:
            await self._init_score(db, name, value)

    @staticmethod
    async def _init_score(db: aiosqlite.Connection, name: str, value: int) -> None:
        # Upsert keeps the original seq, so arrival order survives a reset.
        await db.execute(
            """
            INSERT INTO scores (name, score) VALUES (?, ?)
            ON CONFLICT(name) DO UPDATE SET score = excluded.score
            """,
            (name, value),
        )

    async def increment_score(self, name: str, delta: int) -> int:
        async with self._transaction() as db:
            cur = await db.execute(
                "UPDATE scores SET score = score + ? WHERE name = ?",
                (delta, name),
            )
            if cur.rowcount == 0:
                raise UnknownPlayer(f"Player {name} has no score")
            cur = await db.execute("SELECT score FROM scores WHERE name = ?", (name,))
            row = await cur.fetchone()
            return row["score"]

    async def ranked_scores(self) -> list[tuple[str, int]]:
        async with self._read() as db:
            cur = await db.execute("SELECT name, score FROM scores ORDER BY score DESC, seq ASC")
            rows = await cur.fetchall()
        return [(r["name"], r["score"]) for r in rows]

    # -------------------------------------------------
    # Coin field
    # -------------------------------------------------

    async def coin_at(self, point: Point) -> Optional[int]:
        async with self._read() as db:
            cur = await db.execute("SELECT value FROM coins WHERE cell = ?", (cell_key(point),))
            row = await cur.fetchone()
        return row["value"] if row is not None else None

    async def set_coin(self, point: Point, value: int) -> bool:
        async with self._transaction() as db:
            cur = await db.execute(
                "INSERT OR IGNORE INTO coins (cell, value) VALUES (?, ?)",
                (cell_key(point), value),
            )
            return cur.rowcount == 1

    async def remove_coin(self, point: Point) -> bool:
        async with self._transaction() as db:
            cur = await db.execute("DELETE FROM coins WHERE cell = ?", (cell_key(point),))
            return cur.rowcount == 1

    async def clear_all_coins(self) -> None:
        async with self._transaction() as db:
            await db.execute("DELETE FROM coins")

    async def coin_count(self) -> int:
        async with self._read() as db:
            cur = await db.execute("SELECT COUNT(*) FROM coins")
            row = await cur.fetchone()
        return row[0]

    async def all_coins(self) -> dict[Point, int]:
        async with self._read() as db:
            cur = await db.execute("SELECT cell, value FROM coins")
            rows = await cur.fetchall()
        return {parse_cell(r["cell"]): r["value"] for r in rows}

    # -------------------------------------------------
    # Atomic batches
    # -------------------------------------------------

    async def admit_player(self, name: str, point: Point) -> bool:
        async with self._transaction() as db:
            cur = await db.execute("INSERT OR IGNORE INTO used_names (name) VALUES (?)", (name,))
            if cur.rowcount == 0:
                return False
            await db.execute(
                "INSERT INTO players (name, position) VALUES (?, ?)",
                (name, cell_key(point)),
            )
            await self._init_score(db, name, 0)
            return True

    async def commit_move(self, name: str, origin: Point, destination: Point) -> MoveCommit:
        async with self._transaction() as db:
            cur = await db.execute("SELECT position FROM players WHERE name = ?", (name,))
            row = await cur.fetchone()
            if row is None:
                raise UnknownPlayer(f"Player {name} has no position")
            if row["position"] != cell_key(origin):
                raise PositionConflict(f"Player {name} is at {row['position']}, not {cell_key(origin)}")

            dest_key = cell_key(destination)
            cur = await db.execute("SELECT value FROM coins WHERE cell = ?", (dest_key,))
            coin = await cur.fetchone()
            collected = coin["value"] if coin is not None else 0
            if collected:
                await db.execute("DELETE FROM coins WHERE cell = ?", (dest_key,))
                await db.execute(
                    "UPDATE scores SET score = score + ? WHERE name = ?",
                    (collected, name),
                )
            await db.execute("UPDATE players SET position = ? WHERE name = ?", (dest_key, name))

            cur = await db.execute(
                "SELECT (SELECT COUNT(*) FROM coins) AS coins_left, generation FROM coin_field WHERE id = 0"
            )
            state = await cur.fetchone()
            return MoveCommit(collected, state["coins_left"], state["generation"])

    async def coin_field_state(self) -> CoinFieldState:
        async with self._read() as db:
            cur = await db.execute(
                "SELECT (SELECT COUNT(*) FROM coins) AS count, generation FROM coin_field WHERE id = 0"
            )
            row = await cur.fetchone()
        return CoinFieldState(row["count"], row["generation"])

    async def reset_coins(
        self,
        coins: Mapping[Point, int],
        *,
        expected_generation: Optional[int] = None,
    ) -> bool:
        async with self._transaction() as db:
            if expected_generation is not None:
                cur = await db.execute(
                    "SELECT (SELECT COUNT(*) FROM coins) AS count, generation FROM coin_field WHERE id = 0"
                )
                row = await cur.fetchone()
                if row["generation"] != expected_generation or row["count"] > 0:
                    return False
            await db.execute("DELETE FROM coins")
            await db.executemany(
                "INSERT OR IGNORE INTO coins (cell, value) VALUES (?, ?)",
                [(cell_key(point), value) for point, value in coins.items()],
            )
            await db.execute("UPDATE coin_field SET generation = generation + 1 WHERE id = 0")
            return True
