import logging
from functools import wraps
from typing import Mapping, Optional

from redis.exceptions import (
    ConnectionError as RedisConnectionError,
    TimeoutError as RedisTimeoutError,
    ResponseError,
)

from infrastructure.redis import RedisClient
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


# Record layout:
#
# player:<name>      string       "<x>,<y>"
# scores             sorted set   playername with score
# coins              hash         { "<x>,<y>": coinvalue }
# usednames          set          all used names, to check quickly if a name has been used
# joined             hash         { playername: arrival sequence } (tie order for scores)
# joined:seq         counter      last arrival sequence handed out
# coins:generation   counter      bumped on every coin field reset
#
# Every multi-key batch runs as one Lua script, so Redis applies it whole.
# Scripts are registered once per client and sent as EVALSHA.

_ADMIT_SCRIPT = """
if redis.call('SADD', KEYS[1], ARGV[1]) == 0 then
  return 0
end
redis.call('SET', KEYS[2], ARGV[2])
redis.call('ZADD', KEYS[3], 0, ARGV[1])
if redis.call('HEXISTS', KEYS[4], ARGV[1]) == 0 then
  redis.call('HSET', KEYS[4], ARGV[1], redis.call('INCR', KEYS[5]))
end
return 1
"""

_INIT_SCORE_SCRIPT = """
redis.call('ZADD', KEYS[1], ARGV[2], ARGV[1])
if redis.call('HEXISTS', KEYS[2], ARGV[1]) == 0 then
  redis.call('HSET', KEYS[2], ARGV[1], redis.call('INCR', KEYS[3]))
end
return 1
"""

_INCREMENT_SCRIPT = """
if not redis.call('ZSCORE', KEYS[1], ARGV[1]) then
  return false
end
return redis.call('ZINCRBY', KEYS[1], ARGV[2], ARGV[1])
"""

# Returns {collected, coins_left, generation}; collected is -1 for an
# unknown player and -2 when the stored position is not the expected origin.
_COMMIT_MOVE_SCRIPT = """
local current = redis.call('GET', KEYS[1])
if not current then
  return {-1, 0, 0}
end
if current ~= ARGV[2] then
  return {-2, 0, 0}
end
local value = tonumber(redis.call('HGET', KEYS[2], ARGV[3]) or '0')
if value > 0 then
  redis.call('HDEL', KEYS[2], ARGV[3])
  redis.call('ZINCRBY', KEYS[3], value, ARGV[1])
end
redis.call('SET', KEYS[1], ARGV[3])
return {value, redis.call('HLEN', KEYS[2]), tonumber(redis.call('GET', KEYS[4]) or '0')}
"""

# ARGV[1] is the expected generation ('' for an unconditional reset),
# followed by cell/value pairs.
_RESET_COINS_SCRIPT = """
local generation = tonumber(redis.call('GET', KEYS[2]) or '0')
if ARGV[1] ~= '' then
  if tonumber(ARGV[1]) ~= generation or redis.call('HLEN', KEYS[1]) > 0 then
    return 0
  end
end
redis.call('DEL', KEYS[1])
for i = 2, #ARGV, 2 do
  redis.call('HSETNX', KEYS[1], ARGV[i], ARGV[i + 1])
end
redis.call('INCR', KEYS[2])
return 1
"""


def _translate_errors(func):
    """Surface Redis connection failures and timeouts as StoreUnavailable."""
    @wraps(func)
    async def wrapper(self, *args, **kwargs):
        try:
            return await func(self, *args, **kwargs)
        except (RedisConnectionError, RedisTimeoutError) as exc:
            logger.error(f"[STORE] Redis call {func.__name__} failed: {exc}", exc_info=True)
            raise StoreUnavailable(f"Redis unavailable during {func.__name__}") from exc
        except ResponseError as exc:
            raise UnexpectedResult(f"Redis rejected {func.__name__}: {exc}") from exc
    return wrapper


class RedisWorldStore(WorldStore):

    def __init__(self, client: RedisClient, *, prefix: str = ""):
        self.client = client
        self.prefix = prefix
        logger.info(f"[STORE] RedisWorldStore initialized for {client.url} (prefix={prefix!r})")

    def _key(self, name: str) -> str:
        return f"{self.prefix}{name}"

    def _player_key(self, name: str) -> str:
        return self._key(f"player:{name}")

    @_translate_errors
    async def init(self) -> None:
        await self.client.init()
        logger.info("[STORE] Redis connection established")

    async def close(self) -> None:
        await self.client.close()

    # -------------------------------------------------
    # Name registry
    # -------------------------------------------------

    @_translate_errors
    async def claim_name(self, name: str) -> bool:
        added = await self.client.get().sadd(self._key("usednames"), name)
        return added == 1

    # -------------------------------------------------
    # Positions
    # -------------------------------------------------

    @_translate_errors
    async def set_position(self, name: str, point: Point) -> None:
        await self.client.get().set(self._player_key(name), cell_key(point))

    @_translate_errors
    async def get_position(self, name: str) -> Point:
        raw = await self.client.get().get(self._player_key(name))
        if raw is None:
            raise UnknownPlayer(f"Player {name} has no position")
        return parse_cell(raw)

    @_translate_errors
    async def all_player_positions(self) -> dict[str, Point]:
        r = self.client.get()
        names = sorted(await r.smembers(self._key("usednames")))
        if not names:
            return {}
        raw_positions = await r.mget([self._player_key(n) for n in names])
        return {
            name: parse_cell(raw)
            for name, raw in zip(names, raw_positions)
            if raw is not None
        }

    # -------------------------------------------------
    # Score board
    # -------------------------------------------------

    @_translate_errors
    async def init_score(self, name: str, value: int = 0) -> None:
        await self.client.script(_INIT_SCORE_SCRIPT)(
            keys=[self._key("scores"), self._key("joined"), self._key("joined:seq")],
            args=[name, value],
        )

    @_translate_errors
    async def increment_score(self, name: str, delta: int) -> int:
        res = await self.client.script(_INCREMENT_SCRIPT)(keys=[self._key("scores")], args=[name, delta])
        if res is None:
            raise UnknownPlayer(f"Player {name} has no score")
        return int(float(res))

    @_translate_errors
    async def ranked_scores(self) -> list[tuple[str, int]]:
        async with self.client.get().pipeline(transaction=True) as pipe:
            pipe.zrange(self._key("scores"), 0, -1, withscores=True)
            pipe.hgetall(self._key("joined"))
            scores, joined = await pipe.execute()
        return self.rank(
            (name, int(score), int(joined.get(name, 0)))
            for name, score in scores
        )

    # -------------------------------------------------
    # Coin field
    # -------------------------------------------------

    @_translate_errors
    async def coin_at(self, point: Point) -> Optional[int]:
        raw = await self.client.get().hget(self._key("coins"), cell_key(point))
        return int(raw) if raw is not None else None

    @_translate_errors
    async def set_coin(self, point: Point, value: int) -> bool:
        return bool(await self.client.get().hsetnx(self._key("coins"), cell_key(point), value))

    @_translate_errors
    async def remove_coin(self, point: Point) -> bool:
        return await self.client.get().hdel(self._key("coins"), cell_key(point)) == 1

    @_translate_errors
    async def clear_all_coins(self) -> None:
        await self.client.get().delete(self._key("coins"))

    @_translate_errors
    async def coin_count(self) -> int:
        return await self.client.get().hlen(self._key("coins"))

    @_translate_errors
    async def all_coins(self) -> dict[Point, int]:
        raw = await self.client.get().hgetall(self._key("coins"))
        return {parse_cell(cell): int(value) for cell, value in raw.items()}

    # -------------------------------------------------
    # Atomic batches
    # -------------------------------------------------

    @_translate_errors
    async def admit_player(self, name: str, point: Point) -> bool:
        res = await self.client.script(_ADMIT_SCRIPT)(
            keys=[
                self._key("usednames"),
                self._player_key(name),
                self._key("scores"),
                self._key("joined"),
                self._key("joined:seq"),
            ],
            args=[name, cell_key(point)],
        )
        return res == 1

    @_translate_errors
    async def commit_move(self, name: str, origin: Point, destination: Point) -> MoveCommit:
        collected, coins_left, generation = await self.client.script(_COMMIT_MOVE_SCRIPT)(
            keys=[
                self._player_key(name),
                self._key("coins"),
                self._key("scores"),
                self._key("coins:generation"),
            ],
            args=[name, cell_key(origin), cell_key(destination)],
        )
        if collected == -1:
            raise UnknownPlayer(f"Player {name} has no position")
        if collected == -2:
            raise PositionConflict(f"Player {name} is no longer at {cell_key(origin)}")
        return MoveCommit(int(collected), int(coins_left), int(generation))

    @_translate_errors
    async def coin_field_state(self) -> CoinFieldState:
        async with self.client.get().pipeline(transaction=True) as pipe:
            pipe.hlen(self._key("coins"))
            pipe.get(self._key("coins:generation"))
            count, generation = await pipe.execute()
        return CoinFieldState(int(count), int(generation or 0))

    @_translate_errors
    async def reset_coins(
        self,
        coins: Mapping[Point, int],
        *,
        expected_generation: Optional[int] = None,
    ) -> bool:
        args: list = ["" if expected_generation is None else str(expected_generation)]
        for point, value in coins.items():
            args.extend((cell_key(point), value))
        res = await self.client.script(_RESET_COINS_SCRIPT)(
            keys=[self._key("coins"), self._key("coins:generation")],
            args=args,
        )
        return res == 1
