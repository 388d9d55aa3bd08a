from typing import Optional

try:
    import redis.asyncio as redis
    from redis.commands.core import AsyncScript
except Exception as e:
    raise ImportError(
        "redis.asyncio is required for infrastructure.redis. Install 'redis>=5.0.1'."
    ) from e


class RedisClient:
    """Async Redis connection with lifecycle management and Lua script caching.

    Usage:
        client = RedisClient.from_url("redis://localhost:6379/0", timeout_s=2.0)
        await client.init()
        admit = client.script(ADMIT_LUA)
        await admit(keys=[...], args=[...])
        await client.close()
    """

    def __init__(self, url: str, *, decode_responses: bool = True, timeout_s: Optional[float] = None):
        self.url = url
        self.decode_responses = decode_responses
        self.timeout_s = timeout_s
        self._client: Optional[redis.Redis] = None
        self._scripts: dict[str, AsyncScript] = {}

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "RedisClient":
        return cls(url, **kwargs)

    async def init(self) -> None:
        """Open the pool and ping the server. Must be awaited."""
        if self._client is not None:
            return
        self._client = redis.from_url(
            self.url,
            decode_responses=self.decode_responses,
            socket_timeout=self.timeout_s,
            socket_connect_timeout=self.timeout_s,
        )
        # verify connectivity
        await self._client.ping()

    async def close(self) -> None:
        if self._client is None:
            return
        await self._client.aclose()
        self._client = None
        self._scripts.clear()

    def get(self) -> redis.Redis:
        """Return the underlying `redis.Redis` client. Raises if not initialized."""
        if self._client is None:
            raise RuntimeError("Redis client not initialized; call init() first")
        return self._client

    def script(self, source: str) -> AsyncScript:
        """Registered Lua script for `source`.

        Calls go out as EVALSHA and fall back to EVAL (loading the script)
        when the server does not know the hash yet, e.g. after a restart.
        """
        script = self._scripts.get(source)
        if script is None:
            script = self.get().register_script(source)
            self._scripts[source] = script
        return script


def create_redis_client(url: str, *, decode_responses: bool = True, timeout_s: Optional[float] = None) -> RedisClient:
    """Create (but do not init) a RedisClient. Use `init()` to open."""
    return RedisClient(url, decode_responses=decode_responses, timeout_s=timeout_s)
