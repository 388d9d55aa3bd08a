"""Infrastructure helpers (Redis, etc.)

Expose a small public surface for the Redis client used by the Redis world store.
"""
from .redis import (
    RedisClient,
    create_redis_client,
)

__all__ = [
    "RedisClient",
    "create_redis_client",
]
