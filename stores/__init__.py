# Abstractions
from .world_store import WorldStore

# Exceptions
from .exceptions import (
    StoreError,
    StoreUnavailable,
    UnexpectedResult,
    WorldStoreError,
    NameTaken,
    UnknownPlayer,
    PositionConflict,
    GameRuleError,
    InvalidName,
    InvalidDirection,
)

# Concrete implementations
from .memory_world_store import MemoryWorldStore
from .sqlite_world_store import SqliteWorldStore
from .redis_world_store import RedisWorldStore

__all__ = [
    # Abstractions
    "WorldStore",
    "MemoryWorldStore",
    "SqliteWorldStore",
    "RedisWorldStore",
    # Exceptions
    "StoreError",
    "StoreUnavailable",
    "UnexpectedResult",
    "WorldStoreError",
    "NameTaken",
    "UnknownPlayer",
    "PositionConflict",
    "GameRuleError",
    "InvalidName",
    "InvalidDirection",
    # Runtime helpers
    "create_world_store",
    "init_world_store",
    "get_world_store",
    "close_world_store",
]


# Runtime singleton and initialization helpers
import logging
from typing import Optional
import config

logger = logging.getLogger(__name__)

world_store: Optional[WorldStore] = None


def create_world_store(backend: Optional[str] = None) -> WorldStore:
    """Build (but do not init) the WorldStore selected by `backend` or config."""
    backend = (backend or config.STORE_BACKEND).lower()
    if backend == "redis":
        from infrastructure import create_redis_client
        client = create_redis_client(config.REDIS_URL, timeout_s=config.STORE_TIMEOUT_S)
        return RedisWorldStore(client, prefix=config.REDIS_PREFIX)
    if backend == "sqlite":
        return SqliteWorldStore(config.DB_PATH, timeout_s=config.STORE_TIMEOUT_S)
    if backend == "memory":
        return MemoryWorldStore()
    raise ValueError(f"Unknown store backend: {backend!r}")


async def init_world_store(store: Optional[WorldStore] = None) -> WorldStore:
    """Initialize the module-level store singleton for this process.

    Safe to call more than once; later calls return the existing store.
    Pass `store` to install a specific instance (tests do this).
    """
    global world_store

    if world_store is not None:
        return world_store

    candidate = store or create_world_store()
    await candidate.init()
    world_store = candidate
    logger.info(f"[STORE] World store ready: {type(candidate).__name__}")
    return world_store


def get_world_store() -> WorldStore:
    """Get the world store; raises if init_world_store() has not run."""
    if world_store is None:
        raise RuntimeError("World store not initialized; call init_world_store() first")
    return world_store


async def close_world_store() -> None:
    global world_store
    if world_store is not None:
        await world_store.close()
        world_store = None
