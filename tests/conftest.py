# tests/conftest.py
import asyncio
import os
import sys
import uuid
from pathlib import Path

import pytest

# Add repo root (parent of this file) to import search path
repo_root = Path(__file__).resolve().parents[1]
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from infrastructure import create_redis_client
from stores import MemoryWorldStore, SqliteWorldStore, RedisWorldStore

REDIS_URL = os.environ.get("COINS_TEST_REDIS_URL")


def _build_store(backend: str, tmp_path: Path):
    if backend == "memory":
        return MemoryWorldStore()
    if backend == "sqlite":
        return SqliteWorldStore(str(tmp_path / "world.sqlite3"))
    prefix = f"test:{uuid.uuid4().hex}:"
    return RedisWorldStore(create_redis_client(REDIS_URL, timeout_s=2.0), prefix=prefix)


async def _drop_redis_keys(store: RedisWorldStore) -> None:
    r = store.client.get()
    keys = [k async for k in r.scan_iter(match=f"{store.prefix}*")]
    if keys:
        await r.delete(*keys)


@pytest.fixture(params=["memory", "sqlite", "redis"])
def run_with_store(request, tmp_path):
    """Run `scenario(store)` to completion against a fresh, initialized store.

    The redis variant only runs when COINS_TEST_REDIS_URL points at a server.
    """
    if request.param == "redis" and not REDIS_URL:
        pytest.skip("COINS_TEST_REDIS_URL not set")

    def run(scenario):
        async def main():
            store = _build_store(request.param, tmp_path)
            await store.init()
            try:
                return await scenario(store)
            finally:
                if isinstance(store, RedisWorldStore):
                    await _drop_redis_keys(store)
                await store.close()

        return asyncio.run(main())

    return run


@pytest.fixture()
def run_with_memory_store():
    def run(scenario):
        async def main():
            store = MemoryWorldStore()
            await store.init()
            return await scenario(store)

        return asyncio.run(main())

    return run
