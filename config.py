import os
from pathlib import Path

# Which WorldStore backend the app uses: "redis", "sqlite" or "memory".
STORE_BACKEND = os.environ.get("COINS_STORE_BACKEND", "redis")

REDIS_URL = os.environ.get("COINS_REDIS_URL", "redis://localhost:6379/0")
# Prefix for every Redis key so several worlds can share one server.
REDIS_PREFIX = os.environ.get("COINS_REDIS_PREFIX", "")

# Path to the SQLite database file used by the sqlite backend.
DB_PATH = os.environ.get("COINS_DB_PATH", str(Path(__file__).parent / "coins.sqlite3"))

STORE_TIMEOUT_S = float(os.environ.get("COINS_STORE_TIMEOUT_S", "5"))

# How often the background job re-checks for an empty coin field.
REFILL_CHECK_INTERVAL_S = int(os.environ.get("COINS_REFILL_CHECK_INTERVAL_S", "10"))

LOG_LEVEL = os.environ.get("COINS_LOG_LEVEL", "INFO")
