"""Database package helpers.

Expose connection and initialization helpers so callers can import
from `db` directly (e.g. `from db import connect, init_db`).
"""

from .connections import connect, init_db

__all__ = ["connect", "init_db"]
