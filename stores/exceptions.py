"""
Shared exception definitions for the world store and the game rules.

Hierarchy:
- StoreError (base for all store exceptions)
  - StoreUnavailable (backend unreachable, timed out or locked)
  - UnexpectedResult
  - WorldStoreError (world-state errors)
- GameRuleError (request validation, raised before the store is touched)
"""


# =========================
# Base exception
# =========================

class StoreError(Exception):
    """Base exception for all store-related errors."""
    retryable: bool = True


class StoreUnavailable(StoreError):
    retryable = True


class UnexpectedResult(StoreError):
    retryable = True
    #aka, the "how the heck did this happen" exception, such as a move that keeps losing its compare-and-set


# =========================
# WorldStore exceptions
# =========================

class WorldStoreError(StoreError):
    """Base exception for world store errors."""
    retryable = True


class NameTaken(WorldStoreError):
    retryable = False


class UnknownPlayer(WorldStoreError):
    retryable = False


class PositionConflict(WorldStoreError):
    """The player's stored position changed between read and commit."""
    retryable = True


# =========================
# Game rule exceptions
# =========================

class GameRuleError(Exception):
    """Base exception for requests the game rules reject outright."""
    retryable: bool = False


class InvalidName(GameRuleError):
    retryable = False


class InvalidDirection(GameRuleError):
    retryable = False
