"""Periodic jobs run by the app scheduler."""
import logging
from typing import Awaitable, Callable, Optional

from stores import StoreError
from .game_engine import GameEngine

logger = logging.getLogger(__name__)


async def check_coin_field(
	engine: GameEngine,
	on_refill: Optional[Callable[[], Awaitable[None]]] = None,
) -> bool:
	"""Refill the coin field if a previous refill never happened.

	Store failures are logged and left for the next run.
	"""
	try:
		refilled = await engine.ensure_coins()
	except StoreError as exc:
		logger.error(f"Coin field check failed: {exc.__class__.__name__}: {exc}", exc_info=True)
		return False
	if refilled:
		logger.warning("Coin field was empty; refilled by the maintenance job")
		if on_refill is not None:
			await on_refill()
	return refilled
