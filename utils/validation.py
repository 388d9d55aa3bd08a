"""Validation helpers for player names.

A name is any string of 1 to MAX_PLAYER_NAME_LENGTH characters; uniqueness
is the store's job, not this module's.
"""
from typing import Any

MAX_PLAYER_NAME_LENGTH = 32


def normalize_name(raw: Any) -> str:
	"""Strip surrounding whitespace from a claimed name, as sessions do before claiming."""
	if not isinstance(raw, str):
		return ""
	return raw.strip()


def is_valid_name(s: str, max_length: int = MAX_PLAYER_NAME_LENGTH) -> bool:
	"""Return True if `s` is non-empty and at most `max_length` characters."""
	if not isinstance(s, str):
		return False
	return 0 < len(s) <= max_length
