"""Utility helpers used across the project.

Make commonly used helpers available at the package level for convenience.

Exports:
- geometry helpers: `clamp`, `random_point`, `permutation`, `index_to_point`,
  `cell_key`, `parse_cell`
- validation helpers: `is_valid_name`, `normalize_name`, `MAX_PLAYER_NAME_LENGTH`
"""

from .geometry import clamp, random_point, permutation, index_to_point, cell_key, parse_cell
from .validation import is_valid_name, normalize_name, MAX_PLAYER_NAME_LENGTH

__all__ = [
	"clamp",
	"random_point",
	"permutation",
	"index_to_point",
	"cell_key",
	"parse_cell",
	"is_valid_name",
	"normalize_name",
	"MAX_PLAYER_NAME_LENGTH",
]
