"""Data models used by the application.

Split into:
- `api_models`: Pydantic models for the session protocol and HTTP responses
- `domain_models`: internal domain objects or typed dicts used in business logic

Import submodules to make them available as `models.api_models`.
"""

from . import domain_models

from .domain_models import (
	Point,
	Direction,
	CoinFieldState,
	MoveCommit,
	MoveResult,
	Snapshot,
)

from . import api_models

from .api_models import (
	NameMessage,
	MoveMessage,
	ClientMessage,
	client_message_adapter,
	WelcomeMessage,
	BadNameMessage,
	ErrorMessage,
	GameStateResponse,
	StateMessage,
)

__all__ = [
	# submodules
	"api_models",
	"domain_models",
	# domain models
	"Point",
	"Direction",
	"CoinFieldState",
	"MoveCommit",
	"MoveResult",
	"Snapshot",
	# api models
	"NameMessage",
	"MoveMessage",
	"ClientMessage",
	"client_message_adapter",
	"WelcomeMessage",
	"BadNameMessage",
	"ErrorMessage",
	"GameStateResponse",
	"StateMessage",
]
