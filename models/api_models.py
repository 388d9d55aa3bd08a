"""Pydantic models for the session protocol and the HTTP snapshot endpoint.

Keep transport concerns (validation, wire shape) here and keep
business/domain types in `models.domain_models`.
"""
from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from .domain_models import Snapshot


# --- Incoming session messages ---
class NameMessage(BaseModel):
	type: Literal["name"]
	name: str


class MoveMessage(BaseModel):
	type: Literal["move"]
	direction: str


ClientMessage = Annotated[Union[NameMessage, MoveMessage], Field(discriminator="type")]
client_message_adapter = TypeAdapter(ClientMessage)


# --- Outgoing session messages ---
class WelcomeMessage(BaseModel):
	type: Literal["welcome"] = "welcome"
	name: str


class BadNameMessage(BaseModel):
	type: Literal["badname"] = "badname"
	name: str
	reason: str


class ErrorMessage(BaseModel):
	type: Literal["error"] = "error"
	reason: str
	message: str | None = None


class GameStateResponse(BaseModel):
	"""Snapshot in wire form: cells are "x,y" strings, scores descending."""
	positions: dict[str, str]
	scores: list[tuple[str, int]]
	coins: dict[str, int]

	@classmethod
	def from_snapshot(cls, snapshot: Snapshot) -> "GameStateResponse":
		# Deferred: utils.geometry imports Point from this package.
		from utils.geometry import cell_key

		return cls(
			positions={name: cell_key(pos) for name, pos in snapshot["positions"].items()},
			scores=list(snapshot["scores"]),
			coins={cell_key(pos): value for pos, value in snapshot["coins"].items()},
		)


class StateMessage(GameStateResponse):
	type: Literal["state"] = "state"


__all__ = [
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
