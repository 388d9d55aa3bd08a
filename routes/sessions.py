from fastapi import APIRouter, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.requests import HTTPConnection
from pydantic import ValidationError
from typing import Optional
import logging

from models import (
	NameMessage,
	client_message_adapter,
	WelcomeMessage,
	BadNameMessage,
	ErrorMessage,
	GameStateResponse,
	StateMessage,
)
from services import GameEngine
from stores import (
	StoreError,
	NameTaken,
	UnknownPlayer,
	InvalidName,
	InvalidDirection,
)
from utils.validation import normalize_name
from .connections import ConnectionManager

logger = logging.getLogger(__name__)

router = APIRouter()
manager = ConnectionManager()


def get_game_engine(connection: HTTPConnection) -> GameEngine:
	"""The engine built at startup (see main.lifespan)."""
	return connection.app.state.engine


async def broadcast_state(engine: GameEngine) -> None:
	try:
		snapshot = await engine.state()
	except StoreError as exc:
		logger.error(f"Could not read state for broadcast: {exc}", exc_info=True)
		return
	await manager.broadcast(StateMessage.from_snapshot(snapshot).model_dump(mode="json"))


async def _send_error(websocket: WebSocket, exc: Exception) -> None:
	message = ErrorMessage(reason=exc.__class__.__name__, message=str(exc))
	await manager.send_personal_message(message.model_dump(), websocket)


async def _claim_name(engine: GameEngine, websocket: WebSocket, raw_name: str) -> Optional[str]:
	"""Try to admit `raw_name`; returns the admitted name or None."""
	name = normalize_name(raw_name)
	try:
		await engine.add_player(name)
	except (InvalidName, NameTaken) as exc:
		logger.warning(f"Rejected name {name!r}: {exc}")
		message = BadNameMessage(name=name, reason=exc.__class__.__name__)
		await manager.send_personal_message(message.model_dump(), websocket)
		return None
	except StoreError as exc:
		logger.error(f"Failed to admit {name!r}: {exc}", exc_info=True)
		await _send_error(websocket, exc)
		return None

	await manager.send_personal_message(WelcomeMessage(name=name).model_dump(), websocket)
	await broadcast_state(engine)
	return name


async def _move(engine: GameEngine, websocket: WebSocket, direction: str, name: str) -> None:
	try:
		await engine.move(direction, name)
	except (InvalidDirection, UnknownPlayer) as exc:
		logger.warning(f"Rejected move {direction!r} for {name!r}: {exc}")
		await _send_error(websocket, exc)
		return
	except StoreError as exc:
		logger.error(f"Move {direction!r} for {name!r} failed: {exc}", exc_info=True)
		await _send_error(websocket, exc)
		return
	await broadcast_state(engine)


@router.websocket("/ws")
async def session(websocket: WebSocket):
	"""One player session.

	Until a name is accepted only `name` messages are acted on; after the
	welcome only `move` messages are.
	"""
	engine = get_game_engine(websocket)
	await manager.connect(websocket)
	name: Optional[str] = None
	try:
		while True:
			raw = await websocket.receive_text()
			try:
				message = client_message_adapter.validate_json(raw)
			except ValidationError as exc:
				logger.info(f"Malformed session message: {exc.error_count()} errors")
				await manager.send_personal_message(ErrorMessage(reason="BadMessage").model_dump(), websocket)
				continue

			if isinstance(message, NameMessage):
				if name is None:
					name = await _claim_name(engine, websocket, message.name)
			elif name is not None:
				await _move(engine, websocket, message.direction, name)
	except WebSocketDisconnect:
		logger.info(f"Session for {name!r} disconnected")
	finally:
		manager.disconnect(websocket)


@router.get("/api/state", response_model=GameStateResponse)
async def get_state(request: Request):
	engine = get_game_engine(request)
	try:
		snapshot = await engine.state()
	except StoreError as exc:
		logger.error(f"Failed to read state: {exc}", exc_info=True)
		raise HTTPException(status_code=503, detail="World store unavailable")
	return GameStateResponse.from_snapshot(snapshot)
