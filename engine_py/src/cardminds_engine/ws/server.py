"""
WebSocket connections and event handling for CardMinds games.

Clients connect to ``/ws/{game_id}/{player_id}``. Every committed change to
a game is pushed to each connected player as a ``state_full`` event holding
the state sanitized for that player.
"""

import asyncio
import logging
from collections import defaultdict
from typing import Any, Dict, Optional, Set

import orjson
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ..constants import ACTION_PASS, ACTION_SUBMIT
from ..errors import GameError
from ..models import GameSnapshot
from ..serialization import sanitize_state
from ..service import GameService
from .events import (
    parse_inbound_event, create_error_event, create_state_full_event, ErrorCode,
    StartEvent, SetModeEvent, SetSpecialCardsEvent, SubmitEvent, PassEvent,
    PlaySpecialEvent, ResolveSpecialEvent, EndSpecialEvent, DiscardEvent,
    NextRoundEvent, RequestStateEvent,
)

logger = logging.getLogger(__name__)


def encode_event(event) -> str:
    return orjson.dumps(event.model_dump(mode="json")).decode()


class ConnectionManager:
    """Manages WebSocket connections and broadcasting."""

    def __init__(self, service: GameService):
        self.connections: Dict[str, Dict[WebSocket, str]] = defaultdict(dict)
        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self._tasks: Set[asyncio.Task] = set()
        service.store.subscribe(self.on_commit)

    async def connect(self, websocket: WebSocket, game_id: str, player_id: str):
        """Register an accepted connection for a player."""
        self.loop = asyncio.get_running_loop()
        self.connections[game_id][websocket] = player_id
        logger.info(f"Player {player_id} connected to game {game_id}")

    def disconnect(self, websocket: WebSocket, game_id: str):
        """Forget a connection."""
        player_id = self.connections.get(game_id, {}).pop(websocket, None)
        if game_id in self.connections and not self.connections[game_id]:
            del self.connections[game_id]
        if player_id:
            logger.info(f"Player {player_id} disconnected from game {game_id}")

    def on_commit(self, state: GameSnapshot):
        """Store listener: schedule a broadcast on the server's event loop."""
        if self.loop is None or state.game.id not in self.connections:
            return

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is self.loop:
            task = self.loop.create_task(self.broadcast_state(state))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        else:
            asyncio.run_coroutine_threadsafe(self.broadcast_state(state), self.loop)

    async def broadcast_state(self, state: GameSnapshot):
        """Send each connected player the state as they are allowed to see it."""
        game_id = state.game.id
        for websocket, player_id in list(self.connections.get(game_id, {}).items()):
            try:
                await self.send_state(websocket, state, player_id)
            except Exception as e:
                logger.error(f"Error broadcasting to {player_id}: {e}")
                self.disconnect(websocket, game_id)

    async def send_state(self, websocket: WebSocket, state: GameSnapshot, player_id: str):
        event = create_state_full_event(sanitize_state(state, player_id))
        await websocket.send_text(encode_event(event))

    async def send_error(self, websocket: WebSocket, code: ErrorCode, message: str):
        await websocket.send_text(encode_event(create_error_event(code, message)))


def handle_event(service: GameService, game_id: str, player_id: str, event) -> Optional[GameSnapshot]:
    """
    Apply an inbound event through the game service.

    Returns:
        The resulting snapshot, or None when the event only asks for state
    """
    if isinstance(event, StartEvent):
        return service.start_game(game_id)
    elif isinstance(event, SetModeEvent):
        return service.set_game_mode(game_id, event.mode)
    elif isinstance(event, SetSpecialCardsEvent):
        return service.set_allowed_special_cards(game_id, event.ranks)
    elif isinstance(event, SubmitEvent):
        return service.player_action(game_id, player_id, ACTION_SUBMIT, event.equation, event.cards_used)
    elif isinstance(event, PassEvent):
        return service.player_action(game_id, player_id, ACTION_PASS)
    elif isinstance(event, PlaySpecialEvent):
        return service.play_special_card(game_id, player_id, event.card_id)
    elif isinstance(event, ResolveSpecialEvent):
        return service.resolve_special_card(game_id, player_id, event.card_id, event.target)
    elif isinstance(event, EndSpecialEvent):
        return service.end_special_action(game_id, player_id)
    elif isinstance(event, DiscardEvent):
        return service.discard_cards(game_id, player_id, event.cards)
    elif isinstance(event, NextRoundEvent):
        return service.next_round(game_id)
    elif isinstance(event, RequestStateEvent):
        return None
    else:
        raise ValueError(f"Unhandled event type: {type(event)}")


def create_router(service: GameService, manager: ConnectionManager) -> APIRouter:
    router = APIRouter()

    @router.websocket("/ws/{game_id}/{player_id}")
    async def websocket_endpoint(websocket: WebSocket, game_id: str, player_id: str):
        """Main WebSocket endpoint."""
        await websocket.accept()

        try:
            state = service.get_state(game_id)
        except GameError as e:
            await manager.send_error(websocket, ErrorCode.from_code(e.code), e.message)
            await websocket.close()
            return

        if player_id not in state.players:
            await manager.send_error(websocket, ErrorCode.NOT_FOUND, "You are not part of this game.")
            await websocket.close()
            return

        await manager.connect(websocket, game_id, player_id)
        await manager.send_state(websocket, state, player_id)

        try:
            while True:
                raw_data = await websocket.receive_text()

                try:
                    data: Dict[str, Any] = orjson.loads(raw_data)
                    if not isinstance(data, dict):
                        raise ValueError("Event must be a JSON object")
                    event = parse_inbound_event(data)
                    if handle_event(service, game_id, player_id, event) is None:
                        await manager.send_state(websocket, service.get_state(game_id), player_id)
                except GameError as e:
                    await manager.send_error(websocket, ErrorCode.from_code(e.code), e.message)
                except ValueError as e:
                    await manager.send_error(websocket, ErrorCode.INVALID_EVENT, str(e))
                except Exception as e:
                    logger.error(f"Error handling event in game {game_id}: {e}")
                    await manager.send_error(websocket, ErrorCode.INTERNAL, "Internal server error")

        except WebSocketDisconnect:
            logger.info(f"WebSocket disconnected from game {game_id}")
        finally:
            manager.disconnect(websocket, game_id)

    return router
