"""FastAPI main application for the CardMinds game backend"""

import logging
import os
from typing import List, Optional, Union

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .errors import GameError, NOT_FOUND, STORE_UNAVAILABLE
from .serialization import get_public_game_info, sanitize_state
from .service import GameService
from .ws.events import EquationTerm
from .ws.server import ConnectionManager, create_router

# Configure logging
logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)


class CreateGameRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=20)


class JoinGameRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=20)


class SetModeRequest(BaseModel):
    mode: str


class SetSpecialCardsRequest(BaseModel):
    ranks: List[str] = Field(default_factory=list)


class PlayerRequest(BaseModel):
    player_id: str


class ActionRequest(PlayerRequest):
    action: str
    equation: Optional[List[EquationTerm]] = None
    cards_used: Optional[List[str]] = None


class PlaySpecialRequest(PlayerRequest):
    card_id: str


class ResolveSpecialRequest(PlayerRequest):
    card_id: Optional[str] = None
    target: Optional[Union[int, str]] = None


class DiscardRequest(PlayerRequest):
    card_ids: List[str]


def error_status(code: str) -> int:
    if code == NOT_FOUND:
        return 404
    if code == STORE_UNAVAILABLE:
        return 503
    return 400


def create_app(service: Optional[GameService] = None) -> FastAPI:
    service = service or GameService()
    manager = ConnectionManager(service)

    app = FastAPI(title="CardMinds Game API", version="1.0.0")
    app.state.service = service
    app.state.manager = manager

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(GameError)
    async def game_error_handler(request, exc: GameError):
        return JSONResponse(
            status_code=error_status(exc.code),
            content={"code": exc.code, "message": exc.message},
        )

    @app.get("/")
    async def root():
        return {"message": "CardMinds Game API", "version": "1.0.0"}

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "connections": sum(len(conns) for conns in manager.connections.values()),
        }

    @app.post("/games")
    def create_game(request: CreateGameRequest):
        game_id = service.create_game(request.name)
        state = service.get_state(game_id)
        player_id = state.game.creator_id
        return {"game_id": game_id, "player_id": player_id, "state": sanitize_state(state, player_id)}

    @app.get("/games/{game_id}")
    def get_game(game_id: str, viewer: Optional[str] = None):
        return sanitize_state(service.get_state(game_id), viewer)

    @app.get("/games/{game_id}/info")
    def get_game_info(game_id: str):
        return get_public_game_info(service.get_state(game_id))

    @app.post("/games/{game_id}/join")
    def join_game(game_id: str, request: JoinGameRequest):
        player_id = service.join_game(game_id, request.name)
        state = service.get_state(game_id)
        return {"game_id": game_id, "player_id": player_id, "state": sanitize_state(state, player_id)}

    @app.post("/games/{game_id}/mode")
    def set_game_mode(game_id: str, request: SetModeRequest):
        return sanitize_state(service.set_game_mode(game_id, request.mode))

    @app.post("/games/{game_id}/special-cards")
    def set_special_cards(game_id: str, request: SetSpecialCardsRequest):
        return sanitize_state(service.set_allowed_special_cards(game_id, request.ranks))

    @app.post("/games/{game_id}/start")
    def start_game(game_id: str, request: Optional[PlayerRequest] = None):
        viewer = request.player_id if request else None
        return sanitize_state(service.start_game(game_id), viewer)

    @app.post("/games/{game_id}/action")
    def player_action(game_id: str, request: ActionRequest):
        state = service.player_action(
            game_id, request.player_id, request.action, request.equation, request.cards_used
        )
        return sanitize_state(state, request.player_id)

    @app.post("/games/{game_id}/special")
    def play_special_card(game_id: str, request: PlaySpecialRequest):
        state = service.play_special_card(game_id, request.player_id, request.card_id)
        return sanitize_state(state, request.player_id)

    @app.post("/games/{game_id}/special/resolve")
    def resolve_special_card(game_id: str, request: ResolveSpecialRequest):
        state = service.resolve_special_card(
            game_id, request.player_id, request.card_id, request.target
        )
        return sanitize_state(state, request.player_id)

    @app.post("/games/{game_id}/special/end")
    def end_special_action(game_id: str, request: PlayerRequest):
        state = service.end_special_action(game_id, request.player_id)
        return sanitize_state(state, request.player_id)

    @app.post("/games/{game_id}/discard")
    def discard_cards(game_id: str, request: DiscardRequest):
        state = service.discard_cards(game_id, request.player_id, request.card_ids)
        return sanitize_state(state, request.player_id)

    @app.post("/games/{game_id}/next-round")
    def next_round(game_id: str, request: Optional[PlayerRequest] = None):
        viewer = request.player_id if request else None
        return sanitize_state(service.next_round(game_id), viewer)

    @app.post("/games/{game_id}/rematch")
    def rematch(game_id: str):
        return {"game_id": service.rematch(game_id)}

    app.include_router(create_router(service, manager))
    return app


app = create_app()
